"""Tick-driven game loop.

``GameSimulation`` owns one ``GameState`` and resolves exactly one play (or
one pending kickoff/PAT) per ``tick()``. Everything a consumer needs is
published through the append-only ``events`` log, the ``drives`` ledger,
the ``scoring`` summary and the smoothed ``wp_series``.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
import time
from typing import Iterator, Optional

from gridsim.config import FullConfig, make_rng
from gridsim.constants import (FG_POINTS, MAX_DOWN, MAX_TICKS, MAX_YARDLINE, MIN_YARDLINE,
                               PAT_WPA_CAP, QUARTER_SECONDS, TD_POINTS, TWO_POINTS, XP_POINTS)
from gridsim.engine.crowd import Crowd
from gridsim.engine.knobs import oob_bias, pass_rate, slider
from gridsim.engine.penalties import Penalty, PenaltyModel, describe, enforce
from gridsim.engine.plays import PlayResult, resolve_pass, resolve_run
from gridsim.engine.special import (decide_pat, resolve_field_goal, resolve_kickoff,
                                    resolve_punt, should_onside)
from gridsim.errors import InvariantViolation
from gridsim.models.drive_ep import DriveEPEvaluator, FourthDownChoice, fourth_down_choice, go_threshold
from gridsim.models.kicking import conversion_prob, two_point_prob, xp_make_prob
from gridsim.models.knn import KNNEstimator
from gridsim.models.wp import WinProbabilityModel, prior_with_venue, time_fraction, wp_cap
from gridsim.ratings import TeamRatings, TeamStats
from gridsim.rules.clock import GameClock, clock_drain_for
from gridsim.state import (ClockOutcome, Drive, DriveResult, EventTag, GameState, PATKind,
                           PendingKickoff, PendingPAT, PlayEvent, PlayKind, ScoringEntry, Side,
                           Situation, TickOutcome)

logger = logging.getLogger(__name__)

WP_SMOOTHING = 0.97
DRIVE_POINTS = {DriveResult.TD: TD_POINTS, DriveResult.FG: FG_POINTS}


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass
class GameResult:
    home_name: str
    away_name: str
    home_score: int
    away_score: int
    events: list[PlayEvent]
    drives: list[Drive]
    scoring: list[ScoringEntry]
    wp_series: list[float]
    home_stats: TeamStats
    away_stats: TeamStats
    ticks: int = 0
    seed: object = None

    @property
    def winner(self) -> Optional[Side]:
        if self.home_score == self.away_score:
            return None
        return Side.HOME if self.home_score > self.away_score else Side.AWAY


class GameSimulation:
    def __init__(self, home: TeamRatings, away: TeamRatings, config: Optional[FullConfig] = None,
                 estimator: Optional[KNNEstimator] = None):
        self.home = home
        self.away = away
        self.config = config or FullConfig()
        self.knobs = self.config.knobs
        self.env = self.config.environment
        self.estimator = estimator
        self.drive_ep = DriveEPEvaluator(estimator, self.knobs, self.env)
        self.wp_model = WinProbabilityModel(estimator)
        self.clock = GameClock()
        self.penalties = PenaltyModel(self.knobs, Crowd())
        self.reset()

    # -- lifecycle ---------------------------------------------------------

    def reset(self) -> None:
        self.rng = make_rng(self.config.seed)
        self.home.reset_stats()
        self.away.reset_stats()
        venue = self.config.venue
        self.crowd = Crowd.for_venue(venue, self.rng)
        self.penalties.reset(self.crowd)
        self.prior = prior_with_venue(self.home, self.away, venue.hfa_points if venue else 0.0)

        receiving = Side.HOME if self.rng.random() < 0.5 else Side.AWAY
        self.state = GameState.new(receiving)
        self.events: list[PlayEvent] = []
        self.drives: list[Drive] = []
        self.scoring: list[ScoringEntry] = []
        self.wp_smooth = 0.5
        self.wp_series: list[float] = [0.5]
        self.ticks = 0
        self.paused = False
        logger.info("%s at %s: prior %.3f, %s receives", self.away.name, self.home.name,
                    self.prior, receiving.value)

    def pause(self) -> None:
        self.paused = True

    @property
    def is_final(self) -> bool:
        return self.state.is_final

    def run(self, delay: float = 0.0) -> GameResult:
        """Tick until the final whistle or a pause; ``delay`` only paces the loop."""
        self.paused = False
        for _ in self.iter_ticks():
            if delay > 0:
                time.sleep(delay)
        return self.result()

    def iter_ticks(self) -> Iterator[TickOutcome]:
        while not self.state.is_final and not self.paused:
            yield self.tick()

    def result(self) -> GameResult:
        s = self.state.score
        return GameResult(self.home.name, self.away.name, s.home, s.away, list(self.events),
                          list(self.drives), list(self.scoring), list(self.wp_series),
                          self.home.stats, self.away.stats, ticks=self.ticks, seed=self.config.seed)

    # -- helpers -----------------------------------------------------------

    def team(self, side: Side) -> TeamRatings:
        return self.home if side is Side.HOME else self.away

    def wp(self) -> float:
        st = self.state
        sit = st.situation
        return self.wp_model.win_probability(
            st.score.home, st.score.away, sit.quarter, sit.seconds, sit.yardline,
            sit.possession, self.prior, down=sit.down, distance=sit.distance,
            timeouts=st.timeouts)

    def drive_ep_for(self, sit: Situation) -> float:
        return self.drive_ep.evaluate(sit, self.home, self.away, self.state.score)

    def _wpa(self, before: float, cap: Optional[float] = None) -> float:
        sit = self.state.situation
        if cap is None:
            cap = wp_cap(sit.quarter, sit.seconds)
        return _clamp(self.wp() - before, -cap, cap)

    def _log(self, tag: EventTag, text: str, offense: Side, scoring: bool = False,
             epa: float = 0.0, wpa: float = 0.0, drive_ep: float = 0.0,
             kind: Optional[PlayKind] = None, down: int = 0, yards: int = 0) -> PlayEvent:
        s = self.state.score
        ev = PlayEvent(tag, text, offense, is_scoring=scoring, epa=round(epa, 4), wpa=wpa,
                       drive_ep_at_snap=drive_ep, home_score=s.home, away_score=s.away,
                       wp=self.wp(), kind=kind, down=down, yards=yards)
        self.events.append(ev)
        return ev

    def _open_drive(self, team: Side, yardline: int) -> Drive:
        sit = self.state.situation
        start = Situation(quarter=sit.quarter, seconds=sit.seconds, down=1,
                          distance=10, yardline=yardline, possession=team)
        drive = Drive(team=team, start_yardline=yardline, start_ep=self.drive_ep_for(start),
                      start_quarter=sit.quarter, start_seconds=sit.seconds)
        self.drives.append(drive)
        return drive

    def _current_drive(self) -> Optional[Drive]:
        if self.drives and self.drives[-1].is_open:
            return self.drives[-1]
        return None

    def _close_drive(self, result: DriveResult, end_yardline: int) -> None:
        drive = self._current_drive()
        if drive is None:
            return
        sit = self.state.situation
        start_left = (4 - drive.start_quarter) * QUARTER_SECONDS + drive.start_seconds
        drive.result = result
        drive.end_yardline = end_yardline
        drive.elapsed = max(0, start_left - sit.seconds_left_total)
        drive.add_points(DRIVE_POINTS.get(result, 0))

    def _change_possession(self, result: DriveResult, end_yardline: int, new_yardline: int) -> None:
        sit = self.state.situation
        self._close_drive(result, end_yardline)
        sit.first_and_ten(int(_clamp(new_yardline, 1, MAX_YARDLINE)), sit.possession.other)
        self._open_drive(sit.possession, sit.yardline)

    # -- tick --------------------------------------------------------------

    def tick(self) -> TickOutcome:
        st = self.state
        if st.is_final:
            return TickOutcome.GAME_OVER
        self.ticks += 1
        if self.ticks > MAX_TICKS:
            raise InvariantViolation(f"game did not finish within {MAX_TICKS} ticks")

        pending = st.pending
        if isinstance(pending, PendingKickoff):
            self._kickoff(pending)
            outcome = TickOutcome.ADVANCED
        elif isinstance(pending, PendingPAT):
            self._pat(pending)
            outcome = TickOutcome.ADVANCED
        else:
            outcome = self._snap()

        self._check_invariants()
        wp_now = self.wp()
        self.wp_smooth = WP_SMOOTHING * self.wp_smooth + (1 - WP_SMOOTHING) * wp_now
        self.wp_series.append(self.wp_smooth)
        self.crowd.update(st, self.env)

        if st.situation.seconds <= 0 and not isinstance(st.pending, PendingPAT):
            return self._end_quarter()
        return outcome

    def _check_invariants(self) -> None:
        sit = self.state.situation
        if not 1 <= sit.down <= MAX_DOWN:
            raise InvariantViolation(f"down {sit.down} outside 1..{MAX_DOWN}")
        if not MIN_YARDLINE <= sit.yardline <= MAX_YARDLINE:
            raise InvariantViolation(f"yardline {sit.yardline} off the field")
        if sit.seconds < 0:
            raise InvariantViolation(f"negative clock {sit.seconds}")
        if min(self.state.timeouts.values()) < 0:
            raise InvariantViolation("negative timeout bank")

    def _end_quarter(self) -> TickOutcome:
        st = self.state
        quarter = st.situation.quarter
        if quarter == 2:
            drive = self._current_drive()
            if drive is not None:
                self._close_drive(DriveResult.END_OF_HALF, st.situation.yardline)
        elif quarter >= 4:
            drive = self._current_drive()
            if drive is not None:
                self._close_drive(DriveResult.END_OF_GAME, st.situation.yardline)

        if self.clock.end_quarter(st):
            st.pending = None
            s = st.score
            self._log(EventTag.FINAL, f"FINAL: {self.home.name} {s.home} - {self.away.name} {s.away}",
                      Side.HOME, scoring=True)
            logger.info("final: %s %d, %s %d (%d ticks)", self.home.name, s.home,
                        self.away.name, s.away, self.ticks)
            return TickOutcome.GAME_OVER
        return TickOutcome.QUARTER_ENDED

    # -- pending actions ---------------------------------------------------

    def _kickoff(self, pending: PendingKickoff) -> None:
        st = self.state
        sit = st.situation
        kicking = pending.kicking
        onside = pending.onside or should_onside(st.score, kicking, sit.seconds_left_total)
        res = resolve_kickoff(kicking, self.team(kicking), self.team(kicking.other), onside,
                              self.env, self.rng)
        st.pending = None
        sit.first_and_ten(res.yardline, res.receiving)
        drive = self._open_drive(res.receiving, res.yardline)
        self._log(EventTag.KICKOFF, res.text, kicking, drive_ep=drive.start_ep,
                  kind=PlayKind.KICKOFF)

    def _pat(self, pending: PendingPAT) -> None:
        st = self.state
        side = pending.side
        atk, dfn = self.team(side), self.team(side.other)
        wp_before = self.wp()

        if pending.kind is PATKind.XP:
            made = self.rng.random() < xp_make_prob(atk.k.kick_accuracy, self.env)
            pts = XP_POINTS if made else 0
            text = f"XP: {atk.k.name} {'GOOD' if made else 'NO GOOD'}"
            note = f" (XP {'good' if made else 'no good'})"
        else:
            made = self.rng.random() < two_point_prob(atk.offense, dfn.defense)
            pts = TWO_POINTS if made else 0
            text = f"2-pt Try: {'GOOD' if made else 'FAIL'}"
            note = f" (2-pt {'good' if made else 'fail'})"

        st.score.add(side, pts)
        if 0 <= pending.drive_index < len(self.drives):
            self.drives[pending.drive_index].add_points(pts)
        if 0 <= st.pending_score_index < len(self.scoring):
            entry = self.scoring[st.pending_score_index]
            entry.text += note
            entry.score = st.score.text()
        st.pending_score_index = -1

        epa = pts - pending.expected_points
        self._log(EventTag.PLAY, text, side, scoring=True, epa=epa,
                  wpa=self._wpa(wp_before, PAT_WPA_CAP), kind=PlayKind.PAT)
        st.pending = PendingKickoff(side, onside=should_onside(st.score, side,
                                                               st.situation.seconds_left_total))

    # -- normal snaps ------------------------------------------------------

    def _snap(self) -> TickOutcome:
        st = self.state
        sit = st.situation
        pen = self.penalties.pre_snap(sit, self.rng)
        if pen is not None:
            self._penalty(pen)
            return TickOutcome.REPLAY

        snap = sit.copy()
        atk, dfn = self.team(sit.possession), self.team(sit.possession.other)
        ep0 = self.drive_ep_for(snap)
        wp0 = self.wp()

        if sit.down == MAX_DOWN:
            choice = fourth_down_choice(sit, atk, self.knobs, self.env)
            if choice is FourthDownChoice.FIELD_GOAL:
                self._field_goal(snap, atk, ep0, wp0)
                return TickOutcome.ADVANCED
            if choice is FourthDownChoice.PUNT:
                self._punt(snap, atk, ep0, wp0)
                return TickOutcome.ADVANCED

        tf = time_fraction(sit.quarter, sit.seconds)
        if self.rng.random() < 1 - pass_rate(sit, st.score, self.knobs, tf):
            res = resolve_run(atk, dfn, sit, self.knobs, self.penalties, self.rng)
        else:
            res = resolve_pass(atk, dfn, sit, self.knobs, self.env, self.crowd,
                               self.penalties, self.rng)
        if res.penalty is not None:
            self._penalty(res.penalty)
            return TickOutcome.REPLAY

        self._apply_play(snap, atk, dfn, ep0, wp0, res)
        return TickOutcome.ADVANCED

    def _penalty(self, pen: Penalty) -> None:
        sit = self.state.situation
        ep_before, wp_before = self.drive_ep_for(sit), self.wp()
        down = sit.down
        offender = sit.possession.other if pen.on_defense else sit.possession
        self.team(offender).stats.penalties += 1
        applied = enforce(pen, sit)
        epa = self.drive_ep_for(sit) - ep_before
        self._log(EventTag.PEN, describe(pen, applied, sit), sit.possession, epa=epa,
                  wpa=self._wpa(wp_before), drive_ep=ep_before, kind=PlayKind.PENALTY,
                  down=down, yards=applied if pen.on_defense else -applied)

    def _special_teams_clock(self, offense: Side) -> None:
        runoff = clock_drain_for(ClockOutcome.SPECIAL, slider(self.knobs.pace))
        self.events.extend(self.clock.apply(self.state, runoff, True, offense))

    def _field_goal(self, snap: Situation, atk: TeamRatings, ep0: float, wp0: float) -> None:
        st = self.state
        side = snap.possession
        atk.stats.fga += 1
        res = resolve_field_goal(atk, snap.yardline, self.env, self.rng)
        if res.made:
            atk.stats.fgm += 1
            st.score.add(side, FG_POINTS)
            epa = FG_POINTS - ep0
            self.scoring.append(ScoringEntry(f"{side.value} FG ({res.distance})", st.score.text()))
            self._close_drive(DriveResult.FG, snap.yardline)
            st.pending = PendingKickoff(side, onside=should_onside(st.score, side,
                                                                   st.situation.seconds_left_total))
        else:
            epa = -ep0
            self._change_possession(DriveResult.MISSED_FG, snap.yardline, 100 - snap.yardline)
        atk.stats.epa += epa
        self._log(EventTag.PLAY, f"{snap.header()} - {res.text}", side, scoring=res.made,
                  epa=epa, wpa=self._wpa(wp0), drive_ep=ep0,
                  kind=PlayKind.FIELD_GOAL, down=snap.down)
        self._special_teams_clock(side)

    def _punt(self, snap: Situation, atk: TeamRatings, ep0: float, wp0: float) -> None:
        side = snap.possession
        atk.stats.punts += 1
        res = resolve_punt(side, atk, self.team(side.other), snap.yardline, self.rng)
        result = DriveResult.PUNT_TOUCHBACK if res.touchback else DriveResult.PUNT
        self._change_possession(result, snap.yardline, res.yardline)
        atk.stats.epa -= ep0
        self._log(EventTag.PLAY, f"{snap.header()} - {res.text}", side, epa=-ep0,
                  wpa=self._wpa(wp0), drive_ep=ep0, kind=PlayKind.PUNT, down=snap.down)
        self._special_teams_clock(side)

    def _apply_play(self, snap: Situation, atk: TeamRatings, dfn: TeamRatings,
                    ep0: float, wp0: float, res: PlayResult) -> None:
        st = self.state
        sit = st.situation
        side = snap.possession
        stats = atk.stats
        drive = self._current_drive()
        text = res.text
        short_on_fourth = False

        if res.touchdown:
            st.score.add(side, TD_POINTS)
            stats.td += 1
            sit.yardline = MAX_YARDLINE
            t_left = sit.seconds_left_total
            kind = decide_pat(st.score, side, t_left, self.rng)
            expected = (xp_make_prob(atk.k.kick_accuracy, self.env) if kind is PATKind.XP
                        else 2 * two_point_prob(atk.offense, dfn.defense))
            self.scoring.append(ScoringEntry(f"{side.value} {res.td_label}", st.score.text()))
            st.pending_score_index = len(self.scoring) - 1
        elif res.interception:
            stats.ints += 1
        else:
            sit.yardline = int(_clamp(sit.yardline + res.yards, MIN_YARDLINE, MAX_YARDLINE))
            sit.distance -= res.yards
            if sit.distance <= 0:
                sit.first_and_ten(sit.yardline)
            elif snap.down == MAX_DOWN:
                short_on_fourth = True
            else:
                sit.down += 1

        if not res.interception:
            stats.plays += 1
            stats.yards += res.yards
            if res.kind is PlayKind.PASS:
                stats.pass_yards += max(0, res.yards)
            else:
                stats.rush_yards += max(0, res.yards)
            if drive is not None:
                drive.plays += 1
                drive.yards += res.yards
            converted = res.touchdown or (sit.down == 1 and not short_on_fourth)
            if snap.down == 3:
                stats.third.att += 1
                stats.third.made += int(converted)
            elif snap.down == MAX_DOWN and converted:
                stats.fourth.att += 1
                stats.fourth.made += 1

        if res.touchdown:
            self._close_drive(DriveResult.TD, 100)
            st.pending = PendingPAT(side, kind, expected, drive_index=len(self.drives) - 1)
        elif res.interception:
            self._change_possession(DriveResult.INT, snap.yardline, res.turnover_yardline)

        # clock
        in_bounds = res.in_bounds
        if in_bounds and res.clock is not ClockOutcome.SACK and not res.touchdown:
            if self.rng.random() < oob_bias(sit, st.score):
                in_bounds = False
        runoff = clock_drain_for(res.clock, slider(self.knobs.pace))
        clock_events = self.clock.apply(st, runoff, in_bounds, side)

        if short_on_fourth:
            text += self._fourth_down_try(sit, atk, dfn)

        if res.touchdown:
            epa = TD_POINTS - ep0
        elif sit.possession is not side:
            epa = -ep0
        else:
            epa = self.drive_ep_for(sit) - ep0
        stats.epa += epa
        self._log(EventTag.PLAY, f"{snap.header()} - {text}", side, scoring=res.touchdown,
                  epa=epa, wpa=self._wpa(wp0), drive_ep=ep0, kind=res.kind,
                  down=snap.down, yards=res.yards)
        self.events.extend(clock_events)

    def _fourth_down_try(self, sit: Situation, atk: TeamRatings, dfn: TeamRatings) -> str:
        """Short of the sticks on 4th: one conversion draw inside the go range, else downs."""
        stats = atk.stats
        stats.fourth.att += 1
        thresh = go_threshold(sit.yardline, self.knobs.fourth_down_aggr, sit.quarter)
        if sit.distance <= thresh and self.rng.random() < conversion_prob(atk.offense, dfn.defense):
            stats.fourth.made += 1
            sit.first_and_ten(sit.yardline)
            return "; 4th-down conversion, chains move"
        stats.downs += 1
        spot = sit.yardline
        self._change_possession(DriveResult.DOWNS, spot, 100 - spot)
        return "; turnover on downs"


def run_headless(home: TeamRatings, away: TeamRatings, config: Optional[FullConfig] = None,
                 estimator: Optional[KNNEstimator] = None) -> GameResult:
    """Play one full game with no pacing and return its result."""
    return GameSimulation(home, away, config, estimator).run()
