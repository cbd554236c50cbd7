"""Run and pass resolution for a single snap.

Both resolvers draw everything from the game's generator, update the box
scores of the players involved and hand back a ``PlayResult``; the game
applies it to the situation, the score and the drive ledger.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from gridsim.config import EnvironmentCfg, KnobsCfg, Precip
from gridsim.engine.crowd import Crowd
from gridsim.engine.knobs import slider
from gridsim.engine.penalties import Penalty, PenaltyModel
from gridsim.ratings import PlayerRatings, TeamRatings
from gridsim.state import ClockOutcome, PlayKind, Side, Situation, yard_text


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass(slots=True)
class PlayResult:
    kind: PlayKind
    text: str = ""
    yards: int = 0
    touchdown: bool = False
    interception: bool = False
    turnover_yardline: int = 0  # new offense's yardline after an interception
    clock: ClockOutcome = ClockOutcome.RUN
    in_bounds: bool = True
    penalty: Optional[Penalty] = None

    @property
    def td_label(self) -> str:
        if self.kind is PlayKind.SCRAMBLE:
            return "TD run (QB scramble)"
        return "TD pass" if self.kind is PlayKind.PASS else "TD run"


def _pick(pool: list, rng: np.random.Generator):
    return pool[int(rng.integers(len(pool)))] if pool else None


def pick_rusher(atk: TeamRatings, sit: Situation, rng: np.random.Generator) -> PlayerRatings:
    def fatigue(pl: PlayerRatings) -> float:
        return 0.6 if pl.box.carries > 22 else 1.0

    pool: list[tuple[PlayerRatings, float]] = []
    for pl, w in zip(atk.rb[:3], (0.55, 0.30, 0.12)):
        pool.append((pl, w * fatigue(pl)))
    wr = _pick(atk.wr, rng)
    if wr is not None:
        pool.append((wr, 0.03))
    fb = atk.fullback
    if fb is not None:
        pool.append((fb, 0.03))
    mobile = atk.qb.speed >= 82
    w = 0.06 if mobile else 0.03
    if sit.distance <= 2:
        w += 0.12 if mobile else 0.06
    pool.append((atk.qb, w))

    weights = np.array([w for _, w in pool])
    return pool[int(rng.choice(len(pool), p=weights / weights.sum()))][0]


def pick_receiver(atk: TeamRatings, rng: np.random.Generator) -> PlayerRatings:
    r = rng.random()
    if r < 0.65 and atk.wr:
        group = atk.wr
    elif r < 0.85 and atk.te:
        group = atk.te
    else:
        group = atk.rb or atk.wr
    return _pick(group, rng) or atk.qb


def pick_defender(dfn: TeamRatings, role: str, rng: np.random.Generator) -> Optional[PlayerRatings]:
    if role in ("int", "coverage"):
        pool = dfn.db + dfn.lb
    else:
        pool = dfn.dl + dfn.lb
    return _pick(pool, rng)


def _name(pl: Optional[PlayerRatings]) -> str:
    return pl.name if pl is not None else "Defender"


def _weather_penalty(env: EnvironmentCfg) -> float:
    wx = 0.0
    if env.precip is Precip.LIGHT_RAIN:
        wx += 0.03
    if env.precip.is_heavy:
        wx += 0.07
    if env.wind_mph >= 18:
        wx += 0.03
    return wx


def _run_yards(runner: PlayerRatings, is_qb: bool, sit: Situation, adv: float, var: float,
               rng: np.random.Generator) -> int:
    mean, spread = 3.9 + adv * 0.025, 3.2 * (1 + 0.6 * var)
    if is_qb and sit.distance <= 2:
        mean, spread = 2.3, 1.4
    elif is_qb:
        mean, spread = 5.2 + (runner.speed - 78) / 18, 2.8
    raw = int(_clamp(round(rng.normal(mean, spread)), -4, 35))
    return min(raw, 100 - sit.yardline)


def resolve_run(atk: TeamRatings, dfn: TeamRatings, sit: Situation, knobs: KnobsCfg,
                penalties: PenaltyModel, rng: np.random.Generator) -> PlayResult:
    runner = pick_rusher(atk, sit, rng)
    pen = penalties.live(sit, rng, is_pass=False)
    if pen is not None:
        return PlayResult(PlayKind.PENALTY, penalty=pen)

    yds = _run_yards(runner, runner is atk.qb, sit, atk.offense - dfn.defense,
                     slider(knobs.variance), rng)
    box = runner.box
    box.carries += 1
    box.rush_yards += max(0, yds)
    mph = _clamp(13 + (runner.speed - 70) / 3 + rng.normal(0, 1.5), 11, 22)
    box.top_speed = max(box.top_speed, mph)

    if sit.yardline + yds >= 100:
        return PlayResult(PlayKind.RUN, f"{runner.name} rushes for {yds} yards, TOUCHDOWN",
                          yards=yds, touchdown=True, clock=ClockOutcome.SPECIAL, in_bounds=False)
    tackler = pick_defender(dfn, "tackle", rng)
    if tackler is not None:
        tackler.box.tackles += 1
    spot = int(_clamp(sit.yardline + yds, 0, 99))
    return PlayResult(PlayKind.RUN, f"{runner.name} rushes for {yds} yards, tackled by "
                      f"{_name(tackler)} at {yard_text(spot)}", yards=yds)


def _scramble(qb: PlayerRatings, dfn: TeamRatings, sit: Situation,
              rng: np.random.Generator) -> PlayResult:
    y = min(int(_clamp(round(rng.normal(7 + (qb.speed - 80) / 8, 4.5)), -2, 35)), 100 - sit.yardline)
    qb.box.carries += 1
    qb.box.rush_yards += max(0, y)
    if sit.yardline + y >= 100:
        return PlayResult(PlayKind.SCRAMBLE, f"{qb.name} scrambles {y} yards for a TOUCHDOWN",
                          yards=y, touchdown=True, clock=ClockOutcome.SPECIAL, in_bounds=False)
    tackler = pick_defender(dfn, "tackle", rng)
    if tackler is not None:
        tackler.box.tackles += 1
    spot = int(_clamp(sit.yardline + y, 0, 99))
    return PlayResult(PlayKind.SCRAMBLE, f"{qb.name} scrambles for {y} yards, tackled by "
                      f"{_name(tackler)} at {yard_text(spot)}", yards=y)


def resolve_pass(atk: TeamRatings, dfn: TeamRatings, sit: Situation, knobs: KnobsCfg,
                 env: EnvironmentCfg, crowd: Crowd, penalties: PenaltyModel,
                 rng: np.random.Generator) -> PlayResult:
    qb = atk.qb
    adv = atk.offense - dfn.defense
    var = slider(knobs.variance)
    qb.box.dropbacks += 1

    air = int(_clamp(round(rng.normal(6 + adv * 0.008, 5 * (1 + 0.5 * var))), -1, 26))
    pen = penalties.live(sit, rng, is_pass=True, air_depth=air)
    if pen is not None:
        return PlayResult(PlayKind.PENALTY, penalty=pen)

    pressure_p = _clamp(0.24 + (dfn.defense - atk.offense) / 180, 0.12, 0.45)
    if sit.possession is Side.AWAY:
        pressure_p = _clamp(pressure_p * (1 + 0.25 * crowd.volume()), 0.12, 0.55)
    pressured = rng.random() < pressure_p
    if pressured:
        qb.box.pressures += 1
        scramble_p = _clamp(0.08 + (qb.speed - 78) / 120 + 0.10
                            + (0.03 if sit.distance >= 8 else 0.0), 0.02, 0.28)
        if rng.random() < scramble_p:
            return _scramble(qb, dfn, sit, rng)

    sack_p = 0.18 if pressured else 0.06
    exp_comp = _clamp(0.58 + (qb.pass_accuracy - 80) / 220 - (dfn.defense - 70) / 300
                      - (0.09 if air > 12 else 0.0) - (0.08 if pressured else 0.0)
                      - _weather_penalty(env), 0.30, 0.72)
    qb.box.exp_comp_sum += exp_comp
    qb.box.time_to_throw += _clamp(rng.normal(2.65 - (0.3 if pressured else 0.0), 0.35), 1.3, 4.5)
    qb.box.throws_timed += 1

    if rng.random() < sack_p:
        loss = int(_clamp(round(rng.normal(6, 3)), 3, 13))
        sacker = pick_defender(dfn, "sack", rng)
        if sacker is not None:
            sacker.box.sacks += 1
        qb.box.sacks_taken += 1
        spot = max(0, sit.yardline - loss)
        return PlayResult(PlayKind.PASS, f"{qb.name} sacked by {_name(sacker)} for -{loss} "
                          f"at {yard_text(spot)}", yards=-loss, clock=ClockOutcome.SACK)

    qb.box.attempts += 1
    if rng.random() < exp_comp:
        wr = pick_receiver(atk, rng)
        yac = max(0, int(round(rng.normal(3.0 + adv / 140, 2.2 * (1 + 0.5 * var)))))
        gain = min(max(0, air) + yac, 100 - sit.yardline)
        qb.box.completions += 1
        qb.box.pass_yards += gain
        qb.box.air_yards += max(0, air)
        qb.box.yac += yac
        wr.box.targets += 1
        wr.box.catches += 1
        wr.box.rec_yards += gain
        if sit.yardline + gain >= 100:
            qb.box.pass_td += 1
            wr.box.rec_td += 1
            return PlayResult(PlayKind.PASS, f"{qb.name} completes to {wr.name} for {gain} yards, "
                              "TOUCHDOWN", yards=gain, touchdown=True,
                              clock=ClockOutcome.SPECIAL, in_bounds=False)
        sep = _clamp(2.7 + (wr.speed - 70) / 25 - (dfn.defense - 70) / 120 + rng.normal(0, 0.6), 0.5, 4.5)
        wr.box.separation += sep
        wr.box.separation_n += 1
        tackler = pick_defender(dfn, "coverage", rng)
        if tackler is not None:
            tackler.box.tackles += 1
        spot = int(_clamp(sit.yardline + gain, 0, 99))
        return PlayResult(PlayKind.PASS, f"{qb.name} completes to {wr.name} for {gain} yards, "
                          f"tackled by {_name(tackler)} at {yard_text(spot)}",
                          yards=gain, clock=ClockOutcome.COMPLETE)

    if rng.random() < 0.04:
        pick = pick_defender(dfn, "int", rng)
        if pick is not None:
            pick.box.interceptions += 1
        qb.box.ints_thrown += 1
        ret = int(_clamp(round(rng.normal(10, 7)), 0, 60))
        catch_at = min(99, sit.yardline + max(0, air))
        new_yard = int(_clamp(100 - catch_at + ret, 1, 99))
        return PlayResult(PlayKind.PASS, f"{qb.name} pass is INTERCEPTED by {_name(pick)}, "
                          f"return to {yard_text(new_yard)}", interception=True,
                          turnover_yardline=new_yard, clock=ClockOutcome.COMPLETE)

    defender = pick_defender(dfn, "coverage", rng)
    if defender is not None:
        defender.box.passes_defended += 1
    target = pick_receiver(atk, rng)
    target.box.targets += 1
    text = f"{qb.name} pass incomplete"
    if rng.random() < _clamp(0.03 + (70 - target.hands) / 400, 0.01, 0.08):
        target.box.drops += 1
        text += " (drop)"
    return PlayResult(PlayKind.PASS, text, clock=ClockOutcome.INCOMPLETE, in_bounds=False)
