"""Kickoffs, PAT decisions, field goals and punts."""
from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from gridsim.config import EnvironmentCfg
from gridsim.constants import KICKOFF_TOUCHBACK_YARD, PUNT_TOUCHBACK_YARD
from gridsim.models.kicking import fg_distance, fg_make_prob
from gridsim.ratings import PlayerRatings, TeamRatings
from gridsim.state import PATKind, Score, Side, yard_text


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass(frozen=True, slots=True)
class KickResult:
    receiving: Side
    yardline: int  # from the receiving side's end
    text: str
    touchback: bool = False


@dataclass(frozen=True, slots=True)
class FieldGoalResult:
    made: bool
    distance: int
    text: str


def should_onside(score: Score, kicking: Side, t_left: int) -> bool:
    deficit = -score.margin_for(kicking)
    if deficit <= 0:
        return False
    if t_left <= 600 and deficit >= 17:
        return True
    if t_left <= 120 and deficit >= 1:
        return True
    return t_left <= 300 and deficit >= 9


def onside_success_prob(rng: np.random.Generator) -> float:
    return _clamp(0.12 + 0.04 * rng.random(), 0.08, 0.18)


def decide_pat(score: Score, side: Side, t_left: int, rng: np.random.Generator) -> PATKind:
    """Kick or go for two, from the margin after the touchdown."""
    lead = score.margin_for(side)
    if lead == -2:
        two = True
    elif lead == -1:
        two = t_left <= 600
    elif lead == 1:
        two = t_left <= 120
    elif lead == 2:
        two = t_left <= 300
    else:
        two = False
    if not two and t_left <= 150 and abs(lead) == 1:
        two = True
    if not two and t_left > 600 and lead < 0 and rng.random() < 0.015:
        two = True
    return PATKind.TWO_POINT if two else PATKind.XP


def _returner(team: TeamRatings) -> PlayerRatings:
    if team.wr:
        return team.wr[0]
    if team.rb:
        return team.rb[0]
    return team.players[0]


def coverage_edge(kteam: TeamRatings, rteam: TeamRatings) -> float:
    """Return-yard shift from the receiving unit's special-teams edge over the kicking unit."""
    return _clamp((rteam.special - kteam.special) / 10, -4.0, 4.0)


def resolve_kickoff(kicking: Side, kteam: TeamRatings, rteam: TeamRatings, onside: bool,
                    env: EnvironmentCfg, rng: np.random.Generator) -> KickResult:
    k = kteam.k
    if onside:
        if rng.random() < onside_success_prob(rng):
            y = 50 + int(np.floor(4 * rng.random()))
            return KickResult(kicking, y, f"{k.name} onside kick, RECOVERED by "
                              f"{kicking.value} at {yard_text(y)}")
        y = 45 + int(np.floor(5 * rng.random()))
        return KickResult(kicking.other, y, f"{k.name} onside kick, recovered by "
                          f"{kicking.other.value} at {yard_text(y)}")

    gross = int(_clamp(round(60 + (k.kick_power - 70) / 2 + rng.normal(0, 5) - env.wind_mph / 5), 50, 75))
    if gross >= 65 or env.precip.is_heavy:
        return KickResult(kicking.other, KICKOFF_TOUCHBACK_YARD,
                          f"{k.name} kicks {gross}, touchback", touchback=True)
    ret_man = _returner(rteam)
    boost = (ret_man.speed - 70) / 6 + coverage_edge(kteam, rteam)
    y = int(_clamp(round(rng.normal(24 + boost, 6)), 10, 45))
    return KickResult(kicking.other, y, f"{k.name} kicks {gross}, {ret_man.name} returns to {yard_text(y)}")


def resolve_field_goal(team: TeamRatings, yardline: int, env: EnvironmentCfg,
                       rng: np.random.Generator) -> FieldGoalResult:
    dist = fg_distance(yardline)
    made = rng.random() < fg_make_prob(dist, team.k.kick_power, team.k.kick_accuracy, env)
    verdict = "GOOD" if made else "NO GOOD"
    return FieldGoalResult(made, dist, f"FG: {team.k.name} {verdict} from {dist}")


def resolve_punt(kicking: Side, kteam: TeamRatings, rteam: TeamRatings, yardline: int,
                 rng: np.random.Generator) -> KickResult:
    p = kteam.p
    gross = int(_clamp(round(46 + (p.kick_power - 70) / 2 + rng.normal(0, 7)), 35, 70))
    land = yardline + gross
    if land >= 100:
        return KickResult(kicking.other, PUNT_TOUCHBACK_YARD,
                          f"Punt {gross} by {p.name}, touchback", touchback=True)
    ret_man = _returner(rteam)
    ret = int(_clamp(round(rng.normal(10 + coverage_edge(kteam, rteam), 8)), 0, 40))
    end = int(_clamp(100 - land + ret, 1, 99))
    return KickResult(kicking.other, end, f"Punt {gross} by {p.name}, {ret_man.name} "
                      f"returns {ret} to {yard_text(end)}")
