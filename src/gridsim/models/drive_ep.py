"""Pre-snap expected points for the remainder of the current drive.

The PAT is never counted: a drive is worth at most a touchdown's six points
plus the small headroom the historical table allows.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional

from gridsim.config import EnvironmentCfg, KnobsCfg
from gridsim.constants import DRIVE_EP_MAX, FG_POINTS, MAX_FG_DISTANCE
from gridsim.models.ep import expected_points, net_punt_from_los, p_first_down
from gridsim.models.kicking import conversion_prob, fg_distance, fg_make_prob
from gridsim.models.knn import KNNEstimator
from gridsim.ratings import TeamRatings
from gridsim.state import Score, Side, Situation


class FourthDownChoice(str, Enum):
    GO = "go"
    FIELD_GOAL = "field_goal"
    PUNT = "punt"


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def go_threshold(yardline: int, aggressiveness: float, quarter: Optional[int] = None) -> float:
    """Longest 4th-down distance the offense will go for.

    Passing ``quarter`` applies the late-game tightening used at the line of
    scrimmage; the drive valuation leaves it out.
    """
    thresh = (4.0 if yardline >= 50 else 2.0) - (aggressiveness - 50) / 25
    if quarter == 4:
        thresh -= 0.6
    return thresh


def fourth_down_choice(sit: Situation, offense: TeamRatings, knobs: KnobsCfg,
                       env: EnvironmentCfg) -> FourthDownChoice:
    if sit.distance <= go_threshold(sit.yardline, knobs.fourth_down_aggr, sit.quarter):
        return FourthDownChoice.GO

    dist = fg_distance(sit.yardline)
    if dist <= MAX_FG_DISTANCE and sit.distance > 1:
        k = offense.k
        p = fg_make_prob(dist, k.kick_power, k.kick_accuracy, env)
        # a miss hands the opponent the ball at the spot
        fg_value = FG_POINTS * p - (1 - p) * expected_points(1, 10, _clamp(100 - sit.yardline, 1, 99))
        landing = _clamp(100 - (sit.yardline + net_punt_from_los(sit.yardline)), 1, 99)
        punt_value = -expected_points(1, 10, landing)
        if fg_value >= punt_value:
            return FourthDownChoice.FIELD_GOAL
    return FourthDownChoice.PUNT


class DriveEPEvaluator:
    def __init__(self, estimator: Optional[KNNEstimator] = None,
                 knobs: Optional[KnobsCfg] = None, env: Optional[EnvironmentCfg] = None):
        self.estimator = estimator
        self.knobs = knobs or KnobsCfg()
        self.env = env or EnvironmentCfg()

    def _fourth_down_value(self, sit: Situation, distance: float,
                           atk: TeamRatings, dfn: TeamRatings) -> float:
        y = sit.yardline
        values = [0.0]  # a punt adds nothing to this drive
        dist = fg_distance(y)
        if dist <= MAX_FG_DISTANCE:
            values.append(FG_POINTS * fg_make_prob(dist, atk.k.kick_power, atk.k.kick_accuracy, self.env))
        if distance <= go_threshold(y, self.knobs.fourth_down_aggr):
            ep_after = expected_points(1, min(10, 100 - y), y)
            values.append(conversion_prob(atk.offense, dfn.defense) * ep_after)
        return _clamp(max(values), 0.0, DRIVE_EP_MAX)

    def evaluate(self, sit: Situation, home: TeamRatings, away: TeamRatings,
                 score: Optional[Score] = None) -> float:
        if self.estimator is not None and score is not None:
            est = self.estimator.try_estimate(sit, score)
            if est is not None:
                return _clamp(max(0.0, est.ep), 0.0, DRIVE_EP_MAX)

        atk, dfn = (home, away) if sit.possession is Side.HOME else (away, home)
        if sit.down >= 4:
            return self._fourth_down_value(sit, sit.distance, atk, dfn)

        p_conv = p_first_down(sit.down, sit.distance)
        conv_ep = _clamp(expected_points(1, min(10, 100 - sit.yardline), sit.yardline), 0.0, DRIVE_EP_MAX)
        fallback = self._fourth_down_value(sit, sit.distance, atk, dfn)
        if sit.down == 3 and sit.distance >= 12 and sit.yardline >= 70:
            fallback = max(0.0, fallback - 0.25)
        return _clamp(p_conv * conv_ep + (1 - p_conv) * fallback, 0.0, DRIVE_EP_MAX)
