"""Home-team win probability.

A closed-form logistic over prior, score, field position and EP gives the
base. When the historical table is loaded its estimate is blended in 70/30.
Late in the game three end-game pulls (possession budget, kneel-out and
two-score) move the value toward the leader, and a hard floor handles
blowouts in the final half minute. Every pull is monotone: it only moves WP
toward the leading side.
"""
from __future__ import annotations
import math
from typing import Mapping, Optional

from gridsim.constants import (GAME_SECONDS, POINTS_PER_POSSESSION, QUARTER_SECONDS,
                               QUARTERS, TIMEOUTS_PER_HALF, WP_MAX, WP_MIN)
from gridsim.models.ep import expected_points
from gridsim.models.knn import HistoricalQuery, KNNEstimator
from gridsim.ratings import TeamRatings
from gridsim.state import Side

ONSIDE_P = 0.08
POSSESSION_SECONDS = 70
HURRY_POSSESSION_SECONDS = 55
TIMEOUT_CREDIT_S = 28


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _logit(p: float) -> float:
    return math.log(p / (1 - p))


def _sigmoid(z: float) -> float:
    return 1.0 / (1.0 + math.exp(-z))


def seconds_left(quarter: int, seconds: int) -> int:
    return (QUARTERS - quarter) * QUARTER_SECONDS + seconds


def time_fraction(quarter: int, seconds: int) -> float:
    return _clamp(1 - seconds_left(quarter, seconds) / GAME_SECONDS, 0.0, 1.0)


def wp_cap(quarter: int, seconds: int) -> float:
    """Largest WP swing a single play may be credited with."""
    return 0.03 + 0.70 * time_fraction(quarter, seconds) ** 2.25


def multi_score_cap(needed: int, t_left: float) -> float:
    """Ceiling on the trailing side's chances when each extra score needs an onside recovery."""
    if needed <= 1:
        return 1.0
    chain = ONSIDE_P ** (needed - 1)
    if t_left <= 120:
        return 0.004 * chain
    if t_left <= 300:
        return 0.010 * chain
    if t_left <= 480:
        return 0.020 * chain
    return 0.035 * chain


def prior_from_teams(home: TeamRatings, away: TeamRatings) -> float:
    return _clamp(_sigmoid((home.strength - away.strength) / 8), 0.35, 0.65)


def prior_with_venue(home: TeamRatings, away: TeamRatings, hfa_points: float = 0.0) -> float:
    base = prior_from_teams(home, away)
    if not hfa_points:
        return base
    shift = _clamp(hfa_points / 7 / 3.5, -0.15, 0.15)
    return _clamp(base + shift, 0.30, 0.70)


def _pull(wp: float, target: float, lock: float, home_leads: bool) -> float:
    moved = (1 - lock) * wp + lock * target
    return max(wp, moved) if home_leads else min(wp, moved)


class WinProbabilityModel:
    def __init__(self, estimator: Optional[KNNEstimator] = None):
        self.estimator = estimator

    def base(self, lead: int, t_left: float, yardline: int, possession: Side, prior: float,
             down: int = 1, distance: float = 10) -> float:
        tf = _clamp(1 - t_left / GAME_SECONDS, 0.0, 1.0)
        sign = 1 if possession is Side.HOME else -1
        z_prior = _logit(_clamp(prior, 0.05, 0.95)) * (0.55 - 0.30 * tf)
        z_lead = (0.35 + 1.05 * tf) * (lead / 7)
        z_field = 0.20 * ((yardline - 50) / 50) * sign
        z_ep = 0.10 * sign * expected_points(down, distance, yardline) / 6
        return _clamp(_sigmoid(z_prior + z_lead + z_field + z_ep), 0.001, 0.999)

    def win_probability(self, home_score: int, away_score: int, quarter: int, seconds: int,
                        yardline: int, possession: Side, prior: float = 0.5, *,
                        down: int = 1, distance: float = 10,
                        timeouts: Optional[Mapping[Side, int]] = None) -> float:
        t_left = max(0, seconds_left(quarter, seconds))
        lead = home_score - away_score
        wp = self.base(lead, t_left, yardline, possession, prior, down, distance)

        if self.estimator is not None and self.estimator.ready:
            is_home = possession is Side.HOME
            est = self.estimator.estimate(HistoricalQuery(
                quarter=quarter, down=down, distance=distance, yardline=yardline,
                seconds_remaining=t_left, score_differential=lead if is_home else -lead,
                possession_is_home=int(is_home)))
            home_wp = est.wp if is_home else 1 - est.wp
            wp = _clamp(0.70 * home_wp + 0.30 * wp, WP_MIN, WP_MAX)

        if lead == 0:
            return _clamp(wp, WP_MIN, WP_MAX)

        if timeouts is None:
            timeouts = {Side.HOME: TIMEOUTS_PER_HALF, Side.AWAY: TIMEOUTS_PER_HALF}
        home_leads = lead > 0
        leader = Side.HOME if home_leads else Side.AWAY
        trailer = leader.other
        margin = abs(lead)

        # possession budget for the trailing side
        pace = HURRY_POSSESSION_SECONDS if t_left <= 240 else POSSESSION_SECONDS
        bonus = TIMEOUT_CREDIT_S * timeouts.get(trailer, 0)
        poss_left = math.floor((t_left + bonus) / pace) + (1 if possession is trailer else 0)
        needed = math.ceil(margin / POINTS_PER_POSSESSION)
        if needed > poss_left:
            scarcity = needed - poss_left
            lock = _clamp(1 - t_left / 300, 0.0, 1.0) ** 2.2
            target = max(0.96 + 0.02 * scarcity, 1 - multi_score_cap(needed, t_left))
            target = _clamp(target, 0.96, 0.9995)
            wp = _pull(wp, target if home_leads else 1 - target, lock, home_leads)

        # kneel-out
        if possession is leader:
            budget = 3 * 40 + 40 * timeouts.get(trailer, 0)
            if t_left <= budget:
                lock = _clamp(1 - (t_left - 20) / budget, 0.0, 1.0) ** 1.8
                wp = _pull(wp, 0.999 if home_leads else 0.001, lock, home_leads)

        # two-score reinforcement
        if margin >= 14 and t_left <= 121:
            lock = _clamp(1 - t_left / 121, 0.0, 1.0) ** 1.5
            target = 0.9995 if margin >= 17 else 0.992
            wp = _pull(wp, target if home_leads else 1 - target, lock, home_leads)

        if margin >= 25 and t_left <= 30:
            wp = max(wp, 0.9995) if home_leads else min(wp, 0.0005)

        return _clamp(wp, WP_MIN, WP_MAX)
