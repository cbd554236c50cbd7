"""Closed-form expected points by down, distance and field position.

The base curve is a logistic over the yardline, pinned so the offense's own
goal line is worth about -1.40 points and the opponent's about +6.00, with a
slope of roughly 0.12 points per yard at midfield. Down and distance then
subtract a penalty that is damped as the offense approaches the end zone.
"""
from __future__ import annotations
import math

from gridsim.constants import EP_MAX, EP_MIN

EP_LOW = -1.40
EP_HIGH = 6.00
EP_RANGE = EP_HIGH - EP_LOW
EP_SLOPE_MID = 0.12
EP_SCALE = EP_RANGE / (4 * EP_SLOPE_MID)  # ~15.42

DOWN_PENALTY = (0.0, -0.70, -1.45, -2.35)

# (a, b) per down for P(first down) = 1 / (1 + exp(a + b*distance))
FIRST_DOWN_COEF = {
    1: (-2.047, 0.12),  # 1st & 10 ~0.70
    2: (-1.399, 0.16),  # 2nd & 10 ~0.45
    3: (-1.101, 0.22),  # 3rd & 10 ~0.25
    4: (-1.013, 0.35),  # 4th & 1 ~0.66, 4th & 10 ~0.08
}


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _sigmoid(z: float) -> float:
    return 1.0 / (1.0 + math.exp(-z))


def ep_base(yardline: float) -> float:
    y = _clamp(round(yardline), 1, 99)
    return EP_LOW + EP_RANGE * _sigmoid((y - 50) / EP_SCALE)


def expected_points(down: int, distance: float, yardline: float) -> float:
    base = ep_base(yardline)

    field_frac = yardline / 100
    damp = 0.55 + 0.45 * (1 - field_frac)

    d = _clamp(round(distance or 10), 1, 50)
    down_adj = (DOWN_PENALTY[down - 1] if 1 <= down <= 4 else -2.0) * damp

    dist_slope = 0.055 if down >= 3 else 0.035
    dist_adj = -dist_slope * d * damp

    long_adj = -0.10 * min(max(0, d - 10), 20) * damp if down >= 3 else 0.0

    return _clamp(base + down_adj + dist_adj + long_adj, EP_MIN, EP_MAX)


def p_first_down(down: int, distance: float) -> float:
    d = _clamp(round(distance or 10), 1, 25)
    a, b = FIRST_DOWN_COEF.get(down, FIRST_DOWN_COEF[2])
    return _clamp(1.0 / (1.0 + math.exp(a + b * d)), 0.0, 1.0)


def net_punt_from_los(yardline: float) -> int:
    """Coarse, monotone net punt yards from the line of scrimmage."""
    field = _clamp(yardline, 1, 99)
    own_depth = max(0.0, 50 - field)
    opp_depth = max(0.0, field - 50)
    return int(_clamp(round(42 - 0.08 * own_depth - 0.10 * opp_depth), 28, 50))
