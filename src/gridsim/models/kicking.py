from __future__ import annotations
import math

from gridsim.config import EnvironmentCfg
from gridsim.constants import FG_SNAP_YARDS, MAX_FG_DISTANCE

_CALM = EnvironmentCfg()


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def fg_distance(yardline: int) -> int:
    return round(100 - yardline + FG_SNAP_YARDS)


def kicker_leg(kick_power: float) -> float:
    return 45 + 0.7 * (kick_power - 70)


def fg_make_prob(distance: float, kick_power: float = 70, kick_accuracy: float = 70,
                 env: EnvironmentCfg = _CALM) -> float:
    distance = min(distance, MAX_FG_DISTANCE)
    z = (kicker_leg(kick_power) - distance) / 4 + (kick_accuracy - 70) / 18
    z -= (env.wind_mph / 20) * 0.4
    if env.temperature_f < 25:
        z -= 0.3
    if env.precip.is_heavy:
        z -= 0.1

    p = 1.0 / (1.0 + math.exp(-z))

    # only true long kicks are capped
    if distance >= 50:
        cap = 0.20 if distance >= 60 else 0.55 if distance >= 55 else 0.70
        p = min(p, cap + 0.08 * (kick_accuracy - 70) / 30)

    return _clamp(p, 0.02, 0.995)


def xp_make_prob(kick_accuracy: float = 70, env: EnvironmentCfg = _CALM) -> float:
    p = (0.93 + (kick_accuracy - 70) / 250 - (env.wind_mph / 20) * 0.08
         - (0.04 if env.precip.is_heavy else 0.0))
    return _clamp(p, 0.85, 0.99)


def two_point_prob(offense: float, defense: float) -> float:
    return _clamp(0.48 + (offense - defense) / 220, 0.35, 0.63)


def conversion_prob(offense: float, defense: float) -> float:
    """Single-snap 4th-down conversion odds from the rating gap."""
    return _clamp(0.48 + (offense - defense) / 220, 0.30, 0.70)
