from __future__ import annotations

from gridsim.config import KnobsCfg
from gridsim.state import Score, Situation


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def slider(value: float) -> float:
    """0-100 slider to 0..1."""
    return _clamp(value / 100, 0.0, 1.0)


def pass_preference(knobs: KnobsCfg, tf: float) -> float:
    """Blend the early and late pass sliders by game time fraction."""
    return slider(knobs.pass_early) * (1 - tf) + slider(knobs.pass_late) * tf


def pass_rate(sit: Situation, score: Score, knobs: KnobsCfg, tf: float) -> float:
    rate = 0.54 + (pass_preference(knobs, tf) - 0.55) * 0.50
    if sit.down >= 3:
        rate += 0.10
    if sit.distance >= 7:
        rate += 0.06
    margin = score.margin_for(sit.possession)
    if margin < 0:
        rate += 0.05
    elif margin > 0 and sit.quarter >= 4:
        rate -= 0.08
    return _clamp(rate, 0.40, 0.65)


def oob_bias(sit: Situation, score: Score) -> float:
    """Chance an in-bounds gain ends on the sideline."""
    trailing = score.margin_for(sit.possession) < 0
    late = sit.quarter == 4 and sit.seconds_left_total <= 300
    return 0.18 if late and trailing else 0.06
