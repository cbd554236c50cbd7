from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from gridsim.config import KnobsCfg
from gridsim.engine.crowd import Crowd
from gridsim.engine.knobs import slider
from gridsim.state import Side, Situation


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass(frozen=True, slots=True)
class Penalty:
    kind: str
    yards: int
    on_defense: bool
    pre_snap: bool = False
    auto_first: bool = False
    spot: bool = False


class PenaltyModel:
    """Flag draws per snap, driven by the referee, crowd and variance sliders."""

    def __init__(self, knobs: KnobsCfg, crowd: Crowd):
        self.knobs = knobs
        self.crowd = crowd
        self.streak = 0.0
        self.cooldown = 0

    def reset(self, crowd: Optional[Crowd] = None) -> None:
        if crowd is not None:
            self.crowd = crowd
        self.streak = 0.0
        self.cooldown = 0

    def _crowd_factor(self) -> float:
        return _clamp(0.5 * slider(self.knobs.crowd) + 0.5 * self.crowd.volume(), 0.0, 1.0)

    def _total_rate(self, sit: Situation) -> float:
        refs, var = slider(self.knobs.refs), slider(self.knobs.variance)
        situ = (0.012 if sit.down >= 3 else 0.0) + (0.008 if sit.distance >= 8 else 0.0)
        base = _clamp(0.035 + 0.02 * refs + 0.005 * var, 0.015, 0.09)
        return _clamp(base + situ, 0.015, 0.11)

    def pre_snap(self, sit: Situation, rng: np.random.Generator) -> Optional[Penalty]:
        if self.cooldown > 0:
            self.cooldown -= 1
            return None
        refs, noise = slider(self.knobs.refs), self._crowd_factor()
        road = sit.possession is Side.AWAY

        share = 0.40 + 0.20 * noise + 0.10 * refs + (0.05 if sit.down >= 3 else 0.0)
        if road:
            share += 0.08 * noise
        share = _clamp(share * (1 + 0.5 * self.streak), 0.25, 0.90)

        if rng.random() >= self._total_rate(sit) * share:
            self.streak = max(0.0, self.streak - 0.20)
            return None

        self.streak = min(1.0, self.streak + 0.35)
        self.cooldown = 1
        def_skew = 0.40 + 0.15 * refs - 0.10 * noise
        if road:
            def_skew -= 0.12 * noise
        if rng.random() < _clamp(def_skew, 0.20, 0.60):
            return Penalty("Offside", 5, on_defense=True, pre_snap=True)
        return Penalty("False start", -5, on_defense=False, pre_snap=True)

    def live(self, sit: Situation, rng: np.random.Generator, is_pass: bool,
             air_depth: int = 0) -> Optional[Penalty]:
        rate = self._total_rate(sit)
        if sit.possession is Side.AWAY and sit.down >= 3:
            rate = _clamp(rate + self._crowd_factor() * 0.015, 0.015, 0.13)
        if rng.random() >= rate:
            return None

        roll = rng.random()
        if is_pass:
            if roll < 0.25:
                return Penalty("Defensive holding", 5, on_defense=True, auto_first=True)
            if roll < 0.63:
                yards = int(_clamp(round(rng.normal(12 + air_depth * 0.6, 6)), 8, 35))
                return Penalty("DPI", yards, on_defense=True, auto_first=True, spot=True)
            if roll < 0.73:
                return Penalty("Roughing the passer", 15, on_defense=True, auto_first=True)
            if rng.random() < 0.20:
                return Penalty("Offensive holding", -10, on_defense=False)
            return None
        if roll < 0.45:
            return Penalty("Offensive holding", -10, on_defense=False)
        if roll < 0.55:
            return Penalty("Facemask", 15, on_defense=True, auto_first=True)
        return None


def enforce(pen: Penalty, sit: Situation) -> int:
    """Walk off ``pen`` against ``sit`` in place; returns the yards applied."""
    if pen.pre_snap:
        if pen.on_defense:
            sit.yardline = min(99, sit.yardline + 5)
            sit.distance = max(0, sit.distance - 5)
            if sit.distance <= 0:
                sit.first_and_ten(sit.yardline)
        else:
            sit.yardline = max(0, sit.yardline - 5)
            sit.distance += 5
        return 5

    if pen.on_defense:
        if pen.spot:
            applied = min(100 - sit.yardline, pen.yards)
            sit.first_and_ten(min(99, sit.yardline + applied))
            return applied
        applied = abs(pen.yards)
        sit.yardline = min(99, sit.yardline + applied)
        if pen.auto_first:
            sit.first_and_ten(sit.yardline)
        else:
            sit.distance = max(1, sit.distance - applied)
        return applied

    applied = abs(pen.yards)
    if pen.kind == "Offensive holding" and sit.yardline < 20:
        applied = sit.yardline // 2  # half the distance
    sit.yardline = max(0, sit.yardline - applied)
    sit.distance += applied
    return applied


def describe(pen: Penalty, applied: int, sit_after: Situation) -> str:
    sign = "+" if pen.on_defense else "-"
    first = sit_after.down == 1 and sit_after.distance <= 10
    if pen.pre_snap:
        tail = "(1st down)" if first else "(replay down)"
    else:
        tail = "(1st down)" if pen.auto_first else "(replay down)"
    return f"{pen.kind}: {sign}{applied} {tail}"
