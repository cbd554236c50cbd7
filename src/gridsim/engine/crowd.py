"""Stadium crowd: attendance, mood and the noise level it produces.

Noise tilts pre-snap flags toward the road offense and adds pass-rush
pressure against a road quarterback.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from gridsim.config import EnvironmentCfg, Roof, VenueCfg
from gridsim.state import GameState

ROOF_BOOST = {Roof.OUTDOORS: 0.0, Roof.DOME: 0.08, Roof.RETRACTABLE: 0.03}


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass(slots=True)
class Crowd:
    capacity: int = 72000
    present: int = 61200
    mood: float = 0.0  # -1..1
    roof: Roof = Roof.OUTDOORS

    @classmethod
    def for_venue(cls, venue: Optional[VenueCfg], rng: np.random.Generator) -> "Crowd":
        if venue is None:
            cap = 72000
            return cls(capacity=cap, present=int(0.85 * cap))
        cap = venue.capacity or 72000
        return cls(capacity=cap, present=round(cap * (0.88 + rng.random() * 0.06)),
                   mood=0.12 if venue.hfa_points >= 0 else -0.05, roof=venue.roof)

    @property
    def fill(self) -> float:
        return _clamp(self.present / max(self.capacity, 1), 0.0, 1.0)

    def volume(self) -> float:
        vol = 0.35 + 0.55 * self.fill + ROOF_BOOST[self.roof]
        vol += _clamp(self.mood, -1.0, 1.0) * 0.15
        return _clamp(vol, 0.0, 1.0)

    def update(self, state: GameState, env: EnvironmentCfg) -> None:
        """Arrivals through the first quarter, departures in blowouts and bad weather."""
        sit, score = state.situation, state.score
        cap = self.capacity
        target = self.present
        if sit.quarter == 1:
            elapsed = 900 - sit.seconds
            arrivals = round(0.15 * cap * min(1.0, elapsed / 720))
            target = int(0.85 * cap + arrivals)

        diff = abs(score.lead)
        leave = 0.0
        if sit.quarter >= 3 and diff >= 17:
            leave += 0.005 * (diff - 16)
        if env.precip.is_heavy:
            leave += 0.004
        if env.temperature_f <= 20:
            leave += 0.003
        if score.lead < 0 and sit.quarter == 4 and sit.seconds < 600 and diff >= 10:
            leave += 0.006

        if sit.quarter == 4 and diff <= 3:
            leave = max(0.0, leave - 0.004)
            self.mood = min(1.0, self.mood + 0.02)
        else:
            self.mood = max(-1.0, self.mood - 0.005)

        desired = max(0, min(cap, target - int(cap * leave)))
        self.present = round(0.9 * self.present + 0.1 * desired)
