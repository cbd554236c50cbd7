from __future__ import annotations
from enum import Enum
from typing import Optional, Union
import zlib

import numpy as np
from pydantic import BaseModel, field_validator
import yaml


class Precip(str, Enum):
    NONE = "none"
    LIGHT_RAIN = "light_rain"
    HEAVY_RAIN = "heavy_rain"
    SNOW = "snow"

    @property
    def is_heavy(self) -> bool:
        return self in (Precip.HEAVY_RAIN, Precip.SNOW)


class Roof(str, Enum):
    OUTDOORS = "outdoors"
    DOME = "dome"
    RETRACTABLE = "retractable"


class EnvironmentCfg(BaseModel):
    wind_mph: float = 0.0
    temperature_f: float = 65.0
    precip: Precip = Precip.NONE

    @field_validator("precip", mode="before")
    @classmethod
    def _normalize_precip(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "_") or Precip.NONE.value
        return v


class KnobsCfg(BaseModel):
    """0-100 sliders read at decision time."""
    pass_early: float = 55.0
    pass_late: float = 55.0
    fourth_down_aggr: float = 50.0
    variance: float = 30.0
    refs: float = 50.0
    crowd: float = 50.0
    pace: float = 50.0


class MetricsCfg(BaseModel):
    path: Optional[str] = None
    k: int = 200


class VenueCfg(BaseModel):
    capacity: int = 72000
    roof: Roof = Roof.OUTDOORS
    hfa_points: float = 0.0


class FullConfig(BaseModel):
    seed: Union[int, str] = 42
    environment: EnvironmentCfg = EnvironmentCfg()
    knobs: KnobsCfg = KnobsCfg()
    metrics: MetricsCfg = MetricsCfg()
    venue: Optional[VenueCfg] = None


def load_config(path: str) -> FullConfig:
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return FullConfig.model_validate(raw)


def make_rng(seed: Union[int, str]) -> np.random.Generator:
    """Seeded generator; text seeds are hashed so 'seed' and 'seed-H' differ."""
    if isinstance(seed, str):
        seed = zlib.crc32(seed.encode("utf-8"))
    return np.random.default_rng(int(seed))
