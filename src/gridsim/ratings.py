"""Player and team rating aggregates plus per-game box-score accumulators.

Rosters arrive from outside the engine as tabular rows using the player
sheet's column names (``First Name``, ``Position``, ``SPD``, ``PASS_ACC``...).
``team_from_rows`` turns those rows into a ``TeamRatings``; the engine only
ever reads the aggregate ``offense``/``defense``/``special`` scores, the depth
groups and the individual skill attributes.
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields
import logging
from typing import Iterable, Mapping, Optional, Union

import numpy as np
import pandas as pd

from gridsim.config import make_rng
from gridsim.errors import DataError

logger = logging.getLogger(__name__)

DEFAULT_RATING = 70.0

OL_POS = frozenset({"LT", "LG", "C", "RG", "RT", "OL"})
DL_POS = frozenset({"DT", "NT", "DE", "IDL", "DL"})
EDGE_POS = frozenset({"EDGE"})
LB_POS = frozenset({"LB", "MLB", "ILB", "OLB"})
DB_POS = frozenset({"CB", "NB", "DB", "S", "FS", "SS"})

# sheet column -> attribute
COLUMN_MAP = {
    "SPD": "speed",
    "STR": "strength",
    "AGI": "agility",
    "INT": "awareness",
    "TEC": "technique",
    "HANDS": "hands",
    "TACK": "tackling",
    "BLOCK": "blocking",
    "COVER": "coverage",
    "PASS_ACC": "pass_accuracy",
    "PASS_PWR": "pass_power",
    "KICK_POW": "kick_power",
    "KICK_ACC": "kick_accuracy",
    "DISC": "discipline",
}


def _num(x, default: float = DEFAULT_RATING) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return default
    return v if np.isfinite(v) else default


@dataclass(slots=True)
class BoxScore:
    # rushing
    carries: int = 0
    rush_yards: int = 0
    top_speed: float = 0.0
    # passing
    dropbacks: int = 0
    attempts: int = 0
    completions: int = 0
    pass_yards: int = 0
    pass_td: int = 0
    ints_thrown: int = 0
    sacks_taken: int = 0
    pressures: int = 0
    air_yards: int = 0
    yac: int = 0
    time_to_throw: float = 0.0
    throws_timed: int = 0
    exp_comp_sum: float = 0.0
    # receiving
    targets: int = 0
    catches: int = 0
    rec_yards: int = 0
    rec_td: int = 0
    drops: int = 0
    separation: float = 0.0
    separation_n: int = 0
    # defense
    tackles: int = 0
    sacks: int = 0
    passes_defended: int = 0
    interceptions: int = 0

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, type(getattr(self, f.name))())


@dataclass(slots=True)
class PlayerRatings:
    first: str
    last: str
    pos: str
    speed: float = DEFAULT_RATING
    strength: float = DEFAULT_RATING
    agility: float = DEFAULT_RATING
    awareness: float = DEFAULT_RATING
    technique: float = DEFAULT_RATING
    hands: float = DEFAULT_RATING
    tackling: float = DEFAULT_RATING
    blocking: float = DEFAULT_RATING
    coverage: float = DEFAULT_RATING
    pass_accuracy: float = DEFAULT_RATING
    pass_power: float = DEFAULT_RATING
    kick_power: float = DEFAULT_RATING
    kick_accuracy: float = DEFAULT_RATING
    discipline: float = DEFAULT_RATING
    overall_override: Optional[float] = None
    box: BoxScore = field(default_factory=BoxScore)

    @property
    def name(self) -> str:
        return f"{self.first} {self.last}".strip()

    @property
    def overall(self) -> float:
        if self.overall_override is not None:
            return self.overall_override
        pos = self.pos
        if pos == "QB":
            return 0.55 * self.pass_accuracy + 0.25 * self.pass_power + 0.2 * self.awareness
        if pos in ("WR", "TE", "RB"):
            return 0.4 * self.speed + 0.2 * self.agility + 0.2 * self.hands + 0.2 * self.awareness
        if pos in OL_POS:
            return 0.5 * self.blocking + 0.2 * self.strength + 0.2 * self.technique + 0.1 * self.awareness
        if pos in DL_POS or pos in EDGE_POS:
            return 0.35 * self.strength + 0.25 * self.technique + 0.2 * self.agility + 0.2 * self.tackling
        if pos in LB_POS:
            return 0.3 * self.tackling + 0.25 * self.awareness + 0.25 * self.agility + 0.2 * self.strength
        if pos in DB_POS:
            return 0.35 * self.coverage + 0.25 * self.agility + 0.2 * self.awareness + 0.2 * self.tackling
        attrs = [getattr(self, a) for a in COLUMN_MAP.values() if a != "discipline"]
        return sum(attrs) / len(attrs)

    @classmethod
    def replacement(cls, pos: str) -> "PlayerRatings":
        return cls(first=pos, last="", pos=pos)

    @classmethod
    def from_row(cls, row: Mapping) -> "PlayerRatings":
        attrs = {attr: _num(row.get(col)) for col, attr in COLUMN_MAP.items()}
        ovr = row.get("OVR")
        override = _num(ovr) if ovr not in (None, "") and not pd.isna(ovr) else None
        return cls(first=str(row.get("First Name") or ""), last=str(row.get("Last Name") or ""),
                   pos=str(row.get("Position") or "").strip().upper(),
                   overall_override=override, **attrs)


@dataclass(slots=True)
class ConversionCount:
    made: int = 0
    att: int = 0


@dataclass(slots=True)
class TeamStats:
    plays: int = 0
    yards: int = 0
    pass_yards: int = 0
    rush_yards: int = 0
    punts: int = 0
    fgm: int = 0
    fga: int = 0
    td: int = 0
    ints: int = 0
    downs: int = 0
    penalties: int = 0
    third: ConversionCount = field(default_factory=ConversionCount)
    fourth: ConversionCount = field(default_factory=ConversionCount)
    epa: float = 0.0


@dataclass(slots=True)
class TeamRatings:
    name: str
    players: list[PlayerRatings]
    qb: PlayerRatings
    rb: list[PlayerRatings]
    wr: list[PlayerRatings]
    te: list[PlayerRatings]
    ol: list[PlayerRatings]
    dl: list[PlayerRatings]
    lb: list[PlayerRatings]
    db: list[PlayerRatings]
    k: PlayerRatings
    p: PlayerRatings
    offense: float
    defense: float
    special: float
    stats: TeamStats = field(default_factory=TeamStats)

    @property
    def strength(self) -> float:
        return (self.offense + self.defense) / 2

    @property
    def fullback(self) -> Optional[PlayerRatings]:
        return next((pl for pl in self.players if pl.pos == "FB"), None)

    def reset_stats(self) -> None:
        self.stats = TeamStats()
        for pl in self.players:
            pl.box.reset()


def _weighted(parts: list[tuple[float, float]]) -> float:
    w = sum(p[0] for p in parts)
    return sum(p[0] * p[1] for p in parts) / (w or 1)


def team_from_players(name: str, players: list[PlayerRatings]) -> TeamRatings:
    if not players:
        raise DataError(f"roster for {name!r} is empty")
    by_pos: dict[str, list[PlayerRatings]] = {}
    for pl in players:
        by_pos.setdefault(pl.pos, []).append(pl)
    for group in by_pos.values():
        group.sort(key=lambda pl: pl.overall, reverse=True)

    def top(positions: frozenset, n: int) -> list[PlayerRatings]:
        pool = [pl for pl in players if pl.pos in positions]
        return sorted(pool, key=lambda pl: pl.overall, reverse=True)[:n]

    qb_list = by_pos.get("QB", [])
    k_list, p_list = by_pos.get("K", []), by_pos.get("P", [])
    qb = qb_list[0] if qb_list else PlayerRatings.replacement("QB")
    k = k_list[0] if k_list else PlayerRatings.replacement("K")
    p = p_list[0] if p_list else PlayerRatings.replacement("P")
    rb, wr, te = by_pos.get("RB", [])[:3], by_pos.get("WR", [])[:5], by_pos.get("TE", [])[:3]
    ol = top(OL_POS, 7)
    dl, lb, db = top(DL_POS | EDGE_POS, 7), top(LB_POS, 5), top(DB_POS, 6)

    off_parts = [(4.0, qb.overall)]
    off_parts += [(1.0, pl.overall) for pl in rb[:2]]
    off_parts += [(1.2, pl.overall) for pl in wr[:3]]
    off_parts += [(1.0, pl.overall) for pl in te[:1]]
    off_parts += [(0.6, pl.overall) for pl in ol[:5]]
    def_parts = [(1.2, pl.overall) for pl in dl[:4]]
    def_parts += [(1.0, pl.overall) for pl in lb[:3]]
    def_parts += [(1.1, pl.overall) for pl in db[:4]]
    special = (0.5 * (0.7 * k.kick_accuracy + 0.3 * k.kick_power)
               + 0.5 * (0.7 * p.kick_power + 0.3 * p.kick_accuracy))

    return TeamRatings(name=name, players=players, qb=qb, rb=rb, wr=wr, te=te, ol=ol,
                       dl=dl, lb=lb, db=db, k=k, p=p,
                       offense=_weighted(off_parts),
                       defense=_weighted(def_parts) if def_parts else DEFAULT_RATING,
                       special=special)


def team_from_rows(name: str, rows: Union[pd.DataFrame, Iterable[Mapping]]) -> TeamRatings:
    """Build a team from player-sheet rows; raises DataError if unusable."""
    if isinstance(rows, pd.DataFrame):
        if "Position" not in rows.columns:
            raise DataError(f"roster for {name!r} has no 'Position' column")
        records = rows.to_dict("records")
    else:
        records = list(rows)
        if records and not any("Position" in r for r in records):
            raise DataError(f"roster for {name!r} has no 'Position' column")
    players = [PlayerRatings.from_row(r) for r in records]
    team = team_from_players(name, players)
    logger.debug("built %s: off=%.1f def=%.1f st=%.1f", name, team.offense, team.defense, team.special)
    return team


FIRST_NAMES = ["James", "Michael", "David", "John", "Robert", "Chris", "Daniel", "Joseph",
               "William", "Ryan", "Ethan", "Noah", "Logan", "Lucas", "Owen", "Mason", "Liam",
               "Aiden", "Kai", "Leo", "Benjamin", "Samuel", "Nathan", "Zachary", "Aaron",
               "Adrian", "Caleb", "Henry", "Carter", "Julian", "Isaac", "Nathaniel"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
              "Rodriguez", "Martinez", "Lee", "Walker", "Hall", "Young", "Allen", "King",
              "Wright", "Scott", "Green", "Baker", "Adams", "Nelson", "Carter", "Mitchell",
              "Perez", "Roberts", "Turner", "Phillips", "Campbell", "Parker", "Evans", "Reed"]

# position -> offsets from a 60 baseline, in COLUMN_MAP order (minus DISC)
_ARCHETYPES = {
    "QB": (-5, 0, 0, 10, 8, 0, -10, -10, -10, 18, 12, -20, -20),
    "RB": (12, 0, 12, 0, 4, 8, -10, -4, -10, -10, -10, -20, -20),
    "WR": (16, -6, 14, 0, 8, 12, -10, -6, -10, -12, -12, -20, -20),
    "TE": (2, 6, 0, 0, 4, 8, -6, 6, -10, -12, -12, -20, -20),
    "OL": (-18, 18, -8, 0, 10, -10, -6, 16, -10, -20, -20, -20, -20),
    "DL": (0, 14, 0, 0, 8, -6, 12, 0, -6, -20, -20, -20, -20),
    "LB": (4, 6, 2, 2, 6, -6, 12, 0, 2, -20, -20, -20, -20),
    "DB": (12, -6, 10, 2, 2, 2, 2, -8, 12, -20, -20, -20, -20),
    "K": (-8, -8, -8, 0, 0, 0, -10, -10, -10, -20, -20, 18, 18),
    "P": (-8, -8, -8, 0, 0, 0, -10, 0, -10, -20, -20, 18, 6),
}
_ROSTER_PLAN = (("QB", 3), ("RB", 4), ("WR", 7), ("TE", 3), ("OL", 9), ("DL", 8),
                ("LB", 7), ("DB", 10), ("K", 1), ("P", 1))


def generated_roster_rows(seed) -> list[dict]:
    """Deterministic synthetic roster in player-sheet format."""
    rng = make_rng(seed)
    cols = [c for c in COLUMN_MAP if c != "DISC"]
    rows = []
    for pos, count in _ROSTER_PLAN:
        for _ in range(count):
            row = {"First Name": FIRST_NAMES[rng.integers(len(FIRST_NAMES))],
                   "Last Name": LAST_NAMES[rng.integers(len(LAST_NAMES))],
                   "Position": pos}
            for col, off in zip(cols, _ARCHETYPES[pos]):
                row[col] = int(np.clip(round(60 + off + rng.normal(0, 8)), 40, 99))
            row["DISC"] = int(np.clip(round(65 + rng.normal(0, 12)), 30, 99))
            rows.append(row)
    return rows


def generated_team(name: str, seed=None) -> TeamRatings:
    return team_from_rows(name, generated_roster_rows(seed if seed is not None else name))
