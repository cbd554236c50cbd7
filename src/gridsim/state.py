from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union

from gridsim.constants import (FIRST_AND_TEN_YTG, QUARTER_SECONDS, QUARTERS,
                               TIMEOUTS_PER_HALF)


class Side(str, Enum):
    HOME = "Home"
    AWAY = "Away"

    @property
    def other(self) -> "Side":
        return Side.AWAY if self is Side.HOME else Side.HOME


class PlayKind(str, Enum):
    RUN = "run"
    PASS = "pass"
    SCRAMBLE = "scramble"
    FIELD_GOAL = "field_goal"
    PUNT = "punt"
    KICKOFF = "kickoff"
    PAT = "pat"
    PENALTY = "penalty"

    @property
    def is_scrimmage(self) -> bool:
        return self in (PlayKind.RUN, PlayKind.PASS, PlayKind.SCRAMBLE)


class ClockOutcome(str, Enum):
    RUN = "run"
    COMPLETE = "comp"
    INCOMPLETE = "incomp"
    SACK = "sack"
    SPECIAL = "st"


class PATKind(str, Enum):
    XP = "xp"
    TWO_POINT = "two"


class EventTag(str, Enum):
    PLAY = "PLAY"
    PEN = "PEN"
    KICKOFF = "KICKOFF"
    TIMEOUT = "TIMEOUT"
    TIME = "TIME"
    FINAL = "FINAL"


class TickOutcome(str, Enum):
    ADVANCED = "advanced"
    REPLAY = "replay"
    QUARTER_ENDED = "quarter_ended"
    GAME_OVER = "game_over"


class DriveResult(str, Enum):
    TD = "TD"
    FG = "FG"
    MISSED_FG = "Missed FG"
    PUNT = "Punt"
    PUNT_TOUCHBACK = "Punt (TB)"
    INT = "INT"
    DOWNS = "Downs"
    END_OF_HALF = "End of Half"
    END_OF_GAME = "End of Game"


@dataclass(slots=True)
class Score:
    home: int = 0
    away: int = 0

    def of(self, side: Side) -> int:
        return self.home if side is Side.HOME else self.away

    def add(self, side: Side, pts: int) -> None:
        if side is Side.HOME:
            self.home += pts
        else:
            self.away += pts

    @property
    def lead(self) -> int:
        """Home minus away."""
        return self.home - self.away

    def margin_for(self, side: Side) -> int:
        return self.lead if side is Side.HOME else -self.lead

    def text(self) -> str:
        return f"{self.home}-{self.away}"


@dataclass(slots=True)
class Situation:
    quarter: int = 1           # 1..4
    seconds: int = QUARTER_SECONDS  # 0..900, counting down within the quarter
    down: int = 1              # 1..4
    distance: float = FIRST_AND_TEN_YTG
    yardline: int = 25         # 0 own goal line .. 100 opponent goal line
    possession: Side = Side.HOME

    @property
    def seconds_left_total(self) -> int:
        return (QUARTERS - self.quarter) * QUARTER_SECONDS + self.seconds

    def copy(self) -> "Situation":
        return replace(self)

    def first_and_ten(self, yardline: int, possession: Optional[Side] = None) -> None:
        if possession is not None:
            self.possession = possession
        self.yardline = yardline
        self.down = 1
        self.distance = min(FIRST_AND_TEN_YTG, 100 - yardline)

    def header(self) -> str:
        mins, secs = divmod(self.seconds, 60)
        ordinal = ("1st", "2nd", "3rd", "4th")[self.down - 1]
        return (f"Q{self.quarter} {mins}:{secs:02d} | {ordinal} & "
                f"{max(1, round(self.distance))} @ {yard_text(self.yardline)}")


def yard_text(y: int) -> str:
    return f"Opp {100 - y}" if y >= 50 else f"Own {y}"


@dataclass(frozen=True, slots=True)
class PendingKickoff:
    kicking: Side
    onside: bool = False


@dataclass(frozen=True, slots=True)
class PendingPAT:
    side: Side
    kind: PATKind
    expected_points: float
    drive_index: int = -1


PendingAction = Union[PendingKickoff, PendingPAT, None]


@dataclass(frozen=True, slots=True)
class PlayEvent:
    tag: EventTag
    description: str
    offense: Side
    is_scoring: bool = False
    epa: float = 0.0
    wpa: float = 0.0
    drive_ep_at_snap: float = 0.0
    home_score: int = 0
    away_score: int = 0
    wp: float = 0.5
    kind: Optional[PlayKind] = None
    down: int = 0
    yards: int = 0


@dataclass(slots=True)
class Drive:
    team: Side
    start_yardline: int
    start_ep: float
    start_quarter: int
    start_seconds: int
    plays: int = 0
    yards: int = 0
    result: Optional[DriveResult] = None
    end_yardline: Optional[int] = None
    points: int = 0
    drive_epa: float = 0.0
    elapsed: int = 0

    @property
    def is_open(self) -> bool:
        return self.result is None

    def add_points(self, pts: int) -> None:
        self.points += pts
        self.drive_epa = self.points - self.start_ep


@dataclass(slots=True)
class ScoringEntry:
    text: str
    score: str


@dataclass(slots=True)
class GameState:
    score: Score = field(default_factory=Score)
    situation: Situation = field(default_factory=Situation)
    timeouts: dict[Side, int] = field(
        default_factory=lambda: {Side.HOME: TIMEOUTS_PER_HALF, Side.AWAY: TIMEOUTS_PER_HALF})
    pending: PendingAction = None
    pending_score_index: int = -1
    two_minute_used: dict[int, bool] = field(default_factory=lambda: {1: False, 2: False})
    # whole-game seconds remaining at each side's last timeout
    last_timeout_at: dict[Side, int] = field(
        default_factory=lambda: {Side.HOME: 9999, Side.AWAY: 9999})
    kick_at_half: Side = Side.HOME
    is_final: bool = False

    @classmethod
    def new(cls, receiving: Side) -> "GameState":
        state = cls(situation=Situation(possession=receiving), kick_at_half=receiving)
        state.pending = PendingKickoff(kicking=receiving.other)
        return state

    @property
    def half(self) -> int:
        return 1 if self.situation.quarter <= 2 else 2
