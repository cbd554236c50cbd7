from __future__ import annotations
import logging
from typing import Optional

from gridsim.constants import (MIN_RUNOFF_AFTER_TO_S, QUARTER_SECONDS, QUARTERS,
                               TIMEOUT_RUNOFF_SAVED_S, TIMEOUTS_PER_HALF, TO_MIN_GAP_S,
                               TWO_MINUTE_WARNING_S)
from gridsim.state import ClockOutcome, EventTag, GameState, PendingKickoff, PlayEvent, Side

logger = logging.getLogger(__name__)

# (base seconds, pace slope, lo, hi)
_DRAIN = {
    ClockOutcome.RUN: (32, 6, 24, 40),
    ClockOutcome.COMPLETE: (27, 5, 20, 35),
    ClockOutcome.INCOMPLETE: (7, 4, 4, 12),
    ClockOutcome.SACK: (18, 3, 12, 25),
    ClockOutcome.SPECIAL: (18, 2, 12, 24),
}


def clock_drain_for(outcome: ClockOutcome, pace: float) -> int:
    """Seconds a play of this kind takes off a running clock; ``pace`` is 0..1."""
    p = max(-0.5, min(0.5, pace - 0.5))
    base, slope, lo, hi = _DRAIN[outcome]
    return int(max(lo, min(hi, round(base - slope * p))))


def _trailing(diff: int, side: Side) -> bool:
    # diff is home minus away
    return diff < 0 if side is Side.HOME else diff > 0


class GameClock:
    def wants_defense_timeout(self, state: GameState, defense: Side, t_left: int) -> bool:
        diff = state.score.lead
        if not _trailing(diff, defense) or state.timeouts[defense] <= 0:
            return False
        if t_left <= 180:
            return True
        return t_left <= 300 and abs(diff) <= 8

    def wants_offense_timeout(self, state: GameState, offense: Side, t_left: int) -> bool:
        diff = state.score.lead
        if not _trailing(diff, offense) or state.timeouts[offense] <= 0:
            return False
        if t_left <= 140:
            return True
        return t_left <= 300 and abs(diff) >= 9

    def call_timeout(self, state: GameState, side: Side, reason: str = "",
                     t_left: Optional[int] = None) -> Optional[PlayEvent]:
        """Charge ``side`` a timeout; None when the bank is empty or one was just used."""
        if t_left is None:
            t_left = state.situation.seconds_left_total
        if state.timeouts[side] <= 0:
            return None
        if abs(state.last_timeout_at[side] - t_left) < TO_MIN_GAP_S:
            return None
        state.timeouts[side] -= 1
        state.last_timeout_at[side] = t_left
        text = f"Timeout: {side.value}" + (f" ({reason})" if reason else "")
        return PlayEvent(EventTag.TIMEOUT, text, side,
                         home_score=state.score.home, away_score=state.score.away)

    def apply(self, state: GameState, runoff: int, in_bounds: bool, offense: Side) -> list[PlayEvent]:
        sit = state.situation
        events: list[PlayEvent] = []
        t_left = sit.seconds_left_total
        new_secs = sit.seconds

        if in_bounds:
            use = runoff
            defense = offense.other
            ev = None
            if self.wants_defense_timeout(state, defense, t_left):
                ev = self.call_timeout(state, defense, "defense", t_left)
            if ev is None and self.wants_offense_timeout(state, offense, t_left):
                ev = self.call_timeout(state, offense, "offense", t_left)
            if ev is not None:
                use = max(MIN_RUNOFF_AFTER_TO_S, use - TIMEOUT_RUNOFF_SAVED_S)
                events.append(ev)
            new_secs = max(0, sit.seconds - use)

        half = state.half
        crossing = sit.seconds > TWO_MINUTE_WARNING_S and new_secs < TWO_MINUTE_WARNING_S
        if in_bounds and sit.quarter in (2, 4) and crossing and not state.two_minute_used[half]:
            new_secs = TWO_MINUTE_WARNING_S
            state.two_minute_used[half] = True
            events.append(PlayEvent(EventTag.TIME, "Two-Minute Warning", sit.possession,
                                    home_score=state.score.home, away_score=state.score.away))

        sit.seconds = new_secs
        return events

    def end_quarter(self, state: GameState) -> bool:
        """Advance past 0:00. Returns True when the game is over."""
        sit = state.situation
        if sit.seconds > 0:
            return False
        if sit.quarter >= QUARTERS:
            state.is_final = True
            logger.debug("end of regulation")
            return True
        sit.quarter += 1
        sit.seconds = QUARTER_SECONDS
        if sit.quarter == 3:
            state.timeouts = {Side.HOME: TIMEOUTS_PER_HALF, Side.AWAY: TIMEOUTS_PER_HALF}
            state.pending = PendingKickoff(kicking=state.kick_at_half)
        logger.debug("start of Q%d", sit.quarter)
        return False
