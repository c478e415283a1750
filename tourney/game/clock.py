"""
Clock ledger for timed games.

Remaining time is only debited when a move commits, from the wall-clock time
the server observed since the previous move. Nothing ticks between moves; any
countdown shown to players is a display concern and never written back.
"""
import time
from dataclasses import dataclass
from typing import Dict, Tuple

from tourney.utils.constants import DEFAULT_INITIAL_SECONDS, DEFAULT_INCREMENT_SECONDS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimeControl:
    """Initial time and per-move increment, both in seconds."""
    initial_seconds: int = DEFAULT_INITIAL_SECONDS
    increment_seconds: int = DEFAULT_INCREMENT_SECONDS

    def __post_init__(self):
        if self.initial_seconds <= 0:
            raise ValueError("initial_seconds must be positive")
        if self.increment_seconds < 0:
            raise ValueError("increment_seconds must not be negative")


@dataclass(frozen=True)
class ClockDebit:
    """What a committed move cost the mover."""
    color: str
    elapsed_seconds: int
    remaining_before: int
    remaining_after: int


def elapsed_seconds(last_move_ms: int, current_ms: int) -> int:
    """Whole seconds since the last move; never negative."""
    return max(0, current_ms - last_move_ms) // 1000


def commit_move(
    remaining: Dict[str, int],
    color: str,
    last_move_ms: int,
    current_ms: int,
    increment_seconds: int
) -> Tuple[Dict[str, int], ClockDebit]:
    """
    Debit the mover's clock for a committed move.

    Only the mover's entry changes: the elapsed time is taken off (floored at
    zero) and the increment is added back.

    Args:
        remaining: Remaining seconds keyed by color
        color: Color that just moved
        last_move_ms: Timestamp of the previous move
        current_ms: Server time of this move
        increment_seconds: Increment from the time control

    Returns:
        (new remaining mapping, ClockDebit)
    """
    elapsed = elapsed_seconds(last_move_ms, current_ms)
    before = remaining[color]
    after = max(0, before - elapsed) + increment_seconds

    updated = dict(remaining)
    updated[color] = after
    return updated, ClockDebit(color, elapsed, before, after)


def projected_remaining(remaining_seconds: int, last_move_ms: int, current_ms: int) -> int:
    """Server-side live value of the clock that is currently running."""
    return max(0, remaining_seconds - elapsed_seconds(last_move_ms, current_ms))


def is_flagged(remaining_seconds: int, last_move_ms: int, current_ms: int) -> bool:
    """True if the running clock has reached zero."""
    return projected_remaining(remaining_seconds, last_move_ms, current_ms) == 0


def format_clock(seconds: int) -> str:
    """Render seconds as m:ss."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"
