"""
Unit tests for the clock ledger.
"""

import pytest

from tourney.game.clock import (
    TimeControl, elapsed_seconds, commit_move, projected_remaining, is_flagged, format_clock
)
from tourney.utils.constants import WHITE, BLACK


class TestElapsed:
    """Elapsed time is floored to whole seconds and never negative."""

    def test_whole_seconds(self):
        assert elapsed_seconds(1000, 13_999) == 12

    def test_backwards_clock(self):
        assert elapsed_seconds(5000, 4000) == 0


class TestCommitMove:
    """Tests for debiting the mover's clock."""

    def test_debit_and_increment(self):
        """remaining_after = max(0, before - elapsed) + increment."""
        remaining = {WHITE: 600, BLACK: 600}
        updated, debit = commit_move(remaining, WHITE, 0, 12_000, 5)

        assert updated[WHITE] == 600 - 12 + 5
        assert updated[BLACK] == 600
        assert debit.elapsed_seconds == 12
        assert debit.remaining_before == 600
        assert debit.remaining_after == 593

    def test_input_not_mutated(self):
        remaining = {WHITE: 600, BLACK: 600}
        commit_move(remaining, BLACK, 0, 1000, 5)
        assert remaining == {WHITE: 600, BLACK: 600}

    def test_floor_at_zero_before_increment(self):
        """Overspending leaves only the increment."""
        updated, debit = commit_move({WHITE: 10, BLACK: 600}, WHITE, 0, 60_000, 5)
        assert updated[WHITE] == 5
        assert debit.elapsed_seconds == 60

    def test_zero_increment(self):
        updated, _ = commit_move({WHITE: 300, BLACK: 300}, BLACK, 0, 2_500, 0)
        assert updated[BLACK] == 298


class TestProjection:
    """Tests for the live view of a running clock."""

    def test_projected_remaining(self):
        assert projected_remaining(100, 0, 30_000) == 70
        assert projected_remaining(10, 0, 30_000) == 0

    def test_is_flagged(self):
        assert is_flagged(10, 0, 10_000)
        assert not is_flagged(10, 0, 9_999)

    def test_format_clock(self):
        assert format_clock(600) == "10:00"
        assert format_clock(65) == "1:05"
        assert format_clock(-3) == "0:00"


class TestTimeControl:

    def test_defaults(self):
        tc = TimeControl()
        assert tc.initial_seconds == 600
        assert tc.increment_seconds == 5

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            TimeControl(initial_seconds=0)
        with pytest.raises(ValueError):
            TimeControl(increment_seconds=-1)
