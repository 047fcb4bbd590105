"""
Unit tests for the Progress Aggregator
"""

import pytest

from rehab_adherence.core.exceptions import ComputationError
from rehab_adherence.schemas import DailyEntry, DayStatus, ProgressStats
from rehab_adherence.services.progress_aggregator import compute_progress_stats
from ledger_helpers import (
    COMPLETED,
    SKIPPED,
    completed_day,
    date_at,
    make_entry,
    skipped_day,
)


def partial_day(offset):
    return make_entry(date_at(offset), DayStatus.PARTIAL, {"ex-1": COMPLETED, "ex-2": SKIPPED})


class TestComputeProgressStats:
    """Test compute_progress_stats()."""

    def test_empty_ledger(self):
        """No entries gives all-zero stats and no dates."""
        assert compute_progress_stats([]) == ProgressStats()

    def test_completed_partial_skipped_days(self):
        """Completed, partial, skipped."""
        ledger = [completed_day(0), partial_day(1), skipped_day(2)]

        stats = compute_progress_stats(ledger)

        assert stats.total_days == 3
        assert stats.completed_days == 1
        assert stats.skipped_days == 2
        assert stats.consecutive_completed_days == 0
        assert stats.consecutive_skipped_days == 1
        assert stats.last_completed_date == date_at(0)
        assert stats.last_skipped_date == date_at(2)

    def test_not_started_days_not_counted(self):
        ledger = [completed_day(0), DailyEntry(date=date_at(1))]
        stats = compute_progress_stats(ledger)

        assert stats.total_days == 1
        assert stats.consecutive_completed_days == 0

    def test_completed_streak(self):
        ledger = [skipped_day(0)] + [completed_day(i) for i in range(1, 5)]
        stats = compute_progress_stats(ledger)

        assert stats.consecutive_completed_days == 4
        assert stats.consecutive_skipped_days == 0

    def test_completed_streak_resets_after_partial(self):
        ledger = [completed_day(0), completed_day(1), partial_day(2)]
        assert compute_progress_stats(ledger).consecutive_completed_days == 0

    def test_skip_streak_resets_after_completed(self):
        ledger = [skipped_day(0), skipped_day(1), completed_day(2)]
        stats = compute_progress_stats(ledger)

        assert stats.consecutive_skipped_days == 0
        assert stats.consecutive_completed_days == 1

    def test_skip_streak(self):
        ledger = [completed_day(0), skipped_day(1), skipped_day(2), skipped_day(3)]
        assert compute_progress_stats(ledger).consecutive_skipped_days == 3

    def test_current_streak_started(self):
        ledger = [completed_day(0), skipped_day(1), completed_day(2), completed_day(3)]
        assert compute_progress_stats(ledger).current_streak_started == date_at(2)

    def test_no_streak_has_no_start(self):
        ledger = [completed_day(0), skipped_day(1)]
        assert compute_progress_stats(ledger).current_streak_started is None

    def test_out_of_order_ledger(self):
        """Backfilled entries are ordered before streaks are walked."""
        ledger = [completed_day(3), completed_day(1), skipped_day(0), completed_day(2)]
        stats = compute_progress_stats(ledger)

        assert stats.consecutive_completed_days == 3
        assert stats.last_completed_date == date_at(3)

    def test_skipped_days_counts_any_skip(self):
        """A partial day with one skip counts toward skipped_days."""
        stats = compute_progress_stats([partial_day(0), partial_day(1)])
        assert stats.skipped_days == 2
        assert stats.last_skipped_date is None

    def test_orphaned_skips_ignored(self):
        entry = make_entry(date_at(0), DayStatus.COMPLETED, {"ex-1": COMPLETED, "ex-gone": SKIPPED})

        assert compute_progress_stats([entry]).skipped_days == 1
        assert compute_progress_stats([entry], exercise_ids=["ex-1"]).skipped_days == 0

    def test_duplicate_dates_raise(self):
        with pytest.raises(ComputationError):
            compute_progress_stats([completed_day(0), completed_day(0)])
