"""
Unit tests for the Daily Ledger

Date normalization, one-entry-per-day, ordering and the trailing-run helper.
"""

import pytest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rehab_adherence.core.config import settings
from rehab_adherence.core.exceptions import ComputationError, ValidationError
from rehab_adherence.schemas import DailyEntry, DayStatus
from rehab_adherence.services.daily_ledger import (
    count_trailing_run,
    find_entry,
    get_or_create_entry,
    normalize_date,
    sorted_entries,
    today,
)
from ledger_helpers import completed_day, date_at, skipped_day


class TestNormalizeDate:
    """Test normalize_date()."""

    def test_date_passes_through(self):
        assert normalize_date(date(2026, 3, 2)) == date(2026, 3, 2)

    def test_datetime_drops_time(self):
        assert normalize_date(datetime(2026, 3, 2, 23, 59)) == date(2026, 3, 2)

    def test_iso_strings(self):
        assert normalize_date("2026-03-02") == date(2026, 3, 2)
        assert normalize_date("2026-03-02T10:15:00") == date(2026, 3, 2)
        assert normalize_date("2026-03-02T10:15:00Z") == date(2026, 3, 2)

    def test_aware_datetime_converted_to_configured_zone(self, monkeypatch):
        """Late UTC evening lands on the next local day east of UTC."""
        try:
            ZoneInfo("Australia/Sydney")
        except ZoneInfoNotFoundError:
            pytest.skip("tz database not available")
        monkeypatch.setattr(settings, "TIMEZONE", "Australia/Sydney")
        moment = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)
        assert normalize_date(moment) == date(2026, 3, 3)

    def test_unparseable_string_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_date("not-a-date")
        assert exc.value.error_code == "VALIDATION_ERROR_DATE"

    def test_unsupported_type_rejected(self):
        with pytest.raises(ValidationError):
            normalize_date(20260302)

    def test_today_uses_clock(self):
        assert today(datetime(2026, 3, 2, 9, tzinfo=timezone.utc)) == date(2026, 3, 2)


class TestGetOrCreateEntry:
    """Test get_or_create_entry()."""

    def test_creates_empty_entry(self):
        ledger = []
        entry = get_or_create_entry(ledger, date(2026, 3, 2))

        assert ledger == [entry]
        assert entry.overall_status == DayStatus.NOT_STARTED
        assert entry.exercises == []

    def test_same_day_returns_existing_entry(self):
        """Different times on the same day share one entry."""
        ledger = []
        first = get_or_create_entry(ledger, datetime(2026, 3, 2, 8, 0))
        second = get_or_create_entry(ledger, datetime(2026, 3, 2, 21, 30))

        assert first is second
        assert len(ledger) == 1

    def test_keeps_ledger_sorted(self):
        ledger = [completed_day(0), completed_day(5)]
        get_or_create_entry(ledger, date_at(2))

        assert [e.date for e in ledger] == [date_at(0), date_at(2), date_at(5)]

    def test_find_entry_missing(self):
        assert find_entry([completed_day(0)], date_at(1)) is None


class TestSortedEntries:
    """Test sorted_entries()."""

    def test_sorts_ascending_without_mutating(self):
        ledger = [completed_day(3), completed_day(1), completed_day(2)]
        result = sorted_entries(ledger)

        assert [e.date for e in result] == [date_at(1), date_at(2), date_at(3)]
        assert ledger[0].date == date_at(3)

    def test_duplicate_dates_raise(self):
        with pytest.raises(ComputationError):
            sorted_entries([completed_day(1), skipped_day(1)])


class TestCountTrailingRun:
    """Test count_trailing_run()."""

    def test_empty_ledger(self):
        assert count_trailing_run([], lambda e: True) == 0

    def test_stops_at_first_non_matching(self):
        entries = [completed_day(0), skipped_day(1), completed_day(2), completed_day(3)]
        is_completed = lambda e: e.overall_status == DayStatus.COMPLETED

        assert count_trailing_run(entries, is_completed) == 2

    def test_last_entry_not_matching(self):
        entries = [completed_day(0), completed_day(1), DailyEntry(date=date_at(2))]
        is_completed = lambda e: e.overall_status == DayStatus.COMPLETED

        assert count_trailing_run(entries, is_completed) == 0

    def test_whole_ledger_matches(self):
        entries = [skipped_day(i) for i in range(4)]
        assert count_trailing_run(entries, lambda e: e.overall_status == DayStatus.SKIPPED) == 4
