"""
Unit tests for Progress Report read views
"""

import pytest

from rehab_adherence.core.exceptions import ValidationError
from rehab_adherence.schemas import DayStatus, ExerciseStatus, SkipReason
from rehab_adherence.services.adherence_engine import apply_completion, apply_skip
from rehab_adherence.services.progress_report import (
    day_summary_to_dict,
    exercise_progress,
    exercise_progress_to_dict,
    last_n_days,
    todays_exercises,
)
from ledger_helpers import COMPLETED, SKIPPED, completed_day, date_at, day_at, make_entry


class TestTodaysExercises:
    """Test todays_exercises()."""

    def test_nothing_recorded_yet(self, plan, clock):
        items = todays_exercises(plan, [completed_day(-1)], now=clock)

        assert [i.exercise.id for i in items] == ["ex-1", "ex-2"]
        assert all(i.completion.status == ExerciseStatus.NOT_STARTED for i in items)

    def test_pairs_today_records(self, plan, clock):
        ledger = apply_completion(plan, [], "ex-2", pain_level=2, now=clock).ledger
        items = todays_exercises(plan, ledger, now=clock)

        assert items[0].completion.status == ExerciseStatus.NOT_STARTED
        assert items[1].completion.status == ExerciseStatus.COMPLETED
        assert items[1].completion.pain_level == 2


class TestLastNDays:
    """Test last_n_days()."""

    def test_fills_missing_days(self, plan):
        ledger = [completed_day(0), make_entry(date_at(2), DayStatus.PARTIAL, {"ex-1": COMPLETED, "ex-2": SKIPPED})]
        summaries = last_n_days(plan, ledger, days=4, now=day_at(2))

        assert [s.date for s in summaries] == [date_at(-1), date_at(0), date_at(1), date_at(2)]
        assert [s.overall_status for s in summaries] == [
            DayStatus.NOT_STARTED, DayStatus.COMPLETED, DayStatus.NOT_STARTED, DayStatus.PARTIAL,
        ]
        assert summaries[3].completed_exercises == 1
        assert summaries[3].skipped_exercises == 1
        assert summaries[3].total_exercises == 2

    def test_default_is_seven_days(self, plan, clock):
        assert len(last_n_days(plan, [], now=clock)) == 7

    def test_rejects_non_positive_days(self, plan, clock):
        with pytest.raises(ValidationError):
            last_n_days(plan, [], days=0, now=clock)

    def test_to_dict(self, plan):
        summary = last_n_days(plan, [completed_day(0)], days=1, now=day_at(0))[0]
        data = day_summary_to_dict(summary)

        assert data["date"] == date_at(0).isoformat()
        assert data["overall_status"] == "completed"
        assert [e["status"] for e in data["exercises"]] == ["completed", "completed"]


class TestExerciseProgress:
    """Test exercise_progress()."""

    def test_counts_and_rate(self, plan):
        ledger = []
        for offset in range(4):
            ledger = apply_completion(plan, ledger, "ex-1", now=day_at(offset)).ledger
        ledger = apply_skip(plan, ledger, "ex-2", SkipReason.EQUIPMENT, now=day_at(3)).ledger

        progress = exercise_progress(plan, ledger)

        assert progress[0].completed_count == 4
        assert progress[0].completion_rate == 100
        assert progress[1].skipped_count == 1
        assert progress[1].completion_rate == 0
        assert progress[1].recent_completions[-1]["skipped_reason"] == "equipment"

    def test_recent_limited_to_seven(self, plan):
        ledger = [completed_day(i) for i in range(10)]
        progress = exercise_progress(plan, ledger)

        assert len(progress[0].recent_completions) == 7
        assert progress[0].total_days == 10

    def test_empty_ledger(self, plan):
        data = exercise_progress_to_dict(exercise_progress(plan, [])[0])
        assert data["completion_rate"] == 0.0
        assert data["recent_completions"] == []
