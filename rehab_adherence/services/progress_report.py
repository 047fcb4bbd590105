"""
Progress Report

Read-only views over a plan and its ledger for worker and clinician screens:
today's checklist, the last few days at a glance, and per-exercise progress.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from rehab_adherence.core.exceptions import ValidationError
from rehab_adherence.schemas import (
    DailyEntry,
    DayStatus,
    Exercise,
    ExerciseCompletion,
    ExerciseStatus,
    Plan,
)
from rehab_adherence.services.daily_ledger import find_entry, sorted_entries, today


RECENT_COMPLETIONS = 7


@dataclass
class TodayExercise:
    exercise: Exercise
    completion: ExerciseCompletion


@dataclass
class DaySummary:
    date: date
    completed_exercises: int
    skipped_exercises: int
    total_exercises: int
    overall_status: DayStatus
    exercises: List[ExerciseCompletion] = field(default_factory=list)


@dataclass
class ExerciseProgress:
    exercise_id: str
    name: str
    total_days: int
    completed_count: int
    skipped_count: int
    completion_rate: float  # percent of ledger days
    recent_completions: List[Dict] = field(default_factory=list)


def todays_exercises(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    now: Optional[datetime] = None
) -> List[TodayExercise]:
    """Each plan exercise paired with today's record (not_started if none yet)."""
    entry = find_entry(list(ledger), today(now))
    result = []
    for exercise in plan.exercises:
        completion = entry.get_completion(exercise.id) if entry else None
        result.append(TodayExercise(
            exercise=exercise,
            completion=completion or ExerciseCompletion(exercise_id=exercise.id),
        ))
    return result


def last_n_days(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    days: int = 7,
    now: Optional[datetime] = None
) -> List[DaySummary]:
    """Per-day summary for the trailing `days` calendar days, oldest first."""
    if days < 1:
        raise ValidationError("days must be at least 1", field="days")

    ledger = list(ledger)
    end = today(now)
    known = set(plan.exercise_ids)
    summaries = []
    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        entry = find_entry(ledger, day)
        records = [c for c in entry.exercises if c.exercise_id in known] if entry else []
        summaries.append(DaySummary(
            date=day,
            completed_exercises=sum(1 for c in records if c.status == ExerciseStatus.COMPLETED),
            skipped_exercises=sum(1 for c in records if c.status == ExerciseStatus.SKIPPED),
            total_exercises=len(plan.exercises),
            overall_status=entry.overall_status if entry else DayStatus.NOT_STARTED,
            exercises=list(records),
        ))
    return summaries


def exercise_progress(plan: Plan, ledger: Iterable[DailyEntry]) -> List[ExerciseProgress]:
    entries = sorted_entries(ledger)
    progress = []
    for exercise in plan.exercises:
        statuses = []
        for entry in entries:
            completion = entry.get_completion(exercise.id)
            statuses.append({
                "date": entry.date.isoformat(),
                "status": (completion.status if completion else ExerciseStatus.NOT_STARTED).value,
                "skipped_reason": (
                    completion.skipped_reason.value
                    if completion and completion.skipped_reason else None
                ),
            })

        completed = sum(1 for s in statuses if s["status"] == ExerciseStatus.COMPLETED.value)
        skipped = sum(1 for s in statuses if s["status"] == ExerciseStatus.SKIPPED.value)
        progress.append(ExerciseProgress(
            exercise_id=exercise.id,
            name=exercise.name,
            total_days=len(statuses),
            completed_count=completed,
            skipped_count=skipped,
            completion_rate=(completed / len(statuses) * 100) if statuses else 0.0,
            recent_completions=statuses[-RECENT_COMPLETIONS:],
        ))
    return progress


def day_summary_to_dict(summary: DaySummary) -> Dict:
    return {
        "date": summary.date.isoformat(),
        "completed_exercises": summary.completed_exercises,
        "skipped_exercises": summary.skipped_exercises,
        "total_exercises": summary.total_exercises,
        "overall_status": summary.overall_status.value,
        "exercises": [c.model_dump(mode="json") for c in summary.exercises],
    }


def exercise_progress_to_dict(progress: ExerciseProgress) -> Dict:
    return {
        "exercise_id": progress.exercise_id,
        "name": progress.name,
        "total_days": progress.total_days,
        "completed_count": progress.completed_count,
        "skipped_count": progress.skipped_count,
        "completion_rate": round(progress.completion_rate, 1),
        "recent_completions": progress.recent_completions,
    }
