"""
Completion Recorder

Applies one worker action (complete or skip an exercise) to a day's ledger
entry and re-derives the day's overall status.

Both actions are idempotent per (date, exercise): repeating one overwrites
the exercise's record instead of adding a second one.
"""

from datetime import datetime, timezone
from typing import Optional, Union
import logging
import math

from rehab_adherence.core.exceptions import StateError, ValidationError
from rehab_adherence.schemas import (
    DailyEntry,
    DayStatus,
    Exercise,
    ExerciseCompletion,
    ExerciseStatus,
    Plan,
    PlanStatus,
    SkipReason,
)

logger = logging.getLogger(__name__)


PAIN_SCALE_MIN = 0
PAIN_SCALE_MAX = 10


def derive_overall_status(entry: DailyEntry, plan: Plan) -> DayStatus:
    """
    Aggregate status of a day against the plan's current exercise list.

    completed: every exercise completed
    skipped:   every exercise skipped
    partial:   every exercise accounted for, with both outcomes present
    otherwise not_started. Records for exercises no longer in the plan
    don't count.
    """
    exercise_ids = plan.exercise_ids
    if not exercise_ids:
        return DayStatus.NOT_STARTED

    statuses = {c.exercise_id: c.status for c in entry.exercises}
    completed = sum(1 for i in exercise_ids if statuses.get(i) == ExerciseStatus.COMPLETED)
    skipped = sum(1 for i in exercise_ids if statuses.get(i) == ExerciseStatus.SKIPPED)
    total = len(exercise_ids)

    if completed == total:
        return DayStatus.COMPLETED
    if skipped == total:
        return DayStatus.SKIPPED
    if completed + skipped == total:
        return DayStatus.PARTIAL
    return DayStatus.NOT_STARTED


def _require_exercise(plan: Plan, exercise_id: str) -> Exercise:
    if plan.status != PlanStatus.ACTIVE:
        raise StateError(f"Plan {plan.id} is {plan.status.value}; exercises can't be recorded")

    exercise = plan.get_exercise(exercise_id)
    if exercise is None:
        raise ValidationError(
            f"Exercise {exercise_id} is not part of plan {plan.id}",
            field="exercise_id"
        )
    return exercise


def _validate_pain_level(pain_level: Union[int, float]) -> float:
    if isinstance(pain_level, bool) or not isinstance(pain_level, (int, float)):
        raise ValidationError("Pain level must be a number", field="pain_level")
    if math.isnan(pain_level) or not PAIN_SCALE_MIN <= pain_level <= PAIN_SCALE_MAX:
        raise ValidationError(
            f"Pain level must be between {PAIN_SCALE_MIN} and {PAIN_SCALE_MAX}",
            field="pain_level"
        )
    return float(pain_level)


def _validate_duration(duration: int) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
        raise ValidationError("Duration must be a whole number of minutes (>= 1)", field="duration")
    return duration


def _completion_for(entry: DailyEntry, exercise_id: str) -> ExerciseCompletion:
    completion = entry.get_completion(exercise_id)
    if completion is None:
        completion = ExerciseCompletion(exercise_id=exercise_id)
        entry.exercises.append(completion)
    return completion


def _refresh_overall_status(entry: DailyEntry, plan: Plan, now: datetime) -> None:
    entry.overall_status = derive_overall_status(entry, plan)
    if entry.overall_status == DayStatus.COMPLETED:
        entry.completed_at = entry.completed_at or now
    else:
        entry.completed_at = None
    logger.debug(f"{entry.date.isoformat()} overall status: {entry.overall_status.value}")


def record_completion(
    entry: DailyEntry,
    plan: Plan,
    exercise_id: str,
    duration: Optional[int] = None,
    pain_level: Optional[Union[int, float]] = None,
    pain_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DailyEntry:
    """
    Mark an exercise completed on the entry's day.

    Duration defaults to the exercise's nominal duration. A pain level outside
    0-10 raises ValidationError; it is never clamped. A new pain level
    replaces the earlier reading together with its notes. Without a pain
    level, a previously reported one for the same day is kept.
    """
    exercise = _require_exercise(plan, exercise_id)
    duration = _validate_duration(exercise.duration if duration is None else duration)
    if pain_level is not None:
        pain_level = _validate_pain_level(pain_level)
    now = now or datetime.now(timezone.utc)

    completion = _completion_for(entry, exercise_id)
    if completion.status == ExerciseStatus.SKIPPED and not plan.settings.allow_finalized_changes:
        raise StateError(
            "Cannot complete a skipped exercise. Please contact your clinician "
            "if you need to modify your plan."
        )

    completion.status = ExerciseStatus.COMPLETED
    completion.completed_at = now
    completion.duration = duration
    completion.skipped_at = None
    completion.skipped_reason = None
    completion.skipped_notes = None

    if pain_level is not None:
        completion.pain_level = pain_level
        completion.pain_notes = pain_notes

    _refresh_overall_status(entry, plan, now)
    return entry


def record_skip(
    entry: DailyEntry,
    plan: Plan,
    exercise_id: str,
    reason: Union[SkipReason, str],
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DailyEntry:
    """Mark an exercise skipped on the entry's day."""
    _require_exercise(plan, exercise_id)
    if not plan.settings.allow_skipping:
        raise StateError(f"Skipping exercises is disabled for plan {plan.id}")
    try:
        reason = SkipReason(reason)
    except ValueError:
        valid = ", ".join(r.value for r in SkipReason)
        raise ValidationError(f"Skip reason must be one of: {valid}", field="reason")
    now = now or datetime.now(timezone.utc)

    completion = _completion_for(entry, exercise_id)
    if completion.status == ExerciseStatus.COMPLETED and not plan.settings.allow_finalized_changes:
        raise StateError("Cannot skip an exercise that is already completed")

    completion.status = ExerciseStatus.SKIPPED
    completion.skipped_at = now
    completion.skipped_reason = reason
    completion.skipped_notes = notes
    completion.completed_at = None
    completion.duration = None
    completion.pain_level = None
    completion.pain_notes = None

    _refresh_overall_status(entry, plan, now)
    return entry
