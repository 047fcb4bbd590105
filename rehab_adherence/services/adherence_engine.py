"""
Adherence Engine

Boundary operations used by the case-management application:

    apply_completion / apply_skip / apply_complete_all
        record one worker action for today, recompute all statistics from the
        full ledger and evaluate alerts
    recompute
        full, idempotent recompute for backfill and repair
    get_milestone_progress
        streak milestone progress for UI progress bars

Inputs are never mutated. Each call returns a new ledger and new statistics
that the caller persists, serializing writes per plan.

The pain alert latches live on PainStats, so callers must pass back the
pain_stats of the previous result as previous_pain_stats. Omitting it
re-arms both latches, and a pain level that stays at or above the threshold
then raises high_pain_reported again on every action.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union
import logging

from rehab_adherence.core.exceptions import ValidationError
from rehab_adherence.core.logging import plan_log_fields
from rehab_adherence.schemas import (
    Alert,
    DailyEntry,
    PainStats,
    Plan,
    ProgressStats,
    SkipReason,
)
from rehab_adherence.services.alert_evaluator import MILESTONES, evaluate_alerts
from rehab_adherence.services.completion_recorder import record_completion, record_skip
from rehab_adherence.services.daily_ledger import get_or_create_entry, today
from rehab_adherence.services.pain_trend import compute_pain_stats
from rehab_adherence.services.progress_aggregator import compute_progress_stats

logger = logging.getLogger(__name__)


@dataclass
class RecomputeResult:
    stats: ProgressStats
    pain_stats: PainStats


@dataclass
class AdherenceResult:
    """Everything the caller needs to persist after one worker action."""
    ledger: List[DailyEntry]
    stats: ProgressStats
    pain_stats: PainStats
    new_alerts: List[Alert]
    alerts: List[Alert] = field(default_factory=list)  # existing + new


@dataclass
class MilestoneProgress:
    days: int
    name: str
    label: str
    achieved: bool
    next: bool  # first milestone not yet reached
    progress_percent: float


def _copy_ledger(ledger: Iterable[DailyEntry]) -> List[DailyEntry]:
    return [entry.model_copy(deep=True) for entry in ledger]


def _warn_orphans(plan: Plan, ledger: List[DailyEntry]) -> None:
    known = set(plan.exercise_ids)
    orphans = {
        c.exercise_id
        for entry in ledger
        for c in entry.exercises
        if c.exercise_id not in known
    }
    if orphans:
        logger.warning(
            f"Plan {plan.id} ledger references {len(orphans)} exercise(s) no longer in the plan; "
            "ignoring them in streak and pain math",
            extra={"extra_fields": {**plan_log_fields(plan), "orphaned_exercise_ids": sorted(orphans)}}
        )


def recompute(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    previous_pain_stats: Optional[PainStats] = None
) -> RecomputeResult:
    """
    Full recompute of progress and pain statistics.

    Stored day statuses are used as-is; only days touched by a new action are
    re-derived. Pain alert latches are carried over from previous_pain_stats.
    """
    ledger = list(ledger)
    _warn_orphans(plan, ledger)
    exercise_ids = plan.exercise_ids
    return RecomputeResult(
        stats=compute_progress_stats(ledger, exercise_ids),
        pain_stats=compute_pain_stats(ledger, exercise_ids, previous_pain_stats),
    )


def _finish(
    plan: Plan,
    ledger: List[DailyEntry],
    existing_alerts: Iterable[Alert],
    previous_pain_stats: Optional[PainStats],
    now: datetime,
) -> AdherenceResult:
    existing_alerts = list(existing_alerts)
    result = recompute(plan, ledger, previous_pain_stats)
    evaluation = evaluate_alerts(
        result.stats,
        result.pain_stats,
        existing_alerts,
        plan.settings,
        plan=plan,
        now=now,
    )
    return AdherenceResult(
        ledger=ledger,
        stats=result.stats,
        pain_stats=evaluation.pain_stats,
        new_alerts=evaluation.alerts,
        alerts=existing_alerts + evaluation.alerts,
    )


def apply_completion(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    exercise_id: str,
    duration: Optional[int] = None,
    pain_level: Optional[Union[int, float]] = None,
    pain_notes: Optional[str] = None,
    *,
    existing_alerts: Iterable[Alert] = (),
    previous_pain_stats: Optional[PainStats] = None,
    now: Optional[datetime] = None,
) -> AdherenceResult:
    """
    Record that the worker completed an exercise today.

    Pass the previous result's pain_stats as previous_pain_stats; without it
    the pain alert latches start armed.
    """
    now = now or datetime.now(timezone.utc)
    ledger = _copy_ledger(ledger)
    entry = get_or_create_entry(ledger, today(now))
    record_completion(entry, plan, exercise_id, duration, pain_level, pain_notes, now=now)
    logger.info(
        f"Exercise {exercise_id} completed on {entry.date.isoformat()}",
        extra={"extra_fields": plan_log_fields(plan)}
    )
    return _finish(plan, ledger, existing_alerts, previous_pain_stats, now)


def apply_skip(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    exercise_id: str,
    reason: Union[SkipReason, str],
    notes: Optional[str] = None,
    *,
    existing_alerts: Iterable[Alert] = (),
    previous_pain_stats: Optional[PainStats] = None,
    now: Optional[datetime] = None,
) -> AdherenceResult:
    """
    Record that the worker skipped an exercise today.

    previous_pain_stats carries the pain alert latches, as in apply_completion.
    """
    now = now or datetime.now(timezone.utc)
    ledger = _copy_ledger(ledger)
    entry = get_or_create_entry(ledger, today(now))
    record_skip(entry, plan, exercise_id, reason, notes, now=now)
    logger.info(
        f"Exercise {exercise_id} skipped on {entry.date.isoformat()}",
        extra={"extra_fields": plan_log_fields(plan)}
    )
    return _finish(plan, ledger, existing_alerts, previous_pain_stats, now)


def apply_complete_all(
    plan: Plan,
    ledger: Iterable[DailyEntry],
    *,
    existing_alerts: Iterable[Alert] = (),
    previous_pain_stats: Optional[PainStats] = None,
    now: Optional[datetime] = None,
) -> AdherenceResult:
    """Complete every exercise of the plan for today at its nominal duration."""
    now = now or datetime.now(timezone.utc)
    ledger = _copy_ledger(ledger)
    entry = get_or_create_entry(ledger, today(now))
    for exercise in plan.exercises:
        record_completion(entry, plan, exercise.id, exercise.duration, now=now)
    logger.info(
        f"All exercises completed on {entry.date.isoformat()}",
        extra={"extra_fields": plan_log_fields(plan)}
    )
    return _finish(plan, ledger, existing_alerts, previous_pain_stats, now)


def get_milestone_progress(stats: ProgressStats) -> List[MilestoneProgress]:
    streak = stats.consecutive_completed_days
    next_days = next((m.days for m in MILESTONES if streak < m.days), None)
    return [
        MilestoneProgress(
            days=m.days,
            name=m.name,
            label=m.label,
            achieved=streak >= m.days,
            next=m.days == next_days,
            progress_percent=min(streak / m.days * 100, 100.0),
        )
        for m in MILESTONES
    ]


def mark_alert_read(alerts: Iterable[Alert], index: int) -> List[Alert]:
    """Copy of the alert log with one alert marked read. isRead is the only mutable field."""
    alerts = [a.model_copy(deep=True) for a in alerts]
    if not 0 <= index < len(alerts):
        raise ValidationError(f"No alert at position {index}", field="index")
    alerts[index].is_read = True
    return alerts


def unread_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    return [a for a in alerts if not a.is_read]


def milestone_progress_to_dict(progress: List[MilestoneProgress]) -> List[Dict]:
    """Convert milestone progress to dictionaries for API responses."""
    return [
        {
            "days": p.days,
            "name": p.name,
            "label": p.label,
            "achieved": p.achieved,
            "next": p.next,
            "progress_percent": round(p.progress_percent, 1),
        }
        for p in progress
    ]
