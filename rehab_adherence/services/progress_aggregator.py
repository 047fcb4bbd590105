"""
Progress Aggregator

Recomputes ProgressStats from the whole ledger on every call. Nothing is
patched incrementally, so out-of-order and backfilled entries come out right.
"""

from typing import Iterable, List, Optional
import logging

from rehab_adherence.schemas import DailyEntry, DayStatus, ExerciseStatus, ProgressStats
from rehab_adherence.services.daily_ledger import count_trailing_run, sorted_entries

logger = logging.getLogger(__name__)


ACTIVE_DAY_STATUSES = {DayStatus.COMPLETED, DayStatus.PARTIAL, DayStatus.SKIPPED}


def _has_skip(entry: DailyEntry, exercise_ids: Optional[set]) -> bool:
    return any(
        c.status == ExerciseStatus.SKIPPED
        and (exercise_ids is None or c.exercise_id in exercise_ids)
        for c in entry.exercises
    )


def _last_date_with(entries: List[DailyEntry], status: DayStatus):
    for entry in reversed(entries):
        if entry.overall_status == status:
            return entry.date
    return None


def compute_progress_stats(
    ledger: Iterable[DailyEntry],
    exercise_ids: Optional[Iterable[str]] = None
) -> ProgressStats:
    """
    Totals, streaks and last-activity dates for a ledger.

    skipped_days counts days holding at least one skipped exercise, which is
    not the same as days whose overall status is skipped. When exercise_ids
    is given, skips of exercises outside that list are ignored.
    """
    entries = sorted_entries(ledger)
    ids = set(exercise_ids) if exercise_ids is not None else None

    streak = count_trailing_run(entries, lambda e: e.overall_status == DayStatus.COMPLETED)

    stats = ProgressStats(
        total_days=sum(1 for e in entries if e.overall_status in ACTIVE_DAY_STATUSES),
        completed_days=sum(1 for e in entries if e.overall_status == DayStatus.COMPLETED),
        skipped_days=sum(1 for e in entries if _has_skip(e, ids)),
        consecutive_completed_days=streak,
        consecutive_skipped_days=count_trailing_run(
            entries, lambda e: e.overall_status == DayStatus.SKIPPED
        ),
        last_completed_date=_last_date_with(entries, DayStatus.COMPLETED),
        last_skipped_date=_last_date_with(entries, DayStatus.SKIPPED),
        current_streak_started=entries[-streak].date if streak else None,
    )

    logger.debug(
        f"Progress stats over {len(entries)} days: "
        f"{stats.completed_days} completed, {stats.skipped_days} with skips, "
        f"streak {stats.consecutive_completed_days}"
    )
    return stats
