"""
Pain Trend Analyzer

Builds a per-day pain series from completed exercises and classifies the
direction of the most recent window.

Trend rules:
    - fewer than PAIN_TREND_MIN_RECORDS days with pain reported -> unknown
    - day-over-day deltas over the last PAIN_TREND_WINDOW days are counted as
      increasing (> +delta), decreasing (< -delta) or stable
    - the category with a strict plurality wins; any tie is fluctuating
"""

from typing import Dict, Iterable, List, Optional
import logging
import statistics

from rehab_adherence.core.config import settings
from rehab_adherence.schemas import (
    DailyEntry,
    ExerciseStatus,
    PainRecord,
    PainStats,
    PainTrend,
)
from rehab_adherence.services.daily_ledger import sorted_entries

logger = logging.getLogger(__name__)


def daily_pain_records(
    ledger: Iterable[DailyEntry],
    exercise_ids: Optional[Iterable[str]] = None
) -> List[PainRecord]:
    """One record per day that has completed exercises with a pain level, oldest first."""
    ids = set(exercise_ids) if exercise_ids is not None else None
    records = []
    for entry in sorted_entries(ledger):
        levels = [
            c.pain_level for c in entry.exercises
            if c.status == ExerciseStatus.COMPLETED
            and c.pain_level is not None
            and (ids is None or c.exercise_id in ids)
        ]
        if levels:
            records.append(PainRecord(
                date=entry.date,
                average_pain_level=sum(levels) / len(levels),
                exercise_count=len(levels),
            ))
    return records


def classify_pain_trend(levels: List[float]) -> PainTrend:
    """Classify the trend of a chronological series of daily pain averages."""
    if len(levels) < settings.PAIN_TREND_MIN_RECORDS:
        return PainTrend.UNKNOWN

    recent = levels[-settings.PAIN_TREND_WINDOW:]
    counts: Dict[PainTrend, int] = {
        PainTrend.INCREASING: 0,
        PainTrend.DECREASING: 0,
        PainTrend.STABLE: 0,
    }
    for previous, current in zip(recent, recent[1:]):
        diff = current - previous
        if diff > settings.PAIN_TREND_DELTA:
            counts[PainTrend.INCREASING] += 1
        elif diff < -settings.PAIN_TREND_DELTA:
            counts[PainTrend.DECREASING] += 1
        else:
            counts[PainTrend.STABLE] += 1

    best = max(counts.values())
    leaders = [trend for trend, count in counts.items() if count == best]
    if len(leaders) == 1:
        return leaders[0]
    return PainTrend.FLUCTUATING


def compute_pain_stats(
    ledger: Iterable[DailyEntry],
    exercise_ids: Optional[Iterable[str]] = None,
    previous: Optional[PainStats] = None
) -> PainStats:
    """
    Recompute pain statistics from the full ledger.

    Alert latch states are not derivable from the ledger; they are carried
    over from `previous` untouched.
    """
    records = daily_pain_records(ledger, exercise_ids)
    levels = [r.average_pain_level for r in records]

    pain_stats = PainStats(
        pain_history=records[-settings.PAIN_HISTORY_LIMIT:],
        average_pain_level=statistics.mean(levels) if levels else 0.0,
        last_reported_pain_level=records[-1].average_pain_level if records else None,
        last_reported_pain_date=records[-1].date if records else None,
        pain_trend=classify_pain_trend(levels),
    )
    if previous is not None:
        pain_stats.high_pain_alert = previous.high_pain_alert
        pain_stats.increasing_trend_alert = previous.increasing_trend_alert

    logger.debug(
        f"Pain stats over {len(records)} days: trend {pain_stats.pain_trend.value}, "
        f"average {pain_stats.average_pain_level:.2f}"
    )
    return pain_stats


def pain_trend_data(pain_stats: PainStats, days: int = 30) -> List[Dict]:
    """Trailing `days` of pain history, shaped for charts."""
    if days < 1:
        return []
    return [
        {
            "date": record.date.isoformat(),
            "pain_level": record.average_pain_level,
            "exercise_count": record.exercise_count,
        }
        for record in pain_stats.pain_history[-days:]
    ]
