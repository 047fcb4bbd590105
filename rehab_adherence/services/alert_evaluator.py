"""
Alert & Milestone Evaluator

Compares freshly computed progress and pain statistics with the plan's alert
log and decides which new alerts to raise.

Deduplication per rule:
    - skipped_sessions: none, reported on every evaluation while it holds
    - high_pain_reported / increasing_pain_trend: one-shot latches stored on
      PainStats (armed -> triggered on fire, triggered -> armed once the
      condition clears)
    - named milestones: at most one alert per (type, streak) in the alert log
    - progress_milestone: at most one alert per streak value within the
      current streak, so a later streak reaching the same length fires again
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

from rehab_adherence.core.config import settings
from rehab_adherence.core.logging import plan_log_fields
from rehab_adherence.schemas import (
    Alert,
    AlertType,
    LatchState,
    PainStats,
    PainTrend,
    Plan,
    PlanSettings,
    ProgressStats,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Milestone:
    days: int
    alert_type: AlertType
    name: str
    label: str
    message: str


MILESTONES = [
    Milestone(
        5, AlertType.FIVE_DAY_MILESTONE, "five_days", "5-Day Streak!",
        "🎉 Amazing! You've completed all exercises for 5 consecutive days! "
        "Your dedication to recovery is inspiring. Keep up the excellent work!"
    ),
    Milestone(
        10, AlertType.TEN_DAY_MILESTONE, "ten_days", "10-Day Streak!",
        "🌟 Outstanding! 10 consecutive days of completed exercises! "
        "You're building incredible momentum in your recovery journey."
    ),
    Milestone(
        15, AlertType.FIFTEEN_DAY_MILESTONE, "fifteen_days", "15-Day Streak!",
        "🏆 Phenomenal! 15 consecutive days! You've developed a strong recovery "
        "routine. Your commitment is truly remarkable!"
    ),
    Milestone(
        30, AlertType.THIRTY_DAY_MILESTONE, "thirty_days", "30-Day Streak!",
        "🎊 Incredible! A full month of consecutive exercise completion! "
        "You've transformed your recovery into a powerful habit. Congratulations!"
    ),
]

MILESTONE_DAYS = {m.days for m in MILESTONES}


@dataclass
class AlertEvaluation:
    """New alerts plus pain stats with their latch states moved."""
    alerts: List[Alert]
    pain_stats: PainStats


def _already_raised(
    existing_alerts: Iterable[Alert],
    alert_type: AlertType,
    streak: int,
    streak_started: Optional[str] = None,
) -> bool:
    for a in existing_alerts:
        if a.type != alert_type or a.metadata.get("consecutive_completed_days") != streak:
            continue
        if streak_started is None or a.metadata.get("streak_started") == streak_started:
            return True
    return False


def evaluate_alerts(
    stats: ProgressStats,
    pain_stats: PainStats,
    existing_alerts: Iterable[Alert],
    plan_settings: PlanSettings,
    plan: Optional[Plan] = None,
    now: Optional[datetime] = None,
) -> AlertEvaluation:
    """
    Decide which alerts fire for the current statistics.

    Each rule yields at most one alert. The returned pain stats are a copy
    of the input with latch transitions applied; the caller persists them
    together with the new alerts.
    """
    existing_alerts = list(existing_alerts)
    pain_stats = pain_stats.model_copy(deep=True)
    now = now or datetime.now(timezone.utc)

    identity: Dict[str, Any] = {}
    if plan is not None:
        identity = plan_log_fields(plan)

    alerts: List[Alert] = []

    def raise_alert(alert_type: AlertType, message: str, **metadata) -> None:
        alerts.append(Alert(
            type=alert_type,
            message=message,
            triggered_at=now,
            metadata={**metadata, **identity},
        ))

    # Consecutive skipped sessions
    skipped = stats.consecutive_skipped_days
    if skipped >= plan_settings.max_consecutive_skips:
        raise_alert(
            AlertType.SKIPPED_SESSIONS,
            f"Worker has skipped {skipped} consecutive sessions. Plan review may be needed.",
            consecutive_skipped_days=skipped,
        )

    # High pain: fire once, re-arm after a reading below the threshold
    level = pain_stats.last_reported_pain_level
    if level is not None:
        if level >= settings.HIGH_PAIN_THRESHOLD:
            if pain_stats.high_pain_alert == LatchState.ARMED:
                raise_alert(
                    AlertType.HIGH_PAIN_REPORTED,
                    f"Worker has reported a high pain level ({level:.1f}/10). "
                    "Immediate plan review recommended.",
                    pain_level=level,
                    reported_at=(
                        pain_stats.last_reported_pain_date.isoformat()
                        if pain_stats.last_reported_pain_date else None
                    ),
                )
                pain_stats.high_pain_alert = LatchState.TRIGGERED
        else:
            pain_stats.high_pain_alert = LatchState.ARMED

    # Increasing pain trend: fire once, re-arm when the trend changes
    if pain_stats.pain_trend == PainTrend.INCREASING:
        if pain_stats.increasing_trend_alert == LatchState.ARMED:
            raise_alert(
                AlertType.INCREASING_PAIN_TREND,
                "Worker is showing an increasing pain trend over the last several sessions. "
                "Consider reviewing and adjusting the rehabilitation plan.",
                pain_trend=pain_stats.pain_trend.value,
                average_pain_level=pain_stats.average_pain_level,
            )
            pain_stats.increasing_trend_alert = LatchState.TRIGGERED
    else:
        pain_stats.increasing_trend_alert = LatchState.ARMED

    # Named streak milestones
    streak = stats.consecutive_completed_days
    for milestone in MILESTONES:
        if streak == milestone.days and not _already_raised(existing_alerts, milestone.alert_type, streak):
            raise_alert(
                milestone.alert_type,
                milestone.message,
                consecutive_completed_days=streak,
                milestone=milestone.name,
            )

    # Generic progress milestone, skipped where a named one applies
    started = stats.current_streak_started.isoformat() if stats.current_streak_started else None
    if (
        streak >= plan_settings.progress_milestone_days
        and streak not in MILESTONE_DAYS
        and not _already_raised(existing_alerts, AlertType.PROGRESS_MILESTONE, streak, started)
    ):
        raise_alert(
            AlertType.PROGRESS_MILESTONE,
            f"Great progress! Worker has completed {streak} consecutive sessions.",
            consecutive_completed_days=streak,
            streak_started=started,
        )

    for alert in alerts:
        logger.info(
            f"Raising {alert.type.value} alert",
            extra={"extra_fields": {"alert_type": alert.type.value, **alert.metadata}}
        )

    return AlertEvaluation(alerts=alerts, pain_stats=pain_stats)
