"""
Snapshot models for rehabilitation plans.

Everything the engine reads or returns is a pydantic model, so callers can
persist snapshots with model_dump() and load them back with model_validate().
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from enum import Enum
from typing import Optional, List, Dict, Any

from rehab_adherence.core.config import settings as engine_settings


class PlanStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExerciseCategory(str, Enum):
    STRETCHING = "stretching"
    STRENGTHENING = "strengthening"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    BALANCE = "balance"
    OTHER = "other"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExerciseStatus(str, Enum):
    """Status of one exercise on one day."""
    COMPLETED = "completed"
    SKIPPED = "skipped"
    NOT_STARTED = "not_started"


class DayStatus(str, Enum):
    """Aggregate status of a whole day."""
    COMPLETED = "completed"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    NOT_STARTED = "not_started"


class SkipReason(str, Enum):
    PAIN = "pain"
    FATIGUE = "fatigue"
    TIME_CONSTRAINT = "time_constraint"
    EQUIPMENT = "equipment"
    OTHER = "other"


class PainTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    FLUCTUATING = "fluctuating"
    UNKNOWN = "unknown"


class LatchState(str, Enum):
    """One-shot alert state: armed alerts may fire, triggered ones wait for reset."""
    ARMED = "armed"
    TRIGGERED = "triggered"


class AlertType(str, Enum):
    SKIPPED_SESSIONS = "skipped_sessions"
    HIGH_PAIN_REPORTED = "high_pain_reported"
    INCREASING_PAIN_TREND = "increasing_pain_trend"
    FIVE_DAY_MILESTONE = "five_day_milestone"
    TEN_DAY_MILESTONE = "ten_day_milestone"
    FIFTEEN_DAY_MILESTONE = "fifteen_day_milestone"
    THIRTY_DAY_MILESTONE = "thirty_day_milestone"
    PROGRESS_MILESTONE = "progress_milestone"


class Exercise(BaseModel):
    id: str
    name: str
    duration: int = Field(ge=1)  # nominal minutes
    category: ExerciseCategory = ExerciseCategory.OTHER
    difficulty: Difficulty = Difficulty.EASY
    description: Optional[str] = None
    instructions: Optional[str] = None


class PlanSettings(BaseModel):
    max_consecutive_skips: int = Field(
        default_factory=lambda: engine_settings.DEFAULT_MAX_CONSECUTIVE_SKIPS, ge=1
    )
    progress_milestone_days: int = Field(
        default_factory=lambda: engine_settings.DEFAULT_PROGRESS_MILESTONE_DAYS, ge=1
    )
    allow_skipping: bool = True
    # When False, a completed exercise can't be flipped to skipped on the same day (and vice versa)
    allow_finalized_changes: bool = True


class Plan(BaseModel):
    """A worker's prescribed daily exercise program for one case."""
    id: str
    worker_id: str
    case_id: str
    clinician_id: Optional[str] = None
    plan_name: str = "Recovery Plan"
    plan_description: str = "Daily recovery exercises and activities"
    status: PlanStatus = PlanStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    exercises: List[Exercise] = Field(default_factory=list)
    settings: PlanSettings = Field(default_factory=PlanSettings)

    @field_validator("exercises")
    @classmethod
    def _unique_exercise_ids(cls, exercises: List[Exercise]) -> List[Exercise]:
        ids = [e.id for e in exercises]
        if len(ids) != len(set(ids)):
            raise ValueError("exercise ids must be unique within a plan")
        return exercises

    @property
    def exercise_ids(self) -> List[str]:
        return [e.id for e in self.exercises]

    def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        return None


class ExerciseCompletion(BaseModel):
    exercise_id: str
    status: ExerciseStatus = ExerciseStatus.NOT_STARTED
    completed_at: Optional[datetime] = None
    skipped_at: Optional[datetime] = None
    duration: Optional[int] = None  # actual minutes
    pain_level: Optional[float] = Field(default=None, ge=0, le=10)
    pain_notes: Optional[str] = None
    skipped_reason: Optional[SkipReason] = None
    skipped_notes: Optional[str] = None


class DailyEntry(BaseModel):
    date: date
    exercises: List[ExerciseCompletion] = Field(default_factory=list)
    overall_status: DayStatus = DayStatus.NOT_STARTED
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    def get_completion(self, exercise_id: str) -> Optional[ExerciseCompletion]:
        for completion in self.exercises:
            if completion.exercise_id == exercise_id:
                return completion
        return None


class ProgressStats(BaseModel):
    total_days: int = 0
    completed_days: int = 0
    skipped_days: int = 0
    consecutive_completed_days: int = 0
    consecutive_skipped_days: int = 0
    last_completed_date: Optional[date] = None
    last_skipped_date: Optional[date] = None
    current_streak_started: Optional[date] = None


class PainRecord(BaseModel):
    """Average pain over the completed exercises of one day."""
    date: date
    average_pain_level: float
    exercise_count: int


class PainStats(BaseModel):
    pain_history: List[PainRecord] = Field(default_factory=list)
    average_pain_level: float = 0.0
    last_reported_pain_level: Optional[float] = None
    last_reported_pain_date: Optional[date] = None
    pain_trend: PainTrend = PainTrend.UNKNOWN
    # Persisted alongside the stats; only the alert evaluator moves these
    high_pain_alert: LatchState = LatchState.ARMED
    increasing_trend_alert: LatchState = LatchState.ARMED

    @property
    def high_pain_alert_triggered(self) -> bool:
        return self.high_pain_alert == LatchState.TRIGGERED

    @property
    def increasing_pain_alert_triggered(self) -> bool:
        return self.increasing_trend_alert == LatchState.TRIGGERED


class Alert(BaseModel):
    type: AlertType
    message: str
    triggered_at: datetime
    is_read: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(validate_assignment=True)
