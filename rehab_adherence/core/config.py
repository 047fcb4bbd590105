"""
Centralized configuration management with validation.

Thresholds and environment settings are loaded and validated here so every
service reads the same values.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Engine settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Calendar days are cut at midnight in this zone
    TIMEZONE: str = Field(default="UTC")

    # Pain analysis
    HIGH_PAIN_THRESHOLD: float = Field(default=7.0, ge=0, le=10)
    PAIN_TREND_DELTA: float = Field(default=0.5, ge=0)
    PAIN_TREND_WINDOW: int = Field(default=7, ge=2)
    PAIN_TREND_MIN_RECORDS: int = Field(default=3, ge=2)
    PAIN_HISTORY_LIMIT: int = Field(default=30, ge=1)

    # Defaults applied to plans that don't override them
    DEFAULT_MAX_CONSECUTIVE_SKIPS: int = Field(default=3, ge=1)
    DEFAULT_PROGRESS_MILESTONE_DAYS: int = Field(default=7, ge=1)


# Global settings instance
settings = Settings()
