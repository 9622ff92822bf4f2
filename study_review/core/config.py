"""
Engine configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

DEFAULT_SHORT_OFFSETS = [1, 3, 7, 14, 30]
DEFAULT_LONG_OFFSETS = [1, 3, 7, 15, 30, 60, 120, 240, 365, 730, 1095, 1460, 1825]


class Settings(BaseSettings):
    """Engine settings with environment variable support."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/study_review.db"

    # Study day clock (fixed civil offset, never the host locale)
    utc_offset_hours: int = 9
    study_day_cutoff_hour: int = 3
    review_due_hour: int = 12

    # Offset tables (days after the anchor study day)
    short_review_offsets: List[int] = DEFAULT_SHORT_OFFSETS
    long_review_offsets: List[int] = DEFAULT_LONG_OFFSETS

    # Quiz generation
    quiz_model: str = "gpt-4o-mini"
    quiz_default_count: int = 3
    quiz_max_count: int = 5
    quiz_choice_count: int = 4
    openai_api_key: Optional[str] = None

    # Reschedule retry
    reschedule_max_attempts: int = 3
    reschedule_base_delay: float = 0.5

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars

    @field_validator("short_review_offsets", "long_review_offsets")
    @classmethod
    def _normalize_offsets(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("offset table must not be empty")
        if any(offset < 1 for offset in value):
            raise ValueError(f"offsets must be positive day counts, got {value}")
        return sorted(set(value))

    @field_validator("study_day_cutoff_hour", "review_due_hour")
    @classmethod
    def _validate_hour(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise ValueError(f"hour must be within 0-23, got {value}")
        return value

    @field_validator("utc_offset_hours")
    @classmethod
    def _validate_offset(cls, value: int) -> int:
        if not -12 <= value <= 14:
            raise ValueError(f"utc offset must be within -12..14, got {value}")
        return value

    @model_validator(mode="after")
    def _due_hour_inside_study_day(self) -> "Settings":
        # A due instant before the cutoff would belong to the previous study day
        if self.review_due_hour < self.study_day_cutoff_hour:
            raise ValueError(
                "review_due_hour must not be earlier than study_day_cutoff_hour"
            )
        if self.quiz_default_count > self.quiz_max_count:
            raise ValueError("quiz_default_count must not exceed quiz_max_count")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
