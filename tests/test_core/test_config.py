"""Tests for engine settings."""

import pytest
from pydantic import ValidationError

from study_review.core.config import (
    DEFAULT_LONG_OFFSETS,
    DEFAULT_SHORT_OFFSETS,
    Settings,
    get_settings,
)


class TestSettingsDefaults:
    def test_clock_defaults(self):
        settings = Settings()
        assert settings.utc_offset_hours == 9
        assert settings.study_day_cutoff_hour == 3
        assert settings.review_due_hour == 12

    def test_offset_tables(self):
        settings = Settings()
        assert settings.short_review_offsets == DEFAULT_SHORT_OFFSETS == [1, 3, 7, 14, 30]
        assert settings.long_review_offsets == DEFAULT_LONG_OFFSETS
        assert settings.long_review_offsets[-1] == 1825

    def test_quiz_defaults(self):
        settings = Settings()
        assert settings.quiz_default_count == 3
        assert settings.quiz_max_count == 5
        assert settings.quiz_choice_count == 4

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REVIEW_DUE_HOUR", "9")
        monkeypatch.setenv("SHORT_REVIEW_OFFSETS", "[7, 1, 3, 3]")
        settings = Settings()
        assert settings.review_due_hour == 9
        assert settings.short_review_offsets == [1, 3, 7]

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestSettingsValidation:
    def test_rejects_empty_offsets(self):
        with pytest.raises(ValidationError):
            Settings(short_review_offsets=[])

    def test_rejects_non_positive_offsets(self):
        with pytest.raises(ValidationError):
            Settings(long_review_offsets=[0, 1, 3])

    def test_rejects_out_of_range_hour(self):
        with pytest.raises(ValidationError):
            Settings(study_day_cutoff_hour=24)

    def test_rejects_due_hour_before_cutoff(self):
        with pytest.raises(ValidationError):
            Settings(study_day_cutoff_hour=3, review_due_hour=2)

    def test_rejects_default_count_above_max(self):
        with pytest.raises(ValidationError):
            Settings(quiz_default_count=6, quiz_max_count=5)

    def test_rejects_unrealistic_utc_offset(self):
        with pytest.raises(ValidationError):
            Settings(utc_offset_hours=15)
