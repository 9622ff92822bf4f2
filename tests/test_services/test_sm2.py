"""Tests for the SM-2 algorithm."""

import pytest

from study_review.services.sm2 import (
    MIN_EASE_FACTOR,
    QUALITY,
    SM2Rating,
    SM2State,
    calculate_sm2,
    worst_rating,
)


class TestQuality:
    def test_rating_quality_mapping(self):
        assert QUALITY[SM2Rating.PERFECT] == 5
        assert QUALITY[SM2Rating.GOOD] == 3
        assert QUALITY[SM2Rating.HARD] == 1


class TestCalculateSM2:
    def test_first_review_is_one_day(self):
        state = calculate_sm2(SM2Rating.PERFECT, SM2State())
        assert state.interval_days == 1
        assert state.repetitions == 1
        assert state.ease_factor == pytest.approx(2.6)

    def test_second_review_is_six_days(self):
        state = calculate_sm2(SM2Rating.GOOD, SM2State(1, 2.5, 1))
        assert state.interval_days == 6
        assert state.repetitions == 2
        # 0.1 - 2 * (0.08 + 2 * 0.02) = -0.14
        assert state.ease_factor == pytest.approx(2.36)

    def test_later_reviews_multiply_by_ease(self):
        state = calculate_sm2(SM2Rating.PERFECT, SM2State(6, 2.5, 2))
        assert state.interval_days == 15
        assert state.repetitions == 3

    def test_interval_rounds_half_up(self):
        state = calculate_sm2(SM2Rating.PERFECT, SM2State(5, 2.5, 2))
        assert state.interval_days == 13

    def test_hard_resets(self):
        state = calculate_sm2(SM2Rating.HARD, SM2State(15, 2.5, 3))
        assert state.interval_days == 1
        assert state.repetitions == 0
        assert state.ease_factor == pytest.approx(1.96)

    def test_ease_floor(self):
        state = calculate_sm2(SM2Rating.HARD, SM2State(1, 1.5, 0))
        assert state.ease_factor == MIN_EASE_FACTOR
        state = calculate_sm2(SM2Rating.GOOD, SM2State(6, 1.3, 2))
        assert state.ease_factor == MIN_EASE_FACTOR

    def test_accepts_string_rating(self):
        assert calculate_sm2("perfect", SM2State()).interval_days == 1


class TestWorstRating:
    def test_hard_wins(self):
        assert worst_rating([SM2Rating.PERFECT, SM2Rating.HARD, SM2Rating.GOOD]) == (
            SM2Rating.HARD
        )

    def test_good_over_perfect(self):
        assert worst_rating([SM2Rating.PERFECT, SM2Rating.GOOD]) == SM2Rating.GOOD

    def test_empty_is_perfect(self):
        assert worst_rating([]) == SM2Rating.PERFECT
