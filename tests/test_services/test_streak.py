"""Tests for streak calculation."""

from datetime import date, datetime, timedelta, timezone

from study_review.services.streak import Streak, StreakCalculator
from study_review.services.study_day import StudyDayClock

JST = timezone(timedelta(hours=9))

DAYS = {date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 7)}


class TestCurrentStreak:
    def test_as_of_last_day(self):
        assert StreakCalculator.calculate(DAYS, date(2024, 1, 7)).current == 3

    def test_grace_day(self):
        assert StreakCalculator.calculate(DAYS, date(2024, 1, 8)).current == 3

    def test_broken_after_two_days(self):
        assert StreakCalculator.calculate(DAYS, date(2024, 1, 9)).current == 0

    def test_gap_inside_run_stops_count(self):
        days = {date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 4)}
        assert StreakCalculator.calculate(days, date(2024, 1, 4)).current == 2

    def test_duplicates_and_order_ignored(self):
        days = [date(2024, 1, 7), date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 7)]
        assert StreakCalculator.calculate(days, date(2024, 1, 7)).current == 3

    def test_empty(self):
        assert StreakCalculator.calculate([], date(2024, 1, 7)) == Streak(0, 0, None)


class TestLongestStreak:
    def test_longest_run(self):
        days = {
            date(2024, 1, 1),
            date(2024, 1, 2),
            date(2024, 1, 3),
            date(2024, 1, 4),
            date(2024, 1, 10),
            date(2024, 1, 11),
        }
        streak = StreakCalculator.calculate(days, date(2024, 1, 11))
        assert streak.current == 2
        assert streak.longest == 4
        assert streak.last_study_day == date(2024, 1, 11)

    def test_longest_across_month_boundary(self):
        days = {date(2024, 1, 31), date(2024, 2, 1)}
        assert StreakCalculator.calculate(days, date(2024, 3, 1)).longest == 2

    def test_single_day(self):
        streak = StreakCalculator.calculate({date(2024, 1, 1)}, date(2024, 1, 20))
        assert streak.longest == 1
        assert streak.current == 0
        assert streak.last_study_day == date(2024, 1, 1)


class TestFromTimestamps:
    def test_uses_study_day_cutoff(self):
        clock = StudyDayClock()
        timestamps = [
            datetime(2024, 1, 5, 22, 0, tzinfo=JST),
            # 01:30 on the 7th still counts for the 6th
            datetime(2024, 1, 7, 1, 30, tzinfo=JST),
        ]
        streak = StreakCalculator.from_timestamps(
            timestamps, clock, datetime(2024, 1, 7, 12, 0, tzinfo=JST)
        )
        assert streak.current == 2
        assert streak.last_study_day == date(2024, 1, 6)
