"""Streak calculation over study days.

Pure domain logic: no database, no I/O.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from .study_day import StudyDayClock


@dataclass(frozen=True)
class Streak:
    current: int
    longest: int
    last_study_day: Optional[date] = None


class StreakCalculator:
    """Derives current and longest consecutive-study-day runs."""

    @staticmethod
    def calculate(study_days: Iterable[date], today: date) -> Streak:
        """Calculate streaks from a collection of study days (any order, duplicates ok).

        Args:
            study_days: Study days with at least one log.
            today: The study day to measure the current streak from.

        Returns:
            ``current`` counts back from today, or from yesterday when
            today has no log yet; after that first step every day must be
            present. ``longest`` is the longest strictly consecutive run.
        """
        days = set(study_days)
        if not days:
            return Streak(current=0, longest=0, last_study_day=None)

        one_day = timedelta(days=1)

        current = 0
        if today in days:
            cursor = today
        elif today - one_day in days:
            cursor = today - one_day
        else:
            cursor = None

        while cursor is not None and cursor in days:
            current += 1
            cursor -= one_day

        longest = 0
        run = 0
        previous = None
        for day in sorted(days):
            if previous is not None and day - previous == one_day:
                run += 1
            else:
                run = 1
            longest = max(longest, run)
            previous = day

        past_days = [d for d in days if d <= today]
        last_study_day = max(past_days) if past_days else None

        return Streak(current=current, longest=longest, last_study_day=last_study_day)

    @classmethod
    def from_timestamps(
        cls,
        timestamps: Iterable[datetime],
        clock: StudyDayClock,
        now: Optional[datetime] = None,
    ) -> Streak:
        """Calculate streaks from raw study-log start instants."""
        return cls.calculate(
            (clock.study_day(ts) for ts in timestamps), clock.today(now)
        )
