"""Study day clock.

A study day runs from the cutoff hour (03:00 by default) to the same hour
on the next calendar day, in a fixed civil offset (JST by default) that
never depends on the host locale. Every due-date, bucketing and streak
calculation goes through this one boundary function.

No database, no I/O: pure functions of the instant they are given.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..core.config import Settings, get_settings

DAY_KEY_FORMAT = "%Y-%m-%d"


def format_day_key(day: date) -> str:
    """Render a study day as ``YYYY-MM-DD``."""
    return day.strftime(DAY_KEY_FORMAT)


class StudyDayClock:
    """Maps instants to study days and back."""

    def __init__(self, utc_offset_hours: int = 9, cutoff_hour: int = 3) -> None:
        if not 0 <= cutoff_hour <= 23:
            raise ValueError(f"cutoff_hour must be within 0-23, got {cutoff_hour}")
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self.cutoff_hour = cutoff_hour

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "StudyDayClock":
        settings = settings or get_settings()
        return cls(
            utc_offset_hours=settings.utc_offset_hours,
            cutoff_hour=settings.study_day_cutoff_hour,
        )

    # --- Core mapping ---

    def study_day(self, timestamp: datetime) -> date:
        """Return the study day *timestamp* belongs to.

        An instant before the cutoff hour belongs to the previous day.

        Raises:
            ValueError: If *timestamp* is naive.
        """
        if timestamp.tzinfo is None:
            raise ValueError(f"timestamp must be timezone-aware: {timestamp!r}")
        local = timestamp.astimezone(self.tz)
        return (local - timedelta(hours=self.cutoff_hour)).date()

    def day_key_to_instant(self, day: date) -> datetime:
        """Return the boundary instant at which *day* starts."""
        return datetime(day.year, day.month, day.day, self.cutoff_hour, tzinfo=self.tz)

    def at_hour(self, day: date, hour: int) -> datetime:
        """Return the civil *hour* on *day*, which must fall inside that study day."""
        if not self.cutoff_hour <= hour <= 23:
            raise ValueError(
                f"hour {hour} falls outside study day (cutoff {self.cutoff_hour})"
            )
        return datetime(day.year, day.month, day.day, hour, tzinfo=self.tz)

    # --- Relative to now ---

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self, now: Optional[datetime] = None) -> date:
        return self.study_day(now or self.now())

    def days_ago(self, timestamp: datetime, now: Optional[datetime] = None) -> int:
        """Whole study days between *timestamp* and now (negative if in the future)."""
        return (self.today(now) - self.study_day(timestamp)).days

    def start_of_week(self, offset: int = 0, now: Optional[datetime] = None) -> datetime:
        """Boundary instant of the Monday starting the week *offset* weeks back.

        Args:
            offset: 0 = current week, 1 = previous week, ...
        """
        today = self.today(now)
        monday = today - timedelta(days=today.weekday() + 7 * offset)
        return self.day_key_to_instant(monday)

    def start_of_month(self, offset: int = 0, now: Optional[datetime] = None) -> datetime:
        """Boundary instant of the first day of the month *offset* months back.

        Args:
            offset: 0 = current month, 1 = previous month, ...
        """
        today = self.today(now)
        month_index = today.year * 12 + (today.month - 1) - offset
        year, month = divmod(month_index, 12)
        return self.day_key_to_instant(date(year, month + 1, 1))
