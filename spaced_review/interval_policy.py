import enum
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from spaced_review.config import settings


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# difficulty -> (default interval days, completion points, review points)
POLICY_TABLE = {
    Difficulty.EASY: (15, 5, 1),
    Difficulty.MEDIUM: (10, 10, 2),
    Difficulty.HARD: (7, 15, 3),
}
FALLBACK_DIFFICULTY = Difficulty.MEDIUM


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _row(difficulty) -> tuple:
    try:
        return POLICY_TABLE[Difficulty(difficulty)]
    except ValueError:
        return POLICY_TABLE[FALLBACK_DIFFICULTY]


def _local_day(value: datetime, tz: ZoneInfo):
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


class IntervalPolicy:
    """
    Fixed-difficulty interval doubling.

    Completion schedules the first review `default_interval` days out; every
    review doubles the topic's interval. Points are a fixed scalar per
    difficulty tier.
    """

    @staticmethod
    def default_interval(difficulty) -> int:
        """Days until the first review after completion"""
        return _row(difficulty)[0]

    @staticmethod
    def completion_points(difficulty) -> int:
        return _row(difficulty)[1]

    @staticmethod
    def review_points(difficulty) -> int:
        return _row(difficulty)[2]

    @staticmethod
    def grow_interval(current_interval_days: int) -> int:
        """Double the interval, never below one day"""
        return max(1, (current_interval_days or 0) * 2)

    @staticmethod
    def next_review_date(now: datetime, interval_days: int) -> datetime:
        return now + timedelta(days=interval_days)

    @staticmethod
    def is_due(next_review: Optional[datetime], now: datetime = None, tz_name: str = None) -> bool:
        """
        Check if a review is due, compared at day granularity.

        Both timestamps are truncated to their calendar day in the reference
        time zone, so anything scheduled for today is due all day.
        """
        if next_review is None:
            return False
        tz = ZoneInfo(tz_name or settings.timezone)
        now = now or utcnow()
        return _local_day(next_review, tz) <= _local_day(now, tz)

    @staticmethod
    def due_cutoff(now: datetime = None, tz_name: str = None) -> datetime:
        """
        First instant (naive UTC) of the day after `now` in the reference zone.

        `next_review < due_cutoff(now)` is equivalent to `is_due(next_review, now)`
        and can be pushed down into a query.
        """
        tz = ZoneInfo(tz_name or settings.timezone)
        now = now or utcnow()
        tomorrow = _local_day(now, tz) + timedelta(days=1)
        local_midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=tz)
        return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def days_overdue(next_review: Optional[datetime], now: datetime = None, tz_name: str = None) -> int:
        """Calculate how many days overdue a review is"""
        if next_review is None:
            return 0
        tz = ZoneInfo(tz_name or settings.timezone)
        now = now or utcnow()
        return max(0, (_local_day(now, tz) - _local_day(next_review, tz)).days)
