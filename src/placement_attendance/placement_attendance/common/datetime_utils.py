from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from ..core.exceptions import InvalidDateRangeError, ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def to_local_naive(value: datetime) -> datetime:
    """Stored times are naive local time; aware values are converted first."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_iso_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid timestamp {value!r}")
    return to_local_naive(parsed)


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> float:
    """Hours from start to end, never negative; 0 when either side is missing."""
    if start is None or end is None:
        return 0.0
    return max((end - start).total_seconds() / 3600.0, 0.0)


def elapsed_hours(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() / 3600.0


def late_cutoff(day: date, work_start: time, grace_minutes: int) -> datetime:
    return datetime.combine(day, work_start) + timedelta(minutes=grace_minutes)


def is_late(check_in: datetime, work_start: time, grace_minutes: int) -> bool:
    cutoff = late_cutoff(check_in.date(), work_start, grace_minutes)
    return check_in.replace(tzinfo=None) > cutoff


def day_has_elapsed(day: date, now: datetime) -> bool:
    return now.date() > day


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range."""

    start: date
    end: date

    @classmethod
    def of(cls, start: date, end: date) -> "DateRange":
        if start > end:
            raise InvalidDateRangeError(f"Start date {start} is after end date {end}")
        return cls(start=start, end=end)

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return max((self.end - self.start).days + 1, 0)
