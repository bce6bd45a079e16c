from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import FrozenSet, Iterable

from ..core.constants import DEFAULT_WEEKEND_DAYS
from .datetime_utils import DateRange


@dataclass(frozen=True)
class WorkCalendar:
    """Which calendar days count as expected attendance days."""

    weekend_days: FrozenSet[int] = frozenset(DEFAULT_WEEKEND_DAYS)
    holidays: FrozenSet[date] = field(default_factory=frozenset)

    @classmethod
    def every_day(cls) -> "WorkCalendar":
        return cls(weekend_days=frozenset(), holidays=frozenset())

    @classmethod
    def build(cls, *, weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS, holidays: Iterable[date] = ()) -> "WorkCalendar":
        return cls(weekend_days=frozenset(int(d) for d in weekend_days), holidays=frozenset(holidays))

    def is_working_day(self, day: date) -> bool:
        return day.weekday() not in self.weekend_days and day not in self.holidays

    def working_days(self, date_range: DateRange) -> int:
        return sum(1 for d in date_range.days() if self.is_working_day(d))

    def next_working_day(self, day: date) -> date:
        if len(self.weekend_days) >= 7:
            raise ValueError("Calendar has no working days")
        candidate = day + timedelta(days=1)
        while not self.is_working_day(candidate):
            candidate += timedelta(days=1)
        return candidate
