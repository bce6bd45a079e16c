"""Day-status classification.

Pure functions: no store access, no clock reads. Callers pass ``now`` in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import day_has_elapsed, elapsed_hours, hours_between, is_late
from ..core.enums import ApprovalStatus, DayStatus, Punctuality, RecordSource
from ..core.exceptions import ValidationError
from ..core.policy import AttendancePolicy
from .model import AttendanceRecord

PRESENT_STATUSES = frozenset({DayStatus.PRESENT_ON_TIME, DayStatus.PRESENT_LATE})


@dataclass(frozen=True)
class DayEvent:
    """Raw facts of one day that the status is derived from."""

    day: date
    now: datetime
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    is_absence_request: bool = False
    excuse_granted: bool = False

    @property
    def hours_worked(self) -> float:
        return hours_between(self.check_in_time, self.check_out_time)

    @classmethod
    def from_record(cls, record: AttendanceRecord, *, now: datetime, excuse_granted: bool = False) -> "DayEvent":
        return cls(
            day=record.work_date,
            now=now,
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            is_absence_request=record.check_in_time is None and record.source != RecordSource.CHECK_IN,
            excuse_granted=excuse_granted,
        )


def punctuality_for(check_in: datetime, policy: AttendancePolicy) -> Punctuality:
    if is_late(check_in, policy.work_start, policy.grace_minutes):
        return Punctuality.LATE
    return Punctuality.ON_TIME


def classify(event: DayEvent, policy: AttendancePolicy) -> DayStatus:
    """Map a day's events to a DayStatus; first matching rule wins."""

    if event.is_absence_request and event.excuse_granted:
        return DayStatus.EXCUSED_ABSENCE

    if event.is_absence_request:
        return DayStatus.ABSENT

    if event.check_in_time is None:
        # Nothing recorded yet for a day still in progress.
        return DayStatus.ABSENT if day_has_elapsed(event.day, event.now) else DayStatus.INCOMPLETE

    if event.check_out_time is None:
        # Open check-in: provisional until checked out or gone stale.
        return DayStatus.INCOMPLETE

    if event.hours_worked <= 0:
        return DayStatus.INCOMPLETE

    if event.hours_worked < policy.min_full_day_hours:
        return DayStatus.HALF_DAY

    if punctuality_for(event.check_in_time, policy) == Punctuality.ON_TIME:
        return DayStatus.PRESENT_ON_TIME
    return DayStatus.PRESENT_LATE


def has_reviewer_override(record: AttendanceRecord) -> bool:
    return record.reviewed_by is not None and record.approval_status in (
        ApprovalStatus.NEEDS_REVIEW,
        ApprovalStatus.APPROVED,
    )


def is_stale(record: AttendanceRecord, now: datetime, policy: AttendancePolicy) -> bool:
    """Checked in, never checked out, and the configured window has passed."""
    return record.is_open and elapsed_hours(record.check_in_time, now) > policy.incomplete_after_hours


def correct_stale(record: AttendanceRecord, now: datetime, policy: AttendancePolicy) -> AttendanceRecord:
    """Lazy correction applied on read: stale open check-ins become INCOMPLETE.

    A status set or approved by a reviewer is left alone.
    """
    if has_reviewer_override(record) or not is_stale(record, now, policy):
        return record
    if record.day_status == DayStatus.INCOMPLETE and record.is_incomplete:
        return record
    return record.evolve(day_status=DayStatus.INCOMPLETE)


def check_override(record: AttendanceRecord, status: DayStatus, policy: AttendancePolicy) -> None:
    """Refuse a reviewer status that the record's times cannot back.

    Present days need a closed day of full hours. HALF_DAY needs a closed
    day with some hours, except on an absence day (no check-in at all),
    which a reviewer may still turn into a half day.
    """
    if status in PRESENT_STATUSES:
        if record.check_out_time is None or record.hours_worked < policy.min_full_day_hours:
            raise ValidationError(
                f"{status.value} needs a check-out and at least {policy.min_full_day_hours:g} hours worked"
            )
    elif status == DayStatus.HALF_DAY and record.check_in_time is not None:
        if record.check_out_time is None or record.hours_worked <= 0:
            raise ValidationError("HALF_DAY needs a check-out after the check-in")
