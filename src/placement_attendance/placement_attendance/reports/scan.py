from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from ..attendance.model import AttendanceRecord
from ..common.calendar import WorkCalendar
from ..common.datetime_utils import DateRange
from ..core.enums import ApprovalStatus, DayStatus

ABSENCE_STATUSES = frozenset({DayStatus.ABSENT, DayStatus.EXCUSED_ABSENCE})
ATTENDED_STATUSES = frozenset({DayStatus.PRESENT_ON_TIME, DayStatus.PRESENT_LATE, DayStatus.HALF_DAY})


def _zero_counts(enum_cls) -> dict:
    return {member: 0 for member in enum_cls}


@dataclass
class WindowScan:
    """Everything the summary and the anomaly detectors need from one pass."""

    date_range: DateRange
    expected_days: int
    day_counts: dict[DayStatus, int] = field(default_factory=lambda: _zero_counts(DayStatus))
    approval_counts: dict[ApprovalStatus, int] = field(default_factory=lambda: _zero_counts(ApprovalStatus))
    total_records: int = 0
    # Working days only, so it never exceeds expected_days.
    attended_days: int = 0
    longest_absence_run: int = 0
    unexcused_in_longest_run: int = 0
    longest_run_start: Optional[date] = None

    def count(self, status: DayStatus) -> int:
        return self.day_counts[status]

    @property
    def present_days(self) -> int:
        return self.count(DayStatus.PRESENT_ON_TIME) + self.count(DayStatus.PRESENT_LATE)


def scan_window(records: Iterable[AttendanceRecord], date_range: DateRange, calendar: WorkCalendar) -> WindowScan:
    """Single pass over records sorted by work_date.

    Absence runs follow working days only: a weekend or holiday between
    two absences keeps the run going, a working day without an absence
    (or without any record) ends it.
    """
    scan = WindowScan(date_range=date_range, expected_days=calendar.working_days(date_range))

    run_len = run_unexcused = 0
    run_start: Optional[date] = None
    last_absence: Optional[date] = None

    for record in records:
        if not date_range.contains(record.work_date):
            continue
        scan.total_records += 1
        scan.day_counts[record.day_status] += 1
        scan.approval_counts[record.approval_status] += 1

        if not calendar.is_working_day(record.work_date):
            continue
        if record.day_status in ATTENDED_STATUSES:
            scan.attended_days += 1

        if record.day_status not in ABSENCE_STATUSES:
            run_len = run_unexcused = 0
            last_absence = None
            continue

        if last_absence is None or calendar.next_working_day(last_absence) != record.work_date:
            run_len = run_unexcused = 0
            run_start = record.work_date
        run_len += 1
        if record.day_status == DayStatus.ABSENT:
            run_unexcused += 1
        last_absence = record.work_date

        if (run_len, run_unexcused) > (scan.longest_absence_run, scan.unexcused_in_longest_run):
            scan.longest_absence_run = run_len
            scan.unexcused_in_longest_run = run_unexcused
            scan.longest_run_start = run_start

    return scan
