from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from placement_attendance.attendance.absence_marker import AbsenceMarker
from placement_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from placement_attendance.attendance.model import AttendanceRecord
from placement_attendance.attendance.service import AttendanceService
from placement_attendance.common.calendar import WorkCalendar
from placement_attendance.core.enums import ApprovalStatus, DayStatus, Punctuality, RecordSource
from placement_attendance.core.policy import AttendancePolicy
from placement_attendance.reports.service import AttendanceSummaryService

# Monday
DAY = date(2024, 3, 4)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 4, 12, 0))


@pytest.fixture
def policy():
    return AttendancePolicy()


@pytest.fixture
def weekday_calendar():
    return WorkCalendar.build(weekend_days=(5, 6))


@pytest.fixture
def repo(clock):
    return InMemoryAttendanceRepository(clock=clock)


@pytest.fixture
def service(repo, policy, clock):
    return AttendanceService(repo, policy=policy, clock=clock)


@pytest.fixture
def marker(service, repo, weekday_calendar):
    return AbsenceMarker(service, repo, calendar=weekday_calendar)


@pytest.fixture
def summaries(repo, policy, weekday_calendar, clock):
    return AttendanceSummaryService(repo, policy=policy, calendar=weekday_calendar, clock=clock)


def make_record(student_id: str, day: date, status: DayStatus, **changes) -> AttendanceRecord:
    """Closed record in the given status, with plausible times for present days."""
    fields = dict(
        record_id=None,
        student_id=student_id,
        placement_id="P1",
        work_date=day,
        day_status=status,
        approval_status=ApprovalStatus.PENDING,
    )
    if status in (DayStatus.PRESENT_ON_TIME, DayStatus.PRESENT_LATE, DayStatus.HALF_DAY):
        start = datetime.combine(day, datetime.min.time()).replace(hour=9 if status == DayStatus.PRESENT_LATE else 8)
        hours = 3 if status == DayStatus.HALF_DAY else 8
        fields.update(
            check_in_time=start,
            check_out_time=start + timedelta(hours=hours),
            punctuality=Punctuality.LATE if status == DayStatus.PRESENT_LATE else Punctuality.ON_TIME,
        )
    elif status == DayStatus.INCOMPLETE:
        start = datetime.combine(day, datetime.min.time()).replace(hour=8)
        fields.update(check_in_time=start, check_out_time=start, punctuality=Punctuality.ON_TIME)
    else:
        fields.update(source=RecordSource.ABSENCE_REQUEST, absence_reason="sick")
    fields.update(changes)
    return AttendanceRecord(**fields).with_derived()
