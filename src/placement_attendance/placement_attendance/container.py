from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .attendance.absence_marker import AbsenceMarker
from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.calendar import WorkCalendar
from .common.datetime_utils import now_local, parse_iso_date
from .core.constants import DEFAULT_WEEKEND_DAYS
from .core.policy import AttendancePolicy
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import AttendanceSummaryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    attendance_repo: AttendanceRepository

    policy: AttendancePolicy
    calendar: WorkCalendar

    attendance_service: AttendanceService
    summary_service: AttendanceSummaryService
    absence_marker: AbsenceMarker


def build_calendar(settings: Any) -> WorkCalendar:
    holidays = [parse_iso_date(str(d)) for d in getattr(settings, "HOLIDAYS", ()) if str(d).strip()]
    return WorkCalendar.build(
        weekend_days=getattr(settings, "WEEKEND_DAYS", DEFAULT_WEEKEND_DAYS),
        holidays=holidays,
    )


def build_container(
    *,
    settings: Any,
    repository: Optional[AttendanceRepository] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Wire the store, policy and services from a settings module.

    ``STORE_BACKEND`` picks ``mysql`` (default) or ``memory``; pass
    ``repository`` to supply one directly.
    """
    conn: Optional[DatabaseConnection] = None
    if repository is None:
        backend = str(getattr(settings, "STORE_BACKEND", "mysql")).lower()
        if backend == "memory":
            repository = InMemoryAttendanceRepository(clock=clock)
        elif backend == "mysql":
            conn = DatabaseConnection.get_instance(DBConfig.from_mapping(getattr(settings, "DB_CONFIG")))
            repository = MySQLAttendanceRepository(conn)
        else:
            raise ValueError(f"Unknown STORE_BACKEND {backend!r} (expected 'mysql' or 'memory')")
        logger.info("Attendance store: %s", backend)

    policy = AttendancePolicy.from_settings(settings)
    calendar = build_calendar(settings)

    attendance_service = AttendanceService(repository, policy=policy, clock=clock)
    summary_service = AttendanceSummaryService(repository, policy=policy, calendar=calendar, clock=clock)
    absence_marker = AbsenceMarker(attendance_service, repository, calendar=calendar)

    return Container(
        conn=conn,
        attendance_repo=repository,
        policy=policy,
        calendar=calendar,
        attendance_service=attendance_service,
        summary_service=summary_service,
        absence_marker=absence_marker,
    )
