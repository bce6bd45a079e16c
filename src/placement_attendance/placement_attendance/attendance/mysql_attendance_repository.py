from __future__ import annotations

import json
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..common.datetime_utils import DateRange
from ..core.enums import ApprovalStatus, DayStatus, Punctuality, RecordSource
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord, Location
from .repository import AttendanceRepository

_COLUMNS = (
    "record_id, student_id, placement_id, work_date, day_status, approval_status, source, "
    "check_in_time, check_out_time, hours_worked, punctuality, location_json, notes, absence_reason, "
    "reviewed_by, reviewed_at, supervisor_comment, is_late_entry, is_incomplete, created_at, updated_at"
)

_WRITE_COLUMNS = (
    "student_id",
    "placement_id",
    "work_date",
    "day_status",
    "approval_status",
    "source",
    "check_in_time",
    "check_out_time",
    "hours_worked",
    "punctuality",
    "location_json",
    "notes",
    "absence_reason",
    "reviewed_by",
    "reviewed_at",
    "supervisor_comment",
    "is_late_entry",
    "is_incomplete",
)

# Natural key columns never change on update.
_UPDATE_COLUMNS = tuple(c for c in _WRITE_COLUMNS if c not in ("student_id", "work_date"))


def row_to_record(r: Mapping[str, Any]) -> AttendanceRecord:
    location = None
    if r.get("location_json"):
        location = Location.from_dict(json.loads(r["location_json"]))
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        student_id=str(r["student_id"]),
        placement_id=str(r["placement_id"]),
        work_date=r["work_date"],
        day_status=DayStatus(r["day_status"]),
        approval_status=ApprovalStatus(r["approval_status"]),
        source=RecordSource(r["source"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        hours_worked=float(r.get("hours_worked") or 0.0),
        punctuality=Punctuality(r["punctuality"]) if r.get("punctuality") else None,
        location=location,
        notes=r.get("notes"),
        absence_reason=r.get("absence_reason"),
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        supervisor_comment=r.get("supervisor_comment"),
        is_late_entry=bool(r.get("is_late_entry")),
        is_incomplete=bool(r.get("is_incomplete")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def record_to_params(record: AttendanceRecord) -> tuple:
    values = {
        "student_id": record.student_id,
        "placement_id": record.placement_id,
        "work_date": record.work_date,
        "day_status": record.day_status.value,
        "approval_status": record.approval_status.value,
        "source": record.source.value,
        "check_in_time": record.check_in_time,
        "check_out_time": record.check_out_time,
        "hours_worked": record.hours_worked,
        "punctuality": record.punctuality.value if record.punctuality else None,
        "location_json": json.dumps(record.location.to_dict()) if record.location else None,
        "notes": record.notes,
        "absence_reason": record.absence_reason,
        "reviewed_by": record.reviewed_by,
        "reviewed_at": record.reviewed_at,
        "supervisor_comment": record.supervisor_comment,
        "is_late_entry": int(record.is_late_entry),
        "is_incomplete": int(record.is_incomplete),
    }
    return tuple(values[c] for c in _WRITE_COLUMNS)


class MySQLAttendanceRepository(AttendanceRepository):
    """``UNIQUE (student_id, work_date)`` makes ``create`` a compare-and-create."""

    _INSERT = (
        f"INSERT INTO attendance_records({', '.join(_WRITE_COLUMNS)}) "
        f"VALUES({', '.join(['%s'] * len(_WRITE_COLUMNS))})"
    )
    _UPSERT = _INSERT + " ON DUPLICATE KEY UPDATE " + ", ".join(f"{c}=VALUES({c})" for c in _UPDATE_COLUMNS)

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return row_to_record(r) if r else None

    def get_by_key(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE student_id=%s AND work_date=%s",
                (student_id, work_date),
            )
            r = fetchone(cur)
            return row_to_record(r) if r else None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(self._INSERT, record_to_params(record))
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateRecordError(record.student_id, record.work_date) from e
            raise
        return self.get_by_key(record.student_id, record.work_date)

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(self._UPSERT, record_to_params(record))
        return self.get_by_key(record.student_id, record.work_date)

    def query_by_student(self, student_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        return self._select("student_id=%s", (student_id,), date_range)

    def query_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        return self._select("work_date=%s", (work_date,), None)

    def query_by_placement(self, placement_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        return self._select("placement_id=%s", (placement_id,), date_range)

    def _select(self, where: str, params: tuple, date_range: Optional[DateRange]) -> list[AttendanceRecord]:
        if date_range is not None:
            where += " AND work_date BETWEEN %s AND %s"
            params = params + (date_range.start, date_range.end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE {where} ORDER BY work_date ASC, student_id ASC",
                params,
            )
            return [row_to_record(r) for r in fetchall(cur)]
