from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..common.datetime_utils import DateRange
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_key(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert only if ``(student_id, work_date)`` is free.

        Raises DuplicateRecordError when another writer got there first.
        """

        raise NotImplementedError

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert, or update the record already stored under the natural key (keeping its id)."""

        raise NotImplementedError

    def query_by_student(self, student_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        """Records ordered by work_date ascending."""

        raise NotImplementedError

    def query_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def query_by_placement(self, placement_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
