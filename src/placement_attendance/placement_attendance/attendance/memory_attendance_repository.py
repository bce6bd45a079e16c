from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import DateRange, now_local
from ..core.exceptions import DuplicateRecordError
from .model import AttendanceRecord
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local store keyed by ``(student_id, work_date)``.

    A single lock makes compare-and-create atomic, so a check-in and the
    batch marker racing on the same key cannot both insert.
    """

    def __init__(self, *, clock: Callable = now_local):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[str, date], AttendanceRecord] = {}
        self._key_by_id: dict[int, tuple[str, date]] = {}
        self._next_id = 0
        self._clock = clock

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            key = self._key_by_id.get(int(record_id))
            return self._by_key.get(key) if key else None

    def get_by_key(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_key.get((student_id, work_date))

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            if record.key in self._by_key:
                raise DuplicateRecordError(record.student_id, record.work_date)
            return self._insert(record)

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            existing = self._by_key.get(record.key)
            if existing is None:
                return self._insert(record)
            stored = replace(
                record,
                record_id=existing.record_id,
                created_at=existing.created_at,
                updated_at=self._clock(),
            )
            self._by_key[record.key] = stored
            return stored

    def query_by_student(self, student_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        return self._select(lambda r: r.student_id == student_id, date_range)

    def query_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        return self._select(lambda r: r.work_date == work_date, None)

    def query_by_placement(self, placement_id: str, date_range: Optional[DateRange] = None) -> Sequence[AttendanceRecord]:
        return self._select(lambda r: r.placement_id == placement_id, date_range)

    def _insert(self, record: AttendanceRecord) -> AttendanceRecord:
        self._next_id += 1
        now = self._clock()
        stored = replace(record, record_id=self._next_id, created_at=now, updated_at=now)
        self._by_key[stored.key] = stored
        self._key_by_id[stored.record_id] = stored.key
        return stored

    def _select(self, predicate, date_range: Optional[DateRange]) -> list[AttendanceRecord]:
        with self._lock:
            items = [
                r
                for r in self._by_key.values()
                if predicate(r) and (date_range is None or date_range.contains(r.work_date))
            ]
        items.sort(key=lambda r: (r.work_date, r.student_id))
        return items
