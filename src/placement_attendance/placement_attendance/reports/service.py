from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..attendance.classification import correct_stale
from ..attendance.repository import AttendanceRepository
from ..common.calendar import WorkCalendar
from ..common.datetime_utils import DateRange, now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import ApprovalStatus, DayStatus, LegacyStatus
from ..core.policy import AttendancePolicy
from .detectors.base import Anomaly, AnomalyDetector
from .detectors.standard_detectors import default_detectors
from .scan import WindowScan, scan_window

logger = logging.getLogger(__name__)


def _percent(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(100.0 * numerator / denominator, 2)


@dataclass(frozen=True)
class AttendanceSummary:
    student_id: str
    date_range: DateRange
    day_counts: dict[DayStatus, int]
    approval_counts: dict[ApprovalStatus, int]
    total_records: int
    expected_days: int
    completion_percentage: float
    punctuality_rate: float
    anomalies: tuple[Anomaly, ...]

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "start_date": self.date_range.start.strftime("%Y-%m-%d"),
            "end_date": self.date_range.end.strftime("%Y-%m-%d"),
            "day_status_counts": {k.value: v for k, v in self.day_counts.items()},
            "approval_status_counts": {k.value: v for k, v in self.approval_counts.items()},
            "total_records": self.total_records,
            "expected_days": self.expected_days,
            "completion_percentage": self.completion_percentage,
            "punctuality_rate": self.punctuality_rate,
            "anomalies": [a.to_dict() for a in self.anomalies],
        }


@dataclass(frozen=True)
class StudentStats:
    total: int
    present: int
    late: int
    absent: int
    attendance_rate: float
    current_streak: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "present": self.present,
            "late": self.late,
            "absent": self.absent,
            "attendance_rate": self.attendance_rate,
            "current_streak": self.current_streak,
        }


class AttendanceSummaryService:
    """Read-only reporting over a student's records.

    Stale open check-ins are corrected in the in-memory view only; this
    service never writes to the store.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        policy: Optional[AttendancePolicy] = None,
        calendar: Optional[WorkCalendar] = None,
        detectors: Optional[Sequence[AnomalyDetector]] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._policy = policy or AttendancePolicy()
        self._calendar = calendar or WorkCalendar.every_day()
        self._detectors = list(detectors) if detectors is not None else default_detectors()
        self._clock = clock

    def _records(self, student_id: str, date_range: Optional[DateRange] = None):
        now = self._clock()
        records = self._attendance.query_by_student(student_id, date_range)
        return [correct_stale(r, now, self._policy) for r in sorted(records, key=lambda r: r.work_date)]

    def scan(self, student_id: str, date_range: DateRange) -> WindowScan:
        return scan_window(self._records(student_id, date_range), date_range, self._calendar)

    def detect(self, scan: WindowScan) -> list[Anomaly]:
        found = []
        for detector in self._detectors:
            anomaly = detector.detect(scan, self._policy)
            if anomaly is not None:
                found.append(anomaly)
        return found

    def summarize(self, student_id: str, date_range: DateRange) -> AttendanceSummary:
        scan = self.scan(student_id, date_range)
        anomalies = self.detect(scan)

        summary = AttendanceSummary(
            student_id=student_id,
            date_range=date_range,
            day_counts=dict(scan.day_counts),
            approval_counts=dict(scan.approval_counts),
            total_records=scan.total_records,
            expected_days=scan.expected_days,
            completion_percentage=_percent(scan.attended_days, scan.expected_days),
            punctuality_rate=_percent(scan.count(DayStatus.PRESENT_ON_TIME), scan.present_days),
            anomalies=tuple(anomalies),
        )
        if anomalies:
            logger.info(
                "Summary for %s %s..%s: %s",
                student_id,
                date_range.start,
                date_range.end,
                ", ".join(a.type.value for a in anomalies),
            )
        return summary

    def stats(self, student_id: str) -> StudentStats:
        """All-time present/late/absent counts plus the current present streak."""
        records = self._records(student_id)
        counts = {status: 0 for status in LegacyStatus}
        for r in records:
            counts[r.legacy_status] += 1

        total = len(records)
        present = counts[LegacyStatus.PRESENT]
        late = counts[LegacyStatus.LATE]

        streak = 0
        for r in reversed(records[-DEFAULT_HISTORY_LIMIT:]):
            if r.legacy_status == LegacyStatus.ABSENT:
                break
            streak += 1

        return StudentStats(
            total=total,
            present=present,
            late=late,
            absent=counts[LegacyStatus.ABSENT],
            attendance_rate=_percent(present + late, total),
            current_streak=streak,
        )
