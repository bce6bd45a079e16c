from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import hours_between
from ..core.enums import ApprovalStatus, DayStatus, LegacyStatus, Punctuality, RecordSource

_ABSENCE_STATUSES = {DayStatus.ABSENT, DayStatus.EXCUSED_ABSENCE}


@dataclass(frozen=True)
class Location:
    """Where the student says they are. Stored as given, never verified."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Location"]:
        if not data:
            return None
        lat = data.get("latitude")
        lng = data.get("longitude")
        return cls(
            latitude=float(lat) if lat is not None else None,
            longitude=float(lng) if lng is not None else None,
            address=data.get("address") or None,
        )

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance for one calendar day.

    ``(student_id, work_date)`` is the natural key. ``hours_worked``,
    ``is_late_entry`` and ``is_incomplete`` are derived; call
    ``with_derived()`` after changing the fields they depend on.
    """

    record_id: Optional[int]
    student_id: str
    placement_id: str
    work_date: date
    day_status: DayStatus
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    source: RecordSource = RecordSource.CHECK_IN
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: float = 0.0
    punctuality: Optional[Punctuality] = None
    location: Optional[Location] = None
    notes: Optional[str] = None
    absence_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    supervisor_comment: Optional[str] = None
    is_late_entry: bool = False
    is_incomplete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, date]:
        return (self.student_id, self.work_date)

    @property
    def is_open(self) -> bool:
        """Checked in, not yet checked out."""
        return self.check_in_time is not None and self.check_out_time is None

    @property
    def is_absence(self) -> bool:
        return self.check_in_time is None

    @property
    def legacy_status(self) -> LegacyStatus:
        if self.day_status in _ABSENCE_STATUSES or self.check_in_time is None:
            return LegacyStatus.ABSENT
        if self.day_status == DayStatus.PRESENT_LATE or self.punctuality == Punctuality.LATE:
            return LegacyStatus.LATE
        return LegacyStatus.PRESENT

    def with_derived(self) -> "AttendanceRecord":
        return replace(
            self,
            hours_worked=hours_between(self.check_in_time, self.check_out_time),
            is_late_entry=self.punctuality == Punctuality.LATE,
            is_incomplete=self.day_status == DayStatus.INCOMPLETE,
        )

    def evolve(self, **changes: Any) -> "AttendanceRecord":
        """Copy with changes applied and derived fields recomputed."""
        return replace(self, **changes).with_derived()

    def to_dict(self) -> dict:
        def ts(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.record_id,
            "student_id": self.student_id,
            "placement_id": self.placement_id,
            "date": self.work_date.strftime("%Y-%m-%d"),
            "check_in_time": ts(self.check_in_time),
            "check_out_time": ts(self.check_out_time),
            "hours_worked": round(self.hours_worked, 2),
            "punctuality": self.punctuality.value if self.punctuality else None,
            "day_status": self.day_status.value,
            "approval_status": self.approval_status.value,
            "source": self.source.value,
            "status": self.legacy_status.value,
            "location": self.location.to_dict() if self.location else None,
            "notes": self.notes or "",
            "absence_reason": self.absence_reason,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": ts(self.reviewed_at),
            "supervisor_comment": self.supervisor_comment,
            "is_late_entry": self.is_late_entry,
            "is_incomplete": self.is_incomplete,
        }
