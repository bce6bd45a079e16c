from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

from ..common.calendar import WorkCalendar
from ..core.enums import MarkOutcome, Role
from .repository import AttendanceRepository
from .service import AttendanceService, require_role

logger = logging.getLogger(__name__)

MARKER_ROLES = frozenset({Role.COORDINATOR, Role.ADMIN})


@dataclass(frozen=True)
class MarkResult:
    student_id: str
    outcome: MarkOutcome
    record_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "outcome": self.outcome.value,
            "record_id": self.record_id,
            "error": self.error,
        }


@dataclass
class MarkReport:
    day: date
    results: list[MarkResult] = field(default_factory=list)
    skipped_non_working_day: bool = False
    stale_corrected: int = 0

    def _count(self, outcome: MarkOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def created(self) -> int:
        return self._count(MarkOutcome.CREATED)

    @property
    def skipped(self) -> int:
        return self._count(MarkOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(MarkOutcome.FAILED)

    def to_dict(self) -> dict:
        return {
            "date": self.day.strftime("%Y-%m-%d"),
            "non_working_day": self.skipped_non_working_day,
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "stale_corrected": self.stale_corrected,
            "results": [r.to_dict() for r in self.results],
        }


class AbsenceMarker:
    """End-of-day sweep that back-fills ABSENT records.

    Safe to run repeatedly and alongside live check-ins: creation goes
    through the store's compare-and-create, so an existing record always
    wins and the student is reported as skipped.
    """

    def __init__(
        self,
        service: AttendanceService,
        attendance: AttendanceRepository,
        *,
        calendar: WorkCalendar | None = None,
    ):
        self._service = service
        self._attendance = attendance
        self._calendar = calendar or WorkCalendar.every_day()

    def mark_absentees(
        self,
        day: date | None = None,
        expected: Mapping[str, str] | None = None,
        *,
        current_role: Role,
    ) -> MarkReport:
        """``expected`` maps each expected student id to its placement id."""
        require_role(current_role, MARKER_ROLES, "mark absentees")
        day = day or self._service.clock().date()
        report = MarkReport(day=day)

        if not self._calendar.is_working_day(day):
            logger.info("Absence sweep skipped: %s is not a working day", day)
            report.skipped_non_working_day = True
            return report

        report.stale_corrected = self._service.correct_stale_for_day(day)

        for student_id, placement_id in (expected or {}).items():
            try:
                if self._attendance.get_by_key(student_id, day) is not None:
                    report.results.append(MarkResult(student_id, MarkOutcome.SKIPPED))
                    continue
                created = self._service.create_system_absence(student_id, placement_id, day)
            except Exception as exc:
                logger.exception("Absence sweep failed for %s on %s", student_id, day)
                report.results.append(MarkResult(student_id, MarkOutcome.FAILED, error=str(exc)))
                continue

            if created is None:
                # Lost the race to a concurrent writer.
                report.results.append(MarkResult(student_id, MarkOutcome.SKIPPED))
            else:
                report.results.append(MarkResult(student_id, MarkOutcome.CREATED, record_id=created.record_id))

        logger.info(
            "Absence sweep for %s: %d created, %d skipped, %d failed",
            day,
            report.created,
            report.skipped,
            report.failed,
        )
        return report
