from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import DateRange, now_local, to_local_naive
from ..common.validators import optional_text, require_non_empty
from ..core.constants import SYSTEM_ABSENCE_REASON
from ..core.enums import ApprovalStatus, DayStatus, LegacyStatus, RecordSource, Role
from ..core.exceptions import (
    AuthorizationError,
    DateInPastBeyondWindowError,
    DuplicateCheckInError,
    DuplicateRecordError,
    InvalidTransitionError,
    MissingCommentError,
    NoOpenCheckInError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    ValidationError,
)
from ..core.policy import AttendancePolicy
from .classification import DayEvent, check_override, classify, correct_stale, punctuality_for
from .model import AttendanceRecord, Location
from .repository import AttendanceRepository
from .workflow import ensure_transition

logger = logging.getLogger(__name__)

STUDENT_ROLES = frozenset({Role.STUDENT})
SUPERVISOR_ROLES = frozenset({Role.SUPERVISOR})
REVIEWER_ROLES = frozenset({Role.SUPERVISOR, Role.COORDINATOR})


def require_role(current_role: Role, allowed: Iterable[Role], action: str) -> None:
    if current_role not in allowed:
        logger.warning("Role %s may not %s", getattr(current_role, "value", current_role), action)
        raise AuthorizationError(f"Role {getattr(current_role, 'value', current_role)} may not {action}")


class AttendanceService:
    """Check-in, check-out, absence requests and the review workflow.

    Every mutating call is a single read-modify-write on the record keyed by
    ``(student_id, work_date)``. New records always go through the
    repository's compare-and-create so concurrent writers cannot both insert.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        policy: AttendancePolicy | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._policy = policy or AttendancePolicy()
        self._clock = clock

    @property
    def policy(self) -> AttendancePolicy:
        return self._policy

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    # ---- student operations ----

    def check_in(
        self,
        student_id: str,
        placement_id: str,
        timestamp: datetime | None = None,
        *,
        current_role: Role,
        location: Location | None = None,
        notes: str | None = None,
    ) -> AttendanceRecord:
        require_role(current_role, STUDENT_ROLES, "check in")
        student_id = require_non_empty(student_id, "student_id")
        placement_id = require_non_empty(placement_id, "placement_id")
        timestamp = to_local_naive(timestamp or self._clock())
        notes = optional_text(notes)
        day = timestamp.date()

        existing = self._attendance.get_by_key(student_id, day)
        if existing is None:
            record = AttendanceRecord(
                record_id=None,
                student_id=student_id,
                placement_id=placement_id,
                work_date=day,
                day_status=DayStatus.INCOMPLETE,
                source=RecordSource.CHECK_IN,
                check_in_time=timestamp,
                punctuality=punctuality_for(timestamp, self._policy),
                location=location,
                notes=notes,
            )
            record = record.evolve(day_status=classify(DayEvent.from_record(record, now=timestamp), self._policy))
            try:
                created = self._attendance.create(record)
            except DuplicateRecordError:
                # Someone else created the day first; apply the rules to theirs.
                existing = self._attendance.get_by_key(student_id, day)
                if existing is None:
                    raise
            else:
                logger.info(
                    "Check-in recorded for %s on %s (%s)", student_id, day, created.punctuality.value
                )
                return created

        return self._repeat_check_in(existing, location=location, notes=notes)

    def _repeat_check_in(
        self, existing: AttendanceRecord, *, location: Location | None, notes: str | None
    ) -> AttendanceRecord:
        if existing.check_in_time is None:
            logger.warning("Check-in refused for %s on %s: absence already recorded", *existing.key)
            raise RecordAlreadyExistsError(
                f"An absence is already recorded for {existing.student_id} on {existing.work_date}"
            )
        if existing.check_out_time is not None:
            logger.warning("Check-in refused for %s on %s: day already closed", *existing.key)
            raise DuplicateCheckInError(f"Already checked in and out on {existing.work_date}")

        # Re-check-in before check-out keeps the original check-in time.
        updated = existing.evolve(
            location=location if location is not None else existing.location,
            notes=notes if notes is not None else existing.notes,
        )
        saved = self._attendance.upsert(updated)
        logger.info("Repeated check-in for %s on %s, original time kept", *saved.key)
        return saved

    def check_out(
        self,
        student_id: str,
        timestamp: datetime | None = None,
        *,
        current_role: Role,
        location: Location | None = None,
        notes: str | None = None,
    ) -> AttendanceRecord:
        require_role(current_role, STUDENT_ROLES, "check out")
        student_id = require_non_empty(student_id, "student_id")
        timestamp = to_local_naive(timestamp or self._clock())
        notes = optional_text(notes)
        day = timestamp.date()

        record = self._attendance.get_by_key(student_id, day)
        if record is None or not record.is_open:
            current = record.day_status if record else None
            logger.warning("Check-out refused for %s on %s: no open check-in", student_id, day)
            raise NoOpenCheckInError(f"No open check-in for {student_id} on {day}", current=current)
        if timestamp <= record.check_in_time:
            raise ValidationError("Check-out time must be after check-in time")

        merged_notes = record.notes
        if notes:
            merged_notes = f"{record.notes}\n{notes}" if record.notes else notes

        closed = record.evolve(
            check_out_time=timestamp,
            location=location if location is not None else record.location,
            notes=merged_notes,
        )
        closed = closed.evolve(day_status=classify(DayEvent.from_record(closed, now=timestamp), self._policy))
        saved = self._attendance.upsert(closed)
        logger.info(
            "Check-out recorded for %s on %s: %.2fh, %s",
            student_id,
            day,
            saved.hours_worked,
            saved.day_status.value,
        )
        return saved

    def submit_absence_request(
        self,
        student_id: str,
        placement_id: str,
        day: date,
        reason: str,
        *,
        current_role: Role,
    ) -> AttendanceRecord:
        require_role(current_role, STUDENT_ROLES, "submit absence requests")
        student_id = require_non_empty(student_id, "student_id")
        placement_id = require_non_empty(placement_id, "placement_id")
        reason = require_non_empty(reason, "reason")

        earliest = self._clock().date() - timedelta(days=self._policy.absence_backdate_days)
        if day < earliest:
            logger.warning("Absence request for %s on %s is before %s", student_id, day, earliest)
            raise DateInPastBeyondWindowError(
                f"Absence requests cannot go back more than {self._policy.absence_backdate_days} days"
            )

        record = AttendanceRecord(
            record_id=None,
            student_id=student_id,
            placement_id=placement_id,
            work_date=day,
            day_status=DayStatus.ABSENT,
            source=RecordSource.ABSENCE_REQUEST,
            absence_reason=reason,
        ).with_derived()
        saved = self._create_or_merge_absence(record)
        logger.info("Absence request stored for %s on %s", student_id, day)
        return saved

    def _create_or_merge_absence(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            return self._attendance.create(record)
        except DuplicateRecordError:
            existing = self._attendance.get_by_key(record.student_id, record.work_date)
            if existing is None:
                raise

        if existing.check_in_time is not None or existing.approval_status != ApprovalStatus.PENDING:
            logger.warning("Absence request refused for %s on %s: record exists", *existing.key)
            raise RecordAlreadyExistsError(
                f"A record already exists for {existing.student_id} on {existing.work_date}"
            )
        # A pending absence (e.g. from the batch marker) is replaced by the student's own reason.
        return self._attendance.upsert(
            existing.evolve(
                source=RecordSource.ABSENCE_REQUEST,
                day_status=DayStatus.ABSENT,
                absence_reason=record.absence_reason,
            )
        )

    def create_system_absence(self, student_id: str, placement_id: str, day: date) -> Optional[AttendanceRecord]:
        """Insert an unexcused absence unless any record already exists.

        Returns None when the key is taken; used by the batch marker.
        """
        record = AttendanceRecord(
            record_id=None,
            student_id=require_non_empty(student_id, "student_id"),
            placement_id=require_non_empty(placement_id, "placement_id"),
            work_date=day,
            day_status=DayStatus.ABSENT,
            source=RecordSource.SYSTEM,
            absence_reason=SYSTEM_ABSENCE_REASON,
        ).with_derived()
        try:
            return self._attendance.create(record)
        except DuplicateRecordError:
            return None

    # ---- reviewer operations ----

    def acknowledge(self, record_id: int, reviewer_id: str, *, current_role: Role) -> AttendanceRecord:
        require_role(current_role, SUPERVISOR_ROLES, "acknowledge attendance")
        reviewer_id = require_non_empty(reviewer_id, "reviewer_id")
        record = self._get(record_id)
        saved = self._attendance.upsert(replace(record, reviewed_by=reviewer_id, reviewed_at=self._clock()))
        logger.info("Record %s acknowledged by %s", record_id, reviewer_id)
        return saved

    def approve(
        self,
        record_id: int,
        reviewer_id: str,
        comment: str | None = None,
        *,
        current_role: Role,
    ) -> AttendanceRecord:
        require_role(current_role, REVIEWER_ROLES, "approve attendance")
        reviewer_id = require_non_empty(reviewer_id, "reviewer_id")
        comment = optional_text(comment)
        record = self._get(record_id)
        self._ensure(record, ApprovalStatus.APPROVED)

        if (
            self._policy.require_second_reviewer
            and record.approval_status == ApprovalStatus.NEEDS_REVIEW
            and record.reviewed_by == reviewer_id
        ):
            logger.warning("Record %s: reclassifier %s tried to approve own change", record_id, reviewer_id)
            raise AuthorizationError("A reclassified record must be approved by a different reviewer")

        day_status = record.day_status
        if record.source == RecordSource.ABSENCE_REQUEST and record.day_status == DayStatus.ABSENT:
            day_status = classify(
                DayEvent.from_record(record, now=self._clock(), excuse_granted=True), self._policy
            )

        saved = self._attendance.upsert(
            record.evolve(
                approval_status=ApprovalStatus.APPROVED,
                day_status=day_status,
                reviewed_by=reviewer_id,
                reviewed_at=self._clock(),
                supervisor_comment=comment if comment is not None else record.supervisor_comment,
            )
        )
        logger.info("Record %s approved by %s (%s)", record_id, reviewer_id, saved.day_status.value)
        return saved

    def reject(self, record_id: int, reviewer_id: str, comment: str, *, current_role: Role) -> AttendanceRecord:
        require_role(current_role, REVIEWER_ROLES, "reject attendance")
        reviewer_id = require_non_empty(reviewer_id, "reviewer_id")
        comment = require_non_empty(comment, "comment", error=MissingCommentError)
        record = self._get(record_id)
        self._ensure(record, ApprovalStatus.REJECTED)

        saved = self._attendance.upsert(
            record.evolve(
                approval_status=ApprovalStatus.REJECTED,
                reviewed_by=reviewer_id,
                reviewed_at=self._clock(),
                supervisor_comment=comment,
            )
        )
        logger.info("Record %s rejected by %s", record_id, reviewer_id)
        return saved

    def reclassify(
        self,
        record_id: int,
        reviewer_id: str,
        new_day_status: DayStatus | str,
        comment: str,
        *,
        current_role: Role,
    ) -> AttendanceRecord:
        require_role(current_role, REVIEWER_ROLES, "reclassify attendance")
        reviewer_id = require_non_empty(reviewer_id, "reviewer_id")
        comment = require_non_empty(comment, "comment", error=MissingCommentError)
        try:
            new_status = DayStatus(new_day_status)
        except ValueError:
            raise ValidationError(f"Unknown day status {new_day_status!r}")

        record = self._get(record_id)
        self._ensure(record, ApprovalStatus.NEEDS_REVIEW)
        check_override(record, new_status, self._policy)

        saved = self._attendance.upsert(
            record.evolve(
                day_status=new_status,
                approval_status=ApprovalStatus.NEEDS_REVIEW,
                reviewed_by=reviewer_id,
                reviewed_at=self._clock(),
                supervisor_comment=comment,
            )
        )
        logger.info(
            "Record %s reclassified %s -> %s by %s",
            record_id,
            record.day_status.value,
            new_status.value,
            reviewer_id,
        )
        return saved

    def _ensure(self, record: AttendanceRecord, target: ApprovalStatus) -> None:
        try:
            ensure_transition(record.approval_status, target)
        except InvalidTransitionError:
            logger.warning(
                "Record %s: %s -> %s not allowed", record.record_id, record.approval_status.value, target.value
            )
            raise

    # ---- reads ----

    @staticmethod
    def ensure_can_view_student(student_id: str, *, viewer_id: str, current_role: Role) -> None:
        """Students only see their own attendance; staff roles see anyone's."""
        if current_role == Role.STUDENT and str(viewer_id) != str(student_id):
            raise AuthorizationError("Students can only view their own attendance")

    @staticmethod
    def ensure_can_view_placement(
        placement_id: str, *, viewer_placement_id: str | None, current_role: Role
    ) -> None:
        if current_role == Role.STUDENT:
            raise AuthorizationError("Students cannot view placement attendance")
        if current_role == Role.SUPERVISOR and viewer_placement_id and viewer_placement_id != placement_id:
            raise AuthorizationError("Supervisors can only view their own placement")

    def get_record(self, record_id: int) -> AttendanceRecord:
        return self._get(record_id)

    def today(self, student_id: str) -> Optional[AttendanceRecord]:
        record = self._attendance.get_by_key(student_id, self._clock().date())
        return self._refresh(record) if record else None

    def history(
        self,
        student_id: str,
        date_range: DateRange | None = None,
        legacy_status: LegacyStatus | str | None = None,
    ) -> list[AttendanceRecord]:
        """Student's records, oldest first, optionally filtered by present/late/absent."""
        wanted = None
        if legacy_status:
            try:
                wanted = LegacyStatus(legacy_status)
            except ValueError:
                raise ValidationError(f"Unknown status filter {legacy_status!r}")
        records = [self._refresh(r) for r in self._attendance.query_by_student(student_id, date_range)]
        if wanted is not None:
            records = [r for r in records if r.legacy_status == wanted]
        return records

    def placement_records(self, placement_id: str, date_range: DateRange | None = None) -> list[AttendanceRecord]:
        return [self._refresh(r) for r in self._attendance.query_by_placement(placement_id, date_range)]

    def correct_stale_for_day(self, day: date) -> int:
        """Persist the INCOMPLETE correction for the day's stale open check-ins."""
        fixed = 0
        for record in self._attendance.query_by_date(day):
            if self._refresh(record) is not record:
                fixed += 1
        return fixed

    def _get(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(f"Attendance record {record_id} not found")
        return self._refresh(record)

    def _refresh(self, record: AttendanceRecord) -> AttendanceRecord:
        corrected = correct_stale(record, self._clock(), self._policy)
        if corrected is record:
            return record
        logger.info("Stale check-in for %s on %s marked INCOMPLETE", *record.key)
        return self._attendance.upsert(corrected)
