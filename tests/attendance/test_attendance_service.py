from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from placement_attendance.attendance.model import Location
from placement_attendance.attendance.service import AttendanceService
from placement_attendance.core.enums import (
    ApprovalStatus,
    DayStatus,
    LegacyStatus,
    Punctuality,
    RecordSource,
    Role,
)
from placement_attendance.core.exceptions import (
    AuthorizationError,
    DateInPastBeyondWindowError,
    DuplicateCheckInError,
    InvalidTransitionError,
    MissingCommentError,
    NoOpenCheckInError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    ValidationError,
)
from placement_attendance.core.policy import AttendancePolicy

from conftest import DAY

STUDENT = Role.STUDENT
SUPERVISOR = Role.SUPERVISOR
COORDINATOR = Role.COORDINATOR


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def test_check_in_creates_pending_provisional_record(service, repo):
    record = service.check_in("s1", "P1", at(8, 10), current_role=STUDENT)

    assert record.record_id is not None
    assert record.punctuality == Punctuality.ON_TIME
    assert record.day_status == DayStatus.INCOMPLETE
    assert record.approval_status == ApprovalStatus.PENDING
    assert record.source == RecordSource.CHECK_IN
    assert repo.get_by_key("s1", DAY) == record


def test_late_check_in_then_full_day_is_present_late(repo, clock):
    policy = AttendancePolicy(work_start=time(8, 0), grace_minutes=0)
    svc = AttendanceService(repo, policy=policy, clock=clock)

    svc.check_in("s1", "P1", at(8, 5), current_role=STUDENT)
    record = svc.check_out("s1", at(16, 10), current_role=STUDENT)

    assert record.punctuality == Punctuality.LATE
    assert record.is_late_entry is True
    assert record.day_status == DayStatus.PRESENT_LATE
    assert record.legacy_status == LegacyStatus.LATE


def test_short_day_is_half_day(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    record = service.check_out("s1", at(10, 0), current_role=STUDENT)

    assert record.hours_worked == pytest.approx(2.0)
    assert record.day_status == DayStatus.HALF_DAY


def test_repeat_check_in_keeps_original_time(service):
    first = service.check_in("s1", "P1", at(8, 0), current_role=STUDENT, notes="bus")
    again = service.check_in(
        "s1",
        "P1",
        at(8, 30),
        current_role=STUDENT,
        location=Location(latitude=1.5, longitude=2.5, address="Gate B"),
        notes="at the gate",
    )

    assert again.record_id == first.record_id
    assert again.check_in_time == at(8, 0)
    assert again.punctuality == Punctuality.ON_TIME
    assert again.notes == "at the gate"
    assert again.location.address == "Gate B"


def test_check_in_on_closed_day_is_duplicate(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    service.check_out("s1", at(16, 0), current_role=STUDENT)

    with pytest.raises(DuplicateCheckInError):
        service.check_in("s1", "P1", at(17, 0), current_role=STUDENT)


def test_check_in_on_absence_day_conflicts(service):
    service.submit_absence_request("s1", "P1", DAY, "dentist", current_role=STUDENT)

    with pytest.raises(RecordAlreadyExistsError):
        service.check_in("s1", "P1", at(9, 0), current_role=STUDENT)


def test_only_students_check_in(service):
    with pytest.raises(AuthorizationError):
        service.check_in("s1", "P1", at(8, 0), current_role=SUPERVISOR)


def test_check_out_without_open_check_in(service):
    with pytest.raises(NoOpenCheckInError) as exc:
        service.check_out("s1", at(16, 0), current_role=STUDENT)
    assert exc.value.current is None

    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    service.check_out("s1", at(16, 0), current_role=STUDENT)

    with pytest.raises(NoOpenCheckInError) as exc:
        service.check_out("s1", at(17, 0), current_role=STUDENT)
    assert exc.value.current == DayStatus.PRESENT_ON_TIME


def test_check_out_before_check_in_is_rejected(service):
    service.check_in("s1", "P1", at(9, 0), current_role=STUDENT)

    with pytest.raises(ValidationError):
        service.check_out("s1", at(8, 59), current_role=STUDENT)


def test_check_out_appends_notes(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT, notes="morning shift")
    record = service.check_out("s1", at(15, 0), current_role=STUDENT, notes="left on time")

    assert record.notes == "morning shift\nleft on time"


def test_absence_request_creates_pending_absent(service, clock):
    record = service.submit_absence_request("s1", "P1", DAY + timedelta(days=2), "exam", current_role=STUDENT)

    assert record.day_status == DayStatus.ABSENT
    assert record.approval_status == ApprovalStatus.PENDING
    assert record.absence_reason == "exam"
    assert record.source == RecordSource.ABSENCE_REQUEST


def test_absence_request_backdate_window(service):
    window_edge = DAY - timedelta(days=7)
    assert service.submit_absence_request("s1", "P1", window_edge, "flu", current_role=STUDENT)

    with pytest.raises(DateInPastBeyondWindowError):
        service.submit_absence_request("s1", "P1", DAY - timedelta(days=8), "flu", current_role=STUDENT)


def test_absence_request_needs_reason(service):
    with pytest.raises(ValidationError):
        service.submit_absence_request("s1", "P1", DAY, "   ", current_role=STUDENT)


def test_absence_request_over_check_in_conflicts(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)

    with pytest.raises(RecordAlreadyExistsError):
        service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)


def test_absence_request_replaces_pending_system_absence(service):
    system = service.create_system_absence("s1", "P1", DAY)
    record = service.submit_absence_request("s1", "P1", DAY, "hospital visit", current_role=STUDENT)

    assert record.record_id == system.record_id
    assert record.source == RecordSource.ABSENCE_REQUEST
    assert record.absence_reason == "hospital visit"


def test_absence_request_after_decision_conflicts(service):
    record = service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)
    service.reject(record.record_id, "sup1", "no certificate", current_role=SUPERVISOR)

    with pytest.raises(RecordAlreadyExistsError):
        service.submit_absence_request("s1", "P1", DAY, "sick again", current_role=STUDENT)


def test_approve_excuses_absence_then_reclassify_reopens(service):
    request = service.submit_absence_request("s1", "P1", DAY, "funeral", current_role=STUDENT)

    approved = service.approve(request.record_id, "sup1", "ok", current_role=SUPERVISOR)
    assert approved.approval_status == ApprovalStatus.APPROVED
    assert approved.day_status == DayStatus.EXCUSED_ABSENCE
    assert approved.reviewed_by == "sup1"
    assert approved.supervisor_comment == "ok"

    reopened = service.reclassify(
        request.record_id, "coord1", DayStatus.HALF_DAY, "came in the afternoon", current_role=COORDINATOR
    )
    assert reopened.approval_status == ApprovalStatus.NEEDS_REVIEW
    assert reopened.day_status == DayStatus.HALF_DAY


def test_approving_system_absence_does_not_excuse_it(service):
    absence = service.create_system_absence("s1", "P1", DAY)

    approved = service.approve(absence.record_id, "sup1", current_role=SUPERVISOR)

    assert approved.day_status == DayStatus.ABSENT
    assert approved.approval_status == ApprovalStatus.APPROVED


def test_reclassified_record_needs_a_second_reviewer(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    record = service.check_out("s1", at(16, 0), current_role=STUDENT)
    service.reclassify(record.record_id, "sup1", "HALF_DAY", "long lunch", current_role=SUPERVISOR)

    with pytest.raises(AuthorizationError):
        service.approve(record.record_id, "sup1", current_role=SUPERVISOR)

    approved = service.approve(record.record_id, "coord1", current_role=COORDINATOR)
    assert approved.approval_status == ApprovalStatus.APPROVED
    assert approved.day_status == DayStatus.HALF_DAY


def test_terminal_records_cannot_be_decided_again(service):
    record = service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)
    service.approve(record.record_id, "sup1", current_role=SUPERVISOR)

    with pytest.raises(InvalidTransitionError) as exc:
        service.reject(record.record_id, "sup1", "changed my mind", current_role=SUPERVISOR)
    assert exc.value.current == ApprovalStatus.APPROVED

    with pytest.raises(InvalidTransitionError):
        service.approve(record.record_id, "sup2", current_role=SUPERVISOR)


def test_reject_requires_comment(service):
    record = service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)

    with pytest.raises(MissingCommentError):
        service.reject(record.record_id, "sup1", "  ", current_role=SUPERVISOR)

    rejected = service.reject(record.record_id, "sup1", "no proof", current_role=SUPERVISOR)
    assert rejected.approval_status == ApprovalStatus.REJECTED
    assert rejected.day_status == DayStatus.ABSENT


def test_reclassify_validates_input(service):
    record = service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)

    with pytest.raises(MissingCommentError):
        service.reclassify(record.record_id, "sup1", DayStatus.HALF_DAY, "", current_role=SUPERVISOR)
    with pytest.raises(ValidationError):
        service.reclassify(record.record_id, "sup1", "SICK_DAY", "typo", current_role=SUPERVISOR)
    with pytest.raises(AuthorizationError):
        service.reclassify(record.record_id, "s1", DayStatus.HALF_DAY, "nice try", current_role=STUDENT)


def test_acknowledge_only_stamps_reviewer(service, clock):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    record = service.check_out("s1", at(16, 0), current_role=STUDENT)

    acked = service.acknowledge(record.record_id, "sup1", current_role=SUPERVISOR)

    assert acked.approval_status == ApprovalStatus.PENDING
    assert acked.reviewed_by == "sup1"
    assert acked.reviewed_at == clock.now

    with pytest.raises(AuthorizationError):
        service.acknowledge(record.record_id, "c1", current_role=COORDINATOR)


def test_unknown_record_is_not_found(service):
    with pytest.raises(RecordNotFoundError):
        service.approve(999, "sup1", current_role=SUPERVISOR)


def test_history_filters_by_legacy_status(service, clock):
    for offset, hour in ((0, 8), (1, 10), (2, 8)):
        day = DAY + timedelta(days=offset)
        service.check_in("s1", "P1", at(hour, 0, day), current_role=STUDENT)
        service.check_out("s1", at(hour + 8, 0, day), current_role=STUDENT)

    all_records = service.history("s1")
    late = service.history("s1", legacy_status="late")

    assert [r.work_date for r in all_records] == [DAY, DAY + timedelta(days=1), DAY + timedelta(days=2)]
    assert [r.work_date for r in late] == [DAY + timedelta(days=1)]

    with pytest.raises(ValidationError):
        service.history("s1", legacy_status="sleeping")


def test_today_returns_current_record(service, clock):
    assert service.today("s1") is None
    service.check_in("s1", "P1", clock.now, current_role=STUDENT)
    assert service.today("s1").work_date == DAY


def test_reads_persist_stale_correction(service, repo, clock):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    record = service.check_out("s1", at(16, 0), current_role=STUDENT)
    # Reopen it as a present day that was never closed.
    repo.upsert(record.evolve(check_out_time=None, day_status=DayStatus.PRESENT_ON_TIME))

    clock.advance(days=2)
    refreshed = service.get_record(record.record_id)

    assert refreshed.day_status == DayStatus.INCOMPLETE
    assert repo.get_by_id(record.record_id).day_status == DayStatus.INCOMPLETE


def test_view_rules():
    AttendanceService.ensure_can_view_student("s1", viewer_id="s1", current_role=STUDENT)
    AttendanceService.ensure_can_view_student("s1", viewer_id="sup1", current_role=SUPERVISOR)
    with pytest.raises(AuthorizationError):
        AttendanceService.ensure_can_view_student("s2", viewer_id="s1", current_role=STUDENT)

    AttendanceService.ensure_can_view_placement("P1", viewer_placement_id="P1", current_role=SUPERVISOR)
    with pytest.raises(AuthorizationError):
        AttendanceService.ensure_can_view_placement("P2", viewer_placement_id="P1", current_role=SUPERVISOR)
    with pytest.raises(AuthorizationError):
        AttendanceService.ensure_can_view_placement("P1", viewer_placement_id=None, current_role=STUDENT)


def test_offset_timestamps_are_stored_as_local_time(service, clock):
    check_in = datetime.combine(DAY, time(8, 0)).astimezone()
    assert check_in.tzinfo is not None

    record = service.check_in("s1", "P1", check_in, current_role=STUDENT)
    assert record.check_in_time == datetime.combine(DAY, time(8, 0))
    assert record.check_in_time.tzinfo is None

    assert service.today("s1").record_id == record.record_id
    assert len(service.history("s1")) == 1

    clock.now = at(16, 0)
    closed = service.check_out("s1", current_role=STUDENT)
    assert closed.day_status == DayStatus.PRESENT_ON_TIME
    assert closed.hours_worked == pytest.approx(8.0)


def test_stale_correction_keeps_reviewer_override(service, repo, clock):
    record = service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    service.reclassify(record.record_id, "sup1", DayStatus.ABSENT, "badge left at the desk", current_role=SUPERVISOR)

    clock.advance(days=2)
    refreshed = service.get_record(record.record_id)

    assert refreshed.day_status == DayStatus.ABSENT
    assert refreshed.approval_status == ApprovalStatus.NEEDS_REVIEW
    assert repo.get_by_id(record.record_id).day_status == DayStatus.ABSENT


def _absence_request(service):
    return service.submit_absence_request("s1", "P1", DAY, "sick", current_role=STUDENT)


def _open_check_in(service):
    return service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)


def _short_day(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    return service.check_out("s1", at(10, 0), current_role=STUDENT)


@pytest.mark.parametrize(
    "make, new_status",
    [
        (_absence_request, DayStatus.PRESENT_ON_TIME),
        (_absence_request, DayStatus.PRESENT_LATE),
        (_open_check_in, DayStatus.PRESENT_ON_TIME),
        (_open_check_in, DayStatus.HALF_DAY),
        (_short_day, DayStatus.PRESENT_LATE),
    ],
)
def test_reclassify_refuses_status_the_times_cannot_back(service, repo, make, new_status):
    record = make(service)

    with pytest.raises(ValidationError):
        service.reclassify(record.record_id, "sup1", new_status, "override", current_role=SUPERVISOR)

    stored = repo.get_by_id(record.record_id)
    assert stored.day_status == record.day_status
    assert stored.approval_status == ApprovalStatus.PENDING


def test_reclassify_allows_downgrades_and_absence_to_half_day(service):
    service.check_in("s1", "P1", at(8, 0), current_role=STUDENT)
    full = service.check_out("s1", at(16, 0), current_role=STUDENT)
    request = service.submit_absence_request("s1", "P1", DAY + timedelta(days=1), "exam", current_role=STUDENT)

    assert service.reclassify(
        full.record_id, "sup1", DayStatus.HALF_DAY, "long lunch", current_role=SUPERVISOR
    ).day_status == DayStatus.HALF_DAY
    assert service.reclassify(
        request.record_id, "sup1", DayStatus.HALF_DAY, "came after the exam", current_role=SUPERVISOR
    ).day_status == DayStatus.HALF_DAY
