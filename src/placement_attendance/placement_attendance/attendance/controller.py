from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import DateRange, parse_iso_date, parse_iso_datetime
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StateError,
    ValidationError,
)
from ..container import Container
from .model import Location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role
    placement_id: Optional[str] = None


def _status_for(error: DomainError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (ConflictError, StateError)):
        return 409
    return 400


def _error_body(error: DomainError) -> dict:
    body = {"success": False, "error": type(error).__name__, "message": str(error)}
    current = getattr(error, "current", None)
    if current is not None:
        body["current"] = getattr(current, "value", current)
    return body


def _ok(data, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def register(app: Flask, container: Container) -> None:
    """Attendance JSON API under /api/attendance.

    Authentication lives outside this engine: the session must already hold
    ``user_id`` and ``role`` (and ``placement_id`` for students/supervisors).
    """

    service = container.attendance_service
    summaries = container.summary_service
    marker = container.absence_marker

    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = _status_for(error)
        if status >= 409:
            logger.info("Request refused (%s): %s", type(error).__name__, error)
        return jsonify(_error_body(error)), status

    def current_actor() -> Actor:
        user_id = session.get("user_id")
        role = session.get("role")
        if not user_id or not role:
            raise AuthorizationError("Login required")
        try:
            role = Role(role)
        except ValueError:
            raise AuthorizationError(f"Unknown role {role!r}")
        return Actor(user_id=str(user_id), role=role, placement_id=session.get("placement_id"))

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            return view(current_actor(), *args, **kwargs)

        return wrapper

    def payload() -> dict:
        return request.get_json(silent=True) or {}

    def optional_timestamp(data: dict):
        raw = data.get("timestamp")
        return parse_iso_datetime(raw) if raw else None

    def range_from_args(*, default_days: Optional[int] = None) -> Optional[DateRange]:
        start = request.args.get("start_date")
        end = request.args.get("end_date")
        if not start and not end and default_days is None:
            return None
        # A missing bound falls back to a trailing window ending today.
        today = service.clock().date()
        window = default_days or DEFAULT_HISTORY_LIMIT
        return DateRange.of(
            parse_iso_date(start) if start else today - timedelta(days=window - 1),
            parse_iso_date(end) if end else today,
        )

    # ---- student ----

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    def check_in(actor: Actor):
        data = payload()
        placement_id = data.get("placement_id") or actor.placement_id or ""
        record = service.check_in(
            actor.user_id,
            placement_id,
            optional_timestamp(data),
            current_role=actor.role,
            location=Location.from_dict(data.get("location")),
            notes=data.get("notes"),
        )
        return _ok(record.to_dict(), 201)

    @app.route("/api/attendance/check-out", methods=["PUT"], endpoint="attendance_check_out")
    @login_required
    def check_out(actor: Actor):
        data = payload()
        record = service.check_out(
            actor.user_id,
            optional_timestamp(data),
            current_role=actor.role,
            location=Location.from_dict(data.get("location")),
            notes=data.get("notes"),
        )
        return _ok(record.to_dict())

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def today(actor: Actor):
        record = service.today(actor.user_id)
        return _ok(record.to_dict() if record else None)

    @app.route("/api/attendance/my-attendance", methods=["GET"], endpoint="attendance_mine")
    @login_required
    def my_attendance(actor: Actor):
        records = service.history(actor.user_id, range_from_args(), request.args.get("status"))
        return _ok([r.to_dict() for r in records])

    @app.route("/api/attendance/my-stats", methods=["GET"], endpoint="attendance_my_stats")
    @login_required
    def my_stats(actor: Actor):
        return _ok(summaries.stats(actor.user_id).to_dict())

    @app.route("/api/attendance/absence-request", methods=["POST"], endpoint="attendance_absence_request")
    @login_required
    def absence_request(actor: Actor):
        data = payload()
        record = service.submit_absence_request(
            actor.user_id,
            data.get("placement_id") or actor.placement_id or "",
            parse_iso_date(data.get("date") or ""),
            data.get("reason") or "",
            current_role=actor.role,
        )
        return _ok(record.to_dict(), 201)

    # ---- staff views ----

    @app.route("/api/attendance/student/<student_id>", methods=["GET"], endpoint="attendance_student")
    @login_required
    def student_records(actor: Actor, student_id: str):
        service.ensure_can_view_student(student_id, viewer_id=actor.user_id, current_role=actor.role)
        records = service.history(student_id, range_from_args(), request.args.get("status"))
        return _ok([r.to_dict() for r in records])

    @app.route("/api/attendance/student/<student_id>/stats", methods=["GET"], endpoint="attendance_student_stats")
    @login_required
    def student_stats(actor: Actor, student_id: str):
        service.ensure_can_view_student(student_id, viewer_id=actor.user_id, current_role=actor.role)
        return _ok(summaries.stats(student_id).to_dict())

    @app.route("/api/attendance/placement/<placement_id>", methods=["GET"], endpoint="attendance_placement")
    @login_required
    def placement_records(actor: Actor, placement_id: str):
        service.ensure_can_view_placement(
            placement_id, viewer_placement_id=actor.placement_id, current_role=actor.role
        )
        records = service.placement_records(placement_id, range_from_args())
        return _ok([r.to_dict() for r in records])

    @app.route("/api/attendance/summary/<student_id>", methods=["GET"], endpoint="attendance_summary")
    @login_required
    def summary(actor: Actor, student_id: str):
        service.ensure_can_view_student(student_id, viewer_id=actor.user_id, current_role=actor.role)
        date_range = range_from_args(default_days=DEFAULT_HISTORY_LIMIT)
        return _ok(summaries.summarize(student_id, date_range).to_dict())

    # ---- review workflow ----

    @app.route("/api/attendance/<int:record_id>/acknowledge", methods=["POST"], endpoint="attendance_acknowledge")
    @login_required
    def acknowledge(actor: Actor, record_id: int):
        record = service.acknowledge(record_id, actor.user_id, current_role=actor.role)
        return _ok(record.to_dict())

    @app.route("/api/attendance/<int:record_id>/approve", methods=["POST"], endpoint="attendance_approve")
    @login_required
    def approve(actor: Actor, record_id: int):
        record = service.approve(record_id, actor.user_id, payload().get("comment"), current_role=actor.role)
        return _ok(record.to_dict())

    @app.route("/api/attendance/<int:record_id>/reject", methods=["POST"], endpoint="attendance_reject")
    @login_required
    def reject(actor: Actor, record_id: int):
        record = service.reject(record_id, actor.user_id, payload().get("comment") or "", current_role=actor.role)
        return _ok(record.to_dict())

    @app.route("/api/attendance/<int:record_id>/reclassify", methods=["PATCH"], endpoint="attendance_reclassify")
    @login_required
    def reclassify(actor: Actor, record_id: int):
        data = payload()
        record = service.reclassify(
            record_id,
            actor.user_id,
            data.get("day_status") or "",
            data.get("comment") or "",
            current_role=actor.role,
        )
        return _ok(record.to_dict())

    # ---- batch ----

    @app.route("/api/attendance/mark-absent", methods=["POST"], endpoint="attendance_mark_absent")
    @login_required
    def mark_absent(actor: Actor):
        data = payload()
        raw_day = data.get("date")
        expected = data.get("expected") or {}
        if isinstance(expected, list):
            expected = {str(item["student_id"]): str(item["placement_id"]) for item in expected}
        report = marker.mark_absentees(
            parse_iso_date(raw_day) if raw_day else None,
            {str(k): str(v) for k, v in expected.items()},
            current_role=actor.role,
        )
        return _ok(report.to_dict())
