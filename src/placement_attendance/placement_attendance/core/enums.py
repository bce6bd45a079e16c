from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Actor roles handed to the engine by the authentication layer."""

    STUDENT = "student"
    SUPERVISOR = "supervisor"
    COORDINATOR = "coordinator"
    ADMIN = "admin"


class DayStatus(str, Enum):
    """Final classification of one calendar day of attendance."""

    PRESENT_ON_TIME = "PRESENT_ON_TIME"
    PRESENT_LATE = "PRESENT_LATE"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    EXCUSED_ABSENCE = "EXCUSED_ABSENCE"
    INCOMPLETE = "INCOMPLETE"


class ApprovalStatus(str, Enum):
    """Review workflow state, independent of the day status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVIEW = "NEEDS_REVIEW"


class Punctuality(str, Enum):
    ON_TIME = "ON_TIME"
    LATE = "LATE"


class RecordSource(str, Enum):
    """Which entry point created the record."""

    CHECK_IN = "CHECK_IN"
    ABSENCE_REQUEST = "ABSENCE_REQUEST"
    SYSTEM = "SYSTEM"


class LegacyStatus(str, Enum):
    """Coarse present/late/absent projection kept for older API clients."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class AnomalyType(str, Enum):
    FREQUENT_LATENESS = "FREQUENT_LATENESS"
    HIGH_ABSENCE_RATE = "HIGH_ABSENCE_RATE"
    FREQUENT_INCOMPLETE_DAYS = "FREQUENT_INCOMPLETE_DAYS"
    CONSECUTIVE_ABSENCES = "CONSECUTIVE_ABSENCES"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MarkOutcome(str, Enum):
    """Per-student outcome of a batch absence run."""

    CREATED = "CREATED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"
