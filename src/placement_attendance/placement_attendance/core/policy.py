from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any

from . import constants
from ..common.datetime_utils import parse_hhmm


@dataclass(frozen=True)
class AttendancePolicy:
    """Thresholds used by classification, the workflow and anomaly detection."""

    work_start: time = parse_hhmm(constants.DEFAULT_WORK_START)
    grace_minutes: int = constants.DEFAULT_LATE_GRACE_MINUTES
    min_full_day_hours: float = constants.DEFAULT_MIN_FULL_DAY_HOURS
    incomplete_after_hours: float = constants.DEFAULT_INCOMPLETE_AFTER_HOURS
    absence_backdate_days: int = constants.DEFAULT_ABSENCE_BACKDATE_DAYS

    lateness_ratio: float = constants.DEFAULT_LATENESS_RATIO
    absence_ratio: float = constants.DEFAULT_ABSENCE_RATIO
    incomplete_threshold: int = constants.DEFAULT_INCOMPLETE_THRESHOLD
    consecutive_absence_days: int = constants.DEFAULT_CONSECUTIVE_ABSENCE_DAYS
    min_sample_days: int = constants.DEFAULT_MIN_SAMPLE_DAYS

    require_second_reviewer: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "AttendancePolicy":
        """Build from a settings module (upper-case attributes, all optional)."""

        def get(name: str, default):
            return getattr(settings, name, default)

        return cls(
            work_start=parse_hhmm(str(get("WORK_START_TIME", constants.DEFAULT_WORK_START))),
            grace_minutes=int(get("LATE_GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES)),
            min_full_day_hours=float(get("MIN_FULL_DAY_HOURS", constants.DEFAULT_MIN_FULL_DAY_HOURS)),
            incomplete_after_hours=float(get("INCOMPLETE_AFTER_HOURS", constants.DEFAULT_INCOMPLETE_AFTER_HOURS)),
            absence_backdate_days=int(get("ABSENCE_BACKDATE_DAYS", constants.DEFAULT_ABSENCE_BACKDATE_DAYS)),
            lateness_ratio=float(get("LATENESS_RATIO", constants.DEFAULT_LATENESS_RATIO)),
            absence_ratio=float(get("ABSENCE_RATIO", constants.DEFAULT_ABSENCE_RATIO)),
            incomplete_threshold=int(get("INCOMPLETE_THRESHOLD", constants.DEFAULT_INCOMPLETE_THRESHOLD)),
            consecutive_absence_days=int(get("CONSECUTIVE_ABSENCE_DAYS", constants.DEFAULT_CONSECUTIVE_ABSENCE_DAYS)),
            min_sample_days=int(get("MIN_SAMPLE_DAYS", constants.DEFAULT_MIN_SAMPLE_DAYS)),
            require_second_reviewer=bool(get("REQUIRE_SECOND_REVIEWER", True)),
        )
