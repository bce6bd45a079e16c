from __future__ import annotations

from typing import Optional

from ...core.enums import AnomalyType, DayStatus, Severity
from ...core.policy import AttendancePolicy
from ..scan import WindowScan
from .base import Anomaly, AnomalyDetector, ratio_threshold


class FrequentLatenessDetector(AnomalyDetector):
    """Late days reach the configured share of present days.

    Severity grows with how far the observed ratio is above the limit.
    """

    anomaly_type = AnomalyType.FREQUENT_LATENESS

    def detect(self, scan: WindowScan, policy: AttendancePolicy) -> Optional[Anomaly]:
        present = scan.present_days
        late = scan.count(DayStatus.PRESENT_LATE)
        if present < policy.min_sample_days or late < ratio_threshold(policy.lateness_ratio, present):
            return None

        observed = late / present
        excess = observed - policy.lateness_ratio
        if excess < 0.10:
            severity = Severity.LOW
        elif excess < 0.25:
            severity = Severity.MEDIUM
        else:
            severity = Severity.HIGH
        return Anomaly(
            self.anomaly_type,
            severity,
            f"Late on {late} of {present} present days ({observed:.0%}, limit {policy.lateness_ratio:.0%})",
        )


class HighAbsenceRateDetector(AnomalyDetector):
    anomaly_type = AnomalyType.HIGH_ABSENCE_RATE

    def detect(self, scan: WindowScan, policy: AttendancePolicy) -> Optional[Anomaly]:
        expected = scan.expected_days
        absent = scan.count(DayStatus.ABSENT)
        if expected < policy.min_sample_days or absent < ratio_threshold(policy.absence_ratio, expected):
            return None
        return Anomaly(
            self.anomaly_type,
            Severity.HIGH,
            f"{absent} unexcused absences in {expected} expected days (limit {policy.absence_ratio:.0%})",
        )


class FrequentIncompleteDaysDetector(AnomalyDetector):
    anomaly_type = AnomalyType.FREQUENT_INCOMPLETE_DAYS

    def detect(self, scan: WindowScan, policy: AttendancePolicy) -> Optional[Anomaly]:
        incomplete = scan.count(DayStatus.INCOMPLETE)
        if incomplete <= policy.incomplete_threshold:
            return None
        return Anomaly(
            self.anomaly_type,
            Severity.MEDIUM,
            f"{incomplete} days without a check-out (more than {policy.incomplete_threshold})",
        )


class ConsecutiveAbsencesDetector(AnomalyDetector):
    """Longest run of absent working days; excused days extend the run but not the severity."""

    anomaly_type = AnomalyType.CONSECUTIVE_ABSENCES

    def detect(self, scan: WindowScan, policy: AttendancePolicy) -> Optional[Anomaly]:
        run = scan.longest_absence_run
        n = policy.consecutive_absence_days
        if run < n:
            return None

        unexcused = scan.unexcused_in_longest_run
        if unexcused >= n:
            severity = Severity.HIGH
        elif unexcused > 0:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW
        return Anomaly(
            self.anomaly_type,
            severity,
            f"{run} consecutive absent working days from {scan.longest_run_start} ({unexcused} unexcused)",
        )


def default_detectors() -> list[AnomalyDetector]:
    return [
        FrequentLatenessDetector(),
        HighAbsenceRateDetector(),
        FrequentIncompleteDaysDetector(),
        ConsecutiveAbsencesDetector(),
    ]
