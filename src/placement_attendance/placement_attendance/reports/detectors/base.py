from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import AnomalyType, Severity
from ...core.policy import AttendancePolicy
from ..scan import WindowScan


@dataclass(frozen=True)
class Anomaly:
    type: AnomalyType
    severity: Severity
    description: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "severity": self.severity.value, "description": self.description}


def ratio_threshold(ratio: float, denominator: int) -> int:
    """Smallest count that reaches ``ratio`` of ``denominator`` (at least 1)."""
    # round() first so 0.3 * 10 does not become 3.0000000000000004 -> 4
    return max(1, math.ceil(round(ratio * denominator, 9)))


class AnomalyDetector(ABC):
    """Detector interface (Strategy Pattern over a WindowScan)."""

    anomaly_type: AnomalyType

    @abstractmethod
    def detect(self, scan: WindowScan, policy: AttendancePolicy) -> Optional[Anomaly]:
        raise NotImplementedError
