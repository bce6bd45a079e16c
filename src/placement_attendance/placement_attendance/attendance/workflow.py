from __future__ import annotations

from ..core.enums import ApprovalStatus
from ..core.exceptions import InvalidTransitionError

# APPROVED and REJECTED only reopen through a reclassification.
ALLOWED_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset(
        {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.NEEDS_REVIEW}
    ),
    ApprovalStatus.NEEDS_REVIEW: frozenset(
        {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.NEEDS_REVIEW}
    ),
    ApprovalStatus.APPROVED: frozenset({ApprovalStatus.NEEDS_REVIEW}),
    ApprovalStatus.REJECTED: frozenset({ApprovalStatus.NEEDS_REVIEW}),
}

TERMINAL = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})


def can_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move a {current.value} record to {target.value}",
            current=current,
        )
