import pytest

from placement_attendance.attendance.workflow import TERMINAL, can_transition, ensure_transition
from placement_attendance.core.enums import ApprovalStatus
from placement_attendance.core.exceptions import InvalidTransitionError


@pytest.mark.parametrize("current", sorted(TERMINAL, key=lambda s: s.value))
@pytest.mark.parametrize("target", [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.PENDING])
def test_terminal_states_only_reopen_through_review(current, target):
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(current, target)
    assert exc.value.current == current
    assert can_transition(current, ApprovalStatus.NEEDS_REVIEW)


def test_nothing_moves_back_to_pending():
    for current in ApprovalStatus:
        assert not can_transition(current, ApprovalStatus.PENDING)


@pytest.mark.parametrize("current", [ApprovalStatus.PENDING, ApprovalStatus.NEEDS_REVIEW])
def test_open_states_can_be_decided(current):
    for target in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.NEEDS_REVIEW):
        ensure_transition(current, target)
