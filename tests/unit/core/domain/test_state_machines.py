"""
삭제 제안 상태 머신 테스트
"""

import pytest

from core.domain.state_machines import ProposalStateMachine, StateMachineError
from core.types import ProposalStatus


class TestProposalStateMachine:
    """ProposalStateMachine 테스트"""

    def test_initial_state(self) -> None:
        assert ProposalStateMachine().state == "pending"

    def test_pending_to_approved(self) -> None:
        machine = ProposalStateMachine()

        assert machine.transition(ProposalStatus.APPROVED) == "approved"
        assert machine.history == [("pending", "approved")]

    def test_approved_back_to_pending(self) -> None:
        """승인 취소"""
        machine = ProposalStateMachine(ProposalStatus.APPROVED)

        machine.transition(ProposalStatus.PENDING)

        assert machine.state == "pending"

    def test_execute_only_from_approved(self) -> None:
        assert ProposalStateMachine(ProposalStatus.APPROVED).can_transition(ProposalStatus.EXECUTED)
        assert not ProposalStateMachine(ProposalStatus.PENDING).can_transition(ProposalStatus.EXECUTED)

    @pytest.mark.parametrize("terminal", ["rejected", "expired", "executed"])
    def test_terminal_states(self, terminal: str) -> None:
        """종료 상태에서는 전이/투표 불가"""
        machine = ProposalStateMachine(terminal)

        assert machine.is_terminal
        assert not machine.is_active
        assert not machine.can_vote
        with pytest.raises(StateMachineError):
            machine.transition(ProposalStatus.PENDING)

    @pytest.mark.parametrize("active", ["pending", "approved"])
    def test_active_states_accept_votes(self, active: str) -> None:
        machine = ProposalStateMachine(active)

        assert machine.is_active
        assert machine.can_vote

    def test_invalid_transition_message(self) -> None:
        machine = ProposalStateMachine()

        with pytest.raises(StateMachineError, match="Cannot transition from pending to executed"):
            machine.transition("executed")
