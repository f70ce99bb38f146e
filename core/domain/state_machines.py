"""
State Machines

회계연도 삭제 제안의 상태 전이 관리.
"""

import logging
from enum import Enum

from core.types import ProposalStatus

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인

        Args:
            to_state: 목표 상태

        Returns:
            전이 가능 여부
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(
            f"{self._name}: {old_state} → {target}",
        )

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return self._history.copy()


class ProposalStateMachine(StateMachine):
    """삭제 제안 상태 머신

    전이 규칙:
    - pending → approved: 찬성 수가 필요 승인 수 이상 (DB 트리거)
    - pending → rejected: 과반 반대 (DB 트리거)
    - pending → expired: 유효 기간 경과
    - approved → pending: 실행 취소 (투표는 유지)
    - approved → executed: 삭제 실행 (종료)
    """

    TRANSITIONS: dict[str, list[str]] = {
        "pending": ["approved", "rejected", "expired"],
        "approved": ["pending", "executed"],
    }

    def __init__(self, initial_state: str | ProposalStatus = ProposalStatus.PENDING):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="ProposalStateMachine",
        )

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부"""
        return self._state in ("rejected", "expired", "executed")

    @property
    def is_active(self) -> bool:
        """활성 상태 여부 (연도당 하나만 허용)"""
        return self._state in ("pending", "approved")

    @property
    def can_vote(self) -> bool:
        """투표 가능 여부"""
        return self._state in ("pending", "approved")
