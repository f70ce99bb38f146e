"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class TransactionKind(str, Enum):
    """거래 유형 (수입 / 지출 / 계좌 이동)"""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CategoryType(str, Enum):
    """카테고리 유형 (이동은 카테고리 없음)"""

    INCOME = "income"
    EXPENSE = "expense"


class HistoryAction(str, Enum):
    """거래 이력 액션"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RESTORED = "restored"


class ProposalStatus(str, Enum):
    """회계연도 삭제 제안 상태"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    EXECUTED = "executed"


class VoteChoice(str, Enum):
    """삭제 제안 투표"""

    APPROVE = "approve"
    REJECT = "reject"


class SystemAction(str, Enum):
    """시스템 이력 액션"""

    FISCAL_YEAR_DELETED = "fiscal_year_deleted"
    MEMBER_DELETED = "member_deleted"


class ActorKind(str, Enum):
    """행위자 종류"""

    MEMBER = "MEMBER"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor:
    """행위자 (불변)

    이력/감사 기록에 남길 작업 주체를 식별
    """

    kind: str
    id: str
    name: str

    @classmethod
    def member(cls, user_id: str, name: str) -> "Actor":
        """회원 Actor 생성"""
        return cls(kind=ActorKind.MEMBER.value, id=user_id, name=name)

    @classmethod
    def system(cls, system_name: str) -> "Actor":
        """시스템 Actor 생성"""
        return cls(kind=ActorKind.SYSTEM.value, id=f"system:{system_name}", name=system_name)
