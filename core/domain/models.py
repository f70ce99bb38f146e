"""
도메인 모델

장부 테이블 행을 표현하는 dataclass.
모든 모델은 from_row(dict)로 생성하고 to_dict()로 JSON 직렬화 가능한 dict 반환.
금액은 Decimal, DB에는 TEXT로 저장.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from core.constants import AccountIds
from core.types import (
    CategoryType,
    HistoryAction,
    ProposalStatus,
    TransactionKind,
    VoteChoice,
)


def parse_datetime(value: str | None) -> datetime | None:
    """ISO 문자열 → aware datetime (tz 없으면 UTC로 간주)"""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _json_or_none(value: str | None) -> dict[str, Any] | None:
    if not value:
        return None
    return json.loads(value)


@dataclass
class Account:
    """계좌 (현금 / 은행)

    balance는 현재 회계연도 기준 캐시 잔고.
    """

    id: int
    name: str
    balance: Decimal

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Account":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            name=row["name"],
            balance=Decimal(str(row["balance"])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "balance": str(self.balance)}


@dataclass
class FiscalYear:
    """회계연도

    Attributes:
        id: 회계연도 ID
        name: 표시 이름 (예: 2024年度)
        start_date: 시작일 (포함)
        end_date: 종료일 (포함)
        starting_balance_cash: 현금 기초 잔고
        starting_balance_bank: 은행 기초 잔고
        is_current: 현재 회계연도 여부
        created_at: 생성 시각
    """

    id: int
    name: str
    start_date: date
    end_date: date
    starting_balance_cash: Decimal
    starting_balance_bank: Decimal
    is_current: bool = False
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "FiscalYear":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            name=row["name"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            starting_balance_cash=Decimal(str(row["starting_balance_cash"])),
            starting_balance_bank=Decimal(str(row["starting_balance_bank"])),
            is_current=bool(row.get("is_current")),
            created_at=parse_datetime(row.get("created_at")),
        )

    def starting_balance(self, account_id: int) -> Decimal:
        """계좌별 기초 잔고

        Raises:
            KeyError: 알 수 없는 계좌
        """
        if account_id == AccountIds.CASH:
            return self.starting_balance_cash
        if account_id == AccountIds.BANK:
            return self.starting_balance_bank
        raise KeyError(f"Unknown account: {account_id}")

    def contains(self, value: date | datetime) -> bool:
        """기록일이 [start_date, end_date] 범위 안인지 확인 (양 끝 포함)"""
        day = value.date() if isinstance(value, datetime) else value
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "starting_balance_cash": str(self.starting_balance_cash),
            "starting_balance_bank": str(self.starting_balance_bank),
            "is_current": self.is_current,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Transaction:
    """장부 거래

    type이 transfer이면 from/to 계좌, 아니면 account_id만 채워진다.
    category는 transfer일 때만 None.
    """

    id: str
    type: TransactionKind
    amount: Decimal
    description: str
    fiscal_year_id: int
    recorded_by: str
    recorded_at: datetime
    category: str | None = None
    account_id: int | None = None
    from_account_id: int | None = None
    to_account_id: int | None = None
    receipt_image_url: str | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Transaction":
        """DB 행 또는 이력 스냅샷에서 생성"""
        return cls(
            id=row["id"],
            type=TransactionKind(row["type"]),
            amount=Decimal(str(row["amount"])),
            description=row["description"],
            fiscal_year_id=row["fiscal_year_id"],
            recorded_by=row["recorded_by"],
            recorded_at=parse_datetime(row["recorded_at"]),
            category=row.get("category"),
            account_id=row.get("account_id"),
            from_account_id=row.get("from_account_id"),
            to_account_id=row.get("to_account_id"),
            receipt_image_url=row.get("receipt_image_url"),
            is_deleted=bool(row.get("is_deleted")),
            deleted_at=parse_datetime(row.get("deleted_at")),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionKind.TRANSFER

    def to_dict(self) -> dict[str, Any]:
        """스냅샷 (이력 old_data/new_data 및 API 응답용)"""
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": str(self.amount),
            "description": self.description,
            "category": self.category,
            "account_id": self.account_id,
            "from_account_id": self.from_account_id,
            "to_account_id": self.to_account_id,
            "fiscal_year_id": self.fiscal_year_id,
            "recorded_by": self.recorded_by,
            "recorded_at": _iso(self.recorded_at),
            "receipt_image_url": self.receipt_image_url,
            "is_deleted": self.is_deleted,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class HistoryRecord:
    """거래 변경 이력 (추가 전용)"""

    id: int
    transaction_id: str
    action: HistoryAction
    changed_by: str
    changed_at: datetime
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    changed_by_name: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "HistoryRecord":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            transaction_id=row["transaction_id"],
            action=HistoryAction(row["action"]),
            changed_by=row["changed_by"],
            changed_at=parse_datetime(row["changed_at"]),
            old_data=_json_or_none(row.get("old_data")),
            new_data=_json_or_none(row.get("new_data")),
            changed_by_name=row.get("changed_by_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "action": self.action.value,
            "changed_by": self.changed_by,
            "changed_by_name": self.changed_by_name,
            "changed_at": _iso(self.changed_at),
            "old_data": self.old_data,
            "new_data": self.new_data,
        }


@dataclass
class DeletionProposal:
    """회계연도 삭제 제안

    저장된 status와 별개로, 만료 여부는 조회 시점에 계산한다.
    """

    id: str
    fiscal_year_id: int
    fiscal_year_name: str
    proposed_by: str
    proposed_at: datetime
    status: ProposalStatus
    expires_at: datetime
    total_members: int
    required_approvals: int
    approve_count: int = 0
    reject_count: int = 0
    executed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DeletionProposal":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            fiscal_year_id=row["fiscal_year_id"],
            fiscal_year_name=row["fiscal_year_name"],
            proposed_by=row["proposed_by"],
            proposed_at=parse_datetime(row["proposed_at"]),
            status=ProposalStatus(row["status"]),
            expires_at=parse_datetime(row["expires_at"]),
            total_members=row["total_members"],
            required_approvals=row["required_approvals"],
            approve_count=row.get("approve_count") or 0,
            reject_count=row.get("reject_count") or 0,
            executed_at=parse_datetime(row.get("executed_at")),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        """pending이면서 만료 시각이 지났는지"""
        now = now or datetime.now(timezone.utc)
        return self.status == ProposalStatus.PENDING and now > self.expires_at

    def effective_status(self, now: datetime | None = None) -> ProposalStatus:
        """조회 시점 기준 상태"""
        if self.is_expired(now):
            return ProposalStatus.EXPIRED
        return self.status

    def is_active(self, now: datetime | None = None) -> bool:
        """활성 제안 여부 (만료되지 않은 pending 또는 approved)"""
        return self.effective_status(now) in (
            ProposalStatus.PENDING,
            ProposalStatus.APPROVED,
        )

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        return {
            "id": self.id,
            "fiscal_year_id": self.fiscal_year_id,
            "fiscal_year_name": self.fiscal_year_name,
            "proposed_by": self.proposed_by,
            "proposed_at": _iso(self.proposed_at),
            "status": self.status.value,
            "effective_status": self.effective_status(now).value,
            "expires_at": _iso(self.expires_at),
            "total_members": self.total_members,
            "required_approvals": self.required_approvals,
            "approve_count": self.approve_count,
            "reject_count": self.reject_count,
            "executed_at": _iso(self.executed_at),
        }


@dataclass
class DeletionVote:
    """삭제 제안 투표 (제안당 회원 1표)"""

    id: int
    proposal_id: str
    user_id: str
    vote: VoteChoice
    voted_at: datetime

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DeletionVote":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            proposal_id=row["proposal_id"],
            user_id=row["user_id"],
            vote=VoteChoice(row["vote"]),
            voted_at=parse_datetime(row["voted_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "user_id": self.user_id,
            "vote": self.vote.value,
            "voted_at": _iso(self.voted_at),
        }


@dataclass
class Category:
    """회계연도별 카테고리"""

    id: int
    name: str
    type: CategoryType
    sort_order: int
    fiscal_year_id: int

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Category":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            name=row["name"],
            type=CategoryType(row["type"]),
            sort_order=row["sort_order"],
            fiscal_year_id=row["fiscal_year_id"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "sort_order": self.sort_order,
            "fiscal_year_id": self.fiscal_year_id,
        }


@dataclass
class UserProfile:
    """회원 프로필"""

    id: str
    name: str
    email: str
    auth_user_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserProfile":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            auth_user_id=row.get("auth_user_id"),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "auth_user_id": self.auth_user_id,
            "created_at": _iso(self.created_at),
        }


@dataclass
class InviteCode:
    """초대 코드"""

    id: str
    code: str
    created_by: str | None
    created_at: datetime
    expires_at: datetime | None = None
    is_used: bool = False
    used_by: str | None = None
    used_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "InviteCode":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            code=row["code"],
            created_by=row.get("created_by"),
            created_at=parse_datetime(row["created_at"]),
            expires_at=parse_datetime(row.get("expires_at")),
            is_used=bool(row.get("is_used")),
            used_by=row.get("used_by"),
            used_at=parse_datetime(row.get("used_at")),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
            "is_used": self.is_used,
            "used_by": self.used_by,
            "used_at": _iso(self.used_at),
        }


@dataclass
class SystemHistory:
    """시스템 감사 이력"""

    id: int
    action: str
    performed_by: str
    performed_at: datetime
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SystemHistory":
        """DB 행에서 생성"""
        return cls(
            id=row["id"],
            action=row["action"],
            performed_by=row["performed_by"],
            performed_at=parse_datetime(row["performed_at"]),
            details=_json_or_none(row.get("details_json")) or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "performed_by": self.performed_by,
            "performed_at": _iso(self.performed_at),
            "details": self.details,
        }
