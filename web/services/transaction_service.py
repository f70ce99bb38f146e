"""
Transaction 서비스

장부 거래 기록/수정/삭제/복원과 조회.

각 작업은 하나의 DB 트랜잭션 안에서
대상 행 조회 → 행 쓰기 → 이력 추가 → 잔고 반영 순서로 실행되어, 중간 실패 시 모두 롤백된다.
트랜잭션은 쓰기 잠금을 먼저 잡으므로 동시 요청의 잔고 갱신이 서로 덮어쓰지 않는다.

accounts.balance는 현재 회계연도 캐시이므로
다른 연도에 속한 거래의 수정/삭제/복원은 잔고에 반영하지 않는다.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IBlobStore
from core.constants import Defaults
from core.domain.errors import (
    CollaboratorError,
    ConfirmationError,
    NotFoundError,
    OutOfRangeError,
    ValidationError,
)
from core.domain.models import FiscalYear, HistoryRecord, Transaction
from core.ledger import ACCOUNT_IDS, LedgerStore, forward_effects, reverse_effects
from core.types import Actor, HistoryAction, TransactionKind

logger = logging.getLogger(__name__)


def to_ledger_datetime(value: date | datetime) -> datetime:
    """기록일 정규화 (date는 UTC 자정, naive datetime은 UTC)"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


@dataclass
class TransactionDraft:
    """거래 기록/수정 입력

    Attributes:
        type: 거래 유형
        amount: 금액 (양수)
        description: 내용
        recorded_at: 기록일
        category: 카테고리 이름 (이동은 None)
        account_id: 수입/지출 계좌
        from_account_id: 이동 출금 계좌
        to_account_id: 이동 입금 계좌
        receipt_image_url: 영수증 URL
    """

    type: TransactionKind
    amount: Decimal
    description: str
    recorded_at: date | datetime
    category: str | None = None
    account_id: int | None = None
    from_account_id: int | None = None
    to_account_id: int | None = None
    receipt_image_url: str | None = None

    def validate(self) -> None:
        """필수 항목 검증 (쓰기 전에 호출)

        Raises:
            ValidationError: 누락/잘못된 값
        """
        try:
            amount = Decimal(self.amount)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise ValidationError("金額が正しくありません") from e
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("金額は0より大きい値を入力してください")
        self.amount = amount

        if not self.description or not self.description.strip():
            raise ValidationError("内容を入力してください")
        self.description = self.description.strip()

        if self.type == TransactionKind.TRANSFER:
            if self.from_account_id is None or self.to_account_id is None:
                raise ValidationError("移動元と移動先の口座を選択してください")
            if self.from_account_id not in ACCOUNT_IDS or self.to_account_id not in ACCOUNT_IDS:
                raise ValidationError("口座が正しくありません")
            if self.from_account_id == self.to_account_id:
                raise ValidationError("移動元と移動先は別の口座を選択してください")
            self.category = None
            self.account_id = None
        else:
            if not self.category or not self.category.strip():
                raise ValidationError("カテゴリーを選択してください")
            if self.account_id is None or self.account_id not in ACCOUNT_IDS:
                raise ValidationError("口座を選択してください")
            self.category = self.category.strip()
            self.from_account_id = None
            self.to_account_id = None


def _check_in_year(fiscal_year: FiscalYear, recorded_at: datetime) -> None:
    if not fiscal_year.contains(recorded_at):
        raise OutOfRangeError(
            f"日付は{fiscal_year.start_date.isoformat()}から"
            f"{fiscal_year.end_date.isoformat()}の範囲で入力してください"
        )


class TransactionService:
    """Transaction 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        blob_store: 영수증 저장소 (업로드 시에만 필요)
    """

    def __init__(self, db: SQLiteAdapter, blob_store: IBlobStore | None = None):
        self.db = db
        self.store = LedgerStore(db)
        self.blob_store = blob_store

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    async def _current_year(self) -> FiscalYear:
        fiscal_year = await self.store.get_current_fiscal_year()
        if fiscal_year is None:
            raise ValidationError("年度が登録されていません")
        return fiscal_year

    async def _get(self, transaction_id: str) -> Transaction:
        tx = await self.store.get_transaction(transaction_id)
        if tx is None:
            raise NotFoundError(f"取引が見つかりません: {transaction_id}")
        return tx

    async def _apply(self, effects: dict[int, Decimal]) -> None:
        for account_id, delta in effects.items():
            await self.store.update_balance(account_id, delta)

    async def _affects_cached_balance(self, tx: Transaction) -> bool:
        current = await self.store.get_current_fiscal_year()
        return current is not None and current.id == tx.fiscal_year_id

    # =========================================================================
    # 조회
    # =========================================================================

    async def get_transaction(self, transaction_id: str) -> Transaction:
        """Raises: NotFoundError"""
        return await self._get(transaction_id)

    async def list_transactions(
        self,
        fiscal_year_id: int | None = None,
        kind: TransactionKind | None = None,
        account_id: int | None = None,
        month: str | None = None,
    ) -> dict[str, Any]:
        """장부 목록 + 수입/지출 합계

        Args:
            fiscal_year_id: 회계연도 (None이면 현재 연도)
            kind: 거래 유형 필터
            account_id: 계좌 필터 (이동은 양쪽 계좌 모두 매칭)
            month: "YYYY-MM"
        """
        if fiscal_year_id is None:
            fiscal_year_id = (await self._current_year()).id

        transactions = await self.store.list_transactions(
            fiscal_year_id,
            kind=kind,
            account_id=account_id,
            month=month,
        )

        total_income = sum(
            (tx.amount for tx in transactions if tx.type == TransactionKind.INCOME),
            Decimal("0"),
        )
        total_expense = sum(
            (tx.amount for tx in transactions if tx.type == TransactionKind.EXPENSE),
            Decimal("0"),
        )

        return {
            "fiscal_year_id": fiscal_year_id,
            "transactions": [tx.to_dict() for tx in transactions],
            "total_income": str(total_income),
            "total_expense": str(total_expense),
            "count": len(transactions),
        }

    async def list_deleted(self, fiscal_year_id: int | None = None) -> list[Transaction]:
        """삭제된 거래 (복원 대상)"""
        if fiscal_year_id is None:
            fiscal_year_id = (await self._current_year()).id
        return await self.store.list_deleted_transactions(fiscal_year_id)

    async def get_history(
        self,
        transaction_id: str | None = None,
        fiscal_year_id: int | None = None,
        limit: int = 100,
    ) -> list[HistoryRecord]:
        """변경 이력 (거래 지정 또는 회계연도 전체)"""
        if transaction_id is not None:
            await self._get(transaction_id)
            return await self.store.list_history(transaction_id=transaction_id, limit=limit)

        if fiscal_year_id is None:
            fiscal_year_id = (await self._current_year()).id
        return await self.store.list_history(fiscal_year_id=fiscal_year_id, limit=limit)

    # =========================================================================
    # 기록
    # =========================================================================

    async def create(self, actor: Actor, draft: TransactionDraft) -> Transaction:
        """거래 기록

        검증 → 행 삽입 → 이력(created) → 잔고 정방향 반영

        Raises:
            ValidationError: 필수 항목 누락
            OutOfRangeError: 현재 회계연도 범위 밖
        """
        draft.validate()
        recorded_at = to_ledger_datetime(draft.recorded_at)

        async with self.db.transaction():
            fiscal_year = await self._current_year()
            _check_in_year(fiscal_year, recorded_at)

            now = datetime.now(timezone.utc)
            tx = Transaction(
                id=str(uuid.uuid4()),
                type=draft.type,
                amount=draft.amount,
                description=draft.description,
                fiscal_year_id=fiscal_year.id,
                recorded_by=actor.id,
                recorded_at=recorded_at,
                category=draft.category,
                account_id=draft.account_id,
                from_account_id=draft.from_account_id,
                to_account_id=draft.to_account_id,
                receipt_image_url=draft.receipt_image_url,
                created_at=now,
                updated_at=now,
            )

            await self.store.insert_transaction(tx)
            saved = await self._get(tx.id)
            await self.store.append_history(
                saved.id,
                HistoryAction.CREATED,
                actor.id,
                new_data=saved.to_dict(),
            )
            await self._apply(forward_effects(saved))

        logger.info(
            "거래 기록",
            extra={
                "transaction_id": saved.id,
                "kind": saved.type.value,
                "amount": str(saved.amount),
                "actor": actor.id,
            },
        )
        return saved

    async def edit(self, actor: Actor, transaction_id: str, draft: TransactionDraft) -> Transaction:
        """거래 수정

        이전 효과 역적용 → 행 덮어쓰기 → 이력(updated) → 새 효과 반영.
        기록일은 거래가 속한 회계연도 범위로 검사.
        수정 전 행은 쓰기 잠금을 잡은 뒤 읽는다.

        Raises:
            NotFoundError: 거래 없음
            ValidationError: 필수 항목 누락, 삭제된 거래
            OutOfRangeError: 연도 범위 밖
        """
        async with self.db.transaction():
            old = await self._get(transaction_id)
            if old.is_deleted:
                raise ValidationError("削除された取引は編集できません")

            draft.validate()
            fiscal_year = await self.store.get_fiscal_year(old.fiscal_year_id)
            if fiscal_year is None:
                raise NotFoundError(f"年度が見つかりません: {old.fiscal_year_id}")
            recorded_at = to_ledger_datetime(draft.recorded_at)
            _check_in_year(fiscal_year, recorded_at)

            updated = Transaction(
                id=old.id,
                type=draft.type,
                amount=draft.amount,
                description=draft.description,
                fiscal_year_id=old.fiscal_year_id,
                recorded_by=old.recorded_by,
                recorded_at=recorded_at,
                category=draft.category,
                account_id=draft.account_id,
                from_account_id=draft.from_account_id,
                to_account_id=draft.to_account_id,
                receipt_image_url=draft.receipt_image_url,
                created_at=old.created_at,
                updated_at=datetime.now(timezone.utc),
            )

            affects_balance = await self._affects_cached_balance(old)
            if affects_balance:
                await self._apply(reverse_effects(old))
            await self.store.update_transaction(updated)
            saved = await self._get(old.id)
            await self.store.append_history(
                saved.id,
                HistoryAction.UPDATED,
                actor.id,
                old_data=old.to_dict(),
                new_data=saved.to_dict(),
            )
            if affects_balance:
                await self._apply(forward_effects(saved))

        logger.info(
            "거래 수정",
            extra={"transaction_id": saved.id, "actor": actor.id},
        )
        return saved

    async def delete(self, actor: Actor, transaction_id: str, confirmation: str) -> Transaction:
        """거래 삭제 (soft delete)

        확인 문구는 본인 이름과 정확히 일치해야 한다.

        Raises:
            ConfirmationError: 이름 불일치 (아무것도 쓰지 않음)
            NotFoundError: 거래 없음
            ValidationError: 이미 삭제됨
        """
        if confirmation != actor.name:
            raise ConfirmationError("入力された名前が一致しません")

        async with self.db.transaction():
            old = await self._get(transaction_id)
            if old.is_deleted:
                raise ValidationError("この取引は既に削除されています")

            deleted = Transaction.from_row(old.to_dict())
            deleted.is_deleted = True
            deleted.deleted_at = datetime.now(timezone.utc)
            deleted.updated_at = deleted.deleted_at

            await self.store.update_transaction(deleted)
            await self.store.append_history(
                old.id,
                HistoryAction.DELETED,
                actor.id,
                old_data=old.to_dict(),
            )
            if await self._affects_cached_balance(old):
                await self._apply(reverse_effects(old))

        logger.info(
            "거래 삭제",
            extra={"transaction_id": old.id, "actor": actor.id},
        )
        return await self._get(old.id)

    async def restore(self, actor: Actor, transaction_id: str) -> Transaction:
        """삭제된 거래 복원

        Raises:
            NotFoundError: 거래 없음
            ValidationError: 삭제되지 않은 거래
        """
        async with self.db.transaction():
            old = await self._get(transaction_id)
            if not old.is_deleted:
                raise ValidationError("この取引は削除されていません")

            restored = Transaction.from_row(old.to_dict())
            restored.is_deleted = False
            restored.deleted_at = None
            restored.updated_at = datetime.now(timezone.utc)

            await self.store.update_transaction(restored)
            saved = await self._get(old.id)
            await self.store.append_history(
                old.id,
                HistoryAction.RESTORED,
                actor.id,
                old_data=old.to_dict(),
                new_data=saved.to_dict(),
            )
            if await self._affects_cached_balance(old):
                await self._apply(forward_effects(saved))

        logger.info(
            "거래 복원",
            extra={"transaction_id": old.id, "actor": actor.id},
        )
        return saved

    # =========================================================================
    # 영수증
    # =========================================================================

    async def upload_receipt(self, data: bytes, content_type: str | None) -> str:
        """영수증 업로드

        Returns:
            공개 URL

        Raises:
            ValidationError: 이미지가 아니거나 5MB 초과
            CollaboratorError: 저장소 미설정/실패
        """
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("画像ファイルを選択してください")
        if not data:
            raise ValidationError("ファイルが空です")
        if len(data) > Defaults.MAX_RECEIPT_BYTES:
            raise ValidationError("画像サイズは5MB以下にしてください")
        if self.blob_store is None:
            raise CollaboratorError("画像ストレージが設定されていません")

        _, url = await self.blob_store.upload(data, content_type)
        return url
