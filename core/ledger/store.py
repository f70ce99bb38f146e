"""
장부 저장소

accounts / fiscal_years / categories / transactions / transaction_history /
deletion_proposals / deletion_votes 테이블 CRUD.

주의: 이 클래스는 커밋하지 않는다.
여러 쓰기를 하나의 원자적 작업으로 묶기 위해 호출자가 db.transaction()으로 감싼다.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.domain.errors import NotFoundError
from core.domain.models import (
    Account,
    Category,
    DeletionProposal,
    DeletionVote,
    FiscalYear,
    HistoryRecord,
    Transaction,
)
from core.types import CategoryType, HistoryAction, ProposalStatus, TransactionKind, VoteChoice

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LedgerStore:
    """장부 저장소

    Args:
        db: SQLite 어댑터

    사용 예시:
    ```python
    store = LedgerStore(db)
    async with db.transaction():
        await store.insert_transaction(tx)
        await store.update_balance(AccountIds.CASH, Decimal("5000"))
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # =========================================================================
    # 계좌
    # =========================================================================

    async def get_accounts(self) -> list[Account]:
        """계좌 목록 (id 순)"""
        rows = await self.db.fetchall_dict("SELECT * FROM accounts ORDER BY id")
        return [Account.from_row(row) for row in rows]

    async def get_account(self, account_id: int) -> Account | None:
        """계좌 조회"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM accounts WHERE id = ?",
            (account_id,),
        )
        return Account.from_row(row) if row else None

    async def update_balance(self, account_id: int, change_amount: Decimal) -> Decimal:
        """잔고 증감 (부호 있는 변화량 가산)

        조회와 갱신이 같은 쓰기 잠금 아래에서 실행되도록 db.transaction() 안에서 호출.

        Args:
            account_id: 계좌 ID
            change_amount: 변화량 (음수 가능)

        Returns:
            변경 후 잔고

        Raises:
            NotFoundError: 계좌 없음
        """
        account = await self.get_account(account_id)
        if account is None:
            raise NotFoundError(f"口座が見つかりません: {account_id}")

        new_balance = account.balance + change_amount
        await self.db.execute(
            "UPDATE accounts SET balance = ? WHERE id = ?",
            (str(new_balance), account_id),
        )

        logger.debug(
            f"Balance updated: account={account_id}, change={change_amount}, balance={new_balance}",
        )
        return new_balance

    async def set_balance(self, account_id: int, balance: Decimal) -> None:
        """잔고 덮어쓰기 (회계연도 전환 시 재계산 결과 반영)"""
        await self.db.execute(
            "UPDATE accounts SET balance = ? WHERE id = ?",
            (str(balance), account_id),
        )

    # =========================================================================
    # 회계연도
    # =========================================================================

    async def list_fiscal_years(self) -> list[FiscalYear]:
        """회계연도 목록 (최신 시작일 순)"""
        rows = await self.db.fetchall_dict(
            "SELECT * FROM fiscal_years ORDER BY start_date DESC, id DESC"
        )
        return [FiscalYear.from_row(row) for row in rows]

    async def get_fiscal_year(self, fiscal_year_id: int) -> FiscalYear | None:
        """회계연도 조회"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM fiscal_years WHERE id = ?",
            (fiscal_year_id,),
        )
        return FiscalYear.from_row(row) if row else None

    async def get_current_fiscal_year(self) -> FiscalYear | None:
        """현재 회계연도

        is_current 행이 없으면 가장 최근 시작일의 연도.
        """
        row = await self.db.fetchone_dict(
            "SELECT * FROM fiscal_years WHERE is_current = 1 ORDER BY id LIMIT 1"
        )
        if row is None:
            row = await self.db.fetchone_dict(
                "SELECT * FROM fiscal_years ORDER BY start_date DESC, id DESC LIMIT 1"
            )
        return FiscalYear.from_row(row) if row else None

    async def insert_fiscal_year(
        self,
        name: str,
        start_date: date,
        end_date: date,
        starting_balance_cash: Decimal,
        starting_balance_bank: Decimal,
        is_current: bool = False,
    ) -> FiscalYear:
        """회계연도 생성"""
        cursor = await self.db.execute(
            """
            INSERT INTO fiscal_years (
                name, start_date, end_date,
                starting_balance_cash, starting_balance_bank,
                is_current, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                start_date.isoformat(),
                end_date.isoformat(),
                str(starting_balance_cash),
                str(starting_balance_bank),
                1 if is_current else 0,
                _now_iso(),
            ),
        )
        fiscal_year = await self.get_fiscal_year(cursor.lastrowid)
        assert fiscal_year is not None
        return fiscal_year

    async def update_fiscal_year(self, fiscal_year: FiscalYear) -> None:
        """회계연도 수정 (is_current 제외)"""
        await self.db.execute(
            """
            UPDATE fiscal_years
            SET name = ?, start_date = ?, end_date = ?,
                starting_balance_cash = ?, starting_balance_bank = ?
            WHERE id = ?
            """,
            (
                fiscal_year.name,
                fiscal_year.start_date.isoformat(),
                fiscal_year.end_date.isoformat(),
                str(fiscal_year.starting_balance_cash),
                str(fiscal_year.starting_balance_bank),
                fiscal_year.id,
            ),
        )

    async def set_current_flag(self, fiscal_year_id: int) -> None:
        """현재 회계연도 플래그 전환 (다른 연도는 모두 해제)"""
        await self.db.execute(
            "UPDATE fiscal_years SET is_current = 0 WHERE id <> ?",
            (fiscal_year_id,),
        )
        await self.db.execute(
            "UPDATE fiscal_years SET is_current = 1 WHERE id = ?",
            (fiscal_year_id,),
        )

    async def delete_fiscal_year(self, fiscal_year_id: int) -> None:
        await self.db.execute(
            "DELETE FROM fiscal_years WHERE id = ?",
            (fiscal_year_id,),
        )

    # =========================================================================
    # 카테고리
    # =========================================================================

    async def list_categories(
        self,
        fiscal_year_id: int,
        category_type: CategoryType | None = None,
    ) -> list[Category]:
        """카테고리 목록 (유형, 정렬 순서 순)"""
        sql = "SELECT * FROM categories WHERE fiscal_year_id = ?"
        params: list[Any] = [fiscal_year_id]
        if category_type is not None:
            sql += " AND type = ?"
            params.append(category_type.value)
        sql += " ORDER BY type DESC, sort_order, id"

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [Category.from_row(row) for row in rows]

    async def get_category(self, category_id: int) -> Category | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM categories WHERE id = ?",
            (category_id,),
        )
        return Category.from_row(row) if row else None

    async def insert_category(
        self,
        fiscal_year_id: int,
        name: str,
        category_type: CategoryType,
        sort_order: int | None = None,
    ) -> Category:
        """카테고리 추가

        sort_order 미지정 시 같은 유형의 최대값 + 1.
        """
        if sort_order is None:
            row = await self.db.fetchone(
                """
                SELECT COALESCE(MAX(sort_order), 0) FROM categories
                WHERE fiscal_year_id = ? AND type = ?
                """,
                (fiscal_year_id, category_type.value),
            )
            sort_order = (row[0] if row else 0) + 1

        cursor = await self.db.execute(
            """
            INSERT INTO categories (name, type, sort_order, fiscal_year_id)
            VALUES (?, ?, ?, ?)
            """,
            (name, category_type.value, sort_order, fiscal_year_id),
        )
        category = await self.get_category(cursor.lastrowid)
        assert category is not None
        return category

    async def rename_category(self, category_id: int, name: str) -> None:
        await self.db.execute(
            "UPDATE categories SET name = ? WHERE id = ?",
            (name, category_id),
        )

    async def delete_category(self, category_id: int) -> None:
        await self.db.execute(
            "DELETE FROM categories WHERE id = ?",
            (category_id,),
        )

    async def delete_categories_for_year(self, fiscal_year_id: int) -> int:
        """회계연도의 카테고리 전체 삭제

        Returns:
            삭제된 행 수
        """
        cursor = await self.db.execute(
            "DELETE FROM categories WHERE fiscal_year_id = ?",
            (fiscal_year_id,),
        )
        return cursor.rowcount

    # =========================================================================
    # 거래
    # =========================================================================

    async def insert_transaction(self, tx: Transaction) -> None:
        """거래 삽입"""
        await self.db.execute(
            """
            INSERT INTO transactions (
                id, type, amount, description, category,
                account_id, from_account_id, to_account_id,
                fiscal_year_id, recorded_by, recorded_at,
                receipt_image_url, is_deleted, deleted_at,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tx.id,
                tx.type.value,
                str(tx.amount),
                tx.description,
                tx.category,
                tx.account_id,
                tx.from_account_id,
                tx.to_account_id,
                tx.fiscal_year_id,
                tx.recorded_by,
                tx.recorded_at.isoformat(),
                tx.receipt_image_url,
                1 if tx.is_deleted else 0,
                tx.deleted_at.isoformat() if tx.deleted_at else None,
                tx.created_at.isoformat() if tx.created_at else _now_iso(),
                tx.updated_at.isoformat() if tx.updated_at else _now_iso(),
            ),
        )

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        """거래 조회 (삭제된 거래 포함)"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM transactions WHERE id = ?",
            (transaction_id,),
        )
        return Transaction.from_row(row) if row else None

    async def update_transaction(self, tx: Transaction) -> None:
        """거래 행 덮어쓰기 (id, recorded_by, fiscal_year_id, created_at 제외)"""
        await self.db.execute(
            """
            UPDATE transactions
            SET type = ?, amount = ?, description = ?, category = ?,
                account_id = ?, from_account_id = ?, to_account_id = ?,
                recorded_at = ?, receipt_image_url = ?,
                is_deleted = ?, deleted_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                tx.type.value,
                str(tx.amount),
                tx.description,
                tx.category,
                tx.account_id,
                tx.from_account_id,
                tx.to_account_id,
                tx.recorded_at.isoformat(),
                tx.receipt_image_url,
                1 if tx.is_deleted else 0,
                tx.deleted_at.isoformat() if tx.deleted_at else None,
                tx.updated_at.isoformat() if tx.updated_at else _now_iso(),
                tx.id,
            ),
        )

    async def list_transactions(
        self,
        fiscal_year_id: int,
        include_deleted: bool = False,
        kind: TransactionKind | None = None,
        account_id: int | None = None,
        month: str | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        """거래 목록 (기록일 최신 순)

        Args:
            fiscal_year_id: 회계연도 ID
            include_deleted: 삭제된 거래 포함 여부
            kind: 거래 유형 필터
            account_id: 계좌 필터 (이동은 양쪽 계좌 모두 매칭)
            month: "YYYY-MM" 필터
            limit: 최대 건수
        """
        sql = "SELECT * FROM transactions WHERE fiscal_year_id = ?"
        params: list[Any] = [fiscal_year_id]

        if not include_deleted:
            sql += " AND is_deleted = 0"
        if kind is not None:
            sql += " AND type = ?"
            params.append(kind.value)
        if account_id is not None:
            sql += " AND (account_id = ? OR from_account_id = ? OR to_account_id = ?)"
            params.extend([account_id, account_id, account_id])
        if month:
            sql += " AND substr(recorded_at, 1, 7) = ?"
            params.append(month)

        sql += " ORDER BY recorded_at DESC, created_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [Transaction.from_row(row) for row in rows]

    async def list_deleted_transactions(self, fiscal_year_id: int) -> list[Transaction]:
        """삭제된 거래 목록 (복원 화면용, 삭제 시각 최신 순)"""
        rows = await self.db.fetchall_dict(
            """
            SELECT * FROM transactions
            WHERE fiscal_year_id = ? AND is_deleted = 1
            ORDER BY deleted_at DESC
            """,
            (fiscal_year_id,),
        )
        return [Transaction.from_row(row) for row in rows]

    async def list_receipt_urls_for_year(self, fiscal_year_id: int) -> list[str]:
        """회계연도 거래의 영수증 URL (삭제된 거래 포함)"""
        rows = await self.db.fetchall(
            """
            SELECT receipt_image_url FROM transactions
            WHERE fiscal_year_id = ? AND receipt_image_url IS NOT NULL
            """,
            (fiscal_year_id,),
        )
        return [row[0] for row in rows]

    async def delete_transactions_for_year(self, fiscal_year_id: int) -> int:
        """회계연도 거래 물리 삭제 (이력은 먼저 삭제해야 함)

        Returns:
            삭제된 행 수
        """
        cursor = await self.db.execute(
            "DELETE FROM transactions WHERE fiscal_year_id = ?",
            (fiscal_year_id,),
        )
        return cursor.rowcount

    async def count_transactions(self, fiscal_year_id: int | None = None) -> int:
        if fiscal_year_id is None:
            row = await self.db.fetchone("SELECT COUNT(*) FROM transactions")
        else:
            row = await self.db.fetchone(
                "SELECT COUNT(*) FROM transactions WHERE fiscal_year_id = ?",
                (fiscal_year_id,),
            )
        return row[0] if row else 0

    async def count_transactions_by_user(self, user_id: str) -> int:
        """회원이 기록한 거래 수 (회원 삭제 가능 여부 판단)"""
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM transactions WHERE recorded_by = ?",
            (user_id,),
        )
        return row[0] if row else 0

    async def count_receipts(self) -> int:
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM transactions WHERE receipt_image_url IS NOT NULL"
        )
        return row[0] if row else 0

    # =========================================================================
    # 거래 이력
    # =========================================================================

    async def append_history(
        self,
        transaction_id: str,
        action: HistoryAction,
        changed_by: str,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> int:
        """이력 추가

        Returns:
            이력 ID
        """
        cursor = await self.db.execute(
            """
            INSERT INTO transaction_history (
                transaction_id, action, changed_by, changed_at, old_data, new_data
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                transaction_id,
                action.value,
                changed_by,
                _now_iso(),
                json.dumps(old_data, ensure_ascii=False) if old_data is not None else None,
                json.dumps(new_data, ensure_ascii=False) if new_data is not None else None,
            ),
        )
        return cursor.lastrowid

    async def list_history(
        self,
        transaction_id: str | None = None,
        fiscal_year_id: int | None = None,
        limit: int = 100,
    ) -> list[HistoryRecord]:
        """이력 조회 (최신 순)

        Args:
            transaction_id: 거래 ID 필터
            fiscal_year_id: 회계연도 필터 (거래 기준)
            limit: 최대 건수
        """
        sql = (
            "SELECT h.*, u.name AS changed_by_name FROM transaction_history h"
            " LEFT JOIN users u ON u.id = h.changed_by"
        )
        params: list[Any] = []
        conditions: list[str] = []

        if fiscal_year_id is not None:
            sql += " JOIN transactions t ON t.id = h.transaction_id"
            conditions.append("t.fiscal_year_id = ?")
            params.append(fiscal_year_id)
        if transaction_id is not None:
            conditions.append("h.transaction_id = ?")
            params.append(transaction_id)

        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY h.id DESC LIMIT ?"
        params.append(limit)

        rows = await self.db.fetchall_dict(sql, tuple(params))
        return [HistoryRecord.from_row(row) for row in rows]

    async def delete_history_for_year(self, fiscal_year_id: int) -> int:
        """회계연도 거래의 이력 삭제 (연도 삭제 실행 시에만)

        Returns:
            삭제된 행 수
        """
        cursor = await self.db.execute(
            """
            DELETE FROM transaction_history
            WHERE transaction_id IN (
                SELECT id FROM transactions WHERE fiscal_year_id = ?
            )
            """,
            (fiscal_year_id,),
        )
        return cursor.rowcount

    async def count_history(self) -> int:
        row = await self.db.fetchone("SELECT COUNT(*) FROM transaction_history")
        return row[0] if row else 0

    # =========================================================================
    # 삭제 제안 / 투표
    # =========================================================================

    async def insert_proposal(self, proposal: DeletionProposal) -> None:
        """삭제 제안 삽입"""
        await self.db.execute(
            """
            INSERT INTO deletion_proposals (
                id, fiscal_year_id, fiscal_year_name, proposed_by, proposed_at,
                status, expires_at, total_members, required_approvals,
                approve_count, reject_count
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                proposal.id,
                proposal.fiscal_year_id,
                proposal.fiscal_year_name,
                proposal.proposed_by,
                proposal.proposed_at.isoformat(),
                proposal.status.value,
                proposal.expires_at.isoformat(),
                proposal.total_members,
                proposal.required_approvals,
                proposal.approve_count,
                proposal.reject_count,
            ),
        )

    async def get_proposal(self, proposal_id: str) -> DeletionProposal | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM deletion_proposals WHERE id = ?",
            (proposal_id,),
        )
        return DeletionProposal.from_row(row) if row else None

    async def list_proposals(self, fiscal_year_id: int | None = None) -> list[DeletionProposal]:
        """삭제 제안 목록 (최신 순)"""
        if fiscal_year_id is None:
            rows = await self.db.fetchall_dict(
                "SELECT * FROM deletion_proposals ORDER BY proposed_at DESC"
            )
        else:
            rows = await self.db.fetchall_dict(
                """
                SELECT * FROM deletion_proposals
                WHERE fiscal_year_id = ?
                ORDER BY proposed_at DESC
                """,
                (fiscal_year_id,),
            )
        return [DeletionProposal.from_row(row) for row in rows]

    async def list_open_proposals(self, fiscal_year_id: int) -> list[DeletionProposal]:
        """저장 상태가 pending/approved인 제안 (만료 여부는 호출자가 판단)"""
        rows = await self.db.fetchall_dict(
            """
            SELECT * FROM deletion_proposals
            WHERE fiscal_year_id = ? AND status IN ('pending', 'approved')
            ORDER BY proposed_at DESC
            """,
            (fiscal_year_id,),
        )
        return [DeletionProposal.from_row(row) for row in rows]

    async def set_proposal_status(
        self,
        proposal_id: str,
        status: ProposalStatus,
        executed_at: datetime | None = None,
    ) -> None:
        await self.db.execute(
            "UPDATE deletion_proposals SET status = ?, executed_at = ? WHERE id = ?",
            (
                status.value,
                executed_at.isoformat() if executed_at else None,
                proposal_id,
            ),
        )

    async def upsert_vote(
        self,
        proposal_id: str,
        user_id: str,
        vote: VoteChoice,
    ) -> None:
        """투표 (같은 회원의 재투표는 기존 행 갱신)

        집계는 deletion_votes 트리거가 처리.
        """
        await self.db.execute(
            """
            INSERT INTO deletion_votes (proposal_id, user_id, vote, voted_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(proposal_id, user_id) DO UPDATE SET
                vote = excluded.vote,
                voted_at = excluded.voted_at
            """,
            (proposal_id, user_id, vote.value, _now_iso()),
        )

    async def list_votes(self, proposal_id: str) -> list[DeletionVote]:
        rows = await self.db.fetchall_dict(
            "SELECT * FROM deletion_votes WHERE proposal_id = ? ORDER BY voted_at",
            (proposal_id,),
        )
        return [DeletionVote.from_row(row) for row in rows]

    async def get_vote(self, proposal_id: str, user_id: str) -> DeletionVote | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM deletion_votes WHERE proposal_id = ? AND user_id = ?",
            (proposal_id, user_id),
        )
        return DeletionVote.from_row(row) if row else None

    async def recalculate_proposals(self, total_members: int) -> int:
        """pending 제안의 회원 수 / 필요 승인 수 재계산

        회원 증감 후 호출. 필요 승인 수가 줄어 기준을 넘은 제안은 approved로 전환.

        Args:
            total_members: 현재 회원 수

        Returns:
            갱신된 제안 수
        """
        # ceil(n / 2) == (n + 1) // 2
        required = (total_members + 1) // 2

        cursor = await self.db.execute(
            """
            UPDATE deletion_proposals
            SET total_members = ?, required_approvals = ?
            WHERE status = 'pending'
            """,
            (total_members, required),
        )
        updated = cursor.rowcount

        await self.db.execute(
            """
            UPDATE deletion_proposals
            SET status = 'approved'
            WHERE status = 'pending'
              AND expires_at > ?
              AND approve_count >= required_approvals
              AND approve_count > 0
            """,
            (_now_iso(),),
        )

        logger.info(
            "삭제 제안 재계산",
            extra={"total_members": total_members, "required": required, "updated": updated},
        )
        return updated
