"""
장부 스키마 초기화

Web 시작 시 자동으로 장부 테이블과 투표 집계 트리거 생성.
CREATE IF NOT EXISTS 패턴으로 안전하게 동작.

users 테이블은 adapters.db.sqlite_adapter.init_schema에서 생성.
"""

import logging
from typing import TYPE_CHECKING

from core.ledger.types import INITIAL_ACCOUNTS

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """장부 스키마 초기화 (테이블 + 트리거)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_indexes(db)
    await _create_vote_triggers(db)
    await _insert_initial_accounts(db)
    logger.info("장부 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """장부 테이블 생성"""

    # accounts (현금 / 은행, 잔고는 Decimal TEXT)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id               INTEGER PRIMARY KEY,
            name             TEXT NOT NULL,
            balance          TEXT NOT NULL DEFAULT '0'
        )
    """)

    # fiscal_years
    await db.execute("""
        CREATE TABLE IF NOT EXISTS fiscal_years (
            id                     INTEGER PRIMARY KEY AUTOINCREMENT,
            name                   TEXT NOT NULL,
            start_date             TEXT NOT NULL,
            end_date               TEXT NOT NULL,
            starting_balance_cash  TEXT NOT NULL DEFAULT '0',
            starting_balance_bank  TEXT NOT NULL DEFAULT '0',
            is_current             INTEGER NOT NULL DEFAULT 0,
            created_at             TEXT NOT NULL DEFAULT (datetime('now')),
            CHECK (start_date <= end_date)
        )
    """)

    # categories (회계연도별)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            name             TEXT NOT NULL,
            type             TEXT NOT NULL CHECK (type IN ('income', 'expense')),
            sort_order       INTEGER NOT NULL DEFAULT 0,
            fiscal_year_id   INTEGER NOT NULL REFERENCES fiscal_years(id)
        )
    """)

    # transactions
    # account_id 또는 (from, to) 쌍 중 정확히 하나만 채워짐
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id                 TEXT PRIMARY KEY,
            type               TEXT NOT NULL CHECK (type IN ('income', 'expense', 'transfer')),
            amount             TEXT NOT NULL,
            description        TEXT NOT NULL,
            category           TEXT,
            account_id         INTEGER REFERENCES accounts(id),
            from_account_id    INTEGER REFERENCES accounts(id),
            to_account_id      INTEGER REFERENCES accounts(id),
            fiscal_year_id     INTEGER NOT NULL REFERENCES fiscal_years(id),
            recorded_by        TEXT NOT NULL REFERENCES users(id),
            recorded_at        TEXT NOT NULL,
            receipt_image_url  TEXT,
            is_deleted         INTEGER NOT NULL DEFAULT 0,
            deleted_at         TEXT,
            created_at         TEXT NOT NULL,
            updated_at         TEXT NOT NULL,
            CHECK (
                (type = 'transfer'
                    AND account_id IS NULL
                    AND from_account_id IS NOT NULL
                    AND to_account_id IS NOT NULL
                    AND from_account_id <> to_account_id
                    AND category IS NULL)
                OR
                (type <> 'transfer'
                    AND account_id IS NOT NULL
                    AND from_account_id IS NULL
                    AND to_account_id IS NULL
                    AND category IS NOT NULL)
            )
        )
    """)

    # transaction_history (추가 전용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transaction_history (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            transaction_id   TEXT NOT NULL REFERENCES transactions(id),
            action           TEXT NOT NULL CHECK (action IN ('created', 'updated', 'deleted', 'restored')),
            changed_by       TEXT NOT NULL,
            changed_at       TEXT NOT NULL,
            old_data         TEXT,
            new_data         TEXT
        )
    """)

    # deletion_proposals
    # fiscal_year_id는 FK 없음 (실행 후에도 제안 기록 유지)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS deletion_proposals (
            id                  TEXT PRIMARY KEY,
            fiscal_year_id      INTEGER NOT NULL,
            fiscal_year_name    TEXT NOT NULL,
            proposed_by         TEXT NOT NULL,
            proposed_at         TEXT NOT NULL,
            status              TEXT NOT NULL DEFAULT 'pending'
                                CHECK (status IN ('pending', 'approved', 'rejected', 'expired', 'executed')),
            expires_at          TEXT NOT NULL,
            total_members       INTEGER NOT NULL,
            required_approvals  INTEGER NOT NULL,
            approve_count       INTEGER NOT NULL DEFAULT 0,
            reject_count        INTEGER NOT NULL DEFAULT 0,
            executed_at         TEXT
        )
    """)

    # deletion_votes (제안당 회원 1표)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS deletion_votes (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            proposal_id   TEXT NOT NULL REFERENCES deletion_proposals(id) ON DELETE CASCADE,
            user_id       TEXT NOT NULL,
            vote          TEXT NOT NULL CHECK (vote IN ('approve', 'reject')),
            voted_at      TEXT NOT NULL,
            UNIQUE (proposal_id, user_id)
        )
    """)


async def _create_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성"""
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_fiscal_year
        ON transactions(fiscal_year_id, is_deleted, recorded_at)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_history_transaction
        ON transaction_history(transaction_id, changed_at)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_categories_fiscal_year
        ON categories(fiscal_year_id, type, sort_order)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_proposals_fiscal_year
        ON deletion_proposals(fiscal_year_id, status)
    """)


def _vote_trigger_sql(name: str, event: str) -> str:
    """투표 집계 트리거

    1. approve/reject 수 재집계
    2. pending & 찬성 >= 필요 승인 수 → approved
    3. pending & 반대가 전체 회원 과반 → rejected

    approved는 자동으로 되돌리지 않는다 (취소는 명시적 작업).
    """
    return f"""
        CREATE TRIGGER IF NOT EXISTS {name}
        AFTER {event} ON deletion_votes
        BEGIN
            UPDATE deletion_proposals
            SET approve_count = (
                    SELECT COUNT(*) FROM deletion_votes
                    WHERE proposal_id = NEW.proposal_id AND vote = 'approve'
                ),
                reject_count = (
                    SELECT COUNT(*) FROM deletion_votes
                    WHERE proposal_id = NEW.proposal_id AND vote = 'reject'
                )
            WHERE id = NEW.proposal_id;

            UPDATE deletion_proposals
            SET status = 'approved'
            WHERE id = NEW.proposal_id
              AND status = 'pending'
              AND approve_count >= required_approvals;

            UPDATE deletion_proposals
            SET status = 'rejected'
            WHERE id = NEW.proposal_id
              AND status = 'pending'
              AND reject_count * 2 > total_members;
        END
    """


async def _create_vote_triggers(db: "SQLiteAdapter") -> None:
    """투표 집계 트리거 생성 (INSERT / UPDATE)"""
    await db.execute(_vote_trigger_sql("trg_deletion_votes_insert", "INSERT"))
    await db.execute(_vote_trigger_sql("trg_deletion_votes_update", "UPDATE"))


async def _insert_initial_accounts(db: "SQLiteAdapter") -> None:
    """시스템 계좌 삽입 (이미 있으면 무시)"""
    for account_id, name in INITIAL_ACCOUNTS:
        await db.execute(
            """
            INSERT OR IGNORE INTO accounts (id, name, balance)
            VALUES (?, ?, '0')
            """,
            (account_id, name),
        )

    await db.commit()
