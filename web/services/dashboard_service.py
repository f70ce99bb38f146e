"""
Dashboard 서비스

현재 회계연도 요약과 저장 용량 추정.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IBlobStore
from core.constants import Defaults, StorageEstimates
from core.ledger import LedgerStore
from core.types import TransactionKind
from web.services.fiscal_year_service import derive_year_balances

logger = logging.getLogger(__name__)


class DashboardService:
    """Dashboard 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        blob_store: 영수증 저장소 (사용량 집계 시)
    """

    def __init__(self, db: SQLiteAdapter, blob_store: IBlobStore | None = None):
        self.db = db
        self.store = LedgerStore(db)
        self.blob_store = blob_store

    async def get_summary(self, today: datetime | None = None) -> dict[str, Any]:
        """대시보드 요약

        - 계좌별 잔고 (현재 연도 계산값)
        - 최근 거래 5건
        - 이번 달 수입/지출 (현재 연도 안에서)
        """
        accounts = await self.store.get_accounts()
        fiscal_year = await self.store.get_current_fiscal_year()

        if fiscal_year is None:
            return {
                "fiscal_year": None,
                "accounts": [account.to_dict() for account in accounts],
                "total_balance": str(sum((a.balance for a in accounts), Decimal("0"))),
                "recent_transactions": [],
                "month_income": "0",
                "month_expense": "0",
            }

        balances = await derive_year_balances(self.store, fiscal_year)
        recent = await self.store.list_transactions(
            fiscal_year.id,
            limit=Defaults.RECENT_TRANSACTIONS_LIMIT,
        )

        today = today or datetime.now(timezone.utc)
        month = today.strftime("%Y-%m")
        month_transactions = await self.store.list_transactions(fiscal_year.id, month=month)

        month_income = sum(
            (tx.amount for tx in month_transactions if tx.type == TransactionKind.INCOME),
            Decimal("0"),
        )
        month_expense = sum(
            (tx.amount for tx in month_transactions if tx.type == TransactionKind.EXPENSE),
            Decimal("0"),
        )

        return {
            "fiscal_year": fiscal_year.to_dict(),
            "accounts": [
                {"id": account.id, "name": account.name, "balance": str(balances[account.id])}
                for account in accounts
            ],
            "total_balance": str(sum(balances.values(), Decimal("0"))),
            "recent_transactions": [tx.to_dict() for tx in recent],
            "month_income": str(month_income),
            "month_expense": str(month_expense),
        }

    async def get_storage_usage(self) -> dict[str, Any]:
        """저장 용량 추정

        DB: (거래 × 1KB + 이력 × 2KB) / 1024 MB
        영수증: 장수 × 100KB / 1024 MB
        """
        transaction_count = await self.store.count_transactions()
        history_count = await self.store.count_history()

        if self.blob_store is not None:
            image_count = len(await self.blob_store.list_blobs())
        else:
            image_count = await self.store.count_receipts()

        db_mb = (
            transaction_count * StorageEstimates.TRANSACTION_KB
            + history_count * StorageEstimates.HISTORY_KB
        ) / 1024
        storage_mb = image_count * StorageEstimates.RECEIPT_KB / 1024

        return {
            "transaction_count": transaction_count,
            "history_count": history_count,
            "image_count": image_count,
            "estimated_db_mb": round(db_mb, 2),
            "estimated_storage_mb": round(storage_mb, 2),
        }
