"""
Dashboard API 라우터

대시보드 요약 / 계좌 잔고 / 저장 용량.
"""

from typing import Any

from fastapi import APIRouter, Depends

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger import LedgerStore
from core.types import Actor
from web.dependencies import get_blob_store, get_current_actor, get_db_write
from web.models.responses import StorageUsageResponse
from web.services.dashboard_service import DashboardService
from web.services.fiscal_year_service import derive_year_balances

router = APIRouter(prefix="/api", tags=["Dashboard"])


@router.get("/dashboard")
async def get_dashboard(
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """현재 연도 잔고, 최근 거래 5건, 이번 달 수입/지출"""
    service = DashboardService(db)
    return await service.get_summary()


@router.get("/accounts")
async def get_accounts(
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    """계좌 목록

    balance는 캐시 값, derived_balance는 현재 연도 거래로 계산한 값.
    """
    store = LedgerStore(db)
    accounts = await store.get_accounts()
    fiscal_year = await store.get_current_fiscal_year()
    derived = await derive_year_balances(store, fiscal_year) if fiscal_year else {}

    result = []
    for account in accounts:
        item = account.to_dict()
        if account.id in derived:
            item["derived_balance"] = str(derived[account.id])
        result.append(item)
    return result


@router.get("/storage/usage", response_model=StorageUsageResponse)
async def get_storage_usage(
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> StorageUsageResponse:
    service = DashboardService(db, blob_store=get_blob_store())
    return StorageUsageResponse(**await service.get_storage_usage())
