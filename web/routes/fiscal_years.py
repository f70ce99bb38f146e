"""
Fiscal Year API 라우터

회계연도 목록 / 생성 / 수정 / 현재 연도 전환 / 잔고 / 결산.
"""

from typing import Any

from fastapi import APIRouter, Depends

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.types import Actor
from web.dependencies import get_current_actor, get_db_write
from web.models.requests import FiscalYearCreateRequest, FiscalYearUpdateRequest
from web.services.fiscal_year_service import FiscalYearService
from web.services.proposal_service import ProposalService

router = APIRouter(prefix="/api/fiscal-years", tags=["FiscalYears"])


@router.get("")
async def list_fiscal_years(
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    """회계연도 목록 (시작일 최신순, 활성 삭제 제안 포함)"""
    years = await FiscalYearService(db).list_years()
    proposals = ProposalService(db)

    result = []
    for year in years:
        item = year.to_dict()
        active = await proposals.get_active_proposal(year.id)
        item["active_proposal"] = active.to_dict() if active else None
        result.append(item)
    return result


@router.get("/current")
async def get_current_fiscal_year(
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    year = await FiscalYearService(db).get_current()
    return year.to_dict()


@router.post("", status_code=201)
async def create_fiscal_year(
    request: FiscalYearCreateRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """회계연도 생성 (생략한 항목은 다음 4월~3월, 현재 연도 잔고 이월)"""
    year = await FiscalYearService(db).create_year(
        name=request.name,
        start_date=request.start_date,
        end_date=request.end_date,
        starting_balance_cash=request.starting_balance_cash,
        starting_balance_bank=request.starting_balance_bank,
        copy_categories_from=request.copy_categories_from,
    )
    return year.to_dict()


@router.get("/{fiscal_year_id}")
async def get_fiscal_year(
    fiscal_year_id: int,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    year = await FiscalYearService(db).get_year(fiscal_year_id)
    return year.to_dict()


@router.put("/{fiscal_year_id}")
async def update_fiscal_year(
    fiscal_year_id: int,
    request: FiscalYearUpdateRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    year = await FiscalYearService(db).update_year(fiscal_year_id, request.to_draft())
    return year.to_dict()


@router.post("/{fiscal_year_id}/set-current")
async def set_current_fiscal_year(
    fiscal_year_id: int,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """현재 연도 전환 (계좌 캐시 잔고를 새 연도 기준으로 맞춤)"""
    year = await FiscalYearService(db).set_current(fiscal_year_id)
    return year.to_dict()


@router.get("/{fiscal_year_id}/balances")
async def get_fiscal_year_balances(
    fiscal_year_id: int,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, str]:
    """연도 기준 계좌별 잔고 (계좌 ID → 금액)"""
    balances = await FiscalYearService(db).balances(fiscal_year_id)
    return {str(account_id): str(amount) for account_id, amount in balances.items()}


@router.get("/{fiscal_year_id}/statement")
async def get_fiscal_year_statement(
    fiscal_year_id: int,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    return await FiscalYearService(db).statement(fiscal_year_id)
