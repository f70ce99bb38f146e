"""
Transaction API 라우터

장부 기록 / 수정 / 삭제 / 복원 / 이력 / 영수증 업로드.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.types import Actor, TransactionKind
from web.dependencies import get_blob_store, get_current_actor, get_db_write
from web.models.requests import DeleteTransactionRequest, TransactionRequest
from web.models.responses import ReceiptUploadResponse
from web.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Transactions"])


def _service(db: SQLiteAdapter) -> TransactionService:
    return TransactionService(db, blob_store=get_blob_store())


# =========================================================================
# 조회
# =========================================================================


@router.get("/transactions")
async def list_transactions(
    fiscal_year_id: int | None = Query(default=None, description="회계연도 (기본: 현재)"),
    type: TransactionKind | None = Query(default=None, description="income / expense / transfer"),
    account_id: int | None = Query(default=None, description="계좌 필터"),
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM"),
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """장부 목록 (삭제되지 않은 거래, 최신순)"""
    return await _service(db).list_transactions(
        fiscal_year_id=fiscal_year_id,
        kind=type,
        account_id=account_id,
        month=month,
    )


@router.get("/transactions/deleted")
async def list_deleted_transactions(
    fiscal_year_id: int | None = Query(default=None),
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    transactions = await _service(db).list_deleted(fiscal_year_id)
    return [tx.to_dict() for tx in transactions]


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    transaction = await _service(db).get_transaction(transaction_id)
    return transaction.to_dict()


@router.get("/transactions/{transaction_id}/history")
async def get_transaction_history(
    transaction_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    records = await _service(db).get_history(transaction_id=transaction_id)
    return [record.to_dict() for record in records]


@router.get("/history")
async def get_history(
    fiscal_year_id: int | None = Query(default=None, description="회계연도 (기본: 현재)"),
    limit: int = Query(default=100, ge=1, le=500),
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    """회계연도 변경 이력 (최신순)"""
    records = await _service(db).get_history(fiscal_year_id=fiscal_year_id, limit=limit)
    return [record.to_dict() for record in records]


# =========================================================================
# 변경
# =========================================================================


@router.post("/transactions", status_code=201)
async def create_transaction(
    request: TransactionRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """거래 기록 (현재 회계연도)"""
    transaction = await _service(db).create(actor, request.to_draft())
    return transaction.to_dict()


@router.put("/transactions/{transaction_id}")
async def edit_transaction(
    transaction_id: str,
    request: TransactionRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    transaction = await _service(db).edit(actor, transaction_id, request.to_draft())
    return transaction.to_dict()


@router.post("/transactions/{transaction_id}/delete")
async def delete_transaction(
    transaction_id: str,
    request: DeleteTransactionRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """거래 삭제 (soft delete, 본인 이름 확인)"""
    transaction = await _service(db).delete(actor, transaction_id, request.confirmation_name)
    return transaction.to_dict()


@router.post("/transactions/{transaction_id}/restore")
async def restore_transaction(
    transaction_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    transaction = await _service(db).restore(actor, transaction_id)
    return transaction.to_dict()


# =========================================================================
# 영수증
# =========================================================================


@router.post("/receipts", response_model=ReceiptUploadResponse, status_code=201)
async def upload_receipt(
    request: Request,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> ReceiptUploadResponse:
    """영수증 이미지 업로드

    요청 본문이 이미지 바이트, Content-Type이 image/* 여야 한다.
    """
    data = await request.body()
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    url = await _service(db).upload_receipt(data, content_type or None)
    return ReceiptUploadResponse(url=url)
