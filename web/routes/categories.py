"""
Category API 라우터
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.types import Actor, CategoryType
from web.dependencies import get_current_actor, get_db_write
from web.models.requests import CategoryCreateRequest, CategoryRenameRequest
from web.models.responses import SuccessResponse
from web.services.category_service import CategoryService

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("")
async def list_categories(
    fiscal_year_id: int = Query(..., description="회계연도 ID"),
    type: CategoryType | None = Query(default=None, description="income / expense"),
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    categories = await CategoryService(db).list_categories(fiscal_year_id, type)
    return [category.to_dict() for category in categories]


@router.post("", status_code=201)
async def add_category(
    request: CategoryCreateRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    category = await CategoryService(db).add_category(
        request.fiscal_year_id,
        request.name,
        request.type,
    )
    return category.to_dict()


@router.put("/{category_id}")
async def rename_category(
    category_id: int,
    request: CategoryRenameRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """이름 변경 (기존 거래의 category 문자열은 그대로)"""
    category = await CategoryService(db).rename_category(category_id, request.name)
    return category.to_dict()


@router.delete("/{category_id}", response_model=SuccessResponse)
async def delete_category(
    category_id: int,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> SuccessResponse:
    await CategoryService(db).delete_category(category_id)
    return SuccessResponse()
