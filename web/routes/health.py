"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.errors import CollaboratorError
from web.dependencies import get_db
from web.models.responses import HealthResponse

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: SQLiteAdapter = Depends(get_db)) -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status, database, version 정보
    """
    database = "ok"
    try:
        await db.fetchone("SELECT 1")
    except CollaboratorError as e:
        logger.warning(f"헬스 체크 DB 오류: {e}")
        database = "error"

    return HealthResponse(
        status="ok",
        database=database,
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc),
    )
