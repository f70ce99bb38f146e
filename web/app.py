"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from core.config.loader import Settings, get_settings
from core.domain.errors import LedgerError, NotFoundError
from core.logging import setup_logging

# 로깅 설정 (콘솔 + 파일)
setup_logging("web")

from web.dependencies import get_blob_store
from web.routes import (
    admin,
    auth,
    categories,
    dashboard,
    fiscal_years,
    health,
    members,
    proposals,
    transactions,
)

logger = logging.getLogger(__name__)


async def init_database(settings: Settings) -> None:
    """DB 스키마 및 영수증 디렉토리 초기화 (idempotent)"""
    from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
    from core.ledger import init_ledger_schema

    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)
        await init_ledger_schema(db)

    settings.receipts_dir.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리"""
    settings = get_settings()

    # 시작 시 - DB 스키마 자동 초기화
    await init_database(settings)
    logger.info(f"Web: DB 초기화 완료 ({settings.db_path})")

    yield


app = FastAPI(
    title="Club Ledger API",
    description="동아리 회계 장부 API (현금/은행 계좌, 회계연도, 삭제 투표)",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (개발용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================================================
# 오류 응답 ({"error": "..."})
# =========================================================================


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 실패: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "invalid")
    else:
        message = "invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} 처리 중 예외")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(transactions.router)
app.include_router(fiscal_years.router)
app.include_router(categories.router)
app.include_router(proposals.router)
app.include_router(members.router)
app.include_router(admin.router)


# =========================================================================
# 영수증 공개 URL
# =========================================================================


@app.get("/receipts/{key}", include_in_schema=False)
async def get_receipt(key: str) -> FileResponse:
    """영수증 이미지 제공 (public_base_url이 이 경로를 가리키는 경우)"""
    blob_store = get_blob_store()
    path = blob_store.path_for(key)
    if not path.is_file():
        raise NotFoundError(f"画像が見つかりません: {key}")
    return FileResponse(path)
