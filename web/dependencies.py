"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from adapters.auth.identity import IdentityService
from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.storage.blob_store import LocalBlobStore
from core.config.loader import Settings, get_settings
from core.domain.errors import AuthError
from core.domain.models import UserProfile
from core.types import Actor
from web.services.member_service import MemberService

_bearer = HTTPBearer(auto_error=False)


def get_app_settings() -> Settings:
    """애플리케이션 설정 반환"""
    return get_settings()


async def get_db() -> AsyncGenerator[SQLiteAdapter, None]:
    """DB 세션 반환 (읽기 전용)

    헬스 체크처럼 쓰기가 없는 요청에서 사용.
    """
    settings = get_settings()
    async with SQLiteAdapter(settings.db_path, readonly=True) as db:
        yield db


async def get_db_write() -> AsyncGenerator[SQLiteAdapter, None]:
    """DB 세션 반환 (쓰기 가능)

    회원 인증 시 프로필 자동 생성이 있으므로 인증이 필요한 요청은 모두 사용.
    """
    settings = get_settings()
    async with SQLiteAdapter(settings.db_path, readonly=False) as db:
        yield db


# =========================================================================
# 협력자 (영수증 저장소 / 인증)
# =========================================================================


def get_blob_store() -> LocalBlobStore:
    settings = get_settings()
    return LocalBlobStore(settings.receipts_dir, settings.public_base_url)


def get_identity(db: SQLiteAdapter = Depends(get_db_write)) -> IdentityService:
    settings = get_settings()
    return IdentityService(
        db,
        secret_key=settings.web_secret_key,
        session_ttl_hours=settings.session_ttl_hours,
    )


def get_member_service(
    db: SQLiteAdapter = Depends(get_db_write),
    identity: IdentityService = Depends(get_identity),
) -> MemberService:
    return MemberService(db, identity)


# =========================================================================
# 인증
# =========================================================================


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """Bearer 토큰 추출

    Raises:
        AuthError: Authorization 헤더 없음
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("ログインしてください")
    return credentials.credentials


async def get_current_member(
    access_token: str = Depends(get_access_token),
    members: MemberService = Depends(get_member_service),
) -> UserProfile:
    """현재 로그인 회원 (프로필이 없으면 자동 생성)"""
    return await members.resolve_member(access_token)


async def get_current_actor(
    user: UserProfile = Depends(get_current_member),
) -> Actor:
    return MemberService.actor_for(user)


def require_service_key(
    x_service_key: str | None = Header(default=None, alias="X-Service-Key"),
) -> None:
    """관리자 엔드포인트용 서비스 키 확인

    Raises:
        AuthError: 키 없음 또는 불일치
    """
    expected = get_settings().admin_service_key
    if not x_service_key or not hmac.compare_digest(x_service_key, expected):
        raise AuthError("Unauthorized")
