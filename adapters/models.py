"""
어댑터 공통 데이터 모델

Blob 저장소, 인증 서비스가 반환하는 값 객체.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class StoredBlob:
    """저장된 Blob 정보

    Attributes:
        key: 저장소 내 고유 키 (예: 1714521600000_ab12cd.jpg)
        size: 바이트 크기
        public_url: 공개 URL
    """

    key: str
    size: int
    public_url: str


@dataclass(frozen=True)
class AuthIdentity:
    """인증 계정 (프로필과 별개)"""

    auth_user_id: str
    email: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True)
class AuthSession:
    """발급된 세션

    Attributes:
        access_token: Bearer 토큰 (JWT)
        auth_user_id: 인증 계정 ID
        session_id: 세션 ID (토큰 jti)
        expires_at: 만료 시각
    """

    access_token: str
    auth_user_id: str
    session_id: str
    expires_at: datetime
