"""
어댑터 레이어

외부 서비스(DB, Blob 저장소, 인증)와의 연동을 담당.
Protocol 기반 인터페이스로 구현 교체 가능.
"""

from adapters.interfaces import (
    IBlobStore,
    IIdentityProvider,
)
from adapters.models import (
    AuthIdentity,
    AuthSession,
    StoredBlob,
)

__all__ = [
    # Interfaces
    "IBlobStore",
    "IIdentityProvider",
    # Models
    "AuthIdentity",
    "AuthSession",
    "StoredBlob",
]
