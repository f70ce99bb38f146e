"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 테스트용 구현 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Any, Protocol, runtime_checkable

from adapters.models import AuthIdentity, AuthSession, StoredBlob


@runtime_checkable
class IBlobStore(Protocol):
    """영수증 이미지 저장소 인터페이스

    업로드 시 고유 키를 생성하고 공개 URL을 반환.
    """

    async def upload(self, data: bytes, content_type: str) -> tuple[str, str]:
        """업로드

        Args:
            data: 파일 내용
            content_type: MIME 타입 (image/*)

        Returns:
            (key, public_url)
        """
        ...

    async def list_blobs(self) -> list[StoredBlob]:
        """저장된 Blob 목록 (사용량 집계용)"""
        ...

    async def remove(self, keys: list[str]) -> int:
        """키 목록 일괄 삭제

        Returns:
            실제 삭제된 수
        """
        ...

    def key_from_url(self, url: str) -> str | None:
        """공개 URL에서 키 추출"""
        ...


@runtime_checkable
class IIdentityProvider(Protocol):
    """인증 서비스 인터페이스

    세션 발급/검증과 관리자 전용 계정 삭제.
    """

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> AuthIdentity:
        """계정 생성"""
        ...

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """로그인 (세션 발급)"""
        ...

    async def sign_out(self, access_token: str) -> None:
        """로그아웃 (세션 폐기)"""
        ...

    async def resolve_session(self, access_token: str) -> AuthIdentity:
        """토큰 → 인증 계정"""
        ...

    async def admin_delete_user(self, auth_user_id: str) -> None:
        """관리자 권한 계정 삭제"""
        ...
