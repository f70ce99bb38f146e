"""
인증 서비스 테스트

가입 / 로그인 / 세션 해석 / 로그아웃 / 계정 삭제
"""

import jwt
import pytest
import pytest_asyncio
from werkzeug.security import check_password_hash

from adapters.auth.identity import IdentityService
from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IIdentityProvider
from core.domain.errors import AuthError, ConflictError, NotFoundError, ValidationError

SECRET = "test-secret"


@pytest_asyncio.fixture
async def identity(db: SQLiteAdapter) -> IdentityService:
    return IdentityService(db, secret_key=SECRET, session_ttl_hours=1)


class TestPasswordStorage:
    @pytest.mark.asyncio
    async def test_stores_salted_hash(self, db: SQLiteAdapter, identity: IdentityService) -> None:
        await identity.sign_up("taro@example.com", "password")
        await identity.sign_up("hanako@example.com", "password")

        rows = await db.fetchall("SELECT password_hash FROM auth_identities ORDER BY email")
        hashes = [row[0] for row in rows]

        assert "password" not in hashes
        assert hashes[0] != hashes[1]
        assert all(check_password_hash(h, "password") for h in hashes)


class TestIdentityService:
    """IdentityService 테스트"""

    def test_implements_interface(self, identity: IdentityService) -> None:
        assert isinstance(identity, IIdentityProvider)

    @pytest.mark.asyncio
    async def test_sign_up_normalizes_email(self, identity: IdentityService) -> None:
        created = await identity.sign_up("  Taro@Example.COM ", "password", {"name": "太郎"})

        assert created.email == "taro@example.com"
        assert created.metadata == {"name": "太郎"}

    @pytest.mark.asyncio
    async def test_sign_up_duplicate_email(self, identity: IdentityService) -> None:
        await identity.sign_up("taro@example.com", "password")

        with pytest.raises(ConflictError):
            await identity.sign_up("TARO@example.com", "password")

    @pytest.mark.asyncio
    async def test_sign_up_validation(self, identity: IdentityService) -> None:
        with pytest.raises(ValidationError):
            await identity.sign_up("not-an-email", "password")
        with pytest.raises(ValidationError):
            await identity.sign_up("taro@example.com", "123")

    @pytest.mark.asyncio
    async def test_sign_in_and_resolve(self, identity: IdentityService) -> None:
        created = await identity.sign_up("taro@example.com", "password")

        session = await identity.sign_in("taro@example.com", "password")
        resolved = await identity.resolve_session(session.access_token)

        assert session.auth_user_id == created.auth_user_id
        assert resolved.auth_user_id == created.auth_user_id

    @pytest.mark.asyncio
    async def test_sign_in_wrong_password(self, identity: IdentityService) -> None:
        await identity.sign_up("taro@example.com", "password")

        with pytest.raises(AuthError):
            await identity.sign_in("taro@example.com", "wrong-password")

    @pytest.mark.asyncio
    async def test_sign_in_unknown_email(self, identity: IdentityService) -> None:
        with pytest.raises(AuthError):
            await identity.sign_in("nobody@example.com", "password")

    @pytest.mark.asyncio
    async def test_sign_out_revokes_session(self, identity: IdentityService) -> None:
        await identity.sign_up("taro@example.com", "password")
        session = await identity.sign_in("taro@example.com", "password")

        await identity.sign_out(session.access_token)

        with pytest.raises(AuthError):
            await identity.resolve_session(session.access_token)

    @pytest.mark.asyncio
    async def test_token_signed_with_other_key(self, identity: IdentityService) -> None:
        forged = jwt.encode({"sub": "x", "jti": "y"}, "other-key", algorithm="HS256")

        with pytest.raises(AuthError):
            await identity.resolve_session(forged)

    @pytest.mark.asyncio
    async def test_expired_token(self, identity: IdentityService) -> None:
        expired = jwt.encode({"sub": "x", "jti": "y", "exp": 1}, SECRET, algorithm="HS256")

        with pytest.raises(AuthError, match="有効期限"):
            await identity.resolve_session(expired)

    @pytest.mark.asyncio
    async def test_admin_delete_user(self, identity: IdentityService) -> None:
        created = await identity.sign_up("taro@example.com", "password")
        session = await identity.sign_in("taro@example.com", "password")

        await identity.admin_delete_user(created.auth_user_id)

        assert await identity.get_identity(created.auth_user_id) is None
        with pytest.raises(AuthError):
            await identity.resolve_session(session.access_token)

    @pytest.mark.asyncio
    async def test_admin_delete_unknown_user(self, identity: IdentityService) -> None:
        with pytest.raises(NotFoundError):
            await identity.admin_delete_user("missing")
