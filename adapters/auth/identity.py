"""
로컬 인증 서비스

이메일/비밀번호 계정과 JWT 세션 관리. IIdentityProvider 인터페이스 구현체.

- 비밀번호: werkzeug.security 해시 (salt는 해시 문자열에 포함)
- 세션: HS256 JWT, jti는 auth_sessions 테이블에 기록 (로그아웃 시 revoked)

주의: 각 메서드는 자체 트랜잭션으로 커밋한다.
호출자의 db.transaction() 블록 안에서 호출하지 않는다.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.models import AuthIdentity, AuthSession
from core.constants import Defaults
from core.domain.errors import AuthError, ConflictError, NotFoundError, ValidationError
from core.domain.models import parse_datetime

logger = logging.getLogger(__name__)


MIN_PASSWORD_LENGTH = 6
JWT_ALGORITHM = "HS256"


class IdentityService:
    """로컬 인증 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        secret_key: JWT 서명 키
        session_ttl_hours: 세션 유효 시간
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        secret_key: str,
        session_ttl_hours: int = Defaults.SESSION_TTL_HOURS,
    ):
        self.db = db
        self._secret_key = secret_key
        self.session_ttl_hours = session_ttl_hours

    async def _get_identity_row(self, auth_user_id: str) -> dict[str, Any] | None:
        return await self.db.fetchone_dict(
            "SELECT * FROM auth_identities WHERE auth_user_id = ?",
            (auth_user_id,),
        )

    @staticmethod
    def _to_identity(row: dict[str, Any]) -> AuthIdentity:
        return AuthIdentity(
            auth_user_id=row["auth_user_id"],
            email=row["email"],
            metadata=json.loads(row["metadata_json"]) if row.get("metadata_json") else {},
            created_at=parse_datetime(row.get("created_at")),
        )

    async def get_identity(self, auth_user_id: str) -> AuthIdentity | None:
        row = await self._get_identity_row(auth_user_id)
        return self._to_identity(row) if row else None

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> AuthIdentity:
        """계정 생성

        Args:
            email: 이메일 (소문자로 정규화)
            password: 비밀번호 (6자 이상)
            metadata: 가입 시 부가 정보 (예: {"name": "山田"})

        Raises:
            ValidationError: 이메일/비밀번호 형식 오류
            ConflictError: 이미 등록된 이메일
        """
        email = email.strip().lower()
        if "@" not in email:
            raise ValidationError("メールアドレスが正しくありません")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"パスワードは{MIN_PASSWORD_LENGTH}文字以上で入力してください")

        auth_user_id = str(uuid.uuid4())
        password_hash = generate_password_hash(password)
        now = datetime.now(timezone.utc).isoformat()

        async with self.db.transaction():
            existing = await self.db.fetchone(
                "SELECT 1 FROM auth_identities WHERE email = ?",
                (email,),
            )
            if existing:
                raise ConflictError("このメールアドレスは既に登録されています")

            await self.db.execute(
                """
                INSERT INTO auth_identities (
                    auth_user_id, email, password_hash, metadata_json, created_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    auth_user_id,
                    email,
                    password_hash,
                    json.dumps(metadata or {}, ensure_ascii=False),
                    now,
                ),
            )

        logger.info("계정 생성", extra={"auth_user_id": auth_user_id})

        identity = await self.get_identity(auth_user_id)
        assert identity is not None
        return identity

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """로그인

        Raises:
            AuthError: 이메일 또는 비밀번호 불일치
        """
        row = await self.db.fetchone_dict(
            "SELECT * FROM auth_identities WHERE email = ?",
            (email.strip().lower(),),
        )
        if row is None:
            raise AuthError("メールアドレスまたはパスワードが正しくありません")

        if not check_password_hash(row["password_hash"], password):
            raise AuthError("メールアドレスまたはパスワードが正しくありません")

        return await self._issue_session(row["auth_user_id"])

    async def _issue_session(self, auth_user_id: str) -> AuthSession:
        """세션 발급 (JWT + auth_sessions 기록)"""
        session_id = uuid.uuid4().hex
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(hours=self.session_ttl_hours)

        token = jwt.encode(
            {
                "sub": auth_user_id,
                "jti": session_id,
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
            },
            self._secret_key,
            algorithm=JWT_ALGORITHM,
        )

        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO auth_sessions (session_id, auth_user_id, issued_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (session_id, auth_user_id, issued_at.isoformat(), expires_at.isoformat()),
            )

        logger.debug(f"세션 발급: {auth_user_id}")

        return AuthSession(
            access_token=token,
            auth_user_id=auth_user_id,
            session_id=session_id,
            expires_at=expires_at,
        )

    def _decode(self, access_token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                access_token,
                self._secret_key,
                algorithms=[JWT_ALGORITHM],
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("セッションの有効期限が切れました") from e
        except jwt.InvalidTokenError as e:
            raise AuthError("セッションが無効です") from e

    async def resolve_session(self, access_token: str) -> AuthIdentity:
        """토큰 검증 → 인증 계정

        Raises:
            AuthError: 토큰 무효/만료, 폐기된 세션, 삭제된 계정
        """
        claims = self._decode(access_token)

        session = await self.db.fetchone_dict(
            "SELECT * FROM auth_sessions WHERE session_id = ?",
            (claims.get("jti"),),
        )
        if session is None or session["revoked"]:
            raise AuthError("セッションが無効です")

        identity = await self.get_identity(claims["sub"])
        if identity is None:
            raise AuthError("アカウントが存在しません")
        return identity

    async def sign_out(self, access_token: str) -> None:
        """로그아웃 (세션 폐기)"""
        claims = self._decode(access_token)

        async with self.db.transaction():
            await self.db.execute(
                "UPDATE auth_sessions SET revoked = 1 WHERE session_id = ?",
                (claims.get("jti"),),
            )

        logger.debug(f"세션 폐기: {claims.get('sub')}")

    async def admin_delete_user(self, auth_user_id: str) -> None:
        """관리자 권한 계정 삭제 (세션 포함)

        Raises:
            NotFoundError: 계정 없음
        """
        row = await self._get_identity_row(auth_user_id)
        if row is None:
            raise NotFoundError(f"ユーザーが見つかりません: {auth_user_id}")

        async with self.db.transaction():
            await self.db.execute(
                "DELETE FROM auth_sessions WHERE auth_user_id = ?",
                (auth_user_id,),
            )
            await self.db.execute(
                "DELETE FROM auth_identities WHERE auth_user_id = ?",
                (auth_user_id,),
            )

        logger.info("계정 삭제", extra={"auth_user_id": auth_user_id})
