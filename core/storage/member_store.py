"""
MemberStore - 회원 / 초대 코드 / 시스템 이력 저장소

users, invite_codes, system_history 테이블 CRUD.
LedgerStore와 마찬가지로 커밋은 호출자가 담당.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.models import InviteCode, SystemHistory, UserProfile

logger = logging.getLogger(__name__)


class MemberStore:
    """회원 저장소

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # -------------------------------------------------------------------------
    # 회원
    # -------------------------------------------------------------------------

    async def insert_user(
        self,
        name: str,
        email: str,
        auth_user_id: str | None = None,
        user_id: str | None = None,
    ) -> UserProfile:
        """회원 프로필 생성"""
        user_id = user_id or str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        await self.db.execute(
            """
            INSERT INTO users (id, auth_user_id, name, email, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, auth_user_id, name, email, now),
        )

        user = await self.get_user(user_id)
        assert user is not None
        return user

    async def get_user(self, user_id: str) -> UserProfile | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM users WHERE id = ?",
            (user_id,),
        )
        return UserProfile.from_row(row) if row else None

    async def get_user_by_auth_id(self, auth_user_id: str) -> UserProfile | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM users WHERE auth_user_id = ?",
            (auth_user_id,),
        )
        return UserProfile.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> UserProfile | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM users WHERE email = ?",
            (email,),
        )
        return UserProfile.from_row(row) if row else None

    async def list_users(self) -> list[UserProfile]:
        """회원 목록 (가입 순)"""
        rows = await self.db.fetchall_dict("SELECT * FROM users ORDER BY created_at, id")
        return [UserProfile.from_row(row) for row in rows]

    async def count_users(self) -> int:
        row = await self.db.fetchone("SELECT COUNT(*) FROM users")
        return row[0] if row else 0

    async def delete_user(self, user_id: str) -> None:
        await self.db.execute("DELETE FROM users WHERE id = ?", (user_id,))

    # -------------------------------------------------------------------------
    # 초대 코드
    # -------------------------------------------------------------------------

    async def insert_invite_code(
        self,
        code: str,
        created_by: str | None,
        expires_at: datetime,
    ) -> InviteCode:
        """초대 코드 생성"""
        invite_id = f"inv-{uuid.uuid4().hex[:12]}"
        now = datetime.now(timezone.utc).isoformat()

        await self.db.execute(
            """
            INSERT INTO invite_codes (id, code, created_by, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (invite_id, code, created_by, now, expires_at.isoformat()),
        )

        invite = await self.get_invite_code(invite_id)
        assert invite is not None
        return invite

    async def get_invite_code(self, invite_id: str) -> InviteCode | None:
        row = await self.db.fetchone_dict(
            "SELECT * FROM invite_codes WHERE id = ?",
            (invite_id,),
        )
        return InviteCode.from_row(row) if row else None

    async def find_invite_code(self, code: str) -> InviteCode | None:
        """코드 문자열로 조회 (대소문자 구분 없이 대문자로 정규화)"""
        row = await self.db.fetchone_dict(
            "SELECT * FROM invite_codes WHERE code = ?",
            (code.strip().upper(),),
        )
        return InviteCode.from_row(row) if row else None

    async def list_invite_codes(self) -> list[InviteCode]:
        """초대 코드 목록 (최신 순)"""
        rows = await self.db.fetchall_dict(
            "SELECT * FROM invite_codes ORDER BY created_at DESC"
        )
        return [InviteCode.from_row(row) for row in rows]

    async def mark_invite_used(self, invite_id: str, user_id: str) -> int:
        """초대 코드 사용 처리

        Returns:
            갱신된 행 수 (이미 사용된 코드면 0)
        """
        cursor = await self.db.execute(
            """
            UPDATE invite_codes
            SET is_used = 1, used_by = ?, used_at = ?
            WHERE id = ? AND is_used = 0
            """,
            (user_id, datetime.now(timezone.utc).isoformat(), invite_id),
        )
        return cursor.rowcount

    async def delete_invite_code(self, invite_id: str) -> int:
        cursor = await self.db.execute(
            "DELETE FROM invite_codes WHERE id = ?",
            (invite_id,),
        )
        return cursor.rowcount

    async def delete_expired_invite_codes(self, now: datetime | None = None) -> int:
        """만료된 미사용 초대 코드 정리

        Returns:
            삭제된 행 수
        """
        now = now or datetime.now(timezone.utc)
        cursor = await self.db.execute(
            """
            DELETE FROM invite_codes
            WHERE is_used = 0 AND expires_at IS NOT NULL AND expires_at < ?
            """,
            (now.isoformat(),),
        )
        return cursor.rowcount

    async def count_invites_referencing(self, user_id: str) -> int:
        """회원을 참조하는 초대 코드 수 (생성자 또는 사용자)"""
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM invite_codes WHERE created_by = ? OR used_by = ?",
            (user_id, user_id),
        )
        return row[0] if row else 0

    # -------------------------------------------------------------------------
    # 시스템 이력
    # -------------------------------------------------------------------------

    async def append_system_history(
        self,
        action: str,
        performed_by: str,
        details: dict[str, Any] | None = None,
    ) -> int:
        """시스템 이력 추가

        Returns:
            이력 ID
        """
        cursor = await self.db.execute(
            """
            INSERT INTO system_history (action, performed_by, performed_at, details_json)
            VALUES (?, ?, ?, ?)
            """,
            (
                action,
                performed_by,
                datetime.now(timezone.utc).isoformat(),
                json.dumps(details or {}, ensure_ascii=False),
            ),
        )
        return cursor.lastrowid

    async def list_system_history(self, limit: int = 50) -> list[SystemHistory]:
        rows = await self.db.fetchall_dict(
            "SELECT * FROM system_history ORDER BY id DESC LIMIT ?",
            (limit,),
        )
        return [SystemHistory.from_row(row) for row in rows]
