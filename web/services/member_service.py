"""
Member 서비스

가입(초대 코드) / 로그인 / 세션 해석 / 회원 삭제 / 초대 코드 관리.

회원 수가 바뀌면 pending 삭제 제안의 필요 승인 수를 다시 계산한다.
"""

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone

from adapters.auth.identity import IdentityService
from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.models import AuthSession
from core.constants import Defaults
from core.domain.errors import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    PermissionDeniedError,
    ValidationError,
)
from core.domain.models import InviteCode, UserProfile
from core.ledger import LedgerStore
from core.storage import MemberStore
from core.types import Actor, SystemAction

logger = logging.getLogger(__name__)


INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(length: int = Defaults.INVITE_CODE_LENGTH) -> str:
    """초대 코드 문자열 (대문자 + 숫자)"""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


class MemberService:
    """Member 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        identity: 인증 서비스
    """

    def __init__(self, db: SQLiteAdapter, identity: IdentityService):
        self.db = db
        self.identity = identity
        self.members = MemberStore(db)
        self.ledger = LedgerStore(db)

    async def _recalculate_proposals(self) -> None:
        async with self.db.transaction():
            total_members = await self.members.count_users()
            await self.ledger.recalculate_proposals(total_members)

    # =========================================================================
    # 인증
    # =========================================================================

    async def sign_up(
        self,
        name: str,
        email: str,
        password: str,
        invite_code: str | None = None,
    ) -> UserProfile:
        """가입

        첫 회원은 초대 코드 없이 가입할 수 있다.
        초대 코드 소비와 프로필 생성은 한 트랜잭션이며,
        이 단계가 실패하면 먼저 만든 인증 계정을 삭제한다.

        Raises:
            ValidationError: 이름 없음, 초대 코드 무효(없음/사용됨/만료)
            ConflictError: 이미 등록된 이메일
            PartialFailureError: 프로필 생성 실패 후 인증 계정 삭제도 실패
        """
        name = name.strip()
        if not name:
            raise ValidationError("名前を入力してください")

        invite: InviteCode | None = None
        if await self.members.count_users() > 0:
            if not invite_code:
                raise ValidationError("招待コードを入力してください")
            invite = await self.verify_invite(invite_code)

        identity = await self.identity.sign_up(email, password, metadata={"name": name})

        try:
            async with self.db.transaction():
                # 잠금 아래에서 다시 확인 (동시 가입)
                if invite is None and await self.members.count_users() > 0:
                    raise ValidationError("招待コードを入力してください")

                user = await self.members.insert_user(
                    name=name,
                    email=identity.email,
                    auth_user_id=identity.auth_user_id,
                )
                if invite is not None and not await self.members.mark_invite_used(invite.id, user.id):
                    raise ValidationError("この招待コードは既に使用されています")
        except Exception as e:
            try:
                await self.identity.admin_delete_user(identity.auth_user_id)
            except Exception as cleanup_error:
                logger.error(f"가입 실패 후 인증 계정 삭제 실패: {identity.auth_user_id}: {cleanup_error}")
                raise PartialFailureError(
                    f"会員登録に失敗し、認証アカウントの削除にも失敗しました: {e}",
                    completed_steps=["identity_created"],
                ) from cleanup_error
            raise

        await self._recalculate_proposals()

        logger.info("회원 가입", extra={"user_id": user.id})
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        return await self.identity.sign_in(email, password)

    async def sign_out(self, access_token: str) -> None:
        await self.identity.sign_out(access_token)

    async def resolve_member(self, access_token: str) -> UserProfile:
        """토큰 → 회원 프로필

        프로필이 없으면 인증 계정 정보로 생성.

        Raises:
            AuthError: 세션 무효
        """
        identity = await self.identity.resolve_session(access_token)

        user = await self.members.get_user_by_auth_id(identity.auth_user_id)
        if user is not None:
            return user

        name = identity.metadata.get("name") or identity.email.split("@")[0]
        async with self.db.transaction():
            user = await self.members.insert_user(
                name=name,
                email=identity.email,
                auth_user_id=identity.auth_user_id,
            )
        logger.info(f"프로필 자동 생성: {user.id}")

        await self._recalculate_proposals()
        return user

    @staticmethod
    def actor_for(user: UserProfile) -> Actor:
        return Actor.member(user.id, user.name)

    # =========================================================================
    # 회원
    # =========================================================================

    async def list_members(self) -> list[UserProfile]:
        return await self.members.list_users()

    async def delete_member(self, actor: Actor, user_id: str) -> None:
        """회원 삭제

        거래/초대 코드에서 참조되는 회원은 삭제할 수 없다.

        Raises:
            PermissionDeniedError: 자기 자신
            NotFoundError: 회원 없음
            ConflictError: 참조 데이터 있음
            PartialFailureError: 프로필 삭제 후 인증 계정 삭제 실패
        """
        if user_id == actor.id:
            raise PermissionDeniedError("自分自身は削除できません")

        user = await self.members.get_user(user_id)
        if user is None:
            raise NotFoundError(f"メンバーが見つかりません: {user_id}")

        if await self.ledger.count_transactions_by_user(user_id) > 0:
            raise ConflictError(f"{user.name}さんは取引を記録しているため削除できません")
        if await self.members.count_invites_referencing(user_id) > 0:
            raise ConflictError(f"{user.name}さんは招待コードに関連付けられているため削除できません")

        async with self.db.transaction():
            await self.members.delete_user(user_id)
            await self.members.append_system_history(
                SystemAction.MEMBER_DELETED.value,
                actor.id,
                {"user_id": user.id, "name": user.name, "email": user.email},
            )

        if user.auth_user_id:
            try:
                await self.identity.admin_delete_user(user.auth_user_id)
            except NotFoundError:
                logger.warning(f"인증 계정 없음 (프로필만 삭제): {user.auth_user_id}")
            except Exception as e:
                raise PartialFailureError(
                    f"メンバー情報は削除されましたが、認証アカウントの削除に失敗しました: {e}",
                    completed_steps=["profile_deleted"],
                ) from e

        await self._recalculate_proposals()
        logger.info("회원 삭제", extra={"user_id": user_id, "actor": actor.id})

    async def admin_delete_user(self, auth_user_id: str) -> None:
        """관리자 엔드포인트: 인증 계정 삭제

        Raises:
            ValidationError: ID 없음
            NotFoundError: 계정 없음
        """
        if not auth_user_id:
            raise ValidationError("authUserId is required")
        await self.identity.admin_delete_user(auth_user_id)

    # =========================================================================
    # 초대 코드
    # =========================================================================

    async def generate_invite(self, actor: Actor) -> InviteCode:
        """초대 코드 발급 (6자리, 1시간 유효)

        만료된 미사용 코드는 먼저 정리.
        """
        expires_at = datetime.now(timezone.utc) + timedelta(hours=Defaults.INVITE_CODE_TTL_HOURS)

        async with self.db.transaction():
            await self.members.delete_expired_invite_codes()
            code = generate_invite_code()
            while await self.members.find_invite_code(code) is not None:
                code = generate_invite_code()
            invite = await self.members.insert_invite_code(code, actor.id, expires_at)

        logger.info(f"초대 코드 발급: {invite.code} by {actor.id}")
        return invite

    async def list_invites(self) -> list[InviteCode]:
        return await self.members.list_invite_codes()

    async def verify_invite(self, code: str) -> InviteCode:
        """초대 코드 검증

        Raises:
            ValidationError: 없음 / 사용됨 / 만료
        """
        invite = await self.members.find_invite_code(code)
        if invite is None:
            raise ValidationError("招待コードが無効です")
        if invite.is_used:
            raise ValidationError("この招待コードは既に使用されています")
        if invite.is_expired():
            raise ValidationError("招待コードの有効期限が切れています")
        return invite

    async def delete_invite(self, invite_id: str) -> None:
        """Raises: NotFoundError"""
        async with self.db.transaction():
            deleted = await self.members.delete_invite_code(invite_id)
        if not deleted:
            raise NotFoundError(f"招待コードが見つかりません: {invite_id}")

    async def mark_invite_used(self, invite_id: str, email: str) -> None:
        """관리자 엔드포인트: 이메일로 회원을 찾아 초대 코드 사용 처리

        Raises:
            ValidationError: 항목 누락
            NotFoundError: 회원 또는 초대 코드 없음
            ConflictError: 이미 사용된 코드
        """
        if not invite_id or not email:
            raise ValidationError("inviteCodeId and email are required")

        user = await self.members.get_user_by_email(email.strip().lower())
        if user is None:
            raise NotFoundError(f"User not found: {email}")

        invite = await self.members.get_invite_code(invite_id)
        if invite is None:
            raise NotFoundError(f"Invite code not found: {invite_id}")

        async with self.db.transaction():
            updated = await self.members.mark_invite_used(invite_id, user.id)
        if not updated:
            raise ConflictError("Invite code already used")
