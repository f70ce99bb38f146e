"""MemberService 통합 테스트 (가입 / 초대 코드 / 회원 삭제)"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from adapters.auth.identity import IdentityService
from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.errors import (
    AuthError,
    CollaboratorError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.domain.models import FiscalYear, UserProfile
from core.ledger import LedgerStore
from core.storage import MemberStore
from core.types import SystemAction, TransactionKind, VoteChoice
from web.services.member_service import INVITE_CODE_ALPHABET, MemberService, generate_invite_code
from web.services.proposal_service import ProposalService
from web.services.transaction_service import TransactionDraft, TransactionService


@pytest.fixture
def identity(db: SQLiteAdapter) -> IdentityService:
    return IdentityService(db, secret_key="member-service-test-key", session_ttl_hours=1)


@pytest.fixture
def service(db: SQLiteAdapter, identity: IdentityService) -> MemberService:
    return MemberService(db, identity)


async def signup_founder(service: MemberService) -> UserProfile:
    return await service.sign_up("Taro", "taro@example.com", "secret123")


class TestInviteCodeFormat:
    def test_code_shape(self) -> None:
        code = generate_invite_code()

        assert len(code) == 6
        assert set(code) <= set(INVITE_CODE_ALPHABET)


class TestSignUp:
    """가입 테스트"""

    @pytest.mark.asyncio
    async def test_first_member_needs_no_invite(self, service: MemberService) -> None:
        user = await signup_founder(service)

        assert user.name == "Taro"
        assert user.auth_user_id is not None
        assert [m.id for m in await service.list_members()] == [user.id]

    @pytest.mark.asyncio
    async def test_second_member_needs_invite(self, service: MemberService) -> None:
        await signup_founder(service)

        with pytest.raises(ValidationError):
            await service.sign_up("Hanako", "hanako@example.com", "secret123")

    @pytest.mark.asyncio
    async def test_signup_with_invite_marks_used(self, service: MemberService) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))

        user = await service.sign_up("Hanako", "hanako@example.com", "secret123", invite.code)

        stored = (await service.list_invites())[0]
        assert stored.is_used
        assert stored.used_by == user.id
        with pytest.raises(ValidationError):
            await service.sign_up("Jiro", "jiro@example.com", "secret123", invite.code)

    @pytest.mark.asyncio
    async def test_concurrent_signups_consume_invite_once(self, db: SQLiteAdapter, service: MemberService) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))

        async def sign_up_on_own_connection(name: str, email: str) -> UserProfile:
            async with SQLiteAdapter(db.db_path) as conn:
                identity = IdentityService(conn, secret_key="member-service-test-key", session_ttl_hours=1)
                return await MemberService(conn, identity).sign_up(name, email, "secret123", invite.code)

        results = await asyncio.gather(
            sign_up_on_own_connection("Hanako", "hanako@example.com"),
            sign_up_on_own_connection("Jiro", "jiro@example.com"),
            return_exceptions=True,
        )

        winners = [r for r in results if isinstance(r, UserProfile)]
        losers = [r for r in results if isinstance(r, ValidationError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert len(await service.list_members()) == 2
        assert (await service.list_invites())[0].used_by == winners[0].id

        loser_email = "jiro@example.com" if winners[0].name == "Hanako" else "hanako@example.com"
        with pytest.raises(AuthError):
            await service.sign_in(loser_email, "secret123")

    @pytest.mark.asyncio
    async def test_failed_profile_insert_removes_identity(
        self, db: SQLiteAdapter, service: MemberService, make_member
    ) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))
        await make_member("Hanako", "hanako@example.com")

        with pytest.raises(CollaboratorError):
            await service.sign_up("Hanako", "hanako@example.com", "secret123", invite.code)

        with pytest.raises(AuthError):
            await service.sign_in("hanako@example.com", "secret123")
        assert not (await service.list_invites())[0].is_used

    @pytest.mark.asyncio
    async def test_expired_invite(self, db: SQLiteAdapter, service: MemberService) -> None:
        founder = await signup_founder(service)
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        async with db.transaction():
            invite = await MemberStore(db).insert_invite_code("ABC123", founder.id, past)

        with pytest.raises(ValidationError):
            await service.verify_invite(invite.code)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service: MemberService) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))

        with pytest.raises(ConflictError):
            await service.sign_up("Other", "TARO@example.com", "secret123", invite.code)

    @pytest.mark.asyncio
    async def test_blank_name(self, service: MemberService) -> None:
        with pytest.raises(ValidationError):
            await service.sign_up("   ", "x@example.com", "secret123")


class TestSession:
    @pytest.mark.asyncio
    async def test_sign_in_resolves_member(self, service: MemberService) -> None:
        user = await signup_founder(service)

        session = await service.sign_in("taro@example.com", "secret123")
        resolved = await service.resolve_member(session.access_token)

        assert resolved.id == user.id

    @pytest.mark.asyncio
    async def test_sign_out_revokes(self, service: MemberService) -> None:
        await signup_founder(service)
        session = await service.sign_in("taro@example.com", "secret123")

        await service.sign_out(session.access_token)

        with pytest.raises(AuthError):
            await service.resolve_member(session.access_token)

    @pytest.mark.asyncio
    async def test_missing_profile_created(
        self, db: SQLiteAdapter, service: MemberService, identity: IdentityService
    ) -> None:
        """인증 계정만 있으면 프로필 자동 생성"""
        await identity.sign_up("solo@example.com", "secret123", metadata={"name": "Solo"})
        session = await identity.sign_in("solo@example.com", "secret123")

        user = await service.resolve_member(session.access_token)

        assert user.name == "Solo"
        assert await MemberStore(db).count_users() == 1


class TestDeleteMember:
    """회원 삭제 테스트"""

    @pytest.mark.asyncio
    async def test_delete_removes_account_and_logs(
        self, db: SQLiteAdapter, service: MemberService, identity: IdentityService
    ) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))
        await service.delete_invite(invite.id)
        async with db.transaction():
            other = await MemberStore(db).insert_user(name="Hanako", email="hanako@example.com")

        await service.delete_member(MemberService.actor_for(founder), other.id)

        assert [m.id for m in await service.list_members()] == [founder.id]
        history = await MemberStore(db).list_system_history()
        assert history[0].action == SystemAction.MEMBER_DELETED.value
        assert history[0].details["name"] == "Hanako"

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, service: MemberService) -> None:
        founder = await signup_founder(service)

        with pytest.raises(PermissionDeniedError):
            await service.delete_member(MemberService.actor_for(founder), founder.id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, service: MemberService) -> None:
        founder = await signup_founder(service)

        with pytest.raises(NotFoundError):
            await service.delete_member(MemberService.actor_for(founder), "nobody")

    @pytest.mark.asyncio
    async def test_member_with_transactions_kept(
        self, db: SQLiteAdapter, service: MemberService, make_member, fiscal_year: FiscalYear
    ) -> None:
        founder = await signup_founder(service)
        recorder = await make_member("Hanako")
        await TransactionService(db).create(
            MemberService.actor_for(recorder),
            TransactionDraft(
                type=TransactionKind.INCOME,
                amount=Decimal("100"),
                description="部費",
                recorded_at=date(2024, 5, 1),
                category="部費",
                account_id=1,
            ),
        )

        with pytest.raises(ConflictError):
            await service.delete_member(MemberService.actor_for(founder), recorder.id)

    @pytest.mark.asyncio
    async def test_invite_creator_kept(self, service: MemberService) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))
        second = await service.sign_up("Hanako", "hanako@example.com", "secret123", invite.code)

        with pytest.raises(ConflictError):
            await service.delete_member(MemberService.actor_for(second), founder.id)

    @pytest.mark.asyncio
    async def test_delete_recalculates_proposals(
        self, db: SQLiteAdapter, service: MemberService, make_member, fiscal_year: FiscalYear
    ) -> None:
        """3명 → 2명: 필요 승인 2 → 1, 1표로 승인"""
        founder = await signup_founder(service)
        hanako = await make_member("Hanako")
        jiro = await make_member("Jiro")
        proposals = ProposalService(db)
        proposal = await proposals.propose(MemberService.actor_for(founder), fiscal_year.id)
        await proposals.vote(MemberService.actor_for(hanako), proposal.id, VoteChoice.APPROVE)

        await service.delete_member(MemberService.actor_for(founder), jiro.id)

        refreshed = await LedgerStore(db).get_proposal(proposal.id)
        assert refreshed.total_members == 2
        assert refreshed.required_approvals == 1
        assert refreshed.status.value == "approved"


class TestInvites:
    @pytest.mark.asyncio
    async def test_generate_and_verify(self, service: MemberService) -> None:
        founder = await signup_founder(service)

        invite = await service.generate_invite(MemberService.actor_for(founder))
        verified = await service.verify_invite(invite.code)

        assert verified.id == invite.id
        assert invite.expires_at - invite.created_at <= timedelta(hours=1, seconds=1)

    @pytest.mark.asyncio
    async def test_unknown_code(self, service: MemberService) -> None:
        with pytest.raises(ValidationError):
            await service.verify_invite("ZZZZZZ")

    @pytest.mark.asyncio
    async def test_delete_missing_invite(self, service: MemberService) -> None:
        with pytest.raises(NotFoundError):
            await service.delete_invite("missing")


class TestAdminOperations:
    """관리자 엔드포인트용 작업"""

    @pytest.mark.asyncio
    async def test_mark_invite_used_by_email(self, service: MemberService, make_member) -> None:
        founder = await signup_founder(service)
        invite = await service.generate_invite(MemberService.actor_for(founder))
        newcomer = await make_member("Hanako")

        await service.mark_invite_used(invite.id, "Hanako@Example.com")

        stored = (await service.list_invites())[0]
        assert stored.used_by == newcomer.id
        with pytest.raises(ConflictError):
            await service.mark_invite_used(invite.id, "hanako@example.com")

    @pytest.mark.asyncio
    async def test_mark_invite_used_requires_fields(self, service: MemberService) -> None:
        with pytest.raises(ValidationError):
            await service.mark_invite_used("", "a@example.com")

    @pytest.mark.asyncio
    async def test_mark_invite_used_unknown_user(self, service: MemberService) -> None:
        with pytest.raises(NotFoundError):
            await service.mark_invite_used("inv", "nobody@example.com")

    @pytest.mark.asyncio
    async def test_admin_delete_user(self, service: MemberService, identity: IdentityService) -> None:
        user = await signup_founder(service)

        await service.admin_delete_user(user.auth_user_id)

        assert await identity.get_identity(user.auth_user_id) is None
        with pytest.raises(NotFoundError):
            await service.admin_delete_user(user.auth_user_id)

    @pytest.mark.asyncio
    async def test_admin_delete_user_requires_id(self, service: MemberService) -> None:
        with pytest.raises(ValidationError):
            await service.admin_delete_user("")
