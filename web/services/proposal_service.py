"""
Proposal 서비스

회계연도 삭제 제안 / 투표 / 취소 / 실행.

- 투표 집계와 승인/거절 전환은 deletion_votes 트리거가 처리
- 만료는 조회 시점에 계산 (pending & now > expires_at)
- 실행은 영수증 삭제 후 하나의 DB 트랜잭션으로 연도 데이터를 삭제
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IBlobStore
from core.constants import Defaults
from core.domain.errors import (
    CollaboratorError,
    ConflictError,
    NotFoundError,
    PartialFailureError,
)
from core.domain.models import DeletionProposal
from core.domain.state_machines import ProposalStateMachine
from core.ledger import LedgerStore
from core.storage import MemberStore
from core.types import Actor, ProposalStatus, SystemAction, VoteChoice
from web.services.fiscal_year_service import reconcile_account_balances

logger = logging.getLogger(__name__)


def required_approvals_for(total_members: int) -> int:
    """필요 승인 수 = ceil(회원 수 / 2)"""
    return (total_members + 1) // 2


class ProposalService:
    """Proposal 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        blob_store: 영수증 저장소 (실행 시 사용)
        vote_settle_delay_sec: 투표 후 재조회 전 대기 시간
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        blob_store: IBlobStore | None = None,
        vote_settle_delay_sec: float = Defaults.VOTE_SETTLE_DELAY_SEC,
    ):
        self.db = db
        self.store = LedgerStore(db)
        self.members = MemberStore(db)
        self.blob_store = blob_store
        self.vote_settle_delay_sec = vote_settle_delay_sec

    async def _get(self, proposal_id: str) -> DeletionProposal:
        proposal = await self.store.get_proposal(proposal_id)
        if proposal is None:
            raise NotFoundError(f"削除提案が見つかりません: {proposal_id}")
        return proposal

    @staticmethod
    def _machine(proposal: DeletionProposal, now: datetime | None = None) -> ProposalStateMachine:
        return ProposalStateMachine(proposal.effective_status(now))

    # =========================================================================
    # 조회
    # =========================================================================

    async def list_proposals(self, fiscal_year_id: int | None = None) -> list[DeletionProposal]:
        return await self.store.list_proposals(fiscal_year_id)

    async def get_proposal(self, proposal_id: str) -> dict[str, Any]:
        """제안 상세 (투표 목록 포함)"""
        proposal = await self._get(proposal_id)
        votes = await self.store.list_votes(proposal_id)
        result = proposal.to_dict()
        result["votes"] = [vote.to_dict() for vote in votes]
        return result

    async def get_active_proposal(self, fiscal_year_id: int) -> DeletionProposal | None:
        """연도의 활성 제안 (만료되지 않은 pending 또는 approved)"""
        now = datetime.now(timezone.utc)
        for proposal in await self.store.list_open_proposals(fiscal_year_id):
            if proposal.is_active(now):
                return proposal
        return None

    # =========================================================================
    # 제안
    # =========================================================================

    async def propose(self, actor: Actor, fiscal_year_id: int) -> DeletionProposal:
        """삭제 제안

        만료된 pending 제안은 expired로 정리한 뒤, 활성 제안이 없을 때만 생성.

        Raises:
            NotFoundError: 연도 없음
            ConflictError: 이미 활성 제안 있음
        """
        fiscal_year = await self.store.get_fiscal_year(fiscal_year_id)
        if fiscal_year is None:
            raise NotFoundError(f"年度が見つかりません: {fiscal_year_id}")

        now = datetime.now(timezone.utc)

        async with self.db.transaction():
            for existing in await self.store.list_open_proposals(fiscal_year.id):
                if existing.is_active(now):
                    raise ConflictError("この年度には進行中の削除提案があります")
                # 만료된 pending → expired
                await self.store.set_proposal_status(existing.id, ProposalStatus.EXPIRED)

            total_members = await self.members.count_users()
            proposal = DeletionProposal(
                id=f"prop-{uuid.uuid4().hex[:12]}",
                fiscal_year_id=fiscal_year.id,
                fiscal_year_name=fiscal_year.name,
                proposed_by=actor.id,
                proposed_at=now,
                status=ProposalStatus.PENDING,
                expires_at=now + timedelta(hours=Defaults.PROPOSAL_TTL_HOURS),
                total_members=total_members,
                required_approvals=required_approvals_for(total_members),
            )
            await self.store.insert_proposal(proposal)

        logger.info(
            "삭제 제안 생성",
            extra={
                "proposal_id": proposal.id,
                "fiscal_year_id": fiscal_year.id,
                "total_members": total_members,
                "required_approvals": proposal.required_approvals,
            },
        )
        return proposal

    # =========================================================================
    # 투표
    # =========================================================================

    async def vote(self, actor: Actor, proposal_id: str, choice: VoteChoice) -> DeletionProposal:
        """투표 (재투표는 기존 표 갱신)

        집계는 트리거가 처리하고, 설정된 대기 후 제안을 다시 읽어 반환.

        Raises:
            NotFoundError: 제안 없음
            ConflictError: 투표할 수 없는 상태 (만료/거절/실행됨)
        """
        proposal = await self._get(proposal_id)
        if not self._machine(proposal).can_vote:
            raise ConflictError("この削除提案には投票できません")

        async with self.db.transaction():
            await self.store.upsert_vote(proposal_id, actor.id, choice)

        if self.vote_settle_delay_sec > 0:
            await asyncio.sleep(self.vote_settle_delay_sec)

        refreshed = await self._get(proposal_id)
        logger.info(
            "삭제 제안 투표",
            extra={
                "proposal_id": proposal_id,
                "vote": choice.value,
                "approve_count": refreshed.approve_count,
                "reject_count": refreshed.reject_count,
                "status": refreshed.status.value,
            },
        )
        return refreshed

    # =========================================================================
    # 취소 / 실행
    # =========================================================================

    async def cancel(self, actor: Actor, proposal_id: str) -> DeletionProposal:
        """승인된 제안을 pending으로 되돌림 (투표 유지)

        Raises:
            NotFoundError: 제안 없음
            ConflictError: approved가 아님
        """
        proposal = await self._get(proposal_id)
        machine = self._machine(proposal)
        if proposal.effective_status() != ProposalStatus.APPROVED or not machine.can_transition(
            ProposalStatus.PENDING
        ):
            raise ConflictError("承認済みの削除提案のみ取り消せます")

        machine.transition(ProposalStatus.PENDING)
        async with self.db.transaction():
            await self.store.set_proposal_status(proposal_id, ProposalStatus.PENDING)

        logger.info(f"삭제 제안 취소: {proposal_id} by {actor.id}")
        return await self._get(proposal_id)

    async def execute(self, actor: Actor, proposal_id: str) -> dict[str, Any]:
        """삭제 실행 (되돌릴 수 없음)

        1. 연도 거래의 영수증 삭제
        2. DB 트랜잭션: 이력 → 거래 → 카테고리 → 회계연도 삭제,
           제안 executed, 시스템 이력 추가, 현재 연도였다면 다음 연도로 전환

        Returns:
            삭제 건수 요약

        Raises:
            NotFoundError: 제안 또는 연도 없음
            ConflictError: approved가 아님
            CollaboratorError: 영수증 삭제 실패 (DB 변경 없음)
            PartialFailureError: 영수증 삭제 후 DB 단계 실패
        """
        proposal = await self._get(proposal_id)
        machine = self._machine(proposal)
        if not machine.can_transition(ProposalStatus.EXECUTED):
            raise ConflictError("承認済みの削除提案のみ実行できます")

        fiscal_year = await self.store.get_fiscal_year(proposal.fiscal_year_id)
        if fiscal_year is None:
            raise NotFoundError(f"年度が見つかりません: {proposal.fiscal_year_id}")

        current = await self.store.get_current_fiscal_year()
        was_current = current is not None and current.id == fiscal_year.id

        # 1. 영수증 삭제
        urls = await self.store.list_receipt_urls_for_year(fiscal_year.id)
        keys: list[str] = []
        removed_receipts = 0
        if urls:
            if self.blob_store is None:
                raise CollaboratorError("画像ストレージが設定されていません")
            keys = [key for key in (self.blob_store.key_from_url(url) for url in urls) if key]
            removed_receipts = await self.blob_store.remove(keys)

        # 2. DB 삭제
        now = datetime.now(timezone.utc)
        try:
            async with self.db.transaction():
                history_count = await self.store.delete_history_for_year(fiscal_year.id)
                transaction_count = await self.store.delete_transactions_for_year(fiscal_year.id)
                category_count = await self.store.delete_categories_for_year(fiscal_year.id)
                await self.store.delete_fiscal_year(fiscal_year.id)

                machine.transition(ProposalStatus.EXECUTED)
                await self.store.set_proposal_status(
                    proposal.id,
                    ProposalStatus.EXECUTED,
                    executed_at=now,
                )

                summary = {
                    "proposal_id": proposal.id,
                    "fiscal_year_id": fiscal_year.id,
                    "fiscal_year_name": fiscal_year.name,
                    "transactions": transaction_count,
                    "history": history_count,
                    "categories": category_count,
                    "receipts": removed_receipts,
                }
                await self.members.append_system_history(
                    SystemAction.FISCAL_YEAR_DELETED.value,
                    actor.id,
                    summary,
                )

                new_current_id = None
                if was_current:
                    remaining = await self.store.list_fiscal_years()
                    new_current = remaining[0] if remaining else None
                    if new_current is not None:
                        await self.store.set_current_flag(new_current.id)
                        new_current_id = new_current.id
                    await reconcile_account_balances(self.store, new_current)
        except Exception as e:
            if keys:
                logger.error(
                    f"연도 삭제 실패 (영수증 삭제 후): {proposal.id}: {e}",
                )
                raise PartialFailureError(
                    f"画像は削除されましたが、データの削除に失敗しました: {e}",
                    completed_steps=["receipts_removed"],
                ) from e
            raise

        summary["new_current_fiscal_year_id"] = new_current_id
        logger.info(
            "회계연도 삭제 실행",
            extra={"summary": summary, "actor": actor.id},
        )
        return summary

    # =========================================================================
    # 재계산
    # =========================================================================

    async def recalculate(self) -> int:
        """회원 수 변경 후 pending 제안의 필요 승인 수 재계산

        Returns:
            갱신된 제안 수
        """
        async with self.db.transaction():
            total_members = await self.members.count_users()
            return await self.store.recalculate_proposals(total_members)
