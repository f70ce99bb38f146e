"""
Deletion Proposal API 라우터

회계연도 삭제 제안 / 투표 / 취소 / 실행.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.types import Actor
from web.dependencies import get_blob_store, get_current_actor, get_db_write
from web.models.requests import ProposalCreateRequest, VoteRequest
from web.services.proposal_service import ProposalService

router = APIRouter(prefix="/api/proposals", tags=["Proposals"])


def _service(db: SQLiteAdapter) -> ProposalService:
    return ProposalService(
        db,
        blob_store=get_blob_store(),
        vote_settle_delay_sec=get_settings().vote_settle_delay_sec,
    )


@router.get("")
async def list_proposals(
    fiscal_year_id: int | None = Query(default=None),
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    """제안 목록 (최신순, 만료 여부 반영한 effective_status 포함)"""
    proposals = await _service(db).list_proposals(fiscal_year_id)
    return [proposal.to_dict() for proposal in proposals]


@router.post("", status_code=201)
async def create_proposal(
    request: ProposalCreateRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    proposal = await _service(db).propose(actor, request.fiscal_year_id)
    return proposal.to_dict()


@router.get("/{proposal_id}")
async def get_proposal(
    proposal_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    _: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    return await _service(db).get_proposal(proposal_id)


@router.post("/{proposal_id}/vote")
async def vote_proposal(
    proposal_id: str,
    request: VoteRequest,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """투표 (재투표는 갱신). 집계 반영 후 제안을 반환"""
    proposal = await _service(db).vote(actor, proposal_id, request.vote)
    return proposal.to_dict()


@router.post("/{proposal_id}/cancel")
async def cancel_proposal(
    proposal_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    proposal = await _service(db).cancel(actor, proposal_id)
    return proposal.to_dict()


@router.post("/{proposal_id}/execute")
async def execute_proposal(
    proposal_id: str,
    db: SQLiteAdapter = Depends(get_db_write),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """승인된 제안 실행 (회계연도와 관련 데이터 영구 삭제)"""
    return await _service(db).execute(actor, proposal_id)
