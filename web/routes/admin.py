"""
관리자 엔드포인트

서비스 키(X-Service-Key)로 보호되는 서버 간 호출.
- POST /admin/delete-user          인증 계정 삭제
- POST /invite-code/mark-used      초대 코드 사용 처리
- POST /proposals/recalculate      pending 제안 필요 승인 수 재계산

성공 {"success": true}, 실패 {"error": "..."} (400/401/404/500)
"""

import logging

from fastapi import APIRouter, Depends

from adapters.db.sqlite_adapter import SQLiteAdapter
from web.dependencies import get_db_write, get_member_service, require_service_key
from web.models.requests import AdminDeleteUserRequest, AdminMarkInviteUsedRequest
from web.models.responses import SuccessResponse
from web.services.member_service import MemberService
from web.services.proposal_service import ProposalService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_service_key)])


@router.post("/admin/delete-user", response_model=SuccessResponse)
async def admin_delete_user(
    request: AdminDeleteUserRequest,
    members: MemberService = Depends(get_member_service),
) -> SuccessResponse:
    await members.admin_delete_user(request.authUserId or "")
    logger.info(f"관리자: 인증 계정 삭제 {request.authUserId}")
    return SuccessResponse()


@router.post("/invite-code/mark-used", response_model=SuccessResponse)
async def admin_mark_invite_used(
    request: AdminMarkInviteUsedRequest,
    members: MemberService = Depends(get_member_service),
) -> SuccessResponse:
    await members.mark_invite_used(request.inviteCodeId or "", request.email or "")
    return SuccessResponse()


@router.post("/proposals/recalculate", response_model=SuccessResponse)
async def admin_recalculate_proposals(
    db: SQLiteAdapter = Depends(get_db_write),
) -> SuccessResponse:
    updated = await ProposalService(db).recalculate()
    logger.info(f"관리자: 삭제 제안 재계산 {updated}건")
    return SuccessResponse()
