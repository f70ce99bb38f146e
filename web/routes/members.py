"""
Member API 라우터

회원 목록 / 삭제, 초대 코드 발급 / 확인 / 삭제.
"""

from typing import Any

from fastapi import APIRouter, Depends

from core.types import Actor
from web.dependencies import get_current_actor, get_member_service
from web.models.requests import InviteVerifyRequest
from web.models.responses import SuccessResponse
from web.services.member_service import MemberService

router = APIRouter(prefix="/api", tags=["Members"])


# =========================================================================
# 회원
# =========================================================================


@router.get("/members")
async def list_members(
    members: MemberService = Depends(get_member_service),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    return [user.to_dict() for user in await members.list_members()]


@router.delete("/members/{user_id}", response_model=SuccessResponse)
async def delete_member(
    user_id: str,
    members: MemberService = Depends(get_member_service),
    actor: Actor = Depends(get_current_actor),
) -> SuccessResponse:
    """회원 삭제 (본인 삭제 불가, 기록이 있는 회원은 삭제 불가)"""
    await members.delete_member(actor, user_id)
    return SuccessResponse()


# =========================================================================
# 초대 코드
# =========================================================================


@router.get("/invite-codes")
async def list_invite_codes(
    members: MemberService = Depends(get_member_service),
    _: Actor = Depends(get_current_actor),
) -> list[dict[str, Any]]:
    return [invite.to_dict() for invite in await members.list_invites()]


@router.post("/invite-codes", status_code=201)
async def generate_invite_code(
    members: MemberService = Depends(get_member_service),
    actor: Actor = Depends(get_current_actor),
) -> dict[str, Any]:
    """초대 코드 발급 (1시간 유효)"""
    invite = await members.generate_invite(actor)
    return invite.to_dict()


@router.post("/invite-codes/verify")
async def verify_invite_code(
    request: InviteVerifyRequest,
    members: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    """가입 전 초대 코드 확인 (로그인 불필요)"""
    invite = await members.verify_invite(request.code)
    return {"valid": True, "code": invite.code, "expires_at": invite.to_dict()["expires_at"]}


@router.delete("/invite-codes/{invite_id}", response_model=SuccessResponse)
async def delete_invite_code(
    invite_id: str,
    members: MemberService = Depends(get_member_service),
    _: Actor = Depends(get_current_actor),
) -> SuccessResponse:
    await members.delete_invite(invite_id)
    return SuccessResponse()
