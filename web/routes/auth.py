"""
인증 API 라우터

가입 / 로그인 / 로그아웃 / 내 정보.
"""

from typing import Any

from fastapi import APIRouter, Depends

from core.domain.models import UserProfile
from web.dependencies import get_access_token, get_current_member, get_member_service
from web.models.requests import SignInRequest, SignUpRequest
from web.models.responses import SessionResponse, SuccessResponse
from web.services.member_service import MemberService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/signup")
async def sign_up(
    request: SignUpRequest,
    members: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    """가입 (두 번째 회원부터 초대 코드 필요)"""
    user = await members.sign_up(
        name=request.name,
        email=request.email,
        password=request.password,
        invite_code=request.invite_code,
    )
    return user.to_dict()


@router.post("/signin", response_model=SessionResponse)
async def sign_in(
    request: SignInRequest,
    members: MemberService = Depends(get_member_service),
) -> SessionResponse:
    """로그인 → Bearer 토큰"""
    session = await members.sign_in(request.email, request.password)
    user = await members.resolve_member(session.access_token)
    return SessionResponse(
        access_token=session.access_token,
        expires_at=session.expires_at,
        user_id=user.id,
    )


@router.post("/signout", response_model=SuccessResponse)
async def sign_out(
    access_token: str = Depends(get_access_token),
    members: MemberService = Depends(get_member_service),
) -> SuccessResponse:
    await members.sign_out(access_token)
    return SuccessResponse()


@router.get("/me")
async def me(user: UserProfile = Depends(get_current_member)) -> dict[str, Any]:
    return user.to_dict()
