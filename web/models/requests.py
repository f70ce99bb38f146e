"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from core.domain.errors import ValidationError
from core.types import CategoryType, TransactionKind, VoteChoice
from web.services.fiscal_year_service import FiscalYearDraft
from web.services.transaction_service import TransactionDraft


# =========================================================================
# 인증
# =========================================================================


class SignUpRequest(BaseModel):
    """가입 요청"""

    name: str = Field(..., description="표시 이름 (삭제 확인 문구로도 사용)")
    email: str = Field(..., description="이메일")
    password: str = Field(..., description="비밀번호 (6자 이상)")
    invite_code: str | None = Field(default=None, description="초대 코드 (첫 회원은 생략 가능)")


class SignInRequest(BaseModel):
    """로그인 요청"""

    email: str = Field(..., description="이메일")
    password: str = Field(..., description="비밀번호")


# =========================================================================
# 거래
# =========================================================================


class TransactionRequest(BaseModel):
    """거래 기록/수정 요청"""

    type: TransactionKind = Field(..., description="income / expense / transfer")
    amount: Decimal = Field(..., description="금액 (양수)")
    description: str = Field(default="", description="내용")
    recorded_at: str = Field(..., description="기록일 (YYYY-MM-DD 또는 ISO datetime)")
    category: str | None = Field(default=None, description="카테고리 이름 (이동은 생략)")
    account_id: int | None = Field(default=None, description="수입/지출 계좌")
    from_account_id: int | None = Field(default=None, description="이동 출금 계좌")
    to_account_id: int | None = Field(default=None, description="이동 입금 계좌")
    receipt_image_url: str | None = Field(default=None, description="영수증 URL")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "income",
                    "amount": "5000",
                    "description": "4月分会費",
                    "recorded_at": "2024-04-15",
                    "category": "会費",
                    "account_id": 1,
                },
                {
                    "type": "transfer",
                    "amount": "2000",
                    "description": "銀行へ入金",
                    "recorded_at": "2024-04-20",
                    "from_account_id": 1,
                    "to_account_id": 2,
                },
            ]
        }
    }

    def to_draft(self) -> TransactionDraft:
        """서비스 입력으로 변환

        Raises:
            ValidationError: 기록일 형식 오류
        """
        try:
            recorded_at: date | datetime = datetime.fromisoformat(self.recorded_at)
        except ValueError as e:
            raise ValidationError("日付の形式が正しくありません") from e

        return TransactionDraft(
            type=self.type,
            amount=self.amount,
            description=self.description,
            recorded_at=recorded_at,
            category=self.category,
            account_id=self.account_id,
            from_account_id=self.from_account_id,
            to_account_id=self.to_account_id,
            receipt_image_url=self.receipt_image_url,
        )


class DeleteTransactionRequest(BaseModel):
    """거래 삭제 요청 (본인 이름 재입력)"""

    confirmation_name: str = Field(..., description="본인 표시 이름")


# =========================================================================
# 회계연도 / 카테고리
# =========================================================================


class FiscalYearCreateRequest(BaseModel):
    """회계연도 생성 요청 (생략한 항목은 기본값)"""

    name: str | None = Field(default=None, description="연도 이름 (기본: 다음 YYYY年度)")
    start_date: date | None = Field(default=None, description="시작일")
    end_date: date | None = Field(default=None, description="종료일")
    starting_balance_cash: Decimal | None = Field(default=None, description="현금 기초 잔고 (기본: 현재 연도 이월)")
    starting_balance_bank: Decimal | None = Field(default=None, description="은행 기초 잔고 (기본: 현재 연도 이월)")
    copy_categories_from: int | None = Field(default=None, description="카테고리를 복사할 연도 ID")


class FiscalYearUpdateRequest(BaseModel):
    """회계연도 수정 요청"""

    name: str = Field(..., description="연도 이름")
    start_date: date = Field(..., description="시작일")
    end_date: date = Field(..., description="종료일")
    starting_balance_cash: Decimal = Field(..., description="현금 기초 잔고")
    starting_balance_bank: Decimal = Field(..., description="은행 기초 잔고")

    def to_draft(self) -> FiscalYearDraft:
        return FiscalYearDraft(
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            starting_balance_cash=self.starting_balance_cash,
            starting_balance_bank=self.starting_balance_bank,
        )


class CategoryCreateRequest(BaseModel):
    """카테고리 추가 요청"""

    fiscal_year_id: int = Field(..., description="회계연도 ID")
    name: str = Field(..., description="카테고리 이름")
    type: CategoryType = Field(..., description="income / expense")


class CategoryRenameRequest(BaseModel):
    """카테고리 이름 변경 요청"""

    name: str = Field(..., description="새 이름")


# =========================================================================
# 삭제 제안
# =========================================================================


class ProposalCreateRequest(BaseModel):
    """삭제 제안 요청"""

    fiscal_year_id: int = Field(..., description="삭제할 회계연도 ID")


class VoteRequest(BaseModel):
    """투표 요청"""

    vote: VoteChoice = Field(..., description="approve / reject")


# =========================================================================
# 초대 코드
# =========================================================================


class InviteVerifyRequest(BaseModel):
    """초대 코드 확인 요청"""

    code: str = Field(..., description="초대 코드")


# =========================================================================
# 관리자 (필드 누락은 400으로 응답하기 위해 모두 선택 항목)
# =========================================================================


class AdminDeleteUserRequest(BaseModel):
    """인증 계정 삭제 요청"""

    authUserId: str | None = Field(default=None, description="인증 계정 ID")


class AdminMarkInviteUsedRequest(BaseModel):
    """초대 코드 사용 처리 요청"""

    inviteCodeId: str | None = Field(default=None, description="초대 코드 ID")
    email: str | None = Field(default=None, description="가입한 회원 이메일")
