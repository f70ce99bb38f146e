"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    database: str = Field(..., description="DB 상태 (ok/error)")
    version: str = Field(..., description="API 버전")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")


class SuccessResponse(BaseModel):
    """성공 응답"""

    success: bool = Field(default=True, description="성공 여부")


class ErrorResponse(BaseModel):
    """오류 응답 (모든 LedgerError)"""

    error: str = Field(..., description="사람이 읽을 수 있는 오류 메시지")


class SessionResponse(BaseModel):
    """로그인 응답"""

    access_token: str = Field(..., description="Bearer 토큰")
    token_type: str = Field(default="bearer", description="토큰 종류")
    expires_at: datetime = Field(..., description="만료 시각")
    user_id: str | None = Field(default=None, description="회원 ID")


class ReceiptUploadResponse(BaseModel):
    """영수증 업로드 응답"""

    url: str = Field(..., description="공개 URL")


class StorageUsageResponse(BaseModel):
    """저장 용량 응답"""

    transaction_count: int = Field(..., description="거래 수")
    history_count: int = Field(..., description="이력 수")
    image_count: int = Field(..., description="영수증 수")
    estimated_db_mb: float = Field(..., description="DB 추정 용량 (MB)")
    estimated_storage_mb: float = Field(..., description="영수증 추정 용량 (MB)")
