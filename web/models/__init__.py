"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AdminDeleteUserRequest,
    AdminMarkInviteUsedRequest,
    CategoryCreateRequest,
    CategoryRenameRequest,
    DeleteTransactionRequest,
    FiscalYearCreateRequest,
    FiscalYearUpdateRequest,
    InviteVerifyRequest,
    ProposalCreateRequest,
    SignInRequest,
    SignUpRequest,
    TransactionRequest,
    VoteRequest,
)
from web.models.responses import (
    ErrorResponse,
    HealthResponse,
    ReceiptUploadResponse,
    SessionResponse,
    StorageUsageResponse,
    SuccessResponse,
)

__all__ = [
    # Requests
    "AdminDeleteUserRequest",
    "AdminMarkInviteUsedRequest",
    "CategoryCreateRequest",
    "CategoryRenameRequest",
    "DeleteTransactionRequest",
    "FiscalYearCreateRequest",
    "FiscalYearUpdateRequest",
    "InviteVerifyRequest",
    "ProposalCreateRequest",
    "SignInRequest",
    "SignUpRequest",
    "TransactionRequest",
    "VoteRequest",
    # Responses
    "ErrorResponse",
    "HealthResponse",
    "ReceiptUploadResponse",
    "SessionResponse",
    "StorageUsageResponse",
    "SuccessResponse",
]
