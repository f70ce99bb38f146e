"""
도메인 예외

장부 작업 실패 분류. Web 레이어는 status_code를 HTTP 응답에 그대로 사용한다.

- 검증/확인 오류: 쓰기 전에 발생 (저장소에 아무것도 기록되지 않음)
- CollaboratorError: DB/Blob/인증 서비스 호출 실패
- PartialFailureError: 외부 단계 성공 후 후속 단계 실패 (자동 보상 없음)
"""


class LedgerError(Exception):
    """장부 도메인 오류 기본 클래스"""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """필수 항목 누락 / 잘못된 값"""

    status_code = 400


class OutOfRangeError(LedgerError):
    """기록일이 회계연도 범위 밖"""

    status_code = 400


class ConfirmationError(LedgerError):
    """삭제 확인 문구(본인 이름) 불일치

    권한 오류가 아니다. 사용자는 이미 인증되어 있다.
    """

    status_code = 400


class NotFoundError(LedgerError):
    """대상 행 없음"""

    status_code = 404


class AuthError(LedgerError):
    """인증 실패 (세션 없음/만료, 잘못된 서비스 키)"""

    status_code = 401


class PermissionDeniedError(LedgerError):
    """허용되지 않는 작업 (예: 자기 자신 삭제)"""

    status_code = 403


class ConflictError(LedgerError):
    """현재 상태와 충돌 (활성 제안 중복, 허용되지 않은 상태 전이 등)"""

    status_code = 409


class CollaboratorError(LedgerError):
    """외부 협력자(DB, Blob 저장소, 인증 서비스) 호출 실패"""

    status_code = 502


class PartialFailureError(LedgerError):
    """여러 단계 작업이 중간에 실패

    Args:
        message: 오류 메시지
        completed_steps: 실패 전에 완료된 단계 이름
    """

    status_code = 500

    def __init__(self, message: str, completed_steps: list[str] | None = None):
        super().__init__(message)
        self.completed_steps = completed_steps or []
