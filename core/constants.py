"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → clubledger/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # 로그인 세션 유효 시간
    SESSION_TTL_HOURS: int = 24 * 7

    # 삭제 제안 유효 시간 (48시간)
    PROPOSAL_TTL_HOURS: int = 48

    # 투표 후 집계 트리거 반영 대기 (SQLite 트리거는 동기 실행이므로 0)
    VOTE_SETTLE_DELAY_SEC: float = 0.0

    # 초대 코드 (6자리, 1시간 유효)
    INVITE_CODE_LENGTH: int = 6
    INVITE_CODE_TTL_HOURS: int = 1

    # 영수증 업로드 제한
    MAX_RECEIPT_BYTES: int = 5 * 1024 * 1024

    # 회계연도 시작 월 (4월 ~ 익년 3월)
    FISCAL_YEAR_START_MONTH: int = 4

    RECENT_TRANSACTIONS_LIMIT: int = 5


class AccountIds:
    """시스템 계좌 ID (현금 / 은행)

    두 계좌는 모든 회계연도가 공유한다.
    """

    CASH: int = 1
    BANK: int = 2


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = DATA_DIR / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    RECEIPTS_DIR: Path = DATA_DIR / "receipts"

    # 설정 파일
    SECRETS_FILE: Path = CONFIG_DIR / "secrets.yaml"

    # DB 파일
    DB_FILE: Path = DATA_DIR / "clubledger.db"


class StorageEstimates:
    """저장 용량 추정치 (사용량 화면용)

    거래 1건 1KB, 이력 1건 2KB, 영수증 1장 100KB로 근사.
    """

    TRANSACTION_KB: int = 1
    HISTORY_KB: int = 2
    RECEIPT_KB: int = 100
