"""
설정 로더

secrets.yaml 로드 및 실행 설정 생성

secrets.yaml 예시:
```yaml
web:
  secret_key: "change-me"          # 세션 JWT 서명 키 (필수)
admin:
  service_key: "change-me-too"     # 관리자 엔드포인트 X-Service-Key (필수)
storage:
  public_base_url: "http://127.0.0.1:8000/receipts"
  receipts_dir: "data/receipts"
database:
  path: "data/clubledger.db"
session:
  ttl_hours: 168
proposal:
  vote_settle_delay_sec: 0
```
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths


@dataclass(frozen=True)
class Secrets:
    """보안/실행 설정 (secrets.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    web_secret_key: str
    admin_service_key: str
    public_base_url: str
    db_path: Path
    receipts_dir: Path
    session_ttl_hours: int = Defaults.SESSION_TTL_HOURS
    vote_settle_delay_sec: float = Defaults.VOTE_SETTLE_DELAY_SEC


class SecretsLoadError(Exception):
    """Secrets 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise SecretsLoadError(f"secrets.yaml의 '{name}' 섹션 형식이 잘못되었습니다")
    return value


def _resolve_path(value: str | None, default: Path) -> Path:
    """상대 경로는 프로젝트 루트 기준"""
    if not value:
        return default
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def load_secrets(path: Path | None = None) -> Secrets:
    """secrets.yaml 파일 로드

    Args:
        path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Secrets 인스턴스

    Raises:
        SecretsLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SECRETS_FILE

    if not path.exists():
        raise SecretsLoadError(f"secrets.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SecretsLoadError(f"secrets.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SecretsLoadError("secrets.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise SecretsLoadError("secrets.yaml 최상위는 매핑이어야 합니다")

    # Web secret key 로드
    web_secret_key = _section(data, "web").get("secret_key", "")
    if not web_secret_key:
        raise SecretsLoadError(
            "secrets.yaml의 web 섹션에 'secret_key'가 없습니다"
        )

    # 관리자 서비스 키 로드
    admin_service_key = _section(data, "admin").get("service_key", "")
    if not admin_service_key:
        raise SecretsLoadError(
            "secrets.yaml의 admin 섹션에 'service_key'가 없습니다"
        )

    storage_config = _section(data, "storage")
    public_base_url = storage_config.get("public_base_url") or (
        f"http://{Defaults.WEB_HOST}:{Defaults.WEB_PORT}/receipts"
    )

    session_config = _section(data, "session")
    proposal_config = _section(data, "proposal")

    try:
        session_ttl_hours = int(session_config.get("ttl_hours", Defaults.SESSION_TTL_HOURS))
        vote_settle_delay_sec = float(
            proposal_config.get("vote_settle_delay_sec", Defaults.VOTE_SETTLE_DELAY_SEC)
        )
    except (TypeError, ValueError) as e:
        raise SecretsLoadError(f"secrets.yaml 숫자 설정이 잘못되었습니다: {e}") from e

    return Secrets(
        web_secret_key=web_secret_key,
        admin_service_key=admin_service_key,
        public_base_url=public_base_url.rstrip("/"),
        db_path=_resolve_path(_section(data, "database").get("path"), Paths.DB_FILE),
        receipts_dir=_resolve_path(storage_config.get("receipts_dir"), Paths.RECEIPTS_DIR),
        session_ttl_hours=session_ttl_hours,
        vote_settle_delay_sec=vote_settle_delay_sec,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    secrets.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _secrets: Secrets | None = None

    def __new__(cls, secrets_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, secrets_path: Path | None = None) -> None:
        if self._secrets is None:
            self._secrets = load_secrets(secrets_path)

    @property
    def secrets(self) -> Secrets:
        assert self._secrets is not None
        return self._secrets

    @property
    def web_secret_key(self) -> str:
        """세션 JWT 서명 키"""
        return self.secrets.web_secret_key

    @property
    def admin_service_key(self) -> str:
        """관리자 엔드포인트 서비스 키"""
        return self.secrets.admin_service_key

    @property
    def public_base_url(self) -> str:
        """영수증 공개 URL 접두어"""
        return self.secrets.public_base_url

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.secrets.db_path

    @property
    def receipts_dir(self) -> Path:
        """영수증 저장 디렉토리"""
        return self.secrets.receipts_dir

    @property
    def session_ttl_hours(self) -> int:
        return self.secrets.session_ttl_hours

    @property
    def vote_settle_delay_sec(self) -> float:
        return self.secrets.vote_settle_delay_sec

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._secrets = None


def get_settings(secrets_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        secrets_path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(secrets_path)
