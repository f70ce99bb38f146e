"""
core/config/loader.py 테스트

secrets.yaml 로드, 검증, Settings 싱글턴 테스트
"""

from pathlib import Path

import pytest

from core.config.loader import (
    Secrets,
    SecretsLoadError,
    Settings,
    get_settings,
    load_secrets,
)
from core.constants import PROJECT_ROOT, Defaults, Paths


def _write(temp_dir: Path, content: str) -> Path:
    path = temp_dir / "secrets.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadSecrets:
    """load_secrets 테스트"""

    def test_load_full(self, temp_secrets_file: Path, temp_dir: Path) -> None:
        """모든 항목 로드"""
        secrets = load_secrets(temp_secrets_file)

        assert isinstance(secrets, Secrets)
        assert secrets.web_secret_key == "test_jwt_secret_key_xyz"
        assert secrets.admin_service_key == "test_service_key_123"
        assert secrets.db_path == temp_dir / "ledger.db"
        assert secrets.receipts_dir == temp_dir / "receipts"
        assert secrets.public_base_url == "http://testserver/receipts"
        assert secrets.session_ttl_hours == 24
        assert secrets.vote_settle_delay_sec == 0.0

    def test_defaults(self, temp_dir: Path) -> None:
        """선택 항목 생략 시 기본값"""
        path = _write(
            temp_dir,
            """
web:
  secret_key: "jwt"
admin:
  service_key: "svc"
""",
        )

        secrets = load_secrets(path)

        assert secrets.db_path == Paths.DB_FILE
        assert secrets.receipts_dir == Paths.RECEIPTS_DIR
        assert secrets.session_ttl_hours == Defaults.SESSION_TTL_HOURS
        assert secrets.public_base_url.endswith("/receipts")

    def test_relative_path_resolved_from_project_root(self, temp_dir: Path) -> None:
        path = _write(
            temp_dir,
            """
web:
  secret_key: "jwt"
admin:
  service_key: "svc"
database:
  path: "data/other.db"
""",
        )

        assert load_secrets(path).db_path == PROJECT_ROOT / "data" / "other.db"

    def test_trailing_slash_removed_from_public_url(self, temp_dir: Path) -> None:
        path = _write(
            temp_dir,
            """
web:
  secret_key: "jwt"
admin:
  service_key: "svc"
storage:
  public_base_url: "https://cdn.example.com/receipts/"
""",
        )

        assert load_secrets(path).public_base_url == "https://cdn.example.com/receipts"

    def test_file_not_found(self, temp_dir: Path) -> None:
        with pytest.raises(SecretsLoadError, match="찾을 수 없습니다"):
            load_secrets(temp_dir / "missing.yaml")

    def test_empty_file(self, temp_dir: Path) -> None:
        with pytest.raises(SecretsLoadError, match="비어 있습니다"):
            load_secrets(_write(temp_dir, ""))

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        with pytest.raises(SecretsLoadError, match="파싱 실패"):
            load_secrets(_write(temp_dir, "web: [unclosed"))

    def test_missing_web_secret_key(self, temp_dir: Path) -> None:
        path = _write(temp_dir, "admin:\n  service_key: svc\n")

        with pytest.raises(SecretsLoadError, match="secret_key"):
            load_secrets(path)

    def test_missing_admin_service_key(self, temp_dir: Path) -> None:
        path = _write(temp_dir, "web:\n  secret_key: jwt\n")

        with pytest.raises(SecretsLoadError, match="service_key"):
            load_secrets(path)

    def test_invalid_number(self, temp_dir: Path) -> None:
        path = _write(
            temp_dir,
            """
web:
  secret_key: "jwt"
admin:
  service_key: "svc"
session:
  ttl_hours: "forever"
""",
        )

        with pytest.raises(SecretsLoadError, match="숫자"):
            load_secrets(path)


class TestSettings:
    """Settings 싱글턴 테스트"""

    def setup_method(self) -> None:
        Settings.reset()

    def teardown_method(self) -> None:
        Settings.reset()

    def test_singleton(self, temp_secrets_file: Path) -> None:
        first = get_settings(temp_secrets_file)
        second = get_settings()

        assert first is second
        assert second.admin_service_key == "test_service_key_123"

    def test_reset(self, temp_secrets_file: Path) -> None:
        first = get_settings(temp_secrets_file)
        Settings.reset()
        second = get_settings(temp_secrets_file)

        assert first is not second

    def test_properties(self, temp_secrets_file: Path, temp_dir: Path) -> None:
        settings = get_settings(temp_secrets_file)

        assert settings.web_secret_key == "test_jwt_secret_key_xyz"
        assert settings.db_path == temp_dir / "ledger.db"
        assert settings.receipts_dir == temp_dir / "receipts"
        assert settings.session_ttl_hours == 24
        assert settings.vote_settle_delay_sec == 0.0
