"""
pytest 공통 fixture 정의

임시 디렉토리 / secrets.yaml / 스키마가 적용된 임시 DB / 회원 / 회계연도
"""

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.domain.models import FiscalYear, UserProfile
from core.ledger import init_ledger_schema
from core.storage import MemberStore
from core.types import Actor
from web.services.fiscal_year_service import FiscalYearService


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_secrets_file(temp_dir: Path) -> Path:
    """테스트용 secrets.yaml 파일 생성 (DB/영수증 경로는 임시 디렉토리)"""
    secrets_content = f"""# 테스트용 secrets.yaml
web:
  secret_key: "test_jwt_secret_key_xyz"

admin:
  service_key: "test_service_key_123"

database:
  path: "{(temp_dir / 'ledger.db').as_posix()}"

storage:
  receipts_dir: "{(temp_dir / 'receipts').as_posix()}"
  public_base_url: "http://testserver/receipts"

session:
  ttl_hours: 24

proposal:
  vote_settle_delay_sec: 0
"""
    secrets_path = temp_dir / "secrets.yaml"
    secrets_path.write_text(secrets_content, encoding="utf-8")
    return secrets_path


@pytest_asyncio.fixture
async def db(temp_dir: Path) -> SQLiteAdapter:
    """스키마가 적용된 임시 DB"""
    adapter = SQLiteAdapter(temp_dir / "test_ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def make_member(db: SQLiteAdapter):
    """회원 프로필 직접 추가 (인증 계정 없음)"""
    store = MemberStore(db)

    async def _make(name: str, email: str | None = None) -> UserProfile:
        async with db.transaction():
            return await store.insert_user(name=name, email=email or f"{name.lower()}@example.com")

    return _make


@pytest_asyncio.fixture
async def member(make_member) -> UserProfile:
    return await make_member("Taro")


@pytest.fixture
def actor(member: UserProfile) -> Actor:
    return Actor.member(member.id, member.name)


@pytest_asyncio.fixture
async def fiscal_year(db: SQLiteAdapter) -> FiscalYear:
    """2024年度 (현금 10000 / 은행 50000, 현재 연도)"""
    return await FiscalYearService(db).create_year(
        name="2024年度",
        start_date=date(2024, 4, 1),
        end_date=date(2025, 3, 31),
        starting_balance_cash=Decimal("10000"),
        starting_balance_bank=Decimal("50000"),
    )
