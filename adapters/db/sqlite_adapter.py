"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
요청마다 별도 연결을 열어도 동시 접근 가능하도록 설정.

주의: 드라이버 오류는 CollaboratorError로 감싸서 전달 (재시도 없음)
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.domain.errors import CollaboratorError

logger = logging.getLogger(__name__)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부

    Returns:
        aiosqlite 연결 객체
    """
    # pathlib.Path를 문자열로 변환
    db_path_str = str(db_path)

    if db_path_str != ":memory:":
        # 디렉토리가 없으면 생성
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    # 연결 생성
    if readonly:
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)

    # WAL 모드 설정
    await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute("PRAGMA busy_timeout=30000")  # 30초 대기

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.debug(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        try:
            self._conn = await create_connection(self.db_path, self.readonly)
        except aiosqlite.Error as e:
            raise CollaboratorError(f"DB 연결 실패: {e}") from e

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        try:
            if parameters:
                return await self._conn.execute(sql, parameters)
            return await self._conn.execute(sql)
        except aiosqlite.Error as e:
            logger.error(f"SQL 실행 실패: {e}")
            raise CollaboratorError(f"DB 오류: {e}") from e

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def fetchone_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> dict[str, Any] | None:
        """단일 행 조회 (컬럼명 → 값 dict)"""
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        if row is None:
            return None

        columns = [desc[0] for desc in cursor.description]
        return dict(zip(columns, row))

    async def fetchall_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """전체 행 조회 (컬럼명 → 값 dict 목록)"""
        cursor = await self.execute(sql, parameters)
        rows = await cursor.fetchall()

        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        쓰기 연결은 BEGIN IMMEDIATE로 시작해 블록 안의 첫 SELECT부터
        쓰기 잠금을 잡는다 (읽고-계산하고-쓰는 잔고 갱신이 연결 간에 직렬화).
        이미 열린 트랜잭션이 있으면 그대로 이어서 사용.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if not self._conn.in_transaction:
            await self.execute("BEGIN" if self.readonly else "BEGIN IMMEDIATE")

        try:
            yield self._conn
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """회원/인증 스키마 초기화 (테이블 생성)

    장부 테이블은 core.ledger.schema.init_ledger_schema에서 생성.

    Args:
        adapter: 연결된 SQLiteAdapter
    """
    # users (회원 프로필)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id               TEXT PRIMARY KEY,
            auth_user_id     TEXT UNIQUE,
            name             TEXT NOT NULL,
            email            TEXT NOT NULL UNIQUE,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # auth_identities (인증 정보, 프로필과 분리)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS auth_identities (
            auth_user_id     TEXT PRIMARY KEY,
            email            TEXT NOT NULL UNIQUE,
            password_hash    TEXT NOT NULL,
            metadata_json    TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # auth_sessions (발급된 세션, 로그아웃 시 revoked)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS auth_sessions (
            session_id       TEXT PRIMARY KEY,
            auth_user_id     TEXT NOT NULL,
            issued_at        TEXT NOT NULL,
            expires_at       TEXT NOT NULL,
            revoked          INTEGER NOT NULL DEFAULT 0
        )
    """)

    # invite_codes (초대 코드)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS invite_codes (
            id               TEXT PRIMARY KEY,
            code             TEXT NOT NULL UNIQUE,
            created_by       TEXT REFERENCES users(id),
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            expires_at       TEXT,
            is_used          INTEGER NOT NULL DEFAULT 0,
            used_by          TEXT REFERENCES users(id),
            used_at          TEXT
        )
    """)

    # system_history (시스템 감사 이력)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS system_history (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            action           TEXT NOT NULL,
            performed_by     TEXT NOT NULL,
            performed_at     TEXT NOT NULL,
            details_json     TEXT
        )
    """)

    # 인덱스 생성
    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_auth_sessions_user
        ON auth_sessions(auth_user_id)
    """)

    await adapter.commit()

    logger.info("회원 스키마 초기화 완료")
