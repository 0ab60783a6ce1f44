"""공통 fixture: 메모리 기반 가짜 MariaDB 소스 + 스키마가 생성된 SQLite 파일"""

import sqlite3
from typing import Callable, Iterable

import pytest

from sqlite_migration.client import CatalogError, ColumnInfo, TableInfo, build_select_query

TARGET_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT,
    score REAL,
    active INTEGER,
    created_at TEXT,
    avatar BLOB
);
CREATE TABLE entries (
    id INTEGER PRIMARY KEY,
    user_id INTEGER REFERENCES users(id),
    title TEXT,
    content TEXT
);
CREATE TABLE events (
    id INTEGER PRIMARY KEY,
    payload TEXT
);
"""

USER_COLUMNS = [
    ColumnInfo("id", "int"),
    ColumnInfo("name", "varchar"),
    ColumnInfo("score", "decimal"),
    ColumnInfo("active", "boolean"),
    ColumnInfo("created_at", "datetime"),
    ColumnInfo("avatar", "blob"),
]

ENTRY_COLUMNS = [
    ColumnInfo("id", "bigint"),
    ColumnInfo("user_id", "int"),
    ColumnInfo("title", "varchar"),
    ColumnInfo("content", "longtext"),
]

EVENT_COLUMNS = [
    ColumnInfo("id", "int"),
    ColumnInfo("payload", "json"),
]


class FakeSourceClient:
    """테이블별 (컬럼, rows)를 메모리에 들고 있는 소스 클라이언트"""

    def __init__(self, tables: dict[str, tuple[list[ColumnInfo], Iterable | Callable]]):
        self.tables = tables
        self.queries: list[str] = []
        self.connected = False
        self.closed = False

    def connect(self) -> None:
        self.connected = True

    def get_tables(self, database: str) -> list[str]:
        return list(self.tables)

    def get_table_info(self, database: str, table_name: str) -> TableInfo:
        if table_name not in self.tables:
            raise CatalogError(f"컬럼 정보가 없습니다: {database}.{table_name}")
        columns, _ = self.tables[table_name]
        return TableInfo(
            name=table_name,
            columns=[ColumnInfo(col.name, col.data_type) for col in columns],
        )

    def iter_rows(self, query: str):
        self.queries.append(query)
        for name, (_, rows) in self.tables.items():
            if build_select_query(self.get_table_info("", name)) == query:
                yield from (rows() if callable(rows) else rows)
                return
        raise AssertionError(f"알 수 없는 쿼리: {query}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def target_path(tmp_path):
    """스키마만 생성된 SQLite 파일"""
    path = tmp_path / "target.sqlite"
    with sqlite3.connect(path) as conn:
        conn.executescript(TARGET_SCHEMA)
    conn.close()
    return path


@pytest.fixture
def fetch_rows(target_path):
    """타겟 테이블 전체 row 조회"""

    def _fetch(table: str, order_by: str = "id") -> list[tuple]:
        conn = sqlite3.connect(target_path)
        try:
            return conn.execute(f"SELECT * FROM {table} ORDER BY {order_by}").fetchall()
        finally:
            conn.close()

    return _fetch


@pytest.fixture
def make_source():
    return FakeSourceClient
