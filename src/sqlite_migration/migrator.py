"""
MariaDB -> SQLite 데이터 마이그레이터
카탈로그 기반으로 테이블별 전체 row를 타입 변환 후 기존 SQLite 스키마에 복사

- 테이블 단위 트랜잭션 (DELETE + INSERT OR REPLACE)
- 단일 연결, 순차 처리 (테이블 1개씩, row 1개씩)
- 오류 발생 시 해당 테이블 롤백 후 전체 중단
"""

import logging
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generator, Iterator, Literal, Protocol

from rich.console import Console
from rich.markup import escape

from sqlite_migration.client import (
    MariaDBClient,
    MigrationError,
    TableInfo,
    build_select_query,
)
from sqlite_migration.coercion import CoercionRule, ScanError, get_coercion_rule
from sqlite_migration.config import DEFAULT_PROGRESS_INTERVAL, MigrationConfig

logger = logging.getLogger(__name__)
console = Console()


class DestinationError(MigrationError):
    """SQLite 연결 또는 설정 실패"""


class TableMigrationError(MigrationError):
    """테이블 복사 실패 (해당 테이블은 롤백됨)"""

    def __init__(self, table: str, record: int, cause: BaseException):
        self.table = table
        self.record = record
        self.cause = cause
        super().__init__(f"테이블 '{table}' 마이그레이션 실패 (record {record}): {cause}")


class SourceClient(Protocol):
    """소스 DB가 제공해야 하는 카탈로그/스트리밍 인터페이스"""

    def connect(self) -> None: ...

    def get_tables(self, database: str) -> list[str]: ...

    def get_table_info(self, database: str, table_name: str) -> TableInfo: ...

    def iter_rows(self, query: str) -> Generator[tuple, None, None]: ...

    def close(self) -> None: ...


def quote_sqlite_identifier(name: str) -> str:
    """SQLite 식별자 인용 (큰따옴표)"""
    return '"' + name.replace('"', '""') + '"'


def build_insert_query(table: TableInfo) -> str:
    """SELECT와 같은 컬럼 순서의 INSERT OR REPLACE 쿼리 생성"""
    columns_str = ", ".join(quote_sqlite_identifier(col) for col in table.column_names)
    placeholders = ", ".join(["?"] * len(table.columns))
    return (
        f"INSERT OR REPLACE INTO {quote_sqlite_identifier(table.name)} "
        f"({columns_str}) VALUES ({placeholders})"
    )


def build_delete_query(table_name: str) -> str:
    return f"DELETE FROM {quote_sqlite_identifier(table_name)}"


@dataclass
class TableResult:
    """테이블 마이그레이션 결과"""
    table: str
    status: Literal["success", "error"]
    rows: int = 0
    error: str | None = None


@dataclass
class MigrationSummary:
    """마이그레이션 요약"""
    results: list[TableResult] = field(default_factory=list)

    @property
    def total_tables(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return len([r for r in self.results if r.status == "success"])

    @property
    def error_count(self) -> int:
        return len([r for r in self.results if r.status == "error"])

    @property
    def total_rows(self) -> int:
        return sum(r.rows for r in self.results if r.status == "success")


class SQLiteMigrator:
    """MariaDB -> SQLite 데이터 마이그레이터"""

    def __init__(
        self,
        source: SourceClient,
        database: str,
        target_path: str | Path,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ):
        self.source = source
        self.database = database
        self.target_path = Path(target_path)
        self.progress_interval = progress_interval
        self.summary = MigrationSummary()
        self._target: sqlite3.Connection | None = None

    @classmethod
    def from_config(cls, config: MigrationConfig) -> "SQLiteMigrator":
        """실행 설정에서 인스턴스 생성"""
        return cls(
            source=MariaDBClient.from_config(config.source_config()),
            database=config.database,
            target_path=config.target_path,
            progress_interval=config.progress_interval,
        )

    def connect(self) -> None:
        """소스/타겟 연결"""
        self.source.connect()

        if self._target is not None:
            return
        if not self.target_path.is_file():
            raise DestinationError(f"SQLite 파일을 찾을 수 없습니다: {self.target_path}")

        logger.info(f"SQLite 연결 중... ({self.target_path})")
        try:
            # 트랜잭션은 table_transaction()에서 명시적으로 관리
            self._target = sqlite3.connect(str(self.target_path), isolation_level=None)
            self._target.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            self._target = None
            raise DestinationError(f"SQLite 연결 실패: {e}") from e
        logger.info("SQLite 연결 성공")

    def _get_target(self) -> sqlite3.Connection:
        if self._target is None:
            self.connect()
        return self._target

    def set_foreign_keys(self, enabled: bool) -> None:
        """SQLite 외래키 검사 on/off (트랜잭션 밖에서만 적용됨)"""
        state = "ON" if enabled else "OFF"
        try:
            self._get_target().execute(f"PRAGMA foreign_keys = {state}")
        except sqlite3.Error as e:
            raise DestinationError(f"SQLite 외래키 설정 실패 ({state}): {e}") from e
        if enabled:
            logger.info("SQLite 외래키 검사 재활성화")
        else:
            logger.info("SQLite 외래키 검사 비활성화 (import 동안)")

    @contextmanager
    def table_transaction(self, table_name: str) -> Iterator[sqlite3.Connection]:
        """테이블 단위 트랜잭션

        body가 정상 종료되고 COMMIT까지 성공한 경우에만 반영
        body 또는 COMMIT 실패(예외, 인터럽트, SQLITE_BUSY 등)는 모두 ROLLBACK
        """
        conn = self._get_target()
        conn.execute("BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.warning(f"테이블 '{table_name}' 롤백")
            raise

    def get_tables(
        self,
        tables: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> list[str]:
        """마이그레이션 대상 테이블 목록 (카탈로그 순서, 중복 제거)

        tables가 주어지면 해당 순서를 그대로 사용
        """
        if tables:
            candidates = list(tables)
        else:
            candidates = self.source.get_tables(self.database)
            exclude_set = set(exclude or [])
            excluded = [t for t in candidates if t in exclude_set]
            if excluded:
                logger.info(f"명시적 제외: {len(excluded)}개 ({', '.join(excluded)})")
            candidates = [t for t in candidates if t not in exclude_set]

        return list(dict.fromkeys(candidates))

    def describe_tables(self, table_names: list[str]) -> list[TableInfo]:
        """테이블별 컬럼 메타데이터 조회 (dry-run 용)"""
        return [self.source.get_table_info(self.database, name) for name in table_names]

    def migrate_table(self, table_name: str) -> TableResult:
        """단일 테이블 마이그레이션

        컬럼 순서는 카탈로그 ORDINAL_POSITION 순서로 SELECT/INSERT 양쪽에 동일하게 사용
        """
        table = self.source.get_table_info(self.database, table_name)
        rules = [get_coercion_rule(col.data_type) for col in table.columns]

        select_query = build_select_query(table)
        insert_query = build_insert_query(table)
        logger.debug(f"SELECT: {select_query}")
        logger.debug(f"INSERT: {insert_query}")

        record_count = 0
        try:
            with self.table_transaction(table.name) as conn:
                conn.execute(build_delete_query(table.name))

                # 같은 SQL 문자열을 재사용하므로 sqlite3 statement cache에서 한 번만 prepare됨
                with closing(conn.cursor()) as cursor, closing(self.source.iter_rows(select_query)) as rows:
                    for row in rows:
                        record_count += 1
                        cursor.execute(insert_query, self._coerce_row(table, rules, row))

                        if record_count % self.progress_interval == 0:
                            logger.info(f"테이블 '{table.name}': {record_count:,}건 마이그레이션 중...")
        except Exception as e:
            raise TableMigrationError(table.name, record_count, e) from e

        logger.info(f"테이블 '{table.name}': 총 {record_count:,}건 마이그레이션 완료")
        return TableResult(table=table.name, status="success", rows=record_count)

    @staticmethod
    def _coerce_row(table: TableInfo, rules: list[CoercionRule], row: tuple) -> list[Any]:
        if len(row) != len(rules):
            raise ScanError(
                f"컬럼 수 불일치: 소스 row {len(row)}개, 카탈로그 {len(rules)}개 ({table.name})"
            )
        return [rule.coerce(raw) for rule, raw in zip(rules, row)]

    def migrate_all(
        self,
        tables: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> MigrationSummary:
        """전체 테이블 마이그레이션 (순차, 첫 오류에서 중단)

        외래키 검사는 모든 테이블이 성공한 뒤에만 다시 켜짐
        """
        self.connect()
        self.set_foreign_keys(False)

        table_names = self.get_tables(tables, exclude)
        logger.info(f"마이그레이션 대상: {len(table_names)}개 테이블")

        for table_name in table_names:
            logger.info(f"테이블 '{table_name}' 마이그레이션 시작...")
            try:
                result = self.migrate_table(table_name)
            except MigrationError as e:
                self.summary.results.append(
                    TableResult(table=table_name, status="error", error=str(e))
                )
                raise
            self.summary.results.append(result)

        self.set_foreign_keys(True)
        logger.info("마이그레이션 완료!")
        return self.summary

    def close(self):
        """리소스 정리"""
        if self._target is not None:
            self._target.close()
            self._target = None
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def run_migration(config: MigrationConfig, source: SourceClient | None = None) -> MigrationSummary:
    """검증된 실행 설정으로 마이그레이션 수행"""
    if source is None:
        migrator = SQLiteMigrator.from_config(config)
    else:
        migrator = SQLiteMigrator(
            source=source,
            database=config.database,
            target_path=config.target_path,
            progress_interval=config.progress_interval,
        )

    with migrator:
        return migrator.migrate_all(tables=config.tables, exclude=config.exclude)


def print_summary(summary: MigrationSummary):
    """마이그레이션 요약 출력"""
    console.print("\n" + "=" * 60)
    console.print("[bold]마이그레이션 요약[/bold]")
    console.print("=" * 60)

    for r in summary.results:
        if r.status == "success":
            console.print(f"[green]✓[/green] {r.table}: {r.rows:,}건")
        else:
            console.print(f"[red]✗[/red] {r.table}: 오류 발생")
            console.print(f"  [dim red]└ {escape(r.error or '')}[/dim red]")

    console.print("-" * 60)
    console.print(f"총 테이블: {summary.total_tables}")
    console.print(f"성공: [green]{summary.success_count}[/green]")
    if summary.error_count:
        console.print(f"실패: [red]{summary.error_count}[/red]")
    console.print(f"총 row: {summary.total_rows:,}")
