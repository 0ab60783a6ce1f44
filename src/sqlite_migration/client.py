"""
MariaDB 소스 클라이언트
pymysql 기반 연결, information_schema 카탈로그 조회, 스트리밍 조회
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

import pymysql
import pymysql.cursors

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """마이그레이션 중단 오류 (재시도 없음)"""


class SourceConnectionError(MigrationError):
    """소스 DB 연결 실패"""


class CatalogError(MigrationError):
    """카탈로그(information_schema) 조회 실패"""


@dataclass
class ColumnInfo:
    """컬럼 메타데이터"""
    name: str
    data_type: str  # MariaDB DATA_TYPE (예: "int", "varchar", "datetime")

    def __post_init__(self):
        self.data_type = self.data_type.lower()


@dataclass
class TableInfo:
    """테이블 메타데이터 (컬럼은 ORDINAL_POSITION 순서)"""
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]


def quote_mysql_identifier(name: str) -> str:
    """MariaDB 식별자 인용 (백틱)"""
    return "`" + name.replace("`", "``") + "`"


def build_select_query(table: TableInfo) -> str:
    """컬럼 순서를 고정한 SELECT 쿼리 생성"""
    columns_str = ", ".join(quote_mysql_identifier(col) for col in table.column_names)
    return f"SELECT {columns_str} FROM {quote_mysql_identifier(table.name)}"


class MariaDBClient:
    """MariaDB 소스 클라이언트"""

    def __init__(
        self,
        host: str,
        port: int = 3306,
        user: str = "root",
        password: str = "",
        database: str | None = None,
        charset: str = "utf8mb4",
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.charset = charset
        self._conn: pymysql.connections.Connection | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "MariaDBClient":
        """연결 설정 dict에서 인스턴스 생성"""
        return cls(
            host=config["host"],
            port=config.get("port", 3306),
            user=config["user"],
            password=config["password"],
            database=config.get("database"),
            charset=config.get("charset", "utf8mb4"),
        )

    def connect(self) -> None:
        """연결 생성 및 ping 확인"""
        if self._conn is not None:
            return
        logger.info(f"MariaDB 연결 중... ({self.host}:{self.port})")
        try:
            self._conn = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                charset=self.charset,
            )
            self._conn.ping(reconnect=False)
        except pymysql.MySQLError as e:
            self._conn = None
            raise SourceConnectionError(f"MariaDB 연결 실패: {e}") from e
        logger.info("MariaDB 연결 성공")

    def _get_connection(self) -> pymysql.connections.Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    def get_tables(self, database: str) -> list[str]:
        """데이터베이스의 테이블 목록 조회 (VIEW 제외, 카탈로그 순서)"""
        query = """
            SELECT TABLE_NAME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = %s
              AND TABLE_TYPE = 'BASE TABLE'
        """
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(query, (database,))
                return [row[0] for row in cursor.fetchall()]
        except pymysql.MySQLError as e:
            raise CatalogError(f"테이블 목록 조회 실패 ({database}): {e}") from e

    def get_columns(self, database: str, table_name: str) -> list[ColumnInfo]:
        """테이블 컬럼명/타입 조회 (ORDINAL_POSITION 순서)"""
        query = """
            SELECT COLUMN_NAME, DATA_TYPE
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """
        conn = self._get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(query, (database, table_name))
                rows = cursor.fetchall()
        except pymysql.MySQLError as e:
            raise CatalogError(f"컬럼 정보 조회 실패 ({table_name}): {e}") from e

        if not rows:
            raise CatalogError(f"컬럼 정보가 없습니다: {database}.{table_name}")
        return [ColumnInfo(name=name, data_type=data_type) for name, data_type in rows]

    def get_table_info(self, database: str, table_name: str) -> TableInfo:
        """테이블 메타데이터 조회"""
        return TableInfo(name=table_name, columns=self.get_columns(database, table_name))

    def iter_rows(self, query: str) -> Iterator[tuple]:
        """SSCursor로 결과를 한 row씩 스트리밍"""
        conn = self._get_connection()
        cursor = conn.cursor(pymysql.cursors.SSCursor)
        try:
            cursor.execute(query)
            for row in cursor:
                yield row
        finally:
            cursor.close()

    def close(self):
        """연결 종료"""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
