"""
Migration 설정 모듈
환경변수에서 소스(MariaDB)/타겟(SQLite) 연결 설정을 로드
YAML 파일에서 마이그레이션 대상 DB 및 테이블 설정을 로드
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path:
    """프로젝트 루트 경로 탐색 (pyproject.toml 기준)"""
    current = Path(__file__).parent
    for _ in range(5):
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    return Path(__file__).parent.parent.parent


PROJECT_ROOT = _find_project_root()

DEFAULT_PROGRESS_INTERVAL = 1000


class SourceDBSettings(BaseSettings):
    """소스 DB 연결 설정 (MariaDB)"""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_prefix="SOURCE_DB_",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3306)
    user: str = Field(default="wallabag")
    password: str = Field(default="wallabag")
    database: str = Field(default="wallabag")
    charset: str = Field(default="utf8mb4")

    def to_dict(self, database: str | None = None) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": database or self.database,
            "charset": self.charset,
        }


class TargetDBSettings(BaseSettings):
    """타겟 DB 설정 (SQLite 파일)"""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_prefix="TARGET_DB_",
        extra="ignore",
    )

    path: str = Field(default="./wallabag.sqlite")


class MigrationSettings(BaseSettings):
    """마이그레이션 연결 설정"""

    source: SourceDBSettings = Field(default_factory=SourceDBSettings)
    target: TargetDBSettings = Field(default_factory=TargetDBSettings)


# ============================================================
# 실행 설정 모델
# ============================================================

class MigrationConfig(BaseModel):
    """마이그레이션 실행 설정 (DB 작업 전에 한 번 검증)"""
    source: dict[str, Any]  # MariaDB 연결 정보 (host, port, user, password, charset)
    database: str  # 소스 데이터베이스명 (information_schema TABLE_SCHEMA)
    target_path: Path  # 스키마가 이미 생성된 SQLite 파일
    tables: list[str] = Field(default_factory=list)  # 지정 시 해당 테이블만 (순서 유지)
    exclude: list[str] = Field(default_factory=list)
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL

    @field_validator("source")
    @classmethod
    def _check_source(cls, value: dict[str, Any]) -> dict[str, Any]:
        missing = [key for key in ("host", "user", "password") if key not in value]
        if missing:
            raise ValueError(f"소스 연결 정보 누락: {', '.join(missing)}")
        return value

    @field_validator("database")
    @classmethod
    def _check_database(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("소스 데이터베이스명이 비어 있습니다.")
        return value.strip()

    @field_validator("target_path")
    @classmethod
    def _check_target_path(cls, value: Path) -> Path:
        if not value.is_file():
            raise ValueError(f"SQLite 파일을 찾을 수 없습니다 (스키마가 먼저 생성되어야 함): {value}")
        return value

    @field_validator("progress_interval")
    @classmethod
    def _check_progress_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("progress_interval은 1 이상이어야 합니다.")
        return value

    @model_validator(mode="after")
    def _check_table_filters(self) -> "MigrationConfig":
        if self.tables and self.exclude:
            raise ValueError("tables와 exclude는 함께 지정할 수 없습니다.")
        return self

    def source_config(self) -> dict[str, Any]:
        """database가 반영된 소스 연결 설정"""
        return {**self.source, "database": self.database}


# ============================================================
# YAML 설정 모델
# ============================================================

class MigrationYAMLConfig(BaseModel):
    """YAML 마이그레이션 설정"""
    database: str | None = None  # 없으면 SOURCE_DB_DATABASE
    target_path: str | None = None  # 없으면 TARGET_DB_PATH
    tables: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL

    def to_migration_config(self, base: MigrationSettings) -> MigrationConfig:
        """환경변수 설정과 합쳐 실행 설정 생성"""
        return MigrationConfig(
            source=base.source.to_dict(),
            database=self.database or base.source.database,
            target_path=Path(self.target_path or base.target.path),
            tables=self.tables,
            exclude=self.exclude,
            progress_interval=self.progress_interval,
        )


def _as_name_list(value: Any) -> list[str]:
    """테이블 목록 정규화 (단일 문자열은 한 개짜리 목록으로 취급)"""
    if value is None:
        return []
    if isinstance(value, (str, int)):
        return [str(value)]
    if not isinstance(value, list):
        raise ValueError(f"테이블 목록은 문자열 또는 리스트여야 합니다: {value!r}")
    return [str(t) for t in value]


def load_yaml_config(yaml_path: str | Path) -> MigrationYAMLConfig:
    """YAML 설정 파일 로드

    Raises:
        FileNotFoundError: 파일이 없는 경우
        ValueError: YAML 문법 오류 또는 최상위가 매핑이 아닌 경우
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {yaml_path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"YAML 파싱 실패 ({yaml_path}): {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML 최상위는 매핑(key: value)이어야 합니다: {yaml_path}")

    return MigrationYAMLConfig(
        database=data.get("database"),
        target_path=data.get("target_path"),
        tables=_as_name_list(data.get("tables")),
        exclude=_as_name_list(data.get("exclude")),
        progress_interval=data.get("progress_interval", DEFAULT_PROGRESS_INTERVAL),
    )


def get_settings() -> MigrationSettings:
    """설정 로드"""
    return MigrationSettings()


# 싱글톤 인스턴스
settings = get_settings()
