"""
MariaDB -> SQLite 데이터 마이그레이션 도구
information_schema 카탈로그 기반 테이블별 전체 복사 + 컬럼 타입 변환
"""

from sqlite_migration.migrator import SQLiteMigrator, run_migration

__all__ = ["SQLiteMigrator", "run_migration"]
