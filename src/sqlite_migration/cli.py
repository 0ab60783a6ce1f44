#!/usr/bin/env python3
"""
MariaDB -> SQLite 데이터 마이그레이션 CLI
- CLI 인자 또는 환경변수로 단일 DB 마이그레이션
- YAML 설정 파일로 마이그레이션
"""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sqlite_migration.client import MigrationError
from sqlite_migration.coercion import get_coercion_rule
from sqlite_migration.config import (
    DEFAULT_PROGRESS_INTERVAL,
    MigrationConfig,
    load_yaml_config,
    settings,
)
from sqlite_migration.logger import setup_logger
from sqlite_migration.migrator import SQLiteMigrator, print_summary

# .env 파일 로드
load_dotenv()

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="상세 로그 출력")
@click.option("--log-dir", default="./logs", help="로그 파일 디렉토리 (기본값: ./logs)")
@click.pass_context
def main(ctx, verbose, log_dir):
    """MariaDB -> SQLite 데이터 마이그레이션 도구"""
    ctx.ensure_object(dict)
    ctx.obj["logger"] = setup_logger(verbose, log_dir)


@main.command()
def show_config():
    """현재 DB 연결 설정 출력"""
    click.echo("현재 DB 연결 설정 (환경변수 기반):")
    click.echo(f"\n[소스 DB (MariaDB)]")
    click.echo(f"  Host: {settings.source.host}")
    click.echo(f"  Port: {settings.source.port}")
    click.echo(f"  User: {settings.source.user}")
    click.echo(f"  Password: {'*' * len(settings.source.password)}")
    click.echo(f"  Database: {settings.source.database}")
    click.echo(f"\n[타겟 DB (SQLite)]")
    click.echo(f"  Path: {settings.target.path}")


def print_dry_run(migrator: SQLiteMigrator, config: MigrationConfig):
    """테이블별 컬럼과 변환 규칙 출력 (데이터 변경 없음)"""
    migrator.source.connect()
    table_names = migrator.get_tables(config.tables, config.exclude)

    console.print(f"\n[yellow][DRY-RUN] 마이그레이션 대상: {len(table_names)}개 테이블[/yellow]")
    for i, table in enumerate(migrator.describe_tables(table_names), 1):
        grid = Table(title=f"{i}. {table.name}", title_justify="left")
        grid.add_column("컬럼")
        grid.add_column("MariaDB 타입")
        grid.add_column("scan shape")
        for col in table.columns:
            rule = get_coercion_rule(col.data_type)
            shape = rule.shape.value if rule.known else f"[yellow]{rule.shape.value} (fallback)[/yellow]"
            grid.add_row(col.name, col.data_type, shape)
        console.print(grid)


def execute(ctx, config: MigrationConfig, dry_run: bool):
    """마이그레이션 실행 (오류 시 exit code 1)"""
    logger = ctx.obj["logger"]

    console.print("=" * 60)
    console.print(f"[bold]{escape(config.database)} -> {escape(str(config.target_path))}[/bold]")
    console.print("=" * 60)
    console.print(f"소스: {config.source['host']}:{config.source.get('port', 3306)}/{config.database}")
    console.print(f"타겟: {config.target_path}")
    if config.tables:
        console.print(f"지정 테이블: {', '.join(config.tables)}")
    if config.exclude:
        console.print(f"제외 테이블: {', '.join(config.exclude)}")
    console.print("=" * 60)

    migrator = SQLiteMigrator.from_config(config)
    try:
        with migrator:
            if dry_run:
                print_dry_run(migrator, config)
                return
            migrator.migrate_all(tables=config.tables, exclude=config.exclude)
    except MigrationError as e:
        logger.error(f"마이그레이션 중단: {e}")
        print_summary(migrator.summary)
        console.print(f"[red]오류: {escape(str(e))}[/red]")
        sys.exit(1)

    print_summary(migrator.summary)


def exit_on_validation_error(e: ValidationError):
    """설정 검증 오류 출력 후 종료"""
    console.print("[red]오류: 설정 검증 실패[/red]")
    for err in e.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "config"
        console.print(f"  - {loc}: {err['msg']}")
    sys.exit(1)


def build_config(**kwargs) -> MigrationConfig:
    """실행 설정 생성 및 검증"""
    try:
        return MigrationConfig(**kwargs)
    except ValidationError as e:
        exit_on_validation_error(e)


@main.command()
@click.option("--source-host", default=None, help="소스 DB 호스트")
@click.option("--source-port", type=int, default=None, help="소스 DB 포트")
@click.option("--source-user", default=None, help="소스 DB 사용자")
@click.option("--source-password", default=None, help="소스 DB 비밀번호")
@click.option("--database", "-d", default=None, help="마이그레이션할 데이터베이스명 (기본: SOURCE_DB_DATABASE)")
@click.option("--target-path", "-t", default=None, help="SQLite 파일 경로 (기본: TARGET_DB_PATH)")
@click.option("--table", "tables", multiple=True, help="마이그레이션할 테이블 (여러 개 지정 가능)")
@click.option("--exclude", "exclude_tables", multiple=True, help="제외할 테이블")
@click.option(
    "--progress-interval",
    type=int,
    default=DEFAULT_PROGRESS_INTERVAL,
    help=f"진행 로그 출력 간격 (기본: {DEFAULT_PROGRESS_INTERVAL}건)",
)
@click.option("--dry-run", is_flag=True, help="실제 마이그레이션 없이 대상 테이블/컬럼만 확인")
@click.pass_context
def migrate(
    ctx,
    source_host,
    source_port,
    source_user,
    source_password,
    database,
    target_path,
    tables,
    exclude_tables,
    progress_interval,
    dry_run,
):
    """단일 데이터베이스 마이그레이션 (CLI 인자 사용)

    예시:
      sqlite-migrate migrate -d wallabag -t ./wallabag.sqlite
      sqlite-migrate migrate -d wallabag --table wallabag_entry --table wallabag_tag
      sqlite-migrate migrate -d wallabag --exclude wallabag_oauth2_access_tokens
    """
    source_config = {
        "host": source_host or settings.source.host,
        "port": source_port or settings.source.port,
        "user": source_user or settings.source.user,
        "password": source_password if source_password is not None else settings.source.password,
        "charset": settings.source.charset,
    }

    config = build_config(
        source=source_config,
        database=database or settings.source.database,
        target_path=Path(target_path or settings.target.path),
        tables=list(tables),
        exclude=list(exclude_tables),
        progress_interval=progress_interval,
    )
    execute(ctx, config, dry_run)


@main.command()
@click.argument("yaml_file", type=click.Path(exists=True))
@click.option("--dry-run", is_flag=True, help="실제 마이그레이션 없이 대상 테이블/컬럼만 확인")
@click.pass_context
def run(ctx, yaml_file, dry_run):
    """YAML 설정 파일로 마이그레이션 실행

    예시:
      sqlite-migrate run migration.yaml
      sqlite-migrate run migration.yaml --dry-run
    """
    try:
        yaml_config = load_yaml_config(yaml_file)
        console.print(f"YAML 설정 로드: [cyan]{yaml_file}[/cyan]")
        config = yaml_config.to_migration_config(settings)
    except ValidationError as e:
        exit_on_validation_error(e)
    except ValueError as e:
        console.print(f"[red]오류: {escape(str(e))}[/red]")
        sys.exit(1)

    execute(ctx, config, dry_run)


@main.command()
def init():
    """예시 YAML 설정 파일 생성"""
    example_yaml = """# 마이그레이션 설정 파일
# 사용법: sqlite-migrate run migration.yaml
# 연결 정보는 환경변수(.env)에서 로드: SOURCE_DB_HOST, SOURCE_DB_USER, ...

# 소스 MariaDB 데이터베이스명 (없으면 SOURCE_DB_DATABASE)
database: wallabag

# 스키마가 미리 생성된 SQLite 파일 (없으면 TARGET_DB_PATH)
target_path: ./wallabag.sqlite

# 진행 로그 출력 간격 (row 수)
progress_interval: 1000

# 특정 테이블만 마이그레이션 (지정 순서대로 처리, exclude와 함께 사용 불가)
# tables:
#   - wallabag_user
#   - wallabag_entry

# 제외할 테이블 (기본: 전체 테이블 복사)
# exclude:
#   - wallabag_oauth2_access_tokens
#   - wallabag_oauth2_refresh_tokens
"""

    output_path = Path("migration.yaml")
    if output_path.exists():
        if not click.confirm(f"'{output_path}'가 이미 존재합니다. 덮어쓰시겠습니까?"):
            click.echo("취소되었습니다.")
            return

    output_path.write_text(example_yaml, encoding="utf-8")
    console.print(f"예시 설정 파일 생성: [cyan]{output_path}[/cyan]")
    console.print("\n파일을 편집한 후 다음 명령어로 실행하세요:")
    console.print("  [green]sqlite-migrate run migration.yaml[/green]")
    console.print("  [green]sqlite-migrate run migration.yaml --dry-run[/green]")


if __name__ == "__main__":
    main()
