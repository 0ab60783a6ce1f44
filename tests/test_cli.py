"""
CLI 테스트 (click CliRunner)
"""

import logging

import pytest
from click.testing import CliRunner

from sqlite_migration import cli
from sqlite_migration.config import load_yaml_config
from sqlite_migration.migrator import SQLiteMigrator

from conftest import ENTRY_COLUMNS, EVENT_COLUMNS


@pytest.fixture(autouse=True)
def plain_logger(monkeypatch):
    """CliRunner stdout에 핸들러가 남지 않도록 로거 설정 생략"""
    monkeypatch.setattr(
        cli, "setup_logger", lambda verbose=False, log_dir=None: logging.getLogger("sqlite_migration")
    )


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def use_source(monkeypatch):
    """SQLiteMigrator.from_config가 가짜 소스를 사용하도록 교체"""

    def _use(source):
        def from_config(klass, config):
            return klass(
                source=source,
                database=config.database,
                target_path=config.target_path,
                progress_interval=config.progress_interval,
            )

        monkeypatch.setattr(SQLiteMigrator, "from_config", classmethod(from_config))
        return source

    return _use


def test_show_config_masks_password(runner, monkeypatch):
    monkeypatch.setattr(cli.settings.source, "password", "secret")
    result = runner.invoke(cli.main, ["show-config"])

    assert result.exit_code == 0
    assert "secret" not in result.output
    assert "******" in result.output


def test_migrate_success(runner, use_source, make_source, target_path, fetch_rows):
    source = use_source(make_source({
        "entries": (ENTRY_COLUMNS, [(1, None, " title ", "body")]),
        "events": (EVENT_COLUMNS, [(1, "{}")]),
    }))

    result = runner.invoke(
        cli.main,
        ["migrate", "-d", "wallabag", "-t", str(target_path), "--source-password", "p"],
    )

    assert result.exit_code == 0, result.output
    assert "마이그레이션 요약" in result.output
    assert fetch_rows("entries") == [(1, None, "title", "body")]
    assert source.closed


def test_migrate_failure_exits_nonzero(runner, use_source, make_source, target_path, fetch_rows):
    use_source(make_source({"events": (EVENT_COLUMNS, [(1, "ok"), ("bad", "x")])}))

    result = runner.invoke(cli.main, ["migrate", "-d", "wallabag", "-t", str(target_path)])

    assert result.exit_code == 1
    assert "오류" in result.output
    assert fetch_rows("events") == []


def test_migrate_missing_target_file(runner, tmp_path):
    result = runner.invoke(
        cli.main, ["migrate", "-d", "wallabag", "-t", str(tmp_path / "missing.sqlite")]
    )

    assert result.exit_code == 1
    assert "설정 검증 실패" in result.output


def test_migrate_table_and_exclude_conflict(runner, target_path):
    result = runner.invoke(
        cli.main,
        ["migrate", "-d", "wallabag", "-t", str(target_path), "--table", "a", "--exclude", "b"],
    )

    assert result.exit_code == 1


def test_dry_run_does_not_touch_target(runner, use_source, make_source, target_path, fetch_rows):
    use_source(make_source({"events": (EVENT_COLUMNS, [(1, "{}")])}))

    result = runner.invoke(cli.main, ["migrate", "-d", "wallabag", "-t", str(target_path), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "DRY-RUN" in result.output
    assert "payload" in result.output
    assert fetch_rows("events") == []


def test_run_yaml(runner, use_source, make_source, target_path, fetch_rows, tmp_path):
    use_source(make_source({
        "events": (EVENT_COLUMNS, [(1, "{}")]),
        "entries": (ENTRY_COLUMNS, [(1, None, "t", "c")]),
    }))
    yaml_file = tmp_path / "migration.yaml"
    yaml_file.write_text(
        f"database: wallabag\ntarget_path: {target_path}\nexclude:\n  - entries\n",
        encoding="utf-8",
    )

    result = runner.invoke(cli.main, ["run", str(yaml_file)])

    assert result.exit_code == 0, result.output
    assert fetch_rows("events") == [(1, "{}")]
    assert fetch_rows("entries") == []


def test_init_writes_example(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli.main, ["init"])

        assert result.exit_code == 0
        with open("migration.yaml", encoding="utf-8") as f:
            content = f.read()
        assert "database: wallabag" in content
        assert load_yaml_config("migration.yaml").exclude == []
        assert load_yaml_config("migration.yaml").tables == []


@pytest.mark.parametrize(
    "content, message",
    [
        ("database: [wallabag\n", "YAML 파싱 실패"),
        ("- wallabag_entry\n", "매핑"),
    ],
)
def test_run_rejects_malformed_yaml(runner, tmp_path, content, message):
    yaml_file = tmp_path / "migration.yaml"
    yaml_file.write_text(content, encoding="utf-8")

    result = runner.invoke(cli.main, ["run", str(yaml_file)])

    assert result.exit_code == 1
    assert message in result.output
    assert not isinstance(result.exception, (ValueError, AttributeError))
