"""로깅 설정 테스트"""

import logging
from datetime import date

import pytest

from sqlite_migration.logger import LOGGER_NAME, log_file_path, setup_logger


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = (logger.handlers[:], logger.level)
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])


def test_log_file_path():
    assert log_file_path("logs", date(2024, 3, 5)).as_posix() == "logs/migrate_20240305.log"


def test_console_and_file_handlers(clean_logger, tmp_path):
    logger = setup_logger(verbose=True, log_dir=str(tmp_path / "logs"))

    assert logger is clean_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert list((tmp_path / "logs").glob("migrate_*.log"))


def test_file_receives_debug_without_verbose(clean_logger, tmp_path):
    logger = setup_logger(verbose=False, log_dir=tmp_path)
    console, file_handler = logger.handlers

    logging.getLogger(f"{LOGGER_NAME}.migrator").debug("INSERT: ...")
    file_handler.flush()

    assert console.level == logging.INFO
    assert "DEBUG - INSERT: ..." in log_file_path(tmp_path).read_text(encoding="utf-8")


def test_setup_is_idempotent(clean_logger):
    setup_logger(log_dir=None)
    setup_logger(log_dir=None)

    assert len(clean_logger.handlers) == 1
    assert clean_logger.level == logging.INFO


def test_second_setup_applies_new_options(clean_logger, tmp_path):
    setup_logger(verbose=False, log_dir=None)
    setup_logger(verbose=True, log_dir=tmp_path)

    assert len(clean_logger.handlers) == 2
    assert clean_logger.handlers[0].level == logging.DEBUG


def test_foreign_handlers_are_kept(clean_logger):
    foreign = logging.NullHandler()
    clean_logger.addHandler(foreign)

    setup_logger(log_dir=None)
    setup_logger(log_dir=None)

    assert foreign in clean_logger.handlers
    assert len(clean_logger.handlers) == 2
