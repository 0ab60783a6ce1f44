"""로깅 설정

콘솔(stdout)과 일자별 파일 핸들러를 `sqlite_migration` 로거에 연결
모듈별 로거(`sqlite_migration.migrator` 등)는 이 로거로 전파됨
"""

import logging
import sys
from datetime import date
from pathlib import Path

LOGGER_NAME = "sqlite_migration"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "migrate"

# setup_logger가 붙인 핸들러 표시 (다른 핸들러는 건드리지 않음)
_MANAGED_ATTR = "_sqlite_migration_managed"


def log_file_path(log_dir: str | Path, day: date | None = None) -> Path:
    """일자별 로그 파일 경로 (예: logs/migrate_20240305.log)"""
    day = day or date.today()
    return Path(log_dir) / f"{LOG_FILE_PREFIX}_{day:%Y%m%d}.log"


def _managed(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    setattr(handler, _MANAGED_ATTR, True)
    return handler


def _remove_managed_handlers(logger: logging.Logger) -> None:
    for handler in [h for h in logger.handlers if getattr(h, _MANAGED_ATTR, False)]:
        logger.removeHandler(handler)
        handler.close()


def setup_logger(verbose: bool = False, log_dir: str | Path | None = "./logs") -> logging.Logger:
    """애플리케이션 로거 설정

    다시 호출하면 이전에 붙인 핸들러를 교체하므로 레벨/로그 디렉토리 변경이 반영됨

    Args:
        verbose: True면 콘솔에도 DEBUG 출력 (파일은 항상 DEBUG)
        log_dir: 로그 파일 디렉토리, None이면 파일 로그 생략
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_dir or verbose else logging.INFO)
    _remove_managed_handlers(logger)

    console_handler = _managed(logging.StreamHandler(sys.stdout))
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console_handler)

    if log_dir:
        path = log_file_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = _managed(logging.FileHandler(path, encoding="utf-8"))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger
