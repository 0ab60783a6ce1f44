"""
컬럼 타입 변환 모듈
MariaDB 논리 타입(DATA_TYPE) 기준으로 값을 SQLite 저장 가능한 값으로 변환

2단계 변환:
- scan: 드라이버 값을 타입별 scan shape으로 정규화 (NULL은 항상 None 유지)
- convert: scan 결과를 SQLite에 삽입 가능한 값으로 변환
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ScanShape(str, Enum):
    """scan 단계에서 값을 담는 형태"""

    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"


# MariaDB 논리 타입 -> scan shape 매핑 (소문자 기준)
COERCION_RULES: dict[str, ScanShape] = {
    # 정수
    "int": ScanShape.INTEGER,
    "tinyint": ScanShape.INTEGER,
    "smallint": ScanShape.INTEGER,
    "mediumint": ScanShape.INTEGER,
    "bigint": ScanShape.INTEGER,
    # 실수
    "float": ScanShape.FLOAT,
    "double": ScanShape.FLOAT,
    "decimal": ScanShape.FLOAT,
    "numeric": ScanShape.FLOAT,
    # 문자열 (JSON은 MariaDB에서 longtext)
    "varchar": ScanShape.TEXT,
    "text": ScanShape.TEXT,
    "tinytext": ScanShape.TEXT,
    "mediumtext": ScanShape.TEXT,
    "longtext": ScanShape.TEXT,
    "char": ScanShape.TEXT,
    "json": ScanShape.TEXT,
    # 바이너리
    "blob": ScanShape.BYTES,
    "longblob": ScanShape.BYTES,
    "mediumblob": ScanShape.BYTES,
    "tinyblob": ScanShape.BYTES,
    # 날짜/시간
    "datetime": ScanShape.TIMESTAMP,
    "timestamp": ScanShape.TIMESTAMP,
    "date": ScanShape.TIMESTAMP,
    # MariaDB BOOLEAN은 보통 tinyint(1)로 보고됨
    "boolean": ScanShape.BOOLEAN,
}

# bytes 값이 텍스트로 취급되는 논리 타입 키워드 (varchar는 char에 포함)
TEXT_TYPE_KEYWORDS = ("text", "char", "json")
BLOB_TYPE_KEYWORD = "blob"

ZERO_DATE_PREFIX = "0000-00-00"


class ScanError(ValueError):
    """드라이버 값을 scan shape으로 변환하지 못한 경우"""


def clean_text(value: str) -> str:
    """앞뒤 공백 제거 후 NUL 문자(\\x00) 전체 제거 (개행은 유지)"""
    return value.strip().replace("\x00", "")


def format_timestamp(value: datetime) -> str:
    """RFC 3339 형식 문자열 (초 단위, naive 값은 UTC로 간주)

    Examples:
        >>> format_timestamp(datetime(2024, 3, 5, 10, 15))
        '2024-03-05T10:15:00Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def format_time(value: timedelta) -> str:
    """MariaDB TIME 텍스트 형식 ([-]HH:MM:SS[.ffffff], 시간은 24 이상 가능)

    Examples:
        >>> format_time(timedelta(hours=25))
        '25:00:00'
        >>> format_time(-timedelta(hours=1))
        '-01:00:00'
    """
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)
    minutes, seconds = divmod(value.days * 86400 + value.seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


def _scan_integer(raw: Any) -> int:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("ascii")
    return int(raw)


def _scan_float(raw: Any) -> float:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("ascii")
    return float(raw)


def _scan_text(raw: Any) -> str | bytes:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            # 디코딩 불가 바이트는 그대로 두고 convert 단계에서 처리
            return bytes(raw)
    if isinstance(raw, timedelta):
        # pymysql은 TIME 컬럼을 timedelta로 반환
        return format_time(raw)
    return str(raw)


def _scan_bytes(raw: Any) -> bytes:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, str):
        return raw.encode("utf-8")
    raise TypeError(f"바이너리로 읽을 수 없는 값: {type(raw).__name__}")


def _scan_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("ascii")
    if isinstance(raw, str):
        if raw.startswith(ZERO_DATE_PREFIX):
            # MariaDB zero date -> 드라이버 zero time
            return datetime.min
        return datetime.fromisoformat(raw)
    raise TypeError(f"날짜로 읽을 수 없는 값: {type(raw).__name__}")


def _scan_boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw != 0
    if isinstance(raw, (bytes, bytearray)):
        # BIT(1) 컬럼
        return any(raw)
    raise TypeError(f"boolean으로 읽을 수 없는 값: {type(raw).__name__}")


_SCANNERS = {
    ScanShape.INTEGER: _scan_integer,
    ScanShape.FLOAT: _scan_float,
    ScanShape.TEXT: _scan_text,
    ScanShape.BYTES: _scan_bytes,
    ScanShape.TIMESTAMP: _scan_timestamp,
    ScanShape.BOOLEAN: _scan_boolean,
}


def convert_value(value: Any, logical_type: str) -> Any:
    """scan된 값을 SQLite 삽입 값으로 변환

    Args:
        value: scan 단계 결과값
        logical_type: 소스 컬럼 논리 타입

    Returns:
        SQLite에 바인딩할 값 (None / int / float / str / bytes)
    """
    if value is None:
        return None

    lower_type = logical_type.lower()

    # bool은 int의 하위 타입이므로 먼저 확인
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, str):
        return clean_text(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        if any(keyword in lower_type for keyword in TEXT_TYPE_KEYWORDS):
            return clean_text(bytes(value).decode("utf-8", errors="replace"))
        if BLOB_TYPE_KEYWORD in lower_type:
            return bytes(value)
        logger.warning(
            f"'{logical_type}' 타입에 예상치 못한 바이너리 값, BLOB으로 그대로 저장합니다."
        )
        return value

    logger.warning(
        f"처리되지 않은 값 타입 '{type(value).__name__}' (논리 타입 '{logical_type}'), 그대로 저장합니다."
    )
    return value


@dataclass(frozen=True)
class CoercionRule:
    """논리 타입별 변환 규칙 (scan shape + convert)"""

    logical_type: str
    shape: ScanShape
    known: bool = True

    def scan(self, raw: Any) -> Any:
        """드라이버 값을 scan shape으로 정규화 (NULL은 None 유지)"""
        if raw is None:
            return None
        try:
            return _SCANNERS[self.shape](raw)
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            raise ScanError(
                f"'{self.logical_type}' 값을 {self.shape.value}(으)로 읽을 수 없습니다: {raw!r}"
            ) from e

    def coerce(self, raw: Any) -> Any:
        """scan + convert"""
        return convert_value(self.scan(raw), self.logical_type)


def get_coercion_rule(logical_type: str) -> CoercionRule:
    """논리 타입에 해당하는 변환 규칙 조회

    알 수 없는 타입은 경고 후 문자열 규칙으로 대체
    """
    key = logical_type.strip().lower()
    shape = COERCION_RULES.get(key)
    if shape is None:
        logger.warning(f"처리되지 않은 MariaDB 타입 '{logical_type}', 문자열로 읽습니다.")
        return CoercionRule(logical_type=key, shape=ScanShape.TEXT, known=False)
    return CoercionRule(logical_type=key, shape=shape)
