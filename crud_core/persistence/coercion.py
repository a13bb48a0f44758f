"""Convert submitted values (mostly form strings) to what a column expects."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict

from sqlalchemy import Column

from crud_core.errors import InvalidRecord

from .introspection import python_type_name


TRUE_VALUES = {"true", "t", "1", "yes", "y", "on"}
FALSE_VALUES = {"false", "f", "0", "no", "n", "off"}


def _to_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(raw)


def _to_datetime(raw: str) -> datetime:
    # HTML datetime-local inputs submit "2025-01-01T10:00"
    return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))


PARSERS: Dict[str, Callable[[str], Any]] = {
    "int": lambda raw: int(raw.strip()),
    "float": lambda raw: float(raw.strip()),
    "Decimal": lambda raw: Decimal(raw.strip()),
    "bool": _to_bool,
    "date": lambda raw: date.fromisoformat(raw.strip()),
    "datetime": _to_datetime,
    "time": lambda raw: time.fromisoformat(raw.strip()),
}


def coerce_value(column: Column, raw: Any) -> Any:
    """Coerce ``raw`` for ``column``.

    Empty strings become NULL on nullable columns. Non-string values (JSON
    numbers, booleans) pass through untouched.
    """

    if raw is None:
        return None
    if not isinstance(raw, str):
        return raw
    if raw == "" and column.nullable:
        return None

    parser = PARSERS.get(python_type_name(column.type) or "")
    if parser is None:
        return raw
    try:
        return parser(raw)
    except (ValueError, InvalidOperation):
        raise InvalidRecord(
            f"Invalid value for column {column.name}: {raw!r}",
            table=column.table.name,
        ) from None


def display_value(value: Any) -> Any:
    """Make a fetched value JSON/template friendly."""

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value
