"""Error taxonomy shared by the persistence layer and the HTTP gateway."""

from __future__ import annotations

from typing import Optional


class CrudError(Exception):
    """Base class; ``status_code`` is the HTTP status the gateway maps it to."""

    status_code = 500

    def __init__(self, message: str, *, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.table = table


class ConfigError(CrudError):
    """Missing or inconsistent database configuration."""


class UnsupportedDatabaseType(ConfigError):
    """The database-type tag names a backend we do not know."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unsupported database type: {tag!r}")
        self.tag = tag


class DatabaseConnectionError(CrudError):
    status_code = 503


class QueryExecutionError(CrudError):
    """The driver rejected a statement (constraint violation, bad value, ...)."""

    status_code = 400


class TableNotFound(CrudError):
    status_code = 404

    def __init__(self, table: str) -> None:
        super().__init__(f"Table not found: {table}", table=table)


class RecordNotFound(CrudError):
    status_code = 404

    def __init__(self, table: str, row_key: str) -> None:
        super().__init__(f"No row in {table} with key {row_key}", table=table)
        self.row_key = row_key


class InvalidRecord(CrudError):
    """Submitted values or keys do not fit the introspected table."""

    status_code = 422


class ReadOnlyMode(CrudError):
    status_code = 403

    def __init__(self) -> None:
        super().__init__("The gateway is running in read-only mode")


class TemplateRenderError(CrudError):
    pass


__all__ = [
    "CrudError",
    "ConfigError",
    "UnsupportedDatabaseType",
    "DatabaseConnectionError",
    "QueryExecutionError",
    "TableNotFound",
    "RecordNotFound",
    "InvalidRecord",
    "ReadOnlyMode",
    "TemplateRenderError",
]
