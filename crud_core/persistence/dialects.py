"""Database-type tags -> SQLAlchemy URLs.

The tag in configuration picks the backend family; the connection string may
be a full SQLAlchemy URL, a URL without a driver part (the default driver is
filled in), or, for SQLite only, a bare file path.
"""

from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from crud_core.domain import DatabaseType
from crud_core.errors import ConfigError, UnsupportedDatabaseType
from crud_core.utils.config import DatabaseConfig


DEFAULT_DRIVERS = {
    DatabaseType.SQLITE: "pysqlite",
    DatabaseType.POSTGRESQL: "psycopg",
    DatabaseType.MYSQL: "pymysql",
    DatabaseType.MSSQL: "pyodbc",
    DatabaseType.ORACLE: "oracledb",
}

TAG_ALIASES = {
    "sqlite3": DatabaseType.SQLITE,
    "postgres": DatabaseType.POSTGRESQL,
    "pg": DatabaseType.POSTGRESQL,
    "pgsql": DatabaseType.POSTGRESQL,
    "mariadb": DatabaseType.MYSQL,
    "sqlserver": DatabaseType.MSSQL,
    "oracledb": DatabaseType.ORACLE,
}


def parse_database_type(tag: str) -> DatabaseType:
    """Normalize a configured tag; unknown tags raise ``UnsupportedDatabaseType``."""

    normalized = (tag or "").strip().lower()
    if normalized in TAG_ALIASES:
        return TAG_ALIASES[normalized]
    try:
        return DatabaseType(normalized)
    except ValueError:
        raise UnsupportedDatabaseType(tag) from None


def infer_database_type(url: URL) -> DatabaseType:
    return parse_database_type(url.get_backend_name())


def _parse_url(connection_string: str, tag: Optional[DatabaseType]) -> URL:
    if "://" not in connection_string:
        if tag is DatabaseType.SQLITE:
            return URL.create("sqlite+pysqlite", database=connection_string)
        raise ConfigError("Connection string must be a URL such as postgresql://user@host/db")
    try:
        return make_url(connection_string)
    except ArgumentError as exc:
        raise ConfigError(f"Invalid connection string: {exc}") from exc


def build_url(config: DatabaseConfig) -> Tuple[DatabaseType, URL]:
    """Resolve the backend and a driver-qualified URL for ``create_engine``."""

    tag = parse_database_type(config.type) if config.type else None
    url = _parse_url(config.connection_string, tag)
    url_type = infer_database_type(url)
    if tag is None:
        tag = url_type
    elif url_type is not tag:
        raise ConfigError(
            f"Database type {tag.value!r} does not match connection string backend {url_type.value!r}"
        )

    backend = url.get_backend_name()
    if backend != "mariadb":
        backend = tag.value
    if "+" in url.drivername:
        driver = url.drivername.split("+", 1)[1]
    else:
        driver = DEFAULT_DRIVERS[tag]
    return tag, url.set(drivername=f"{backend}+{driver}")
