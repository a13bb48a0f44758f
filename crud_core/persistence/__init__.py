"""持久层入口，提供 Engine/Session 与动态表仓库导出。"""

from .database import (
    DatabaseHandle,
    check_connection,
    get_database,
    get_engine,
    get_session_factory,
    session_scope,
)
from .dialects import build_url, parse_database_type
from .introspection import SchemaInspector
from .repository import DynamicTableRepository

__all__ = [
    "DatabaseHandle",
    "DynamicTableRepository",
    "SchemaInspector",
    "build_url",
    "check_connection",
    "get_database",
    "get_engine",
    "get_session_factory",
    "parse_database_type",
    "session_scope",
]
