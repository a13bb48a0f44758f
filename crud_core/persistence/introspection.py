"""Catalog queries: which tables exist and what their columns look like."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Set

from sqlalchemy import MetaData, Table, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import CompileError, NoSuchTableError
from sqlalchemy.types import TypeEngine

from crud_core.domain import ColumnInfo, TableInfo
from crud_core.errors import TableNotFound


logger = logging.getLogger(__name__)


def python_type_name(sa_type: TypeEngine) -> Optional[str]:
    """Name of the Python type a column maps to, None when the dialect can't tell."""

    try:
        return sa_type.python_type.__name__
    except NotImplementedError:
        return None


def _default_text(column) -> Optional[str]:
    default = column.server_default
    if default is None:
        return None
    arg = getattr(default, "arg", None)
    if arg is None:
        return None
    return str(getattr(arg, "text", arg))


class SchemaInspector:
    """Reads the catalog through the current connection of a request.

    ``get_connection`` is called per catalog query so the inspector survives
    commits. Reflected tables are memoized for its lifetime, which is one
    request.
    """

    def __init__(
        self,
        get_connection: Callable[[], Connection],
        *,
        schema: Optional[str] = None,
        allowed_tables: Optional[Iterable[str]] = None,
    ) -> None:
        self.get_connection = get_connection
        self.schema = schema
        self.allowed_tables: Optional[Set[str]] = set(allowed_tables) if allowed_tables else None
        self._metadata = MetaData(schema=schema)

    def list_tables(self) -> List[str]:
        names = inspect(self.get_connection()).get_table_names(schema=self.schema)
        if self.allowed_tables is not None:
            names = [name for name in names if name in self.allowed_tables]
        return sorted(names)

    def reflect(self, name: str) -> Table:
        if self.allowed_tables is not None and name not in self.allowed_tables:
            raise TableNotFound(name)
        key = f"{self.schema}.{name}" if self.schema else name
        table = self._metadata.tables.get(key)
        if table is not None:
            return table
        try:
            return Table(name, self._metadata, autoload_with=self.get_connection())
        except NoSuchTableError:
            logger.info("Lookup of unknown table %s", name)
            raise TableNotFound(name) from None

    def _type_name(self, sa_type: TypeEngine) -> str:
        try:
            return sa_type.compile(dialect=self.get_connection().dialect)
        except CompileError:
            return type(sa_type).__name__.upper()

    def describe(self, name: str) -> TableInfo:
        table = self.reflect(name)
        auto_column = table.autoincrement_column
        columns = [
            ColumnInfo(
                name=column.name,
                type_name=self._type_name(column.type),
                python_type=python_type_name(column.type),
                nullable=bool(column.nullable),
                primary_key=bool(column.primary_key),
                autoincrement=auto_column is not None and column is auto_column,
                default=_default_text(column),
            )
            for column in table.columns
        ]
        return TableInfo(
            name=table.name,
            schema_name=table.schema,
            columns=columns,
            primary_key=[column.name for column in table.primary_key.columns],
        )
