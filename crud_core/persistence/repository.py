"""Table-agnostic data access: every statement is built from reflected metadata."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Table, and_, delete, false, func, insert, or_, select, update
from sqlalchemy.exc import DBAPIError, StatementError
from sqlalchemy.orm import Session

from crud_core.domain import DynamicRecord, OperationResult, RowPage, SortDirection, TableInfo
from crud_core.errors import InvalidRecord, QueryExecutionError, RecordNotFound

from .coercion import coerce_value, display_value
from .introspection import SchemaInspector, python_type_name


logger = logging.getLogger(__name__)

KEY_SEPARATOR = ","


def format_row_key(table: Table, record: Mapping[str, Any]) -> str:
    """Primary key values joined in key-column order."""

    return KEY_SEPARATOR.join(str(record[column.name]) for column in table.primary_key.columns)


class DynamicTableRepository:
    """CRUD helpers over tables whose schema is discovered per request."""

    def __init__(
        self,
        session: Session,
        *,
        schema: Optional[str] = None,
        allowed_tables: Optional[Iterable[str]] = None,
        max_page_size: int = 200,
    ) -> None:
        self.session = session
        self.max_page_size = max_page_size
        self.inspector = SchemaInspector(
            session.connection, schema=schema, allowed_tables=allowed_tables
        )

    # ------------------------------------------------------------------ 目录

    def list_tables(self) -> List[str]:
        return self.inspector.list_tables()

    def describe(self, table_name: str) -> TableInfo:
        return self.inspector.describe(table_name)

    # ------------------------------------------------------------------ 读取

    def paginate(
        self,
        table_name: str,
        *,
        page: int = 1,
        page_size: int = 20,
        order_by: Optional[str] = None,
        direction: SortDirection = SortDirection.ASC,
        q: Optional[str] = None,
    ) -> RowPage:
        table = self.inspector.reflect(table_name)
        page = max(page, 1)
        page_size = max(1, min(page_size, self.max_page_size))

        conditions = []
        if q:
            conditions.append(self._keyword_filter(table, q))

        if order_by:
            if order_by not in table.columns:
                raise InvalidRecord(f"Unknown column for ordering: {order_by}", table=table.name)
            sort_columns = [table.columns[order_by]]
        elif table.primary_key.columns:
            sort_columns = list(table.primary_key.columns)
        else:
            # OFFSET needs a stable order on every backend
            sort_columns = [next(iter(table.columns))]
        ordering = [
            column.desc() if direction is SortDirection.DESC else column.asc()
            for column in sort_columns
        ]

        count_stmt = select(func.count()).select_from(table).where(*conditions)
        stmt = (
            select(table)
            .where(*conditions)
            .order_by(*ordering)
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        total = self._execute(table, count_stmt).scalar_one()
        rows = [self._to_record(row) for row in self._execute(table, stmt).mappings()]
        return RowPage(
            table=table.name,
            columns=[column.name for column in table.columns],
            rows=rows,
            page=page,
            page_size=page_size,
            total=total,
            order_by=order_by,
            direction=direction,
            q=q,
        )

    def row_key(self, table_name: str, record: Mapping[str, Any]) -> Optional[str]:
        """Key string of a fetched record, None for tables without a primary key."""

        table = self.inspector.reflect(table_name)
        if not table.primary_key.columns:
            return None
        return format_row_key(table, record)

    def get(self, table_name: str, row_key: str) -> DynamicRecord:
        table = self._editable_table(table_name)
        stmt = select(table).where(self._key_clause(table, row_key))
        row = self._execute(table, stmt).mappings().first()
        if row is None:
            raise RecordNotFound(table.name, row_key)
        return self._to_record(row)

    # ------------------------------------------------------------------ 写入

    def upsert(self, table_name: str, values: Mapping[str, Any]) -> OperationResult:
        """UPDATE when every key column is given and the row exists, else INSERT."""

        table = self._editable_table(table_name)
        unknown = sorted(set(values) - set(table.columns.keys()))
        if unknown:
            raise InvalidRecord(
                f"Unknown columns for {table.name}: {', '.join(unknown)}", table=table.name
            )
        coerced: Dict[str, Any] = {
            name: coerce_value(table.columns[name], raw) for name, raw in values.items()
        }

        key_names = [column.name for column in table.primary_key.columns]
        key_values = {name: coerced.get(name) for name in key_names}
        if all(value is not None for value in key_values.values()):
            where = and_(*(table.columns[name] == value for name, value in key_values.items()))
            exists = self._execute(
                table, select(func.count()).select_from(table).where(where)
            ).scalar_one()
            if exists:
                changes = {name: value for name, value in coerced.items() if name not in key_names}
                row_key = format_row_key(table, key_values)
                if changes:
                    self._execute(table, update(table).where(where).values(**changes))
                logger.info("Updated %s row %s (%d columns)", table.name, row_key, len(changes))
                return OperationResult(success=True, message="Row updated", row_key=row_key)

        payload = {
            name: value
            for name, value in coerced.items()
            if not (name in key_names and value is None)
        }
        result = self._execute(table, insert(table).values(**payload))
        inserted = dict(zip(key_names, result.inserted_primary_key or ()))
        inserted.update({name: value for name, value in key_values.items() if value is not None})
        row_key = format_row_key(table, inserted) if len(inserted) == len(key_names) else None
        logger.info("Inserted %s row %s", table.name, row_key)
        return OperationResult(success=True, message="Row created", row_key=row_key)

    def delete(self, table_name: str, row_key: str) -> OperationResult:
        table = self._editable_table(table_name)
        result = self._execute(table, delete(table).where(self._key_clause(table, row_key)))
        if not result.rowcount:
            raise RecordNotFound(table.name, row_key)
        logger.info("Deleted %s row %s", table.name, row_key)
        return OperationResult(success=True, message="Row deleted", row_key=row_key)

    def commit(self) -> None:
        try:
            self.session.commit()
        except DBAPIError as exc:
            self.session.rollback()
            logger.warning("Commit failed: %s", exc.orig)
            raise QueryExecutionError(str(exc.orig)) from exc
        except StatementError as exc:
            self.session.rollback()
            logger.warning("Commit rejected a parameter: %s", exc.orig)
            raise InvalidRecord(f"Invalid value: {exc.orig}") from exc

    # ------------------------------------------------------------------ 内部

    def _editable_table(self, table_name: str) -> Table:
        table = self.inspector.reflect(table_name)
        if not table.primary_key.columns:
            raise InvalidRecord(
                f"Table {table.name} has no primary key; its rows are read-only",
                table=table.name,
            )
        return table

    def _key_clause(self, table: Table, row_key: str):
        key_columns = list(table.primary_key.columns)
        if len(key_columns) == 1:
            parts = [row_key]
        else:
            parts = row_key.split(KEY_SEPARATOR)
            if len(parts) != len(key_columns):
                raise InvalidRecord(
                    f"Key for {table.name} needs {len(key_columns)} comma-separated values",
                    table=table.name,
                )
        return and_(
            *(column == coerce_value(column, part) for column, part in zip(key_columns, parts))
        )

    @staticmethod
    def _keyword_filter(table: Table, q: str):
        textual = [column for column in table.columns if python_type_name(column.type) == "str"]
        if not textual:
            return false()
        # "%" and "_" typed by the user match literally
        return or_(*(column.icontains(q, autoescape=True) for column in textual))

    @staticmethod
    def _to_record(row: Mapping[str, Any]) -> DynamicRecord:
        return {name: display_value(value) for name, value in row.items()}

    def _execute(self, table: Table, stmt):
        try:
            return self.session.execute(stmt)
        except DBAPIError as exc:
            self.session.rollback()
            logger.warning("Statement on %s failed: %s", table.name, exc.orig)
            raise QueryExecutionError(str(exc.orig), table=table.name) from exc
        except StatementError as exc:
            # bind processing refused a value that bypassed string coercion
            self.session.rollback()
            logger.warning("Statement on %s rejected a parameter: %s", table.name, exc.orig)
            raise InvalidRecord(
                f"Invalid value for {table.name}: {exc.orig}", table=table.name
            ) from exc
