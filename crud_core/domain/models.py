"""Domain data models shared across modules."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


DynamicRecord = Dict[str, Any]
"""A row whose schema is only known at runtime: column name -> value."""


class DatabaseType(str, Enum):
    """Database-type tags accepted in configuration."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MSSQL = "mssql"
    ORACLE = "oracle"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ColumnInfo(BaseModel):
    """One introspected column."""

    name: str = Field(..., description="列名，来自数据库目录")
    type_name: str = Field(..., description="数据库类型的字符串表示，如 VARCHAR(64)")
    python_type: Optional[str] = Field(None, description="可推断时的 Python 类型名")
    nullable: bool = Field(True, description="是否允许 NULL")
    primary_key: bool = Field(False, description="是否属于主键")
    autoincrement: bool = Field(False, description="插入时是否可省略（自增主键）")
    default: Optional[str] = Field(None, description="服务端默认值的文本形式")

    @property
    def is_textual(self) -> bool:
        return self.python_type == "str"


class TableInfo(BaseModel):
    """Column list and key of one table, discovered at request time."""

    name: str
    schema_name: Optional[str] = None
    columns: List[ColumnInfo] = Field(default_factory=list)
    primary_key: List[str] = Field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def editable(self) -> bool:
        """Tables without a primary key are browse-only."""
        return bool(self.primary_key)

    def column(self, name: str) -> Optional[ColumnInfo]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class RowPage(BaseModel):
    """One page of rows plus the unpaginated total."""

    table: str
    columns: List[str]
    rows: List[DynamicRecord]
    page: int
    page_size: int
    total: int
    order_by: Optional[str] = None
    direction: SortDirection = SortDirection.ASC
    q: Optional[str] = None

    @property
    def page_count(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def has_previous(self) -> bool:
        return self.page > 1


class OperationResult(BaseModel):
    """Outcome of a mutation, collapsed to success flag plus message."""

    success: bool
    message: str
    row_key: Optional[str] = None
