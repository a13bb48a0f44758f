"""领域模型导出，便于其它模块统一引入。"""

from .models import (
    ColumnInfo,
    DatabaseType,
    DynamicRecord,
    OperationResult,
    RowPage,
    SortDirection,
    TableInfo,
)

__all__ = [
    "ColumnInfo",
    "DatabaseType",
    "DynamicRecord",
    "OperationResult",
    "RowPage",
    "SortDirection",
    "TableInfo",
]
