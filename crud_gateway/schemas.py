"""API response schemas."""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from crud_core.domain import ColumnInfo, OperationResult, SortDirection


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    code: int
    msg: str
    data: T


class TableListData(BaseModel):
    items: List[str]
    total: int
    read_only: bool = False


class TableInfoData(BaseModel):
    name: str
    schema_name: Optional[str] = None
    columns: List[ColumnInfo]
    primary_key: List[str]
    editable: bool


class RowListData(BaseModel):
    table: str
    columns: List[str]
    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int
    order_by: Optional[str] = None
    direction: SortDirection = SortDirection.ASC


class RowData(BaseModel):
    table: str
    row_key: str
    record: Dict[str, Any]


class StatusData(BaseModel):
    success: bool
    message: str
    row_key: Optional[str] = None

    @classmethod
    def from_result(cls, result: OperationResult) -> "StatusData":
        return cls(success=result.success, message=result.message, row_key=result.row_key)


class LogLine(BaseModel):
    idx: int
    content: str


class LogListData(BaseModel):
    lines: List[LogLine]
    total: int
    truncated: bool


class HealthData(BaseModel):
    status: str
    database_type: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


def ok(data: T, msg: str = "success") -> Envelope[T]:
    return Envelope(code=0, msg=msg, data=data)
