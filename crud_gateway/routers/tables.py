"""JSON API over arbitrary tables: introspection, paging, upsert, delete."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from crud_core.domain import SortDirection
from crud_core.persistence import DynamicTableRepository
from crud_core.utils.config import Settings, get_settings

from ..deps import get_repository, require_writable
from ..schemas import (
    Envelope,
    RowData,
    RowListData,
    StatusData,
    TableInfoData,
    TableListData,
    ok,
)


router = APIRouter()


@router.get("/tables", response_model=Envelope[TableListData])
def list_tables(
    repo: DynamicTableRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> Envelope[TableListData]:
    """列出当前数据库中可浏览的表。"""

    names = repo.list_tables()
    return ok(TableListData(items=names, total=len(names), read_only=settings.read_only))


@router.get("/tables/{table}/columns", response_model=Envelope[TableInfoData])
def describe_table(
    table: str,
    repo: DynamicTableRepository = Depends(get_repository),
) -> Envelope[TableInfoData]:
    info = repo.describe(table)
    return ok(
        TableInfoData(
            name=info.name,
            schema_name=info.schema_name,
            columns=info.columns,
            primary_key=info.primary_key,
            editable=info.editable,
        )
    )


@router.get("/tables/{table}/rows", response_model=Envelope[RowListData])
def list_rows(
    table: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, description="默认取 CRUD_DEFAULT_PAGE_SIZE"),
    order_by: Optional[str] = Query(None),
    direction: SortDirection = Query(SortDirection.ASC),
    q: Optional[str] = Query(None, description="在文本列中模糊匹配"),
    repo: DynamicTableRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> Envelope[RowListData]:
    """
    分页读取表数据。

    page_size 超过 CRUD_MAX_PAGE_SIZE 时会被截断。
    """

    result = repo.paginate(
        table,
        page=page,
        page_size=page_size or settings.default_page_size,
        order_by=order_by,
        direction=direction,
        q=q,
    )
    return ok(
        RowListData(
            table=result.table,
            columns=result.columns,
            items=result.rows,
            page=result.page,
            page_size=result.page_size,
            total=result.total,
            order_by=result.order_by,
            direction=result.direction,
        )
    )


@router.get("/tables/{table}/rows/{row_key}", response_model=Envelope[RowData])
def get_row(
    table: str,
    row_key: str,
    repo: DynamicTableRepository = Depends(get_repository),
) -> Envelope[RowData]:
    record = repo.get(table, row_key)
    return ok(RowData(table=table, row_key=row_key, record=record))


@router.post(
    "/tables/{table}/rows",
    response_model=Envelope[StatusData],
    dependencies=[Depends(require_writable)],
)
def upsert_row(
    table: str,
    values: Dict[str, Any] = Body(..., description="列名 -> 值；主键齐全且已存在时执行更新"),
    repo: DynamicTableRepository = Depends(get_repository),
) -> Envelope[StatusData]:
    result = repo.upsert(table, values)
    repo.commit()
    return ok(StatusData.from_result(result), msg=result.message)


@router.delete(
    "/tables/{table}/rows/{row_key}",
    response_model=Envelope[StatusData],
    dependencies=[Depends(require_writable)],
)
def delete_row(
    table: str,
    row_key: str,
    repo: DynamicTableRepository = Depends(get_repository),
) -> Envelope[StatusData]:
    result = repo.delete(table, row_key)
    repo.commit()
    return ok(StatusData.from_result(result), msg=result.message)
