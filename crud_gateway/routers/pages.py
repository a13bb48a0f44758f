"""HTML table browser: list/form fragments and htmx-driven upsert/delete."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from crud_core.domain import SortDirection
from crud_core.persistence import DynamicTableRepository
from crud_core.utils.config import Settings, get_settings

from ..deps import get_repository, require_writable
from ..rendering import htmx_trigger_headers, render_fragment
from ..schemas import StatusData, ok


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    repo: DynamicTableRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    return render_fragment(
        request,
        "index.html",
        title="Tables",
        tables=repo.list_tables(),
        read_only=settings.read_only,
    )


@router.get("/tables/{table}", response_class=HTMLResponse)
def table_fragment(
    request: Request,
    table: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    order_by: Optional[str] = Query(None),
    direction: SortDirection = Query(SortDirection.ASC),
    q: Optional[str] = Query(None),
    repo: DynamicTableRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    """Rows of one table with paging, ordering and keyword search."""

    info = repo.describe(table)
    result = repo.paginate(
        table,
        page=page,
        page_size=page_size or settings.default_page_size,
        order_by=order_by,
        direction=direction,
        q=q or None,
    )
    rows = [{"key": repo.row_key(table, record), "values": record} for record in result.rows]
    return render_fragment(
        request,
        "table.html",
        title=info.name,
        info=info,
        page=result,
        rows=rows,
        editable=info.editable and not settings.read_only,
    )


@router.get("/tables/{table}/form", response_class=HTMLResponse)
def row_form(
    request: Request,
    table: str,
    key: Optional[str] = Query(None, description="编辑已有行时传入行主键"),
    repo: DynamicTableRepository = Depends(get_repository),
) -> HTMLResponse:
    """Empty create form, or the edit form of the row identified by ``key``."""

    info = repo.describe(table)
    record = repo.get(table, key) if key is not None else None
    return render_fragment(
        request,
        "form.html",
        title=f"Edit {info.name}" if key is not None else f"New {info.name}",
        info=info,
        record=record,
        row_key=key,
    )


@router.post("/tables/{table}/upsert", dependencies=[Depends(require_writable)])
async def upsert_from_form(
    request: Request,
    table: str,
    repo: DynamicTableRepository = Depends(get_repository),
) -> JSONResponse:
    form = await request.form()
    submitted = {name: value for name, value in form.items() if isinstance(value, str)}

    def _save():
        info = repo.describe(table)
        values = {}
        for name, value in submitted.items():
            column = info.column(name)
            # blank inputs keep the server default instead of overriding it with NULL
            if column is not None and value == "" and column.default is not None:
                continue
            values[name] = value
        saved = repo.upsert(table, values)
        repo.commit()
        return saved

    result = await run_in_threadpool(_save)
    envelope = ok(StatusData.from_result(result), msg=result.message)
    return JSONResponse(
        content=envelope.model_dump(mode="json"),
        headers=htmx_trigger_headers("rowSaved", table, result.message, result.row_key),
    )


@router.post("/tables/{table}/delete", dependencies=[Depends(require_writable)])
def delete_from_list(
    table: str,
    key: str = Query(..., description="要删除的行主键"),
    repo: DynamicTableRepository = Depends(get_repository),
) -> JSONResponse:
    result = repo.delete(table, key)
    repo.commit()
    envelope = ok(StatusData.from_result(result), msg=result.message)
    return JSONResponse(
        content=envelope.model_dump(mode="json"),
        headers=htmx_trigger_headers("rowDeleted", table, result.message, result.row_key),
    )
