"""
Jinja2 rendering for the HTML table browser plus the htmx header helpers.

Templates live in ``crud_gateway/templates``. Every route renders either a
full page (``page.html`` wrapping a fragment) or, for htmx requests, the
fragment alone.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from crud_core.errors import TemplateRenderError


logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _cell_filter(value: Any) -> str:
    """Render a cell value; NULL shows as an empty cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _is_aware(value: Any) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None


def _input_value_filter(value: Any) -> str:
    # "YYYY-MM-DDTHH:MM:SS", with the offset kept for aware values
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return _cell_filter(value)


INPUT_TYPES = {
    "int": "number",
    "float": "number",
    "Decimal": "number",
    "date": "date",
    "datetime": "datetime-local",
    "time": "time",
}


def _input_type_filter(python_type: str | None, value: Any = None) -> str:
    # datetime-local cannot carry an offset; aware values are edited as text
    if _is_aware(value):
        return "text"
    return INPUT_TYPES.get(python_type or "", "text")


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["cell"] = _cell_filter
    env.filters["input_value"] = _input_value_filter
    env.filters["input_type"] = _input_type_filter
    return env


def render_template(name: str, **context: Any) -> str:
    try:
        return get_environment().get_template(name).render(**context)
    except TemplateError as exc:
        logger.exception("Failed to render template %s", name)
        raise TemplateRenderError(f"Failed to render {name}: {exc}") from exc


def is_htmx_request(request: Request) -> bool:
    return request.headers.get("HX-Request") == "true"


def render_fragment(
    request: Request,
    template: str,
    *,
    title: str,
    status_code: int = 200,
    **context: Any,
) -> HTMLResponse:
    """Fragment alone for htmx; wrapped in the page layout otherwise."""

    fragment = render_template(template, request=request, title=title, **context)
    if is_htmx_request(request):
        return HTMLResponse(content=fragment, status_code=status_code)
    page = render_template("page.html", request=request, title=title, content=Markup(fragment))
    return HTMLResponse(content=page, status_code=status_code)


def htmx_trigger_headers(event: str, table: str, message: str, row_key: str | None = None) -> dict[str, str]:
    """HX-Trigger header announcing a mutation so list fragments can refresh."""

    payload = {event: {"table": table, "message": message, "row_key": row_key}}
    return {"HX-Trigger": json.dumps(payload, separators=(",", ":"))}
