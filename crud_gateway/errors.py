"""Translate domain errors into failure envelopes or error fragments."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from crud_core.errors import CrudError, TemplateRenderError

from .rendering import render_fragment
from .schemas import Envelope, StatusData


logger = logging.getLogger(__name__)

ERROR_TITLES = {
    400: "Statement failed",
    403: "Read-only",
    404: "Not found",
    422: "Invalid input",
    503: "Database unavailable",
}


def _wants_html(request: Request) -> bool:
    return request.method == "GET" and request.url.path.startswith("/ui")


def failure_envelope(status_code: int, message: str) -> dict:
    envelope = Envelope(
        code=status_code,
        msg=message,
        data=StatusData(success=False, message=message),
    )
    return envelope.model_dump(mode="json")


async def crud_error_handler(request: Request, exc: CrudError) -> Response:
    status_code = exc.status_code
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)

    if _wants_html(request) and not isinstance(exc, TemplateRenderError):
        try:
            return render_fragment(
                request,
                "error.html",
                title=ERROR_TITLES.get(status_code, "Error"),
                status_code=status_code,
                message=exc.message,
            )
        except TemplateRenderError:
            logger.exception("Error fragment could not be rendered")
    if _wants_html(request):
        return HTMLResponse(content=f"<p>{status_code}: request failed</p>", status_code=status_code)
    return JSONResponse(status_code=status_code, content=failure_envelope(status_code, exc.message))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CrudError, crud_error_handler)


__all__ = ["register_error_handlers", "failure_envelope"]
