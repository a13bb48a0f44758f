"""Table gateway FastAPI entrypoint."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from crud_core import __version__
from crud_core.persistence import check_connection
from crud_core.utils.config import Settings, get_settings
from crud_core.utils.env import load_env

# ensure .env is loaded for uvicorn direct run
load_env()

from .deps import get_database_cached, require_token  # noqa: E402
from .errors import register_error_handlers  # noqa: E402
from .routers import admin, pages, tables  # noqa: E402
from .schemas import Envelope, HealthData, ok  # noqa: E402


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _load_allowed_origins(settings: Settings) -> tuple[list[str], bool, str | None]:
    """Read allowed origins for the browser UI; default to open."""

    origins = [item.strip() for item in settings.admin_portal_origins.split(",") if item.strip()]
    if not origins:
        return ["*"], False, ".*"
    return origins, True, None


def configure_logging(settings: Settings) -> None:
    """stdout by default, plus a rotating file when LOG_FILE_PATH is set."""

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        root_logger.addHandler(stream_handler)
    if settings.log_file_path and not any(
        isinstance(h, RotatingFileHandler) for h in root_logger.handlers
    ):
        handler = RotatingFileHandler(
            settings.log_file_path, maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(title="Dynamic Table Gateway", version=__version__)
    allow_origins, allow_credentials, allow_origin_regex = _load_allowed_origins(settings)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_origin_regex=allow_origin_regex,
    )
    register_error_handlers(application)

    application.include_router(tables.router, prefix="/v1", tags=["tables"])
    application.include_router(pages.router, prefix="/ui", tags=["ui"])
    application.include_router(
        admin.router,
        prefix="/v1/admin",
        tags=["admin"],
        dependencies=[Depends(require_token)],
    )

    @application.get("/", include_in_schema=False)
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/ui/")

    @application.get("/healthz", response_model=Envelope[HealthData])
    async def health_check() -> Envelope[HealthData]:
        """Liveness probe."""

        return ok(HealthData(status="ok"))

    @application.get("/readyz", response_model=Envelope[HealthData])
    def readiness_check(settings: Settings = Depends(get_settings)) -> Envelope[HealthData]:
        """Readiness probe: the configured database answers ``SELECT 1``."""

        database = get_database_cached()
        check_connection(database.engine)
        return ok(
            HealthData(
                status="ready",
                database_type=database.database_type.value,
                details={"read_only": settings.read_only},
            )
        )

    return application


app = create_app()
