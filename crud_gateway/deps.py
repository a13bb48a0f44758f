"""FastAPI 依赖：数据库 Session、动态表仓库、写操作守卫。"""

from __future__ import annotations

import hmac
import logging
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from crud_core.errors import ReadOnlyMode
from crud_core.persistence import (
    DatabaseHandle,
    DynamicTableRepository,
    get_database,
    get_session_factory,
)
from crud_core.utils.config import Settings, get_settings


logger = logging.getLogger(__name__)

Database: Optional[DatabaseHandle] = None
SessionLocal = None


def get_database_cached() -> DatabaseHandle:
    """Process-wide engine; ConfigError propagates to the error handlers."""

    global Database  # pylint: disable=global-statement
    if Database is None:
        Database = get_database()
    return Database


def get_session_factory_cached():
    global SessionLocal  # pylint: disable=global-statement
    if SessionLocal is None:
        SessionLocal = get_session_factory(get_database_cached().engine)
    return SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """FastAPI 依赖，提供 SQLAlchemy Session，请求结束即归还连接。"""

    session_factory = get_session_factory_cached()
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def get_repository(
    session: Session = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> DynamicTableRepository:
    schema = settings.database_schema
    if schema is None and Database is not None:
        schema = Database.schema
    return DynamicTableRepository(
        session,
        schema=schema,
        allowed_tables=settings.allowed_tables,
        max_page_size=settings.max_page_size,
    )


def require_token(
    settings: Settings = Depends(get_settings),
    authorization: Optional[str] = Header(default=None),
) -> None:
    """Bearer token check; a no-op while CRUD_API_TOKEN is unset."""

    if not settings.api_token:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token, settings.api_token):
        logger.warning("Rejected request with missing or invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_writable(
    settings: Settings = Depends(get_settings),
    _: None = Depends(require_token),
) -> None:
    """Reject mutations in read-only mode or without the configured bearer token."""

    if settings.read_only:
        raise ReadOnlyMode()
