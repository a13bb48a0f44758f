"""SQLAlchemy Engine / Session 工具函数。"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from crud_core.domain import DatabaseType
from crud_core.errors import DatabaseConnectionError
from crud_core.utils.config import DatabaseConfig, get_database_config

from .dialects import build_url


logger = logging.getLogger(__name__)


@dataclass
class DatabaseHandle:
    """Engine plus the backend tag and default schema it was built for."""

    database_type: DatabaseType
    engine: Engine
    schema: Optional[str] = None

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(config: Optional[DatabaseConfig] = None) -> DatabaseHandle:
    """根据配置创建 Engine；配置缺失时读取环境变量与配置文件。"""

    config = config or get_database_config()
    database_type, url = build_url(config)
    kwargs = {"echo": config.echo, "future": True}
    if database_type is not DatabaseType.SQLITE:
        kwargs["pool_pre_ping"] = True
    engine = create_engine(url, **kwargs)
    logger.info(
        "Database engine ready: type=%s url=%s",
        database_type.value,
        url.render_as_string(hide_password=True),
    )
    return DatabaseHandle(database_type=database_type, engine=engine, schema=config.schema_name)


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    return get_database(config).engine


def get_session_factory(engine: Optional[Engine] = None):
    """生成 sessionmaker，默认基于配置中的 Engine。"""

    engine = engine or get_engine()
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False, future=True)


@contextmanager
def session_scope(session_factory=None) -> Generator[Session, None, None]:
    """提供事务范围内的 Session，自动提交/回滚。"""

    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(engine: Engine) -> None:
    """Run ``SELECT 1``; any driver failure becomes ``DatabaseConnectionError``."""

    probe = "SELECT 1 FROM DUAL" if engine.dialect.name == "oracle" else "SELECT 1"
    try:
        with engine.connect() as conn:
            conn.execute(text(probe))
    except DBAPIError as exc:
        logger.warning("Database connectivity check failed: %s", exc.orig)
        raise DatabaseConnectionError(f"Cannot reach database: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        raise DatabaseConnectionError(f"Cannot reach database: {exc}") from exc
