import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crud_core.domain import DatabaseType  # noqa: E402
from crud_core.persistence import DatabaseHandle, DynamicTableRepository  # noqa: E402
from crud_core.utils.config import Settings, get_settings  # noqa: E402


metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(64), nullable=False),
    Column("price", Numeric(10, 2)),
    Column("in_stock", Boolean),
    Column("released_on", Date),
    Column("status", String(16), server_default=text("'draft'")),
)

order_items = Table(
    "order_items",
    metadata,
    Column("order_id", Integer, primary_key=True, autoincrement=False),
    Column("line_no", Integer, primary_key=True, autoincrement=False),
    Column("sku", String(32), nullable=False),
    Column("qty", Integer, nullable=False),
)

audit_log = Table(
    "audit_log",
    metadata,
    Column("level", String(16)),
    Column("message", Text),
)


@pytest.fixture
def temp_db_file(tmp_path):
    return tmp_path / "gateway.db"


@pytest.fixture
def engine(temp_db_file):
    engine = create_engine(f"sqlite+pysqlite:///{temp_db_file}", future=True)
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            products.insert(),
            [
                {
                    "id": index,
                    "name": f"Widget {index:02d}" if index % 5 else f"Gadget {index:02d}",
                    "price": Decimal("1.50") * index,
                    "in_stock": index % 2 == 0,
                    "released_on": date(2024, 1, index % 28 + 1),
                }
                for index in range(1, 26)
            ],
        )
        conn.execute(
            order_items.insert(),
            [
                {"order_id": 1, "line_no": 1, "sku": "W-01", "qty": 2},
                {"order_id": 1, "line_no": 2, "sku": "G-05", "qty": 1},
            ],
        )
        conn.execute(audit_log.insert(), [{"level": "info", "message": "seeded"}])
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False, future=True)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db_session):
    return DynamicTableRepository(db_session)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    for name in (
        "DATABASE_URL",
        "DATABASE_TYPE",
        "DATABASE_SCHEMA",
        "CRUD_CONFIG_FILE",
        "CRUD_READ_ONLY",
        "CRUD_TABLE_ALLOWLIST",
        "CRUD_API_TOKEN",
        "LOG_FILE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings_override():
    """Install gateway settings for one test; keys are the env variable names."""

    from crud_gateway.main import app

    def _install(**values):
        settings = Settings(_env_file=None, **values)
        app.dependency_overrides[get_settings] = lambda: settings
        return settings

    yield _install
    app.dependency_overrides.pop(get_settings, None)


@pytest.fixture
def client(engine, session_factory, monkeypatch, settings_override):
    from fastapi.testclient import TestClient

    from crud_gateway.main import app

    monkeypatch.setattr(
        "crud_gateway.deps.Database",
        DatabaseHandle(database_type=DatabaseType.SQLITE, engine=engine),
    )
    monkeypatch.setattr("crud_gateway.deps.SessionLocal", None)
    monkeypatch.setattr("crud_gateway.deps.get_session_factory_cached", lambda: session_factory)
    settings_override()
    return TestClient(app)
