import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend/ is importable as the top-level "forecast_engine" package even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Ensure the engine runs in test/sqlite mode *before* importing any package modules
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_REQUIRE_SSL", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import forecast_engine.db.session as engine_db_session  # noqa: E402

from forecast_engine.config import Settings  # noqa: E402
from forecast_engine.db.base import Base, load_models  # noqa: E402
from forecast_engine.services.cache import ResultCache  # noqa: E402
from forecast_engine.services.engine import ForecastEngine  # noqa: E402

from _fakes import (  # noqa: E402
    InMemoryAnomalies,
    InMemoryConfigs,
    InMemoryResults,
    InMemoryUsers,
    StaticSeries,
)

# --- Use a single in-memory SQLite DB for the whole test session ---
ENGINE = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
SessionTesting = sessionmaker(
    bind=ENGINE, autocommit=False, autoflush=False, expire_on_commit=False, future=True
)

# --- Ensure tests and package code share the SAME in-memory engine/sessionmaker ---
engine_db_session.ENGINE = ENGINE
engine_db_session.SessionLocal = SessionTesting

load_models()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def _db_engine():
    Base.metadata.create_all(bind=ENGINE)
    yield ENGINE


@pytest.fixture(scope="function")
def reset_db(_db_engine):
    Base.metadata.drop_all(bind=_db_engine)
    Base.metadata.create_all(bind=_db_engine)
    with _db_engine.begin() as conn:
        conn.execute(text("PRAGMA foreign_keys=ON"))
    yield
    Base.metadata.drop_all(bind=_db_engine)


@pytest.fixture(scope="function")
def session_factory(reset_db):
    yield SessionTesting


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    return Settings(ENV="test", DATABASE_URL="sqlite://", ZERO_FILL_GAPS=False, CACHE_ENABLED=True)


@pytest.fixture
def stores():
    """Fresh in-memory collaborators with user 1 registered."""
    users = InMemoryUsers()
    users.add(1, "owner@example.com")
    return {
        "users": users,
        "configs": InMemoryConfigs(),
        "series": StaticSeries(),
        "results": InMemoryResults(),
        "anomalies": InMemoryAnomalies(),
    }


@pytest.fixture
def make_engine(stores, settings):
    def _make(**overrides) -> ForecastEngine:
        s = settings.model_copy(update=overrides) if overrides else settings
        return ForecastEngine(settings=s, cache=ResultCache.from_settings(s), **stores)

    return _make
