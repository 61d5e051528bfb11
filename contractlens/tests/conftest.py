from __future__ import annotations

import os

# Keep the module-level engine off Postgres; store-backed tests build their own.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./contractlens-test.db")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from contractlens.core.config import get_settings
from contractlens.domain.models import Base
from contractlens.services.telemetry import reset_telemetry


@pytest.fixture(autouse=True)
def isolate_settings_and_telemetry():
    # Settings are cached per process; tests that patch env must see fresh values.
    get_settings.cache_clear()
    reset_telemetry()
    yield
    get_settings.cache_clear()
    reset_telemetry()


@pytest.fixture
async def session_factory(tmp_path):
    # File-backed SQLite so concurrent report fetches get separate connections.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reports.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()
