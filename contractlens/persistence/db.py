from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from contractlens.core.config import Settings, get_settings


_POOL_COUNTERS = {
    "size": "size",
    "checked_out": "checkedout",
    "checked_in": "checkedin",
    "overflow": "overflow",
}


def engine_options(settings: Settings) -> dict[str, Any]:
    # A single report fans out to one connection per source, so the pool is bounded explicitly.
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=max(1, int(settings.api_db_pool_size)),
        max_overflow=max(0, int(settings.api_db_max_overflow)),
        pool_timeout=30,
        pool_recycle=1800,
    )
    if settings.api_db_statement_timeout_ms > 0:
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(int(settings.api_db_statement_timeout_ms))}
        }
    return options


settings = get_settings()
engine = create_async_engine(settings.database_url, **engine_options(settings))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


def pool_stats() -> dict[str, int | None]:
    # Pool classes differ by dialect; counters a pool lacks are reported as None.
    pool = engine.sync_engine.pool
    stats: dict[str, int | None] = {}
    for key, attr in _POOL_COUNTERS.items():
        counter = getattr(pool, attr, None)
        stats[key] = int(counter()) if callable(counter) else None
    return stats
