"""Engine and session factory for the RGB wallet store."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rgbpay.core.config import DatabaseSettings, get_settings
from rgbpay.infrastructure.database.base import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # invoices and assets cascade with their wallet only when SQLite enforces FKs
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database: DatabaseSettings, *, echo: bool = False) -> AsyncEngine:
    options: dict[str, Any] = {"echo": database.echo or echo}
    if database.pool_size is not None:
        options["pool_size"] = database.pool_size
    if database.max_overflow is not None:
        options["max_overflow"] = database.max_overflow

    engine = create_async_engine(database.url, **options)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def session_factory_for(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database, echo=settings.debug)
        _session_factory = session_factory_for(_engine)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the wallet, invoice and asset tables; alembic owns the schema in deployments."""
    from rgbpay.infrastructure.database import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
