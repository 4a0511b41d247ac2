"""Alembic environment for the rgb_* tables.

The database URL comes from settings (``RGBPAY_DATABASE__URL``) unless
overridden with ``alembic -x url=...``. Only tables prefixed ``rgb_`` are
managed so the schema can live inside a host application's database.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy.engine import Connection

from rgbpay.core.config import DatabaseSettings, get_settings
from rgbpay.infrastructure.database import models  # noqa: F401
from rgbpay.infrastructure.database.base import Base
from rgbpay.infrastructure.database.session import build_engine

TABLE_PREFIX = "rgb_"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url


def _include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    if type_ == "table":
        return bool(name and name.startswith(TABLE_PREFIX))
    return True


def _configure(**options: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=_include_object,
        compare_type=True,
        **options,
    )


def run_migrations_offline() -> None:
    url = _database_url().replace("sqlite+aiosqlite", "sqlite")
    _configure(
        url=url,
        literal_binds=True,
        render_as_batch=url.startswith("sqlite"),
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine(DatabaseSettings(url=_database_url()))
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
