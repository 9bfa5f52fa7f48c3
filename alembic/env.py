"""Alembic env for the relational system of record (vendor_mdm/domain/*).

Document-store and queue tables belong to their backends and are created at
startup, so they are not part of ``target_metadata``.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context

from vendor_mdm.core.config import settings
from vendor_mdm.db.base import Base, create_engine_for

import vendor_mdm.domain  # noqa: F401  registers every table on Base.metadata

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # batch mode: SQLite cannot ALTER columns in place
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=True,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_engine_for(settings.database_url)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
            await connection.commit()
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
