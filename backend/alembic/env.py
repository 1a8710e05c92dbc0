"""Alembic environment for the cluster engine schema.

The database URL always comes from settings (DATABASE_URL), never from
alembic.ini, and online migrations run through the asyncpg driver with the
same connect arguments as the application.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from content_clusters.core.config import get_settings
from content_clusters.core.database import Base, connect_args, to_async_url
from content_clusters.core.logging import db_logger

# Registers every table on Base.metadata for autogenerate
import content_clusters.models  # noqa: E402,F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs: object) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting (`alembic upgrade --sql`)."""
    _configure(
        url=to_async_url(str(get_settings().database_url)),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)


async def run_migrations_online() -> None:
    settings = get_settings()
    db_url = to_async_url(str(settings.database_url))
    target = str(context.get_head_revision() or "head")

    db_logger.migration_start(version=target, description=f"Upgrading schema to {target}")
    engine = create_async_engine(
        db_url,
        poolclass=pool.NullPool,
        connect_args=connect_args(settings, db_url),
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    except Exception:
        db_logger.migration_end(version=target, success=False)
        raise
    finally:
        await engine.dispose()
    db_logger.migration_end(version=target, success=True)


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
