"""Async SQLAlchemy engine, sessions and the per-request unit of work.

One request gets one session. Everything the engine writes during the
request (strategies, builds, published content) is committed together when
the handler returns and rolled back together when it raises. Transactions
slower than `db_slow_query_threshold_ms` are logged at WARNING.
"""

import re
import time
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from content_clusters.core.config import Settings, get_settings
from content_clusters.core.logging import db_logger, get_logger

logger = get_logger(__name__)

_ASYNC_SCHEMES = ("postgres://", "postgresql://")

# Table names as they appear in Postgres and SQLite error messages
_TABLE_IN_ERROR = re.compile(
    r'(?:relation "|table \'|INSERT INTO "?|UPDATE "?|DELETE FROM "?)([\w.]+)',
    re.IGNORECASE,
)


class Base(DeclarativeBase):
    """Declarative base for every engine and content table."""


def to_async_url(db_url: str) -> str:
    """Rewrite a plain Postgres URL to use the asyncpg driver.

    URLs that already name a driver (including sqlite+aiosqlite) are
    returned unchanged.
    """
    for scheme in _ASYNC_SCHEMES:
        if db_url.startswith(scheme):
            return "postgresql+asyncpg://" + db_url[len(scheme):]
    return db_url


def connect_args(settings: Settings, db_url: str) -> dict[str, Any]:
    """asyncpg connect arguments; empty for any other driver."""
    if not db_url.startswith("postgresql+asyncpg://"):
        return {}
    args: dict[str, Any] = {
        "timeout": settings.db_connect_timeout,
        "command_timeout": settings.db_command_timeout,
    }
    if settings.environment == "production":
        args["ssl"] = "require"
    return args


class DatabaseManager:
    """Owns the engine and session factory for the application's lifetime."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._session_factory

    def init_db(self) -> None:
        """Create the engine from settings. Called once from the app lifespan."""
        settings = get_settings()
        db_url = to_async_url(str(settings.database_url))
        options: dict[str, Any] = {
            "pool_pre_ping": True,
            "echo": settings.debug,
            "connect_args": connect_args(settings, db_url),
        }
        if db_url.startswith("postgresql+asyncpg://"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
            )

        try:
            self._engine = create_async_engine(db_url, **options)
        except (SQLAlchemyError, ValueError) as e:
            db_logger.connection_error(e, db_url)
            raise

        # Objects stay readable after commit; services return ORM rows to the API
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(
            "Database engine initialized",
            extra={"driver": self._engine.dialect.driver},
        )

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")

    async def check_connection(self) -> bool:
        """Run `SELECT 1`; False (and a logged error) if the database is unreachable."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            db_logger.connection_error(e, str(get_settings().database_url))
            return False
        return True


db_manager = DatabaseManager()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: the request's unit of work.

    Commits when the handler returns and rolls back when it raises, so a
    failed build or a rejected approval batch leaves nothing behind.
    """
    threshold_ms = get_settings().db_slow_query_threshold_ms

    async with db_manager.session_factory() as session:
        started = time.monotonic()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            db_logger.transaction_failure(
                e,
                table=failing_table(e),
                context="Request unit of work rolled back",
            )
            raise
        except Exception:
            await session.rollback()
            raise
        finally:
            duration_ms = (time.monotonic() - started) * 1000
            if duration_ms > threshold_ms:
                db_logger.slow_query(query="request_unit_of_work", duration_ms=duration_ms)


def failing_table(error: Exception) -> str | None:
    """Table named in a database error message, if any."""
    match = _TABLE_IN_ERROR.search(str(error))
    return match.group(1) if match else None
