"""
Async engine and session factory construction.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.db.models import Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str | None = None, *, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine.

    Args:
        database_url: SQLAlchemy async URL (uses config if not provided).
        echo: Log emitted SQL.
    """
    url = database_url or get_settings().database_url
    engine = create_async_engine(url, echo=echo, pool_pre_ping=not url.startswith("sqlite"))

    if url.startswith("sqlite"):
        db_path = make_url(url).database
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):  # noqa: ANN001
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory used by the store adapters; one session per unit of work."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
