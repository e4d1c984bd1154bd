"""
Database engine for the message store fallback path.

The relational database is only reached when the GraphQL endpoint fails,
so connections are not pooled. SQLite (aiosqlite) is accepted for local
runs and tests; foreign keys are switched on for it explicitly.
"""

import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from config import settings

# Declarative base shared by the conversation and message models
Base = declarative_base()


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Args:
        url: SQLAlchemy async URL (postgresql+asyncpg or sqlite+aiosqlite)

    Returns:
        AsyncEngine without connection pooling
    """
    async_engine = create_async_engine(url, echo=False, poolclass=NullPool)

    if is_sqlite(url):
        @event.listens_for(async_engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return async_engine


engine = build_engine(settings.database_url)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables():
    """Create the ai_conversations and ai_messages tables if missing."""
    # Models register themselves on Base when imported
    from models.conversation import AIConversationModel  # noqa
    from models.message import AIMessageModel  # noqa

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logging.info("Message store tables ready")


async def drop_tables():
    """Drop the message store tables (tests only)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def check_database_health() -> bool:
    """
    Probe the fallback database.

    Returns:
        bool: True if a trivial query succeeds
    """
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logging.error(f"Database health check failed: {e}")
        return False
