"""Primary database

Holds the chat-facing tables (scraped_content, services) and the mirror
outbox. Crawl runs write here with short per-page transactions.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from helan_chat.core.config import settings
from helan_chat.core.logging import get_logger

logger = get_logger("database")

engine = create_async_engine(
    settings.database_url,
    connect_args={"timeout": 30, "check_same_thread": False},
    echo=False,
)

session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception as e:
        logger.warning("Rollback failed", error=str(e))


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session (FastAPI dependency)"""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            await _rollback_quietly(session)
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Database session (context manager), committed on exit"""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            await _rollback_quietly(session)
            raise


async def init_db() -> None:
    """Create the primary tables"""
    from helan_chat.models.base import Base

    settings.ensure_data_dir()
    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Primary database initialized", path=settings.DATABASE_PATH)
