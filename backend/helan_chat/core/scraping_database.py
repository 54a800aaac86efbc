"""Dedicated scraping database

A separate SQLite file mirroring every stored page (scraping_content) and
every extracted service (extracted_services). Kept apart from the primary
database so long scraping sessions never block chat queries.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from helan_chat.core.config import settings
from helan_chat.core.logging import get_logger

logger = get_logger("scraping.database")

scraping_engine = create_async_engine(
    settings.scraping_database_url,
    connect_args={"timeout": 30, "check_same_thread": False},
    echo=False,
)

scraping_session_factory = async_sessionmaker(
    scraping_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_scraping_db() -> AsyncGenerator[AsyncSession, None]:
    """Scraping database session (context manager), committed on exit"""
    async with scraping_session_factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            try:
                await session.rollback()
            except Exception as e:
                logger.warning("Rollback failed", error=str(e))
            raise


async def get_scraping_db_dep() -> AsyncGenerator[AsyncSession, None]:
    """Scraping database session (FastAPI dependency)"""
    async with get_scraping_db() as session:
        yield session


async def init_scraping_db() -> None:
    """Create the scraping tables"""
    from helan_chat.models.scraping import ScrapingBase

    settings.ensure_data_dir()
    async with scraping_engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))
        await conn.run_sync(ScrapingBase.metadata.create_all)
    logger.info("Scraping database initialized", path=settings.SCRAPING_DATABASE_PATH)
