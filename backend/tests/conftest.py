"""Pytest configuration"""

import os
import tempfile

import pytest

# Settings are read at import time; point every path at a throwaway directory
_TMP_DIR = tempfile.mkdtemp(prefix="helan-chat-tests-")
os.environ.setdefault("DATABASE_PATH", os.path.join(_TMP_DIR, "app.db"))
os.environ.setdefault("SCRAPING_DATABASE_PATH", os.path.join(_TMP_DIR, "scraping.db"))
os.environ.setdefault("LOG_FILE", os.path.join(_TMP_DIR, "app.log"))
os.environ.setdefault("LOG_MODE", "simple")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("CRAWLER_RUN_ON_START", "false")
os.environ.setdefault("CRAWLER_REQUEST_DELAY", "0")
os.environ.setdefault("CRAWLER_SUBPAGE_DELAY", "0")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from helan_chat.models import Base, ScrapingBase  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factories(anyio_backend, tmp_path):
    """(primary, scraping) session factories over fresh SQLite files"""
    primary_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    scraping_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scraping.db'}")
    async with primary_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with scraping_engine.begin() as conn:
        await conn.run_sync(ScrapingBase.metadata.create_all)

    yield (
        async_sessionmaker(primary_engine, class_=AsyncSession, expire_on_commit=False),
        async_sessionmaker(scraping_engine, class_=AsyncSession, expire_on_commit=False),
    )

    await primary_engine.dispose()
    await scraping_engine.dispose()


@pytest.fixture
def content_store(session_factories):
    from helan_chat.services.crawler.content_store import ContentStore

    primary, scraping = session_factories
    return ContentStore(primary, scraping)
