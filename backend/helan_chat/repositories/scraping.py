"""Dedicated scraping store repositories"""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from helan_chat.models.base import utcnow
from helan_chat.models.scraping import ExtractedService, ScrapingContent
from helan_chat.repositories.base import BaseRepository


class ScrapingContentRepository(BaseRepository[ScrapingContent]):
    """Mirrored page records"""

    model = ScrapingContent

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_by_url(self, url: str) -> ScrapingContent | None:
        result = await self.session.execute(
            select(ScrapingContent).where(ScrapingContent.url == url)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        url: str,
        title: str,
        content: str,
        metadata: dict[str, Any] | None,
        scraped_at: datetime | None = None,
    ) -> None:
        """INSERT ... ON CONFLICT(url) DO UPDATE, keeping the original scraped_at

        An existing row that is newer than ``scraped_at`` is left untouched, so a
        late replay of an older write cannot overwrite fresher content.
        """
        now = scraped_at or utcnow()
        stmt = sqlite_insert(ScrapingContent.__table__).values(
            {
                "url": url,
                "title": title,
                "content": content,
                "metadata": metadata,
                "scraped_at": now,
                "last_updated": now,
            }
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["url"],
            set_={
                "title": stmt.excluded["title"],
                "content": stmt.excluded["content"],
                "metadata": stmt.excluded["metadata"],
                "last_updated": stmt.excluded["last_updated"],
            },
            where=ScrapingContent.__table__.c.last_updated <= stmt.excluded["last_updated"],
        )
        await self.session.execute(stmt)

    async def list_all(self, limit: int = 100) -> list[ScrapingContent]:
        result = await self.session.execute(
            select(ScrapingContent).order_by(ScrapingContent.last_updated.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(ScrapingContent.id)))
        return result.scalar() or 0

    async def last_scraped_at(self) -> datetime | None:
        result = await self.session.execute(select(func.max(ScrapingContent.last_updated)))
        return result.scalar()


class ExtractedServiceRepository(BaseRepository[ExtractedService]):
    """Mirrored service records"""

    model = ExtractedService

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_service(self, **values: Any) -> ExtractedService:
        return await self.create(ExtractedService(**values))

    async def list_all(self, limit: int = 100) -> list[ExtractedService]:
        result = await self.session.execute(
            select(ExtractedService).order_by(ExtractedService.extracted_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(ExtractedService.id)))
        return result.scalar() or 0
