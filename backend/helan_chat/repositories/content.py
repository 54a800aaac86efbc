"""Primary store repositories"""

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from helan_chat.models.base import utcnow
from helan_chat.models.content import MirrorOutbox, ScrapedContent, Service
from helan_chat.repositories.base import BaseRepository


class ScrapedContentRepository(BaseRepository[ScrapedContent]):
    """Page records"""

    model = ScrapedContent

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_by_url(self, url: str) -> ScrapedContent | None:
        result = await self.session.execute(
            select(ScrapedContent).where(ScrapedContent.url == url)
        )
        return result.scalar_one_or_none()

    async def create_page(
        self,
        url: str,
        title: str,
        content: str,
        metadata: dict[str, Any] | None,
        scraped_at: datetime | None = None,
    ) -> ScrapedContent:
        page = ScrapedContent(
            url=url,
            title=title,
            content=content,
            extra_metadata=metadata,
            last_scraped=scraped_at or utcnow(),
            is_active=True,
        )
        return await self.create(page)

    async def update_page(
        self,
        page: ScrapedContent,
        title: str,
        content: str,
        metadata: dict[str, Any] | None,
        scraped_at: datetime | None = None,
    ) -> ScrapedContent:
        """Refresh a page in place; last_scraped moves to now"""
        return await self.update(
            page,
            title=title,
            content=content,
            extra_metadata=metadata,
            last_scraped=scraped_at or utcnow(),
        )

    async def list_active(self, limit: int | None = None) -> list[ScrapedContent]:
        """Active pages, most recently scraped first"""
        stmt = (
            select(ScrapedContent)
            .where(ScrapedContent.is_active.is_(True))
            .order_by(ScrapedContent.last_scraped.desc(), ScrapedContent.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search(self, query: str, limit: int = 10) -> list[ScrapedContent]:
        """Case-insensitive substring search over title and content of active pages

        ``%`` and ``_`` in the query match literally.
        """
        escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        result = await self.session.execute(
            select(ScrapedContent)
            .where(
                ScrapedContent.is_active.is_(True),
                or_(
                    func.lower(ScrapedContent.title).like(pattern, escape="\\"),
                    func.lower(ScrapedContent.content).like(pattern, escape="\\"),
                ),
            )
            .order_by(ScrapedContent.last_scraped.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def set_active(self, page: ScrapedContent, is_active: bool) -> ScrapedContent:
        return await self.update(page, is_active=is_active)

    async def count(self, *, active_only: bool = True) -> int:
        stmt = select(func.count(ScrapedContent.id))
        if active_only:
            stmt = stmt.where(ScrapedContent.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar() or 0


class ServiceRepository(BaseRepository[Service]):
    """Service records"""

    model = Service

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def list_active(self) -> list[Service]:
        result = await self.session.execute(
            select(Service).where(Service.is_active.is_(True)).order_by(Service.name)
        )
        return list(result.scalars().all())

    async def get_by_category(self, category: str) -> list[Service]:
        result = await self.session.execute(
            select(Service)
            .where(Service.is_active.is_(True), Service.category == category)
            .order_by(Service.name)
        )
        return list(result.scalars().all())

    async def get_by_ids(self, ids: list[int]) -> list[Service]:
        if not ids:
            return []
        result = await self.session.execute(select(Service).where(Service.id.in_(ids)))
        return list(result.scalars().all())

    async def list_names(self) -> list[str]:
        """Names of every known service, active or not"""
        result = await self.session.execute(select(Service.name))
        return [row[0] for row in result.all()]

    async def create_service(self, **values: Any) -> Service:
        return await self.create(Service(**values))

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count(Service.id)).where(Service.is_active.is_(True))
        )
        return result.scalar() or 0


class MirrorOutboxRepository(BaseRepository[MirrorOutbox]):
    """Pending dedicated-store writes"""

    model = MirrorOutbox

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def enqueue(self, kind: str, payload: dict[str, Any], error: str) -> MirrorOutbox:
        return await self.create(MirrorOutbox(kind=kind, payload=payload, last_error=error))

    async def list_pending(self, limit: int = 100) -> list[MirrorOutbox]:
        """Oldest first"""
        result = await self.session.execute(
            select(MirrorOutbox).order_by(MirrorOutbox.id).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_failed(self, entry: MirrorOutbox, error: str) -> MirrorOutbox:
        return await self.update(entry, attempts=entry.attempts + 1, last_error=error)

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(MirrorOutbox.id)))
        return result.scalar() or 0
