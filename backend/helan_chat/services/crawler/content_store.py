"""Content store

Owns persistence of page and service records across the two databases:

- primary (app.db): scraped_content, services, mirror_outbox
- dedicated (scraping.db): scraping_content, extracted_services

The primary write is authoritative and its failure propagates to the caller.
The dedicated write follows in its own transaction; when it fails the payload
goes to mirror_outbox and is replayed later by replay_outbox().
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helan_chat.core.logging import get_logger
from helan_chat.models.base import utcnow
from helan_chat.models.content import OutboxKind, ScrapedContent, Service
from helan_chat.repositories.content import (
    MirrorOutboxRepository,
    ScrapedContentRepository,
    ServiceRepository,
)
from helan_chat.repositories.scraping import (
    ExtractedServiceRepository,
    ScrapingContentRepository,
)
from helan_chat.schemas.scraping import PageRecordCreate, ServiceCandidate

logger = get_logger("crawler.store")


@asynccontextmanager
async def _session_scope(factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            await session.rollback()
            raise


class ContentStore:
    """Dual-store persistence for the scraping pipeline

    Page upserts are serialized per URL and the service name check + insert is
    serialized globally, so the uniqueness rules hold with several writers in
    the same process.
    """

    def __init__(
        self,
        primary_factory: async_sessionmaker[AsyncSession] | None = None,
        scraping_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        if primary_factory is None:
            from helan_chat.core.database import session_factory as primary_factory
        if scraping_factory is None:
            from helan_chat.core.scraping_database import (
                scraping_session_factory as scraping_factory,
            )
        self._primary = primary_factory
        self._scraping = scraping_factory
        self._url_locks: dict[str, asyncio.Lock] = {}
        self._url_lock_users: dict[str, int] = {}
        self._service_lock = asyncio.Lock()

    @asynccontextmanager
    async def _url_lock(self, url: str) -> AsyncGenerator[None, None]:
        """Hold the lock of one URL; the lock is dropped when nobody needs it"""
        lock = self._url_locks.get(url)
        if lock is None:
            lock = self._url_locks[url] = asyncio.Lock()
        self._url_lock_users[url] = self._url_lock_users.get(url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._url_lock_users[url] - 1
            if remaining:
                self._url_lock_users[url] = remaining
            else:
                del self._url_lock_users[url]
                del self._url_locks[url]

    # ========== Pages ==========

    async def upsert_page(self, record: PageRecordCreate) -> ScrapedContent:
        """Insert the page, or update title/content/metadata of the existing one

        Returns:
            The primary page record
        """
        async with self._url_lock(record.url):
            scraped_at = utcnow()
            async with _session_scope(self._primary) as session:
                repo = ScrapedContentRepository(session)
                page = await repo.get_by_url(record.url)
                if page is None:
                    page = await repo.create_page(
                        record.url, record.title, record.content, record.metadata, scraped_at
                    )
                    created = True
                else:
                    page = await repo.update_page(
                        page, record.title, record.content, record.metadata, scraped_at
                    )
                    created = False

            logger.debug("Page stored", url=record.url, created=created, length=len(record.content))
            await self._mirror_page(record, scraped_at)
            return page

    async def get_page_by_url(self, url: str) -> ScrapedContent | None:
        async with _session_scope(self._primary) as session:
            return await ScrapedContentRepository(session).get_by_url(url)

    async def list_active_pages(self, limit: int | None = None) -> list[ScrapedContent]:
        """Active pages, most recently scraped first"""
        async with _session_scope(self._primary) as session:
            return await ScrapedContentRepository(session).list_active(limit)

    async def search_pages(self, query: str, limit: int = 10) -> list[ScrapedContent]:
        query = (query or "").strip()
        if not query:
            return []
        async with _session_scope(self._primary) as session:
            return await ScrapedContentRepository(session).search(query, limit)

    async def deactivate_page(self, url: str) -> ScrapedContent | None:
        """Soft-deactivate a page; None when the URL is unknown"""
        async with self._url_lock(url):
            async with _session_scope(self._primary) as session:
                repo = ScrapedContentRepository(session)
                page = await repo.get_by_url(url)
                if page is None:
                    return None
                page = await repo.set_active(page, False)
        logger.info("Page deactivated", url=url)
        return page

    async def _mirror_page(self, record: PageRecordCreate, scraped_at: datetime) -> None:
        try:
            async with _session_scope(self._scraping) as session:
                await ScrapingContentRepository(session).upsert(
                    record.url, record.title, record.content, record.metadata, scraped_at
                )
        except Exception as e:
            logger.error("Mirroring page to scraping store failed", url=record.url, error=str(e))
            payload = record.model_dump(mode="json")
            payload["scraped_at"] = scraped_at.isoformat()
            await self._enqueue(OutboxKind.PAGE, payload, str(e))

    # ========== Services ==========

    async def list_services(self, category: str | None = None) -> list[Service]:
        async with _session_scope(self._primary) as session:
            repo = ServiceRepository(session)
            if category:
                return await repo.get_by_category(category)
            return await repo.list_active()

    async def insert_service_if_new(self, candidate: ServiceCandidate) -> Service | None:
        """Persist a candidate unless a service with the same name exists

        Names are compared case-insensitively against every known service.

        Returns:
            The new service record, or None for a duplicate
        """
        async with self._service_lock:
            async with _session_scope(self._primary) as session:
                repo = ServiceRepository(session)
                known = {name.lower() for name in await repo.list_names()}
                if candidate.name.lower() in known:
                    logger.debug("Service already known", name=candidate.name)
                    return None
                service = await repo.create_service(
                    name=candidate.name,
                    description=candidate.description,
                    category=candidate.category,
                    price_from=candidate.price_from,
                    price_to=candidate.price_to,
                    price_unit=candidate.price_unit,
                    is_helan_service=candidate.is_helan_service,
                    source_url=candidate.source_url,
                    extra_metadata=candidate.metadata,
                )

            logger.info("Service created", name=service.name, category=service.category)
            await self._mirror_service(candidate, service.created_at)
            return service

    async def _mirror_service(self, candidate: ServiceCandidate, extracted_at: datetime) -> None:
        try:
            async with _session_scope(self._scraping) as session:
                await ExtractedServiceRepository(session).create_service(
                    **_extracted_service_values(candidate, extracted_at)
                )
        except Exception as e:
            logger.error("Mirroring service to scraping store failed", name=candidate.name, error=str(e))
            payload = candidate.model_dump(mode="json")
            payload["extracted_at"] = extracted_at.isoformat()
            await self._enqueue(OutboxKind.SERVICE, payload, str(e))

    # ========== Outbox ==========

    async def _enqueue(self, kind: OutboxKind, payload: dict[str, Any], error: str) -> None:
        try:
            async with _session_scope(self._primary) as session:
                await MirrorOutboxRepository(session).enqueue(kind.value, payload, error)
        except Exception:
            # both stores unavailable; the next crawl run rewrites the page anyway
            logger.exception("Recording mirror outbox entry failed", kind=kind.value)

    async def pending_mirror_writes(self) -> int:
        async with _session_scope(self._primary) as session:
            return await MirrorOutboxRepository(session).count()

    async def replay_outbox(self, limit: int = 100) -> int:
        """Retry pending dedicated-store writes, oldest first

        Returns:
            Number of entries written and removed from the outbox
        """
        async with _session_scope(self._primary) as session:
            entries = await MirrorOutboxRepository(session).list_pending(limit)
        if not entries:
            return 0

        replayed = 0
        for entry in entries:
            try:
                async with _session_scope(self._scraping) as session:
                    await self._apply_outbox_entry(session, entry.kind, entry.payload)
            except Exception as e:
                logger.warning(
                    "Mirror replay failed", entry_id=entry.id, kind=entry.kind, attempts=entry.attempts + 1, error=str(e)
                )
                async with _session_scope(self._primary) as session:
                    repo = MirrorOutboxRepository(session)
                    current = await repo.get_by_id(entry.id)
                    if current is not None:
                        await repo.mark_failed(current, str(e))
                continue

            async with _session_scope(self._primary) as session:
                repo = MirrorOutboxRepository(session)
                current = await repo.get_by_id(entry.id)
                if current is not None:
                    await repo.delete(current)
            replayed += 1

        logger.info("Mirror outbox replayed", replayed=replayed, pending=len(entries) - replayed)
        return replayed

    async def _apply_outbox_entry(self, session: AsyncSession, kind: str, payload: dict[str, Any]) -> None:
        if kind == OutboxKind.PAGE.value:
            await ScrapingContentRepository(session).upsert(
                payload["url"],
                payload.get("title", ""),
                payload.get("content", ""),
                payload.get("metadata"),
                datetime.fromisoformat(payload["scraped_at"]),
            )
        elif kind == OutboxKind.SERVICE.value:
            candidate = ServiceCandidate.model_validate(payload)
            await ExtractedServiceRepository(session).create_service(
                **_extracted_service_values(candidate, datetime.fromisoformat(payload["extracted_at"]))
            )
        else:
            raise ValueError(f"Unknown outbox entry kind: {kind}")


def _extracted_service_values(candidate: ServiceCandidate, extracted_at: datetime) -> dict[str, Any]:
    return {
        "name": candidate.name,
        "description": candidate.description,
        "category": candidate.category,
        "price_from": candidate.price_from,
        "price_to": candidate.price_to,
        "price_unit": candidate.price_unit,
        "source_url": candidate.source_url,
        "is_helan_service": candidate.is_helan_service,
        "extracted_at": extracted_at,
        "extra_metadata": candidate.metadata,
    }
