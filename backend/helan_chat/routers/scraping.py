"""Scraping API routes

Administrative trigger, crawl statistics and listings of both stores.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from helan_chat.core.config import settings
from helan_chat.core.errors import raise_not_found, raise_service_unavailable
from helan_chat.core.logging import get_logger
from helan_chat.core.scraping_database import get_scraping_db_dep
from helan_chat.repositories.scraping import (
    ExtractedServiceRepository,
    ScrapingContentRepository,
)
from helan_chat.scheduler import task_scheduler
from helan_chat.scheduler.tasks import ScrapeWebsitesTask
from helan_chat.schemas.scraping import (
    DeactivatePageRequest,
    ExtractedServiceResponse,
    PageResponse,
    ScrapingContentResponse,
    ScrapingStatsResponse,
    TriggerResponse,
)
from helan_chat.services.crawler import ContentStore, CrawlerService, get_crawler_service

logger = get_logger("router.scraping")
router = APIRouter(prefix="/api", tags=["scraping"])


def check_crawler_enabled():
    if not settings.CRAWLER_ENABLED:
        raise_service_unavailable("crawler", "Crawler is disabled, set CRAWLER_ENABLED=true in .env")


def get_crawler() -> CrawlerService:
    return get_crawler_service()


def get_content_store() -> ContentStore:
    return get_crawler_service().store


# ==================== Trigger ====================


async def _trigger_scrape(crawler: CrawlerService) -> TriggerResponse:
    check_crawler_enabled()
    # the task keeps running after the crawl itself (service pass, outbox replay)
    if crawler.is_running or task_scheduler.runner.is_running(ScrapeWebsitesTask.name):
        return TriggerResponse(message="Scraping already in progress", status="already_running")

    triggered = await task_scheduler.trigger(ScrapeWebsitesTask.name)
    if not triggered:
        # scheduler not set up (e.g. tests, scripts): run the task directly
        task_scheduler.run_in_background(ScrapeWebsitesTask(crawler=crawler))
    logger.info("Scraping triggered")
    return TriggerResponse(message="Scraping started", status="started")


@router.post("/admin/scrape", response_model=TriggerResponse)
async def admin_scrape(crawler: Annotated[CrawlerService, Depends(get_crawler)]):
    """Start a crawl in the background and return at once"""
    return await _trigger_scrape(crawler)


@router.post("/scraping/start", response_model=TriggerResponse)
async def start_scraping(crawler: Annotated[CrawlerService, Depends(get_crawler)]):
    """Alias of /admin/scrape"""
    return await _trigger_scrape(crawler)


# ==================== Primary store ====================


@router.get("/admin/scraped-content", response_model=list[PageResponse])
async def recent_scraped_content(store: Annotated[ContentStore, Depends(get_content_store)]):
    """20 most recently scraped active pages"""
    check_crawler_enabled()
    pages = await store.list_active_pages(limit=20)
    return [PageResponse.model_validate(p) for p in pages]


@router.post("/admin/scraped-content/deactivate", response_model=PageResponse)
async def deactivate_scraped_content(
    data: DeactivatePageRequest,
    store: Annotated[ContentStore, Depends(get_content_store)],
):
    check_crawler_enabled()
    page = await store.deactivate_page(data.url)
    if page is None:
        raise_not_found("page", data.url)
    return PageResponse.model_validate(page)


# ==================== Dedicated store ====================


@router.get("/scraping/content", response_model=list[ScrapingContentResponse])
async def list_scraping_content(
    session: Annotated[AsyncSession, Depends(get_scraping_db_dep)],
    limit: int = Query(100, ge=1, le=500),
):
    check_crawler_enabled()
    rows = await ScrapingContentRepository(session).list_all(limit)
    return [ScrapingContentResponse.model_validate(r) for r in rows]


@router.get("/scraping/services", response_model=list[ExtractedServiceResponse])
async def list_extracted_services(
    session: Annotated[AsyncSession, Depends(get_scraping_db_dep)],
    limit: int = Query(100, ge=1, le=500),
):
    check_crawler_enabled()
    rows = await ExtractedServiceRepository(session).list_all(limit)
    return [ExtractedServiceResponse.model_validate(r) for r in rows]


@router.get("/scraping/stats", response_model=ScrapingStatsResponse)
async def scraping_stats(
    session: Annotated[AsyncSession, Depends(get_scraping_db_dep)],
    crawler: Annotated[CrawlerService, Depends(get_crawler)],
):
    """Counts of the dedicated store, pending mirror writes and crawl state"""
    check_crawler_enabled()
    content_repo = ScrapingContentRepository(session)
    return ScrapingStatsResponse(
        total_content=await content_repo.count(),
        total_services=await ExtractedServiceRepository(session).count(),
        last_scraped=await content_repo.last_scraped_at(),
        pending_mirror_writes=await crawler.store.pending_mirror_writes(),
        crawl_state=crawler.state,
    )


@router.get("/scraping/scheduler")
async def scheduler_status():
    check_crawler_enabled()
    return task_scheduler.get_status()
