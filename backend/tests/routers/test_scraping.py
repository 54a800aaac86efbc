"""Scraping router tests"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from helan_chat.core.errors import AppError
from helan_chat.schemas.scraping import CrawlState, DeactivatePageRequest, PageRecordCreate


class TestScrapingRouter:
    def test_routes_registered(self):
        from helan_chat.routers.scraping import router

        assert router.prefix == "/api"
        paths = {route.path for route in router.routes}
        assert {
            "/api/admin/scrape",
            "/api/scraping/start",
            "/api/admin/scraped-content",
            "/api/admin/scraped-content/deactivate",
            "/api/scraping/content",
            "/api/scraping/services",
            "/api/scraping/stats",
            "/api/scraping/scheduler",
        } <= paths


class TestTrigger:
    @pytest.mark.anyio
    async def test_acknowledges_running_crawl(self):
        from helan_chat.routers.scraping import admin_scrape

        crawler = MagicMock(is_running=True)
        with patch("helan_chat.routers.scraping.task_scheduler") as scheduler:
            response = await admin_scrape(crawler)

        assert response.status == "already_running"
        scheduler.trigger.assert_not_called()

    @pytest.mark.anyio
    async def test_acknowledges_task_past_its_crawl(self):
        from helan_chat.routers.scraping import admin_scrape

        # crawl finished, task still extracting services / replaying the outbox
        crawler = MagicMock(is_running=False)
        with patch("helan_chat.routers.scraping.task_scheduler") as scheduler:
            scheduler.runner.is_running.return_value = True
            scheduler.trigger = AsyncMock(return_value=True)
            response = await admin_scrape(crawler)

        assert response.status == "already_running"
        scheduler.runner.is_running.assert_called_once_with("scrape_websites")
        scheduler.trigger.assert_not_awaited()
        scheduler.run_in_background.assert_not_called()

    @pytest.mark.anyio
    async def test_triggers_registered_task(self):
        from helan_chat.routers.scraping import start_scraping

        crawler = MagicMock(is_running=False)
        with patch("helan_chat.routers.scraping.task_scheduler") as scheduler:
            scheduler.runner.is_running.return_value = False
            scheduler.trigger = AsyncMock(return_value=True)
            response = await start_scraping(crawler)

        assert response.status == "started"
        scheduler.trigger.assert_awaited_once_with("scrape_websites")
        scheduler.run_in_background.assert_not_called()

    @pytest.mark.anyio
    async def test_runs_task_directly_without_scheduler(self):
        from helan_chat.routers.scraping import admin_scrape
        from helan_chat.scheduler.tasks import ScrapeWebsitesTask

        crawler = MagicMock(is_running=False)
        with patch("helan_chat.routers.scraping.task_scheduler") as scheduler:
            scheduler.runner.is_running.return_value = False
            scheduler.trigger = AsyncMock(return_value=False)
            response = await admin_scrape(crawler)

        assert response.status == "started"
        (task,), _ = scheduler.run_in_background.call_args
        assert isinstance(task, ScrapeWebsitesTask)
        assert task.crawler is crawler

    @pytest.mark.anyio
    async def test_disabled_crawler_rejected(self):
        from helan_chat.routers.scraping import admin_scrape

        with patch("helan_chat.routers.scraping.settings") as settings:
            settings.CRAWLER_ENABLED = False
            with pytest.raises(AppError) as exc_info:
                await admin_scrape(MagicMock(is_running=False))

        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "feature_disabled"


class TestPrimaryStoreRoutes:
    @pytest.mark.anyio
    async def test_recent_and_deactivate(self, content_store):
        from helan_chat.routers.scraping import deactivate_scraped_content, recent_scraped_content

        await content_store.upsert_page(
            PageRecordCreate(url="https://helan.be/a", title="A", content="x", metadata={"method": "fetch"})
        )

        pages = await recent_scraped_content(content_store)
        assert [p.url for p in pages] == ["https://helan.be/a"]
        assert pages[0].metadata == {"method": "fetch"}

        page = await deactivate_scraped_content(DeactivatePageRequest(url="https://helan.be/a"), content_store)
        assert page.is_active is False
        assert await recent_scraped_content(content_store) == []

    @pytest.mark.anyio
    async def test_deactivate_unknown_page(self):
        from helan_chat.routers.scraping import deactivate_scraped_content

        store = MagicMock()
        store.deactivate_page = AsyncMock(return_value=None)
        with pytest.raises(AppError) as exc_info:
            await deactivate_scraped_content(DeactivatePageRequest(url="https://helan.be/x"), store)

        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "page_not_found"


class TestDedicatedStoreRoutes:
    @pytest.mark.anyio
    async def test_listings_and_stats(self, content_store, session_factories):
        from helan_chat.routers.scraping import list_scraping_content, scraping_stats

        _, scraping = session_factories
        await content_store.upsert_page(PageRecordCreate(url="https://helan.be/a", title="A", content="x"))
        crawler = MagicMock(store=content_store, state=CrawlState.IDLE)

        async with scraping() as session:
            rows = await list_scraping_content(session, limit=100)
            stats = await scraping_stats(session, crawler)

        assert [r.url for r in rows] == ["https://helan.be/a"]
        assert stats.total_content == 1
        assert stats.total_services == 0
        assert stats.last_scraped is not None
        assert stats.pending_mirror_writes == 0
        assert stats.crawl_state == CrawlState.IDLE
