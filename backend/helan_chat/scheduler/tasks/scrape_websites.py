"""Website scraping task

Crawl run, then the service extraction pass, then mirror outbox replay.
The HTTP client is released at the end of every run. A run has no timeout;
it is bounded by the finite seed and link sets.
"""

import asyncio

from helan_chat.core.config import settings
from helan_chat.core.errors import CrawlInProgressError
from helan_chat.core.logging import get_logger
from helan_chat.scheduler.tasks.base import BaseTask, TaskResult, TaskSchedule
from helan_chat.services.crawler.crawler_service import (
    CrawlerService,
    get_crawler_service,
    seeds_from_settings,
)

logger = get_logger("scheduler.tasks.scrape_websites")


class ScrapeWebsitesTask(BaseTask):
    """Scrape the Helan websites and refresh the service catalogue"""

    name = "scrape_websites"
    description = "Crawl Helan websites and extract services"

    def __init__(
        self,
        crawler: CrawlerService | None = None,
        interval_hours: float | None = None,
        run_on_start: bool | None = None,
    ):
        self._crawler = crawler
        hours = interval_hours if interval_hours is not None else settings.CRAWLER_INTERVAL_HOURS
        self.schedule = TaskSchedule(
            interval_seconds=max(1, int(hours * 3600)),
            allow_concurrent=False,
            run_on_start=run_on_start if run_on_start is not None else settings.CRAWLER_RUN_ON_START,
            timeout=None,
        )
        self.enabled = settings.CRAWLER_ENABLED

    @property
    def crawler(self) -> CrawlerService:
        if self._crawler is None:
            self._crawler = get_crawler_service()
        return self._crawler

    async def run(self) -> TaskResult:
        if not settings.CRAWLER_ENABLED:
            return TaskResult.skipped("Crawler disabled")

        crawler = self.crawler
        try:
            summary = await crawler.run_crawl(seeds_from_settings())
        except CrawlInProgressError:
            # the active run owns the HTTP client, leave it open
            logger.info("Crawl already running, skipping this run")
            return TaskResult.skipped("Crawl already running")
        except (asyncio.CancelledError, Exception):
            await crawler.close()
            raise

        try:
            services = await crawler.process_services()
            replayed = await crawler.store.replay_outbox()
        finally:
            await crawler.close()

        return TaskResult.success(
            "Scrape completed",
            pages_stored=summary.pages_stored,
            pages_failed=summary.pages_failed,
            pages_skipped_fresh=summary.pages_skipped_fresh,
            services_created=services.services_created,
            mirror_writes_replayed=replayed,
        )
