"""Crawl orchestrator

Walks the sitemap and page seeds of a run strictly sequentially (one fetch
in flight, fixed delay between fetches) and hands every page to the content
store. Afterwards the service pass turns stored pages into service records.
"""

import asyncio
from datetime import datetime, timedelta
from urllib.parse import urlparse

from helan_chat.core.config import settings
from helan_chat.core.errors import CrawlInProgressError
from helan_chat.core.logging import get_logger
from helan_chat.models.base import utcnow
from helan_chat.schemas.scraping import (
    CrawlMethod,
    CrawlSeeds,
    CrawlState,
    CrawlSummary,
    PageRecordCreate,
    ServiceExtractionSummary,
)
from helan_chat.services.crawler.content_store import ContentStore
from helan_chat.services.crawler.extractor import extract_links, extract_text, extract_title
from helan_chat.services.crawler.fetcher import FetchError, HttpFetcher
from helan_chat.services.crawler.service_extractor import ServiceExtractor
from helan_chat.services.crawler.sitemap import fetch_sitemap

logger = get_logger("crawler.service")

NO_TITLE = "Geen titel"


def seeds_from_settings() -> CrawlSeeds:
    return CrawlSeeds(
        sitemap_urls=settings.crawler_sitemap_urls,
        page_urls=settings.crawler_page_urls,
    )


class CrawlerService:
    """Crawl orchestrator

    Only one run may be active at a time: run_crawl() flips the state to
    RUNNING before its first await and raises CrawlInProgressError for an
    overlapping call.
    """

    def __init__(
        self,
        store: ContentStore | None = None,
        fetcher: HttpFetcher | None = None,
        extractor: ServiceExtractor | None = None,
        *,
        request_delay: float | None = None,
        subpage_delay: float | None = None,
        follow_links: bool | None = None,
        max_followed_links: int | None = None,
        staleness_hours: float | None = None,
        page_content_limit: int | None = None,
        subpage_content_limit: int | None = None,
        allowed_domains: list[str] | None = None,
    ):
        self.store = store or ContentStore()
        self.fetcher = fetcher or HttpFetcher()
        self.extractor = extractor or ServiceExtractor()

        def pick(value, default):
            return default if value is None else value

        self.request_delay = pick(request_delay, settings.CRAWLER_REQUEST_DELAY)
        self.subpage_delay = pick(subpage_delay, settings.CRAWLER_SUBPAGE_DELAY)
        self.follow_links = pick(follow_links, settings.CRAWLER_FOLLOW_LINKS)
        self.max_followed_links = pick(max_followed_links, settings.CRAWLER_MAX_FOLLOWED_LINKS)
        self.staleness = timedelta(hours=pick(staleness_hours, settings.CRAWLER_STALENESS_HOURS))
        self.page_content_limit = pick(page_content_limit, settings.CRAWLER_PAGE_CONTENT_LIMIT)
        self.subpage_content_limit = pick(subpage_content_limit, settings.CRAWLER_SUBPAGE_CONTENT_LIMIT)
        self.allowed_domains = [d.lower() for d in pick(allowed_domains, settings.crawler_allowed_domains)]

        self._state = CrawlState.IDLE
        self._started_at: datetime | None = None
        self.last_summary: CrawlSummary | None = None

    @property
    def state(self) -> CrawlState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == CrawlState.RUNNING

    async def close(self) -> None:
        """Release the HTTP client held by the fetcher"""
        await self.fetcher.close()

    # ========== Crawl ==========

    async def run_crawl(self, seeds: CrawlSeeds | None = None) -> CrawlSummary:
        """Crawl every seed once

        Per-URL failures are logged and counted; they never abort the run.

        Args:
            seeds: sitemap and page seeds, defaults to the configured ones

        Returns:
            Run summary

        Raises:
            CrawlInProgressError: another run is active
        """
        if self._state == CrawlState.RUNNING:
            raise CrawlInProgressError(self._started_at)
        self._state = CrawlState.RUNNING
        self._started_at = utcnow()

        seeds = seeds or seeds_from_settings()
        summary = CrawlSummary(started_at=self._started_at)
        try:
            logger.info(
                "Crawl started",
                sitemaps=len(seeds.sitemap_urls),
                pages=len(seeds.page_urls),
            )
            visited: set[str] = set()
            await self._crawl_sitemaps(seeds.sitemap_urls, visited, summary)
            await self._crawl_pages(seeds.page_urls, visited, summary)
            summary.finished_at = utcnow()
            logger.info(
                "Crawl finished",
                stored=summary.pages_stored,
                failed=summary.pages_failed,
                skipped_fresh=summary.pages_skipped_fresh,
                links_followed=summary.links_followed,
            )
            self.last_summary = summary
            return summary
        finally:
            self._state = CrawlState.IDLE
            self._started_at = None

    async def _crawl_sitemaps(self, sitemap_urls: list[str], visited: set[str], summary: CrawlSummary) -> None:
        for sitemap_url in sitemap_urls:
            try:
                urls, is_index = await fetch_sitemap(self.fetcher, sitemap_url)
            except Exception as e:
                logger.error("Resolving sitemap failed", url=sitemap_url, error=str(e))
                continue

            if is_index:
                # nested sitemaps are not followed; list them as seeds instead
                logger.warning("Sitemap index skipped", url=sitemap_url, nested=len(urls))
                continue
            if not urls:
                continue

            summary.sitemaps_resolved += 1
            logger.info("Sitemap resolved", url=sitemap_url, urls=len(urls))

            # sitemap URLs are always re-fetched, no staleness check
            for url in urls:
                if url in visited:
                    continue
                await self._crawl_url(url, CrawlMethod.FETCH_SITEMAP, visited, summary)
                await asyncio.sleep(self.request_delay)

    async def _crawl_pages(self, page_urls: list[str], visited: set[str], summary: CrawlSummary) -> None:
        cap_logged = False
        for seed in page_urls:
            if seed in visited:
                continue
            links = await self._crawl_url(seed, CrawlMethod.FETCH, visited, summary)
            await asyncio.sleep(self.request_delay)

            if not links or not self.follow_links:
                continue

            for link in links:
                if summary.links_followed >= self.max_followed_links:
                    if not cap_logged:
                        logger.warning("Followed-link cap reached", cap=self.max_followed_links)
                        cap_logged = True
                    break
                if link in visited:
                    continue
                if await self._is_fresh(link):
                    visited.add(link)
                    summary.pages_skipped_fresh += 1
                    continue
                summary.links_followed += 1
                await self._crawl_url(link, CrawlMethod.FETCH_SUBPAGE, visited, summary)
                await asyncio.sleep(self.subpage_delay)

    async def _is_fresh(self, url: str) -> bool:
        """True when the stored page was scraped within the staleness window"""
        try:
            page = await self.store.get_page_by_url(url)
        except Exception as e:
            logger.warning("Staleness lookup failed, fetching anyway", url=url, error=str(e))
            return False
        return page is not None and page.last_scraped >= utcnow() - self.staleness

    def allowed_domain_for(self, url: str) -> str:
        """Configured domain the URL's host belongs to, else the host itself"""
        host = (urlparse(url).hostname or "").lower()
        for domain in sorted(self.allowed_domains, key=len, reverse=True):
            if domain in host:
                return domain
        return host

    async def _crawl_url(
        self,
        url: str,
        method: CrawlMethod,
        visited: set[str],
        summary: CrawlSummary,
    ) -> list[str] | None:
        """Fetch, extract and store one URL

        Returns:
            Same-domain links of a page seed ([] for other methods), None on failure
        """
        visited.add(url)
        try:
            result = await self.fetcher.fetch(url)
            if isinstance(result, FetchError):
                logger.warning("Fetch failed", url=url, status_code=result.status_code, reason=result.reason)
                summary.pages_failed += 1
                summary.failed_urls.append(url)
                return None

            limit = self.subpage_content_limit if method == CrawlMethod.FETCH_SUBPAGE else self.page_content_limit
            metadata: dict = {"scraped_at": utcnow().isoformat(), "method": method.value}
            links: list[str] = []
            if method == CrawlMethod.FETCH:
                links = extract_links(result.text, result.final_url, self.allowed_domain_for(url))
                metadata["links_found"] = len(links)

            await self.store.upsert_page(
                PageRecordCreate(
                    url=url,
                    title=extract_title(result.text) or NO_TITLE,
                    content=extract_text(result.text)[:limit],
                    metadata=metadata,
                )
            )
            summary.pages_stored += 1
            logger.info("Page crawled", url=url, method=method.value)
            return links
        except Exception as e:
            logger.error("Crawling URL failed", url=url, method=method.value, error=str(e))
            summary.pages_failed += 1
            summary.failed_urls.append(url)
            return None

    # ========== Services ==========

    async def process_services(self) -> ServiceExtractionSummary:
        """Run the service extractor over every active page

        Candidates whose name is already known are dropped by the store.
        """
        summary = ServiceExtractionSummary()
        pages = await self.store.list_active_pages()
        for page in pages:
            summary.pages_scanned += 1
            for candidate in self.extractor.extract_services(page.content, page.url):
                summary.candidates_found += 1
                try:
                    created = await self.store.insert_service_if_new(candidate)
                except Exception as e:
                    logger.error("Storing service failed", name=candidate.name, url=page.url, error=str(e))
                    summary.failures += 1
                    continue
                if created is None:
                    summary.duplicates_skipped += 1
                else:
                    summary.services_created += 1

        logger.info(
            "Service extraction finished",
            pages=summary.pages_scanned,
            candidates=summary.candidates_found,
            created=summary.services_created,
        )
        return summary


_crawler_service: CrawlerService | None = None


def get_crawler_service() -> CrawlerService:
    """Process-wide orchestrator shared by the scheduler and the admin API"""
    global _crawler_service
    if _crawler_service is None:
        _crawler_service = CrawlerService()
    return _crawler_service
