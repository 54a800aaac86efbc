"""Crawl orchestrator tests"""

import asyncio
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import func, select, update

from helan_chat.core.errors import CrawlInProgressError
from helan_chat.models import ScrapedContent
from helan_chat.models.base import utcnow
from helan_chat.schemas.scraping import CrawlSeeds, CrawlState, PageRecordCreate
from helan_chat.services.crawler.crawler_service import CrawlerService
from helan_chat.services.crawler.fetcher import HttpFetcher, RawDocument
from helan_chat.services.crawler.service_extractor import ServiceExtractor


class Site:
    """In-memory website served through httpx.MockTransport"""

    def __init__(self, pages: dict[str, tuple[int, str]]):
        self.pages = pages
        self.requested: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        status, body = self.pages.get(url, (404, "not found"))
        return httpx.Response(status, text=body)


def make_crawler(content_store, site: Site, **overrides) -> CrawlerService:
    options = {
        "request_delay": 0,
        "subpage_delay": 0,
        "follow_links": True,
        "max_followed_links": 50,
        "staleness_hours": 24,
        "page_content_limit": 5000,
        "subpage_content_limit": 3000,
        "allowed_domains": ["helan.be", "helanzorgwinkel.be"],
    }
    options.update(overrides)
    return CrawlerService(
        store=content_store,
        fetcher=HttpFetcher(transport=httpx.MockTransport(site)),
        extractor=ServiceExtractor(first_party_domain="helan.be", shop_marker="zorgwinkel"),
        **options,
    )


async def page_count(session_factories) -> int:
    primary, _ = session_factories
    async with primary() as session:
        return (await session.execute(select(func.count(ScrapedContent.id)))).scalar()


class TestRunCrawl:
    @pytest.mark.anyio
    async def test_partial_failure_stores_only_successful_url(self, content_store, session_factories):
        site = Site(
            {
                "https://helan.be/bad": (500, "server error"),
                "https://helan.be/good": (200, "<title>Goed</title><p>Thuiszorg</p>"),
            }
        )
        crawler = make_crawler(content_store, site, follow_links=False)

        summary = await crawler.run_crawl(
            CrawlSeeds(page_urls=["https://helan.be/bad", "https://helan.be/good"])
        )
        await crawler.close()

        assert await page_count(session_factories) == 1
        assert (await content_store.get_page_by_url("https://helan.be/good")).title == "Goed"
        assert summary.pages_stored == 1
        assert summary.pages_failed == 1
        assert summary.failed_urls == ["https://helan.be/bad"]
        assert crawler.state == CrawlState.IDLE

    @pytest.mark.anyio
    async def test_fresh_links_not_refetched(self, content_store):
        site = Site(
            {
                "https://www.helan.be/": (
                    200,
                    '<title>Home</title><a href="/fresh">f</a><a href="/stale">s</a>'
                    '<a href="https://www.google.com/">ext</a>',
                ),
                "https://www.helan.be/fresh": (200, "<title>Fresh</title>"),
                "https://www.helan.be/stale": (200, "<title>Stale</title><p>" + "x" * 4000 + "</p>"),
            }
        )
        await content_store.upsert_page(PageRecordCreate(url="https://www.helan.be/fresh", content="cached"))
        crawler = make_crawler(content_store, site)

        summary = await crawler.run_crawl(CrawlSeeds(page_urls=["https://www.helan.be/"]))
        await crawler.close()

        assert "https://www.helan.be/fresh" not in site.requested
        assert "https://www.helan.be/stale" in site.requested
        assert "https://www.google.com/" not in site.requested
        assert summary.pages_skipped_fresh == 1
        assert summary.links_followed == 1

        home = await content_store.get_page_by_url("https://www.helan.be/")
        assert home.extra_metadata["method"] == "fetch"
        assert home.extra_metadata["links_found"] == 2

        stale = await content_store.get_page_by_url("https://www.helan.be/stale")
        assert stale.extra_metadata["method"] == "fetch-subpage"
        assert len(stale.content) == 3000

        fresh = await content_store.get_page_by_url("https://www.helan.be/fresh")
        assert fresh.content == "cached"

    @pytest.mark.anyio
    async def test_pages_older_than_window_are_refetched(self, content_store, session_factories):
        primary, _ = session_factories
        url = "https://www.helan.be/old"
        await content_store.upsert_page(PageRecordCreate(url=url, content="old"))
        async with primary() as session:
            await session.execute(
                update(ScrapedContent)
                .where(ScrapedContent.url == url)
                .values(last_scraped=utcnow() - timedelta(hours=25))
            )
            await session.commit()

        site = Site(
            {
                "https://www.helan.be/": (200, '<a href="/old">old</a>'),
                url: (200, "<p>new</p>"),
            }
        )
        crawler = make_crawler(content_store, site)
        await crawler.run_crawl(CrawlSeeds(page_urls=["https://www.helan.be/"]))
        await crawler.close()

        assert url in site.requested
        assert (await content_store.get_page_by_url(url)).content == "new"

    @pytest.mark.anyio
    async def test_sitemap_urls_always_refetched(self, content_store):
        await content_store.upsert_page(PageRecordCreate(url="https://a.test/x", content="cached"))
        site = Site(
            {
                "https://a.test/sitemap.xml": (
                    200,
                    "<urlset><url><loc>https://a.test/x</loc></url><url><loc>https://a.test/y</loc></url></urlset>",
                ),
                "https://a.test/x": (200, "<title>X</title>nieuw"),
                "https://a.test/y": (200, "<title>Y</title>"),
            }
        )
        crawler = make_crawler(content_store, site)

        summary = await crawler.run_crawl(CrawlSeeds(sitemap_urls=["https://a.test/sitemap.xml"]))
        await crawler.close()

        assert site.requested == [
            "https://a.test/sitemap.xml",
            "https://a.test/x",
            "https://a.test/y",
        ]
        assert summary.sitemaps_resolved == 1
        page = await content_store.get_page_by_url("https://a.test/x")
        assert page.content == "X nieuw"
        assert page.extra_metadata["method"] == "fetch-sitemap"

    @pytest.mark.anyio
    async def test_missing_sitemap_and_index_are_skipped(self, content_store, session_factories):
        site = Site(
            {
                "https://a.test/index.xml": (
                    200,
                    "<sitemapindex><sitemap><loc>https://a.test/nested.xml</loc></sitemap></sitemapindex>",
                ),
                "https://a.test/page": (200, "<title>P</title>"),
            }
        )
        crawler = make_crawler(content_store, site, follow_links=False)

        summary = await crawler.run_crawl(
            CrawlSeeds(
                sitemap_urls=["https://a.test/missing.xml", "https://a.test/index.xml"],
                page_urls=["https://a.test/page"],
            )
        )
        await crawler.close()

        assert "https://a.test/nested.xml" not in site.requested
        assert summary.sitemaps_resolved == 0
        assert summary.pages_stored == 1
        assert await page_count(session_factories) == 1

    @pytest.mark.anyio
    async def test_followed_link_cap(self, content_store):
        links = "".join(f'<a href="/p{i}">{i}</a>' for i in range(5))
        pages = {"https://helan.be/": (200, links)}
        pages.update({f"https://helan.be/p{i}": (200, f"page {i}") for i in range(5)})
        site = Site(pages)
        crawler = make_crawler(content_store, site, max_followed_links=2)

        summary = await crawler.run_crawl(CrawlSeeds(page_urls=["https://helan.be/"]))
        await crawler.close()

        assert summary.links_followed == 2
        assert site.requested == ["https://helan.be/", "https://helan.be/p0", "https://helan.be/p1"]

    @pytest.mark.anyio
    async def test_each_url_attempted_once_per_run(self, content_store):
        site = Site(
            {
                "https://helan.be/a": (200, '<a href="/b">b</a>'),
                "https://helan.be/b": (200, '<a href="/a">a</a>'),
            }
        )
        crawler = make_crawler(content_store, site, staleness_hours=0)

        await crawler.run_crawl(CrawlSeeds(page_urls=["https://helan.be/a", "https://helan.be/b"]))
        await crawler.close()

        assert sorted(site.requested) == ["https://helan.be/a", "https://helan.be/b"]

    @pytest.mark.anyio
    async def test_store_failure_does_not_abort_run(self, content_store):
        site = Site(
            {
                "https://helan.be/1": (200, "one"),
                "https://helan.be/2": (200, "two"),
            }
        )
        crawler = make_crawler(content_store, site, follow_links=False)
        original = content_store.upsert_page

        async def flaky_upsert(record):
            if record.url.endswith("/1"):
                raise RuntimeError("disk full")
            return await original(record)

        content_store.upsert_page = flaky_upsert
        summary = await crawler.run_crawl(CrawlSeeds(page_urls=["https://helan.be/1", "https://helan.be/2"]))
        await crawler.close()

        assert summary.pages_failed == 1
        assert summary.pages_stored == 1

    @pytest.mark.anyio
    async def test_overlapping_run_rejected(self, content_store):
        release = asyncio.Event()

        class SlowFetcher:
            async def fetch(self, url):
                await release.wait()
                return RawDocument(url=url, final_url=url, status_code=200, text="<title>t</title>")

            async def close(self):
                pass

        crawler = CrawlerService(
            store=content_store,
            fetcher=SlowFetcher(),
            extractor=ServiceExtractor(),
            request_delay=0,
            follow_links=False,
        )
        seeds = CrawlSeeds(page_urls=["https://helan.be/"])

        first = asyncio.create_task(crawler.run_crawl(seeds))
        await asyncio.sleep(0)
        assert crawler.is_running

        with pytest.raises(CrawlInProgressError):
            await crawler.run_crawl(seeds)

        release.set()
        summary = await first
        assert summary.pages_stored == 1
        assert not crawler.is_running

        # a new run is accepted once the first finished
        assert (await crawler.run_crawl(seeds)).pages_stored == 1


class TestAllowedDomain:
    def test_picks_configured_domain_for_host(self, content_store):
        crawler = make_crawler(content_store, Site({}))
        assert crawler.allowed_domain_for("https://www.helan.be/nl/") == "helan.be"
        assert crawler.allowed_domain_for("https://www.helanzorgwinkel.be/") == "helanzorgwinkel.be"
        assert crawler.allowed_domain_for("https://other.test/") == "other.test"


class TestProcessServices:
    @pytest.mark.anyio
    async def test_services_extracted_once(self, content_store):
        await content_store.upsert_page(
            PageRecordCreate(url="https://helan.be/a", content="Onze rollator vanaf 45 euro per maand")
        )
        await content_store.upsert_page(
            PageRecordCreate(url="https://www.helanzorgwinkel.be/b", content="Rollator en krukken")
        )
        crawler = make_crawler(content_store, Site({}))

        summary = await crawler.process_services()
        assert summary.pages_scanned == 2
        assert summary.candidates_found == 3
        assert summary.services_created == 2
        assert summary.duplicates_skipped == 1

        again = await crawler.process_services()
        assert again.services_created == 0
        assert again.duplicates_skipped == 3

        names = sorted(s.name for s in await content_store.list_services())
        assert names == ["Krukken", "Rollator"]
