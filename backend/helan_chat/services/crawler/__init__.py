"""Website scraping pipeline

- CrawlerService: crawl orchestrator (sitemaps, page seeds, one level of links)
- ContentStore: dual-store persistence of pages and services
- ServiceExtractor: keyword/price heuristics over page text
"""

from helan_chat.services.crawler.content_store import ContentStore
from helan_chat.services.crawler.crawler_service import CrawlerService, get_crawler_service
from helan_chat.services.crawler.service_extractor import ServiceExtractor

__all__ = [
    "ContentStore",
    "CrawlerService",
    "ServiceExtractor",
    "get_crawler_service",
]
