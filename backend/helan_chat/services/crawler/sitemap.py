"""Sitemap resolution"""

import html
import re

from helan_chat.core.logging import get_logger
from helan_chat.services.crawler.fetcher import FetchError, HttpFetcher

logger = get_logger("crawler.sitemap")

_LOC_RE = re.compile(r"<loc>(.*?)</loc>", re.IGNORECASE | re.DOTALL)
_SITEMAP_INDEX_RE = re.compile(r"<sitemapindex[\s>]", re.IGNORECASE)


def resolve_sitemap(xml_text: str) -> list[str]:
    """Every <loc> value of a sitemap, in document order

    Matching is regex based, so malformed XML still yields whatever <loc>
    pairs it contains. Nested sitemaps of an index are returned as-is, not
    followed.
    """
    urls: list[str] = []
    for match in _LOC_RE.finditer(xml_text or ""):
        value = html.unescape(match.group(1).strip())
        if value.startswith("<![CDATA[") and value.endswith("]]>"):
            value = value[9:-3].strip()
        if value:
            urls.append(value)
    return urls


def is_sitemap_index(xml_text: str) -> bool:
    """True for a <sitemapindex> document (a sitemap of sitemaps)"""
    return bool(_SITEMAP_INDEX_RE.search(xml_text or ""))


async def fetch_sitemap(fetcher: HttpFetcher, sitemap_url: str) -> tuple[list[str], bool]:
    """Fetch and resolve a sitemap

    Returns:
        (urls, is_index). A missing or failing sitemap gives ([], False).
    """
    result = await fetcher.fetch(sitemap_url)
    if isinstance(result, FetchError):
        logger.warning(
            "Sitemap unavailable",
            url=sitemap_url,
            status_code=result.status_code,
            reason=result.reason,
        )
        return [], False
    return resolve_sitemap(result.text), is_sitemap_index(result.text)
