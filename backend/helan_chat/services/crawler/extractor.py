"""HTML extraction

Pure functions over arbitrary third-party markup. None of them raise on
malformed input; they return best-effort or empty results instead.
"""

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from helan_chat.core.logging import get_logger

logger = get_logger("crawler.extractor")

_WHITESPACE_RE = re.compile(r"\s+")


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def extract_title(html: str) -> str:
    """Text of the first <title> element, trimmed; "" when there is none"""
    try:
        title = _soup(html).find("title")
    except Exception as e:
        logger.debug("Title extraction failed", error=str(e))
        return ""
    if title is None:
        return ""
    return _WHITESPACE_RE.sub(" ", title.get_text()).strip()


def extract_text(html: str) -> str:
    """Plain-text summary of a page

    <script> and <style> elements are dropped with their content, the
    remaining text is joined and every whitespace run collapsed to one space.
    Length capping is left to the caller.
    """
    try:
        soup = _soup(html)
        for tag in soup(["script", "style"]):
            tag.decompose()
        text = soup.get_text(" ")
    except Exception as e:
        logger.debug("Text extraction failed", error=str(e))
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def resolve_href(href: str, base_url: str) -> str | None:
    """Absolute http(s) URL for an href, or None when it cannot be resolved

    Only absolute, protocol-relative (//host/...) and root-relative (/...)
    hrefs are accepted.
    """
    href = (href or "").strip()
    if not href:
        return None
    if href.startswith("//") or href.startswith("/"):
        base = urlparse(base_url)
        if base.scheme not in ("http", "https") or not base.netloc:
            return None
        resolved = urljoin(base_url, href)
    else:
        resolved = href

    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return resolved


def extract_links(html: str, base_url: str, allowed_domain: str) -> list[str]:
    """Same-domain absolute links of a page

    Args:
        html: page markup
        base_url: URL the page was fetched from
        allowed_domain: substring the link host must contain (e.g. "helan.be")

    Returns:
        Links in document order, exact duplicates removed
    """
    try:
        anchors = _soup(html).find_all("a", href=True)
    except Exception as e:
        logger.debug("Link extraction failed", url=base_url, error=str(e))
        return []

    needle = allowed_domain.lower()
    seen: set[str] = set()
    links: list[str] = []
    for a in anchors:
        link = resolve_href(a["href"], base_url)
        if link is None:
            continue
        if needle not in (urlparse(link).hostname or ""):
            continue
        if link in seen:
            continue
        seen.add(link)
        links.append(link)
    return links
