"""HTTP fetcher

One GET per call with the crawler's identifying headers. Non-2xx responses
and transport failures come back as a FetchError value; nothing is retried
here, a URL that fails is picked up again by the next crawl run.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from helan_chat.core.config import settings
from helan_chat.core.logging import get_logger

logger = get_logger("crawler.fetcher")

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass(frozen=True)
class RawDocument:
    """Body of a successful response"""

    url: str
    final_url: str
    status_code: int
    text: str


@dataclass(frozen=True)
class FetchError:
    """Failed fetch: HTTP status, or None for transport and URL errors"""

    url: str
    reason: str
    status_code: int | None = None


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class HttpFetcher:
    """Lazily created httpx.AsyncClient shared by a crawl run"""

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        accept_language: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent or settings.CRAWLER_USER_AGENT
        self.accept_language = accept_language or settings.CRAWLER_ACCEPT_LANGUAGE
        self.timeout = timeout if timeout is not None else settings.CRAWLER_TIMEOUT_SECONDS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": ACCEPT_HEADER,
                    "Accept-Language": self.accept_language,
                },
                follow_redirects=True,
                timeout=self.timeout,
                transport=self._transport,
            )
            logger.debug("HTTP client created", timeout=self.timeout)
        return self._client

    async def fetch(self, url: str) -> RawDocument | FetchError:
        """GET a URL

        Args:
            url: absolute http(s) URL

        Returns:
            RawDocument on 2xx, FetchError otherwise
        """
        if not is_absolute_http_url(url):
            return FetchError(url=url, reason="invalid absolute URL")

        try:
            response = await self._get_client().get(url)
        except httpx.TimeoutException as e:
            return FetchError(url=url, reason=f"timeout: {e.__class__.__name__}")
        except httpx.HTTPError as e:
            return FetchError(url=url, reason=f"{e.__class__.__name__}: {e}")

        if not response.is_success:
            return FetchError(
                url=url,
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return RawDocument(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            text=response.text,
        )

    async def close(self) -> None:
        """Release the HTTP client; the next fetch opens a new one"""
        if self._client is not None:
            try:
                await self._client.aclose()
            except Exception as e:
                logger.warning("Closing HTTP client failed", error=str(e))
            finally:
                self._client = None
            logger.info("HTTP client closed")
