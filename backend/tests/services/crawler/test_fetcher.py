"""HTTP fetcher tests"""

import httpx
import pytest

from helan_chat.services.crawler.fetcher import FetchError, HttpFetcher, RawDocument


def make_fetcher(handler) -> HttpFetcher:
    return HttpFetcher(
        user_agent="TestBot/1.0",
        accept_language="nl-BE",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestHttpFetcher:
    @pytest.mark.anyio
    async def test_success_returns_body_and_headers_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["user-agent"]
            seen["lang"] = request.headers["accept-language"]
            return httpx.Response(200, text="<title>ok</title>")

        fetcher = make_fetcher(handler)
        try:
            result = await fetcher.fetch("https://helan.be/")
        finally:
            await fetcher.close()

        assert isinstance(result, RawDocument)
        assert result.text == "<title>ok</title>"
        assert result.status_code == 200
        assert seen == {"ua": "TestBot/1.0", "lang": "nl-BE"}

    @pytest.mark.anyio
    async def test_redirect_followed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://helan.be/new"})
            return httpx.Response(200, text="new page")

        fetcher = make_fetcher(handler)
        try:
            result = await fetcher.fetch("https://helan.be/old")
        finally:
            await fetcher.close()

        assert isinstance(result, RawDocument)
        assert result.final_url == "https://helan.be/new"
        assert result.url == "https://helan.be/old"

    @pytest.mark.anyio
    async def test_non_2xx_is_fetch_error(self):
        fetcher = make_fetcher(lambda request: httpx.Response(500, text="boom"))
        try:
            result = await fetcher.fetch("https://helan.be/broken")
        finally:
            await fetcher.close()

        assert isinstance(result, FetchError)
        assert result.status_code == 500

    @pytest.mark.anyio
    async def test_transport_failure_is_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)
        try:
            result = await fetcher.fetch("https://helan.be/")
        finally:
            await fetcher.close()

        assert isinstance(result, FetchError)
        assert result.status_code is None
        assert "ConnectError" in result.reason

    @pytest.mark.anyio
    async def test_invalid_url_rejected_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        fetcher = make_fetcher(handler)
        result = await fetcher.fetch("/relative/path")
        assert isinstance(result, FetchError)
        assert calls == []

    @pytest.mark.anyio
    async def test_close_is_idempotent(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="x"))
        await fetcher.fetch("https://helan.be/")
        await fetcher.close()
        await fetcher.close()
        assert fetcher._client is None
