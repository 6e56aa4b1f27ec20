"""Tests for the Scrapingdog SERP client using httpx.MockTransport."""

import httpx
import pytest

from rankwatch.errors import ProviderError
from rankwatch.integrations.scrapingdog import ScrapingdogClient


def _client(handler, **kwargs):
    return ScrapingdogClient(api_key="secret", transport=httpx.MockTransport(handler), **kwargs)


class TestFetchResults:

    @pytest.mark.asyncio
    async def test_returns_organic_results_in_order(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={
                "organic_results": [
                    {"title": "One", "link": "https://a.com"},
                    {"title": "Two", "link": "https://b.com"},
                ],
                "ads": [{"link": "https://ad.com"}],
            })

        client = _client(handler)
        try:
            results = await client.fetch_results("running shoes")
        finally:
            await client.close()

        assert [r["link"] for r in results] == ["https://a.com", "https://b.com"]
        assert seen["url"].host == "api.scrapingdog.com"
        assert seen["url"].path == "/serp"
        assert seen["url"].params["q"] == "running shoes"
        assert seen["url"].params["gl"] == "gb"
        assert seen["url"].params["api_key"] == "secret"

    @pytest.mark.asyncio
    async def test_locale_is_configurable(self):
        seen = {}

        def handler(request):
            seen["gl"] = request.url.params["gl"]
            return httpx.Response(200, json={"organic_results": []})

        client = _client(handler, locale="us")
        await client.fetch_results("q")
        await client.close()
        assert seen["gl"] == "us"

    @pytest.mark.asyncio
    async def test_html_body_yields_empty_list(self):
        def handler(request):
            return httpx.Response(200, text="<html>Invalid API key</html>", headers={"content-type": "text/html"})

        client = _client(handler)
        assert await client.fetch_results("q") == []
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"organic_results": None}, {"organic_results": "oops"}, [1, 2]])
    async def test_missing_or_malformed_organic_yields_empty_list(self, payload):
        client = _client(lambda request: httpx.Response(200, json=payload))
        assert await client.fetch_results("q") == []
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_raises_with_status(self):
        client = _client(lambda request: httpx.Response(500, text="server exploded"))
        with pytest.raises(ProviderError) as excinfo:
            await client.fetch_results("q")
        await client.close()
        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        with pytest.raises(ProviderError) as excinfo:
            await client.fetch_results("q")
        await client.close()
        assert excinfo.value.status_code is None

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(ProviderError):
            await client.fetch_results("q")
        await client.close()

    @pytest.mark.asyncio
    async def test_one_request_per_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client = _client(handler)
        with pytest.raises(ProviderError):
            await client.fetch_results("q")
        await client.close()
        assert len(calls) == 1
