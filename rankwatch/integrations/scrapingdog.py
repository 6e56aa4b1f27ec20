"""Scrapingdog SERP API client returning organic Google results for a query."""

import logging
from typing import Any, Optional

import httpx

from rankwatch.errors import ProviderError

logger = logging.getLogger(__name__)

SCRAPINGDOG_SERP_URL = "https://api.scrapingdog.com/serp"


class ScrapingdogClient:
    """Async client for the Scrapingdog SERP endpoint.

    One call to :meth:`fetch_results` issues exactly one HTTP request.  There
    is no retry here: the batch checker decides what to do with a failed
    keyword.

    Usage::

        client = ScrapingdogClient(api_key="...", locale="gb")
        results = await client.fetch_results("best running shoes")
        await client.close()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = SCRAPINGDOG_SERP_URL,
        locale: str = "gb",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._locale = locale
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create and return the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def fetch_results(self, query: str) -> list[dict[str, Any]]:
        """Return the ordered organic result list for ``query``.

        Returns an empty list when the provider answers with something other
        than JSON (an HTML login/error page usually means a bad key) or when
        the payload carries no organic results.

        Raises:
            ProviderError: on timeouts, network errors, or non-2xx responses.
        """
        params = {
            "api_key": self._api_key,
            "q": query,
            "gl": self._locale,
        }
        try:
            response = await self._get_client().get(self._base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderError(
                f"Provider returned HTTP {status} for {query!r}: {exc.response.text[:200]}",
                status_code=status,
            ) from exc
        except httpx.TimeoutException as exc:
            raise ProviderError(f"Provider timed out for {query!r}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Request failed for {query!r}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            logger.error(
                "Expected JSON from provider for %r but got %s. Check your API key.",
                query, response.headers.get("content-type", "unknown content"),
            )
            return []

        if not isinstance(payload, dict):
            logger.error("Unexpected provider payload type for %r: %s", query, type(payload).__name__)
            return []

        organic = payload.get("organic_results") or []
        if not isinstance(organic, list):
            logger.warning("organic_results for %r is not a list; ignoring", query)
            return []

        logger.info("SERP for %r: %d organic results", query, len(organic))
        return organic

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
