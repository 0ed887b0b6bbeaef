"""HTTP transport and caching-proxy URL rewriting for provider requests."""

from __future__ import annotations

import json
import logging
from typing import Any, TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from .errors import ResponseFormatError, TransportError

if TYPE_CHECKING:
    from .catalog.node import CatalogNode
    from .config import ProxyConfig


logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Thin async wrapper over ``httpx.AsyncClient``.

    Network failures and HTTP error statuses raise ``TransportError``;
    a body that is not valid JSON raises ``ResponseFormatError`` so callers
    can tell an unreachable service from a misbehaving one. Timeouts are
    enforced here and nowhere else.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(url, f"timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            raise TransportError(url, f"HTTP {response.status_code}", status_code=response.status_code)
        return response

    @staticmethod
    def _parse_json(url: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseFormatError(url, f"invalid JSON: {e}") from e

    async def fetch_json(self, url: str) -> Any:
        logger.debug("GET %s", url)
        response = await self._request("GET", url)
        return self._parse_json(url, response)

    async def fetch_text(self, url: str) -> str:
        logger.debug("GET %s", url)
        response = await self._request("GET", url)
        return response.text

    async def post_json(self, url: str, body: Any) -> Any:
        logger.debug("POST %s", url)
        response = await self._request("POST", url, json=body)
        if not response.content:
            return None
        return self._parse_json(url, response)


class UrlProxy:
    """Routes requests for configured domains through a caching proxy."""

    def __init__(self, config: ProxyConfig):
        self.config = config

    def should_proxy(self, url: str) -> bool:
        if not self.config.enabled:
            return False
        host = (urlsplit(url).hostname or "").lower()
        if not host:
            return False
        for domain in self.config.proxyable_domains:
            domain = domain.lower()
            if host == domain or host.endswith("." + domain):
                return True
        return False

    def proxy_url(self, node: CatalogNode | None, url: str, cache_duration: str | None = None) -> str:
        """
        ``<base_url><duration>/<url>`` for proxyable URLs, else ``url`` unchanged.

        The node's own cache duration wins over the caller's hint.
        """
        if not self.should_proxy(url):
            return url
        duration = (
            (node.cache_duration if node is not None else None)
            or cache_duration
            or self.config.default_cache_duration
        )
        return f"{self.config.base_url}{duration}/{url}"
