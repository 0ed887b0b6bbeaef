"""Short-link backends: a share-data service and a plain URL shortener."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..errors import ResponseFormatError, ShareLinkError, TransportError
from ..transport import HttpTransport
from .document import ShareDocument


logger = logging.getLogger(__name__)


class ShortLinkBackend(ABC):
    """Exchanges share documents for short tokens and back."""

    @property
    @abstractmethod
    def is_usable(self) -> bool:
        ...

    @abstractmethod
    async def create_token(self, document: ShareDocument, long_url: str) -> str:
        ...

    @abstractmethod
    async def resolve_token(self, token: str) -> ShareDocument | str:
        """The stored document, or the long URL it was created from."""


class ShareDataService(ShortLinkBackend):
    """
    Stores the share document itself.

    ``POST <url>`` with the document returns ``{"id": token}``;
    ``GET <url>/<token>`` returns the document.
    """

    def __init__(self, url: str | None, transport: HttpTransport, enabled: bool = True):
        self.url = url.rstrip("/") if url else None
        self.transport = transport
        self.enabled = enabled

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.url)

    async def create_token(self, document: ShareDocument, long_url: str) -> str:
        try:
            response = await self.transport.post_json(self.url, document.to_dict())
        except (TransportError, ResponseFormatError) as e:
            raise ShareLinkError("Could not create short link", str(e), hint="Share the full link instead.") from e
        if not isinstance(response, dict) or not response.get("id"):
            raise ShareLinkError("Could not create short link", f"Unexpected response from {self.url}")
        return str(response["id"])

    async def resolve_token(self, token: str) -> ShareDocument:
        try:
            data = await self.transport.fetch_json(f"{self.url}/{token}")
        except (TransportError, ResponseFormatError) as e:
            raise ShareLinkError("Could not open short link", str(e)) from e
        return ShareDocument.from_dict(data)


class UrlShortener(ShortLinkBackend):
    """
    Shortens the full share link.

    ``POST <url>`` with ``{"longUrl": ...}`` returns ``{"id": token}``;
    ``GET <url>/<token>`` returns ``{"longUrl": ...}``.
    """

    def __init__(self, url: str | None, transport: HttpTransport, enabled: bool = True):
        self.url = url.rstrip("/") if url else None
        self.transport = transport
        self.enabled = enabled

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.url)

    async def create_token(self, document: ShareDocument, long_url: str) -> str:
        try:
            response = await self.transport.post_json(self.url, {"longUrl": long_url})
        except (TransportError, ResponseFormatError) as e:
            raise ShareLinkError("Could not shorten link", str(e), hint="Share the full link instead.") from e
        token = _field(response, "id")
        if not token:
            raise ShareLinkError("Could not shorten link", f"Unexpected response from {self.url}")
        return str(token)

    async def resolve_token(self, token: str) -> str:
        try:
            response = await self.transport.fetch_json(f"{self.url}/{token}")
        except (TransportError, ResponseFormatError) as e:
            raise ShareLinkError("Could not open short link", str(e)) from e
        long_url = _field(response, "longUrl")
        if not long_url:
            raise ShareLinkError("Could not open short link", f"No long URL stored for '{token}'")
        return str(long_url)


def _field(response: Any, name: str) -> Any:
    return response.get(name) if isinstance(response, dict) else None


def create_backend(config, transport: HttpTransport) -> ShortLinkBackend | None:
    """Build the configured short-link backend, or None when none is configured."""
    backend = (config.backend or "").lower()
    if not backend:
        return None
    if backend == "share-data-service":
        return ShareDataService(config.url, transport, enabled=config.enabled)
    if backend == "url-shortener":
        return UrlShortener(config.url, transport, enabled=config.enabled)
    logger.warning("Unknown short-link backend '%s'", config.backend)
    return None
