"""Share links: share documents in and out of URLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import DEFAULT_USER_PROPERTY_WHITELIST
from ..errors import ShareFormatError, ShortenUnavailableError
from .document import ShareDocument
from .shortener import ShortLinkBackend


logger = logging.getLogger(__name__)


@dataclass
class DecodedShareLink:
    """What a share link carries: an embedded document or a short token."""
    document: ShareDocument | None = None
    token: str | None = None
    user_properties: dict[str, str] = field(default_factory=dict)


class ShareLinkCodec:
    """
    Encodes share documents as URLs and decodes them again.

    Full links embed the whole document, ``<app-url>#start=<json>``, and
    open without any server. Short links carry only a token,
    ``<app-url>#share=<token>``, and need the short-link backend when they
    are opened. Whitelisted user properties travel as extra fragment
    parameters on both.
    """

    def __init__(
        self,
        app_url: str,
        whitelist: tuple[str, ...] | list[str] = DEFAULT_USER_PROPERTY_WHITELIST,
        backend: ShortLinkBackend | None = None,
    ):
        parts = urlsplit(app_url)
        self.base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        self.whitelist = tuple(whitelist)
        self.backend = backend

    def _link(self, params: list[tuple[str, str]], user_properties: dict[str, Any] | None) -> str:
        for key in self.whitelist:
            value = (user_properties or {}).get(key)
            if value is not None:
                params.append((key, _format_property(value)))
        return f"{self.base_url}#{urlencode(params)}"

    def encode(self, document: ShareDocument, user_properties: dict[str, Any] | None = None) -> str:
        return self._link([("start", document.to_json())], user_properties)

    def short_link(self, token: str, user_properties: dict[str, Any] | None = None) -> str:
        return self._link([("share", token)], user_properties)

    def decode(self, uri: str) -> DecodedShareLink:
        """
        Extract the document or token from a share link.

        Accepts fragment links as produced by ``encode`` and older links
        that carry ``start`` in the query string.
        """
        parts = urlsplit(uri)
        params = dict(parse_qsl(parts.fragment, keep_blank_values=True))
        if "start" not in params and "share" not in params:
            params = {**dict(parse_qsl(parts.query, keep_blank_values=True)), **params}

        user_properties = {key: params[key] for key in self.whitelist if key in params}

        if "start" in params:
            return DecodedShareLink(document=ShareDocument.from_json(params["start"]), user_properties=user_properties)
        if params.get("share"):
            return DecodedShareLink(token=params["share"], user_properties=user_properties)
        raise ShareFormatError("The link carries neither a share document nor a share token.")

    def can_shorten(self) -> bool:
        return self.backend is not None and self.backend.is_usable

    async def shorten_if_possible(self, document: ShareDocument, user_properties: dict[str, Any] | None = None) -> str:
        """
        A short link when a usable backend is configured, otherwise the full link.

        Only the capability check picks the path: once a short link has
        been chosen, a backend failure raises ``ShareLinkError``.
        """
        if not self.can_shorten():
            return self.encode(document, user_properties)
        return await self._shorten(document, user_properties)

    async def build_short_link(self, document: ShareDocument, user_properties: dict[str, Any] | None = None) -> str:
        if not self.can_shorten():
            raise ShortenUnavailableError()
        return await self._shorten(document, user_properties)

    async def _shorten(self, document: ShareDocument, user_properties: dict[str, Any] | None) -> str:
        long_url = self.encode(document, user_properties)
        token = await self.backend.create_token(document, long_url)
        logger.info("Created short link token %s", token)
        return self.short_link(token, user_properties)

    async def resolve(self, decoded: DecodedShareLink) -> ShareDocument:
        """The document for a decoded link, exchanging its token if needed."""
        if decoded.document is not None:
            return decoded.document
        if self.backend is None:
            raise ShortenUnavailableError()

        resolved = await self.backend.resolve_token(decoded.token)
        if isinstance(resolved, ShareDocument):
            return resolved
        inner = self.decode(resolved)
        if inner.document is None:
            raise ShareFormatError(f"Short link '{decoded.token}' does not lead to a share document.")
        return inner.document


def _format_property(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)
