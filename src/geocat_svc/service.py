"""GeoCat service - catalog, view state and sharing behind one facade."""

from __future__ import annotations

import logging
from typing import Any

from .catalog.loader import CatalogLoader
from .catalog.node import CatalogGroup, CatalogItem, CatalogNode
from .catalog.registry import CatalogRegistry
from .config import Config
from .errors import LoadError, NotFoundError
from .providers.json_function import FunctionInvoker
from .share.codec import ShareLinkCodec
from .share.document import ShareDocument
from .share.feedback import Feedback, send_feedback
from .share.replay import ShareReplayer
from .share.serializer import ShareBuild, ShareDocumentBuilder
from .share.store import ShareStore
from .transport import HttpTransport
from .view.types import ViewState


logger = logging.getLogger(__name__)


class GeoCatService:
    """
    One user session: a catalog tree, its view state and the sharing
    machinery built around them.

    All mutation happens on the event loop that calls these methods; the
    tree is never locked.
    """

    def __init__(
        self,
        config: Config,
        registry: CatalogRegistry,
        loader: CatalogLoader,
        transport: HttpTransport,
        codec: ShareLinkCodec,
        view: ViewState | None = None,
        store: ShareStore | None = None,
    ):
        self.config = config
        self.registry = registry
        self.loader = loader
        self.transport = transport
        self.codec = codec
        self.view = view or ViewState.default()
        self.store = store or ShareStore(config.share.store_max_size)
        self.builder = ShareDocumentBuilder(init_sources=config.share.init_sources)
        self.replayer = ShareReplayer(registry, self.view, loader, transport)
        self.invoker = FunctionInvoker(registry, loader, self.replayer)

    async def close(self) -> None:
        await self.transport.close()

    # ---- Catalog ----

    def get_node(self, node_id: str) -> CatalogNode:
        node = self.registry.get(node_id)
        if node is None:
            raise NotFoundError(f"Catalog member '{node_id}'")
        return node

    def _get_item(self, node_id: str) -> CatalogItem:
        node = self.get_node(node_id)
        if not isinstance(node, CatalogItem):
            raise NotFoundError(f"Catalog item '{node_id}'")
        return node

    def _get_group(self, node_id: str) -> CatalogGroup:
        node = self.get_node(node_id)
        if not isinstance(node, CatalogGroup):
            raise NotFoundError(f"Catalog group '{node_id}'")
        return node

    async def load(self, node_id: str) -> CatalogNode:
        node = self.get_node(node_id)
        try:
            await node.load()
        except LoadError as e:
            logger.debug(f"Load of {node_id} failed: {e}")
        return node

    async def retry(self, node_id: str) -> CatalogNode:
        node = self.get_node(node_id)
        try:
            await node.retry()
        except LoadError as e:
            logger.debug(f"Retry of {node_id} failed: {e}")
        return node

    async def open(self, node_id: str) -> CatalogGroup:
        """Expand a group and, as the catalog browser does, load it."""
        group = self._get_group(node_id)
        group.open()
        return await self.load(node_id)

    async def close_group(self, node_id: str) -> CatalogGroup:
        group = self._get_group(node_id)
        group.close()
        return group

    async def enable(self, node_id: str) -> CatalogItem:
        item = self._get_item(node_id)
        await item.enable()
        return item

    async def disable(self, node_id: str) -> CatalogItem:
        item = self._get_item(node_id)
        await item.disable()
        return item

    async def add_members(self, members: list[dict[str, Any]], parent_id: str | None = None) -> list[CatalogNode]:
        """Add members supplied by the user at runtime."""
        parent = self._get_group(parent_id) if parent_id else self.registry.root
        added = self.loader.merge_members(parent, members, isUserSupplied=True)
        await self.loader.activate_pending()
        return added

    def remove(self, node_id: str) -> None:
        self.registry.remove(self.get_node(node_id))

    async def invoke_function(self, node_id: str, values: dict[str, Any] | None = None) -> list[CatalogNode]:
        node = self._get_item(node_id)
        await node.load()
        return await self.invoker.invoke(node, values)

    def describe_tree(self, group: CatalogGroup | None = None) -> list[dict[str, Any]]:
        group = group or self.registry.root
        return [describe_node(child, recursive=True) for child in group.items]

    # ---- Sharing ----

    def build_share_document(self) -> ShareBuild:
        return self.builder.build(self.registry, self.view)

    async def build_share_link(self, short: bool = False) -> str:
        """
        The share link for the current session.

        With ``short`` a token link is returned when a short-link backend is
        usable, otherwise the full link.
        """
        document = self.build_share_document().document
        if short:
            return await self.codec.shorten_if_possible(document, self.view.user_properties)
        return self.codec.encode(document, self.view.user_properties)

    async def open_share_link(self, uri: str) -> ShareDocument:
        decoded = self.codec.decode(uri)
        document = await self.codec.resolve(decoded)
        self.view.user_properties.update(decoded.user_properties)
        await self.open_document(document)
        return document

    async def open_document(self, document: ShareDocument) -> None:
        logger.info(f"Replaying share document with {len(document.init_sources)} init sources")
        await self.replayer.replay(document)

    async def send_feedback(self, feedback: Feedback) -> None:
        async def share_link() -> str:
            return await self.build_share_link(short=self.codec.can_shorten())

        await send_feedback(
            self.transport,
            self.config.feedback.url,
            self.config.support_email,
            feedback,
            share_link=share_link,
        )


def describe_node(node: CatalogNode, recursive: bool = False) -> dict[str, Any]:
    """JSON-friendly summary of a node for the HTTP and MCP surfaces."""
    d: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "type": node.type,
        "loadState": node.load_state.value,
        "isUserSupplied": node.is_user_supplied,
    }
    if node.url:
        d["url"] = node.url
    if node.load_error is not None:
        d["loadError"] = node.load_error.to_dict()
    if isinstance(node, CatalogGroup):
        d["isOpen"] = node.is_open
        if recursive:
            d["items"] = [describe_node(child, recursive=True) for child in node.items]
        else:
            d["itemCount"] = len(node.items)
    else:
        d["isEnabled"] = node.is_enabled
    return d
