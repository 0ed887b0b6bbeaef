"""Provider adapter base types and the type -> adapter registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..catalog.types import LoadResult
from ..view.map_context import Renderable
from ..view.types import ViewerMode

if TYPE_CHECKING:
    from ..catalog.node import CatalogNode
    from ..config import IonConfig
    from ..transport import HttpTransport, UrlProxy


@dataclass
class LoadContext:
    """Collaborators and session details handed to every adapter call."""
    transport: HttpTransport | None = None
    proxy: UrlProxy | None = None
    app_name: str = "GeoCat"
    support_email: str = "support@example.com"
    ion: IonConfig | None = None

    def proxy_url(self, node: CatalogNode, url: str, cache_duration: str | None = None) -> str:
        if self.proxy is None:
            return url
        return self.proxy.proxy_url(node, url, cache_duration)


class ProviderAdapter(ABC):
    """
    Populates catalog nodes of one or more types from an external service.

    Adapters are stateless strategies: everything they know about a node
    comes from the node itself and the ``LoadContext``. ``load`` returns a
    ``LoadResult`` and never modifies the tree.
    """

    # Catalog member types served by this adapter.
    types: tuple[str, ...] = ()
    is_group: bool = False
    # Properties whose change invalidates a previous load.
    influencing_fields: tuple[str, ...] = ("url",)
    # Extra properties included in shared catalog members.
    properties_for_sharing: tuple[str, ...] = ()

    @property
    def type_name(self) -> str:
        return self.types[0] if self.types else type(self).__name__

    @abstractmethod
    async def load(self, node: CatalogNode, context: LoadContext | None) -> LoadResult:
        """Fetch and validate whatever the node needs before use."""

    def create_renderable(
        self,
        node: CatalogNode,
        viewer_mode: ViewerMode,
        context: LoadContext | None = None,
    ) -> Renderable:
        """Describe how the rendering engine should draw an enabled item."""
        source = node.url
        if source and context is not None:
            source = context.proxy_url(node, source)
        return Renderable(node_id=node.id, kind=node.type, source=source, options=dict(node.options))


class ProviderRegistry:
    """Registry of provider adapters by catalog member type."""

    def __init__(self):
        self._adapters: dict[str, ProviderAdapter] = {}

    def register(self, adapter: ProviderAdapter) -> None:
        for type_name in adapter.types:
            self._adapters[type_name] = adapter

    def get(self, type_name: str) -> ProviderAdapter:
        adapter = self._adapters.get(type_name)
        if adapter is None:
            raise KeyError(f"No provider adapter for type '{type_name}'")
        return adapter

    def has(self, type_name: str) -> bool:
        return type_name in self._adapters

    def all_types(self) -> list[str]:
        return list(self._adapters)

    def is_group_type(self, type_name: str) -> bool:
        adapter = self._adapters.get(type_name)
        return adapter is not None and adapter.is_group
