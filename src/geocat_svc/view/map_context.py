"""The active map: renderables attached by enabled catalog items."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from .types import ViewerMode

if TYPE_CHECKING:
    from ..catalog.node import CatalogNode
    from ..providers.base import LoadContext, ProviderAdapter


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Renderable:
    """What the rendering engine needs to draw one catalog item."""
    node_id: str
    kind: str
    source: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


class MapContext:
    """
    Ordered set of renderables currently on the map.

    The rendering engine observes this; the catalog only attaches and
    detaches. Later attachments draw above earlier ones.
    """

    def __init__(self, viewer_mode: ViewerMode = ViewerMode.CESIUM_TERRAIN):
        self.viewer_mode = viewer_mode
        self._layers: dict[str, Renderable] = {}

    def attach(
        self,
        node: CatalogNode,
        adapter: ProviderAdapter | None = None,
        context: LoadContext | None = None,
    ) -> Renderable:
        if adapter is not None:
            renderable = adapter.create_renderable(node, self.viewer_mode, context)
        else:
            renderable = Renderable(node_id=node.id, kind=node.type, source=node.url)
        self._layers[node.id] = renderable
        logger.debug("Attached %s (%s) to the map", node.id, renderable.kind)
        return renderable

    def detach(self, node: CatalogNode) -> Renderable | None:
        renderable = self._layers.pop(node.id, None)
        if renderable is not None:
            logger.debug("Detached %s from the map", node.id)
        return renderable

    def renderable_for(self, node_id: str) -> Renderable | None:
        return self._layers.get(node_id)

    def attached_ids(self) -> list[str]:
        return list(self._layers)

    def __len__(self) -> int:
        return len(self._layers)
