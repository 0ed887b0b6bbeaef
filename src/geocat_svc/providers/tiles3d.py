"""3D Tiles items, served by URL or as a Cesium ion asset."""

from __future__ import annotations

from ..catalog.types import LoadResult
from ..errors import GeoCatError, LoadFormatError
from ..view.map_context import Renderable
from ..view.types import ViewerMode
from .base import LoadContext, ProviderAdapter

DEFAULT_ION_SERVER = "https://api.cesium.com/"


class Cesium3DTilesAdapter(ProviderAdapter):
    """
    ``3d-tiles``: a tileset drawn only by the 3D viewers.

    With ``ionAssetId`` set the tileset is resolved through Cesium ion,
    using ``ionAccessToken`` or the application's ion token, and ``url``
    is ignored.
    """
    types = ("3d-tiles",)
    influencing_fields = ("url", "ionAssetId", "ionAccessToken", "ionServer")

    async def load(self, node, context: LoadContext | None) -> LoadResult:
        if not node.url and node.options.get("ionAssetId") is None:
            raise LoadFormatError(
                "No tileset",
                f"'{node.name}' needs either a url or an ionAssetId.",
                sender_id=node.id,
            )
        return LoadResult()

    def create_renderable(self, node, viewer_mode: ViewerMode, context: LoadContext | None = None) -> Renderable:
        if not viewer_mode.is_3d:
            raise GeoCatError(
                "Not supported in 2D",
                f'"{node.name}" cannot be shown in the 2D view. Switch to 3D and try again.',
                sender_id=node.id,
            )

        asset_id = node.options.get("ionAssetId")
        if asset_id is None:
            return super().create_renderable(node, viewer_mode, context)

        ion = context.ion if context is not None else None
        token = node.options.get("ionAccessToken") or (ion.access_token if ion is not None else None)
        server = node.options.get("ionServer") or (ion.server if ion is not None else None) or DEFAULT_ION_SERVER
        return Renderable(
            node_id=node.id,
            kind=node.type,
            source=None,
            options={"ionAssetId": asset_id, "ionAccessToken": token, "ionServer": server},
        )
