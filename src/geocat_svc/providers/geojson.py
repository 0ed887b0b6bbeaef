"""GeoJSON items - fetched and checked before they are enabled."""

from __future__ import annotations

import logging

from ..catalog.types import LoadResult
from ..errors import LoadFormatError, LoadTransportError, ResponseFormatError, TransportError
from .base import LoadContext, ProviderAdapter


logger = logging.getLogger(__name__)

GEOJSON_TYPES = frozenset({
    "FeatureCollection",
    "Feature",
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
})


class GeoJsonAdapter(ProviderAdapter):
    types = ("geojson",)

    async def load(self, node, context: LoadContext | None) -> LoadResult:
        inline = node.options.get("data")
        if inline is not None:
            self._validate(node, inline)
            return LoadResult()

        if not node.url:
            raise LoadFormatError("No data", f"'{node.name}' has neither a url nor inline data.", sender_id=node.id)
        if context is None or context.transport is None:
            raise LoadTransportError("No transport", "No HTTP transport is configured.", sender_id=node.id)

        url = context.proxy_url(node, node.url)
        try:
            data = await context.transport.fetch_json(url)
        except TransportError as e:
            raise LoadTransportError(
                "Could not load GeoJSON",
                f"'{node.name}' could not be retrieved: {e.reason}",
                hint="Check the URL, check that the server supports CORS, then try again.",
                sender_id=node.id,
            ) from e
        except ResponseFormatError as e:
            raise LoadFormatError("Invalid GeoJSON", f"'{node.name}': {e.reason}", sender_id=node.id) from e

        self._validate(node, data)
        if isinstance(data, dict) and data.get("type") == "FeatureCollection":
            logger.debug("%s: %d features", node.id, len(data.get("features") or []))
        return LoadResult()

    @staticmethod
    def _validate(node, data) -> None:
        if not isinstance(data, dict) or data.get("type") not in GEOJSON_TYPES:
            raise LoadFormatError(
                "Invalid GeoJSON",
                f"The response for '{node.name}' is not a GeoJSON object.",
                hint="Verify that the link points to a GeoJSON file.",
                sender_id=node.id,
            )
