"""Adapters for members that need no provider-specific load."""

from __future__ import annotations

from ..catalog.types import LoadResult
from .base import LoadContext, ProviderAdapter


class StaticGroupAdapter(ProviderAdapter):
    """Plain groups defined entirely by the catalog file."""
    types = ("group",)
    is_group = True

    async def load(self, node, context: LoadContext | None) -> LoadResult:
        return LoadResult()


class StaticItemAdapter(ProviderAdapter):
    """Data items handed straight to the rendering engine by URL."""
    types = ("item", "csv", "wms", "wmts", "czml", "kml", "gpx")

    async def load(self, node, context: LoadContext | None) -> LoadResult:
        return LoadResult()
