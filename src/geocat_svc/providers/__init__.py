"""Provider adapters - populate catalog nodes from external services."""

from .arcgis import (
    ArcGisCatalogGroupAdapter,
    ArcGisFeatureServerGroupAdapter,
    ArcGisLayerAdapter,
    ArcGisMapServerGroupAdapter,
)
from .base import LoadContext, ProviderAdapter, ProviderRegistry
from .geojson import GeoJsonAdapter
from .json_function import FunctionInvoker, FunctionParameter, JsonFunctionAdapter
from .static import StaticGroupAdapter, StaticItemAdapter
from .tiles3d import Cesium3DTilesAdapter


def default_providers() -> ProviderRegistry:
    """A registry with every adapter shipped in this package."""
    registry = ProviderRegistry()
    for adapter in (
        StaticGroupAdapter(),
        StaticItemAdapter(),
        GeoJsonAdapter(),
        ArcGisCatalogGroupAdapter(),
        ArcGisMapServerGroupAdapter(),
        ArcGisFeatureServerGroupAdapter(),
        ArcGisLayerAdapter(),
        Cesium3DTilesAdapter(),
        JsonFunctionAdapter(),
    ):
        registry.register(adapter)
    return registry


__all__ = [
    "ArcGisCatalogGroupAdapter",
    "ArcGisFeatureServerGroupAdapter",
    "ArcGisLayerAdapter",
    "ArcGisMapServerGroupAdapter",
    "Cesium3DTilesAdapter",
    "FunctionInvoker",
    "FunctionParameter",
    "GeoJsonAdapter",
    "JsonFunctionAdapter",
    "LoadContext",
    "ProviderAdapter",
    "ProviderRegistry",
    "StaticGroupAdapter",
    "StaticItemAdapter",
    "default_providers",
]
