"""Catalog system - the tree of groups and items and its load lifecycle."""

from .events import CatalogEvent, CatalogEventBus
from .loader import CatalogLoader, apply_wire_properties, load_catalog
from .node import CatalogGroup, CatalogItem, CatalogNode
from .registry import ROOT_ID, CatalogRegistry
from .types import EventKind, LoadResult, LoadState

__all__ = [
    "CatalogEvent",
    "CatalogEventBus",
    "CatalogGroup",
    "CatalogItem",
    "CatalogLoader",
    "CatalogNode",
    "CatalogRegistry",
    "EventKind",
    "LoadResult",
    "LoadState",
    "ROOT_ID",
    "apply_wire_properties",
    "load_catalog",
]
