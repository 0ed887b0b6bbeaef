"""Catalog types - load states, event kinds and wire property names."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class LoadState(str, Enum):
    """Lifecycle of a node's provider-specific load."""
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class EventKind(str, Enum):
    """Kinds of change published on the catalog event bus."""
    ADDED = "added"
    REMOVED = "removed"
    MOVED = "moved"
    CHANGED = "changed"
    LOAD_STATE = "load_state"
    ERROR = "error"


# Python attribute -> JSON (share document / catalog file) property name.
WIRE_NAMES: dict[str, str] = {
    "id": "id",
    "name": "name",
    "type": "type",
    "description": "description",
    "url": "url",
    "is_user_supplied": "isUserSupplied",
    "is_enabled": "isEnabled",
    "is_shown": "isShown",
    "is_open": "isOpen",
    "opacity": "opacity",
    "has_local_data": "hasLocalData",
    "cache_duration": "cacheDuration",
    "blacklist": "blacklist",
    "item_properties": "itemProperties",
    "data_custodian": "dataCustodian",
    "options": "options",
}

ATTRIBUTE_NAMES: dict[str, str] = {v: k for k, v in WIRE_NAMES.items()}

# Never written to catalog files or share documents.
TRANSIENT_PROPERTIES = frozenset({"loadState", "loadError", "parentId", "generatedIds"})


@dataclass(frozen=True, slots=True)
class LoadResult:
    """
    What a provider adapter produced for a node.

    Adapters never touch the tree directly; the generic population routine
    applies ``properties`` to the node and adds ``children`` in order.
    """
    children: tuple[Any, ...] = ()
    properties: dict[str, Any] = field(default_factory=dict)
