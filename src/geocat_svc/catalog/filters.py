"""Composable filters used when serializing the catalog."""

from __future__ import annotations

from typing import Any, Callable

from .node import CatalogNode

ItemFilter = Callable[[CatalogNode], bool]
PropertyFilter = Callable[[str, CatalogNode], bool]


def combine_filters(filters: list[Callable[..., bool]]) -> Callable[..., bool]:
    """A filter that passes only when every filter passes, evaluated in order."""

    def combined(*args: Any) -> bool:
        return all(f(*args) for f in filters)

    return combined


def remember_rejections(filter_fn: ItemFilter) -> tuple[ItemFilter, list[CatalogNode]]:
    """
    Wrap ``filter_fn`` so that every node it rejects is recorded.

    Returns the wrapped filter and the list it records into.
    """
    rejections: list[CatalogNode] = []

    def remembering(node: CatalogNode) -> bool:
        allowed = filter_fn(node)
        if not allowed:
            rejections.append(node)
        return allowed

    return remembering, rejections


# ---- Item filters ----

def no_local_data(node: CatalogNode) -> bool:
    """Data loaded from the user's machine cannot be shared."""
    return not node.has_local_data


def user_supplied_only(node: CatalogNode) -> bool:
    return node.is_user_supplied


def not_regenerated_by_parent(node: CatalogNode) -> bool:
    """
    Exclude nodes that loading their parent would create again.

    A parent with a URL regenerates the members it created from that URL;
    members the user added to it by hand are still kept.
    """
    parent = node.parent
    if parent is None or not parent.url:
        return True
    return node.id not in parent.generated_ids


# ---- Property filters ----

def shared_only(prop: str, node: CatalogNode) -> bool:
    return prop in node.properties_for_sharing


def exclude(*names: str) -> PropertyFilter:
    excluded = frozenset(names)

    def excluding(prop: str, node: CatalogNode) -> bool:
        return prop not in excluded

    return excluding
