"""Builds share documents from the live catalog and view state."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

from ..catalog.filters import (
    ItemFilter,
    PropertyFilter,
    combine_filters,
    exclude,
    no_local_data,
    not_regenerated_by_parent,
    remember_rejections,
    shared_only,
    user_supplied_only,
)
from ..catalog.node import CatalogGroup, CatalogNode
from ..catalog.registry import CatalogRegistry
from ..view.entities import hash_entity
from ..view.geodesy import cartesian_to_cartographic
from ..view.types import ViewState
from .document import SHARE_VERSION, ShareDocument


logger = logging.getLogger(__name__)


class ProjectionError(ValueError):
    """A node's properties cannot be written as JSON."""


def _candidate_properties(node: CatalogNode) -> list[str]:
    names = list(node.to_wire())
    for name in ("parents", *node.properties_for_sharing):
        if name not in names:
            names.append(name)
    return names


def serialize_member(
    node: CatalogNode,
    property_filter: PropertyFilter | None = None,
    item_filter: ItemFilter | None = None,
    rejections: list[CatalogNode] | None = None,
) -> dict[str, Any]:
    """
    Project one node onto its wire properties.

    Groups include the members that pass ``item_filter``; with no item
    filter the projection is flat. Raises ``ProjectionError`` when a value
    of the node itself cannot be written as JSON. With a ``rejections``
    list, group members that cannot be written are left out and recorded
    there instead.
    """
    d: dict[str, Any] = {}
    for prop in _candidate_properties(node):
        if property_filter is not None and not property_filter(prop, node):
            continue
        value = node.wire_value(prop)
        if value is None:
            continue
        d[prop] = value

    if item_filter is not None and isinstance(node, CatalogGroup):
        items = serialize_members(node.items, item_filter, property_filter, rejections)
        if items:
            d["items"] = items

    try:
        json.dumps(d)
    except (TypeError, ValueError) as e:
        raise ProjectionError(f"'{node.id}' cannot be shared: {e}") from e
    return d


def serialize_members(
    nodes: list[CatalogNode],
    item_filter: ItemFilter,
    property_filter: PropertyFilter | None = None,
    rejections: list[CatalogNode] | None = None,
) -> list[dict[str, Any]]:
    """
    Serialize the members of ``nodes`` that pass ``item_filter``.

    A group that does not pass is still searched; if any of its members
    pass, it is written as a ``{name, type, items}`` placeholder so the
    members land in the same place when the catalog is rebuilt.

    Without a ``rejections`` list the first ``ProjectionError`` propagates.
    With one, only the member that cannot be written is skipped.
    """
    out: list[dict[str, Any]] = []
    for node in nodes:
        if item_filter(node):
            try:
                out.append(serialize_member(node, property_filter, item_filter, rejections))
            except ProjectionError as e:
                if rejections is None:
                    raise
                logger.warning("%s", e)
                rejections.append(node)
        elif isinstance(node, CatalogGroup):
            nested = serialize_members(node.items, item_filter, property_filter, rejections)
            if nested:
                out.append({"name": node.name, "type": node.type, "items": nested})
    return out


def flatten_members(group: CatalogGroup, item_filter: ItemFilter) -> Iterator[CatalogNode]:
    """Depth-first walk that skips any node, and its subtree, rejected by ``item_filter``."""
    for node in group.items:
        if not item_filter(node):
            continue
        yield node
        if isinstance(node, CatalogGroup):
            yield from flatten_members(node, item_filter)


@dataclass
class ShareBuild:
    document: ShareDocument
    # Nodes left out of the document, for reporting to the user.
    rejections: list[CatalogNode] = field(default_factory=list)


class ShareDocumentBuilder:
    """
    Flattens catalog and view state into a share document.

    Fragments are assembled in a fixed order: the session's base init
    sources, user-added catalog members, shared catalog members, view
    settings, picked features and the location marker. Building reads the
    tree and view state without changing them.
    """

    def __init__(self, init_sources: list[str] | None = None, version: str = SHARE_VERSION):
        self.init_sources = list(init_sources or [])
        self.version = version

    def build(self, registry: CatalogRegistry, view: ViewState | None) -> ShareBuild:
        init_sources: list[dict[str, Any] | str] = list(self.init_sources)
        rejections: list[CatalogNode] = []

        self.add_user_added_catalog(registry, init_sources, rejections)
        self.add_shared_members(registry, init_sources, rejections)
        if view is not None:
            self.add_view_settings(view, init_sources)
            self.add_feature_picking(view, init_sources)
            self.add_location_marker(view, init_sources)

        if rejections:
            logger.info("Share document leaves out %d members", len(rejections))
        return ShareBuild(ShareDocument(init_sources=init_sources, version=self.version), rejections)

    def add_user_added_catalog(
        self,
        registry: CatalogRegistry,
        init_sources: list,
        rejections: list[CatalogNode],
    ) -> None:
        local_data_filter, local_rejections = remember_rejections(no_local_data)
        item_filter = combine_filters([local_data_filter, user_supplied_only, not_regenerated_by_parent])
        # Ids are regenerated when the members are added again.
        property_filter = exclude("id", "parents")

        catalog = serialize_members(registry.root.items, item_filter, property_filter, rejections)

        rejections.extend(local_rejections)
        if catalog:
            init_sources.append({"catalog": catalog})

    def add_shared_members(
        self,
        registry: CatalogRegistry,
        init_sources: list,
        rejections: list[CatalogNode],
    ) -> None:
        property_filter = combine_filters([shared_only, exclude("name")])

        shared: dict[str, dict[str, Any]] = {}
        for node in flatten_members(registry.root, no_local_data):
            if not (node.is_enabled or getattr(node, "is_open", False)):
                continue
            try:
                entry = serialize_member(node, property_filter)
            except ProjectionError as e:
                logger.warning("%s", e)
                rejections.append(node)
                continue
            shared[entry.pop("id", node.id)] = entry

        # An open group is only worth sharing if the recipient will see it,
        # that is, if every ancestor is being shared too.
        for node_id, entry in list(shared.items()):
            if entry.get("isOpen") and any(p not in shared for p in entry.get("parents", [])):
                del shared[node_id]

        if shared:
            init_sources.append({"sharedCatalogMembers": shared})

    def add_view_settings(self, view: ViewState, init_sources: list) -> None:
        settings: dict[str, Any] = {
            "initialCamera": view.camera.to_dict(include_frame=view.viewer_mode.is_3d),
            "homeCamera": view.home_camera.to_dict(),
            "baseMapName": view.base_map_name,
            "viewerMode": view.viewer_mode.value,
            "currentTime": view.clock.to_dict(),
        }
        if view.show_splitter:
            settings["showSplitter"] = True
            settings["splitPosition"] = view.split_position
        init_sources.append(settings)

    def add_feature_picking(self, view: ViewState, init_sources: list) -> None:
        picked = view.picked_features
        if picked is None or not picked.features:
            return

        location = cartesian_to_cartographic(picked.pick_position)
        fragment: dict[str, Any] = {
            "providerCoords": copy.deepcopy(picked.provider_coords),
            "pickCoords": {"lat": location.latitude, "lng": location.longitude, "height": location.height},
        }
        if view.selected_feature is not None:
            fragment["current"] = {
                "name": view.selected_feature.name,
                "hash": hash_entity(view.selected_feature, view.clock),
            }
        # Raster features come back from providerCoords; only vector ones are listed.
        fragment["entities"] = [
            {"name": entity.name, "hash": hash_entity(entity, view.clock)}
            for entity in picked.features
            if entity.imagery_layer is None
        ]
        init_sources.append({"pickedFeatures": fragment})

    def add_location_marker(self, view: ViewState, init_sources: list) -> None:
        marker = view.location_marker
        if marker is None:
            return
        location = cartesian_to_cartographic(marker.position)
        init_sources.append({
            "locationMarker": {
                "name": marker.name,
                "latitude": location.latitude,
                "longitude": location.longitude,
            }
        })
