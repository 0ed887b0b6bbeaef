"""Catalog loader - builds the catalog tree from YAML/JSON catalog files."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, TYPE_CHECKING

import yaml

from ..errors import LoadError
from .node import CatalogGroup, CatalogItem, CatalogNode
from .registry import CatalogRegistry
from .types import ATTRIBUTE_NAMES, TRANSIENT_PROPERTIES

if TYPE_CHECKING:
    from ..providers.base import ProviderRegistry


logger = logging.getLogger(__name__)

# Keys that describe tree structure rather than node state.
_STRUCTURAL_KEYS = frozenset({"id", "type", "items", "parents"})
# Keys that need a lifecycle call rather than a plain assignment.
_LIFECYCLE_KEYS = frozenset({"isEnabled", "isOpen"})


def apply_wire_properties(node: CatalogNode, data: dict[str, Any]) -> None:
    """
    Apply plain properties from a catalog-file member to ``node``.

    Known wire names map onto node fields; anything else is a provider
    extra and lands in ``options``. Structural keys, transient state and
    lifecycle flags are left alone.
    """
    changes: dict[str, Any] = {}
    options = dict(node.options)

    for key, value in data.items():
        if key in _STRUCTURAL_KEYS or key in _LIFECYCLE_KEYS or key in TRANSIENT_PROPERTIES:
            continue
        attr = ATTRIBUTE_NAMES.get(key)
        if attr == "options":
            options.update(copy.deepcopy(value or {}))
        elif attr is not None and hasattr(node, attr):
            changes[attr] = copy.deepcopy(value)
        else:
            options[key] = copy.deepcopy(value)

    if options != node.options:
        changes["options"] = options
    node.update(**changes)


class CatalogLoader:
    """
    Loads catalog definitions from YAML or JSON files.

    File format:
    ```yaml
    catalog:
      - name: Boundaries
        type: group
        isOpen: true
        items:
          - name: Suburbs
            type: geojson
            url: https://example.com/suburbs.geojson
            isEnabled: true
      - name: National Map
        type: esri-group
        url: https://services.example.com/arcgis/rest/services
        blacklist:
          Basemaps: true
    ```

    A bare list of members is accepted as well. Members are matched
    against existing children by ``(name, type)`` and updated in place,
    so a file can refine a tree built from an earlier one.

    ``isOpen`` and ``isEnabled`` are not applied immediately: opening a
    group means loading it and enabling an item means loading and
    attaching it, both of which are asynchronous. They are queued and run
    by ``activate_pending()``.
    """

    def __init__(self, providers: ProviderRegistry | None = None):
        self.providers = providers
        self._pending_open: list[CatalogGroup] = []
        self._pending_enabled: list[tuple[CatalogItem, bool]] = []

    # ---- Members ----

    def create_node(self, data: dict[str, Any]) -> CatalogNode:
        """Create a detached node (and subtree) from a catalog-file member."""
        type_name = data.get("type") or ("group" if "items" in data else "item")

        if self.providers is not None and not self.providers.has(type_name):
            logger.warning(f"Unknown catalog member type '{type_name}' for '{data.get('name', '')}'")

        if self._is_group(type_name, data):
            node: CatalogNode = CatalogGroup(id=data.get("id", ""), name=data.get("name", ""), type=type_name)
        else:
            node = CatalogItem(id=data.get("id", ""), name=data.get("name", ""), type=type_name)

        self.update_node(node, {k: v for k, v in data.items() if k != "name"})
        return node

    def update_node(self, node: CatalogNode, data: dict[str, Any]) -> None:
        """Apply a catalog-file member to an existing node."""
        apply_wire_properties(node, data)

        if isinstance(node, CatalogGroup):
            is_open = data.get("isOpen")
            if is_open is True:
                node.open()
                self._pending_open.append(node)
            elif is_open is False:
                node.close()
            if data.get("items"):
                self.merge_members(node, data["items"])

        elif isinstance(node, CatalogItem) and "isEnabled" in data:
            self._pending_enabled.append((node, bool(data["isEnabled"])))

    def merge_members(
        self,
        parent: CatalogGroup,
        members: list[dict[str, Any]],
        index: int | None = None,
        **overrides: Any,
    ) -> list[CatalogNode]:
        """
        Merge ``members`` into ``parent``.

        Existing children with the same name and type are updated; other
        members are created and added in order, at ``index`` if given.
        ``overrides`` (wire names) take precedence over each member's own
        values.
        """
        merged: list[CatalogNode] = []
        for member in members:
            if not isinstance(member, dict):
                logger.warning(f"Ignoring catalog member that is not an object: {member!r}")
                continue
            if overrides:
                member = {**member, **overrides}

            existing = None
            if member.get("name"):
                existing = parent.find_child(member["name"], member.get("type"))

            if existing is not None:
                self.update_node(existing, member)
                merged.append(existing)
                continue

            node = self.create_node(member)
            parent.add(node, index)
            if index is not None:
                index += 1
            merged.append(node)
        return merged

    async def activate_pending(self) -> None:
        """
        Run the queued open/enable requests.

        Groups are loaded first, outermost first, so that items they create
        exist before enable requests are processed. Failures have already
        been reported through the registry's error channel.
        """
        pending_open, self._pending_open = self._pending_open, []
        pending_enabled, self._pending_enabled = self._pending_enabled, []

        for group in pending_open:
            if not group.is_attached:
                continue
            try:
                await group.load()
            except LoadError as e:
                logger.debug(f"Open group '{group.id}' did not load: {e}")

        for item, enabled in pending_enabled:
            if not item.is_attached:
                continue
            if enabled:
                await item.enable()
            else:
                await item.disable()

    def _is_group(self, type_name: str, data: dict[str, Any]) -> bool:
        if "items" in data or type_name == "group":
            return True
        return self.providers is not None and self.providers.is_group_type(type_name)

    # ---- Files ----

    def load_file(self, path: str | Path, registry: CatalogRegistry | None = None) -> CatalogRegistry:
        """Load catalog from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return self.load_dict(data or {}, registry)

    def load_dict(self, data: dict[str, Any] | list, registry: CatalogRegistry | None = None) -> CatalogRegistry:
        """Load catalog from a dictionary (or a bare list of members)."""
        if registry is None:
            registry = CatalogRegistry(providers=self.providers)

        members = data if isinstance(data, list) else data.get("catalog", [])
        self.merge_members(registry.root, members)

        logger.info(f"Loaded {registry.count()} catalog nodes")
        return registry

    def load_directory(self, directory: str | Path, registry: CatalogRegistry | None = None) -> CatalogRegistry:
        """
        Load catalog from all YAML/JSON files in a directory.

        Files are loaded in alphabetical order. Later files refine members
        defined by earlier ones.
        """
        directory = Path(directory)

        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        if registry is None:
            registry = CatalogRegistry(providers=self.providers)

        files = sorted(directory.glob("*.yaml")) + sorted(directory.glob("*.yml")) + sorted(directory.glob("*.json"))

        for file_path in files:
            logger.info(f"Loading catalog file: {file_path}")
            self.load_file(file_path, registry)

        return registry


def load_catalog(
    source: str | Path | dict | list,
    providers: ProviderRegistry | None = None,
    registry: CatalogRegistry | None = None,
) -> tuple[CatalogRegistry, CatalogLoader]:
    """
    Convenience function to load a catalog.

    Args:
        source: File path, directory path, or dictionary
        providers: Provider adapters used to classify member types
        registry: Existing registry to load into

    Returns:
        The registry, and the loader holding any pending open/enable
        requests (see ``CatalogLoader.activate_pending``)
    """
    loader = CatalogLoader(providers)

    if isinstance(source, (dict, list)):
        return loader.load_dict(source, registry), loader

    path = Path(source)
    if path.is_dir():
        return loader.load_directory(path, registry), loader
    return loader.load_file(path, registry), loader
