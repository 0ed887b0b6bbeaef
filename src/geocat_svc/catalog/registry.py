"""Catalog registry - the tree root plus a node-by-id index."""

from __future__ import annotations

import logging
from typing import Iterator, TYPE_CHECKING

from ..errors import DuplicateNodeIdError, GeoCatError
from ..view.map_context import MapContext
from .events import CatalogEvent, CatalogEventBus
from .node import CatalogGroup, CatalogNode
from .types import EventKind

if TYPE_CHECKING:
    from ..providers.base import LoadContext, ProviderRegistry


logger = logging.getLogger(__name__)

ROOT_ID = "Root Group"


class CatalogRegistry:
    """
    Owns the catalog tree.

    Every attached node is indexed by id; parent links are resolved through
    this index, so nodes never hold references to their ancestors. All
    structural mutation (add, remove, move) goes through here and is
    published on ``events``.
    """

    def __init__(
        self,
        root_name: str = ROOT_ID,
        providers: ProviderRegistry | None = None,
        context: LoadContext | None = None,
        map_context: MapContext | None = None,
    ):
        self.providers = providers
        self.context = context
        self.map_context = map_context or MapContext()
        self.events = CatalogEventBus()

        self.root = CatalogGroup(id=ROOT_ID, name=root_name, is_open=True)
        self.root._registry = self
        self._nodes: dict[str, CatalogNode] = {ROOT_ID: self.root}

    # ---- Lookup ----

    def get(self, node_id: str) -> CatalogNode | None:
        return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def all_ids(self) -> list[str]:
        return [node.id for node in self.root.walk()]

    def all_nodes(self) -> list[CatalogNode]:
        return list(self.root.walk())

    def count(self) -> int:
        return len(self._nodes) - 1

    def is_attached(self, node: CatalogNode) -> bool:
        return self._nodes.get(node.id) is node

    def parent_of(self, node: CatalogNode) -> CatalogGroup | None:
        if node.parent_id is None:
            return None
        parent = self._nodes.get(node.parent_id)
        return parent if isinstance(parent, CatalogGroup) else None

    def ancestors(self, node: CatalogNode) -> list[CatalogGroup]:
        """Ancestors of ``node`` from the top down, excluding the root."""
        chain: list[CatalogGroup] = []
        parent = self.parent_of(node)
        while parent is not None and parent is not self.root:
            chain.append(parent)
            parent = self.parent_of(parent)
        chain.reverse()
        return chain

    def is_ancestor_chain_open(self, node: CatalogNode) -> bool:
        return all(ancestor.is_open for ancestor in self.ancestors(node))

    # ---- Ids ----

    def child_id(self, parent: CatalogGroup, name: str) -> str:
        return self._join_id(parent.id, name)

    @staticmethod
    def _join_id(parent_id: str | None, name: str) -> str:
        if not parent_id or parent_id == ROOT_ID:
            return name
        return f"{parent_id}/{name}"

    def unique_id(self, candidate: str) -> str:
        if candidate not in self._nodes:
            return candidate
        n = 2
        while f"{candidate} ({n})" in self._nodes:
            n += 1
        return f"{candidate} ({n})"

    # ---- Structural mutation ----

    def add(self, parent: CatalogGroup, node: CatalogNode, index: int | None = None) -> CatalogNode:
        """Attach ``node`` (and any detached subtree under it) to ``parent``."""
        if not self.is_attached(parent):
            raise ValueError(f"Parent '{parent.id}' is not part of this catalog")

        subtree = self._prepare_subtree(parent, node)
        for member in subtree:
            member._registry = self
            self._nodes[member.id] = member

        node.parent_id = parent.id
        if index is None or index >= len(parent.items):
            parent.items.append(node)
            index = len(parent.items) - 1
        else:
            parent.items.insert(index, node)

        self.events.emit(CatalogEvent(EventKind.ADDED, node.id, {"parent": parent.id, "index": index}))
        return node

    def _prepare_subtree(self, parent: CatalogGroup, node: CatalogNode) -> list[CatalogNode]:
        # Work out ids top-down and check them all before touching any node.
        planned: list[tuple[CatalogNode, str, str]] = []
        seen: set[str] = set()

        def visit(owner_id: str, member: CatalogNode) -> None:
            member_id = member.id or self.unique_id(self._join_id(owner_id, member.name))
            if member_id in self._nodes or member_id in seen:
                raise DuplicateNodeIdError(f"Duplicate catalog node id: '{member_id}'")
            seen.add(member_id)
            planned.append((member, member_id, owner_id))
            if isinstance(member, CatalogGroup):
                for child in member.items:
                    visit(member_id, child)

        visit(parent.id, node)

        for member, member_id, owner_id in planned:
            member.id = member_id
            member.parent_id = owner_id
        return [member for member, _, _ in planned]

    def remove(self, node: CatalogNode) -> None:
        """Detach ``node`` and its subtree. In-flight loads of them are ignored on completion."""
        if node is self.root:
            raise ValueError("Cannot remove the root group")
        if not self.is_attached(node):
            return

        parent = self.parent_of(node)
        if parent is not None:
            parent.items.remove(node)

        removed = [node]
        if isinstance(node, CatalogGroup):
            removed.extend(node.walk())
        for member in removed:
            self._nodes.pop(member.id, None)
            # A member that leaves the tree leaves the map too.
            if member.is_enabled:
                self.map_context.detach(member)
                member.is_enabled = False

        self.events.emit(CatalogEvent(EventKind.REMOVED, node.id, {"parent": parent.id if parent else None}))
        for member in removed:
            member._registry = None
        node.parent_id = None

    def move(self, node: CatalogNode, new_parent: CatalogGroup, index: int | None = None) -> None:
        if not self.is_attached(node) or not self.is_attached(new_parent):
            raise ValueError("Both the node and its new parent must be attached")
        if node is new_parent or (isinstance(node, CatalogGroup) and new_parent in list(node.walk())):
            raise ValueError(f"Cannot move '{node.id}' into itself")

        old_parent = self.parent_of(node)
        if old_parent is not None:
            old_parent.items.remove(node)
        if index is None or index >= len(new_parent.items):
            new_parent.items.append(node)
            index = len(new_parent.items) - 1
        else:
            new_parent.items.insert(index, node)
        node.parent_id = new_parent.id

        self.events.emit(CatalogEvent(
            EventKind.MOVED,
            node.id,
            {"from": old_parent.id if old_parent else None, "parent": new_parent.id, "index": index},
        ))

    # ---- Errors ----

    def report_error(self, error: GeoCatError) -> None:
        """Surface a user-facing error to observers (UI notifications)."""
        logger.error("%s: %s", error.title, error.message)
        self.events.emit(CatalogEvent(EventKind.ERROR, error.sender_id or ROOT_ID, error.to_dict()))

    def __iter__(self) -> Iterator[CatalogNode]:
        return self.root.walk()
