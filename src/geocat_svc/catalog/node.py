"""Catalog nodes - groups and items with the load/enable lifecycle."""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, TYPE_CHECKING

from ..errors import GeoCatError, LoadError
from .events import CatalogEvent
from .types import ATTRIBUTE_NAMES, WIRE_NAMES, EventKind, LoadResult, LoadState

if TYPE_CHECKING:
    from ..providers.base import ProviderAdapter
    from .registry import CatalogRegistry


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class CatalogNode:
    """
    A node in the catalog tree.

    Nodes are plain state holders. The owning group keeps the strong
    reference; ``parent_id`` is only a key into the registry's index.
    All observable changes go through ``update()`` or one of the lifecycle
    methods so that the registry's event bus sees each change once.
    """
    id: str = ""
    name: str = ""
    type: str = ""
    description: str = ""
    url: str | None = None
    is_user_supplied: bool = False
    is_enabled: bool = False
    has_local_data: bool = False
    cache_duration: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    load_state: LoadState = field(default=LoadState.NOT_LOADED, init=False)
    load_error: LoadError | None = field(default=None, init=False, repr=False)
    parent_id: str | None = field(default=None, init=False)

    _registry: CatalogRegistry | None = field(default=None, init=False, repr=False)
    _load_task: asyncio.Future | None = field(default=None, init=False, repr=False)
    _loaded_with: tuple | None = field(default=None, init=False, repr=False)

    is_group: ClassVar[bool] = False
    SHARED_PROPERTIES: ClassVar[tuple[str, ...]] = ("id", "name", "isEnabled", "parents")

    # ---- Tree relations ----

    @property
    def registry(self) -> CatalogRegistry | None:
        return self._registry

    @property
    def is_attached(self) -> bool:
        return self._registry is not None and self._registry.is_attached(self)

    @property
    def parent(self) -> CatalogGroup | None:
        if self._registry is None:
            return None
        return self._registry.parent_of(self)

    @property
    def adapter(self) -> ProviderAdapter | None:
        registry = self._registry
        if registry is None or registry.providers is None:
            return None
        if not registry.providers.has(self.type):
            return None
        return registry.providers.get(self.type)

    @property
    def properties_for_sharing(self) -> tuple[str, ...]:
        adapter = self.adapter
        extra = adapter.properties_for_sharing if adapter is not None else ()
        return self.SHARED_PROPERTIES + tuple(extra)

    # ---- Mutation ----

    def update(self, **changes: Any) -> dict[str, Any]:
        """
        Set plain fields and publish a single ``changed`` event.

        Returns the changed properties keyed by wire name. Setting a value
        equal to the current one is not a change.
        """
        changed: dict[str, Any] = {}
        for attr, value in changes.items():
            if attr.startswith("_") or not hasattr(self, attr):
                raise AttributeError(f"{type(self).__name__} has no property '{attr}'")
            if attr == "id" and self.is_attached and value != self.id:
                raise ValueError(f"Cannot change id of attached node '{self.id}'")
            if getattr(self, attr) == value:
                continue
            setattr(self, attr, value)
            changed[WIRE_NAMES.get(attr, attr)] = value

        if changed:
            self._emit(EventKind.CHANGED, changed)
        return changed

    def to_wire(self) -> dict[str, Any]:
        """
        All persistent properties keyed by wire name, None values omitted.

        Provider extras held in ``options`` are written at the top level,
        the same way catalog files declare them.
        """
        d: dict[str, Any] = {}
        for attr, wire in WIRE_NAMES.items():
            if attr == "options" or not hasattr(self, attr):
                continue
            value = getattr(self, attr)
            if value is None or value == {}:
                continue
            d[wire] = copy.deepcopy(value)
        for key, value in self.options.items():
            d.setdefault(key, copy.deepcopy(value))
        return d

    def wire_value(self, prop: str) -> Any:
        """Value of a single property by wire name."""
        if prop == "parents":
            if self._registry is None:
                return []
            return [ancestor.id for ancestor in self._registry.ancestors(self)]
        attr = ATTRIBUTE_NAMES.get(prop)
        if attr is not None and hasattr(self, attr):
            return copy.deepcopy(getattr(self, attr))
        return copy.deepcopy(self.options.get(prop))

    def _emit(self, kind: EventKind, changes: dict[str, Any] | None = None) -> None:
        if self._registry is not None and self.is_attached:
            self._registry.events.emit(CatalogEvent(kind=kind, node_id=self.id, changes=changes or {}))

    def _set_load_state(self, state: LoadState) -> None:
        if self.load_state is state:
            return
        logger.debug("%s: %s -> %s", self.id, self.load_state.value, state.value)
        self.load_state = state
        self._emit(EventKind.LOAD_STATE, {"loadState": state.value})

    # ---- Load lifecycle ----

    def _values_that_influence_load(self) -> tuple:
        adapter = self.adapter
        names = adapter.influencing_fields if adapter is not None else ("url",)
        return tuple(self.wire_value(name) for name in names)

    async def load(self) -> None:
        """
        Load this node through its provider adapter.

        Idempotent and single-flight: concurrent callers share one in-flight
        load. A loaded node is only reloaded when one of its influencing
        values changed. A failed node re-raises its error until ``retry()``
        or until an influencing value changes.
        """
        if self.load_state is LoadState.LOADING and self._load_task is not None:
            await asyncio.shield(self._load_task)
            return

        current = self._values_that_influence_load()
        if self.load_state is LoadState.LOADED:
            if current == self._loaded_with:
                return
            logger.info("Load inputs of '%s' changed, reloading", self.id)
            self._invalidate()
        elif self.load_state is LoadState.FAILED:
            if current == self._loaded_with and self.load_error is not None:
                raise self.load_error
            self._invalidate()

        await self._start_load(current)

    async def retry(self) -> None:
        """Re-enter loading regardless of the current state."""
        if self.load_state is LoadState.LOADING and self._load_task is not None:
            await asyncio.shield(self._load_task)
            return
        self._invalidate()
        await self._start_load(self._values_that_influence_load())

    async def _start_load(self, snapshot: tuple) -> None:
        self._loaded_with = snapshot
        self.load_error = None
        self._set_load_state(LoadState.LOADING)
        self._load_task = asyncio.ensure_future(self._run_load())
        await asyncio.shield(self._load_task)

    async def _run_load(self) -> None:
        registry = self._registry
        adapter = self.adapter
        try:
            if adapter is None or registry is None:
                result = LoadResult()
            else:
                result = await adapter.load(self, registry.context)
        except asyncio.CancelledError:
            self._set_load_state(LoadState.NOT_LOADED)
            raise
        except LoadError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = LoadError("Unable to load", f"'{self.name}' could not be loaded: {e}", sender_id=self.id)
            self._fail(error)
            raise error from e

        if not self.is_attached:
            # Removed from the tree while loading: drop the result.
            logger.debug("Discarding load result of detached node %s", self.id)
            self.load_state = LoadState.NOT_LOADED
            return

        self._populate(result)
        self._set_load_state(LoadState.LOADED)

    def _fail(self, error: LoadError) -> None:
        if error.sender_id is None:
            error.sender_id = self.id
        self.load_error = error
        self._set_load_state(LoadState.FAILED)
        if self._registry is not None and self.is_attached:
            self._registry.report_error(error)

    def _populate(self, result: LoadResult) -> None:
        if result.properties:
            self.update(**result.properties)

    def _invalidate(self) -> None:
        self.load_error = None
        self._set_load_state(LoadState.NOT_LOADED)


@dataclass(eq=False)
class CatalogGroup(CatalogNode):
    """A node that owns an ordered list of child nodes."""
    type: str = "group"
    is_open: bool = False
    items: list[CatalogNode] = field(default_factory=list, repr=False)
    blacklist: dict[str, bool] | None = None
    item_properties: dict[str, Any] | None = None
    data_custodian: str | None = None

    generated_ids: list[str] = field(default_factory=list, init=False, repr=False)

    is_group: ClassVar[bool] = True
    SHARED_PROPERTIES: ClassVar[tuple[str, ...]] = CatalogNode.SHARED_PROPERTIES + ("isOpen",)

    def open(self) -> None:
        """Expand the group. Does not load it."""
        if not self.is_open:
            self.update(is_open=True)

    def close(self) -> None:
        if self.is_open:
            self.update(is_open=False)

    def add(self, node: CatalogNode, index: int | None = None) -> CatalogNode:
        if self.is_attached:
            self._registry.add(self, node, index)
        else:
            node.parent_id = self.id or None
            if index is None:
                self.items.append(node)
            else:
                self.items.insert(index, node)
        return node

    def remove(self, node: CatalogNode) -> None:
        if self.is_attached:
            self._registry.remove(node)
        else:
            self.items.remove(node)
            node.parent_id = None

    def move(self, node: CatalogNode, index: int) -> None:
        if self.is_attached:
            self._registry.move(node, self, index)
        else:
            self.items.remove(node)
            self.items.insert(index, node)

    def find_child(self, name: str, type: str | None = None) -> CatalogNode | None:
        for child in self.items:
            if child.name == name and (type is None or child.type == type):
                return child
        return None

    def walk(self):
        """Yield every descendant depth-first, in display order."""
        for child in self.items:
            yield child
            if isinstance(child, CatalogGroup):
                yield from child.walk()

    def _populate(self, result: LoadResult) -> None:
        super()._populate(result)

        from .loader import apply_wire_properties

        for child in result.children:
            if self.blacklist and self.blacklist.get(child.name):
                logger.debug("Skipping blacklisted member '%s' of %s", child.name, self.id)
                continue
            if self.item_properties:
                apply_wire_properties(child, self.item_properties)
            self.add(child)
            self.generated_ids.append(child.id)

        logger.info("Loaded %d members into group '%s'", len(self.generated_ids), self.id)

    def _invalidate(self) -> None:
        if self._registry is not None:
            for child_id in self.generated_ids:
                child = self._registry.get(child_id)
                if child is not None and child.parent_id == self.id:
                    self._registry.remove(child)
        self.generated_ids = []
        super()._invalidate()


@dataclass(eq=False)
class CatalogItem(CatalogNode):
    """A terminal node representing one data source that can be shown on the map."""
    type: str = "item"
    is_shown: bool = True
    opacity: float = 0.8

    SHARED_PROPERTIES: ClassVar[tuple[str, ...]] = CatalogNode.SHARED_PROPERTIES + ("isShown", "opacity")

    async def enable(self) -> bool:
        """
        Load if needed, then attach to the active map context.

        Returns whether the item ended up enabled. Failures are reported
        through the registry's error channel rather than raised.
        """
        if self.is_enabled:
            return True

        try:
            await self.load()
        except LoadError as e:
            logger.debug("Not enabling %s: %s", self.id, e)
            return False

        if self.is_enabled:
            return True
        if not self.is_attached:
            return False

        registry = self._registry
        try:
            registry.map_context.attach(self, self.adapter, registry.context)
        except GeoCatError as e:
            if e.sender_id is None:
                e.sender_id = self.id
            registry.report_error(e)
            return False

        self.update(is_enabled=True)
        return True

    async def disable(self) -> None:
        if not self.is_enabled:
            return
        if self._registry is not None:
            self._registry.map_context.detach(self)
        self.update(is_enabled=False)
