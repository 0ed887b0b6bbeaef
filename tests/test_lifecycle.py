"""
Load and enable lifecycle of catalog nodes.
"""

import asyncio

import pytest

from geocat_svc.catalog.node import CatalogGroup, CatalogItem
from geocat_svc.catalog.types import EventKind, LoadState
from geocat_svc.errors import LoadError, LoadTransportError
from geocat_svc.view.types import ViewerMode


# ============================================================================
# load()
# ============================================================================

class TestLoad:

    async def test_concurrent_loads_share_one_request(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Counted", type="counting", url="https://x/1"))
        counting.gate = asyncio.Event()

        first = asyncio.create_task(item.load())
        second = asyncio.create_task(item.load())
        await asyncio.sleep(0)
        assert item.load_state is LoadState.LOADING

        counting.gate.set()
        await asyncio.gather(first, second)

        assert counting.calls == 1
        assert item.load_state is LoadState.LOADED

    async def test_loaded_node_is_not_reloaded(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Counted", type="counting", url="https://x/1"))

        await item.load()
        await item.load()

        assert counting.calls == 1

    async def test_influencing_change_reloads(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Counted", type="counting", url="https://x/1"))
        await item.load()

        item.update(description="not an input")
        await item.load()
        assert counting.calls == 1

        item.update(url="https://x/2")
        await item.load()
        assert counting.calls == 2
        assert item.load_state is LoadState.LOADED

    async def test_load_states_are_published(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Counted", type="counting"))
        states = []
        registry.events.add_consumer(
            lambda e: states.append(e.changes["loadState"]) if e.kind is EventKind.LOAD_STATE else None
        )

        await item.load()

        assert states == ["loading", "loaded"]


# ============================================================================
# Failure and retry
# ============================================================================

class TestFailure:

    async def test_failure_is_recorded_and_reported(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Broken", type="counting", url="https://x/1"))
        counting.error = LoadTransportError("Unreachable", "down")
        errors = []
        registry.events.add_consumer(lambda e: errors.append(e) if e.kind is EventKind.ERROR else None)

        with pytest.raises(LoadTransportError):
            await item.load()

        assert item.load_state is LoadState.FAILED
        assert item.load_error.sender_id == item.id
        assert len(errors) == 1
        assert errors[0].changes["title"] == "Unreachable"

    async def test_failed_is_terminal_until_retry(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Broken", type="counting", url="https://x/1"))
        counting.error = LoadTransportError("Unreachable", "down")
        with pytest.raises(LoadError):
            await item.load()

        counting.error = None
        with pytest.raises(LoadError):
            await item.load()
        assert counting.calls == 1

        await item.retry()
        assert counting.calls == 2
        assert item.load_state is LoadState.LOADED
        assert item.load_error is None

    async def test_failed_reloads_when_inputs_change(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Broken", type="counting", url="https://x/1"))
        counting.error = LoadTransportError("Unreachable", "down")
        with pytest.raises(LoadError):
            await item.load()

        counting.error = None
        item.update(url="https://x/fixed")
        await item.load()

        assert item.load_state is LoadState.LOADED

    async def test_unexpected_exception_becomes_load_error(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Buggy", type="counting"))
        counting.error = KeyError("layers")

        with pytest.raises(LoadError) as exc_info:
            await item.load()

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert item.load_state is LoadState.FAILED


# ============================================================================
# Groups
# ============================================================================

class TestGroupLoad:

    async def test_children_are_added_in_order(self, registry, counting_group):
        grp = registry.root.add(CatalogGroup(name="Service", type="counting-group", url="https://x/svc"))

        await grp.load()

        assert [n.id for n in grp.items] == ["Service/First", "Service/Second"]
        assert grp.generated_ids == ["Service/First", "Service/Second"]

    async def test_blacklist_and_item_properties(self, registry, counting_group):
        grp = registry.root.add(CatalogGroup(
            name="Service",
            type="counting-group",
            blacklist={"First": True},
            item_properties={"opacity": 0.3, "layerStyle": "dark"},
        ))

        await grp.load()

        assert [n.name for n in grp.items] == ["Second"]
        assert grp.items[0].opacity == 0.3
        assert grp.items[0].options == {"layerStyle": "dark"}

    async def test_blacklist_change_regenerates_children(self, registry, counting_group):
        grp = registry.root.add(CatalogGroup(name="Service", type="counting-group"))
        manual = grp.add(CatalogItem(name="Manual"))
        await grp.load()
        assert len(grp.items) == 3

        grp.update(blacklist={"Second": True})
        await grp.load()

        assert [n.name for n in grp.items] == ["Manual", "First"]
        assert manual.is_attached
        assert counting_group.calls == 2

    async def test_reload_takes_regenerated_members_off_the_map(self, registry, counting_group):
        grp = registry.root.add(CatalogGroup(name="Service", type="counting-group", url="https://x/svc"))
        await grp.load()
        old_first = registry.get("Service/First")
        await old_first.enable()
        assert registry.map_context.attached_ids() == ["Service/First"]

        grp.update(url="https://x/svc2")
        await grp.load()

        assert registry.map_context.attached_ids() == []
        assert not old_first.is_enabled
        assert registry.get("Service/First") is not old_first

    async def test_result_of_detached_node_is_discarded(self, registry, counting_group):
        grp = registry.root.add(CatalogGroup(name="Service", type="counting-group"))
        counting_group.gate = asyncio.Event()

        task = asyncio.create_task(grp.load())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert counting_group.calls == 1
        registry.remove(grp)
        counting_group.gate.set()
        await task

        assert grp.items == []
        assert grp.load_state is LoadState.NOT_LOADED
        assert "Service/First" not in registry


# ============================================================================
# enable()/disable()
# ============================================================================

class TestEnable:

    async def test_enable_loads_and_attaches(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Roads", type="counting", url="https://x/roads"))

        assert await item.enable() is True

        assert item.is_enabled
        assert counting.calls == 1
        renderable = registry.map_context.renderable_for(item.id)
        assert renderable.source == "https://x/roads"

        await item.disable()
        assert not item.is_enabled
        assert registry.map_context.renderable_for(item.id) is None

    async def test_enable_failure_leaves_item_disabled(self, registry, counting):
        item = registry.root.add(CatalogItem(name="Roads", type="counting"))
        counting.error = LoadTransportError("Unreachable", "down")

        assert await item.enable() is False

        assert not item.is_enabled
        assert len(registry.map_context) == 0

    async def test_3d_only_item_refused_in_2d(self, registry):
        registry.map_context.viewer_mode = ViewerMode.LEAFLET
        item = registry.root.add(CatalogItem(name="Buildings", type="3d-tiles", options={"ionAssetId": 96188}))
        errors = []
        registry.events.add_consumer(lambda e: errors.append(e) if e.kind is EventKind.ERROR else None)

        assert await item.enable() is False

        assert not item.is_enabled
        assert errors[0].changes["title"] == "Not supported in 2D"

    async def test_ion_asset_renderable(self, registry):
        item = registry.root.add(CatalogItem(name="Buildings", type="3d-tiles", options={"ionAssetId": 96188}))

        assert await item.enable() is True

        renderable = registry.map_context.renderable_for(item.id)
        assert renderable.options["ionAssetId"] == 96188
        assert renderable.options["ionServer"] == "https://api.cesium.com/"
