"""
Catalog tree structure: ids, parent lookup, add/remove/move.
"""

import pytest

from geocat_svc.catalog.node import CatalogGroup, CatalogItem
from geocat_svc.catalog.registry import ROOT_ID
from geocat_svc.errors import DuplicateNodeIdError

from conftest import group


class TestIds:

    def test_ids_derive_from_parent_path(self, registry):
        layers = registry.root.add(CatalogGroup(name="Layers"))
        roads = layers.add(CatalogItem(name="Roads"))

        assert layers.id == "Layers"
        assert roads.id == "Layers/Roads"
        assert registry.get("Layers/Roads") is roads

    def test_name_collision_gets_suffix(self, registry):
        first = registry.root.add(CatalogItem(name="Roads"))
        second = registry.root.add(CatalogItem(name="Roads"))
        third = registry.root.add(CatalogItem(name="Roads"))

        assert (first.id, second.id, third.id) == ("Roads", "Roads (2)", "Roads (3)")

    def test_explicit_duplicate_id_rejected(self, registry):
        registry.root.add(CatalogItem(id="same", name="One"))

        with pytest.raises(DuplicateNodeIdError):
            registry.root.add(CatalogItem(id="same", name="Two"))
        assert registry.count() == 1

    def test_duplicate_inside_subtree_indexes_nothing(self, registry):
        subtree = CatalogGroup(id="g", name="G")
        subtree.add(CatalogItem(id="dup", name="A"))
        subtree.add(CatalogItem(id="dup", name="B"))

        with pytest.raises(DuplicateNodeIdError):
            registry.root.add(subtree)
        assert "g" not in registry
        assert registry.root.items == []

    def test_failed_add_leaves_ids_unassigned(self, registry):
        registry.root.add(CatalogItem(id="Layers/Second", name="Taken"))
        subtree = CatalogGroup(name="Layers")
        first = subtree.add(CatalogItem(name="First"))
        second = subtree.add(CatalogItem(name="Second"))

        with pytest.raises(DuplicateNodeIdError):
            registry.root.add(subtree)

        assert (subtree.id, first.id, second.id) == ("", "", "")
        assert first.parent_id is None


class TestRelations:

    def test_parent_and_ancestors(self, build_catalog):
        registry, _ = build_catalog()
        d = registry.get("a/b/c/d")

        assert d.parent is registry.get("a/b/c")
        assert [a.id for a in registry.ancestors(d)] == ["a", "a/b", "a/b/c"]
        assert d.wire_value("parents") == ["a", "a/b", "a/b/c"]
        assert registry.get("a").parent is registry.root

    def test_ancestor_chain_open(self, build_catalog):
        registry, _ = build_catalog()
        c = registry.get("a/b/c")
        assert not registry.is_ancestor_chain_open(c)

        group(registry, "a").open()
        group(registry, "a/b").open()
        assert registry.is_ancestor_chain_open(c)

    def test_walk_is_display_order(self, build_catalog):
        registry, _ = build_catalog()

        assert registry.all_ids() == ["g", "g/i", "g/j", "a", "a/b", "a/b/c", "a/b/c/d"]
        assert registry.count() == 7


class TestMutation:

    def test_remove_detaches_subtree(self, build_catalog):
        registry, _ = build_catalog()
        b = registry.get("a/b")
        d = registry.get("a/b/c/d")

        registry.remove(b)

        assert registry.all_ids() == ["g", "g/i", "g/j", "a"]
        assert not d.is_attached
        assert d.registry is None
        assert b.parent_id is None

    async def test_remove_group_takes_enabled_members_off_the_map(self, build_catalog):
        registry, _ = build_catalog()
        i = registry.get("g/i")
        await i.enable()
        assert registry.map_context.attached_ids() == ["g/i"]

        registry.remove(registry.get("g"))

        assert registry.map_context.attached_ids() == []
        assert not i.is_enabled

    def test_root_cannot_be_removed(self, registry):
        with pytest.raises(ValueError):
            registry.remove(registry.root)
        assert registry.get(ROOT_ID) is registry.root

    def test_insert_at_index(self, build_catalog):
        registry, _ = build_catalog()
        g = group(registry, "g")

        g.add(CatalogItem(name="Middle"), 1)

        assert [n.name for n in g.items] == ["I", "Middle", "J"]

    def test_move(self, build_catalog):
        registry, _ = build_catalog()
        j = registry.get("g/j")

        registry.move(j, group(registry, "a"), 0)

        assert j.parent is registry.get("a")
        assert [n.id for n in registry.get("a").items] == ["g/j", "a/b"]
        assert [n.id for n in registry.get("g").items] == ["g/i"]

    def test_move_into_own_subtree_rejected(self, build_catalog):
        registry, _ = build_catalog()

        with pytest.raises(ValueError):
            registry.move(registry.get("a"), group(registry, "a/b/c"))

    def test_attached_id_cannot_change(self, build_catalog):
        registry, _ = build_catalog()

        with pytest.raises(ValueError):
            registry.get("g/i").update(id="other")

    def test_unknown_property_rejected(self, build_catalog):
        registry, _ = build_catalog()

        with pytest.raises(AttributeError):
            registry.get("g/i").update(colour="red")
