"""Tests for entry resolution through sub-collection hierarchies."""

import gc

import pytest

from collectra.core.collection import Collection
from collectra.core.models.entry import Entry, PickMode, TagInheritance

from conftest import leaf, make_collection, nest


class TestFlatResolution:
    """Tests for picks on a collection without sub-collections."""

    def test_get_entry_at(self):
        collection = make_collection("C", [1, 0, 3])
        result = collection.get_entry_at(1)
        assert result.entry.asset_path == "C_2"
        assert result.host is collection
        assert collection.get_entry_at(2) is None

    def test_get_entry_at_raw_bypasses_index(self):
        collection = make_collection("C", [1, 0, 3])
        assert collection.get_entry_at_raw(1).entry.asset_path == "C_1"
        assert collection.get_entry_at_raw(5) is None

    def test_get_entry_ordinal_modes(self):
        collection = make_collection("C", [5, 1, 3])
        assert collection.get_entry(0, 0).entry.asset_path == "C_0"
        assert collection.get_entry(0, 0, PickMode.DESCENDING).entry.asset_path == "C_2"
        assert collection.get_entry(0, 0, PickMode.WEIGHT_ASCENDING).entry.asset_path == "C_1"
        assert collection.get_entry(0, 0, PickMode.WEIGHT_DESCENDING).entry.asset_path == "C_0"

    def test_get_entry_random_mode_uses_seed(self):
        collection = make_collection("C", [5, 1, 3])
        main = collection.load_cache().main
        for seed in range(20):
            result = collection.get_entry(99, seed, PickMode.WEIGHTED_RANDOM)
            assert result.entry is collection.entries[main.pick_weighted_random(seed)]

    def test_random_and_weighted_random(self):
        collection = make_collection("C", [5, 1, 3])
        main = collection.load_cache().main
        for seed in range(20):
            assert collection.get_entry_random(seed).entry is collection.entries[
                main.pick_random(seed)
            ]
            assert collection.get_entry_weighted_random(seed).entry is collection.entries[
                main.pick_weighted_random(seed)
            ]

    def test_empty_collection_resolves_to_none(self):
        collection = make_collection("C", [0, 0])
        assert collection.get_entry_at(0) is None
        assert collection.get_entry(0, 1) is None
        assert collection.get_entry_random(1) is None
        assert collection.get_entry_weighted_random(1) is None

    def test_tags_none_is_allowed(self):
        collection = make_collection("C", [1])
        result = collection.get_entry(0, 0, tag_inheritance=TagInheritance.ASSET, tags=None)
        assert result is not None


class TestCategories:
    """Tests for category-scoped resolution."""

    def _collection(self):
        return Collection(
            name="C",
            entries=[
                leaf("tree", category="trees"),
                leaf("rock_a", category="rocks", weight=2),
                leaf("bush"),
                leaf("rock_b", category="rocks", weight=5),
            ],
        )

    def test_in_category_ordinal(self):
        collection = self._collection()
        assert collection.get_entry_in_category("rocks", 0, 0).entry.asset_path == "rock_a"
        assert collection.get_entry_in_category("rocks", 1, 0).entry.asset_path == "rock_b"
        assert collection.get_entry_in_category("rocks", 2, 0) is None

    def test_random_in_category_stays_in_category(self):
        collection = self._collection()
        for seed in range(50):
            for result in (
                collection.get_entry_random_in_category("rocks", seed),
                collection.get_entry_weighted_random_in_category("rocks", seed),
            ):
                assert result.entry.category == "rocks"

    def test_unknown_category(self):
        collection = self._collection()
        assert collection.get_entry_in_category("water", 0, 0) is None
        assert collection.get_entry_random_in_category("water", 0) is None
        assert collection.get_entry_weighted_random_in_category("water", 0) is None


class TestHierarchy:
    """Tests for descent through sub-collection entries."""

    def test_descends_into_sub_collection(self, hierarchy):
        a, b = hierarchy
        result = a.get_entry(1, 7)
        assert result.host is b
        assert any(result.entry is e for e in b.entries)

    def test_get_entry_at_does_not_descend(self, hierarchy):
        a, b = hierarchy
        result = a.get_entry_at(1)
        assert result.host is a
        assert result.entry.get_sub_collection() is b

    def test_weighted_descent_doubles_seed(self):
        c = make_collection("C", [1, 4, 2, 7])
        b = Collection(name="B")
        nest(b, c)
        a = Collection(name="A")
        nest(a, b)

        c_main = c.load_cache().main
        for seed in range(1, 30):
            result = a.get_entry_weighted_random(seed)
            assert result.host is c
            assert result.entry is c.entries[c_main.pick_weighted_random(seed * 4)]

    def test_random_descent_increments_seed(self):
        c = make_collection("C", [1, 4, 2, 7])
        b = Collection(name="B")
        nest(b, c)
        a = Collection(name="A")
        nest(a, b)

        c_main = c.load_cache().main
        for seed in range(30):
            result = a.get_entry_random(seed)
            assert result.host is c
            assert result.entry is c.entries[c_main.pick_random(seed + 2)]

    def test_get_entry_descends_weighted(self):
        b = make_collection("B", [3, 1, 2])
        a = Collection(name="A")
        nest(a, b)

        b_main = b.load_cache().main
        for seed in range(20):
            result = a.get_entry(0, seed, PickMode.ASCENDING)
            assert result.entry is b.entries[b_main.pick_weighted_random(seed * 2)]

    def test_empty_sub_collection_resolves_to_none(self):
        b = make_collection("B", [0])
        a = Collection(name="A")
        nest(a, b)
        assert a.get_entry(0, 3) is None

    def test_dead_reference_resolves_to_none(self):
        a = Collection(name="A")
        b = make_collection("B", [1])
        nest(a, b)
        a.load_cache()

        del b
        gc.collect()

        assert a.entries[0].get_sub_collection() is None
        assert a.get_entry(0, 1) is None
        assert a.get_entry_weighted_random(1) is None

    def test_deterministic(self, hierarchy):
        a, _ = hierarchy
        for seed in range(30):
            first = a.get_entry_weighted_random(seed)
            second = a.get_entry_weighted_random(seed)
            assert first.entry is second.entry
            assert first.host is second.host


class TestTagInheritance:
    """Tests for tag accumulation while resolving."""

    def test_no_flags_leaves_tags_empty(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        a.get_entry(1, 0, tags=tags)
        assert tags == set()

    def test_asset_tags_only(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        result = a.get_entry(1, 0, tag_inheritance=TagInheritance.ASSET, tags=tags)
        assert tags == result.entry.tags

    def test_hierarchy_and_collection(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        flags = TagInheritance.ASSET | TagInheritance.HIERARCHY | TagInheritance.COLLECTION
        result = a.get_entry(1, 0, tag_inheritance=flags, tags=tags)
        assert tags == {"x", "b"} | result.entry.tags

    def test_root_collection(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        a.get_entry(0, 0, tag_inheritance=TagInheritance.ROOT_COLLECTION, tags=tags)
        assert tags == {"root"}

    def test_root_asset_uses_top_level_entry(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        a.get_entry(1, 0, tag_inheritance=TagInheritance.ROOT_ASSET, tags=tags)
        assert tags == {"x"}

    def test_existing_tags_are_kept(self, hierarchy):
        a, _ = hierarchy
        tags = {"seeded"}
        a.get_entry(0, 0, tag_inheritance=TagInheritance.ASSET, tags=tags)
        assert tags == {"seeded", "t1"}

    def test_get_entry_at_merges_sub_collection_tags(self, hierarchy):
        a, _ = hierarchy
        tags = set()
        a.get_entry_at(
            1, tag_inheritance=TagInheritance.ASSET | TagInheritance.COLLECTION, tags=tags
        )
        assert tags == {"x", "b"}

    def test_parse_flags(self):
        assert TagInheritance.parse("asset, collection") == (
            TagInheritance.ASSET | TagInheritance.COLLECTION
        )
        assert TagInheritance.parse("") == TagInheritance.NONE

    def test_parse_unknown_flag(self):
        with pytest.raises(ValueError, match="bogus"):
            TagInheritance.parse("asset,bogus")


class TestSubCollectionEntry:
    """Tests for sub-collection entries that are not linked."""

    def test_unlinked_sub_entry_excluded(self):
        a = Collection(
            name="A",
            entries=[Entry(is_sub_collection=True, sub_collection_ref="missing"), leaf("a")],
        )
        for seed in range(20):
            assert a.get_entry_weighted_random(seed).entry.asset_path == "a"
