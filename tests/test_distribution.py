"""Tests for per-item distribution helpers."""

import logging

import pytest

from collectra.core.collection import Collection
from collectra.core.index import MicroCache
from collectra.core.models.entry import PickMode
from collectra.staging import (
    Distribution,
    DistributionDetails,
    DistributionHelper,
    IndexSafety,
    MicroDistributionHelper,
    TruncateMode,
    sanitize_index,
    truncate,
)

from conftest import leaf, make_collection, nest


class TestSanitizeIndex:
    """Tests for out-of-range index policies."""

    @pytest.mark.parametrize(
        "index,safety,expected",
        [
            (2, IndexSafety.IGNORE, 2),
            (5, IndexSafety.IGNORE, -1),
            (-1, IndexSafety.IGNORE, -1),
            (5, IndexSafety.TILE, 1),
            (-1, IndexSafety.TILE, 3),
            (5, IndexSafety.CLAMP, 3),
            (-2, IndexSafety.CLAMP, 0),
            (3, IndexSafety.YOYO, 3),
            (4, IndexSafety.YOYO, 2),
            (5, IndexSafety.YOYO, 1),
            (6, IndexSafety.YOYO, 0),
            (7, IndexSafety.YOYO, 1),
        ],
    )
    def test_policies(self, index, safety, expected):
        assert sanitize_index(index, 3, safety) == expected

    def test_empty_range(self):
        for safety in IndexSafety:
            assert sanitize_index(0, -1, safety) == -1

    def test_single_element_yoyo(self):
        assert sanitize_index(5, 0, IndexSafety.YOYO) == 0

    def test_truncate(self):
        assert truncate(2.6, TruncateMode.ROUND) == 3.0
        assert truncate(2.1, TruncateMode.CEIL) == 3.0
        assert truncate(2.9, TruncateMode.FLOOR) == 2.0
        assert truncate(2.9, TruncateMode.NONE) == 2.9


class TestDistributionHelper:
    """Tests for DistributionHelper.get_entry."""

    def test_init_on_empty_collection(self, caplog):
        helper = DistributionHelper(make_collection("Empty", [0]))
        with caplog.at_level(logging.ERROR):
            assert not helper.init()
        assert "empty collection" in caplog.text

    def test_init(self):
        assert DistributionHelper(make_collection("C", [1])).init()

    def test_weighted_random_matches_collection(self):
        collection = make_collection("C", [1, 5, 2])
        helper = DistributionHelper(collection)
        for seed in range(30):
            assert (
                helper.get_entry(0, seed).entry
                is collection.get_entry_weighted_random(seed).entry
            )

    def test_random_matches_collection(self):
        collection = make_collection("C", [1, 5, 2])
        helper = DistributionHelper(
            collection, DistributionDetails(distribution=Distribution.RANDOM)
        )
        for seed in range(30):
            assert helper.get_entry(0, seed).entry is collection.get_entry_random(seed).entry

    def test_index_tiles_by_default(self):
        collection = make_collection("C", [1, 1, 1])
        helper = DistributionHelper(
            collection, DistributionDetails(distribution=Distribution.INDEX)
        )
        assert helper.get_entry(1, 0).entry.asset_path == "C_1"
        assert helper.get_entry(4, 0).entry.asset_path == "C_1"

    def test_index_ignore_out_of_range(self):
        collection = make_collection("C", [1, 1, 1])
        helper = DistributionHelper(
            collection,
            DistributionDetails(
                distribution=Distribution.INDEX, index_safety=IndexSafety.IGNORE
            ),
        )
        assert helper.get_entry(7, 0) is None

    def test_index_pick_mode(self):
        collection = make_collection("C", [5, 1, 3])
        helper = DistributionHelper(
            collection,
            DistributionDetails(
                distribution=Distribution.INDEX, pick_mode=PickMode.WEIGHT_ASCENDING
            ),
        )
        assert helper.get_entry(0, 0).entry.asset_path == "C_1"

    @pytest.mark.parametrize(
        "index,mode,expected",
        [
            (4, TruncateMode.NONE, "C_2"),
            (5, TruncateMode.FLOOR, "C_2"),
            (5, TruncateMode.CEIL, "C_3"),
            (8, TruncateMode.NONE, "C_4"),
        ],
    )
    def test_remap_to_collection_size(self, index, mode, expected):
        collection = make_collection("C", [1, 1, 1, 1, 1])
        helper = DistributionHelper(
            collection,
            DistributionDetails(
                distribution=Distribution.INDEX,
                remap_index_to_collection_size=True,
                truncate=mode,
            ),
        )
        assert helper.get_entry(index, 0, max_input_index=8).entry.asset_path == expected

    def test_category_single_member(self):
        collection = Collection(
            name="C", entries=[leaf("a", category="rocks"), leaf("b", category="trees")]
        )
        helper = DistributionHelper(collection, DistributionDetails(use_categories=True))
        for seed in range(10):
            assert helper.get_entry(0, seed, category="trees").entry.asset_path == "b"

    def test_category_missing(self):
        collection = Collection(name="C", entries=[leaf("a", category="rocks")])
        helper = DistributionHelper(collection, DistributionDetails(use_categories=True))
        assert helper.get_entry(0, 0, category="water") is None
        assert helper.get_entry(0, 0, category=None) is None

    def test_category_member_is_sub_collection(self):
        sub = make_collection("Sub", [1, 2])
        collection = Collection(name="C")
        nest(collection, sub).category = "nested"
        helper = DistributionHelper(collection, DistributionDetails(use_categories=True))
        for seed in range(10):
            result = helper.get_entry(0, seed, category="nested")
            assert result.host is sub
            assert result.entry is sub.get_entry_weighted_random(seed).entry


class TestMicroDistributionHelper:
    """Tests for variant picks."""

    def test_no_cache(self):
        assert MicroDistributionHelper().get_pick(None, 0, 0) == -1
        assert MicroDistributionHelper().get_pick(MicroCache.from_weights([]), 0, 0) == -1

    def test_weighted(self):
        cache = MicroCache.from_weights([0, 3, 1])
        helper = MicroDistributionHelper()
        picks = {helper.get_pick(cache, 0, seed) for seed in range(100)}
        assert picks <= {0, 1, 2}
        assert -1 not in picks

    def test_index(self):
        cache = MicroCache.from_weights([4, 0, 2])
        helper = MicroDistributionHelper(
            DistributionDetails(
                distribution=Distribution.INDEX, pick_mode=PickMode.WEIGHT_DESCENDING
            )
        )
        assert helper.get_pick(cache, 0, 0) == 0
        assert helper.get_pick(cache, 9, 0) == -1
