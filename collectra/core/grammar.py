"""Grammar size aggregation over a collection hierarchy.

A leaf's size comes from its AssetGrammar and staged bounds. A sub-collection
entry or a whole collection aggregates the sizes of its included children
(FIXED, MIN, MAX or AVERAGE). A SizeCache lives for one top-level call; each
node is memoized before its children are visited, so a repeated or cyclic
visit returns the stored value instead of recursing again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from .models.entry import (
    CollectionGrammar,
    Entry,
    GlobalGrammarRule,
    GrammarAggregate,
    GrammarSource,
    SubGrammarMode,
)

if TYPE_CHECKING:
    from .collection import Collection


class SizeCache:
    """Call-scoped memo of computed sizes, keyed by object identity."""

    def __init__(self):
        self._sizes: dict[int, float | None] = {}
        # Keeps memoized objects alive so their ids stay unique for this call
        self._pinned: list[object] = []

    def __contains__(self, key: object) -> bool:
        return id(key) in self._sizes

    def __len__(self) -> int:
        return len(self._sizes)

    def get(self, key: object) -> float | None:
        return self._sizes.get(id(key))

    def put(self, key: object, size: float | None) -> float | None:
        if id(key) not in self._sizes:
            self._pinned.append(key)
        self._sizes[id(key)] = size
        return size


def entry_grammar_size(
    entry: Entry, host: Collection, cache: SizeCache | None = None
) -> float | None:
    """Grammar size of one entry. None when a leaf has no valid size."""
    if cache is None:
        cache = SizeCache()
    if entry in cache:
        return cache.get(entry)

    if not entry.is_sub_collection:
        use_global = (
            entry.grammar_source == GrammarSource.GLOBAL
            or host.global_grammar_rule == GlobalGrammarRule.OVERRULE
        )
        grammar = host.global_asset_grammar if use_global else entry.asset_grammar
        return cache.put(entry, grammar.get_size(entry.staging.bounds))

    sub = entry.get_sub_collection()
    if sub is None or entry.sub_grammar_mode == SubGrammarMode.FLATTEN:
        return cache.put(entry, 0.0)

    # Placeholder first: a cycle back to this entry reads it instead of recursing
    cache.put(entry, None)
    if entry.sub_grammar_mode == SubGrammarMode.INHERIT:
        size = collection_grammar_size(sub, cache)
    else:
        size = _aggregate(entry.collection_grammar, _child_sizes(sub, cache))
    return cache.put(entry, size)


def collection_grammar_size(
    collection: Collection, cache: SizeCache | None = None
) -> float:
    """Aggregate grammar size of a collection under its own CollectionGrammar."""
    if cache is None:
        cache = SizeCache()
    if collection in cache:
        return cache.get(collection) or 0.0

    cache.put(collection, None)
    size = _aggregate(collection.collection_grammar, _child_sizes(collection, cache))
    cache.put(collection, size)
    return size


def _child_sizes(collection: Collection, cache: SizeCache) -> Iterable[float | None]:
    registry = collection.load_cache()
    for index in registry.main.order_indices:
        yield entry_grammar_size(collection.entries[index], collection, cache)


def _aggregate(grammar: CollectionGrammar, sizes: Iterable[float | None]) -> float:
    if grammar.aggregate == GrammarAggregate.FIXED:
        return grammar.fixed_size

    # Children without a valid size are left out of the sample entirely
    valid = [size for size in sizes if size is not None]
    if not valid:
        return 0.0
    if grammar.aggregate == GrammarAggregate.MIN:
        return min(valid)
    if grammar.aggregate == GrammarAggregate.MAX:
        return max(valid)
    return sum(valid) / len(valid)
