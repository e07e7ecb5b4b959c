"""Core resolution engine: entries, compiled indices, collections, hierarchy."""

from .collection import (
    CacheState,
    Collection,
    EntryAccessResult,
    collection_type,
    register_collection_type,
    registered_collection_types,
)
from .grammar import SizeCache, collection_grammar_size, entry_grammar_size
from .hierarchy import collect_asset_paths, count_leaves, flatten, has_circular_dependency
from .index import IndexRegistry, MicroCache, WeightedIndex

__all__ = [
    "CacheState",
    "Collection",
    "EntryAccessResult",
    "IndexRegistry",
    "MicroCache",
    "SizeCache",
    "WeightedIndex",
    "collect_asset_paths",
    "collection_grammar_size",
    "collection_type",
    "count_leaves",
    "entry_grammar_size",
    "flatten",
    "has_circular_dependency",
    "register_collection_type",
    "registered_collection_types",
]
