"""Collectra: weighted, hierarchical collection cache and resolution engine.

Collections hold weighted entries that are either leaf assets or references
to other collections. A compiled index serves ordinal, uniform and weighted
picks; resolution descends through sub-collections and can accumulate tags.
"""

__version__ = "0.1.0"

from .collections import ActorCollection, ActorEntry, MeshCollection, MeshEntry
from .core import (
    CacheState,
    Collection,
    EntryAccessResult,
    IndexRegistry,
    MicroCache,
    SizeCache,
    WeightedIndex,
    collection_grammar_size,
    entry_grammar_size,
    flatten,
    has_circular_dependency,
)
from .core.models import Entry, LibrarySpec, LoadingFlags, PickMode, TagInheritance
from .library import CollectionLibrary

__all__ = [
    "__version__",
    "ActorCollection",
    "ActorEntry",
    "CacheState",
    "Collection",
    "CollectionLibrary",
    "Entry",
    "EntryAccessResult",
    "IndexRegistry",
    "LibrarySpec",
    "LoadingFlags",
    "MeshCollection",
    "MeshEntry",
    "MicroCache",
    "PickMode",
    "SizeCache",
    "TagInheritance",
    "WeightedIndex",
    "collection_grammar_size",
    "entry_grammar_size",
    "flatten",
    "has_circular_dependency",
]
