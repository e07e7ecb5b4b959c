"""Pydantic models for collectra.

- entry.py: Entry, enums and grammar descriptors
- library.py: the persisted YAML library format
"""

from .entry import (
    AssetGrammar,
    Bounds,
    CollectionGrammar,
    Entry,
    GlobalGrammarRule,
    GrammarAggregate,
    GrammarSource,
    LoadingFlags,
    PickMode,
    SizePolicy,
    StagingData,
    SubGrammarMode,
    TagInheritance,
)
from .library import CollectionSpec, LibraryMeta, LibrarySpec

__all__ = [
    "AssetGrammar",
    "Bounds",
    "CollectionGrammar",
    "CollectionSpec",
    "Entry",
    "GlobalGrammarRule",
    "GrammarAggregate",
    "GrammarSource",
    "LibraryMeta",
    "LibrarySpec",
    "LoadingFlags",
    "PickMode",
    "SizePolicy",
    "StagingData",
    "SubGrammarMode",
    "TagInheritance",
]
