"""Entry models and the enums shared across the resolution engine.

An Entry is one placement candidate inside a Collection. It is either a leaf
(asset path + weight + category + tags + grammar descriptor) or a pointer to
another whole Collection (a "sub-collection entry").

This module contains:
- Pick/resolution enums: PickMode, TagInheritance, LoadingFlags
- Grammar descriptors: Bounds, AssetGrammar, CollectionGrammar
- Staging: StagingData
- Entry with its non-owning sub-collection reference
"""

from __future__ import annotations

import weakref
from enum import Enum, IntFlag
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, Field, PrivateAttr, model_validator

if TYPE_CHECKING:
    from ..collection import Collection
    from ..index import MicroCache


# =============================================================================
# Resolution Enums
# =============================================================================


class PickMode(str, Enum):
    """How a WeightedIndex maps a request onto an entry position.

    The four ordinal modes read `request` as a 0-based index; the two random
    modes read it as a PRNG seed.
    """

    ASCENDING = "ascending"
    DESCENDING = "descending"
    WEIGHT_ASCENDING = "weight_ascending"
    WEIGHT_DESCENDING = "weight_descending"
    RANDOM = "random"
    WEIGHTED_RANDOM = "weighted_random"

    @property
    def is_random(self) -> bool:
        return self in (PickMode.RANDOM, PickMode.WEIGHTED_RANDOM)


class TagInheritance(IntFlag):
    """Which tags are accumulated while resolving through a hierarchy."""

    NONE = 0
    ASSET = 1 << 1
    HIERARCHY = 1 << 2
    COLLECTION = 1 << 3
    ROOT_COLLECTION = 1 << 4
    ROOT_ASSET = 1 << 5

    @classmethod
    def parse(cls, value: str | None) -> "TagInheritance":
        """Parse a comma-separated list of flag names ("asset,collection")."""
        flags = cls.NONE
        if not value:
            return flags
        for token in value.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                flags |= cls[token.upper()]
            except KeyError:
                raise ValueError(f"Unknown tag inheritance flag: {token!r}") from None
        return flags


class LoadingFlags(str, Enum):
    """Scope of an asset-path collection pass."""

    DEFAULT = "default"
    RECURSIVE = "recursive"
    RECURSIVE_COLLECTIONS_ONLY = "recursive_collections_only"


# =============================================================================
# Grammar
# =============================================================================


class SizePolicy(str, Enum):
    """Which extent of a leaf's bounds becomes its grammar size."""

    X = "x"
    Y = "y"
    Z = "z"
    MIN = "min"
    MAX = "max"
    AVERAGE = "average"


class GrammarAggregate(str, Enum):
    """How a collection's grammar size is derived from its children."""

    FIXED = "fixed"
    MIN = "min"
    MAX = "max"
    AVERAGE = "average"


class SubGrammarMode(str, Enum):
    """Which collection grammar a sub-collection entry reports."""

    INHERIT = "inherit"
    OVERRIDE = "override"
    FLATTEN = "flatten"


class GrammarSource(str, Enum):
    LOCAL = "local"
    GLOBAL = "global"


class GlobalGrammarRule(str, Enum):
    """PER_ENTRY lets each entry choose; OVERRULE forces the collection's global grammar."""

    PER_ENTRY = "per_entry"
    OVERRULE = "overrule"


class Bounds(BaseModel):
    """Axis-aligned box in local asset space."""

    min: tuple[float, float, float] = (0.0, 0.0, 0.0)
    max: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def is_valid(self) -> bool:
        if self.min == self.max == (0.0, 0.0, 0.0):
            return False
        return all(lo <= hi for lo, hi in zip(self.min, self.max))

    @property
    def size(self) -> tuple[float, float, float]:
        return (
            self.max[0] - self.min[0],
            self.max[1] - self.min[1],
            self.max[2] - self.min[2],
        )


class AssetGrammar(BaseModel):
    """Grammar descriptor for a leaf entry."""

    symbol: str = ""
    size_policy: SizePolicy = SizePolicy.X
    fixed_size: float | None = Field(
        default=None, description="When set, used instead of the bounds extent"
    )

    def get_size(self, bounds: Bounds | None) -> float | None:
        """Size of `bounds` under this policy, or None when it has no valid size."""
        if self.fixed_size is not None:
            return self.fixed_size
        if bounds is None or not bounds.is_valid:
            return None

        x, y, z = bounds.size
        if self.size_policy == SizePolicy.X:
            return x
        if self.size_policy == SizePolicy.Y:
            return y
        if self.size_policy == SizePolicy.Z:
            return z
        if self.size_policy == SizePolicy.MIN:
            return min(x, y, z)
        if self.size_policy == SizePolicy.MAX:
            return max(x, y, z)
        return (x + y + z) / 3.0


class CollectionGrammar(BaseModel):
    """Grammar descriptor for a whole collection."""

    symbol: str = ""
    aggregate: GrammarAggregate = GrammarAggregate.MAX
    fixed_size: float = 0.0


# =============================================================================
# Staging
# =============================================================================


class StagingData(BaseModel):
    """Derived, refreshable data cached on an entry."""

    internal_index: int = -1
    path: str | None = None
    bounds: Bounds | None = None


# =============================================================================
# Entry
# =============================================================================


class Entry(BaseModel):
    """One placement candidate: a leaf asset or a reference to another Collection.

    The sub-collection reference is weak. Collections are owned by whoever
    loaded them (see CollectionLibrary); if the referenced collection goes
    away the entry degrades to "no pick" rather than keeping it alive.
    """

    weight: int = Field(default=1, ge=0)
    category: str | None = None
    tags: set[str] = Field(default_factory=set)

    is_sub_collection: bool = False
    sub_collection_ref: str | None = Field(
        default=None, description="Name of the referenced collection, for persistence"
    )

    asset_path: str | None = None
    staging: StagingData = Field(default_factory=StagingData)

    grammar_source: GrammarSource = GrammarSource.LOCAL
    asset_grammar: AssetGrammar = Field(default_factory=AssetGrammar)
    sub_grammar_mode: SubGrammarMode = SubGrammarMode.INHERIT
    collection_grammar: CollectionGrammar = Field(default_factory=CollectionGrammar)

    _sub_collection: weakref.ref | None = PrivateAttr(default=None)
    _micro_cache: Any = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _payload_is_exclusive(self) -> "Entry":
        if self.is_sub_collection and self.asset_path:
            raise ValueError(
                "A sub-collection entry cannot also carry an asset path"
            )
        return self

    # ── Sub-collection access ──

    def get_sub_collection(self) -> Collection | None:
        """Resolve the weak reference; None when unset or already collected."""
        if not self.is_sub_collection or self._sub_collection is None:
            return None
        return self._sub_collection()

    def has_valid_sub_collection(self) -> bool:
        return self.get_sub_collection() is not None

    def set_sub_collection(self, collection: Collection) -> None:
        """Point this entry at `collection` without any cycle check.

        Use Collection.assign_sub_collection() at editing boundaries; it runs
        the kind and cycle gates before calling this.
        """
        self.is_sub_collection = True
        self.asset_path = None
        self.sub_collection_ref = collection.name or None
        self._sub_collection = weakref.ref(collection)

    def clear_sub_collection(self) -> None:
        self._sub_collection = None
        self.sub_collection_ref = None

    # ── Leaf payload ──

    def set_asset_path(self, path: str) -> None:
        self.asset_path = path
        self.staging.path = path

    def asset_paths(self) -> set[str]:
        """Asset paths this entry depends on (leaf only)."""
        if self.is_sub_collection or not self.asset_path:
            return set()
        return {self.asset_path}

    # ── Compile-time hooks ──

    def validate_for(self, collection: Collection) -> bool:
        """Whether this entry takes part in `collection`'s compiled index."""
        if self.weight <= 0 and not collection.do_not_ignore_invalid_entries:
            return False

        if self.is_sub_collection:
            return self.has_valid_sub_collection()

        if not self.asset_path and collection.do_not_ignore_invalid_entries:
            return False
        return True

    def update_staging(
        self, owner: Collection, internal_index: int, recursive: bool = False
    ) -> None:
        self.staging.internal_index = internal_index
        if not self.is_sub_collection:
            self.staging.path = self.asset_path
            return

        self.staging.bounds = None
        sub = self.get_sub_collection()
        if sub is None:
            self.staging.path = None
            return
        self.staging.path = sub.name or None
        if recursive:
            sub.rebuild_staging(recursive=True)

    def build_micro_cache(self) -> None:
        """Rebuild per-entry variant picking data. Base entries have none."""
        self._micro_cache = None

    @property
    def micro_cache(self) -> MicroCache | None:
        return self._micro_cache


EntryVisitor = Callable[[Entry, int], None]
