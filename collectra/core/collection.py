"""Collection: an ordered entry list, its lazily compiled index, and the resolver.

The compiled IndexRegistry is published once and only read afterwards, so
picks run without locking. Building it goes through a one-shot lock with a
double check; invalidate() throws the registry away and the next read
rebuilds it.

Resolution descends through sub-collection entries. The top-level call picks
with the requested policy. Hops below it are uniform picks with `seed + 1`
for get_entry_random and weighted picks with `seed * 2` otherwise. Graph
edges are checked for cycles when they are created (assign_sub_collection),
not on every pick.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, ClassVar, Iterator, NamedTuple

from .index import IndexRegistry, WeightedIndex
from .models.entry import (
    AssetGrammar,
    CollectionGrammar,
    Entry,
    GlobalGrammarRule,
    LoadingFlags,
    PickMode,
    TagInheritance,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Collection kinds
# =============================================================================

# type_id -> (class, parent type_id)
_COLLECTION_TYPES: dict[str, tuple[type["Collection"], str | None]] = {}


def register_collection_type(type_id: str, parent: str | None = "base"):
    """Class decorator registering a concrete collection kind under `type_id`."""

    def decorator(cls: type[Collection]) -> type[Collection]:
        if type_id in _COLLECTION_TYPES and _COLLECTION_TYPES[type_id][0] is not cls:
            raise ValueError(f"Collection type '{type_id}' is already registered")
        cls.type_id = type_id
        _COLLECTION_TYPES[type_id] = (cls, parent)
        return cls

    return decorator


def collection_type(type_id: str) -> type[Collection]:
    """Look up a registered collection class. Raises KeyError for unknown kinds."""
    try:
        return _COLLECTION_TYPES[type_id][0]
    except KeyError:
        known = ", ".join(sorted(_COLLECTION_TYPES))
        raise KeyError(f"Unknown collection kind '{type_id}' (known: {known})") from None


def registered_collection_types() -> list[str]:
    return sorted(_COLLECTION_TYPES)


# =============================================================================
# Results
# =============================================================================


class CacheState(str, Enum):
    EMPTY = "empty"
    COMPILING = "compiling"
    READY = "ready"


class EntryAccessResult(NamedTuple):
    """A resolved leaf entry and the collection that actually owns it."""

    entry: Entry
    host: "Collection"


# =============================================================================
# Collection
# =============================================================================


@register_collection_type("base", parent=None)
class Collection:
    """Ordered sequence of entries plus a lazily compiled IndexRegistry.

    Subclasses set `entry_type` to their concrete Entry model and register a
    kind with @register_collection_type. Collections are owned externally
    (usually by a CollectionLibrary); entries refer to other collections only
    through weak references.
    """

    entry_type: ClassVar[type[Entry]] = Entry
    type_id: ClassVar[str] = "base"

    def __init__(
        self,
        name: str = "",
        entries: list[Entry] | None = None,
        collection_tags: set[str] | None = None,
        do_not_ignore_invalid_entries: bool = False,
        global_asset_grammar: AssetGrammar | None = None,
        global_grammar_rule: GlobalGrammarRule = GlobalGrammarRule.PER_ENTRY,
        collection_grammar: CollectionGrammar | None = None,
    ):
        self.name = name
        self.collection_tags: set[str] = set(collection_tags or ())
        self.do_not_ignore_invalid_entries = do_not_ignore_invalid_entries
        self.global_asset_grammar = global_asset_grammar or AssetGrammar()
        self.global_grammar_rule = global_grammar_rule
        self.collection_grammar = collection_grammar or CollectionGrammar()

        self._entries: list[Entry] = []
        self._registry: IndexRegistry | None = None
        self._state = CacheState.EMPTY
        self._cache_lock = threading.Lock()

        for entry in entries or ():
            self.add_entry(entry)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, entries={len(self._entries)}, "
            f"state={self._state.value})"
        )

    # ── Kind ──

    @classmethod
    def is_type(cls, type_id: str) -> bool:
        """True if this kind is `type_id` or derives from it in the kind registry."""
        current: str | None = cls.type_id
        while current is not None:
            if current == type_id:
                return True
            registered = _COLLECTION_TYPES.get(current)
            current = registered[1] if registered else None
        return False

    # ── Entries ──

    @property
    def entries(self) -> list[Entry]:
        """The live entry list. Call invalidate() after editing it in place."""
        return self._entries

    def num_entries(self) -> int:
        return len(self._entries)

    def is_valid_index(self, index: int) -> bool:
        return 0 <= index < len(self._entries)

    def entry_at_raw(self, index: int) -> Entry | None:
        """Entry at a raw position, bypassing the compiled index."""
        if not self.is_valid_index(index):
            return None
        return self._entries[index]

    def add_entry(self, entry: Entry) -> Entry:
        if not isinstance(entry, self.entry_type):
            raise TypeError(
                f"{type(self).__name__} holds {self.entry_type.__name__}, "
                f"got {type(entry).__name__}"
            )
        self._entries.append(entry)
        self.invalidate()
        return entry

    def init_num_entries(self, count: int) -> None:
        """Resize the entry list to `count` default entries, keeping existing ones."""
        if count < 0:
            raise ValueError(f"Entry count must be >= 0, got {count}")
        del self._entries[count:]
        while len(self._entries) < count:
            self._entries.append(self.entry_type())
        self.invalidate()

    def for_each_entry(self, fn: Callable[[Entry, int], Any]) -> None:
        """Call fn(entry, index) for every entry, in order."""
        for index, entry in enumerate(self._entries):
            fn(entry, index)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def sort_entries(self, key: Callable[[Entry], Any], reverse: bool = False) -> None:
        self._entries.sort(key=key, reverse=reverse)
        self.invalidate()

    # ── Sub-collection edges ──

    def accepts_sub_collection(self, other: Collection) -> bool:
        """True if `other`'s leaves are valid entries of this collection's kind."""
        return issubclass(other.entry_type, self.entry_type)

    def assign_sub_collection(self, index: int, other: Collection) -> bool:
        """Make entry `index` reference `other`.

        Refuses collections whose entries are not of this kind and edges that
        close a cycle.
        """
        entry = self.entry_at_raw(index)
        if entry is None:
            raise IndexError(f"No entry at index {index} in '{self.name}'")

        if not self.accepts_sub_collection(other):
            logger.error(
                "Refusing sub-collection '%s' at %s[%d]: %s cannot hold %s entries",
                other.name,
                self.name,
                index,
                self.type_id,
                other.type_id,
            )
            entry.clear_sub_collection()
            self.invalidate()
            return False

        if self.has_circular_dependency(other):
            logger.error(
                "Refusing sub-collection '%s' at %s[%d]: it would create a cycle",
                other.name,
                self.name,
                index,
            )
            entry.clear_sub_collection()
            self.invalidate()
            return False

        entry.set_sub_collection(other)
        self.invalidate()
        return True

    def has_circular_dependency(self, other: Collection) -> bool:
        """True if referencing `other` from this collection would form a cycle."""
        from .hierarchy import has_circular_dependency

        if other is self:
            return True
        return has_circular_dependency(other, {self})

    def sanitize_references(self) -> list[int]:
        """Clear existing sub-collection references that form a cycle.

        Returns the positions that were cleared.
        """
        cleared: list[int] = []
        for index, entry in enumerate(self._entries):
            sub = entry.get_sub_collection()
            if sub is None:
                continue
            if self.has_circular_dependency(sub):
                logger.error(
                    "Clearing cyclic sub-collection '%s' at %s[%d]",
                    sub.name,
                    self.name,
                    index,
                )
                entry.clear_sub_collection()
                cleared.append(index)
        if cleared:
            self.invalidate()
        return cleared

    # ── Staging ──

    def rebuild_staging(self, recursive: bool = False) -> None:
        for index, entry in enumerate(self._entries):
            entry.update_staging(self, index, recursive=recursive)
        self.invalidate()

    def asset_paths(self, flags: LoadingFlags = LoadingFlags.DEFAULT) -> set[str]:
        from .hierarchy import collect_asset_paths

        return collect_asset_paths(self, flags)

    # ── Cache lifecycle ──

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def include_zero_weight(self) -> bool:
        return self.do_not_ignore_invalid_entries

    def load_cache(self) -> IndexRegistry:
        """Return the compiled registry, building it on first access."""
        registry = self._registry
        if registry is not None:
            return registry

        with self._cache_lock:
            # Another thread may have finished the build while we waited
            if self._registry is None:
                self._state = CacheState.COMPILING
                try:
                    self._registry = self._build_registry()
                except Exception:
                    self._state = CacheState.EMPTY
                    raise
                self._state = CacheState.READY
            registry = self._registry

        self._warm_sub_collections(registry)
        return registry

    def compile(self) -> IndexRegistry:
        return self.load_cache()

    def invalidate(self) -> None:
        """Drop the compiled registry. Callers must not invalidate during reads."""
        with self._cache_lock:
            self._registry = None
            self._state = CacheState.EMPTY

    def _build_registry(self) -> IndexRegistry:
        members: list[tuple[int, int, str | None]] = []
        for index, entry in enumerate(self._entries):
            if not entry.validate_for(self):
                continue
            entry.build_micro_cache()
            members.append((index, entry.weight, entry.category))

        registry = IndexRegistry.compile(
            members, include_zero_weight=self.include_zero_weight
        )
        logger.debug(
            "Compiled '%s': %d/%d entries, total weight %d, %d categories",
            self.name,
            len(registry.main),
            len(self._entries),
            registry.total_weight,
            len(registry.categories),
        )
        return registry

    def _warm_sub_collections(self, registry: IndexRegistry) -> None:
        # Runs after publishing, so a collection already READY returns at once
        for index in registry.main.order_indices:
            sub = self._entries[index].get_sub_collection()
            if sub is not None and sub._registry is None:
                sub.load_cache()

    def valid_entry_count(self) -> int:
        return len(self.load_cache().main)

    def category_names(self) -> list[str]:
        return sorted(self.load_cache().categories)

    # ── Resolution ──

    def get_entry_at(
        self,
        index: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        """Entry at the `index`-th included position. Does not descend."""
        picked = self.load_cache().main.pick_ascending(index)
        if picked is None:
            return None
        return self.get_entry_at_raw(picked, tag_inheritance, tags)

    def get_entry_at_raw(
        self,
        position: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        """Entry at a raw list position, with the same tag merging as get_entry_at."""
        entry = self.entry_at_raw(position)
        if entry is None:
            return None
        if tags is not None:
            sub = entry.get_sub_collection()
            if sub is not None and tag_inheritance & TagInheritance.COLLECTION:
                tags |= sub.collection_tags
            if tag_inheritance & TagInheritance.ASSET:
                tags |= entry.tags
        return EntryAccessResult(entry, self)

    def get_entry(
        self,
        index: int,
        seed: int,
        pick_mode: PickMode = PickMode.ASCENDING,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        """Pick at the top level with `pick_mode`, then descend weighted-randomly."""
        request = seed if pick_mode.is_random else index
        return self._resolve_top(
            self.load_cache().main, request, pick_mode, seed * 2, tag_inheritance, tags
        )

    def get_entry_random(
        self,
        seed: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        return self._resolve_top(
            self.load_cache().main,
            seed,
            PickMode.RANDOM,
            seed + 1,
            tag_inheritance,
            tags,
            depth_mode=PickMode.RANDOM,
        )

    def get_entry_weighted_random(
        self,
        seed: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        return self._resolve_top(
            self.load_cache().main,
            seed,
            PickMode.WEIGHTED_RANDOM,
            seed * 2,
            tag_inheritance,
            tags,
        )

    def get_entry_in_category(
        self,
        category: str,
        index: int,
        seed: int,
        pick_mode: PickMode = PickMode.ASCENDING,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        found = self.load_cache().category(category)
        if found is None:
            return None
        request = seed if pick_mode.is_random else index
        return self._resolve_top(
            found, request, pick_mode, seed * 2, tag_inheritance, tags
        )

    def get_entry_random_in_category(
        self,
        category: str,
        seed: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        found = self.load_cache().category(category)
        if found is None:
            return None
        return self._resolve_top(
            found,
            seed,
            PickMode.RANDOM,
            seed + 1,
            tag_inheritance,
            tags,
            depth_mode=PickMode.RANDOM,
        )

    def get_entry_weighted_random_in_category(
        self,
        category: str,
        seed: int,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
    ) -> EntryAccessResult | None:
        found = self.load_cache().category(category)
        if found is None:
            return None
        return self._resolve_top(
            found, seed, PickMode.WEIGHTED_RANDOM, seed * 2, tag_inheritance, tags
        )

    def _resolve_top(
        self,
        index: WeightedIndex,
        request: int,
        pick_mode: PickMode,
        sub_seed: int,
        tag_inheritance: TagInheritance,
        tags: set[str] | None,
        depth_mode: PickMode = PickMode.WEIGHTED_RANDOM,
    ) -> EntryAccessResult | None:
        picked = index.pick(request, pick_mode)
        if picked is None:
            return None
        entry = self._entries[picked]

        if tags is not None:
            if tag_inheritance & TagInheritance.ROOT_COLLECTION:
                tags |= self.collection_tags
            if tag_inheritance & TagInheritance.ROOT_ASSET:
                tags |= entry.tags

        return self._descend(entry, sub_seed, depth_mode, tag_inheritance, tags)

    def _descend(
        self,
        entry: Entry,
        seed: int,
        depth_mode: PickMode,
        tag_inheritance: TagInheritance,
        tags: set[str] | None,
    ) -> EntryAccessResult | None:
        if not entry.is_sub_collection:
            if tags is not None and tag_inheritance & TagInheritance.ASSET:
                tags |= entry.tags
            return EntryAccessResult(entry, self)

        sub = entry.get_sub_collection()
        if sub is None:
            return None

        if tags is not None:
            if tag_inheritance & TagInheritance.HIERARCHY:
                tags |= entry.tags
            if tag_inheritance & TagInheritance.COLLECTION:
                tags |= sub.collection_tags

        main = sub.load_cache().main
        if depth_mode == PickMode.RANDOM:
            picked, next_seed = main.pick_random(seed), seed + 1
        else:
            picked, next_seed = main.pick_weighted_random(seed), seed * 2
        if picked is None:
            return None
        return sub._descend(
            sub._entries[picked], next_seed, depth_mode, tag_inheritance, tags
        )
