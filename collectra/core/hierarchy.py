"""Graph operations over collections linked by sub-collection entries.

- Cycle detection, used as the gate when a new edge is created
- Leaf counting and flattening of a hierarchy into one flat collection
- Asset path collection
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models.entry import Entry, LoadingFlags

if TYPE_CHECKING:
    from .collection import Collection

logger = logging.getLogger(__name__)


def has_circular_dependency(
    candidate: Collection, visited: set[Collection] | None = None
) -> bool:
    """True if `candidate` reaches any collection already on the current path.

    `visited` holds the collections on the path from the root. Each collection
    is removed again on backtrack, unlike an insert-only visited set, so a
    collection shared by two branches (a diamond) is not a cycle.
    """
    if visited is None:
        visited = set()
    if candidate in visited:
        return True

    visited.add(candidate)
    try:
        for entry in candidate.entries:
            sub = entry.get_sub_collection()
            if sub is not None and has_circular_dependency(sub, visited):
                return True
    finally:
        visited.discard(candidate)
    return False


def count_leaves(collection: Collection) -> int:
    """Number of leaves reached by walking every included entry depth-first."""
    total = 0
    registry = collection.load_cache()
    for index in registry.main.order_indices:
        entry = collection.entries[index]
        if not entry.is_sub_collection:
            total += 1
            continue
        sub = entry.get_sub_collection()
        if sub is not None:
            total += count_leaves(sub)
    return total


def flatten(source: Collection, target: Collection) -> bool:
    """Copy every leaf of `source`'s hierarchy into `target` with inherited tags.

    Returns False (target untouched) when the kinds differ anywhere in the
    hierarchy, when source is target, or when source contains a cycle.
    """
    if source.type_id != target.type_id:
        logger.warning(
            "Cannot flatten %s '%s' into %s '%s': collection kinds differ",
            source.type_id,
            source.name,
            target.type_id,
            target.name,
        )
        return False
    if source is target:
        logger.warning("Cannot flatten '%s' into itself", source.name)
        return False
    if has_circular_dependency(source):
        logger.warning("Cannot flatten '%s': hierarchy contains a cycle", source.name)
        return False
    mismatched = _foreign_collection(source, target.entry_type)
    if mismatched is not None:
        logger.warning(
            "Cannot flatten '%s' into '%s': sub-collection '%s' holds %s entries",
            source.name,
            target.name,
            mismatched.name,
            mismatched.type_id,
        )
        return False

    expected = count_leaves(source)
    leaves: list[Entry] = []
    _collect_leaves(source, set(), leaves)

    if len(leaves) != expected:
        logger.debug(
            "Flatten of '%s' wrote %d leaves, expected %d", source.name, len(leaves), expected
        )

    target.init_num_entries(0)
    target.entries.extend(leaves)
    target.invalidate()
    logger.debug("Flattened '%s' into '%s': %d leaves", source.name, target.name, len(leaves))
    return True


def _foreign_collection(collection: Collection, entry_type: type[Entry]) -> Collection | None:
    """First reachable collection whose entries are not `entry_type`."""
    if not issubclass(collection.entry_type, entry_type):
        return collection
    for entry in collection.entries:
        sub = entry.get_sub_collection()
        if sub is None:
            continue
        found = _foreign_collection(sub, entry_type)
        if found is not None:
            return found
    return None


def _collect_leaves(
    collection: Collection, inherited: set[str], out: list[Entry]
) -> None:
    registry = collection.load_cache()
    for index in registry.main.order_indices:
        entry = collection.entries[index]
        if not entry.is_sub_collection:
            leaf = entry.model_copy(deep=True)
            leaf.tags = inherited | entry.tags
            out.append(leaf)
            continue

        sub = entry.get_sub_collection()
        if sub is None:
            continue
        _collect_leaves(sub, inherited | entry.tags | sub.collection_tags, out)


def collect_asset_paths(
    collection: Collection, flags: LoadingFlags = LoadingFlags.DEFAULT
) -> set[str]:
    """Paths a collection depends on.

    DEFAULT collects this collection's leaf asset paths. RECURSIVE adds the
    leaves of every reachable sub-collection. RECURSIVE_COLLECTIONS_ONLY walks
    the same graph but collects the names of the sub-collections instead of
    any leaf path.
    """
    paths: set[str] = set()
    _collect_paths(collection, flags, paths, set())
    return paths


def _collect_paths(
    collection: Collection,
    flags: LoadingFlags,
    out: set[str],
    seen: set[int],
) -> None:
    if id(collection) in seen:
        return
    seen.add(id(collection))

    collections_only = flags == LoadingFlags.RECURSIVE_COLLECTIONS_ONLY
    for entry in collection.entries:
        if not entry.is_sub_collection:
            if not collections_only:
                out |= entry.asset_paths()
            continue
        if flags == LoadingFlags.DEFAULT:
            continue
        sub = entry.get_sub_collection()
        if sub is None:
            continue
        if collections_only and sub.name:
            out.add(sub.name)
        _collect_paths(sub, flags, out, seen)
