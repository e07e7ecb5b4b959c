"""Pack resolved picks into 64-bit ids and back.

A pick id is `collection_id << 32 | entry_index << 16 | (secondary + 1)`,
where `collection_id = base_hash << 16 | ordinal` and `ordinal` is the order
in which the packer first saw the collection. `secondary` is a variant pick
(e.g. a material variant) and -1 when there is none.

The packer's collection table can be written out as rows and read back by an
unpacker, which then resolves ids against the same collections.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from ..core.collection import Collection, EntryAccessResult

if TYPE_CHECKING:
    from ..library import CollectionLibrary

logger = logging.getLogger(__name__)

COLLECTION_ID_COLUMN = "collection_idx"
COLLECTION_NAME_COLUMN = "collection_path"


def h32(a: int, b: int) -> int:
    return ((a & 0xFFFF) << 16) | (b & 0xFFFF)


def h32_split(value: int) -> tuple[int, int]:
    return (value >> 16) & 0xFFFF, value & 0xFFFF


def h64(a: int, b: int) -> int:
    return ((a & 0xFFFFFFFF) << 32) | (b & 0xFFFFFFFF)


def h64_split(value: int) -> tuple[int, int]:
    return (value >> 32) & 0xFFFFFFFF, value & 0xFFFFFFFF


class PickPacker:
    """Assigns collection ids and packs (collection, index, secondary) picks."""

    def __init__(self, base_hash: int = 0):
        self.base_hash = base_hash & 0xFFFF
        self._collections: list[Collection] = []
        self._ids: dict[int, int] = {}
        self._lock = threading.Lock()

    def pick_id(self, collection: Collection, index: int, secondary: int = -1) -> int:
        item = h32(index, secondary + 1)

        collection_id = self._ids.get(id(collection))
        if collection_id is not None:
            return h64(collection_id, item)

        with self._lock:
            collection_id = self._ids.get(id(collection))
            if collection_id is None:
                collection_id = h32(self.base_hash, len(self._collections))
                self._collections.append(collection)
                self._ids[id(collection)] = collection_id
        return h64(collection_id, item)

    def pick_id_for(self, result: EntryAccessResult, secondary: int = -1) -> int:
        """Pack a resolved entry by its position in its host collection."""
        # Identity, not equality: two entries can hold identical fields
        position = next(
            i for i, entry in enumerate(result.host.entries) if entry is result.entry
        )
        return self.pick_id(result.host, position, secondary)

    def packed_collections(self) -> list[tuple[int, Collection]]:
        with self._lock:
            return [(self._ids[id(c)], c) for c in self._collections]

    def to_rows(self) -> list[dict[str, Any]]:
        """Collection table as rows: one `{collection_idx, collection_path}` per collection."""
        return [
            {COLLECTION_ID_COLUMN: collection_id, COLLECTION_NAME_COLUMN: collection.name}
            for collection_id, collection in self.packed_collections()
        ]


class PickUnpacker:
    """Maps packed ids back to collections and entries."""

    def __init__(self):
        self._collections: dict[int, Collection] = {}
        self.num_unique_entries = 0

    def register(self, collection_id: int, collection: Collection) -> bool:
        existing = self._collections.get(collection_id)
        if existing is not None:
            if existing is collection:
                return True
            logger.error(
                "Collection id collision: %d is already '%s', not '%s'",
                collection_id,
                existing.name,
                collection.name,
            )
            return False

        self._collections[collection_id] = collection
        self.num_unique_entries += collection.valid_entry_count()
        return True

    def unpack_rows(
        self, rows: Iterable[Mapping[str, Any]], library: CollectionLibrary
    ) -> bool:
        """Register every row of a packer's table, resolving names through `library`."""
        rows = list(rows)
        if not rows:
            logger.error("Collection table is empty")
            return False

        for row in rows:
            if COLLECTION_ID_COLUMN not in row or COLLECTION_NAME_COLUMN not in row:
                logger.error("Collection table row is missing required columns: %s", row)
                return False
            collection = library.get(row[COLLECTION_NAME_COLUMN])
            if collection is None:
                logger.error("Collection '%s' could not be loaded", row[COLLECTION_NAME_COLUMN])
                return False
            if not self.register(int(row[COLLECTION_ID_COLUMN]), collection):
                return False
        return True

    def unpack(self, pick_id: int) -> tuple[Collection, int, int] | None:
        """(collection, entry_index, secondary) for a packed id, or None."""
        collection_id, item = h64_split(pick_id)
        index, secondary = h32_split(item)

        collection = self._collections.get(collection_id)
        if collection is None or not collection.is_valid_index(index):
            return None
        return collection, index, secondary - 1

    def resolve(self, pick_id: int) -> EntryAccessResult | None:
        unpacked = self.unpack(pick_id)
        if unpacked is None:
            return None
        collection, index, _ = unpacked
        return collection.get_entry_at_raw(index)

    def build_partitions(self, pick_ids: Iterable[int]) -> dict[int, list[int]]:
        """Group item positions by pick id, in first-seen order."""
        partitions: dict[int, list[int]] = {}
        for position, pick_id in enumerate(pick_ids):
            partitions.setdefault(pick_id, []).append(position)
        return partitions
