"""Per-item picking policies layered on top of Collection resolution.

A batch caller asks for one entry per item (a point, a row). DistributionDetails
says how: by weighted or uniform random on the item's seed, or by the item's
index after optional remapping into the collection's range and an
out-of-range policy. Categories narrow the pick first.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from pydantic import BaseModel, Field

from ..core.collection import Collection, EntryAccessResult
from ..core.index import MicroCache
from ..core.models.entry import PickMode, TagInheritance

logger = logging.getLogger(__name__)


class Distribution(str, Enum):
    INDEX = "index"
    RANDOM = "random"
    WEIGHTED_RANDOM = "weighted_random"


class IndexSafety(str, Enum):
    """What to do with an index outside [0, max_index]."""

    IGNORE = "ignore"
    TILE = "tile"
    CLAMP = "clamp"
    YOYO = "yoyo"


class TruncateMode(str, Enum):
    NONE = "none"
    ROUND = "round"
    CEIL = "ceil"
    FLOOR = "floor"


def sanitize_index(index: int, max_index: int, safety: IndexSafety) -> int:
    """Bring `index` into [0, max_index]; -1 when it cannot be (IGNORE or empty range)."""
    if max_index < 0:
        return -1

    if safety == IndexSafety.TILE:
        return index % (max_index + 1)
    if safety == IndexSafety.CLAMP:
        return min(max(index, 0), max_index)
    if safety == IndexSafety.YOYO:
        if max_index == 0:
            return 0
        period = 2 * max_index
        offset = index % period
        return offset if offset <= max_index else period - offset

    return index if 0 <= index <= max_index else -1


def truncate(value: float, mode: TruncateMode) -> float:
    if mode == TruncateMode.ROUND:
        return float(round(value))
    if mode == TruncateMode.CEIL:
        return float(math.ceil(value))
    if mode == TruncateMode.FLOOR:
        return float(math.floor(value))
    return value


def remap(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


class DistributionDetails(BaseModel):
    """How one entry is chosen per item."""

    distribution: Distribution = Distribution.WEIGHTED_RANDOM
    pick_mode: PickMode = Field(
        default=PickMode.ASCENDING, description="Index distribution only"
    )
    index_safety: IndexSafety = IndexSafety.TILE
    remap_index_to_collection_size: bool = False
    truncate: TruncateMode = TruncateMode.NONE
    use_categories: bool = False


class DistributionHelper:
    """Resolve one entry per item from a collection under DistributionDetails."""

    def __init__(self, collection: Collection, details: DistributionDetails | None = None):
        self.collection = collection
        self.details = details or DistributionDetails()

    def init(self) -> bool:
        """Compile the collection up front. False when it has nothing to pick."""
        if self.collection.load_cache().is_empty:
            logger.error("Distribution over an empty collection '%s'", self.collection.name)
            return False
        return True

    def get_entry(
        self,
        index: int,
        seed: int,
        category: str | None = None,
        tag_inheritance: TagInheritance = TagInheritance.NONE,
        tags: set[str] | None = None,
        max_input_index: float | None = None,
    ) -> EntryAccessResult | None:
        working = self.collection

        if self.details.use_categories:
            found = self.collection.load_cache().category(category)
            if found is None or found.is_empty:
                return None

            if len(found) == 1:
                picked = found.order_indices[0]
            else:
                picked = found.pick_weighted_random(seed)
            result = self.collection.get_entry_at_raw(picked, tag_inheritance, tags)
            if result is None or not result.entry.has_valid_sub_collection():
                return result
            working = result.entry.get_sub_collection()

        distribution = self.details.distribution
        if distribution == Distribution.WEIGHTED_RANDOM:
            return working.get_entry_weighted_random(seed, tag_inheritance, tags)
        if distribution == Distribution.RANDOM:
            return working.get_entry_random(seed, tag_inheritance, tags)

        max_index = len(working.load_cache().main) - 1
        picked_index = float(index)
        if (
            self.details.remap_index_to_collection_size
            and max_input_index is not None
            and max_input_index > 0
        ):
            picked_index = remap(picked_index, 0, max_input_index, 0, max_index)
            picked_index = truncate(picked_index, self.details.truncate)

        sanitized = sanitize_index(int(picked_index), max_index, self.details.index_safety)
        return working.get_entry(
            sanitized, seed, self.details.pick_mode, tag_inheritance, tags
        )


class MicroDistributionHelper:
    """Pick a variant from an entry's MicroCache under the same distributions."""

    def __init__(self, details: DistributionDetails | None = None):
        self.details = details or DistributionDetails()

    def get_pick(self, micro_cache: MicroCache | None, index: int, seed: int) -> int:
        """Variant position, or -1 when nothing can be picked."""
        if micro_cache is None or micro_cache.is_empty:
            return -1

        distribution = self.details.distribution
        if distribution == Distribution.WEIGHTED_RANDOM:
            picked = micro_cache.pick_weighted_random(seed)
        elif distribution == Distribution.RANDOM:
            picked = micro_cache.pick_random(seed)
        else:
            picked = micro_cache.pick(index, self.details.pick_mode)
        return -1 if picked is None else picked
