"""Mesh collections: leaf entries with weighted material variants.

A mesh entry may carry variants in one of two shapes:
- SINGLE: a list of weighted materials written to one slot (`slot_index`)
- MULTI: a list of weighted override sets, each writing several slots

Variants are picked through the entry's MicroCache, built when the entry is
compiled into its collection's index.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from ..core.collection import Collection, register_collection_type
from ..core.index import MicroCache
from ..core.models.entry import Entry, PickMode

logger = logging.getLogger(__name__)


class MaterialVariantsMode(str, Enum):
    NONE = "none"
    SINGLE = "single"
    MULTI = "multi"


class MaterialVariant(BaseModel):
    """A weighted material for the entry's single variant slot."""

    weight: int = Field(default=0, ge=0)
    material: str


class MaterialOverride(BaseModel):
    slot_index: int = -1
    material: str


class MaterialOverrideSet(BaseModel):
    """A weighted group of slot overrides applied together."""

    weight: int = Field(default=0, ge=0)
    overrides: list[MaterialOverride] = Field(default_factory=list)

    def highest_slot_index(self) -> int:
        return max((o.slot_index for o in self.overrides), default=-1)


@dataclass(frozen=True)
class MeshMicroCache(MicroCache):
    """Variant index plus the highest material slot any variant writes."""

    highest_slot_index: int = -1


class MeshEntry(Entry):
    """Mesh leaf entry. `asset_path` is the mesh; variants pick materials."""

    variant_mode: MaterialVariantsMode = MaterialVariantsMode.NONE
    slot_index: int = -1
    material_variants: list[MaterialVariant] = Field(default_factory=list)
    material_variant_sets: list[MaterialOverrideSet] = Field(default_factory=list)

    def build_micro_cache(self) -> None:
        if self.is_sub_collection or self.variant_mode == MaterialVariantsMode.NONE:
            self._micro_cache = None
            return

        if self.variant_mode == MaterialVariantsMode.SINGLE:
            weights = [v.weight for v in self.material_variants]
            highest = self.slot_index
        else:
            weights = [s.weight for s in self.material_variant_sets]
            highest = max(
                (s.highest_slot_index() for s in self.material_variant_sets),
                default=-1,
            )

        cache = MeshMicroCache.from_weights(weights)
        self._micro_cache = dataclasses.replace(cache, highest_slot_index=highest)

    def pick_variant(
        self, request: int, mode: PickMode = PickMode.WEIGHTED_RANDOM
    ) -> int | None:
        """Variant position for `request`, or None when the entry has no variants."""
        cache = self.micro_cache
        if cache is None:
            return None
        return cache.pick(request, mode)

    def materials_for(self, pick: int | None) -> dict[int, str]:
        """Slot -> material written by variant `pick`. Slot -1 writes slot 0."""
        if pick is None or pick < 0:
            return {}

        if self.variant_mode == MaterialVariantsMode.SINGLE:
            if pick >= len(self.material_variants):
                return {}
            slot = 0 if self.slot_index == -1 else self.slot_index
            return {slot: self.material_variants[pick].material}

        if self.variant_mode == MaterialVariantsMode.MULTI:
            if pick >= len(self.material_variant_sets):
                return {}
            return {
                (0 if o.slot_index == -1 else o.slot_index): o.material
                for o in self.material_variant_sets[pick].overrides
            }

        return {}

    def asset_paths(self) -> set[str]:
        paths = super().asset_paths()
        if self.is_sub_collection:
            return paths
        if self.variant_mode == MaterialVariantsMode.SINGLE:
            paths.update(v.material for v in self.material_variants)
        elif self.variant_mode == MaterialVariantsMode.MULTI:
            for variant_set in self.material_variant_sets:
                paths.update(o.material for o in variant_set.overrides)
        return paths


@register_collection_type("mesh")
class MeshCollection(Collection):
    entry_type = MeshEntry
