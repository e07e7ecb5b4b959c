"""Compiled weighted indices.

A WeightedIndex is built once from `(original_index, weight)` pairs and then
only read. It never re-numbers: every pick returns a position in the owning
Collection's entry list, not a position in the filtered subset.

    order_indices       entry positions in insertion order (weight > 0 only,
                        unless zero weights are explicitly included)
    weight_rank         positions into order_indices, stable-sorted by weight
    cumulative_weights  running weight sum in weight_rank order

An IndexRegistry holds the "main" index over every included entry plus one
index per category name.
"""

from __future__ import annotations

import bisect
import random
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from .models.entry import PickMode


@dataclass(frozen=True)
class WeightedIndex:
    """Immutable array-based index supporting the six pick modes."""

    name: str | None = None
    order_indices: tuple[int, ...] = ()
    weights: tuple[int, ...] = ()
    weight_rank: tuple[int, ...] = ()
    cumulative_weights: tuple[int, ...] = ()

    @classmethod
    def compile(
        cls,
        members: Iterable[tuple[int, int]],
        name: str | None = None,
        include_zero_weight: bool = False,
    ) -> "WeightedIndex":
        """Build an index from `(original_index, weight)` pairs in original order."""
        order: list[int] = []
        weights: list[int] = []
        for original_index, weight in members:
            if weight < 0:
                raise ValueError(f"Negative weight {weight} at index {original_index}")
            if weight == 0 and not include_zero_weight:
                continue
            order.append(original_index)
            weights.append(weight)

        # sorted() is stable: equal weights keep insertion order
        rank = sorted(range(len(order)), key=weights.__getitem__)

        cumulative: list[int] = []
        running = 0
        for position in rank:
            running += weights[position]
            cumulative.append(running)

        return cls(
            name=name,
            order_indices=tuple(order),
            weights=tuple(weights),
            weight_rank=tuple(rank),
            cumulative_weights=tuple(cumulative),
        )

    def __len__(self) -> int:
        return len(self.order_indices)

    @property
    def is_empty(self) -> bool:
        return not self.order_indices

    @property
    def total_weight(self) -> int:
        return self.cumulative_weights[-1] if self.cumulative_weights else 0

    # ── Picks ──

    def pick(self, request: int, mode: PickMode = PickMode.ASCENDING) -> int | None:
        """Map `request` (ordinal or seed, depending on `mode`) to an entry position."""
        if mode == PickMode.ASCENDING:
            return self.pick_ascending(request)
        if mode == PickMode.DESCENDING:
            return self.pick_descending(request)
        if mode == PickMode.WEIGHT_ASCENDING:
            return self.pick_weight_ascending(request)
        if mode == PickMode.WEIGHT_DESCENDING:
            return self.pick_weight_descending(request)
        if mode == PickMode.RANDOM:
            return self.pick_random(request)
        return self.pick_weighted_random(request)

    def _in_range(self, request: int) -> bool:
        return 0 <= request < len(self.order_indices)

    def pick_ascending(self, request: int) -> int | None:
        if not self._in_range(request):
            return None
        return self.order_indices[request]

    def pick_descending(self, request: int) -> int | None:
        if not self._in_range(request):
            return None
        return self.order_indices[len(self.order_indices) - 1 - request]

    def pick_weight_ascending(self, request: int) -> int | None:
        if not self._in_range(request):
            return None
        return self.order_indices[self.weight_rank[request]]

    def pick_weight_descending(self, request: int) -> int | None:
        if not self._in_range(request):
            return None
        return self.order_indices[self.weight_rank[len(self.weight_rank) - 1 - request]]

    def pick_random(self, seed: int) -> int | None:
        if self.is_empty:
            return None
        draw = random.Random(seed).randrange(len(self.order_indices))
        return self.order_indices[self.weight_rank[draw]]

    def pick_weighted_random(self, seed: int) -> int | None:
        total = self.total_weight
        if total <= 0:
            return None
        threshold = random.Random(seed).randrange(total)
        # First cumulative value strictly above the draw; zero-weight members
        # share their predecessor's cumulative value and are never selected.
        found = bisect.bisect_right(self.cumulative_weights, threshold)
        return self.order_indices[self.weight_rank[found]]

    def weight_of(self, original_index: int) -> int | None:
        """Weight recorded for an entry position, or None if it is not a member."""
        try:
            return self.weights[self.order_indices.index(original_index)]
        except ValueError:
            return None


@dataclass(frozen=True)
class MicroCache(WeightedIndex):
    """Per-entry variant index (e.g. material variants of a mesh entry).

    Variant weights are offset by one, so a zero-weight variant stays
    pickable. Picks return a variant position.
    """

    @classmethod
    def from_weights(cls, weights: Sequence[int]) -> "MicroCache":
        return cls.compile(
            ((i, max(0, w) + 1) for i, w in enumerate(weights)),
            include_zero_weight=True,
        )


@dataclass(frozen=True)
class IndexRegistry:
    """The "main" index plus one independently compiled index per category."""

    main: WeightedIndex = field(default_factory=WeightedIndex)
    categories: Mapping[str, WeightedIndex] = field(default_factory=dict)

    @classmethod
    def compile(
        cls,
        members: Sequence[tuple[int, int, str | None]],
        include_zero_weight: bool = False,
    ) -> "IndexRegistry":
        """Compile from `(original_index, weight, category)` triples."""
        grouped: dict[str, list[tuple[int, int]]] = {}
        for original_index, weight, category in members:
            if category is not None:
                grouped.setdefault(category, []).append((original_index, weight))

        main = WeightedIndex.compile(
            ((i, w) for i, w, _ in members), include_zero_weight=include_zero_weight
        )
        categories = {
            name: WeightedIndex.compile(
                pairs, name=name, include_zero_weight=include_zero_weight
            )
            for name, pairs in grouped.items()
        }
        return cls(main=main, categories=categories)

    @property
    def is_empty(self) -> bool:
        return self.main.is_empty

    @property
    def total_weight(self) -> int:
        return self.main.total_weight

    def category(self, name: str | None) -> WeightedIndex | None:
        if name is None:
            return None
        return self.categories.get(name)
