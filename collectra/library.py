"""CollectionLibrary: the owner of a set of named collections.

Collections only reference each other weakly. The library holds the strong
references, builds collections from a LibrarySpec, and links
`sub_collection_ref` names through the cycle gate.
"""

import logging
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from .config import get_config
from .core.collection import Collection, collection_type
from .core.hierarchy import has_circular_dependency
from .core.models.library import CollectionSpec, LibraryMeta, LibrarySpec

logger = logging.getLogger(__name__)


class CollectionLibrary:
    """Named collections, loaded together and linked by name."""

    def __init__(self, meta: LibraryMeta | None = None):
        self.meta = meta or LibraryMeta()
        self._collections: dict[str, Collection] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._collections

    def __iter__(self) -> Iterator[Collection]:
        return iter(self._collections.values())

    def __len__(self) -> int:
        return len(self._collections)

    @property
    def names(self) -> list[str]:
        return list(self._collections)

    def add(self, collection: Collection) -> Collection:
        if not collection.name:
            raise ValueError("Library collections must be named")
        if collection.name in self._collections:
            raise ValueError(f"Collection '{collection.name}' already exists")
        self._collections[collection.name] = collection
        return collection

    def get(self, name: str) -> Collection | None:
        return self._collections.get(name)

    def remove(self, name: str) -> Collection | None:
        """Drop ownership. Weak references to it resolve to None once it is freed."""
        return self._collections.pop(name, None)

    # ── Linking ──

    def link(self) -> list[str]:
        """Resolve every `sub_collection_ref` by name.

        Returns problems found: dangling names, kind mismatches and refused
        cycles. Each leaves the entry unresolved, which resolves to no pick.
        """
        problems: list[str] = []
        for collection in self._collections.values():
            for index, entry in enumerate(collection.entries):
                if not entry.is_sub_collection or entry.has_valid_sub_collection():
                    continue
                ref = entry.sub_collection_ref
                target = self._collections.get(ref) if ref else None
                if target is None:
                    logger.warning(
                        "Unresolved sub-collection '%s' at %s[%d]", ref, collection.name, index
                    )
                    problems.append(f"{collection.name}[{index}]: unknown collection '{ref}'")
                    continue
                if not collection.accepts_sub_collection(target):
                    logger.error(
                        "Sub-collection '%s' at %s[%d] has the wrong kind",
                        ref,
                        collection.name,
                        index,
                    )
                    problems.append(
                        f"{collection.name}[{index}]: '{ref}' is a {target.type_id} "
                        f"collection, expected {collection.type_id}"
                    )
                    continue
                if not collection.assign_sub_collection(index, target):
                    problems.append(
                        f"{collection.name}[{index}]: '{ref}' would create a cycle"
                    )
        return problems

    def validate(self) -> list[str]:
        """Problems in the current graph, without changing it."""
        problems: list[str] = []
        for collection in self._collections.values():
            for index, entry in enumerate(collection.entries):
                if not entry.is_sub_collection:
                    continue
                sub = entry.get_sub_collection()
                if sub is None and entry.sub_collection_ref:
                    problems.append(
                        f"{collection.name}[{index}]: unresolved sub-collection "
                        f"'{entry.sub_collection_ref}'"
                    )
                elif sub is None:
                    problems.append(f"{collection.name}[{index}]: empty sub-collection reference")
            if has_circular_dependency(collection):
                problems.append(f"{collection.name}: hierarchy contains a cycle")
        return problems

    # ── YAML round-trip ──

    @classmethod
    def from_spec(cls, spec: LibrarySpec, link: bool = True) -> "CollectionLibrary":
        """Build every collection of `spec`, then link references by name.

        Raises KeyError for an unknown kind and ValidationError for bad entries.
        """
        library = cls(meta=spec.meta)
        for collection_spec in spec.collections:
            library.add(_build_collection(collection_spec))
        if link:
            library.link()
        return library

    def to_spec(self) -> LibrarySpec:
        return LibrarySpec(
            meta=self.meta,
            collections=[_collection_spec(c) for c in self._collections.values()],
        )

    @classmethod
    def load(cls, path: Path | str) -> "CollectionLibrary":
        logger.info("Loading library from %s", path)
        return cls.from_spec(LibrarySpec.from_yaml(path))

    def save(self, path: Path | str) -> None:
        self.to_spec().to_yaml(path)


def _build_collection(spec: CollectionSpec) -> Collection:
    collection_cls = collection_type(spec.kind)
    do_not_ignore = spec.do_not_ignore_invalid_entries
    if do_not_ignore is None:
        do_not_ignore = get_config().resolution.include_zero_weight
    collection = collection_cls(
        name=spec.name,
        collection_tags=set(spec.collection_tags),
        do_not_ignore_invalid_entries=do_not_ignore,
        global_asset_grammar=spec.global_asset_grammar,
        global_grammar_rule=spec.global_grammar_rule,
        collection_grammar=spec.collection_grammar,
    )
    for raw in spec.entries:
        try:
            entry = collection_cls.entry_type.model_validate(raw)
        except ValidationError:
            logger.error("Invalid entry in collection '%s': %s", spec.name, raw)
            raise
        collection.entries.append(entry)
    collection.rebuild_staging()
    return collection


def _collection_spec(collection: Collection) -> CollectionSpec:
    entries = []
    for entry in collection.entries:
        data = entry.model_dump(mode="json")
        data["tags"] = sorted(entry.tags)
        if entry.is_sub_collection:
            sub = entry.get_sub_collection()
            data["sub_collection_ref"] = sub.name if sub is not None else entry.sub_collection_ref
        entries.append(data)

    return CollectionSpec(
        name=collection.name,
        kind=collection.type_id,
        collection_tags=sorted(collection.collection_tags),
        do_not_ignore_invalid_entries=collection.do_not_ignore_invalid_entries,
        global_asset_grammar=collection.global_asset_grammar,
        global_grammar_rule=collection.global_grammar_rule,
        collection_grammar=collection.collection_grammar,
        entries=entries,
    )
