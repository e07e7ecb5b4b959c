"""Persisted library format: a YAML document listing collections by name.

Entries are kept as raw mappings here and validated against the entry model
of their collection's kind when the library is built (see CollectionLibrary).
A sub-collection entry names its target through `sub_collection_ref`.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from .entry import AssetGrammar, CollectionGrammar, GlobalGrammarRule


class LibraryMeta(BaseModel):
    """Metadata about a library file."""

    name: str = Field(default="library", description="Short identifier for the library")
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.now)


class CollectionSpec(BaseModel):
    """One collection as written to disk."""

    name: str = Field(min_length=1)
    kind: str = Field(default="base", description="Registered collection kind")
    collection_tags: list[str] = Field(default_factory=list)
    do_not_ignore_invalid_entries: bool | None = Field(
        default=None, description="Unset takes resolution.include_zero_weight from config"
    )
    global_asset_grammar: AssetGrammar = Field(default_factory=AssetGrammar)
    global_grammar_rule: GlobalGrammarRule = GlobalGrammarRule.PER_ENTRY
    collection_grammar: CollectionGrammar = Field(default_factory=CollectionGrammar)
    entries: list[dict[str, Any]] = Field(default_factory=list)


class LibrarySpec(BaseModel):
    """A set of named collections that may reference each other."""

    meta: LibraryMeta = Field(default_factory=LibraryMeta)
    collections: list[CollectionSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> "LibrarySpec":
        seen: set[str] = set()
        for spec in self.collections:
            if spec.name in seen:
                raise ValueError(f"Duplicate collection name '{spec.name}'")
            seen.add(spec.name)
        return self

    def get(self, name: str) -> CollectionSpec | None:
        for spec in self.collections:
            if spec.name == name:
                return spec
        return None

    def to_yaml(self, path: Path | str) -> None:
        """Save the library to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.dump(
                data, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "LibrarySpec":
        """Load a library from a YAML file."""
        path = Path(path)

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Library YAML must parse to an object")

        return cls.model_validate(data)

    def summary(self) -> str:
        """Get a text summary of the library."""
        lines = [f"Library: {self.meta.name}"]
        if self.meta.description:
            lines.append(self.meta.description)
        lines.append(f"Collections: {len(self.collections)}")
        for spec in self.collections:
            lines.append(f"  - {spec.name} ({spec.kind}): {len(spec.entries)} entries")
        return "\n".join(lines)
