"""Concrete collection kinds.

Importing this package registers every kind with the collection registry.
"""

from .actor import ActorCollection, ActorEntry
from .mesh import (
    MaterialOverride,
    MaterialOverrideSet,
    MaterialVariant,
    MaterialVariantsMode,
    MeshCollection,
    MeshEntry,
    MeshMicroCache,
)

__all__ = [
    "ActorCollection",
    "ActorEntry",
    "MaterialOverride",
    "MaterialOverrideSet",
    "MaterialVariant",
    "MaterialVariantsMode",
    "MeshCollection",
    "MeshEntry",
    "MeshMicroCache",
]
