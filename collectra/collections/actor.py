"""Actor collections: leaf entries that spawn an actor class."""

from pydantic import Field

from ..core.collection import Collection, register_collection_type
from ..core.models.entry import Entry


class ActorEntry(Entry):
    """Actor leaf entry. `asset_path` names the actor blueprint or class path."""

    actor_class: str | None = Field(
        default=None, description="Native class name when no blueprint path is set"
    )

    def validate_for(self, collection: Collection) -> bool:
        if (
            not self.is_sub_collection
            and not self.asset_path
            and self.actor_class
            and self.weight > 0
        ):
            return True
        return super().validate_for(collection)


@register_collection_type("actor")
class ActorCollection(Collection):
    entry_type = ActorEntry
