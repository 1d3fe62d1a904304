"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ResourceKind(StrEnum):
    """Tagged variant for the resource kinds the importer materializes.

    The value doubles as the polymorphic discriminator stored in
    ``resource.resource_type``.
    """

    ITEM_SETS = "item_sets"
    ITEMS = "items"
    MEDIA = "media"

    @property
    def parent(self) -> ResourceKind | None:
        """Kind whose rows every row of this kind must reference."""

        if self is ResourceKind.MEDIA:
            return ResourceKind.ITEMS
        return None

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[ResourceKind, str] = {
    ResourceKind.ITEM_SETS: "item set",
    ResourceKind.ITEMS: "item",
    ResourceKind.MEDIA: "media",
}

# Parents before children.
KIND_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.ITEM_SETS,
    ResourceKind.ITEMS,
    ResourceKind.MEDIA,
)


class Action(StrEnum):
    CREATE = "create"
    APPEND = "append"
    REVISE = "revise"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    SKIP = "skip"

    @property
    def requires_identity(self) -> bool:
        return self not in {Action.CREATE, Action.SKIP}

    @property
    def is_update(self) -> bool:
        return self in {Action.APPEND, Action.REVISE, Action.UPDATE, Action.REPLACE}


class CollectionAction(StrEnum):
    """Sub-action for dependent collections (identifiers, media, item sets)."""

    APPEND = "append"
    UPDATE = "update"


class UnidentifiedAction(StrEnum):
    CREATE = "create"
    SKIP = "skip"


class ProcessingMode(StrEnum):
    CONTINUE_ON_ERROR = "continue_on_error"
    STOP_ON_ERROR = "stop_on_error"
    DRY_RUN = "dry_run"


class ValueKind(StrEnum):
    """Which payload a value assignment carries."""

    LITERAL = "literal"
    URI = "uri"
    RESOURCE = "resource"
