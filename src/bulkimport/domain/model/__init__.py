"""Domain model for the import core."""

from __future__ import annotations

from .drafts import RowMessages, SourceRecord, TargetDraft
from .enums import (
    KIND_ORDER,
    Action,
    CollectionAction,
    ProcessingMode,
    ResourceKind,
    UnidentifiedAction,
    ValueKind,
)
from .mapping import EntryMapping, Target
from .resources import (
    Item,
    ItemSet,
    Media,
    Property,
    Resource,
    ResourceClass,
    ResourceTemplate,
    User,
    Value,
    entity_type_for,
)
from .values import ValueAssignment

__all__ = [
    "KIND_ORDER",
    "Action",
    "CollectionAction",
    "EntryMapping",
    "Item",
    "ItemSet",
    "Media",
    "ProcessingMode",
    "Property",
    "Resource",
    "ResourceClass",
    "ResourceKind",
    "ResourceTemplate",
    "RowMessages",
    "SourceRecord",
    "Target",
    "TargetDraft",
    "UnidentifiedAction",
    "User",
    "Value",
    "ValueAssignment",
    "ValueKind",
    "entity_type_for",
]
