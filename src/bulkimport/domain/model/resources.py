"""Persistent entities of the target content graph.

Plain dataclasses; the SQLAlchemy adapter maps them imperatively. Foreign
key columns that are not declared here still exist as mapped attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar

from bulkimport.domain.model.enums import ResourceKind


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class User:
    email: str
    name: str = ""
    role: str = "editor"
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Property:
    term: str
    label: str = ""
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class ResourceClass:
    term: str
    label: str = ""
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class ResourceTemplate:
    label: str
    title_property_id: int | None = None
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Value:
    property_id: int
    datatype: str = "literal"
    lang: str | None = None
    value: str | None = None
    uri: str | None = None
    value_resource_id: int | None = None
    is_public: bool = True
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Resource:
    KIND: ClassVar[ResourceKind]

    id: int | None = None
    owner: User | None = None
    resource_class: ResourceClass | None = None
    resource_template: ResourceTemplate | None = None
    thumbnail_id: int | None = None
    title: str | None = None
    is_public: bool = True
    created: datetime = field(default_factory=_utcnow)
    modified: datetime | None = None
    values: list[Value] = field(default_factory=list[Value])

    @property
    def kind(self) -> ResourceKind:
        return self.KIND


@dataclass(eq=False, kw_only=True)
class ItemSet(Resource):
    KIND: ClassVar[ResourceKind] = ResourceKind.ITEM_SETS

    is_open: bool = False


@dataclass(eq=False, kw_only=True)
class Item(Resource):
    KIND: ClassVar[ResourceKind] = ResourceKind.ITEMS

    item_sets: list[ItemSet] = field(default_factory=list[ItemSet])
    media: list[Media] = field(default_factory=list["Media"])


@dataclass(eq=False, kw_only=True)
class Media(Resource):
    KIND: ClassVar[ResourceKind] = ResourceKind.MEDIA

    item: Item | None = None
    ingester: str = ""
    renderer: str = ""
    data: dict[str, object] | None = None
    source: str | None = None
    media_type: str | None = None
    lang: str | None = None
    position: int = 0


_ENTITY_TYPES: dict[ResourceKind, type[Resource]] = {
    ResourceKind.ITEM_SETS: ItemSet,
    ResourceKind.ITEMS: Item,
    ResourceKind.MEDIA: Media,
}


def entity_type_for(kind: ResourceKind) -> type[Resource]:
    return _ENTITY_TYPES[kind]
