"""In-memory target store implementing the store gateway and working set ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import TYPE_CHECKING, Any, cast

from bulkimport.domain.errors import StoreValidationError
from bulkimport.domain.model import (
    Item,
    ItemSet,
    Media,
    Property,
    Resource,
    ResourceClass,
    ResourceKind,
    ResourceTemplate,
    User,
    entity_type_for,
)
from bulkimport.domain.ports import StoreGateway, WorkingSet

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from bulkimport.domain.mapping_table import MappingTables

DEFAULT_TERMS = (
    "dcterms:title",
    "dcterms:identifier",
    "dcterms:description",
    "dcterms:creator",
    "dcterms:subject",
    "dcterms:date",
    "bibo:isbn",
)


@dataclass(slots=True)
class InMemoryTargetStore:
    resources: dict[int, Resource] = field(default_factory=dict[int, Resource])
    placeholders: dict[int, tuple[ResourceKind, str]] = field(
        default_factory=dict[int, tuple[ResourceKind, str]]
    )
    properties: dict[str, Property] = field(default_factory=dict[str, Property])
    users: dict[int, User] = field(default_factory=dict[int, User])
    templates: dict[int, ResourceTemplate] = field(default_factory=dict[int, ResourceTemplate])
    classes: dict[int, ResourceClass] = field(default_factory=dict[int, ResourceClass])
    ledger: list[tuple[str, ResourceKind, str, int | None]] = field(
        default_factory=list[tuple[str, ResourceKind, str, "int | None"]]
    )
    statements: list[str] = field(default_factory=list[str])
    _ids: count[int] = field(default_factory=lambda: count(1))

    def __post_init__(self) -> None:
        for position, term in enumerate(DEFAULT_TERMS, start=1):
            self.properties[term] = Property(term=term, id=position)

    def next_id(self) -> int:
        return next(self._ids)

    def property_term(self, property_id: int) -> str | None:
        for term, prop in self.properties.items():
            if prop.id == property_id:
                return term
        return None

    def add_user(self, email: str, name: str = "") -> User:
        user = User(email=email, name=name, id=len(self.users) + 1)
        self.users[user.id or 0] = user
        return user

    def add_template(self, label: str, title_term: str | None = None) -> ResourceTemplate:
        title_property_id = self.properties[title_term].id if title_term else None
        template = ResourceTemplate(
            label=label, title_property_id=title_property_id, id=len(self.templates) + 1
        )
        self.templates[template.id or 0] = template
        return template

    def add_resource[R: Resource](self, resource: R) -> R:
        resource.id = self.next_id()
        self.resources[resource.id] = resource
        return resource


class FakeStoreGateway:
    def __init__(self, store: InMemoryTargetStore, *, undeletable: Sequence[int] = ()) -> None:
        self.store = store
        self.undeletable = set(undeletable)

    def insert_placeholders(
        self, kind: ResourceKind, source_ids: Sequence[str], *, owner_id: int | None
    ) -> None:
        self.store.statements.append(f"insert {kind} x{len(source_ids)}")
        for source_id in source_ids:
            self.store.placeholders[self.store.next_id()] = (kind, source_id)

    def read_back_placeholders(self, kind: ResourceKind) -> list[tuple[str, int]]:
        self.store.statements.append(f"select {kind}")
        return [
            (marker, target_id)
            for target_id, (placeholder_kind, marker) in sorted(self.store.placeholders.items())
            if placeholder_kind is kind
        ]

    def finalize_placeholders(
        self,
        kind: ResourceKind,
        target_ids: Sequence[int],
        *,
        provisional_parent_id: int | None = None,
    ) -> None:
        self.store.statements.append(f"finalize {kind} x{len(target_ids)}")
        for target_id in target_ids:
            _, marker = self.store.placeholders.pop(target_id)
            entity = entity_type_for(kind)(id=target_id, title=marker)
            if isinstance(entity, Media):
                if provisional_parent_id is None:
                    raise StoreValidationError(["media.item_id may not be null"])
                parent = cast("Item", self.store.resources[provisional_parent_id])
                entity.item = parent
                parent.media.append(entity)
            self.store.resources[target_id] = entity

    def reassign_parents(self, kind: ResourceKind, pairs: Sequence[tuple[int, int]]) -> None:
        self.store.statements.append(f"update {kind} x{len(pairs)}")
        for child_id, parent_id in pairs:
            media = cast("Media", self.store.resources[child_id])
            parent = cast("Item", self.store.resources[parent_id])
            if media.item is not None and media in media.item.media:
                media.item.media.remove(media)
            media.item = parent
            parent.media.append(media)

    def resource_kind_of(self, resource_id: int) -> ResourceKind | None:
        resource = self.store.resources.get(resource_id)
        return None if resource is None else resource.kind

    def find_ids(
        self, kind: ResourceKind, identifier_name: str, candidates: Sequence[str]
    ) -> list[int]:
        wanted = set(candidates)
        found: list[int] = []
        for resource_id, resource in sorted(self.store.resources.items()):
            if resource.kind is not kind:
                continue
            if identifier_name == "o:id":
                if str(resource_id) in wanted:
                    found.append(resource_id)
                continue
            for value in resource.values:
                if self.store.property_term(value.property_id) != identifier_name:
                    continue
                if value.value in wanted or value.uri in wanted:
                    found.append(resource_id)
                    break
        return found

    def delete(
        self, kind: ResourceKind, ids: Sequence[int], *, continue_on_error: bool = True
    ) -> list[int]:
        deleted: list[int] = []
        for resource_id in ids:
            if resource_id in self.undeletable:
                if not continue_on_error:
                    raise StoreValidationError([f"#{resource_id} is locked"])
                continue
            resource = self.store.resources.get(resource_id)
            if resource is None or resource.kind is not kind:
                continue
            del self.store.resources[resource_id]
            deleted.append(resource_id)
        return deleted

    def save_mappings(self, run_id: str, tables: MappingTables) -> int:
        rows = [
            (run_id, table.kind, source_id, target_id)
            for table in tables
            for source_id, target_id in table.items()
        ]
        self.store.ledger.extend(rows)
        return len(rows)


class FakeWorkingSet:
    """Working set over the in-memory store, counting what it holds between clears."""

    def __init__(
        self,
        store: InMemoryTargetStore,
        *,
        reject: Callable[[Resource], list[str]] | None = None,
    ) -> None:
        self.store = store
        self.reject = reject
        self.loaded: set[int] = set()
        self.flushes = 0
        self.clears = 0

    def get(self, kind: ResourceKind, resource_id: int) -> Resource | None:
        resource = self.store.resources.get(resource_id)
        if resource is None or resource.kind is not kind:
            return None
        self.loaded.add(resource_id)
        return resource

    def load[T](self, entity_type: type[T], entity_id: int) -> T | None:
        sources: Mapping[type[Any], Mapping[int, object]] = {
            User: self.store.users,
            ResourceTemplate: self.store.templates,
            ResourceClass: self.store.classes,
        }
        if entity_type in sources:
            found = sources[entity_type].get(entity_id)
        else:
            found = self.store.resources.get(entity_id)
        return cast("T", found) if isinstance(found, entity_type) else None

    def add(self, entity: Resource) -> None:
        problems = self.reject(entity) if self.reject else []
        if problems:
            raise StoreValidationError({"resource": problems})
        if entity.id is None:
            entity.id = self.store.next_id()
        self.store.resources[entity.id] = entity
        self.loaded.add(entity.id)
        if isinstance(entity, Item):
            for media in entity.media:
                if media.id is None:
                    media.id = self.store.next_id()
                self.store.resources[media.id] = media
                self.loaded.add(media.id)

    def flush(self) -> None:
        self.flushes += 1

    def clear(self) -> None:
        self.clears += 1
        self.loaded.clear()

    def object_count(self) -> int:
        return len(self.loaded)

    def property_ids(self) -> Mapping[str, int]:
        return {term: prop.id for term, prop in self.store.properties.items() if prop.id}

    def find_user(self, key: str | int) -> User | None:
        for user in self.store.users.values():
            if key in (user.id, user.email, user.name):
                return user
        return None

    def find_template(self, key: str | int) -> ResourceTemplate | None:
        for template in self.store.templates.values():
            if key in (template.id, template.label):
                return template
        return None

    def find_class(self, key: str | int) -> ResourceClass | None:
        for resource_class in self.store.classes.values():
            if key in (resource_class.id, resource_class.term):
                return resource_class
        return None

    def find_property(self, term: str) -> Property | None:
        return self.store.properties.get(term)


def item_set_with(store: InMemoryTargetStore, *, is_open: bool = False) -> ItemSet:
    return store.add_resource(ItemSet(is_open=is_open))


if TYPE_CHECKING:
    _gateway_check: StoreGateway = FakeStoreGateway(InMemoryTargetStore())
    _working_set_check: WorkingSet = FakeWorkingSet(InMemoryTargetStore())
