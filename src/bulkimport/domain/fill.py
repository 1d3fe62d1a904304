"""Second pass: hydrate reserved placeholders with their full value graph.

Every cross-reference is resolved through the mapping tables. The working
set is flushed and cleared every ``chunk_size`` entities; the main
resources are reloaded after each clear.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from bulkimport.domain.coercion import coerce
from bulkimport.domain.errors import MappingParityError
from bulkimport.domain.model import (
    Item,
    ItemSet,
    Media,
    Resource,
    ResourceClass,
    ResourceKind,
    ResourceTemplate,
    TargetDraft,
    User,
    Value,
    ValueAssignment,
    ValueKind,
)
from bulkimport.domain.model.values import (
    is_reference_datatype,
    is_uri_datatype,
    reference_datatype,
    reference_kind,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bulkimport.domain.context import ImportContext, MainResources
    from bulkimport.domain.mapping_table import MappingTables
    from bulkimport.domain.model import EntryMapping, SourceRecord
    from bulkimport.domain.ports import CapabilityRegistry, WorkingSet
    from bulkimport.domain.resolver import EntryResolver

log = getLogger(__name__)

DEFAULT_CHUNK_SIZE: Final = 100

type Filler = Callable[[ResourceHydrator, Resource, TargetDraft], None]


def log_draft_messages(draft: TargetDraft) -> None:
    prefix = f"Index #{draft.source_index}: " if draft.source_index is not None else ""
    for message in draft.messages.notices:
        log.info("%s%s", prefix, message)
    for message in draft.messages.warnings:
        log.warning("%s%s", prefix, message)
    for message in draft.messages.errors:
        log.error("%s%s", prefix, message)


class ResourceHydrator:
    """Apply drafts onto persistent entities and read entities back as drafts."""

    def __init__(
        self,
        *,
        working_set: WorkingSet,
        main_resources: MainResources,
        tables: MappingTables,
        registry: CapabilityRegistry,
        default_owner_id: int | None = None,
    ) -> None:
        self.working_set = working_set
        self.main_resources = main_resources
        self.tables = tables
        self.registry = registry
        self.default_owner_id = default_owner_id

    # Validation ----------------------------------------------------------------

    def validate(self, entity: Resource, draft: TargetDraft) -> list[str]:
        """Return the reasons why ``draft`` cannot be applied onto ``entity``."""

        problems: list[str] = []
        if isinstance(entity, Media) and entity.item is None and self.parent_id(draft) is None:
            problems.append("A media must belong to an item.")
        for key, label in (("o:resource_template", "template"), ("o:resource_class", "class")):
            reference = draft.attributes.get(key)
            if reference is not None and self._lookup(key, reference) is None:
                problems.append(f'The resource {label} "{reference}" does not exist.')
        return problems

    # Draft -> entity -----------------------------------------------------------

    def apply(self, entity: Resource, draft: TargetDraft, *, sync_children: bool = False) -> None:
        self._fill_resource(entity, draft)
        FILLERS[draft.kind](self, entity, draft)
        if sync_children and isinstance(entity, Item):
            keep = {child.identity for child in draft.dependents if child.identity is not None}
            entity.media[:] = [media for media in entity.media if media.id in keep]
        if isinstance(entity, Item):
            self._attach_new_media(entity, draft)
        entity.title = self._title(entity)

    def _fill_resource(self, entity: Resource, draft: TargetDraft) -> None:
        attributes = draft.attributes
        owner_key = attributes.get("o:owner")
        if owner_key is not None:
            owner = self._user(owner_key)
            if owner is None:
                draft.warn(f'The owner "{owner_key}" does not exist; the default owner is used.')
            entity.owner = owner or self._default_owner()
        elif entity.owner is None:
            entity.owner = self._default_owner()

        if "o:resource_class" in attributes:
            entity.resource_class = self._lookup("o:resource_class", attributes["o:resource_class"])
        if "o:resource_template" in attributes:
            entity.resource_template = self._lookup(
                "o:resource_template", attributes["o:resource_template"]
            )
        if "o:thumbnail" in attributes:
            thumbnail = attributes["o:thumbnail"]
            entity.thumbnail_id = thumbnail if isinstance(thumbnail, int) else None
        if isinstance(attributes.get("o:is_public"), bool):
            entity.is_public = bool(attributes["o:is_public"])
        created = attributes.get("o:created")
        if isinstance(created, datetime):
            entity.created = created
        modified = attributes.get("o:modified")
        entity.modified = modified if isinstance(modified, datetime) else datetime.now(UTC)

        entity.values[:] = self._build_values(draft)

    def _build_values(self, draft: TargetDraft) -> list[Value]:
        property_ids = self.working_set.property_ids()
        values: list[Value] = []
        for assignment in draft.all_values():
            property_id = property_ids.get(assignment.term)
            if property_id is None:
                draft.warn(f'The property "{assignment.term}" does not exist; value skipped.')
                continue
            resolved = self._resolve_reference(draft, assignment)
            if resolved is None:
                continue
            values.append(self._build_value(draft, resolved, property_id))
        return values

    def _resolve_reference(
        self, draft: TargetDraft, assignment: ValueAssignment
    ) -> ValueAssignment | None:
        if assignment.source_reference is None:
            return assignment
        kind = reference_kind(assignment.datatype)
        found = self.tables.resolve(assignment.source_reference, None if kind is None else (kind,))
        if found is None:
            draft.warn(
                f'The linked resource "{assignment.source_reference}" for '
                f"{assignment.term} was not imported; value skipped."
            )
            return None
        found_kind, target_id = found
        datatype = assignment.datatype
        if kind is None:
            datatype = reference_datatype(found_kind)
        return replace(assignment, resource_id=target_id, source_reference=None, datatype=datatype)

    def _build_value(
        self, draft: TargetDraft, assignment: ValueAssignment, property_id: int
    ) -> Value:
        coercion = coerce(assignment.datatype, self.registry)
        if coercion.degraded:
            hint = (
                f' Install the module "{coercion.recommended}" to keep it.'
                if coercion.recommended
                else ""
            )
            log.warning(
                "Index #%s: %s: %s%s", draft.source_index, assignment.term, coercion.warning, hint
            )
        datatype = coercion.effective
        value = Value(
            property_id=property_id,
            datatype=datatype,
            lang=assignment.language,
            is_public=assignment.is_public,
        )
        if assignment.kind is ValueKind.RESOURCE and is_reference_datatype(datatype):
            value.value_resource_id = assignment.resource_id
        elif assignment.kind is ValueKind.URI and is_uri_datatype(datatype):
            value.uri = assignment.uri
            value.value = assignment.label
        else:
            # Literals drop their uri and their linked resource.
            value.value = assignment.text or str(assignment.resource_id)
        return value

    def _attach_new_media(self, item: Item, draft: TargetDraft) -> None:
        for child in draft.dependents:
            if child.kind is not ResourceKind.MEDIA or child.identity is not None:
                continue
            media = Media(position=len(item.media) + 1)
            item.media.append(media)
            media.item = item
            self._fill_resource(media, child)
            _fill_media(self, media, child)
            media.title = self._title(media)

    def _title(self, entity: Resource) -> str | None:
        title_property = None
        if entity.resource_template is not None:
            title_property = entity.resource_template.title_property_id
        if title_property is None:
            title_property = self.working_set.property_ids().get("dcterms:title")
        for value in entity.values:
            if value.property_id == title_property and (value.value or value.uri):
                return value.value or value.uri
        return None

    # Reference lookups -----------------------------------------------------------

    def _default_owner(self) -> User | None:
        if self.default_owner_id is None:
            return None
        return self.main_resources.entity(User, self.default_owner_id)

    def _user(self, key: object) -> User | None:
        return self._cached(User, key, self.working_set.find_user)

    def _lookup(self, attribute: str, key: object) -> ResourceClass | ResourceTemplate | None:
        if attribute == "o:resource_class":
            return self._cached(ResourceClass, key, self.working_set.find_class)
        return self._cached(ResourceTemplate, key, self.working_set.find_template)

    def _cached[T: (User, ResourceClass, ResourceTemplate)](
        self,
        entity_type: type[T],
        key: object,
        finder: Callable[[str | int], T | None],
    ) -> T | None:
        if isinstance(key, int):
            return self.main_resources.entity(entity_type, key)
        alias = str(key)
        known, entity_id = self.main_resources.alias(entity_type, alias)
        if not known:
            found = finder(alias)
            entity_id = None if found is None else found.id
            self.main_resources.remember_alias(entity_type, alias, entity_id)
        return None if entity_id is None else self.main_resources.entity(entity_type, entity_id)

    def parent_id(self, draft: TargetDraft) -> int | None:
        if draft.parent_id is not None:
            return draft.parent_id
        if draft.parent_source_id is not None:
            return self.tables[ResourceKind.ITEMS].get(draft.parent_source_id)
        return None

    # Entity -> draft ---------------------------------------------------------------

    def snapshot(self, entity: Resource) -> TargetDraft:
        """Current state of ``entity`` in draft form, for reconciliation."""

        terms = {property_id: term for term, property_id in self.working_set.property_ids().items()}
        draft = TargetDraft(kind=entity.kind, identity=entity.id, identity_checked=True)
        draft.attributes.update(
            {
                "o:is_public": entity.is_public,
                "o:owner": entity.owner.id if entity.owner else None,
                "o:resource_class": entity.resource_class.id if entity.resource_class else None,
                "o:resource_template": (
                    entity.resource_template.id if entity.resource_template else None
                ),
                "o:thumbnail": entity.thumbnail_id,
                "o:created": entity.created,
                "o:modified": entity.modified,
            }
        )
        for value in entity.values:
            term = terms.get(value.property_id)
            assignment = _assignment_from_value(term, value) if term else None
            if assignment is not None:
                draft.add_value(assignment)
        SNAPSHOTS[entity.kind](entity, draft)
        return draft


def _assignment_from_value(term: str, value: Value) -> ValueAssignment | None:
    if value.value_resource_id is not None:
        return ValueAssignment.of_resource(
            term,
            resource_id=value.value_resource_id,
            datatype=value.datatype,
            is_public=value.is_public,
        )
    if value.uri:
        return ValueAssignment.of_uri(
            term,
            value.uri,
            label=value.value,
            datatype=value.datatype,
            language=value.lang,
            is_public=value.is_public,
        )
    if value.value is None:
        return None
    return ValueAssignment.of_literal(
        term, value.value, datatype=value.datatype, language=value.lang, is_public=value.is_public
    )


# Kind-specific fillers ---------------------------------------------------------------


def _fill_item(hydrator: ResourceHydrator, entity: Resource, draft: TargetDraft) -> None:
    if not isinstance(entity, Item):
        raise TypeError(f"Expected an item, got {type(entity).__name__}")
    item_sets: list[ItemSet] = []
    for item_set_id in dict.fromkeys(draft.item_sets):
        item_set = hydrator.working_set.get(ResourceKind.ITEM_SETS, item_set_id)
        if isinstance(item_set, ItemSet):
            item_sets.append(item_set)
        else:
            draft.warn(f"The item set #{item_set_id} does not exist and is ignored.")
    entity.item_sets[:] = item_sets


def _fill_media(hydrator: ResourceHydrator, entity: Resource, draft: TargetDraft) -> None:
    if not isinstance(entity, Media):
        raise TypeError(f"Expected a media, got {type(entity).__name__}")
    attributes = draft.attributes
    parent_id = hydrator.parent_id(draft)
    if parent_id is not None and (entity.item is None or entity.item.id != parent_id):
        parent = hydrator.working_set.get(ResourceKind.ITEMS, parent_id)
        if isinstance(parent, Item):
            entity.item = parent
    for key, attribute in (
        ("o:ingester", "ingester"),
        ("o:renderer", "renderer"),
        ("o:source", "source"),
        ("o:lang", "lang"),
        ("o:media_type", "media_type"),
    ):
        if key in attributes and attributes[key] is not None:
            setattr(entity, attribute, str(attributes[key]))
    position = attributes.get("o:position")
    if isinstance(position, int):
        entity.position = position
    data = attributes.get("o:data")
    if isinstance(data, dict):
        entity.data = dict(cast("dict[str, object]", data))
    if not entity.ingester:
        entity.ingester = "url" if entity.source and "://" in entity.source else "sideload"
    if not entity.renderer:
        entity.renderer = "file"


def _fill_item_set(hydrator: ResourceHydrator, entity: Resource, draft: TargetDraft) -> None:
    if not isinstance(entity, ItemSet):
        raise TypeError(f"Expected an item set, got {type(entity).__name__}")
    is_open = draft.attributes.get("o:is_open")
    if isinstance(is_open, bool):
        entity.is_open = is_open


FILLERS: Final[dict[ResourceKind, Filler]] = {
    ResourceKind.ITEMS: _fill_item,
    ResourceKind.MEDIA: _fill_media,
    ResourceKind.ITEM_SETS: _fill_item_set,
}


def _snapshot_item(entity: Resource, draft: TargetDraft) -> None:
    if isinstance(entity, Item):
        draft.item_sets = [item_set.id for item_set in entity.item_sets if item_set.id is not None]
        draft.dependents = [
            TargetDraft(kind=ResourceKind.MEDIA, identity=media.id, identity_checked=True)
            for media in entity.media
        ]


def _snapshot_media(entity: Resource, draft: TargetDraft) -> None:
    if isinstance(entity, Media):
        draft.parent_id = entity.item.id if entity.item is not None else None
        draft.attributes.update(
            {
                "o:ingester": entity.ingester,
                "o:renderer": entity.renderer,
                "o:source": entity.source,
                "o:lang": entity.lang,
                "o:media_type": entity.media_type,
                "o:position": entity.position,
            }
        )


def _snapshot_item_set(entity: Resource, draft: TargetDraft) -> None:
    if isinstance(entity, ItemSet):
        draft.attributes["o:is_open"] = entity.is_open


SNAPSHOTS: Final[dict[ResourceKind, Callable[[Resource, TargetDraft], None]]] = {
    ResourceKind.ITEMS: _snapshot_item,
    ResourceKind.MEDIA: _snapshot_media,
    ResourceKind.ITEM_SETS: _snapshot_item_set,
}


@dataclass(slots=True)
class FillReport:
    kind: ResourceKind
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    flushes: int = 0


class FillEngine:
    """Hydrate the placeholders of one kind from the source records."""

    def __init__(
        self,
        *,
        working_set: WorkingSet,
        resolver: EntryResolver,
        hydrator: ResourceHydrator,
        context: ImportContext,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.working_set = working_set
        self.resolver = resolver
        self.hydrator = hydrator
        self.context = context
        self.chunk_size = max(1, chunk_size)

    def fill(
        self, kind: ResourceKind, records: Iterable[SourceRecord], mapping: EntryMapping
    ) -> FillReport:
        table = self.context.tables[kind]
        report = FillReport(kind=kind)
        self.hydrator.main_resources.reload()
        log.info("Filling %d reserved %s resources", table.resolved_count, kind.label)

        for record in records:
            if self.context.should_stop():
                log.warning("The job was stopped while filling %s resources.", kind.label)
                break
            source_id = record.key(mapping.key_field)
            target_id = table.get(source_id) if source_id is not None else None
            if target_id is None:
                log.warning(
                    "Index #%s: the source resource %r was added after reservation; skipped.",
                    record.index,
                    source_id,
                )
                report.skipped += 1
                continue

            entity = self.working_set.get(kind, target_id)
            if entity is None:
                table.mark_missing(source_id)
                log.warning(
                    "Index #%s: the reserved %s #%s vanished; skipped.",
                    record.index,
                    kind.label,
                    target_id,
                )
                report.skipped += 1
                continue

            draft = self.resolver.resolve(record, mapping)
            draft.identity = target_id
            problems = [] if draft.has_error else self.hydrator.validate(entity, draft)
            if draft.has_error or problems:
                log_draft_messages(draft)
                if problems:
                    log.error("Index #%s: %s", record.index, " ".join(problems))
                report.errors += 1
                continue

            self.hydrator.apply(entity, draft)
            log_draft_messages(draft)
            report.processed += 1
            if report.processed % self.chunk_size == 0:
                self._flush_and_clear(report)

        self._flush_and_clear(report)
        self.context.totals.processed += report.processed
        self.context.totals.skipped += report.skipped
        self.context.totals.errors += report.errors
        log.info(
            "%d %s resources filled, %d skipped, %d errors.",
            report.processed,
            kind.label,
            report.skipped,
            report.errors,
        )
        self.check_parity(kind)
        return report

    def check_parity(self, kind: ResourceKind) -> None:
        mapped = self.context.tables[kind].resolved_count
        expected = self.context.totals.reserved[kind]
        if mapped != expected:
            raise MappingParityError(kind, mapped, expected)

    def _flush_and_clear(self, report: FillReport) -> None:
        self.working_set.flush()
        self.working_set.clear()
        self.hydrator.main_resources.invalidate()
        self.hydrator.main_resources.reload()
        report.flushes += 1
