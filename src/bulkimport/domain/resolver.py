"""Turn one source record into a target draft using a declarative mapping.

Dispatch order for each target of a mapped field:

1. value assignment, when the destination is a known property term;
2. generic attribute handlers (id, owner, visibility, template, class...);
3. handlers specific to the draft's resource kind;
4. fallback: the last raw value under the destination key.

The resolver reads the mapping tables but never writes to them.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from bulkimport.domain.dedup import dedup_ids
from bulkimport.domain.model import ResourceKind, TargetDraft, ValueAssignment
from bulkimport.domain.model.values import (
    is_reference_datatype,
    is_uri_datatype,
    reference_datatype,
    reference_kind,
)

if TYPE_CHECKING:
    from collections.abc import Container

    from bulkimport.domain.mapping_table import MappingTables
    from bulkimport.domain.model import EntryMapping, SourceRecord, Target

log = getLogger(__name__)

FALSE_VALUES: Final = frozenset({"0", "false", "no", "off", "private"})
CLOSED_VALUES: Final = FALSE_VALUES | {"closed"}
_URL: Final = re.compile(r"^[a-z][a-z0-9+.-]*://\S+", re.IGNORECASE)
_DATETIME_TEMPLATE: Final = "0000-01-01 00:00:00"

type Handler = Callable[["EntryResolver", TargetDraft, "Target", list[object]], None]


def to_bool(value: object, *, false_values: frozenset[str] = FALSE_VALUES) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in false_values


def to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else None


def to_datetime(value: object) -> datetime | None:
    """Parse full or partial dates (``2020``, ``2020-05``, ``2020-05-04T10:00``)."""

    if isinstance(value, datetime):
        return value
    text = str(value).strip().replace("T", " ")
    if not text or len(text) > len(_DATETIME_TEMPLATE) + 6:
        return None
    padded = text + _DATETIME_TEMPLATE[len(text) :] if len(text) < 19 else text
    try:
        parsed = datetime.fromisoformat(padded)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def is_url(value: str) -> bool:
    return bool(_URL.match(value))


def _last(values: list[object]) -> object:
    return values[-1]


# Generic handlers --------------------------------------------------------------


def _handle_id(_: EntryResolver, draft: TargetDraft, target: Target, values: list[object]) -> None:
    identity = to_int(_last(values))
    if identity is None:
        draft.error(f'The internal id "{_last(values)}" is not a number.')
        return
    draft.identity = identity


def _handle_owner(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    value = _last(values)
    draft.attributes["o:owner"] = to_int(value) or str(value)


def _handle_is_public(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    draft.attributes["o:is_public"] = to_bool(_last(values))


def _handle_reference_attribute(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    value = _last(values)
    draft.attributes[target.destination] = to_int(value) or str(value)


def _handle_thumbnail(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    thumbnail = to_int(_last(values))
    if thumbnail is None:
        draft.warn(f'The thumbnail "{_last(values)}" is not an asset id and is ignored.')
        return
    draft.attributes["o:thumbnail"] = thumbnail


def _handle_date(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    parsed = to_datetime(_last(values))
    if parsed is None:
        draft.warn(f'The date "{_last(values)}" for {target.destination} is not valid.')
        return
    draft.attributes[target.destination] = parsed


GENERIC_HANDLERS: Final[dict[str, Handler]] = {
    "o:id": _handle_id,
    "o:owner": _handle_owner,
    "o:email": _handle_owner,
    "o:is_public": _handle_is_public,
    "o:resource_template": _handle_reference_attribute,
    "o:resource_class": _handle_reference_attribute,
    "o:thumbnail": _handle_thumbnail,
    "o:created": _handle_date,
    "o:modified": _handle_date,
}


# Kind-specific handlers --------------------------------------------------------


def _handle_item_sets(
    resolver: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    found: list[int] = []
    for value in values:
        target_id = resolver.lookup(str(value), ResourceKind.ITEM_SETS)
        if target_id is None:
            draft.warn(f'The item set "{value}" does not exist and is ignored.')
            continue
        found.append(target_id)
    draft.item_sets = dedup_ids([*draft.item_sets, *found])


def _handle_item_media(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    for value in values:
        media = TargetDraft(kind=ResourceKind.MEDIA, source_index=draft.source_index)
        media.attributes["o:ingester"] = "url" if is_url(str(value)) else "sideload"
        media.attributes["o:source"] = str(value)
        draft.dependents.append(media)


def _handle_media_item(
    resolver: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    source_id = str(_last(values))
    draft.parent_source_id = source_id
    draft.parent_id = resolver.lookup(source_id, ResourceKind.ITEMS)


def _handle_text_attribute(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    draft.attributes[target.destination] = str(_last(values))


def _handle_position(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    position = to_int(_last(values))
    if position is not None:
        draft.attributes["o:position"] = position


def _handle_is_open(
    _: EntryResolver, draft: TargetDraft, target: Target, values: list[object]
) -> None:
    draft.attributes["o:is_open"] = to_bool(_last(values), false_values=CLOSED_VALUES)


KIND_HANDLERS: Final[dict[ResourceKind, dict[str, Handler]]] = {
    ResourceKind.ITEMS: {
        "o:item_set": _handle_item_sets,
        "o:media": _handle_item_media,
    },
    ResourceKind.MEDIA: {
        "o:item": _handle_media_item,
        "o:ingester": _handle_text_attribute,
        "o:renderer": _handle_text_attribute,
        "o:source": _handle_text_attribute,
        "o:lang": _handle_text_attribute,
        "o:media_type": _handle_text_attribute,
        "o:position": _handle_position,
    },
    ResourceKind.ITEM_SETS: {
        "o:is_open": _handle_is_open,
    },
}


class EntryResolver:
    """Build a :class:`TargetDraft` from a :class:`SourceRecord`."""

    def __init__(
        self,
        *,
        vocabulary: Container[str],
        tables: MappingTables,
        value_datatype_literal: bool = False,
    ) -> None:
        self.vocabulary = vocabulary
        self.tables = tables
        self.value_datatype_literal = value_datatype_literal

    def lookup(self, source_id: str, kind: ResourceKind | None = None) -> int | None:
        found = self.tables.resolve(source_id, None if kind is None else (kind,))
        return None if found is None else found[1]

    def resolve(self, record: SourceRecord, mapping: EntryMapping) -> TargetDraft:
        draft = TargetDraft(
            kind=mapping.kind,
            source_index=record.index,
            source_id=record.key(mapping.key_field),
        )
        if mapping.parent_field is not None and mapping.kind.parent is not None:
            parent_source_id = record.key(mapping.parent_field)
            if parent_source_id is not None:
                draft.parent_source_id = parent_source_id
                draft.parent_id = self.lookup(parent_source_id, mapping.kind.parent)

        for field_name, targets in mapping:
            values = record.values(field_name)
            if not values:
                draft.absent_targets.update(
                    target.destination for target in targets if target.sub_target is None
                )
                continue
            for target in targets:
                owner = draft.dependent(target.sub_target) if target.sub_target else draft
                self._dispatch(owner, target, values)
        log.debug(
            "Index #%s: resolved %d values and %d dependents.",
            record.index,
            len(draft.all_values()),
            len(draft.dependents),
        )
        return draft

    def _dispatch(self, draft: TargetDraft, target: Target, values: list[object]) -> None:
        destination = target.destination
        if destination in self.vocabulary:
            for raw in values:
                value = self._value_for(draft, target, raw)
                if value is not None:
                    draft.add_value(value)
            return
        handler = GENERIC_HANDLERS.get(destination) or KIND_HANDLERS[draft.kind].get(destination)
        if handler is not None:
            handler(self, draft, target, values)
            return
        draft.attributes[destination] = _last(values)

    def _value_for(
        self, draft: TargetDraft, target: Target, raw: object
    ) -> ValueAssignment | None:
        is_public = True if target.is_public is None else target.is_public
        if isinstance(raw, Mapping):
            return self._structured_value(
                draft, target, cast("Mapping[str, object]", raw), is_public=is_public
            )

        text = str(raw)
        for datatype in target.datatypes:
            if is_reference_datatype(datatype):
                kind = reference_kind(datatype)
                found = self.tables.resolve(text, None if kind is None else (kind,))
                if found is not None:
                    return ValueAssignment.of_resource(
                        target.destination,
                        resource_id=found[1],
                        datatype=reference_datatype(found[0]),
                        is_public=is_public,
                    )
                continue
            if is_uri_datatype(datatype):
                if not is_url(text):
                    continue
                uri, _, label = text.partition(" ")
                return ValueAssignment.of_uri(
                    target.destination,
                    uri,
                    label=label.strip() or None,
                    datatype=datatype,
                    language=target.language,
                    is_public=is_public,
                )
            return ValueAssignment.of_literal(
                target.destination,
                text,
                datatype=datatype,
                language=target.language,
                is_public=is_public,
            )

        if self.value_datatype_literal:
            draft.notice(
                f'The value "{text}" is not compatible with datatypes '
                f'{", ".join(target.datatypes)} of {target.destination}; stored as literal.'
            )
            return ValueAssignment.of_literal(
                target.destination, text, language=target.language, is_public=is_public
            )
        draft.error(
            f'The value "{text}" is not compatible with datatypes '
            f'{", ".join(target.datatypes)} of {target.destination}.'
        )
        return None

    def _structured_value(
        self,
        draft: TargetDraft,
        target: Target,
        raw: Mapping[str, object],
        *,
        is_public: bool,
    ) -> ValueAssignment | None:
        datatype = str(raw.get("type") or target.datatype)
        language = cast("str | None", raw.get("@language")) or target.language
        visibility = raw.get("is_public")
        if visibility is not None:
            is_public = to_bool(visibility)

        reference = raw.get("value_resource_id")
        if reference is not None:
            return ValueAssignment.of_resource(
                target.destination,
                source_reference=str(reference),
                datatype=datatype if is_reference_datatype(datatype) else "resource",
                is_public=is_public,
            )
        uri = raw.get("@id")
        if uri:
            label = raw.get("o:label")
            return ValueAssignment.of_uri(
                target.destination,
                str(uri),
                label=None if label is None else str(label),
                datatype=datatype,
                language=language,
                is_public=is_public,
            )
        literal = raw.get("@value")
        if literal is not None and str(literal).strip():
            return ValueAssignment.of_literal(
                target.destination,
                str(literal),
                datatype=datatype,
                language=language,
                is_public=is_public,
            )
        draft.warn(f"An empty value for {target.destination} is ignored.")
        return None

