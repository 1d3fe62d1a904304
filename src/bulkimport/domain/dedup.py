"""Normalization and deduplication of value-assignment sets."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from bulkimport.domain.model.enums import ValueKind

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

    from bulkimport.domain.model.values import ValueAssignment

type CanonicalValue = tuple[str, str, bool, str | None, tuple[object, ...]]


def canonical(value: ValueAssignment) -> CanonicalValue:
    """Canonical tuple: datatype, term, visibility, language, payload.

    Empty language and label collapse to ``None``; only the payload that
    matches the value's kind is kept.
    """

    match value.kind:
        case ValueKind.LITERAL:
            payload: tuple[object, ...] = (value.literal,)
        case ValueKind.URI:
            payload = (value.uri, value.label or None)
        case ValueKind.RESOURCE:
            payload = (value.resource_id, value.source_reference)
    return (value.datatype, value.term, value.is_public, value.language or None, payload)


def serialize(value: ValueAssignment) -> str:
    return json.dumps(canonical(value), separators=(",", ":"))


def dedup(values: Iterable[ValueAssignment]) -> list[ValueAssignment]:
    """Drop values equal to an earlier one, keeping first-seen order."""

    seen: set[str] = set()
    result: list[ValueAssignment] = []
    for value in values:
        key = serialize(value)
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


def dedup_ids[T: Hashable](ids: Iterable[T]) -> list[T]:
    return list(dict.fromkeys(ids))
