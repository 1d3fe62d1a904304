from __future__ import annotations

from bulkimport.domain.dedup import canonical, dedup, dedup_ids
from bulkimport.domain.model import ValueAssignment


def _values() -> list[ValueAssignment]:
    return [
        ValueAssignment.of_literal("dcterms:title", "Alpha"),
        ValueAssignment.of_literal("dcterms:title", "Alpha", language=""),
        ValueAssignment.of_literal("dcterms:title", "Alpha", language="fr"),
        ValueAssignment.of_literal("dcterms:title", "Alpha", is_public=False),
        ValueAssignment.of_uri("dcterms:subject", "https://example.org/a", label=""),
        ValueAssignment.of_uri("dcterms:subject", "https://example.org/a"),
        ValueAssignment.of_resource("dcterms:relation", resource_id=4),
        ValueAssignment.of_resource("dcterms:relation", resource_id=4),
        ValueAssignment.of_resource("dcterms:relation", source_reference="4"),
    ]


def test_dedup_keeps_first_seen_order() -> None:
    result = dedup(_values())

    assert [value.text for value in result][:3] == ["Alpha", "Alpha", "Alpha"]
    assert len(result) == 6
    assert result[0].language is None
    assert result[1].language == "fr"
    assert result[2].is_public is False


def test_dedup_is_idempotent() -> None:
    once = dedup(_values())

    assert dedup(once) == once


def test_canonical_collapses_empty_language_and_label() -> None:
    first, second = _values()[:2]
    uri_a, uri_b = _values()[4:6]

    assert canonical(first) == canonical(second)
    assert canonical(uri_a) == canonical(uri_b)


def test_dedup_ids_preserves_order() -> None:
    assert dedup_ids([3, 1, 3, 2, 1]) == [3, 1, 2]
