from __future__ import annotations

from datetime import UTC, datetime

import pytest

from bulkimport.domain.mapping_table import MappingTables
from bulkimport.domain.model import EntryMapping, ResourceKind, SourceRecord
from bulkimport.domain.resolver import EntryResolver, to_datetime
from bulkimport.domain.targets import parse_target_expression

VOCABULARY = frozenset({"dcterms:title", "dcterms:creator", "dcterms:subject", "bibo:isbn"})


def _mapping(kind: ResourceKind = ResourceKind.ITEMS, **fields: str) -> EntryMapping:
    return EntryMapping(
        kind=kind,
        key_field="id",
        fields={name: parse_target_expression(expression) for name, expression in fields.items()},
    )


def _resolver(tables: MappingTables | None = None, **kwargs: bool) -> EntryResolver:
    return EntryResolver(vocabulary=VOCABULARY, tables=tables or MappingTables(), **kwargs)


def test_values_follow_source_then_declaration_order() -> None:
    record = SourceRecord(index=1, fields={"id": "a", "title": ["One", " ", "Two"], "isbn": "978"})
    mapping = _mapping(title="dcterms:title @en | bibo:isbn", isbn="bibo:isbn")

    draft = _resolver().resolve(record, mapping)

    assert draft.source_id == "a"
    assert [value.literal for value in draft.values["dcterms:title"]] == ["One", "Two"]
    assert draft.values["dcterms:title"][0].language == "en"
    assert [value.literal for value in draft.values["bibo:isbn"]] == ["One", "Two", "978"]
    assert not draft.has_error


def test_attributes_take_the_last_value_and_unknown_destinations_are_kept_raw() -> None:
    record = SourceRecord(
        index=2,
        fields={"id": "a", "public": ["yes", "private"], "note": ["first", "last"]},
    )
    mapping = _mapping(public="o:is_public", note="legacy:note")

    draft = _resolver().resolve(record, mapping)

    assert draft.attributes["o:is_public"] is False
    assert draft.attributes["legacy:note"] == "last"


def test_internal_id_must_be_numeric() -> None:
    record = SourceRecord(index=3, fields={"id": "a", "rid": "abc"})

    draft = _resolver().resolve(record, _mapping(rid="o:id"))

    assert draft.has_error
    assert "not a number" in draft.messages.errors[0]


def test_reference_values_resolve_through_the_mapping_table() -> None:
    tables = MappingTables()
    tables[ResourceKind.ITEMS].assign("author-1", 42)
    record = SourceRecord(index=4, fields={"id": "a", "creator": ["author-1", "Anonymous"]})
    mapping = _mapping(creator="dcterms:creator ^^resource:item ^^literal")

    draft = _resolver(tables).resolve(record, mapping)

    first, second = draft.values["dcterms:creator"]
    assert first.resource_id == 42
    assert first.datatype == "resource:item"
    assert second.literal == "Anonymous"


def test_uri_values_split_the_label() -> None:
    subject = "https://example.org/s Some label"
    record = SourceRecord(index=5, fields={"id": "a", "subject": subject})

    draft = _resolver().resolve(record, _mapping(subject="dcterms:subject ^^uri"))

    (value,) = draft.values["dcterms:subject"]
    assert value.uri == "https://example.org/s"
    assert value.label == "Some label"


def test_incompatible_value_is_a_row_error_unless_literal_fallback() -> None:
    record = SourceRecord(index=6, fields={"id": "a", "subject": "not a url"})
    mapping = _mapping(subject="dcterms:subject ^^uri")

    strict = _resolver().resolve(record, mapping)
    lenient = _resolver(value_datatype_literal=True).resolve(record, mapping)

    assert strict.has_error
    assert "dcterms:subject" not in strict.values
    assert not lenient.has_error
    assert lenient.values["dcterms:subject"][0].literal == "not a url"
    assert lenient.messages.notices


def test_structured_values_keep_their_own_datatype_and_language() -> None:
    raw = {"type": "numeric:integer", "@value": "12", "@language": "fr", "is_public": False}
    record = SourceRecord(index=7, fields={"id": "a", "title": [raw]})

    draft = _resolver().resolve(record, _mapping(title="dcterms:title"))

    (value,) = draft.values["dcterms:title"]
    assert value.datatype == "numeric:integer"
    assert value.language == "fr"
    assert value.is_public is False


def test_structured_linked_resource_stays_unresolved() -> None:
    raw = {"type": "resource:item", "value_resource_id": 17}
    record = SourceRecord(index=8, fields={"id": "a", "creator": [raw]})

    draft = _resolver().resolve(record, _mapping(creator="dcterms:creator"))

    (value,) = draft.values["dcterms:creator"]
    assert value.source_reference == "17"
    assert not value.is_resolved


def test_item_sets_and_media_handlers() -> None:
    tables = MappingTables()
    tables[ResourceKind.ITEM_SETS].assign("col", 3)
    record = SourceRecord(
        index=9,
        fields={"id": "a", "sets": ["col", "missing"], "files": ["https://x.org/a.jpg", "b.tif"]},
    )
    mapping = _mapping(sets="o:item_set", files="o:media")

    draft = _resolver(tables).resolve(record, mapping)

    assert draft.item_sets == [3]
    assert draft.messages.warnings
    assert [media.attributes["o:ingester"] for media in draft.dependents] == ["url", "sideload"]


def test_sub_target_builds_a_dependent_draft() -> None:
    record = SourceRecord(index=10, fields={"id": "a", "caption": "A caption", "title": "Main"})
    mapping = _mapping(caption="dcterms:title >media", title="dcterms:title")

    draft = _resolver().resolve(record, mapping)

    (media,) = draft.dependents
    assert media.kind is ResourceKind.MEDIA
    assert media.values["dcterms:title"][0].literal == "A caption"
    assert draft.values["dcterms:title"][0].literal == "Main"


def test_media_parent_comes_from_the_parent_field() -> None:
    tables = MappingTables()
    tables[ResourceKind.ITEMS].assign("item-1", 8)
    mapping = EntryMapping(kind=ResourceKind.MEDIA, key_field="id", parent_field="item")
    record = SourceRecord(index=11, fields={"id": "m", "item": "item-1"})

    draft = _resolver(tables).resolve(record, mapping)

    assert draft.parent_source_id == "item-1"
    assert draft.parent_id == 8


def test_mapped_but_absent_fields_are_recorded() -> None:
    record = SourceRecord(index=12, fields={"id": "a", "title": ""})

    draft = _resolver().resolve(record, _mapping(title="dcterms:title"))

    assert draft.absent_targets == {"dcterms:title"}
    assert draft.is_empty


def test_resolution_does_not_touch_the_mapping_table() -> None:
    tables = MappingTables()
    record = SourceRecord(index=13, fields={"id": "new", "title": "T"})

    _resolver(tables).resolve(record, _mapping(title="dcterms:title"))

    assert len(tables[ResourceKind.ITEMS]) == 0


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2020", datetime(2020, 1, 1, tzinfo=UTC)),
        ("2020-05", datetime(2020, 5, 1, tzinfo=UTC)),
        ("2020-05-04T10:30", datetime(2020, 5, 4, 10, 30, tzinfo=UTC)),
    ],
)
def test_partial_dates_are_padded(raw: str, expected: datetime) -> None:
    assert to_datetime(raw) == expected


def test_invalid_date_is_rejected() -> None:
    assert to_datetime("someday") is None
