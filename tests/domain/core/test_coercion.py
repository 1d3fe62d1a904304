from __future__ import annotations

import logging

import pytest

from bulkimport.domain.coercion import coerce
from bulkimport.domain.model import ItemSet, ResourceKind, TargetDraft, ValueAssignment
from tests.helpers.core import make_core
from tests.helpers.sources import registry


def test_supported_datatype_is_kept() -> None:
    result = coerce("literal", registry())

    assert result.effective == "literal"
    assert not result.degraded
    assert result.warning is None


@pytest.mark.parametrize(
    ("nominal", "modules", "effective", "recommended"),
    [
        ("numeric:integer", (), "literal", "Numeric Data Types"),
        ("rdf:HTML", ("DataTypeRdf",), "html", "Data Type Rdf"),
        ("rdf:HTML", (), "literal", "Data Type Rdf"),
        ("xsd:boolean", ("DataTypeRdf",), "boolean", "Data Type Rdf"),
        ("xsd:integer", ("NumericDataTypes",), "numeric:integer", None),
        ("xsd:integer", (), "literal", "Numeric Data Types"),
        ("xsd:gYear", ("NumericDataTypes",), "numeric:timestamp", None),
        ("xsd:date", (), "literal", "Numeric Data Types"),
        ("xsd:decimal", (), "literal", "Data Type Geometry"),
        ("geometry:geography", (), "literal", "Data Type Geometry"),
        ("idref", ("ValueSuggest",), "valuesuggest:idref:person", None),
        ("idref", (), "literal", "Value Suggest"),
        ("customvocab:12", (), "literal", "Custom Vocab"),
    ],
)
def test_coercion_fallback_chain(
    nominal: str, modules: tuple[str, ...], effective: str, recommended: str | None
) -> None:
    result = coerce(nominal, registry(*modules))

    assert result.effective == effective
    assert result.degraded
    assert result.recommended == recommended
    assert result.warning is not None
    assert nominal in result.warning


def test_custom_vocab_is_kept_when_module_active() -> None:
    result = coerce("customvocab:12", registry("CustomVocab"))

    assert result.effective == "customvocab:12"
    assert not result.degraded


def test_unknown_datatype_degrades_to_literal() -> None:
    result = coerce("foo", registry())

    assert result.effective == "literal"
    assert result.recommended is None


def test_unsupported_value_is_persisted_as_literal_with_one_warning(
    caplog: pytest.LogCaptureFixture,
) -> None:
    core = make_core()
    hydrator = core.services.hydrator
    entity = ItemSet()
    draft = TargetDraft(kind=ResourceKind.ITEM_SETS, source_index=7)
    draft.add_value(
        ValueAssignment.of_literal("dcterms:date", "42", datatype="numeric:integer")
    )

    with caplog.at_level(logging.WARNING, logger="bulkimport"):
        hydrator.apply(entity, draft)

    assert len(entity.values) == 1
    assert entity.values[0].datatype == "literal"
    assert entity.values[0].value == "42"
    warnings = [
        record for record in caplog.records if "Install the module" in record.getMessage()
    ]
    assert len(warnings) == 1
    assert 'Install the module "Numeric Data Types"' in warnings[0].getMessage()
    assert warnings[0].getMessage().startswith("Index #7:")


def test_literal_fallback_drops_the_uri() -> None:
    core = make_core()
    entity = ItemSet()
    draft = TargetDraft(kind=ResourceKind.ITEM_SETS)
    draft.add_value(
        ValueAssignment.of_uri(
            "dcterms:subject",
            "https://www.idref.fr/123",
            label="Someone",
            datatype="customvocab:5",
        )
    )

    core.services.hydrator.apply(entity, draft)

    value = entity.values[0]
    assert value.datatype == "literal"
    assert value.uri is None
    assert value.value == "Someone"
