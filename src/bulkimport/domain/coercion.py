"""Fallback chain for datatypes the target store does not support."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from bulkimport.domain.model.values import LITERAL, RESOURCE, URI

if TYPE_CHECKING:
    from bulkimport.domain.ports import CapabilityRegistry

NUMERIC_DATA_TYPES: Final = "NumericDataTypes"
DATA_TYPE_RDF: Final = "DataTypeRdf"
DATA_TYPE_GEOMETRY: Final = "DataTypeGeometry"
VALUE_SUGGEST: Final = "ValueSuggest"
CUSTOM_VOCAB: Final = "CustomVocab"

MODULE_LABELS: Final[dict[str, str]] = {
    NUMERIC_DATA_TYPES: "Numeric Data Types",
    DATA_TYPE_RDF: "Data Type Rdf",
    DATA_TYPE_GEOMETRY: "Data Type Geometry",
    VALUE_SUGGEST: "Value Suggest",
    CUSTOM_VOCAB: "Custom Vocab",
}

_RDF_EQUIVALENTS: Final[dict[str, str]] = {
    "rdf:HTML": "html",
    "rdf:XMLLiteral": "xml",
    "xsd:boolean": "boolean",
}
_TIMESTAMP_TYPES: Final = frozenset({"xsd:date", "xsd:dateTime", "xsd:gYear", "xsd:gYearMonth"})
_GEOMETRY_LITERALS: Final = frozenset(
    {"xsd:decimal", "xsd:gDay", "xsd:gMonth", "xsd:gMonthDay", "xsd:time"}
)


@dataclass(frozen=True, slots=True)
class Coercion:
    """Outcome of :func:`coerce`.

    ``warning`` is set whenever the datatype degraded; ``recommended`` names
    the capability that would have avoided it.
    """

    nominal: str
    effective: str
    warning: str | None = None
    recommended: str | None = None

    @property
    def degraded(self) -> bool:
        return self.effective != self.nominal


def _degrade(nominal: str, effective: str, module: str | None) -> Coercion:
    label = MODULE_LABELS.get(module, module) if module else None
    warning = f'The data type "{nominal}" is not supported and is converted to "{effective}".'
    return Coercion(nominal, effective, warning, label)


def _supported_or_literal(candidate: str, registry: CapabilityRegistry) -> str:
    return candidate if registry.supports(candidate) else LITERAL


def coerce(nominal: str, registry: CapabilityRegistry) -> Coercion:
    """Return the datatype to persist for ``nominal`` given the registry.

    Richer types degrade to a plain literal, or to a simpler supported
    equivalent when one exists. Degradation never fails.
    """

    if registry.supports(nominal):
        return Coercion(nominal, nominal)

    prefix = nominal.split(":", 1)[0]
    if nominal.startswith("numeric:"):
        return _degrade(nominal, LITERAL, NUMERIC_DATA_TYPES)
    if nominal in _RDF_EQUIVALENTS:
        effective = _supported_or_literal(_RDF_EQUIVALENTS[nominal], registry)
        return _degrade(nominal, effective, DATA_TYPE_RDF)
    if nominal == "xsd:integer":
        if registry.is_module_active(NUMERIC_DATA_TYPES):
            return _degrade(nominal, _supported_or_literal("numeric:integer", registry), None)
        return _degrade(nominal, LITERAL, NUMERIC_DATA_TYPES)
    if nominal in _TIMESTAMP_TYPES:
        if registry.is_module_active(NUMERIC_DATA_TYPES):
            return _degrade(nominal, _supported_or_literal("numeric:timestamp", registry), None)
        return _degrade(nominal, LITERAL, NUMERIC_DATA_TYPES)
    if nominal in _GEOMETRY_LITERALS or prefix == "geometry":
        return _degrade(nominal, LITERAL, DATA_TYPE_GEOMETRY)
    if nominal == "idref":
        if registry.is_module_active(VALUE_SUGGEST):
            effective = _supported_or_literal("valuesuggest:idref:person", registry)
            return _degrade(nominal, effective, None)
        return _degrade(nominal, LITERAL, VALUE_SUGGEST)
    if prefix == "customvocab":
        return _degrade(nominal, LITERAL, CUSTOM_VOCAB)
    if prefix == "valuesuggest":
        return _degrade(nominal, _supported_or_literal(URI, registry), VALUE_SUGGEST)
    if prefix == RESOURCE:
        return _degrade(nominal, _supported_or_literal(RESOURCE, registry), None)
    return _degrade(nominal, LITERAL, prefix if prefix != nominal else None)
