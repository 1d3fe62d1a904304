"""Capability registry describing a target store and its optional modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from bulkimport.domain.coercion import (
    CUSTOM_VOCAB,
    DATA_TYPE_GEOMETRY,
    DATA_TYPE_RDF,
    NUMERIC_DATA_TYPES,
    VALUE_SUGGEST,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

MAPPING: Final = "Mapping"

BASE_DATATYPES: Final = frozenset(
    {"literal", "uri", "resource", "resource:item", "resource:itemset", "resource:media"}
)

MODULE_DATATYPES: Final[dict[str, frozenset[str]]] = {
    NUMERIC_DATA_TYPES: frozenset(
        {"numeric:timestamp", "numeric:integer", "numeric:duration", "numeric:interval"}
    ),
    DATA_TYPE_RDF: frozenset({"html", "xml", "boolean"}),
    DATA_TYPE_GEOMETRY: frozenset(
        {"geometry:geography", "geometry:geography:coordinates", "geometry:geometry"}
    ),
    VALUE_SUGGEST: frozenset({"valuesuggest:idref:person", "valuesuggest:geonames:geonames"}),
    CUSTOM_VOCAB: frozenset(),
    MAPPING: frozenset(),
}

# Open families: any datatype with the prefix is accepted once the module is active.
MODULE_PREFIXES: Final[dict[str, str]] = {
    "customvocab:": CUSTOM_VOCAB,
    "valuesuggest:": VALUE_SUGGEST,
    "valuesuggestall:": VALUE_SUGGEST,
}


@dataclass(frozen=True, slots=True)
class StaticCapabilityRegistry:
    modules: frozenset[str] = frozenset()
    extra_datatypes: frozenset[str] = field(default_factory=frozenset[str])

    @classmethod
    def from_names(cls, modules: Iterable[str]) -> StaticCapabilityRegistry:
        active = frozenset(modules)
        unknown = active - MODULE_DATATYPES.keys()
        if unknown:
            raise ValueError(f"Unknown modules: {', '.join(sorted(unknown))}")
        log.debug("Active modules: %s", ", ".join(sorted(active)) or "none")
        return cls(modules=active)

    def supported_datatypes(self) -> frozenset[str]:
        supported = set(BASE_DATATYPES | self.extra_datatypes)
        for module in self.modules:
            supported.update(MODULE_DATATYPES.get(module, ()))
        return frozenset(supported)

    def supports(self, datatype: str) -> bool:
        if datatype in self.supported_datatypes():
            return True
        return any(
            datatype.startswith(prefix) and module in self.modules
            for prefix, module in MODULE_PREFIXES.items()
        )

    def is_module_active(self, module: str) -> bool:
        return module in self.modules
