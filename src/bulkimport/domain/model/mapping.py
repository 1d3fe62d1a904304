"""Declarative source field to target mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bulkimport.domain.model.values import LITERAL

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from bulkimport.domain.model.enums import ResourceKind


@dataclass(frozen=True, slots=True, kw_only=True)
class Target:
    """Destination of one source field.

    ``destination`` is a property term (``dcterms:title``), a well-known
    attribute (``o:is_public``) or any raw key. ``datatypes`` are tried in
    order when the destination is a property term. ``sub_target`` routes the
    value to a dependent entity built from the same row.
    """

    destination: str
    datatypes: tuple[str, ...] = (LITERAL,)
    language: str | None = None
    is_public: bool | None = None
    sub_target: ResourceKind | None = None

    @property
    def datatype(self) -> str:
        return self.datatypes[0] if self.datatypes else LITERAL


@dataclass(frozen=True, slots=True, kw_only=True)
class EntryMapping:
    """Mapping for one resource kind: ``source field -> ordered targets``."""

    kind: ResourceKind
    key_field: str
    fields: Mapping[str, tuple[Target, ...]] = field(default_factory=dict[str, tuple[Target, ...]])
    parent_field: str | None = None

    def __iter__(self) -> Iterator[tuple[str, tuple[Target, ...]]]:
        return iter(self.fields.items())

    def destinations(self) -> set[str]:
        return {target.destination for targets in self.fields.values() for target in targets}
