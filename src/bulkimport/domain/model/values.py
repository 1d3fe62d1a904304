"""Value assignments attached to a target draft."""

from __future__ import annotations

from dataclasses import dataclass

from bulkimport.domain.errors import InvalidValueError
from bulkimport.domain.model.enums import ResourceKind, ValueKind

LITERAL = "literal"
URI = "uri"
RESOURCE = "resource"


def reference_kind(datatype: str) -> ResourceKind | None:
    """Kind a ``resource:*`` datatype points at, ``None`` when any kind is allowed."""

    match datatype:
        case "resource:item":
            return ResourceKind.ITEMS
        case "resource:itemset":
            return ResourceKind.ITEM_SETS
        case "resource:media":
            return ResourceKind.MEDIA
        case _:
            return None


def is_reference_datatype(datatype: str) -> bool:
    return datatype == RESOURCE or datatype.startswith("resource:")


def is_uri_datatype(datatype: str) -> bool:
    return datatype == URI or datatype.startswith("valuesuggest")


@dataclass(frozen=True, slots=True, kw_only=True)
class ValueAssignment:
    """One typed value of one property term.

    Exactly one payload is populated: ``literal``, ``uri`` (with an optional
    ``label``) or a reference. A reference is either a resolved ``resource_id``
    or a ``source_reference`` still to be resolved through the mapping table.
    """

    term: str
    datatype: str = LITERAL
    language: str | None = None
    is_public: bool = True
    literal: str | None = None
    uri: str | None = None
    label: str | None = None
    resource_id: int | None = None
    source_reference: str | None = None

    def __post_init__(self) -> None:
        payloads = [
            self.literal is not None,
            self.uri is not None,
            self.resource_id is not None or self.source_reference is not None,
        ]
        if sum(payloads) != 1:
            raise InvalidValueError(
                f"Value for {self.term!r} must carry exactly one payload "
                f"(literal={self.literal!r}, uri={self.uri!r}, "
                f"resource={self.resource_id!r}/{self.source_reference!r})"
            )
        if self.resource_id is not None and self.source_reference is not None:
            raise InvalidValueError(
                f"Value for {self.term!r} cannot be both resolved and unresolved"
            )
        if self.label is not None and self.uri is None:
            raise InvalidValueError(f"Value for {self.term!r} has a label without an uri")

    @property
    def kind(self) -> ValueKind:
        if self.literal is not None:
            return ValueKind.LITERAL
        if self.uri is not None:
            return ValueKind.URI
        return ValueKind.RESOURCE

    @property
    def is_resolved(self) -> bool:
        return self.source_reference is None

    @property
    def text(self) -> str | None:
        """Human readable form, used for titles and identifier lookups."""

        if self.literal is not None:
            return self.literal
        if self.uri is not None:
            return self.label or self.uri
        return None

    @classmethod
    def of_literal(
        cls,
        term: str,
        literal: str,
        *,
        datatype: str = LITERAL,
        language: str | None = None,
        is_public: bool = True,
    ) -> ValueAssignment:
        return cls(
            term=term,
            datatype=datatype,
            language=language or None,
            is_public=is_public,
            literal=literal,
        )

    @classmethod
    def of_uri(
        cls,
        term: str,
        uri: str,
        *,
        label: str | None = None,
        datatype: str = URI,
        language: str | None = None,
        is_public: bool = True,
    ) -> ValueAssignment:
        return cls(
            term=term,
            datatype=datatype,
            language=language or None,
            is_public=is_public,
            uri=uri,
            label=label or None,
        )

    @classmethod
    def of_resource(
        cls,
        term: str,
        *,
        resource_id: int | None = None,
        source_reference: str | None = None,
        datatype: str = RESOURCE,
        is_public: bool = True,
    ) -> ValueAssignment:
        return cls(
            term=term,
            datatype=datatype,
            is_public=is_public,
            resource_id=resource_id,
            source_reference=source_reference,
        )


_REFERENCE_DATATYPES: dict[ResourceKind, str] = {
    ResourceKind.ITEMS: "resource:item",
    ResourceKind.ITEM_SETS: "resource:itemset",
    ResourceKind.MEDIA: "resource:media",
}


def reference_datatype(kind: ResourceKind) -> str:
    return _REFERENCE_DATATYPES[kind]
