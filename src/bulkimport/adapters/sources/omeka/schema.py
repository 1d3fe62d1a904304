"""Pydantic models describing the Omeka S JSON-LD API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Keys of a resource payload that are not property terms.
RESERVED_PREFIXES = ("@", "o:", "o-")


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class OmekaBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ReferencePayload(OmekaBaseModel):
    id: int = Field(alias="o:id")
    url: str | None = Field(default=None, alias="@id")


class DatePayload(OmekaBaseModel):
    value: str = Field(alias="@value")


class ValuePayload(OmekaBaseModel):
    type: str = "literal"
    property_id: int | None = None
    is_public: bool = True
    value: str | None = Field(default=None, alias="@value")
    uri: str | None = Field(default=None, alias="@id")
    label: str | None = Field(default=None, alias="o:label")
    language: str | None = Field(default=None, alias="@language")
    value_resource_id: int | None = None

    _normalize_language = field_validator("language", mode="before")(_blank_to_none)

    def to_raw(self) -> dict[str, object]:
        """Structured raw value understood by the entry resolver."""

        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            include={"type", "is_public", "value", "uri", "label", "language", "value_resource_id"},
        )


class ResourcePayload(BaseModel):
    """One item, item set or media; property values are kept as extra keys."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int = Field(alias="o:id")
    types: list[str] = Field(default_factory=list, alias="@type")
    is_public: bool | None = Field(default=None, alias="o:is_public")
    owner: ReferencePayload | None = Field(default=None, alias="o:owner")
    resource_class: ReferencePayload | None = Field(default=None, alias="o:resource_class")
    resource_template: ReferencePayload | None = Field(default=None, alias="o:resource_template")
    thumbnail: ReferencePayload | None = Field(default=None, alias="o:thumbnail")
    created: DatePayload | None = Field(default=None, alias="o:created")
    modified: DatePayload | None = Field(default=None, alias="o:modified")
    item_sets: list[ReferencePayload] = Field(default_factory=list, alias="o:item_set")
    media: list[ReferencePayload] = Field(default_factory=list, alias="o:media")
    item: ReferencePayload | None = Field(default=None, alias="o:item")
    is_open: bool | None = Field(default=None, alias="o:is_open")
    ingester: str | None = Field(default=None, alias="o:ingester")
    renderer: str | None = Field(default=None, alias="o:renderer")
    source: str | None = Field(default=None, alias="o:source")
    media_type: str | None = Field(default=None, alias="o:media_type")
    lang: str | None = Field(default=None, alias="o:lang")

    @field_validator("types", mode="before")
    @classmethod
    def _single_type(cls, value: object) -> object:
        return [value] if isinstance(value, str) else value

    def property_values(self) -> dict[str, list[ValuePayload]]:
        values: dict[str, list[ValuePayload]] = {}
        for key, raw in (self.model_extra or {}).items():
            if key.startswith(RESERVED_PREFIXES) or ":" not in key:
                continue
            if not isinstance(raw, list):
                continue
            values[key] = [
                ValuePayload.model_validate(entry)
                for entry in cast("list[object]", raw)
                if isinstance(entry, Mapping)
            ]
        return values

    def to_fields(self) -> dict[str, object]:
        """Flatten the payload into source fields, references reduced to ids."""

        fields: dict[str, object] = {"o:id": self.id, "@type": list(self.types)}
        references = {
            "o:owner": self.owner,
            "o:resource_class": self.resource_class,
            "o:resource_template": self.resource_template,
            "o:thumbnail": self.thumbnail,
            "o:item": self.item,
        }
        for key, reference in references.items():
            if reference is not None:
                fields[key] = reference.id
        if self.item_sets:
            fields["o:item_set"] = [reference.id for reference in self.item_sets]
        if self.media:
            fields["o:media"] = [reference.id for reference in self.media]
        scalars = {
            "o:is_public": self.is_public,
            "o:is_open": self.is_open,
            "o:ingester": self.ingester,
            "o:renderer": self.renderer,
            "o:source": self.source,
            "o:media_type": self.media_type,
            "o:lang": self.lang,
            "o:created": None if self.created is None else self.created.value,
            "o:modified": None if self.modified is None else self.modified.value,
        }
        fields.update({key: value for key, value in scalars.items() if value is not None})
        for term, values in self.property_values().items():
            fields[term] = [value.to_raw() for value in values]
        return fields


class ErrorResponse(OmekaBaseModel):
    errors: dict[str, object]

    @property
    def message(self) -> str:
        return "; ".join(f"{key}: {value}" for key, value in self.errors.items())


class ApiContextResponse(OmekaBaseModel):
    context: dict[str, object] = Field(alias="@context")
