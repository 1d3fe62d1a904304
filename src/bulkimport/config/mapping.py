"""JSON mapping files: which source field goes to which target, per kind.

Example::

    {
      "items": {
        "object_type": "documents",
        "key_field": "id",
        "item_sets_field": "collection_id",
        "fields": {
          "title": ["dcterms:title @fr"],
          "author": ["dcterms:creator ^^resource:item ^^literal"],
          "file": [{"destination": "o:source", "sub_target": "media"}]
        }
      }
    }
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bulkimport.domain.errors import TargetExpressionError
from bulkimport.domain.model import EntryMapping, ResourceKind, Target
from bulkimport.domain.model.values import LITERAL
from bulkimport.domain.targets import parse_target_expression

from .errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)


class MappingBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TargetModel(MappingBaseModel):
    destination: str = Field(alias="target")
    datatypes: list[str] = Field(default_factory=lambda: [LITERAL], alias="datatype")
    language: str | None = Field(default=None, alias="@language")
    is_public: bool | None = None
    sub_target: ResourceKind | None = None

    @field_validator("datatypes", mode="before")
    @classmethod
    def _single_datatype(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value

    def to_target(self) -> Target:
        return Target(
            destination=self.destination,
            datatypes=tuple(self.datatypes) or (LITERAL,),
            language=self.language,
            is_public=self.is_public,
            sub_target=self.sub_target,
        )


class KindMapping(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key_field: str
    object_type: str | None = None
    parent_field: str | None = None
    item_sets_field: str | None = None
    targets: dict[str, list[str | TargetModel]] = Field(default_factory=dict, alias="fields")

    @field_validator("targets", mode="before")
    @classmethod
    def _single_target(cls, value: object) -> object:
        if isinstance(value, dict):
            return {
                key: target if isinstance(target, list) else [target]
                for key, target in value.items()
            }
        return value

    def to_entry_mapping(self, kind: ResourceKind) -> EntryMapping:
        if self.model_extra:
            log.warning(
                "Unknown keys in the %s mapping are ignored: %s",
                kind.label,
                ", ".join(sorted(self.model_extra)),
            )
        fields: dict[str, tuple[Target, ...]] = {}
        for source_field, entries in self.targets.items():
            targets: list[Target] = []
            for entry in entries:
                if isinstance(entry, TargetModel):
                    targets.append(entry.to_target())
                else:
                    targets.extend(parse_target_expression(entry))
            fields[source_field] = tuple(targets)
        if self.item_sets_field is not None and kind is ResourceKind.ITEMS:
            existing = fields.get(self.item_sets_field, ())
            fields[self.item_sets_field] = (*existing, Target(destination="o:item_set"))
        return EntryMapping(
            kind=kind,
            key_field=self.key_field,
            fields=fields,
            parent_field=self.parent_field,
        )


class MappingFile(MappingBaseModel):
    item_sets: KindMapping | None = None
    items: KindMapping | None = None
    media: KindMapping | None = None

    def kinds(self) -> dict[ResourceKind, KindMapping]:
        declared = {
            ResourceKind.ITEM_SETS: self.item_sets,
            ResourceKind.ITEMS: self.items,
            ResourceKind.MEDIA: self.media,
        }
        return {kind: mapping for kind, mapping in declared.items() if mapping is not None}

    def entry_mappings(self) -> dict[ResourceKind, EntryMapping]:
        try:
            return {kind: mapping.to_entry_mapping(kind) for kind, mapping in self.kinds().items()}
        except TargetExpressionError as exc:
            raise ConfigurationError(f"Invalid target expression: {exc}") from exc


def parse_mapping(document: object) -> MappingFile:
    try:
        mapping_file = MappingFile.model_validate(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid mapping: {exc}") from exc
    if not mapping_file.kinds():
        raise ConfigurationError("The mapping declares no resource kind.")
    return mapping_file


def read_mapping_file(path: Path) -> MappingFile:
    try:
        with path.open(encoding="utf-8") as handle:
            document = json.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read the mapping file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"The mapping file {path} is not valid JSON: {exc}") from exc
    return parse_mapping(document)


def load_mapping_file(path: Path) -> dict[ResourceKind, EntryMapping]:
    """Read, validate and convert a mapping file to domain mappings."""

    mappings = read_mapping_file(path).entry_mappings()
    log.info("Loaded mapping for %s from %s", ", ".join(mappings), path)
    return mappings
