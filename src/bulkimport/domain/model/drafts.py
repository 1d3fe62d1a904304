"""Source records and the in-progress drafts built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, cast

from bulkimport.domain.model.enums import ResourceKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bulkimport.domain.model.values import ValueAssignment


@dataclass(frozen=True, slots=True)
class SourceRecord:
    """One raw row of the legacy system: ordered field name to raw value(s)."""

    index: int
    fields: Mapping[str, object]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def is_empty(self) -> bool:
        return not any(self.values(name) for name in self.fields)

    def values(self, name: str) -> list[object]:
        """Return the non-blank values of ``name``, always as a list."""

        raw = self.fields.get(name)
        items = list(cast("list[object]", raw)) if isinstance(raw, list | tuple) else [raw]
        result: list[object] = []
        for item in items:
            if item is None:
                continue
            if isinstance(item, str):
                item = item.strip()
                if not item:
                    continue
            result.append(item)
        return result

    def first(self, name: str) -> object | None:
        values = self.values(name)
        return values[0] if values else None

    def key(self, name: str) -> str | None:
        """Return the scalar source id stored under ``name``."""

        value = self.first(name)
        return None if value is None else str(value)


@dataclass(slots=True)
class RowMessages:
    errors: list[str] = field(default_factory=list[str])
    warnings: list[str] = field(default_factory=list[str])
    notices: list[str] = field(default_factory=list[str])

    def __bool__(self) -> bool:
        return bool(self.errors or self.warnings or self.notices)


@dataclass(slots=True, kw_only=True)
class TargetDraft:
    """Mutable representation of one target entity and its dependents."""

    kind: ResourceKind
    source_index: int | None = None
    source_id: str | None = None
    identity: int | None = None
    attributes: dict[str, object] = field(default_factory=dict[str, object])
    values: dict[str, list[ValueAssignment]] = field(
        default_factory=dict[str, list["ValueAssignment"]]
    )
    item_sets: list[int] = field(default_factory=list[int])
    parent_id: int | None = None
    parent_source_id: str | None = None
    dependents: list[TargetDraft] = field(default_factory=list["TargetDraft"])
    absent_targets: set[str] = field(default_factory=set[str])
    has_error: bool = False
    identity_checked: bool = False
    messages: RowMessages = field(default_factory=RowMessages)

    def add_value(self, value: ValueAssignment) -> None:
        self.values.setdefault(value.term, []).append(value)

    def all_values(self) -> list[ValueAssignment]:
        return [value for values in self.values.values() for value in values]

    def dependent(self, kind: ResourceKind) -> TargetDraft:
        """Return the dependent draft of ``kind``, creating it on first use."""

        for draft in self.dependents:
            if draft.kind is kind and draft.identity is None:
                return draft
        draft = TargetDraft(kind=kind, source_index=self.source_index)
        self.dependents.append(draft)
        return draft

    def error(self, message: str) -> None:
        self.has_error = True
        self.messages.errors.append(message)

    def warn(self, message: str) -> None:
        self.messages.warnings.append(message)

    def notice(self, message: str) -> None:
        self.messages.notices.append(message)

    @property
    def is_empty(self) -> bool:
        return not (self.attributes or self.values or self.item_sets or self.dependents)
