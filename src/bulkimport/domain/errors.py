"""Exceptions raised by the import core."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bulkimport.domain.model.enums import ResourceKind


class BulkImportError(RuntimeError):
    """Base class for structural failures that stop a run."""


class InvalidValueError(ValueError):
    """Raised when a value assignment carries zero or several payloads."""


class TargetExpressionError(ValueError):
    """Raised when a mapping target expression cannot be parsed."""


class UnsupportedActionError(ValueError):
    """Raised for unknown action names."""


class StructuralError(BulkImportError):
    """Missing prerequisite, unreadable source or similar run-wide failure."""


class ReservationLimitError(BulkImportError):
    """Raised when a kind has more distinct source ids than the reservation ceiling."""

    def __init__(self, kind: ResourceKind, count: int, ceiling: int) -> None:
        super().__init__(
            f"The source has too many {kind.label} records ({count}, ceiling is {ceiling})."
        )
        self.kind = kind
        self.count = count
        self.ceiling = ceiling


class MappingParityError(BulkImportError):
    """Raised when the resolved mapping count differs from the reserved total."""

    def __init__(self, kind: ResourceKind, mapped: int, expected: int) -> None:
        super().__init__(
            f"Mapping mismatch for {kind.label} resources: {mapped} mapped, {expected} reserved. "
            "Some resources vanished or were merged during the fill pass."
        )
        self.kind = kind
        self.mapped = mapped
        self.expected = expected


class StoreValidationError(BulkImportError):
    """The target store rejected an entity; carries nested messages."""

    def __init__(self, messages: Mapping[str, object] | Iterable[str]) -> None:
        self.messages = messages
        super().__init__("; ".join(self.flatten()))

    def flatten(self) -> list[str]:
        return list(_flatten(self.messages))


def _flatten(messages: object, prefix: str = "") -> Iterable[str]:
    if isinstance(messages, str):
        yield f"{prefix}{messages}"
        return
    if isinstance(messages, dict):
        for key, nested in cast("dict[str, object]", messages).items():
            yield from _flatten(nested, f"{prefix}{key}: ")
        return
    for nested in cast("Iterable[object]", messages):
        yield from _flatten(nested, prefix)
