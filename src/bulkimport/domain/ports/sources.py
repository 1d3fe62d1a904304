"""Port for the lazily-produced sequence of source records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from bulkimport.domain.model import SourceRecord


@runtime_checkable
class SourceIterator(Protocol):
    """Finite, restartable sequence of source records.

    Selectors must be set before iteration begins. Iterating again restarts
    from the beginning; ``clone`` returns an independent iterator with the
    same selectors, used to pre-scan while the main pass continues.
    """

    def __iter__(self) -> Iterator[SourceRecord]: ...

    def set_object_type(self, object_type: str | None) -> None: ...

    def set_filters(self, filters: Mapping[str, object]) -> None: ...

    def set_order(self, field: str | None, *, descending: bool = False) -> None: ...

    def clone(self) -> Self: ...

    def count(self) -> int: ...
