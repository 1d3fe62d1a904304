"""Per-kind, insertion-ordered association of source ids to target ids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bulkimport.domain.model.enums import KIND_ORDER, ResourceKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


@dataclass(slots=True)
class MappingTable:
    """``source id -> target id | None`` for one resource kind.

    A reserved key keeps its position for the whole run, including when
    its target later turns out to be missing.
    """

    kind: ResourceKind
    _entries: dict[str, int | None] = field(default_factory=dict[str, "int | None"])

    def reserve(self, source_id: str) -> bool:
        """Register ``source_id`` without a target; return whether it was new."""

        if source_id in self._entries:
            return False
        self._entries[source_id] = None
        return True

    def assign(self, source_id: str, target_id: int) -> None:
        self._entries[source_id] = target_id

    def mark_missing(self, source_id: str) -> None:
        if source_id in self._entries:
            self._entries[source_id] = None

    def get(self, source_id: str) -> int | None:
        return self._entries.get(source_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self) -> Iterable[tuple[str, int | None]]:
        return self._entries.items()

    @property
    def resolved_count(self) -> int:
        return sum(1 for target in self._entries.values() if target is not None)

    def target_ids(self) -> list[int]:
        return [target for target in self._entries.values() if target is not None]

    def first_target_id(self) -> int | None:
        return next((t for t in self._entries.values() if t is not None), None)


@dataclass(slots=True)
class MappingTables:
    """The mapping tables of one run, one per kind."""

    _tables: dict[ResourceKind, MappingTable] = field(
        default_factory=lambda: {kind: MappingTable(kind) for kind in KIND_ORDER}
    )

    def __getitem__(self, kind: ResourceKind) -> MappingTable:
        return self._tables[kind]

    def __iter__(self) -> Iterator[MappingTable]:
        return iter(self._tables.values())

    def resolve(
        self, source_id: str, kinds: Iterable[ResourceKind] | None = None
    ) -> tuple[ResourceKind, int] | None:
        """Find ``source_id`` in the given kinds (all by default), in kind order."""

        for kind in kinds if kinds is not None else KIND_ORDER:
            target = self._tables[kind].get(source_id)
            if target is not None:
                return kind, target
        return None
