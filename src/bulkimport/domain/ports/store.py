"""Ports for the target store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from bulkimport.domain.mapping_table import MappingTables
    from bulkimport.domain.model import Property, Resource, ResourceKind
    from bulkimport.domain.model.resources import ResourceClass, ResourceTemplate, User


@runtime_checkable
class StoreGateway(Protocol):
    """Bulk statements and identity lookups against the target store."""

    def insert_placeholders(
        self, kind: ResourceKind, source_ids: Sequence[str], *, owner_id: int | None
    ) -> None:
        """Insert one base row per source id, the id written as correlation marker."""
        ...

    def read_back_placeholders(self, kind: ResourceKind) -> list[tuple[str, int]]:
        """Return ``(marker, target id)`` for base rows of ``kind`` without a kind row."""
        ...

    def finalize_placeholders(
        self,
        kind: ResourceKind,
        target_ids: Sequence[int],
        *,
        provisional_parent_id: int | None = None,
    ) -> None:
        """Insert the minimal kind rows for reserved base rows."""
        ...

    def reassign_parents(self, kind: ResourceKind, pairs: Sequence[tuple[int, int]]) -> None:
        """Set ``(child id, parent id)`` pairs on child rows."""
        ...

    def resource_kind_of(self, resource_id: int) -> ResourceKind | None: ...

    def find_ids(
        self, kind: ResourceKind, identifier_name: str, candidates: Sequence[str]
    ) -> list[int]:
        """Return distinct ids of ``kind`` whose identifier matches a candidate."""
        ...

    def delete(
        self, kind: ResourceKind, ids: Sequence[int], *, continue_on_error: bool = True
    ) -> list[int]:
        """Delete resources, returning the ids actually deleted."""
        ...

    def save_mappings(self, run_id: str, tables: MappingTables) -> int:
        """Persist the final source to target id pairs for downstream jobs."""
        ...


@runtime_checkable
class WorkingSet(Protocol):
    """Per-run identity cache. Cleared on a fixed cadence to bound memory."""

    def get(self, kind: ResourceKind, resource_id: int) -> Resource | None: ...

    def load[T](self, entity_type: type[T], entity_id: int) -> T | None: ...

    def add(self, entity: Resource) -> None:
        """Persist ``entity`` immediately so it receives an id."""
        ...

    def flush(self) -> None:
        """Make pending changes durable."""
        ...

    def clear(self) -> None:
        """Drop every loaded object; references obtained before are stale."""
        ...

    def object_count(self) -> int: ...

    def property_ids(self) -> Mapping[str, int]: ...

    def find_user(self, key: str | int) -> User | None: ...

    def find_template(self, key: str | int) -> ResourceTemplate | None: ...

    def find_class(self, key: str | int) -> ResourceClass | None: ...

    def find_property(self, term: str) -> Property | None: ...
