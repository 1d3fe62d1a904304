"""Process-wide state of one import run."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from bulkimport.domain.mapping_table import MappingTables
from bulkimport.domain.model import Action

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bulkimport.domain.model import ResourceKind
    from bulkimport.domain.ports import JobHost, WorkingSet

log = getLogger(__name__)


class StaleReferenceError(RuntimeError):
    """Raised when a cached entity is used after the working set was cleared."""


@dataclass(frozen=True, slots=True)
class EntityRef[T]:
    """Stable handle on a persistent entity: its type and id, never the object."""

    entity_type: type[T]
    id: int

    def reload(self, working_set: WorkingSet) -> T | None:
        return working_set.load(self.entity_type, self.id)


class MainResources:
    """Cache of frequently reused reference entities (owner, templates, classes).

    Objects are held per working-set generation. After a clear every cached
    object is stale; :meth:`reload` fetches them again by stable id.
    """

    def __init__(self, working_set: WorkingSet) -> None:
        self._working_set = working_set
        self._refs: dict[tuple[type[Any], int], EntityRef[Any]] = {}
        self._objects: dict[tuple[type[Any], int], Any] = {}
        self._aliases: dict[tuple[type[Any], str], int | None] = {}
        self._stale = False

    def entity[T](self, entity_type: type[T], entity_id: int) -> T | None:
        if self._stale:
            raise StaleReferenceError("Main resources must be reloaded after a clear")
        key = (entity_type, entity_id)
        if key not in self._objects:
            ref = EntityRef(entity_type, entity_id)
            self._refs[key] = ref
            self._objects[key] = ref.reload(self._working_set)
        return self._objects[key]

    def remember_alias(self, entity_type: type[Any], alias: str, entity_id: int | None) -> None:
        self._aliases[(entity_type, alias)] = entity_id

    def alias(self, entity_type: type[Any], alias: str) -> tuple[bool, int | None]:
        key = (entity_type, alias)
        if key in self._aliases:
            return True, self._aliases[key]
        return False, None

    def invalidate(self) -> None:
        self._objects.clear()
        self._stale = True

    def reload(self) -> None:
        """Re-fetch every known reference after the working set was cleared."""

        self._objects = {key: ref.reload(self._working_set) for key, ref in self._refs.items()}
        self._stale = False
        log.debug("Reloaded %d main resources", len(self._objects))


@dataclass(slots=True)
class ImportTotals:
    seen: int = 0
    skipped: int = 0
    processed: int = 0
    errors: int = 0
    reserved: Counter[ResourceKind] = field(default_factory=Counter["ResourceKind"])
    created: Counter[ResourceKind] = field(default_factory=Counter["ResourceKind"])
    updated: Counter[ResourceKind] = field(default_factory=Counter["ResourceKind"])
    deleted: Counter[ResourceKind] = field(default_factory=Counter["ResourceKind"])

    def summary(self, total: int | None = None) -> str:
        done = self.processed + self.skipped + self.errors
        scope = f"{done}/{total}" if total is not None else str(done)
        return (
            f"{scope} resources processed, {self.skipped} skipped or blank, "
            f"{self.errors} errors inside data."
        )


@dataclass(slots=True)
class CancellationToken:
    """In-process job host: cancellation requested by a signal or a caller."""

    requested: bool = False

    def cancel(self) -> None:
        self.requested = True

    def should_stop(self) -> bool:
        return self.requested


@dataclass(slots=True, kw_only=True)
class ImportContext:
    action: Action = Action.CREATE
    identifier_names: Sequence[str] = ("o:id",)
    owner_id: int | None = None
    tables: MappingTables = field(default_factory=MappingTables)
    totals: ImportTotals = field(default_factory=ImportTotals)
    job_host: JobHost = field(default_factory=CancellationToken)
    main_resources: MainResources | None = None
    chunks: int = 0
    has_error: bool = False

    def should_stop(self) -> bool:
        return self.job_host.should_stop()

    def is_error_or_stop(self) -> bool:
        return self.has_error or self.should_stop()

    def structural_error(self, message: str) -> None:
        log.error(message)
        self.has_error = True
