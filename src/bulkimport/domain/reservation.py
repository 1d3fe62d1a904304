"""First pass: bulk reservation of placeholder resources.

For each id batch the engine inserts one base row per source id with the id
as correlation marker, reads back the marker to target id pairs, then
inserts the minimal kind rows. Child kinds are attached to a provisional
parent so that their parent reference is never null, then corrected in a
chunked update once the parent mapping table is complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Final

from bulkimport.domain.errors import ReservationLimitError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bulkimport.domain.context import ImportContext
    from bulkimport.domain.model import ResourceKind
    from bulkimport.domain.ports import StoreGateway, WorkingSet

log = getLogger(__name__)

DEFAULT_ID_BATCH_SIZE: Final = 10_000
DEFAULT_CEILING: Final = 10_000_000


@dataclass(slots=True)
class ReservationReport:
    kind: ResourceKind
    requested: int = 0
    reserved: int = 0
    excluded: int = 0
    batches: int = 0
    reassigned: int = 0
    skipped: bool = False


class ReservationEngine:
    def __init__(
        self,
        *,
        store: StoreGateway,
        working_set: WorkingSet,
        context: ImportContext,
        id_batch_size: int = DEFAULT_ID_BATCH_SIZE,
        ceiling: int = DEFAULT_CEILING,
    ) -> None:
        self.store = store
        self.working_set = working_set
        self.context = context
        self.id_batch_size = max(1, id_batch_size)
        self.ceiling = ceiling

    def reserve(
        self,
        kind: ResourceKind,
        source_ids: Iterable[str],
        *,
        parents: Mapping[str, str] | None = None,
    ) -> ReservationReport:
        """Reserve one placeholder per distinct source id of ``kind``.

        ``parents`` maps child source ids to parent source ids for kinds that
        must reference a parent.
        """

        report = ReservationReport(kind=kind)
        distinct = list(dict.fromkeys(source_id for source_id in source_ids if source_id))
        report.requested = len(distinct)
        if len(distinct) > self.ceiling:
            raise ReservationLimitError(kind, len(distinct), self.ceiling)
        if not distinct:
            log.info("No %s resources to reserve.", kind.label)
            return report

        provisional_parent_id: int | None = None
        if kind.parent is not None:
            parent_table = self.context.tables[kind.parent]
            provisional_parent_id = parent_table.first_target_id()
            if provisional_parent_id is None:
                log.warning(
                    "No %s is reserved, so %s resources cannot be reserved and are skipped.",
                    kind.parent.label,
                    kind.label,
                )
                report.skipped = True
                return report
            lookup = parents or {}
            accepted = [
                source_id
                for source_id in distinct
                if parent_table.get(lookup.get(source_id, "")) is not None
            ]
            report.excluded = len(distinct) - len(accepted)
            if report.excluded:
                log.warning(
                    "%d %s resources have no reserved %s and are excluded.",
                    report.excluded,
                    kind.label,
                    kind.parent.label,
                )
            distinct = accepted

        table = self.context.tables[kind]
        for batch in batched(distinct, self.id_batch_size):
            report.batches += 1
            report.reserved += self._reserve_batch(kind, batch, provisional_parent_id)

        self.context.totals.reserved[kind] += report.reserved
        if kind.parent is not None and parents:
            report.reassigned = self._reassign_parents(kind, distinct, parents)
        log.info(
            "%d %s resources reserved in %d batches (%d mapped).",
            report.reserved,
            kind.label,
            report.batches,
            table.resolved_count,
        )
        return report

    def _reserve_batch(
        self, kind: ResourceKind, batch: tuple[str, ...], provisional_parent_id: int | None
    ) -> int:
        table = self.context.tables[kind]
        fresh = [source_id for source_id in batch if table.reserve(source_id)]
        if not fresh:
            return 0
        self.store.insert_placeholders(kind, fresh, owner_id=self.context.owner_id)
        pairs = self.store.read_back_placeholders(kind)
        wanted = set(fresh)
        assigned: list[int] = []
        for marker, target_id in pairs:
            if marker not in wanted:
                log.warning(
                    "Unexpected placeholder %r (#%s) for %s.", marker, target_id, kind.label
                )
                continue
            table.assign(marker, target_id)
            assigned.append(target_id)
        missing = len(fresh) - len(assigned)
        if missing:
            log.warning("%d %s placeholders could not be read back.", missing, kind.label)
        self.store.finalize_placeholders(
            kind, assigned, provisional_parent_id=provisional_parent_id
        )
        self.working_set.flush()
        return len(assigned)

    def _reassign_parents(
        self, kind: ResourceKind, source_ids: list[str], parents: Mapping[str, str]
    ) -> int:
        parent = kind.parent
        if parent is None:
            return 0
        table = self.context.tables[kind]
        parent_table = self.context.tables[parent]
        pairs: list[tuple[int, int]] = []
        for source_id in source_ids:
            child_id = table.get(source_id)
            parent_id = parent_table.get(parents.get(source_id, ""))
            if child_id is not None and parent_id is not None:
                pairs.append((child_id, parent_id))
        for batch in batched(pairs, self.id_batch_size):
            self.store.reassign_parents(kind, batch)
            self.working_set.flush()
        return len(pairs)
