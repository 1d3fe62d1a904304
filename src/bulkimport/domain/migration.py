"""Two-pass migration of a whole source: reserve every kind, then fill it.

Phases run in order and the run stops at the first phase boundary after a
structural error or a cancellation:

1. prerequisites: every kind with a parent needs a source for that parent;
2. reservation of each kind, parents first;
3. fill of each reserved kind, with the mapping parity check;
4. the mapping tables are saved to the import ledger;
5. completion jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from bulkimport.domain.completion import CompletionPipeline
from bulkimport.domain.errors import BulkImportError
from bulkimport.domain.model import KIND_ORDER

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from bulkimport.domain.context import ImportContext
    from bulkimport.domain.fill import FillEngine, FillReport
    from bulkimport.domain.model import EntryMapping, ResourceKind
    from bulkimport.domain.ports import SourceIterator, StoreGateway, WorkingSet
    from bulkimport.domain.reservation import ReservationEngine, ReservationReport

log = getLogger(__name__)

type Phase = Callable[[Mapping[ResourceKind, KindSource], MigrationReport], None]


@dataclass(frozen=True, slots=True)
class KindSource:
    """Records of one resource kind and the mapping that applies to them."""

    source: SourceIterator
    mapping: EntryMapping


@dataclass(slots=True)
class MigrationReport:
    run_id: str
    reservations: dict[ResourceKind, ReservationReport] = field(
        default_factory=dict["ResourceKind", "ReservationReport"]
    )
    fills: dict[ResourceKind, FillReport] = field(
        default_factory=dict["ResourceKind", "FillReport"]
    )
    saved_mappings: int = 0
    completed_jobs: list[str] = field(default_factory=list[str])
    has_error: bool = False


class MigrationRun:
    def __init__(
        self,
        *,
        store: StoreGateway,
        working_set: WorkingSet,
        reservation: ReservationEngine,
        fill: FillEngine,
        context: ImportContext,
        completion: CompletionPipeline | None = None,
        run_id: str | None = None,
    ) -> None:
        self.store = store
        self.working_set = working_set
        self.reservation = reservation
        self.fill = fill
        self.context = context
        self.completion = completion or CompletionPipeline()
        self.run_id = run_id or uuid4().hex

    def run(self, sources: Mapping[ResourceKind, KindSource]) -> MigrationReport:
        report = MigrationReport(run_id=self.run_id)
        phases: tuple[tuple[str, Phase], ...] = (
            ("prerequisites", self._check_prerequisites),
            ("reservation", self._reserve),
            ("fill", self._fill),
            ("ledger", self._save_mappings),
            ("completion", self._complete),
        )
        for name, phase in phases:
            if self.context.is_error_or_stop():
                log.warning("Migration stopped before the %s phase.", name)
                break
            log.info("Migration phase: %s.", name)
            try:
                phase(sources, report)
            except BulkImportError as exc:
                self.context.structural_error(str(exc))
        report.has_error = self.context.has_error
        log.info("Migration %s finished: %s", self.run_id, self.context.totals.summary())
        return report

    def _check_prerequisites(
        self, sources: Mapping[ResourceKind, KindSource], report: MigrationReport
    ) -> None:
        for kind in sources:
            parent = kind.parent
            if parent is not None and parent not in sources and not self.context.tables[parent]:
                self.context.structural_error(
                    f"{kind.label.capitalize()} resources cannot be imported without "
                    f"{parent.label} resources."
                )

    def _reserve(
        self, sources: Mapping[ResourceKind, KindSource], report: MigrationReport
    ) -> None:
        for kind in KIND_ORDER:
            if kind not in sources:
                continue
            if self.context.should_stop():
                return
            entry = sources[kind]
            source_ids: list[str] = []
            parents: dict[str, str] = {}
            for record in entry.source:
                source_id = record.key(entry.mapping.key_field)
                if source_id is None:
                    continue
                source_ids.append(source_id)
                if entry.mapping.parent_field is not None:
                    parent_id = record.key(entry.mapping.parent_field)
                    if parent_id is not None:
                        parents[source_id] = parent_id
            report.reservations[kind] = self.reservation.reserve(
                kind, source_ids, parents=parents or None
            )

    def _fill(self, sources: Mapping[ResourceKind, KindSource], report: MigrationReport) -> None:
        for kind in KIND_ORDER:
            reservation = report.reservations.get(kind)
            if kind not in sources or reservation is None or reservation.skipped:
                continue
            if self.context.should_stop():
                return
            entry = sources[kind]
            report.fills[kind] = self.fill.fill(kind, entry.source, entry.mapping)

    def _save_mappings(
        self, sources: Mapping[ResourceKind, KindSource], report: MigrationReport
    ) -> None:
        report.saved_mappings = self.store.save_mappings(self.run_id, self.context.tables)
        self.working_set.flush()
        log.info("%d mappings saved for run %s.", report.saved_mappings, self.run_id)

    def _complete(
        self, sources: Mapping[ResourceKind, KindSource], report: MigrationReport
    ) -> None:
        report.completed_jobs = self.completion.run(self.context)
