"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal
from uuid import uuid4

from sqlalchemy import create_engine

from bulkimport.adapters.capabilities import StaticCapabilityRegistry
from bulkimport.adapters.sources import JsonRecordSource, OmekaApiSource, SqlTableSource
from bulkimport.adapters.sqlalchemy import UpdateResourceTitles
from bulkimport.adapters.sqlalchemy.unit_of_work import (
    BaseSqlAlchemyUnitOfWork,
    SqlAlchemyImportUnitOfWork,
    is_started,
    startup,
)
from bulkimport.config import ConfigurationError, get_import_settings, get_omeka_config
from bulkimport.config.mapping import read_mapping_file
from bulkimport.domain.chunking import ChunkController, ChunkReport, ChunkState
from bulkimport.domain.completion import CompletionPipeline, ReindexCompletion
from bulkimport.domain.context import CancellationToken, ImportContext, ImportTotals, MainResources
from bulkimport.domain.dispatch import ActionDispatcher
from bulkimport.domain.fill import FillEngine, ResourceHydrator
from bulkimport.domain.identity import IdentityResolver
from bulkimport.domain.migration import KindSource, MigrationReport, MigrationRun
from bulkimport.domain.model import KIND_ORDER, ProcessingMode, ResourceKind
from bulkimport.domain.reconcile import UpdateReconciler
from bulkimport.domain.reservation import ReservationEngine
from bulkimport.domain.resolver import EntryResolver

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from bulkimport.config import ImportSettings
    from bulkimport.config.mapping import KindMapping
    from bulkimport.domain.ports import (
        CapabilityRegistry,
        CompletionJob,
        ImportRepositories,
        ImportUnitOfWork,
        JobHost,
        SourceIterator,
    )

UnitOfWorkFactory = Callable[[], "ImportUnitOfWork"]

log = getLogger(__name__)

type SourceType = Literal["json", "sql", "omeka"]


@dataclass(frozen=True, slots=True)
class SourceSpec:
    """Where the legacy records come from and how to select them."""

    type: SourceType
    location: str
    filters: Mapping[str, object] | None = None
    order_by: str | None = None
    descending: bool = False

    def open(self, object_type: str | None) -> SourceIterator:
        source: SourceIterator
        match self.type:
            case "json":
                source = JsonRecordSource(self.location)
            case "sql":
                source = SqlTableSource(create_engine(self.location, future=True))
            case "omeka":
                omeka = OmekaApiSource(get_omeka_config(endpoint=self.location))
                omeka.check_endpoint()
                source = omeka
        source.set_object_type(object_type)
        if self.filters:
            source.set_filters(self.filters)
        if self.order_by is not None:
            source.set_order(self.order_by, descending=self.descending)
        return source

    def object_type_for(
        self, kind: ResourceKind, mapping: KindMapping, *, single: bool
    ) -> str | None:
        """Declared object type, else the kind name (a whole JSON file for one kind)."""

        if mapping.object_type is not None:
            return mapping.object_type
        if self.type == "json" and single:
            return None
        return kind.value


@dataclass(slots=True)
class ImportServices:
    context: ImportContext
    resolver: EntryResolver
    hydrator: ResourceHydrator
    identity: IdentityResolver
    dispatcher: ActionDispatcher


@dataclass(slots=True)
class ImportResult:
    run_id: str
    kind: ResourceKind
    report: ChunkReport
    totals: ImportTotals
    saved_mappings: int = 0
    completed_jobs: tuple[str, ...] = ()
    has_error: bool = False


def init_database(*, database_uri: str | None = None) -> None:
    """Create or upgrade the target store schema."""

    startup(database_uri=database_uri, force=is_started())
    log.info("Target store schema is up to date.")


def build_services(
    repositories: ImportRepositories,
    settings: ImportSettings,
    *,
    registry: CapabilityRegistry | None = None,
    job_host: JobHost | None = None,
) -> ImportServices:
    """Wire the import core around one store session."""

    working_set = repositories.working_set
    main_resources = MainResources(working_set)
    context = ImportContext(
        action=settings.action,
        identifier_names=settings.identifier_names,
        owner_id=settings.owner_id,
        job_host=job_host or CancellationToken(),
        main_resources=main_resources,
    )
    hydrator = ResourceHydrator(
        working_set=working_set,
        main_resources=main_resources,
        tables=context.tables,
        registry=registry or StaticCapabilityRegistry.from_names(settings.modules),
        default_owner_id=settings.owner_id,
    )
    reconciler = UpdateReconciler(
        identifier_names=settings.identifier_names,
        action_identifier=settings.action_identifier,
        action_media=settings.action_media,
        action_item_set=settings.action_item_set,
    )
    return ImportServices(
        context=context,
        resolver=EntryResolver(
            vocabulary=working_set.property_ids(),
            tables=context.tables,
            value_datatype_literal=settings.value_datatype_literal,
        ),
        hydrator=hydrator,
        identity=IdentityResolver(
            store=repositories.store,
            identifier_names=settings.identifier_names,
            allow_duplicate_identifiers=settings.allow_duplicate_identifiers,
            action_unidentified=settings.action_unidentified,
        ),
        dispatcher=ActionDispatcher(
            store=repositories.store,
            working_set=working_set,
            hydrator=hydrator,
            reconciler=reconciler,
            context=context,
            action_unidentified=settings.action_unidentified,
        ),
    )


def _completion_jobs(uow: ImportUnitOfWork) -> list[CompletionJob]:
    jobs: list[CompletionJob] = []
    if isinstance(uow, BaseSqlAlchemyUnitOfWork):
        jobs.append(UpdateResourceTitles(uow.session))
    jobs.append(ReindexCompletion())
    return jobs


def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyImportUnitOfWork


def migrate(
    *,
    source: SourceSpec,
    mapping_path: Path,
    settings: ImportSettings | None = None,
    registry: CapabilityRegistry | None = None,
    job_host: JobHost | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sources: Mapping[ResourceKind, SourceIterator] | None = None,
) -> MigrationReport:
    """Run the two-pass migration of every kind declared in the mapping file.

    ``sources`` replaces the iterators opened from ``source`` for the kinds
    it names.
    """

    settings = settings or get_import_settings()
    mapping_file = read_mapping_file(mapping_path)
    mappings = mapping_file.entry_mappings()
    declared = mapping_file.kinds()
    effective_uow = _ensure_started(unit_of_work_factory)
    log.info(
        "Starting migration of %s from %s %s",
        ", ".join(mappings),
        source.type,
        source.location,
    )

    with effective_uow() as uow:
        repositories = uow.repositories
        services = build_services(repositories, settings, registry=registry, job_host=job_host)
        kind_sources: dict[ResourceKind, KindSource] = {}
        for kind in KIND_ORDER:
            if kind not in mappings:
                continue
            iterator = (sources or {}).get(kind) or source.open(
                source.object_type_for(kind, declared[kind], single=len(mappings) == 1)
            )
            kind_sources[kind] = KindSource(source=iterator, mapping=mappings[kind])

        run = MigrationRun(
            store=repositories.store,
            working_set=repositories.working_set,
            reservation=ReservationEngine(
                store=repositories.store,
                working_set=repositories.working_set,
                context=services.context,
                id_batch_size=settings.record_id_batch_size,
                ceiling=settings.reservation_ceiling,
            ),
            fill=FillEngine(
                working_set=repositories.working_set,
                resolver=services.resolver,
                hydrator=services.hydrator,
                context=services.context,
                chunk_size=settings.fill_chunk_size,
            ),
            context=services.context,
            completion=CompletionPipeline().extend(_completion_jobs(uow)),
        )
        report = run.run(kind_sources)
        uow.commit()

    log.info(
        "Finished migration %s: reserved=%s, saved mappings=%d, jobs=%s, error=%s",
        report.run_id,
        dict(services.context.totals.reserved),
        report.saved_mappings,
        ", ".join(report.completed_jobs) or "none",
        report.has_error,
    )
    return report


def import_entries(
    *,
    source: SourceSpec | None,
    mapping_path: Path,
    kind: ResourceKind | None = None,
    settings: ImportSettings | None = None,
    registry: CapabilityRegistry | None = None,
    job_host: JobHost | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    iterator: SourceIterator | None = None,
) -> ImportResult:
    """Import the entries of one kind with the configured action, chunk by chunk."""

    settings = settings or get_import_settings()
    mapping_file = read_mapping_file(mapping_path)
    mappings = mapping_file.entry_mappings()
    kind = kind or next(iter(mappings))
    if kind not in mappings:
        raise ConfigurationError(f"The mapping file declares no {kind.label} mapping.")
    if iterator is None:
        if source is None:
            raise ConfigurationError("A source is required to import entries.")
        iterator = source.open(
            source.object_type_for(kind, mapping_file.kinds()[kind], single=len(mappings) == 1)
        )
    effective_uow = _ensure_started(unit_of_work_factory)
    run_id = uuid4().hex
    log.info("Starting %s import of %s resources (run %s)", settings.action, kind.label, run_id)

    with effective_uow() as uow:
        repositories = uow.repositories
        services = build_services(repositories, settings, registry=registry, job_host=job_host)
        context = services.context
        controller = ChunkController(
            resolver=services.resolver,
            identity=services.identity,
            dispatcher=services.dispatcher,
            working_set=repositories.working_set,
            context=context,
            batch_size=settings.entries_by_batch,
            entries_to_skip=settings.entries_to_skip,
            entries_max=settings.entries_max,
            mode=settings.processing,
        )
        report = controller.run(iterator, mappings[kind])
        result = ImportResult(run_id=run_id, kind=kind, report=report, totals=context.totals)

        if report.state is ChunkState.DONE and settings.processing is not ProcessingMode.DRY_RUN:
            result.saved_mappings = repositories.store.save_mappings(run_id, context.tables)
            repositories.working_set.flush()
            pipeline = CompletionPipeline().extend(_completion_jobs(uow))
            result.completed_jobs = tuple(pipeline.run(context))
        uow.commit()

    result.has_error = context.has_error
    log.info(
        "Finished import %s: created=%s, updated=%s, deleted=%s, state=%s",
        run_id,
        dict(context.totals.created),
        dict(context.totals.updated),
        dict(context.totals.deleted),
        report.state,
    )
    return result
