"""Post-import jobs run against the final mapping tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from bulkimport.domain.context import ImportContext
    from bulkimport.domain.model import ResourceKind
    from bulkimport.domain.ports import CompletionJob

log = getLogger(__name__)


@runtime_checkable
class ReindexJob(Protocol):
    """Hook for the search indexer, fed with the ids of each imported kind."""

    name: str

    def reindex(self, kind: ResourceKind, ids: Sequence[int]) -> None: ...


@dataclass(slots=True)
class LoggingReindexer:
    """Reindexer that only reports what would be indexed."""

    name: str = "reindex"

    def reindex(self, kind: ResourceKind, ids: Sequence[int]) -> None:
        log.info("%d %s resources to reindex.", len(ids), kind.label)


@dataclass(slots=True)
class ReindexCompletion:
    """Adapt a :class:`ReindexJob` to the completion job contract."""

    reindexer: ReindexJob = field(default_factory=LoggingReindexer)

    @property
    def name(self) -> str:
        return self.reindexer.name

    def run(self, context: ImportContext) -> None:
        for table in context.tables:
            ids = table.target_ids()
            if ids:
                self.reindexer.reindex(table.kind, ids)


@dataclass(slots=True)
class CompletionPipeline:
    """Compose and execute the ordered completion jobs.

    Jobs run in order after the last import phase. A cancellation or a
    run-wide error stops the pipeline before the next job.
    """

    jobs: Sequence[CompletionJob] = field(default_factory=tuple)

    def with_job(self, job: CompletionJob) -> CompletionPipeline:
        """Return a new pipeline appending ``job`` at the end."""

        return CompletionPipeline(jobs=(*self.jobs, job))

    def extend(self, jobs: Iterable[CompletionJob]) -> CompletionPipeline:
        return CompletionPipeline(jobs=(*self.jobs, *tuple(jobs)))

    def run(self, context: ImportContext) -> list[str]:
        """Execute the jobs in order and return the names of those that ran."""

        completed: list[str] = []
        for job in self.jobs:
            if context.is_error_or_stop():
                log.warning("Completion stopped before %s.", job.name)
                break
            log.info("Running completion job %s.", job.name)
            job.run(context)
            completed.append(job.name)
        return completed
