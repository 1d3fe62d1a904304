"""Entry-by-entry processing of a source with batched dispatch.

States of one run::

    READING -> RESOLVING -> CHECKING -> BUFFERING -> (FLUSHING) -> READING
                                                  \\-> DONE | ABORTED

Each entry is read, resolved into a draft, checked for identity and
buffered. Once the buffer holds ``batch_size`` drafts it is dispatched,
then the working set is flushed and cleared and the main resources are
reloaded. A cancellation observed between entries discards whatever is
buffered and not yet dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from bulkimport.domain.fill import log_draft_messages
from bulkimport.domain.model import ProcessingMode

if TYPE_CHECKING:
    from bulkimport.domain.context import ImportContext
    from bulkimport.domain.dispatch import ActionDispatcher
    from bulkimport.domain.identity import IdentityResolver
    from bulkimport.domain.model import Action, EntryMapping, TargetDraft
    from bulkimport.domain.ports import SourceIterator, WorkingSet
    from bulkimport.domain.resolver import EntryResolver

log = getLogger(__name__)

DEFAULT_BATCH_SIZE: Final = 1
PROGRESS_EVERY: Final = 100


class ChunkState(StrEnum):
    READING = "reading"
    RESOLVING = "resolving"
    CHECKING = "checking"
    BUFFERING = "buffering"
    FLUSHING = "flushing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class ChunkReport:
    state: ChunkState = ChunkState.READING
    flush_sizes: list[int] = field(default_factory=list[int])
    discarded: int = 0
    checked_errors: int = 0
    max_buffered: int = 0
    max_objects: int = 0


class ChunkController:
    def __init__(
        self,
        *,
        resolver: EntryResolver,
        identity: IdentityResolver,
        dispatcher: ActionDispatcher,
        working_set: WorkingSet,
        context: ImportContext,
        batch_size: int = DEFAULT_BATCH_SIZE,
        entries_to_skip: int = 0,
        entries_max: int = 0,
        mode: ProcessingMode = ProcessingMode.CONTINUE_ON_ERROR,
    ) -> None:
        self.resolver = resolver
        self.identity = identity
        self.dispatcher = dispatcher
        self.working_set = working_set
        self.context = context
        self.batch_size = max(1, batch_size)
        self.entries_to_skip = max(0, entries_to_skip)
        self.entries_max = max(0, entries_max)
        self.mode = mode

    def run(
        self, source: SourceIterator, mapping: EntryMapping, *, action: Action | None = None
    ) -> ChunkReport:
        action = action or self.context.action
        report = ChunkReport()
        if self.mode is not ProcessingMode.CONTINUE_ON_ERROR:
            report.checked_errors = self.check(source.clone(), mapping, action)
            if self.mode is ProcessingMode.DRY_RUN:
                log.info(
                    "Dry run: %d entries with errors, nothing persisted.", report.checked_errors
                )
                report.state = ChunkState.DONE
                return report
            if report.checked_errors:
                self.context.structural_error(
                    f"{report.checked_errors} entries have errors; the import is not processed."
                )
                report.state = ChunkState.ABORTED
                return report
        self._process(source, mapping, action, report)
        return report

    def check(self, source: SourceIterator, mapping: EntryMapping, action: Action) -> int:
        """Resolve and check every selected entry without persisting anything."""

        errors = 0
        for position, record in enumerate(source):
            if self.context.should_stop():
                break
            if position < self.entries_to_skip:
                continue
            if self.entries_max and position - self.entries_to_skip >= self.entries_max:
                break
            if record.is_empty:
                continue
            draft = self.resolver.resolve(record, mapping)
            if draft.has_error or not self.identity.check(draft, action):
                log_draft_messages(draft)
                errors += 1
        log.info("Check pass: %d entries with errors.", errors)
        return errors

    def _process(
        self,
        source: SourceIterator,
        mapping: EntryMapping,
        action: Action,
        report: ChunkReport,
    ) -> None:
        totals = self.context.totals
        total = source.count()
        buffer: list[TargetDraft] = []
        for position, record in enumerate(source):
            if self.context.should_stop():
                report.discarded = len(buffer)
                buffer.clear()
                report.state = ChunkState.ABORTED
                log.warning(
                    "The job was stopped: %d buffered entries discarded. %s",
                    report.discarded,
                    totals.summary(total),
                )
                return
            if position < self.entries_to_skip:
                continue
            if self.entries_max and totals.seen >= self.entries_max:
                break

            report.state = ChunkState.READING
            totals.seen += 1
            if totals.seen % PROGRESS_EVERY == 0:
                log.info(totals.summary(total))
            if record.is_empty:
                log.info("Index #%s: empty entry skipped.", record.index)
                totals.skipped += 1
                continue

            report.state = ChunkState.RESOLVING
            draft = self.resolver.resolve(record, mapping)

            report.state = ChunkState.CHECKING
            if draft.has_error or not self.identity.check(draft, action):
                log_draft_messages(draft)
                totals.errors += 1
                continue

            report.state = ChunkState.BUFFERING
            buffer.append(draft)
            report.max_buffered = max(report.max_buffered, len(buffer))
            if len(buffer) >= self.batch_size:
                self._flush(buffer, action, report)
                buffer = []

        if buffer:
            self._flush(buffer, action, report)
        report.state = ChunkState.DONE
        log.info("End of process: %s", totals.summary(total))

    def _flush(self, buffer: list[TargetDraft], action: Action, report: ChunkReport) -> None:
        report.state = ChunkState.FLUSHING
        self.dispatcher.dispatch(buffer, action)
        self.working_set.flush()
        report.max_objects = max(report.max_objects, self.working_set.object_count())
        self.working_set.clear()
        main_resources = self.context.main_resources
        if main_resources is not None:
            main_resources.invalidate()
            main_resources.reload()
        report.flush_sizes.append(len(buffer))
        self.context.chunks += 1
