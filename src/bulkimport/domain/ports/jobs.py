"""Ports for the job host and post-import jobs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bulkimport.domain.context import ImportContext


@runtime_checkable
class JobHost(Protocol):
    """Cooperative cancellation, checked once per entry."""

    def should_stop(self) -> bool: ...


@runtime_checkable
class CompletionJob(Protocol):
    """Job run against the final mapping tables once the import is done."""

    name: str

    def run(self, context: ImportContext) -> None: ...
