"""Unit-of-work abstractions for coordinating the store ports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from bulkimport.domain.ports.store import StoreGateway, WorkingSet


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of store ports managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class ImportRepositories(RepositoryCollection):
    """Ports sharing one store session for the duration of a run."""

    store: StoreGateway
    working_set: WorkingSet


type ImportUnitOfWork = UnitOfWork[ImportRepositories]
