"""Ports consumed by the import core."""

from __future__ import annotations

from .capabilities import CapabilityRegistry
from .jobs import CompletionJob, JobHost
from .sources import SourceIterator
from .store import StoreGateway, WorkingSet
from .unit_of_work import ImportRepositories, ImportUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "CapabilityRegistry",
    "CompletionJob",
    "ImportRepositories",
    "ImportUnitOfWork",
    "JobHost",
    "RepositoryCollection",
    "SourceIterator",
    "StoreGateway",
    "UnitOfWork",
    "WorkingSet",
]
