"""SQLAlchemy adapter for the target store."""

from __future__ import annotations

from .jobs import UpdateResourceTitles
from .mappings import create_all_tables, mapper_registry, start_mappers
from .store import SqlAlchemyStoreGateway
from .unit_of_work import SqlAlchemyImportUnitOfWork, shutdown, startup
from .working_set import SqlAlchemyWorkingSet

__all__ = [
    "SqlAlchemyImportUnitOfWork",
    "SqlAlchemyStoreGateway",
    "SqlAlchemyWorkingSet",
    "UpdateResourceTitles",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
