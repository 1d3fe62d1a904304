from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, select

from bulkimport.adapters.sqlalchemy.store import SqlAlchemyStoreGateway
from bulkimport.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from bulkimport.adapters.sqlalchemy.working_set import SqlAlchemyWorkingSet
from bulkimport.domain.model import Item, ResourceKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyImportUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_unit_of_work_shares_one_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyImportUnitOfWork() as uow:
        repositories = uow.repositories
        assert isinstance(repositories.store, SqlAlchemyStoreGateway)
        assert isinstance(repositories.working_set, SqlAlchemyWorkingSet)
        assert repositories.store.session is uow.session
        assert repositories.working_set.session is uow.session


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyImportUnitOfWork() as uow:
        item = Item(title="Kept")
        uow.repositories.working_set.add(item)
        uow.commit()
        kept_id = item.id

    with pytest.raises(RuntimeError), SqlAlchemyImportUnitOfWork() as uow:
        uow.session.add(Item(title="Lost"))
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyImportUnitOfWork() as uow:
        assert kept_id is not None
        assert uow.repositories.store.resource_kind_of(kept_id) is ResourceKind.ITEMS
        titles = [resource.title for resource in uow.session.execute(select(Item)).scalars()]
        assert titles == ["Kept"]


def test_session_is_released_on_exit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyImportUnitOfWork()

    with uow:
        pass

    with pytest.raises(StartupError):
        _ = uow.session
