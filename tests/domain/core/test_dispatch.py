from __future__ import annotations

import logging

import pytest

from bulkimport.config import ImportSettings
from bulkimport.domain.model import (
    Action,
    Item,
    Resource,
    ResourceKind,
    TargetDraft,
    UnidentifiedAction,
    Value,
    ValueAssignment,
)
from tests.helpers.core import make_core
from tests.helpers.store import FakeStoreGateway, FakeWorkingSet, InMemoryTargetStore


def _titled(title: str | None, *, identity: int | None = None, index: int = 1) -> TargetDraft:
    draft = TargetDraft(
        kind=ResourceKind.ITEMS, source_index=index, source_id=f"s{index}", identity=identity
    )
    if title is not None:
        draft.add_value(ValueAssignment.of_literal("dcterms:title", title))
    return draft


def _existing(store: InMemoryTargetStore, title: str) -> Item:
    values = [
        Value(property_id=1, value=title),
        Value(property_id=5, value="kept subject"),
    ]
    return store.add_resource(Item(title=title, values=values))


def test_create_persists_and_maps_the_source_id() -> None:
    core = make_core()

    core.services.dispatcher.dispatch([_titled("New")], Action.CREATE)

    target = core.context.tables[ResourceKind.ITEMS].get("s1")
    assert target is not None
    assert core.store.resources[target].title == "New"
    assert core.context.totals.created[ResourceKind.ITEMS] == 1
    assert core.context.totals.processed == 1


def test_revise_overwrites_mapped_values_only() -> None:
    core = make_core()
    item = _existing(core.store, "Old")
    draft = _titled("Revised", identity=item.id)

    core.services.dispatcher.dispatch([draft], Action.REVISE)

    assert item.title == "Revised"
    assert [value.value for value in item.values] == ["Revised", "kept subject"]
    assert core.context.totals.updated[ResourceKind.ITEMS] == 1


def test_unidentified_updates_are_skipped_or_created() -> None:
    skipping = make_core()
    skipping.services.dispatcher.dispatch([_titled("Orphan")], Action.UPDATE)

    creating = make_core(ImportSettings(action_unidentified=UnidentifiedAction.CREATE))
    creating.services.dispatcher.dispatch([_titled("Orphan")], Action.UPDATE)

    assert skipping.context.totals.skipped == 1
    assert not skipping.store.resources
    assert creating.context.totals.created[ResourceKind.ITEMS] == 1


def test_delete_counts_rows_the_store_refused() -> None:
    store = InMemoryTargetStore()
    kept = _existing(store, "Locked")
    removed = _existing(store, "Gone")
    assert kept.id is not None
    core = make_core(store=store, gateway=FakeStoreGateway(store, undeletable=[kept.id]))
    drafts = [
        _titled(None, identity=kept.id, index=1),
        _titled(None, identity=removed.id, index=2),
        _titled(None, index=3),
    ]

    core.services.dispatcher.dispatch(drafts, Action.DELETE)

    totals = core.context.totals
    assert (totals.processed, totals.errors, totals.skipped) == (1, 1, 1)
    assert totals.deleted[ResourceKind.ITEMS] == 1
    assert set(store.resources) == {kept.id}


def test_skip_action_touches_nothing() -> None:
    core = make_core()

    core.services.dispatcher.dispatch([_titled("A"), _titled("B", index=2)], Action.SKIP)

    assert core.context.totals.skipped == 2
    assert not core.store.resources


def test_rejected_row_is_logged_and_the_batch_goes_on(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryTargetStore()

    def reject(entity: Resource) -> list[str]:
        return [] if entity.title else ["A title is required."]

    core = make_core(store=store, working_set=FakeWorkingSet(store, reject=reject))

    with caplog.at_level(logging.ERROR):
        core.services.dispatcher.dispatch(
            [_titled(None, index=1), _titled("Fine", index=2)], Action.CREATE
        )

    assert core.context.totals.errors == 1
    assert core.context.totals.created[ResourceKind.ITEMS] == 1
    assert "Index #1: resource: A title is required." in caplog.text


class FailingWorkingSet(FakeWorkingSet):
    def add(self, entity: Resource) -> None:
        if entity.title == "Broken":
            raise TypeError("unexpected payload")
        super().add(entity)


def test_unexpected_row_failure_is_counted_and_the_batch_goes_on(
    caplog: pytest.LogCaptureFixture,
) -> None:
    store = InMemoryTargetStore()
    core = make_core(store=store, working_set=FailingWorkingSet(store))

    with caplog.at_level(logging.ERROR):
        core.services.dispatcher.dispatch(
            [_titled("Broken", index=1), _titled("Fine", index=2)], Action.CREATE
        )

    assert core.context.totals.errors == 1
    assert core.context.totals.processed == 1
    assert [resource.title for resource in store.resources.values()] == ["Fine"]
    assert "Index #1: the item failed." in caplog.text


def test_create_never_merges_into_an_identified_draft() -> None:
    core = make_core()
    item = _existing(core.store, "Old")

    core.services.dispatcher.dispatch([_titled("New", identity=item.id)], Action.CREATE)

    assert item.title == "Old"
    assert core.context.totals.created[ResourceKind.ITEMS] == 1
