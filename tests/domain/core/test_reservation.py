from __future__ import annotations

import logging

import pytest

from bulkimport.domain.context import ImportContext
from bulkimport.domain.errors import ReservationLimitError
from bulkimport.domain.model import Item, Media, ResourceKind
from bulkimport.domain.reservation import ReservationEngine
from tests.helpers.store import FakeStoreGateway, FakeWorkingSet, InMemoryTargetStore


def _engine(
    store: InMemoryTargetStore, *, id_batch_size: int = 10, ceiling: int = 1000
) -> tuple[ReservationEngine, ImportContext, FakeWorkingSet]:
    context = ImportContext()
    working_set = FakeWorkingSet(store)
    engine = ReservationEngine(
        store=FakeStoreGateway(store),
        working_set=working_set,
        context=context,
        id_batch_size=id_batch_size,
        ceiling=ceiling,
    )
    return engine, context, working_set


def test_distinct_source_ids_are_reserved_in_batches() -> None:
    store = InMemoryTargetStore()
    engine, context, working_set = _engine(store)
    source_ids = [f"s{n}" for n in range(25)] + ["s3", "", "s7"]

    report = engine.reserve(ResourceKind.ITEMS, source_ids)

    assert (report.requested, report.reserved, report.batches) == (25, 25, 3)
    assert [s for s in store.statements if s.startswith("insert")] == [
        "insert items x10",
        "insert items x10",
        "insert items x5",
    ]
    table = context.tables[ResourceKind.ITEMS]
    assert list(table) == [f"s{n}" for n in range(25)]
    assert table.resolved_count == 25
    assert context.totals.reserved[ResourceKind.ITEMS] == 25
    assert all(isinstance(store.resources[target], Item) for target in table.target_ids())
    assert not store.placeholders
    assert working_set.flushes == 3


def test_reserving_again_adds_nothing() -> None:
    engine, context, _ = _engine(InMemoryTargetStore())
    engine.reserve(ResourceKind.ITEM_SETS, ["a", "b"])

    again = engine.reserve(ResourceKind.ITEM_SETS, ["a", "b"])

    assert again.reserved == 0
    assert context.totals.reserved[ResourceKind.ITEM_SETS] == 2


def test_reservation_above_the_ceiling_is_refused() -> None:
    store = InMemoryTargetStore()
    engine, _, _ = _engine(store, ceiling=3)

    with pytest.raises(ReservationLimitError) as excinfo:
        engine.reserve(ResourceKind.ITEMS, ["a", "b", "c", "d"])

    assert excinfo.value.count == 4
    assert not store.resources


def test_children_are_skipped_without_reserved_parents(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryTargetStore()
    engine, _, _ = _engine(store)

    with caplog.at_level(logging.WARNING):
        report = engine.reserve(ResourceKind.MEDIA, ["m1"], parents={"m1": "i1"})

    assert report.skipped
    assert report.reserved == 0
    assert "cannot be reserved" in caplog.text
    assert not store.statements


def test_children_get_a_provisional_parent_then_their_own() -> None:
    store = InMemoryTargetStore()
    engine, context, _ = _engine(store)
    engine.reserve(ResourceKind.ITEMS, ["i1", "i2"])
    items = context.tables[ResourceKind.ITEMS]

    report = engine.reserve(
        ResourceKind.MEDIA, ["m1", "m2", "m3"], parents={"m1": "i2", "m2": "i1", "m3": "gone"}
    )

    assert (report.reserved, report.excluded, report.reassigned) == (2, 1, 2)
    media = context.tables[ResourceKind.MEDIA]
    assert "m3" not in media
    first = store.resources[media.get("m1") or 0]
    second = store.resources[media.get("m2") or 0]
    assert isinstance(first, Media)
    assert isinstance(second, Media)
    assert first.item is not None
    assert first.item.id == items.get("i2")
    assert second.item is not None
    assert second.item.id == items.get("i1")
    parent = store.resources[items.get("i1") or 0]
    assert isinstance(parent, Item)
    assert parent.media == [second]
