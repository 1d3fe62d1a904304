from __future__ import annotations

from bulkimport.domain.mapping_table import MappingTable, MappingTables
from bulkimport.domain.model import ResourceKind


def test_reserve_keeps_insertion_order_and_position() -> None:
    table = MappingTable(ResourceKind.ITEMS)

    assert table.reserve("b")
    assert table.reserve("a")
    assert not table.reserve("b")
    table.assign("a", 11)
    table.assign("b", 10)
    table.mark_missing("b")

    assert list(table) == ["b", "a"]
    assert len(table) == 2
    assert table.resolved_count == 1
    assert table.target_ids() == [11]
    assert table.first_target_id() == 11


def test_resolve_walks_kinds_in_order() -> None:
    tables = MappingTables()
    tables[ResourceKind.ITEMS].assign("x", 5)
    tables[ResourceKind.ITEM_SETS].assign("x", 2)
    tables[ResourceKind.MEDIA].assign("m", 9)

    assert tables.resolve("x") == (ResourceKind.ITEM_SETS, 2)
    assert tables.resolve("x", (ResourceKind.ITEMS,)) == (ResourceKind.ITEMS, 5)
    assert tables.resolve("m", (ResourceKind.ITEMS,)) is None
    assert tables.resolve("m") == (ResourceKind.MEDIA, 9)
