from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Table, func, inspect, select

from bulkimport.adapters.sqlalchemy import start_mappers
from bulkimport.adapters.sqlalchemy.mappings import media_table, property_table, value_table
from bulkimport.domain.model import Item, ItemSet, Media, Property, Resource, Value

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session


def _property_id(session: Session, term: str) -> int:
    return session.execute(
        select(property_table.c.id).where(property_table.c.term == term)
    ).scalar_one()


def test_start_mappers_is_idempotent() -> None:
    start_mappers()
    start_mappers()


def test_migrated_schema_has_the_content_tables(sqlite_engine: Engine) -> None:
    table_names = set(inspect(sqlite_engine).get_table_names())

    for required in ("resource", "item", "item_set", "media", "value", "import_mapping"):
        assert required in table_names


def test_dublin_core_terms_are_seeded(sqlite_session: Session) -> None:
    terms = set(sqlite_session.execute(select(Property.term)).scalars())

    assert {"dcterms:title", "dcterms:identifier", "dcterms:isPartOf"} <= terms


def test_resource_graph_round_trips(sqlite_session: Session) -> None:
    title_id = _property_id(sqlite_session, "dcterms:title")
    item_set = ItemSet(is_open=True, title="Set")
    item = Item(
        title="Item",
        item_sets=[item_set],
        values=[Value(property_id=title_id, value="Item")],
    )
    media = Media(ingester="url", renderer="file", source="https://example.org/a.png")
    item.media.append(media)
    sqlite_session.add(item)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = sqlite_session.get(Item, item.id)
    assert loaded is not None
    assert [value.value for value in loaded.values] == ["Item"]
    assert [member.is_open for member in loaded.item_sets] == [True]
    assert [child.source for child in loaded.media] == ["https://example.org/a.png"]
    polymorphic = sqlite_session.get(Resource, media.id)
    assert isinstance(polymorphic, Media)


def test_deleting_an_item_cascades_to_media_and_values(sqlite_session: Session) -> None:
    title_id = _property_id(sqlite_session, "dcterms:title")
    item = Item(values=[Value(property_id=title_id, value="Doomed")])
    item.media.append(Media(ingester="sideload", renderer="file"))
    sqlite_session.add(item)
    sqlite_session.commit()

    sqlite_session.delete(item)
    sqlite_session.commit()

    def _count(table: Table) -> int:
        return sqlite_session.execute(select(func.count()).select_from(table)).scalar_one()

    assert _count(media_table) == 0
    assert _count(value_table) == 0
