"""Store gateway backed by a SQLAlchemy session.

Reservation statements are Core ``executemany`` inserts and updates; the
marker read-back is a single ``LEFT JOIN`` query per batch.
"""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from bulkimport.adapters.sqlalchemy.mappings import (
    KIND_TABLES,
    MARKER_LENGTH,
    import_mapping_table,
    media_table,
    property_table,
    resource_table,
    value_table,
)
from bulkimport.domain.model import ResourceKind, entity_type_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.orm import Session

    from bulkimport.domain.mapping_table import MappingTables

log = getLogger(__name__)

INTERNAL_ID = "o:id"
MEDIA_SOURCE = "o:source"


class SqlAlchemyStoreGateway:
    def __init__(self, session: Session) -> None:
        self.session = session

    # Reservation ------------------------------------------------------------------

    def insert_placeholders(
        self, kind: ResourceKind, source_ids: Sequence[str], *, owner_id: int | None
    ) -> None:
        too_long = [source_id for source_id in source_ids if len(source_id) > MARKER_LENGTH]
        if too_long:
            raise ValueError(f"Source ids longer than {MARKER_LENGTH} characters: {too_long[:3]}")
        now = datetime.now(UTC)
        rows = [
            {
                "resource_type": kind.value,
                "owner_id": owner_id,
                "title": source_id,
                "is_public": True,
                "created": now,
            }
            for source_id in source_ids
        ]
        self.session.execute(insert(resource_table), rows)
        log.debug("Inserted %d %s placeholders", len(rows), kind.label)

    def read_back_placeholders(self, kind: ResourceKind) -> list[tuple[str, int]]:
        kind_table = KIND_TABLES[kind]
        stmt = (
            select(resource_table.c.title, resource_table.c.id)
            .select_from(
                resource_table.outerjoin(kind_table, kind_table.c.id == resource_table.c.id)
            )
            .where(resource_table.c.resource_type == kind.value)
            .where(kind_table.c.id.is_(None))
            .order_by(resource_table.c.id)
        )
        return [(str(marker), int(target_id)) for marker, target_id in self.session.execute(stmt)]

    def finalize_placeholders(
        self,
        kind: ResourceKind,
        target_ids: Sequence[int],
        *,
        provisional_parent_id: int | None = None,
    ) -> None:
        if not target_ids:
            return
        rows: list[dict[str, Any]]
        match kind:
            case ResourceKind.MEDIA:
                if provisional_parent_id is None:
                    raise ValueError("Media placeholders need a provisional item")
                rows = [
                    {
                        "id": target_id,
                        "item_id": provisional_parent_id,
                        "ingester": "",
                        "renderer": "",
                        "position": 0,
                    }
                    for target_id in target_ids
                ]
            case ResourceKind.ITEM_SETS:
                rows = [{"id": target_id, "is_open": False} for target_id in target_ids]
            case ResourceKind.ITEMS:
                rows = [{"id": target_id} for target_id in target_ids]
        self.session.execute(insert(KIND_TABLES[kind]), rows)

    def reassign_parents(self, kind: ResourceKind, pairs: Sequence[tuple[int, int]]) -> None:
        if kind is not ResourceKind.MEDIA:
            raise ValueError(f"{kind.label} resources have no parent")
        if not pairs:
            return
        stmt = (
            update(media_table)
            .where(media_table.c.id == bindparam("child_id"))
            .values(item_id=bindparam("parent_id"))
        )
        self.session.execute(
            stmt, [{"child_id": child, "parent_id": parent} for child, parent in pairs]
        )

    # Lookups ------------------------------------------------------------------------

    def resource_kind_of(self, resource_id: int) -> ResourceKind | None:
        stmt = select(resource_table.c.resource_type).where(resource_table.c.id == resource_id)
        resource_type = self.session.execute(stmt).scalar_one_or_none()
        return None if resource_type is None else ResourceKind(resource_type)

    def find_ids(
        self, kind: ResourceKind, identifier_name: str, candidates: Sequence[str]
    ) -> list[int]:
        if not candidates:
            return []
        if identifier_name == INTERNAL_ID:
            numbers = [int(candidate) for candidate in candidates if candidate.isdigit()]
            stmt = (
                select(resource_table.c.id)
                .where(resource_table.c.id.in_(numbers))
                .where(resource_table.c.resource_type == kind.value)
            )
        elif identifier_name == MEDIA_SOURCE and kind is ResourceKind.MEDIA:
            stmt = select(media_table.c.id).where(media_table.c.source.in_(candidates))
        else:
            stmt = (
                select(value_table.c.resource_id)
                .join(property_table, property_table.c.id == value_table.c.property_id)
                .join(resource_table, resource_table.c.id == value_table.c.resource_id)
                .where(property_table.c.term == identifier_name)
                .where(resource_table.c.resource_type == kind.value)
                .where(value_table.c.value.in_(candidates) | value_table.c.uri.in_(candidates))
            )
        found = self.session.execute(stmt).scalars().all()
        return sorted(set(found))

    # Writes -----------------------------------------------------------------------

    def delete(
        self, kind: ResourceKind, ids: Sequence[int], *, continue_on_error: bool = True
    ) -> list[int]:
        entity_type = entity_type_for(kind)
        deleted: list[int] = []
        for resource_id in ids:
            entity = self.session.get(entity_type, resource_id)
            if entity is None:
                log.warning("The %s #%s does not exist.", kind.label, resource_id)
                continue
            try:
                with self.session.begin_nested():
                    self.session.delete(entity)
            except SQLAlchemyError:
                if not continue_on_error:
                    raise
                log.exception("The %s #%s could not be deleted.", kind.label, resource_id)
                continue
            deleted.append(resource_id)
        return deleted

    def save_mappings(self, run_id: str, tables: MappingTables) -> int:
        rows = [
            {
                "run_id": run_id,
                "kind": table.kind.value,
                "source_id": source_id,
                "target_id": target_id,
            }
            for table in tables
            for source_id, target_id in table.items()
        ]
        if rows:
            self.session.execute(insert(import_mapping_table), rows)
        return len(rows)
