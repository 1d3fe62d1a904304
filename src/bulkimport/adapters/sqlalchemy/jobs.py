"""Completion jobs run directly against the target store."""

from __future__ import annotations

from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import bindparam, select, update

from bulkimport.adapters.sqlalchemy.mappings import (
    property_table,
    resource_table,
    resource_template_table,
    value_table,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.orm import Session

    from bulkimport.domain.context import ImportContext

log = getLogger(__name__)

TITLE_TERM = "dcterms:title"


class UpdateResourceTitles:
    """Recompute ``resource.title`` of every imported resource.

    Reserved placeholders carry their correlation marker as title; this job
    replaces it with the value of the template title property, or of
    ``dcterms:title``, or clears it.
    """

    name = "update_resource_titles"

    def __init__(self, session: Session, *, batch_size: int = 1_000) -> None:
        self.session = session
        self.batch_size = max(1, batch_size)

    def run(self, context: ImportContext) -> None:
        default_property = self.session.execute(
            select(property_table.c.id).where(property_table.c.term == TITLE_TERM)
        ).scalar_one_or_none()
        updated = 0
        for table in context.tables:
            for batch in batched(table.target_ids(), self.batch_size):
                updated += self._update_batch(batch, default_property)
        self.session.commit()
        log.info("%d resource titles updated.", updated)

    def _update_batch(self, ids: Sequence[int], default_property: int | None) -> int:
        templates = self.session.execute(
            select(resource_table.c.id, resource_template_table.c.title_property_id)
            .select_from(
                resource_table.outerjoin(
                    resource_template_table,
                    resource_template_table.c.id == resource_table.c.resource_template_id,
                )
            )
            .where(resource_table.c.id.in_(ids))
        )
        title_property = {
            resource_id: property_id or default_property for resource_id, property_id in templates
        }
        titles: dict[int, str | None] = dict.fromkeys(title_property)
        values = self.session.execute(
            select(
                value_table.c.resource_id,
                value_table.c.property_id,
                value_table.c.value,
                value_table.c.uri,
            )
            .where(value_table.c.resource_id.in_(ids))
            .order_by(value_table.c.id)
        )
        for resource_id, property_id, text, uri in values:
            if titles.get(resource_id) is None and property_id == title_property[resource_id]:
                titles[resource_id] = text or uri
        if not titles:
            return 0
        stmt = (
            update(resource_table)
            .where(resource_table.c.id == bindparam("resource_id"))
            .values(title=bindparam("new_title"))
        )
        params = [
            {"resource_id": resource_id, "new_title": title}
            for resource_id, title in titles.items()
        ]
        self.session.execute(stmt, params)
        return len(titles)
