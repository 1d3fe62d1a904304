"""Working set over a SQLAlchemy session: identity map, flush and clear."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from bulkimport.adapters.sqlalchemy.mappings import (
    property_table,
    resource_class_table,
    resource_template_table,
    user_table,
)
from bulkimport.domain.errors import StoreValidationError
from bulkimport.domain.model import (
    Property,
    ResourceClass,
    ResourceTemplate,
    User,
    entity_type_for,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session

    from bulkimport.domain.model import Resource, ResourceKind

log = getLogger(__name__)


class SqlAlchemyWorkingSet:
    def __init__(self, session: Session) -> None:
        self.session = session
        self._property_ids: dict[str, int] | None = None

    def get(self, kind: ResourceKind, resource_id: int) -> Resource | None:
        return self.session.get(entity_type_for(kind), resource_id)

    def load[T](self, entity_type: type[T], entity_id: int) -> T | None:
        return self.session.get(entity_type, entity_id)

    def add(self, entity: Resource) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(entity)
        except SQLAlchemyError as exc:
            orig = getattr(exc, "orig", None)
            raise StoreValidationError([str(orig or exc)]) from exc

    def flush(self) -> None:
        self.session.flush()
        self.session.commit()

    def clear(self) -> None:
        self.session.expunge_all()

    def object_count(self) -> int:
        return len(self.session.identity_map) + len(self.session.new)

    def property_ids(self) -> Mapping[str, int]:
        if self._property_ids is None:
            rows = self.session.execute(select(property_table.c.term, property_table.c.id))
            self._property_ids = {term: property_id for term, property_id in rows}
            log.debug("Loaded %d properties", len(self._property_ids))
        return self._property_ids

    def find_user(self, key: str | int) -> User | None:
        if isinstance(key, int) or key.isdigit():
            return self.session.get(User, int(key))
        stmt = select(User).where(or_(user_table.c.email == key, user_table.c.name == key))
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def find_template(self, key: str | int) -> ResourceTemplate | None:
        if isinstance(key, int) or key.isdigit():
            return self.session.get(ResourceTemplate, int(key))
        stmt = select(ResourceTemplate).where(resource_template_table.c.label == key)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_class(self, key: str | int) -> ResourceClass | None:
        if isinstance(key, int) or key.isdigit():
            return self.session.get(ResourceClass, int(key))
        stmt = select(ResourceClass).where(resource_class_table.c.term == key)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_property(self, term: str) -> Property | None:
        stmt = select(Property).where(property_table.c.term == term)
        return self.session.execute(stmt).scalar_one_or_none()
