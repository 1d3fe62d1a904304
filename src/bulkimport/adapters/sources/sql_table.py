"""Source records read from a table of a legacy relational database."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final, Self

from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from bulkimport.domain.errors import StructuralError
from bulkimport.domain.model import SourceRecord

from ._selection import Selection

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy import Engine, Select

log = getLogger(__name__)

PAGE_LIMIT: Final = 500


class SqlTableSource:
    """Rows of one reflected table, read page by page.

    The object type names the table. Filters are ``column = value`` tests and
    the order defaults to the primary key so that paging stays stable.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        selection: Selection | None = None,
        page_limit: int = PAGE_LIMIT,
    ) -> None:
        self.engine = engine
        self.page_limit = max(1, page_limit)
        self._selection = selection or Selection()
        self._table: Table | None = None

    def __iter__(self) -> Iterator[SourceRecord]:
        stmt = self._select()
        offset = 0
        while True:
            try:
                with self.engine.connect() as connection:
                    rows = connection.execute(stmt.limit(self.page_limit).offset(offset)).all()
            except SQLAlchemyError as exc:
                raise StructuralError(f"Cannot read the source table: {exc}") from exc
            for position, row in enumerate(rows, start=offset + 1):
                yield SourceRecord(index=position, fields=dict(row._mapping))
            if len(rows) < self.page_limit:
                return
            offset += self.page_limit
            log.debug("Read %d rows from %s", offset, self._reflect().name)

    def set_object_type(self, object_type: str | None) -> None:
        self._selection = self._selection.with_object_type(object_type)
        self._table = None

    def set_filters(self, filters: Mapping[str, object]) -> None:
        self._selection = self._selection.with_filters(filters)

    def set_order(self, field: str | None, *, descending: bool = False) -> None:
        self._selection = self._selection.with_order(field, descending=descending)

    def clone(self) -> Self:
        return type(self)(self.engine, selection=self._selection, page_limit=self.page_limit)

    def count(self) -> int:
        stmt = select(func.count()).select_from(self._select().subquery())
        try:
            with self.engine.connect() as connection:
                return int(connection.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise StructuralError(f"Cannot count the source table: {exc}") from exc

    def _reflect(self) -> Table:
        if self._table is None:
            name = self._selection.object_type
            if not name:
                raise StructuralError("A table name is required to read a SQL source.")
            try:
                self._table = Table(name, MetaData(), autoload_with=self.engine)
            except NoSuchTableError as exc:
                raise StructuralError(f'The source table "{name}" does not exist.') from exc
        return self._table

    def _select(self) -> Select[tuple[object, ...]]:
        table = self._reflect()
        stmt = select(table)
        for name, expected in self._selection.filters.items():
            if name not in table.c:
                raise StructuralError(f'The source table has no column "{name}" to filter on.')
            stmt = stmt.where(table.c[name] == expected)

        order_field = self._selection.order_field
        if order_field is not None:
            if order_field not in table.c:
                raise StructuralError(f'The source table has no column "{order_field}".')
            column = table.c[order_field]
            stmt = stmt.order_by(column.desc() if self._selection.descending else column.asc())
        stmt = stmt.order_by(*table.primary_key.columns)
        return stmt
