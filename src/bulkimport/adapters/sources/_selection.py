"""Selectors shared by the in-process sources: object type, filters, order."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping


@dataclass(frozen=True, slots=True)
class Selection:
    object_type: str | None = None
    filters: Mapping[str, object] = field(default_factory=dict[str, object])
    order_field: str | None = None
    descending: bool = False

    def with_object_type(self, object_type: str | None) -> Selection:
        return replace(self, object_type=object_type)

    def with_filters(self, filters: Mapping[str, object]) -> Selection:
        return replace(self, filters=dict(filters))

    def with_order(self, field_name: str | None, *, descending: bool) -> Selection:
        return replace(self, order_field=field_name, descending=descending)

    def matches(self, row: Mapping[str, object]) -> bool:
        """Return whether every filter equals the row value (or one of its values)."""

        for name, expected in self.filters.items():
            actual = row.get(name)
            if isinstance(actual, list | tuple):
                if expected not in actual and str(expected) not in map(str, actual):
                    return False
            elif actual != expected and str(actual) != str(expected):
                return False
        return True

    def ordered[T](
        self, items: Iterable[T], row_of: Callable[[T], Mapping[str, object]]
    ) -> list[T]:
        """Sort ``items`` on the order field; rows without the field come last."""

        items = list(items)
        name = self.order_field
        if name is None:
            return items
        present = [item for item in items if row_of(item).get(name) is not None]
        missing = [item for item in items if row_of(item).get(name) is None]
        present.sort(key=lambda item: _sort_value(row_of(item).get(name)), reverse=self.descending)
        return present + missing


def _sort_value(value: object) -> tuple[int, float, str]:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return (0, float(value), "")
    return (1, 0.0, str(value))
