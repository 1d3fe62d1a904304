"""Source records read from a JSON array or a JSON Lines file."""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final, Self, cast

from bulkimport.domain.errors import StructuralError
from bulkimport.domain.model import SourceRecord

from ._selection import Selection

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

log = getLogger(__name__)

TYPE_FIELDS: Final = ("@type", "resource_type")
JSONL_SUFFIXES: Final = frozenset({".jsonl", ".ndjson"})


class JsonRecordSource:
    """Restartable iterator over the objects of a JSON file.

    The file holds either one array of objects or one object per line. When
    an object type is selected, only objects whose ``@type`` (or
    ``resource_type``) equals it, or lists it, are returned. Records are
    numbered from 1 in file order, before filtering.
    """

    def __init__(self, path: Path | str, *, selection: Selection | None = None) -> None:
        self.path = Path(path)
        self._selection = selection or Selection()

    def __iter__(self) -> Iterator[SourceRecord]:
        rows = [
            (index, row)
            for index, row in enumerate(self._read(), start=1)
            if self._is_selected(row)
        ]
        rows = self._selection.ordered(rows, lambda pair: pair[1])
        for index, row in rows:
            yield SourceRecord(index=index, fields=row)

    def set_object_type(self, object_type: str | None) -> None:
        self._selection = self._selection.with_object_type(object_type)

    def set_filters(self, filters: Mapping[str, object]) -> None:
        self._selection = self._selection.with_filters(filters)

    def set_order(self, field: str | None, *, descending: bool = False) -> None:
        self._selection = self._selection.with_order(field, descending=descending)

    def clone(self) -> Self:
        return type(self)(self.path, selection=self._selection)

    def count(self) -> int:
        return sum(1 for row in self._read() if self._is_selected(row))

    def _is_selected(self, row: Mapping[str, object]) -> bool:
        object_type = self._selection.object_type
        if object_type is not None and not _has_type(row, object_type):
            return False
        return self._selection.matches(row)

    def _read(self) -> Iterator[Mapping[str, object]]:
        try:
            with self.path.open(encoding="utf-8") as handle:
                if self.path.suffix.lower() in JSONL_SUFFIXES:
                    for line_number, line in enumerate(handle, start=1):
                        if line.strip():
                            yield _as_object(json.loads(line), f"line {line_number}")
                    return
                document = json.load(handle)
        except OSError as exc:
            raise StructuralError(f"Cannot read the source file {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StructuralError(f"The source file {self.path} is not valid JSON: {exc}") from exc

        if not isinstance(document, list):
            raise StructuralError(f"The source file {self.path} must hold a JSON array.")
        for position, row in enumerate(cast("list[object]", document), start=1):
            yield _as_object(row, f"entry {position}")


def _as_object(value: object, where: str) -> Mapping[str, object]:
    if not isinstance(value, dict):
        raise StructuralError(f"The source {where} is not a JSON object.")
    return cast("dict[str, object]", value)


def _has_type(row: Mapping[str, object], object_type: str) -> bool:
    for name in TYPE_FIELDS:
        declared = row.get(name)
        if declared == object_type:
            return True
        if isinstance(declared, list) and object_type in cast("list[object]", declared):
            return True
    return False
