"""Source iterators for the legacy systems a migration reads from."""

from __future__ import annotations

from ._selection import Selection
from .json_file import JsonRecordSource
from .omeka import OmekaApiError, OmekaApiSource
from .sql_table import PAGE_LIMIT, SqlTableSource

__all__ = [
    "PAGE_LIMIT",
    "JsonRecordSource",
    "OmekaApiError",
    "OmekaApiSource",
    "Selection",
    "SqlTableSource",
]
