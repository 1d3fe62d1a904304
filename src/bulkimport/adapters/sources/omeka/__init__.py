"""Omeka S JSON API source."""

from __future__ import annotations

from .client import OmekaApiError, OmekaApiSource
from .schema import ResourcePayload, ValuePayload

__all__ = ["OmekaApiError", "OmekaApiSource", "ResourcePayload", "ValuePayload"]
