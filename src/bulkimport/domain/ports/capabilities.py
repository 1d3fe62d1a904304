"""Port describing what the target store currently supports."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CapabilityRegistry(Protocol):
    def supported_datatypes(self) -> frozenset[str]: ...

    def supports(self, datatype: str) -> bool: ...

    def is_module_active(self, module: str) -> bool: ...
