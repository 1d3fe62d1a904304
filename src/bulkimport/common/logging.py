"""Shared logging helpers."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse format for CLI output.

    Row notices, warnings and errors of an import all go through the
    ``bulkimport`` logger hierarchy; pass ``force=True`` to reconfigure
    during tests or when the level changes.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
