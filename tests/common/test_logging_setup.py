from __future__ import annotations

import logging

import pytest

from bulkimport.common import configure_logging


def _capture_basic_config(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(logging, "basicConfig", fake_basic_config)
    return captured


def test_configure_logging_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture_basic_config(monkeypatch)

    configure_logging()

    assert captured["level"] == logging.INFO
    assert captured["force"] is False


def test_configure_logging_format_names_the_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture_basic_config(monkeypatch)

    configure_logging(level=logging.DEBUG, force=True)

    assert captured["level"] == logging.DEBUG
    assert captured["force"] is True
    formatter = logging.Formatter(str(captured["format"]), datefmt=str(captured["datefmt"]))
    record = logging.LogRecord("bulkimport.app", logging.INFO, __file__, 1, "hello", None, None)
    assert formatter.format(record).endswith("INFO [bulkimport.app] hello")
