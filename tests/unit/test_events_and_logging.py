from __future__ import annotations

import io
import logging
from typing import Iterator, List, Tuple

import pytest

from common.events import ERROR_LOG, INFO_LOG, LoggingSink, emit, null_sink
from common.logging_config import configure_logging


@pytest.fixture
def clean_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    before_handlers = list(root.handlers)
    before_level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before_handlers:
            root.removeHandler(h)
    root.setLevel(before_level)


def test_emit_delivers_to_callable_sink():
    got: List[Tuple[str, str]] = []
    emit(lambda t, m: got.append((t, m)), INFO_LOG, "hello")
    assert got == [("infoLog", "hello")]


def test_emit_swallows_sink_failures():
    def broken(_t: str, _m: str) -> None:
        raise RuntimeError("ui went away")

    emit(broken, INFO_LOG, "still fine")
    emit(None, INFO_LOG, "no sink")
    emit(null_sink, ERROR_LOG, "discarded")


def test_logging_sink_maps_levels(caplog: pytest.LogCaptureFixture):
    sink = LoggingSink(logging.getLogger("test.sink"))
    with caplog.at_level(logging.INFO, logger="test.sink"):
        sink(INFO_LOG, "progress")
        sink(ERROR_LOG, "failed")

    levels = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert levels == [(logging.INFO, "infoLog: progress"), (logging.ERROR, "errorLog: failed")]


def test_configure_logging_is_idempotent(clean_root_logger: logging.Logger):
    stream = io.StringIO()
    first = configure_logging("DEBUG", stream=stream)
    second = configure_logging("WARNING")

    assert first is second
    tagged = [h for h in clean_root_logger.handlers if getattr(h, "_launcher_logging_handler", False)]
    assert tagged == [first]
    assert first.level == logging.WARNING


def test_configure_logging_reads_env(clean_root_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LAUNCHER_LOG_LEVEL", "error")
    handler = configure_logging(stream=io.StringIO())
    assert handler.level == logging.ERROR

    monkeypatch.setenv("LAUNCHER_LOG_LEVEL", "nonsense")
    assert configure_logging().level == logging.INFO
