from __future__ import annotations

import logging
from typing import Optional, Protocol


INFO_LOG = "infoLog"
ERROR_LOG = "errorLog"


class EventSink(Protocol):
    """One-way status channel to the presentation layer."""

    def __call__(self, event_type: str, message: str) -> None:
        ...


class LoggingSink:
    """Sink that writes every event to a logger (ERROR for `errorLog`, else INFO)."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("launcher.events")

    def __call__(self, event_type: str, message: str) -> None:
        level = logging.ERROR if event_type == ERROR_LOG else logging.INFO
        self._logger.log(level, "%s: %s", event_type, message)


def null_sink(event_type: str, message: str) -> None:  # noqa: ARG001
    return None


def emit(sink: Optional[EventSink], event_type: str, message: str) -> None:
    """Fire-and-forget delivery; a failing sink never interrupts the caller."""
    if sink is None:
        return
    try:
        sink(event_type, message)
    except Exception:
        logging.getLogger(__name__).debug("Event sink rejected %s event", event_type, exc_info=True)


__all__ = [
    "INFO_LOG",
    "ERROR_LOG",
    "EventSink",
    "LoggingSink",
    "null_sink",
    "emit",
]
