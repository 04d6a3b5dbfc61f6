"""Logging setup for the launcher.

Installs a single stream handler on the root logger. Calling
`configure_logging` more than once (tests, repeated CLI invocations in one
process) does not stack handlers; the existing one is retuned instead.

``LAUNCHER_LOG_LEVEL``
    Level name (``DEBUG``, ``INFO``, ``WARNING``, ...). Defaults to ``INFO``.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, TextIO

_LOG_LEVEL_ENV = "LAUNCHER_LOG_LEVEL"
_DEFAULT_LEVEL = logging.INFO
_HANDLER_TAG = "_launcher_logging_handler"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_level(value: Optional[str]) -> int:
    if not value:
        return _DEFAULT_LEVEL
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else _DEFAULT_LEVEL


def _find_handler(root: logging.Logger) -> Optional[logging.Handler]:
    for handler in root.handlers:
        if getattr(handler, _HANDLER_TAG, False):
            return handler
    return None


def configure_logging(level: Optional[str] = None, *, stream: Optional[TextIO] = None) -> logging.Handler:
    """Attach (or retune) the launcher handler and return it."""
    resolved = _resolve_level(level or os.environ.get(_LOG_LEVEL_ENV))
    root = logging.getLogger()

    handler = _find_handler(root)
    if handler is None:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_FORMAT))
        setattr(handler, _HANDLER_TAG, True)
        root.addHandler(handler)

    handler.setLevel(resolved)
    if root.level == logging.NOTSET or root.level > resolved:
        root.setLevel(resolved)
    return handler


__all__ = ["configure_logging"]
