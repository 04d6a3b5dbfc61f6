from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError


# Environment variable names
ENV_MANIFEST_HOST = "LAUNCHER_MANIFEST_HOST"
ENV_MANIFEST_PATH = "LAUNCHER_MANIFEST_PATH"
ENV_MANIFEST_TIMEOUT = "LAUNCHER_MANIFEST_TIMEOUT"
ENV_RUNTIME_HOST = "LAUNCHER_RUNTIME_HOST"
ENV_RUNTIME_PATH = "LAUNCHER_RUNTIME_PATH"
ENV_DOWNLOAD_TIMEOUT = "LAUNCHER_DOWNLOAD_TIMEOUT"
ENV_SWFS_HOST = "LAUNCHER_SWFS_HOST"
ENV_DATA_DIR = "LAUNCHER_DATA_DIR"

DEFAULT_MANIFEST_HOST = "api.bymrefitted.com"
DEFAULT_MANIFEST_PATH = "/launcher.json"
DEFAULT_MANIFEST_TIMEOUT = 8.0
DEFAULT_RUNTIME_HOST = "bymrefitted.com"
DEFAULT_RUNTIME_PATH = "/runtimes"
DEFAULT_DOWNLOAD_TIMEOUT = 60.0
DEFAULT_SWFS_HOST = "bymrefitted.com/launcher/swfs/"
DEFAULT_DATA_DIRNAME = ".bymr-launcher"


def getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def getenv_float(name: str, default: float) -> float:
    raw = getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got {raw!r}")
    return value


def default_data_dir() -> Path:
    # Prefer explicit env var, else a dot-folder in the user's home
    base = getenv(ENV_DATA_DIR)
    if base:
        return Path(base).expanduser()
    return Path.home() / DEFAULT_DATA_DIRNAME
