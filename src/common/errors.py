from __future__ import annotations

from typing import List, Optional


class LauncherError(RuntimeError):
    """Base error for the launcher core."""


class NetworkError(LauncherError):
    """Every manifest transport failed."""

    def __init__(self, message: str, *, failures: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.failures: List[str] = list(failures or [])


class ConfigError(LauncherError):
    """Unsupported platform or invalid configuration. Not retryable."""


class InstallError(LauncherError):
    """Runtime download, extraction or placement failed."""

    STAGES = ("download", "extract", "placement")

    def __init__(self, stage: str, message: str) -> None:
        if stage not in self.STAGES:
            raise ValueError(f"unknown install stage: {stage!r}")
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class LaunchError(LauncherError):
    """Runtime missing or the game process could not be spawned."""


__all__ = [
    "LauncherError",
    "NetworkError",
    "ConfigError",
    "InstallError",
    "LaunchError",
]
