"""
Data models and on-disk installation state for the launcher.

The models describe the session manifest and the per-platform runtime
layout; `runtime_store` manages the staging area used to place a runtime
into the data directory atomically.
"""

from .models import (
    ArchiveFormat,
    ManifestPayload,
    PlatformRuntimeSpec,
    RuntimeLocation,
    VersionManifest,
)

__all__ = [
    "ArchiveFormat",
    "ManifestPayload",
    "PlatformRuntimeSpec",
    "RuntimeLocation",
    "VersionManifest",
]
