from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Mapping

from state.models import ArchiveFormat, PlatformRuntimeSpec

from .errors import ConfigError


class Platform(str, Enum):
    """Host platforms with a published runtime."""

    WINDOWS = "windows"
    DARWIN = "darwin"
    LINUX = "linux"

    @classmethod
    def parse(cls, os_id: str) -> "Platform":
        """Resolve an OS identifier (case-insensitive, aliases allowed)."""
        key = (os_id or "").strip().lower()
        try:
            return _ALIASES[key]
        except KeyError:
            raise ConfigError(f"Unsupported platform: {os_id!r}") from None


_ALIASES: Dict[str, Platform] = {
    "windows": Platform.WINDOWS,
    "win32": Platform.WINDOWS,
    "win": Platform.WINDOWS,
    "darwin": Platform.DARWIN,
    "macos": Platform.DARWIN,
    "mac": Platform.DARWIN,
    "linux": Platform.LINUX,
}


RUNTIME_SPECS: Mapping[Platform, PlatformRuntimeSpec] = {
    Platform.WINDOWS: PlatformRuntimeSpec(
        relative_path=Path("runtime") / "win" / "flashplayer.exe",
        executable_name="flashplayer.exe",
        archive_format=ArchiveFormat.ZIP,
        artifact_name="flashplayer_win.zip",
    ),
    Platform.DARWIN: PlatformRuntimeSpec(
        relative_path=Path("runtime") / "mac" / "flashplayer.dmg",
        executable_name="flashplayer.dmg",
        archive_format=ArchiveFormat.NONE,
        artifact_name="flashplayer_mac.dmg",
        needs_exec_bit=True,
    ),
    Platform.LINUX: PlatformRuntimeSpec(
        relative_path=Path("runtime") / "linux" / "flashplayer",
        executable_name="flashplayer",
        archive_format=ArchiveFormat.TAR_GZ,
        artifact_name="flashplayer_linux.tar.gz",
        needs_exec_bit=True,
    ),
}


def spec_for(os_id: str) -> PlatformRuntimeSpec:
    return RUNTIME_SPECS[Platform.parse(os_id)]


def spec_for_executable(executable_name: str) -> PlatformRuntimeSpec:
    """Find the platform spec owning `executable_name` (names are unique)."""
    for spec in RUNTIME_SPECS.values():
        if spec.executable_name == executable_name:
            return spec
    raise ConfigError(f"No runtime is published under the name {executable_name!r}")


__all__ = [
    "Platform",
    "RUNTIME_SPECS",
    "spec_for",
    "spec_for_executable",
]
