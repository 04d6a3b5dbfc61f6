from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VersionManifest(BaseModel):
    """
    Server manifest resolved for the current session.

    Fields
    - current_game_version: latest build identifier declared by the server.
    - transport_secure: True when this manifest was fetched over HTTPS, False
      when the resolver had to degrade to plain HTTP.

    Notes
    - Built fresh on every fetch; `transport_secure` describes that fetch only
      and is never persisted.
    """

    model_config = ConfigDict(frozen=True)

    current_game_version: str = Field(..., min_length=1)
    transport_secure: bool


class ManifestPayload(BaseModel):
    """Wire shape of the manifest body. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    current_game_version: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("currentGameVersion", "current_game_version"),
    )


class ArchiveFormat(str, Enum):
    """How a runtime artifact is packaged on the distribution host."""

    ZIP = "zip"
    TAR_GZ = "tar.gz"
    NONE = "none"


class PlatformRuntimeSpec(BaseModel):
    """
    Where a platform's runtime lives and how it is distributed.

    Fields
    - relative_path: path of the runtime inside the data directory.
    - executable_name: file name handed to the OS at launch.
    - archive_format: packaging of the downloaded artifact.
    - artifact_name: file name of the artifact on the distribution host.
    - needs_exec_bit: set the POSIX executable bit after placement.
    """

    model_config = ConfigDict(frozen=True)

    relative_path: Path
    executable_name: str = Field(..., min_length=1)
    archive_format: ArchiveFormat
    artifact_name: str = Field(..., min_length=1)
    needs_exec_bit: bool = False


class RuntimeLocation(NamedTuple):
    path: Path
    executable_name: str
