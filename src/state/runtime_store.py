from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Optional
from uuid import uuid4


logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"


def sweep_stale(parent: os.PathLike[str] | str) -> int:
    """Remove staging directories left behind by an interrupted session.

    Returns the number of directories removed. Missing `parent` is not an error.
    """
    base = Path(parent)
    if not base.is_dir():
        return 0
    removed = 0
    for entry in base.iterdir():
        if entry.name.startswith(STAGING_PREFIX) and entry.is_dir():
            shutil.rmtree(entry, ignore_errors=True)
            removed += 1
    if removed:
        logger.info("Removed %d stale staging director%s under %s", removed, "y" if removed == 1 else "ies", base)
    return removed


class StagingArea:
    """
    Temporary working directory for a runtime install.

    Usage
    - `with StagingArea(parent) as staging:` creates `parent/.staging-<hex>`.
    - Download and extract into `staging.path`, then `commit(...)` the staged
      entries into the destination directory.
    - The staging directory is always removed on exit, success or failure.

    Notes
    - Staging lives next to the destination so that `os.replace` stays on one
      filesystem and each move is an atomic rename.
    - Anything still inside the staging directory is invisible to callers that
      only look at the destination path.
    """

    def __init__(self, parent: os.PathLike[str] | str) -> None:
        self._parent = Path(parent)
        self._path: Optional[Path] = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("staging area is not open")
        return self._path

    def open(self) -> Path:
        if self._path is None:
            self._parent.mkdir(parents=True, exist_ok=True)
            path = self._parent / f"{STAGING_PREFIX}{uuid4().hex}"
            path.mkdir()
            self._path = path
        return self._path

    def __enter__(self) -> "StagingArea":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self._path is not None:
            shutil.rmtree(self._path, ignore_errors=True)
            self._path = None

    def commit(
        self,
        entries: Iterable[Path],
        destination: os.PathLike[str] | str,
        *,
        last: Optional[str] = None,
    ) -> List[Path]:
        """Move staged `entries` into `destination`, replacing existing ones.

        The entry named `last` is moved after every other entry, so its
        presence in `destination` implies the rest is already in place.
        Returns the destination paths in the order they were written.
        """
        dest = Path(destination)
        dest.mkdir(parents=True, exist_ok=True)

        ordered = sorted(entries, key=lambda p: (p.name == last, p.name))
        written: List[Path] = []
        for src in ordered:
            target = dest / src.name
            if target.is_dir() and not target.is_symlink():
                # os.replace cannot overwrite a non-empty directory
                shutil.rmtree(target)
            os.replace(src, target)
            written.append(target)
        return written


__all__ = ["STAGING_PREFIX", "StagingArea", "sweep_stale"]
