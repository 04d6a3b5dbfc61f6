from __future__ import annotations

import logging
import os
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Optional

import httpx

from state.models import ArchiveFormat, PlatformRuntimeSpec, RuntimeLocation
from state.runtime_store import StagingArea, sweep_stale

from . import config
from .errors import ConfigError, InstallError
from .events import INFO_LOG, EventSink, emit
from .platforms import spec_for, spec_for_executable


logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
CONNECT_TIMEOUT = 10.0
PROGRESS_STEP = 25  # percent


class RuntimeProvisioner:
    """
    Locates and installs the Flash Player runtime for a host platform.

    Notes
    - `locate` is pure: it maps an OS identifier and data directory to the
      expected runtime path without touching the filesystem.
    - `install` downloads into a staging directory next to the target, unpacks
      there, then moves the result into place with the executable last. A
      file at the target path therefore always means a complete install.
    - Failures clean up the staging directory and raise `InstallError` naming
      the stage (download, extract, placement). Nothing is retried.
    """

    def __init__(
        self,
        *,
        host: str = config.DEFAULT_RUNTIME_HOST,
        path: str = config.DEFAULT_RUNTIME_PATH,
        timeout: float = config.DEFAULT_DOWNLOAD_TIMEOUT,
        client: Optional[httpx.Client] = None,
        sink: Optional[EventSink] = None,
    ) -> None:
        self._host = host.strip("/")
        self._path = ("/" + path.strip("/")) if path.strip("/") else ""
        self._timeout = httpx.Timeout(timeout, connect=CONNECT_TIMEOUT)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout, follow_redirects=True)
        self._sink = sink

    @classmethod
    def from_env(cls, *, sink: Optional[EventSink] = None) -> "RuntimeProvisioner":
        return cls(
            host=config.getenv(config.ENV_RUNTIME_HOST, config.DEFAULT_RUNTIME_HOST),  # type: ignore[arg-type]
            path=config.getenv(config.ENV_RUNTIME_PATH, config.DEFAULT_RUNTIME_PATH),  # type: ignore[arg-type]
            timeout=config.getenv_float(config.ENV_DOWNLOAD_TIMEOUT, config.DEFAULT_DOWNLOAD_TIMEOUT),
            sink=sink,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RuntimeProvisioner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    @staticmethod
    def locate(os_id: str, data_dir: os.PathLike[str] | str) -> RuntimeLocation:
        """Return `(path, executable_name)` for `os_id`; raises `ConfigError` if unsupported."""
        spec = spec_for(os_id)
        return RuntimeLocation(Path(data_dir) / spec.relative_path, spec.executable_name)

    @staticmethod
    def is_installed(location: RuntimeLocation) -> bool:
        path = Path(location.path)
        if not path.is_file():
            return False
        spec = spec_for_executable(location.executable_name)
        if spec.needs_exec_bit and os.name == "posix":
            return os.access(path, os.X_OK)
        return True

    def artifact_url(self, spec: PlatformRuntimeSpec, *, secure: bool) -> str:
        scheme = "https" if secure else "http"
        return f"{scheme}://{self._host}{self._path}/{spec.artifact_name}"

    def install(
        self,
        target_path: os.PathLike[str] | str,
        executable_name: str,
        use_secure_transport: bool,
    ) -> None:
        """
        Download and place the runtime so that `target_path` exists.

        - `use_secure_transport` picks HTTPS or HTTP for the download; pass the
          manifest's `transport_secure` so a known-dead HTTPS route is skipped.
        - Raises `InstallError` on any download, extraction or placement failure,
          leaving no file at `target_path` and no staging leftovers.
        """
        target = Path(target_path)
        spec = spec_for_executable(executable_name)
        if target.name != spec.executable_name:
            raise ConfigError(
                f"Target {target.name!r} does not match runtime executable {spec.executable_name!r}"
            )
        url = self.artifact_url(spec, secure=use_secure_transport)

        try:
            self._install(spec, url, target.parent)
        except InstallError as ie:
            logger.error("Runtime install from %s failed: %s", url, ie)
            raise

        logger.info("Runtime installed at %s", target)
        emit(self._sink, INFO_LOG, f"Flash player installed: {target}")

    # --------------- Internal ---------------
    def _install(self, spec: PlatformRuntimeSpec, url: str, dest_dir: Path) -> None:
        try:
            sweep_stale(dest_dir)
        except OSError as exc:
            raise InstallError("download", f"cannot clear stale downloads in {dest_dir}: {exc}") from exc
        emit(self._sink, INFO_LOG, f"Downloading flash player from {url}")

        staging = StagingArea(dest_dir)
        try:
            staging.open()
        except OSError as exc:
            raise InstallError("download", f"cannot create staging directory in {dest_dir}: {exc}") from exc

        try:
            artifact = staging.path / spec.artifact_name
            self._download(url, artifact)

            payload = staging.path / "payload"
            self._unpack(spec, artifact, payload)

            staged_exe = payload / spec.executable_name
            if not staged_exe.is_file():
                raise InstallError("extract", f"artifact does not contain {spec.executable_name}")

            try:
                if spec.needs_exec_bit:
                    _make_executable(staged_exe)
                staging.commit(list(payload.iterdir()), dest_dir, last=spec.executable_name)
            except OSError as exc:
                raise InstallError("placement", f"cannot move runtime into {dest_dir}: {exc}") from exc
        finally:
            staging.cleanup()

    def _download(self, url: str, dest: Path) -> None:
        received = 0
        try:
            with self._client.stream("GET", url, timeout=self._timeout) as resp:
                if not resp.is_success:
                    raise InstallError("download", f"HTTP {resp.status_code} from {url}")
                # Progress counts wire bytes; httpx rejects bodies shorter than Content-Length
                total = _content_length(resp)
                next_mark = PROGRESS_STEP
                with dest.open("wb") as f:
                    for chunk in resp.iter_bytes(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        received += len(chunk)
                        if total:
                            pct = resp.num_bytes_downloaded * 100 // total
                            if pct >= next_mark:
                                logger.debug("Downloaded %d/%d bytes", resp.num_bytes_downloaded, total)
                                emit(self._sink, INFO_LOG, f"Downloading flash player... {min(pct, 100)}%")
                                next_mark = (pct // PROGRESS_STEP + 1) * PROGRESS_STEP
        except httpx.HTTPError as exc:
            raise InstallError("download", f"{type(exc).__name__} while fetching {url}: {exc}") from exc
        except OSError as exc:
            raise InstallError("download", f"cannot write {dest.name}: {exc}") from exc

        if received == 0:
            raise InstallError("download", f"empty response from {url}")

    @staticmethod
    def _unpack(spec: PlatformRuntimeSpec, artifact: Path, payload: Path) -> None:
        try:
            payload.mkdir()
            if spec.archive_format is ArchiveFormat.ZIP:
                with zipfile.ZipFile(artifact) as zf:
                    root = payload.resolve()
                    for name in zf.namelist():
                        member = (payload / name).resolve()
                        if member != root and root not in member.parents:
                            raise InstallError("extract", f"archive member escapes target: {name}")
                    zf.extractall(payload)
            elif spec.archive_format is ArchiveFormat.TAR_GZ:
                with tarfile.open(artifact, "r:gz") as tf:
                    tf.extractall(payload, filter="data")
            else:
                os.replace(artifact, payload / spec.executable_name)
        except (zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
            raise InstallError("extract", f"corrupt {spec.archive_format.value} archive: {exc}") from exc
        except OSError as exc:
            raise InstallError("extract", f"cannot unpack {artifact.name}: {exc}") from exc


def _content_length(resp: httpx.Response) -> int:
    raw = resp.headers.get("Content-Length")
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


__all__ = ["RuntimeProvisioner"]
