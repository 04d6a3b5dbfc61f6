from __future__ import annotations

import argparse
import logging
import platform
import subprocess
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from common import config
from common.errors import ConfigError, InstallError, LaunchError, LauncherError, NetworkError
from common.events import ERROR_LOG, INFO_LOG, EventSink, LoggingSink, emit
from common.logging_config import configure_logging
from common.manifest import ManifestResolver
from common.runtime import RuntimeProvisioner
from state.models import RuntimeLocation, VersionManifest


logger = logging.getLogger(__name__)

# Builds served from the plain-HTTP origin
INSECURE_BUILDS = ("http", "local")


def current_os_id() -> str:
    return platform.system().lower() or "unknown"


def current_arch() -> str:
    return platform.machine().lower() or "unknown"


def resolve_manifest_and_transport(
    resolver: ManifestResolver,
    sink: Optional[EventSink] = None,
) -> Tuple[Optional[VersionManifest], bool]:
    """Fetch the manifest; on `NetworkError` degrade to `(None, False)`."""
    try:
        manifest = resolver.fetch()
    except NetworkError as ne:
        logger.warning("Continuing without manifest: %s", ne)
        emit(sink, INFO_LOG, str(ne))
        return (None, False)

    emit(
        sink,
        INFO_LOG,
        "Connected successfully to the server.\n"
        f" Current SWF version: {manifest.current_game_version}\n"
        f" Launcher connected via http{'s' if manifest.transport_secure else ''}",
    )
    return (manifest, manifest.transport_secure)


def ensure_runtime(
    os_id: str,
    data_dir: Path,
    *,
    use_secure_transport: bool,
    provisioner: RuntimeProvisioner,
    sink: Optional[EventSink] = None,
) -> RuntimeLocation:
    """Locate the runtime under `data_dir`, installing it first when missing."""
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InstallError("placement", f"cannot create data directory {data_dir}: {exc}") from exc

    try:
        location = provisioner.locate(os_id, data_dir)
    except ConfigError as ce:
        emit(sink, ERROR_LOG, str(ce))
        raise

    if provisioner.is_installed(location):
        logger.debug("Runtime already present at %s", location.path)
        return location

    emit(sink, INFO_LOG, "Downloading flash player for your platform...")
    try:
        provisioner.install(location.path, location.executable_name, use_secure_transport)
    except InstallError as ie:
        emit(sink, ERROR_LOG, f"Flash player install failed: {ie}")
        raise

    if not provisioner.is_installed(location):
        raise InstallError("placement", f"runtime missing after install: {location.path}")
    return location


def initialize_app(
    *,
    os_id: Optional[str] = None,
    data_dir: Optional[Path] = None,
    resolver: Optional[ManifestResolver] = None,
    provisioner: Optional[RuntimeProvisioner] = None,
    sink: Optional[EventSink] = None,
) -> Dict[str, Any]:
    """
    Startup sequence: report platform, resolve manifest, ensure runtime.

    Manifest failures degrade the session; `ConfigError` and `InstallError`
    propagate after being reported on the sink.
    """
    sink = sink or LoggingSink()
    os_id = os_id or current_os_id()
    data_dir = data_dir or config.default_data_dir()

    emit(sink, INFO_LOG, f"Platform: {os_id} {current_arch()}")

    with (nullcontext(resolver) if resolver is not None else ManifestResolver.from_env(sink=sink)) as res:
        manifest, secure = resolve_manifest_and_transport(res, sink)

    with (nullcontext(provisioner) if provisioner is not None else RuntimeProvisioner.from_env(sink=sink)) as prov:
        location = ensure_runtime(
            os_id,
            data_dir,
            use_secure_transport=secure,
            provisioner=prov,
            sink=sink,
        )

    return {
        "ok": True,
        "platform": os_id,
        "game_version": manifest.current_game_version if manifest else None,
        "transport_secure": secure,
        "runtime_path": str(location.path),
    }


def get_current_game_version(resolver: Optional[ManifestResolver] = None) -> Optional[str]:
    with (nullcontext(resolver) if resolver is not None else ManifestResolver.from_env()) as res:
        manifest, _ = resolve_manifest_and_transport(res)
    return manifest.current_game_version if manifest else None


def build_swf_url(
    build_name: str,
    language: str,
    token: Optional[str] = None,
    *,
    swfs_host: Optional[str] = None,
) -> str:
    host = swfs_host or config.getenv(config.ENV_SWFS_HOST, config.DEFAULT_SWFS_HOST)
    scheme = "http" if build_name in INSECURE_BUILDS else "https"
    url = f"{scheme}://{host}bymr-{build_name}.swf?language={language.lower()}"
    if token:
        url = f"{url}&token={quote(token, safe='')}"
    return url


def launch_game(
    build_name: str,
    language: str,
    token: Optional[str] = None,
    *,
    os_id: Optional[str] = None,
    data_dir: Optional[Path] = None,
) -> subprocess.Popen:
    """Spawn the runtime with the SWF URL. Raises `LaunchError` if it cannot start."""
    location = RuntimeProvisioner.locate(os_id or current_os_id(), data_dir or config.default_data_dir())
    if not RuntimeProvisioner.is_installed(location):
        logger.error("cannot find executable runtime: %s", location.path)
        raise LaunchError(f"cannot find flashplayer: {location.path}")

    swf_url = build_swf_url(build_name, language, token)
    logger.info("Opening: %s, %s", location.path, swf_url)
    try:
        return subprocess.Popen([str(location.path), swf_url])
    except OSError as exc:
        raise LaunchError(f"Failed to start build {build_name}: {exc}") from exc


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bymr-launcher", description="Flash runtime launcher")
    parser.add_argument("--data-dir", type=Path, default=None, help="runtime data directory")
    parser.add_argument("--log-level", default=None, help="logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="resolve manifest and install the runtime if missing")
    sub.add_parser("version", help="print the server's current game version")

    launch = sub.add_parser("launch", help="initialize, then start a game build")
    launch.add_argument("build")
    launch.add_argument("--language", default="en")
    launch.add_argument("--token", default=None)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "version":
            version = get_current_game_version()
            print(version or "unknown")
            return 0 if version else 1

        summary = initialize_app(data_dir=args.data_dir)
        logger.info("Initialized: %s", summary)
        if args.command == "launch":
            launch_game(args.build, args.language, args.token, data_dir=args.data_dir)
    except LauncherError as err:
        logger.error("%s", err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
