from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from state.models import ManifestPayload, VersionManifest

from . import config
from .errors import NetworkError
from .events import INFO_LOG, EventSink, emit


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transport:
    scheme: str
    secure: bool


HTTPS = Transport(scheme="https", secure=True)
HTTP = Transport(scheme="http", secure=False)

DEFAULT_TRANSPORTS: Sequence[Transport] = (HTTPS, HTTP)


class ManifestResolver:
    """
    Fetches the version manifest, degrading from HTTPS to HTTP when needed.

    Notes
    - Transports are tried in order and the first success wins. The default
      order is HTTPS then HTTP, so at most one insecure attempt is made.
    - Any failure of an attempt (connect/TLS/timeout, non-2xx status, bad JSON,
      missing version field) moves on to the next transport.
    - Dropping to a less secure transport is logged at WARNING and announced on
      the event sink before the request is sent.
    - No caching: every `fetch()` talks to the server.
    """

    def __init__(
        self,
        *,
        host: str = config.DEFAULT_MANIFEST_HOST,
        path: str = config.DEFAULT_MANIFEST_PATH,
        timeout: float = config.DEFAULT_MANIFEST_TIMEOUT,
        transports: Sequence[Transport] = DEFAULT_TRANSPORTS,
        client: Optional[httpx.Client] = None,
        sink: Optional[EventSink] = None,
    ) -> None:
        if not transports:
            raise ValueError("at least one transport is required")
        self._host = host.strip("/")
        self._path = "/" + path.lstrip("/")
        self._timeout = timeout
        self._transports = tuple(transports)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout)
        self._sink = sink

    @classmethod
    def from_env(cls, *, sink: Optional[EventSink] = None) -> "ManifestResolver":
        return cls(
            host=config.getenv(config.ENV_MANIFEST_HOST, config.DEFAULT_MANIFEST_HOST),  # type: ignore[arg-type]
            path=config.getenv(config.ENV_MANIFEST_PATH, config.DEFAULT_MANIFEST_PATH),  # type: ignore[arg-type]
            timeout=config.getenv_float(config.ENV_MANIFEST_TIMEOUT, config.DEFAULT_MANIFEST_TIMEOUT),
            sink=sink,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ManifestResolver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def url_for(self, transport: Transport) -> str:
        return f"{transport.scheme}://{self._host}{self._path}"

    def fetch(self) -> VersionManifest:
        """
        Fetch and parse the manifest.

        Returns a `VersionManifest` whose `transport_secure` reflects the
        transport that succeeded. Raises `NetworkError` when every transport
        failed; `NetworkError.failures` lists one entry per attempt.
        """
        failures: List[str] = []
        previous: Optional[Transport] = None
        for transport in self._transports:
            if previous is not None and previous.secure and not transport.secure:
                self._announce_downgrade(previous, transport, failures[-1])
            previous = transport

            url = self.url_for(transport)
            try:
                payload = self._get_json(url)
                parsed = ManifestPayload.model_validate(payload)
            except ValidationError as ve:
                failures.append(f"{url}: malformed manifest ({ve.error_count()} error(s))")
                logger.info("Manifest from %s rejected: %s", url, ve)
                continue
            except _AttemptFailed as af:
                failures.append(f"{url}: {af}")
                logger.info("Manifest request to %s failed: %s", url, af)
                continue

            logger.info(
                "Manifest fetched over %s: game version %s",
                transport.scheme,
                parsed.current_game_version,
            )
            return VersionManifest(
                current_game_version=parsed.current_game_version,
                transport_secure=transport.secure,
            )

        raise NetworkError(
            f"Could not reach the manifest server ({failures[-1]})",
            failures=failures,
        )

    # --------------- Internal ---------------
    def _get_json(self, url: str) -> Any:
        try:
            resp = self._client.get(url, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise _AttemptFailed(f"timed out after {self._timeout:g}s") from exc
        except httpx.TransportError as exc:
            raise _AttemptFailed(f"{type(exc).__name__}: {exc}") from exc
        except httpx.HTTPError as exc:  # e.g. corrupt Content-Encoding
            raise _AttemptFailed(f"unreadable response: {type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            raise _AttemptFailed(f"HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:  # JSON decode error
            raise _AttemptFailed("response body is not valid JSON") from exc

    def _announce_downgrade(self, failed: Transport, fallback: Transport, reason: str) -> None:
        message = (
            f"Secure connection to the server failed ({reason}). "
            f"Retrying over {fallback.scheme.upper()}; data from this connection is not encrypted."
        )
        logger.warning(
            "Falling back from %s to %s for manifest: %s", failed.scheme, fallback.scheme, reason
        )
        emit(self._sink, INFO_LOG, message)


class _AttemptFailed(Exception):
    """Single transport attempt failed; carries a short human-readable reason."""


__all__ = [
    "DEFAULT_TRANSPORTS",
    "HTTP",
    "HTTPS",
    "ManifestResolver",
    "Transport",
]
