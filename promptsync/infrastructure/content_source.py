"""Upstream content sources: a local mirror directory or an HTTP base URL."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import urllib.parse

import requests

from promptsync.domain.errors import ContentFetchError
from promptsync.infrastructure.settings import SettingsError, SyncSettings

USER_AGENT = "prompt-sync-installer"


def _checked_parts(logical_path: str) -> tuple[str, ...]:
    p = PurePosixPath(logical_path.replace("\\", "/"))
    if p.is_absolute() or ".." in p.parts or not p.parts:
        raise ContentFetchError(logical_path, "logical path escapes the content root")
    return p.parts


class LocalMirrorSource:
    def __init__(self, root: Path):
        self.root = root

    def describe(self) -> str:
        return f"local mirror {self.root}"

    def fetch(self, logical_path: str, *, timeout: float | None = None) -> bytes:
        # Local reads do not block on the network; timeout is accepted for parity.
        path = self.root.joinpath(*_checked_parts(logical_path))
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ContentFetchError(logical_path, exc.strerror or str(exc)) from exc


class HttpContentSource:
    def __init__(self, base_url: str, *, default_timeout: float = 20.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.default_timeout = default_timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def describe(self) -> str:
        return f"remote {self.base_url}"

    def url_for(self, logical_path: str) -> str:
        quoted = "/".join(urllib.parse.quote(part) for part in _checked_parts(logical_path))
        return f"{self.base_url}/{quoted}"

    def fetch(self, logical_path: str, *, timeout: float | None = None) -> bytes:
        try:
            response = self._session.get(self.url_for(logical_path), timeout=timeout or self.default_timeout)
            response.raise_for_status()
            body = response.content
        except requests.Timeout as exc:
            raise ContentFetchError(logical_path, "timed out") from exc
        except requests.HTTPError as exc:
            raise ContentFetchError(logical_path, f"HTTP {exc.response.status_code}: {exc.response.reason}") from exc
        except requests.RequestException as exc:
            raise ContentFetchError(logical_path, str(exc)[:256] or exc.__class__.__name__) from exc
        _check_length(logical_path, response, body)
        return body


def _check_length(logical_path: str, response: requests.Response, body: bytes) -> None:
    # Only an identity-encoded body has to match the declared length byte for byte.
    declared = response.headers.get("Content-Length")
    if declared is None or response.headers.get("Content-Encoding", "identity") != "identity":
        return
    try:
        expected = int(declared)
    except ValueError:
        return
    if len(body) != expected:
        raise ContentFetchError(logical_path, f"truncated response: {len(body)} of {expected} bytes")


def build_content_source(settings: SyncSettings) -> LocalMirrorSource | HttpContentSource:
    """Local mirror wins over a base URL when both are configured."""

    if settings.source_dir is not None:
        return LocalMirrorSource(settings.source_dir)
    if settings.base_url:
        return HttpContentSource(settings.base_url, default_timeout=settings.file_timeout_seconds)
    raise SettingsError(
        "no content source configured: set --source-dir / --base-url, "
        "PROMPTSYNC_LOCAL_SOURCE / PROMPTSYNC_BASE_URL, or source_dir / base_url in settings.yaml"
    )
