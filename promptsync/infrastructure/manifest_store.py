"""Remote manifest retrieval and the installed-state record.

Fetch semantics:
- primary: `manifest.json` from the configured content source (mirror or URL)
- any failure (timeout, HTTP error, missing file, malformed JSON, schema
  violation) yields the fallback manifest with `is_fallback=True`
- the fallback registry is always empty; it never claims knowledge of
  upstream content
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

from promptsync.application.ports.gateways import ContentSource, EventSink, ManifestFetch
from promptsync.domain.errors import ContentFetchError
from promptsync.domain.manifest import Manifest, ManifestFormatError, manifest_from_dict
from promptsync.infrastructure.fs_atomic import atomic_write_json
from promptsync.infrastructure.settings import SyncSettings

MANIFEST_NAME = "manifest.json"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def parse_manifest_bytes(raw: bytes) -> Manifest:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise ManifestFormatError(f"manifest is not valid JSON: {exc}") from exc
    return manifest_from_dict(payload)


class ManifestStore:
    def __init__(self, settings: SyncSettings, source: ContentSource, log: EventSink):
        self._settings = settings
        self._source = source
        self._log = log

    def fetch_remote(self) -> ManifestFetch:
        try:
            raw = self._source.fetch(MANIFEST_NAME, timeout=self._settings.manifest_timeout_seconds)
            manifest = parse_manifest_bytes(raw)
        except (ContentFetchError, ManifestFormatError) as exc:
            self._log.warning(
                "manifest-fallback",
                f"Could not load remote manifest from {self._source.describe()}, using fallback: {exc}",
                source=self._source.describe(),
            )
            return ManifestFetch(manifest=self.synthesize_fallback(), is_fallback=True)
        return ManifestFetch(manifest=manifest, is_fallback=False)

    def synthesize_fallback(self) -> Manifest:
        return Manifest(
            version=self._settings.version_label,
            timestamp=utc_now_iso(),
            commit="unknown",
            files={},
        )

    def load_installed(self) -> Manifest | None:
        path = self._settings.installed_manifest_path
        if not path.exists():
            return None
        try:
            return parse_manifest_bytes(path.read_bytes())
        except (OSError, ManifestFormatError) as exc:
            self._log.warning(
                "installed-record-unreadable",
                f"Ignoring unreadable installed-state record {path}: {exc}",
                path=str(path),
            )
            return None

    def write_installed(self, manifest: Manifest) -> Path:
        path = self._settings.installed_manifest_path
        atomic_write_json(path, manifest.to_dict())
        return path
