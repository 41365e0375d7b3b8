"""Manifest model: logical path -> content record registry.

The on-disk/wire form is camelCase JSON:

    {
      "version": "1.4.0",
      "timestamp": "2026-01-01T00:00:00+00:00",
      "commit": "abc123...",
      "files": {
        "cursor/commands/status.md": {
          "hash": "sha256:<hex>",
          "size": 812,
          "lastModified": "...",
          "version": "1.4.0",
          "component": "commands",
          "description": "..."
        }
      }
    }

Unknown top-level keys (e.g. a changelog) are ignored on load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from types import MappingProxyType
from typing import Any, Mapping

from promptsync.domain.content_hash import HASH_PREFIX

_SHA256_HEX = re.compile(r"[0-9a-fA-F]{64}")


class ManifestFormatError(ValueError):
    pass


@dataclass(frozen=True)
class FileRecord:
    hash: str
    size: int
    last_modified: str
    version: str
    component: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "hash": self.hash,
            "size": self.size,
            "lastModified": self.last_modified,
            "version": self.version,
            "component": self.component,
        }
        if self.description:
            out["description"] = self.description
        return out


@dataclass(frozen=True)
class Manifest:
    version: str
    timestamp: str
    commit: str
    files: Mapping[str, FileRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view; a new snapshot is a new Manifest.
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    def get(self, logical_path: str) -> FileRecord | None:
        return self.files.get(logical_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "commit": self.commit,
            "files": {path: self.files[path].to_dict() for path in sorted(self.files)},
        }


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ManifestFormatError(f"manifest field {field_name!r} must be a non-empty string")
    return value.strip()


def normalize_file_record(path: str, raw: Any, *, default_version: str) -> FileRecord:
    if not isinstance(raw, dict):
        raise ManifestFormatError(f"manifest entry for {path!r} must be an object")

    digest = _require_str(raw.get("hash"), f"files[{path}].hash")
    bare = digest[len(HASH_PREFIX):] if digest.startswith(HASH_PREFIX) else digest
    if not _SHA256_HEX.fullmatch(bare):
        raise ManifestFormatError(f"manifest entry for {path!r} has an invalid sha256 digest")

    size = raw.get("size", 0)
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ManifestFormatError(f"manifest entry for {path!r} has an invalid size")

    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        raise ManifestFormatError(f"manifest entry for {path!r} has a non-string description")

    version = raw.get("version")
    return FileRecord(
        hash=HASH_PREFIX + bare.lower(),
        size=size,
        last_modified=str(raw.get("lastModified") or ""),
        version=version.strip() if isinstance(version, str) and version.strip() else default_version,
        component=_require_str(raw.get("component"), f"files[{path}].component"),
        description=description or None,
    )


def manifest_from_dict(payload: Any) -> Manifest:
    """Validate and normalize one manifest document into `Manifest`."""

    if not isinstance(payload, dict):
        raise ManifestFormatError("manifest must be an object")

    version = _require_str(payload.get("version"), "version")
    files_raw = payload.get("files", {})
    if not isinstance(files_raw, dict):
        raise ManifestFormatError("manifest field 'files' must be an object")

    files: dict[str, FileRecord] = {}
    for path, raw in files_raw.items():
        if not isinstance(path, str) or not path.strip():
            raise ManifestFormatError("manifest contains an empty logical path")
        files[path] = normalize_file_record(path, raw, default_version=version)

    return Manifest(
        version=version,
        timestamp=str(payload.get("timestamp") or ""),
        commit=str(payload.get("commit") or "unknown"),
        files=files,
    )
