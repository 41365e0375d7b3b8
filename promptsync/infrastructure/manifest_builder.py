"""Build a manifest from a source tree using the catalog's manifest patterns."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Sequence

from promptsync.domain.content_hash import format_hash, hash_bytes
from promptsync.domain.manifest import FileRecord, Manifest
from promptsync.infrastructure.platform_catalog import ManifestPattern

DESCRIPTION_SCAN_LINES = 10
DESCRIPTION_MAX_CHARS = 100


def expand_pattern(source_root: Path, pattern: str) -> list[str]:
    """Expand one pattern to sorted logical paths.

    `dir/*.md` matches files directly inside `dir` whose names end with `.md`;
    a pattern without `*` matches the literal file if it exists.
    """

    if "*" not in pattern:
        return [pattern] if source_root.joinpath(*PurePosixPath(pattern).parts).is_file() else []

    directory, _, suffix = pattern.partition("*")
    directory = directory.rstrip("/")
    base = source_root.joinpath(*PurePosixPath(directory).parts) if directory else source_root
    if not base.is_dir():
        return []
    out = []
    for p in base.iterdir():
        if p.is_file() and p.name.endswith(suffix):
            out.append(f"{directory}/{p.name}" if directory else p.name)
    return sorted(out)


def extract_description(text: str) -> str | None:
    for line in text.splitlines()[:DESCRIPTION_SCAN_LINES]:
        if line.startswith("description:"):
            return line[len("description:"):].strip().replace('"', "").replace("'", "") or None
        if "Description:" in line:
            return line.split("Description:", 1)[1].strip() or None
        stripped = line.strip()
        if stripped and not line.startswith("#") and not line.startswith("---") and len(line) > 20:
            suffix = "..." if len(line) > DESCRIPTION_MAX_CHARS else ""
            return stripped[:DESCRIPTION_MAX_CHARS] + suffix
    return None


def _mtime_iso(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat(timespec="seconds")


def build_manifest(
    source_root: Path,
    patterns: Sequence[ManifestPattern],
    *,
    version: str,
    commit: str,
    timestamp: str | None = None,
) -> Manifest:
    files: dict[str, FileRecord] = {}
    for spec in patterns:
        for logical in expand_pattern(source_root, spec.pattern):
            if logical in files:
                continue
            path = source_root.joinpath(*PurePosixPath(logical).parts)
            try:
                data = path.read_bytes()
                last_modified = _mtime_iso(path)
            except OSError:
                continue
            description = extract_description(data.decode("utf-8", errors="replace"))
            files[logical] = FileRecord(
                hash=format_hash(hash_bytes(data)),
                size=len(data),
                last_modified=last_modified,
                version=version,
                component=spec.component,
                description=description or spec.description,
            )
    return Manifest(
        version=version,
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        commit=commit,
        files=files,
    )
