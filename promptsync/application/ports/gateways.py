"""Application ports for the sync engine.

Pure contracts only. Concrete implementations live in infrastructure and are
passed into use cases explicitly; there is no process-wide registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Sequence

from promptsync.domain.manifest import Manifest
from promptsync.domain.records import TargetFile


class ContentSource(Protocol):
    """Opaque upstream: returns raw bytes for a logical path or raises ContentFetchError."""

    def fetch(self, logical_path: str, *, timeout: float | None = None) -> bytes: ...

    def describe(self) -> str: ...


class ComponentResolver(Protocol):
    def list_files(self, platform: str, components: Sequence[str] | None = None) -> list[TargetFile]: ...


class EventSink(Protocol):
    def warning(self, code: str, message: str, **details: Any) -> None: ...

    def error(self, code: str, message: str, **details: Any) -> None: ...


@dataclass(frozen=True)
class ManifestFetch:
    manifest: Manifest
    is_fallback: bool


class ManifestGateway(Protocol):
    def fetch_remote(self) -> ManifestFetch: ...

    def load_installed(self) -> Manifest | None: ...

    def write_installed(self, manifest: Manifest) -> Path: ...


class BackupGateway(Protocol):
    def backup(self, paths: Sequence[Path], mode: str) -> list[Path]: ...
