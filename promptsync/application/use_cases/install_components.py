"""Install (or re-sync) a platform's components into the target tree.

Order per run:
  1. resolve target files for the platform/component selection
  2. directory backups (when configured) before any write
  3. per file: fetch, per-file backup (when configured), atomic write
  4. recompute written hashes and persist a new installed-state snapshot
  5. return InstallOutcome

No rollback: a failure in step 3 stops the run, leaves earlier writes in
place, and skips step 4 so an incomplete install is never recorded.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from promptsync.application.ports.gateways import (
    BackupGateway,
    ComponentResolver,
    ContentSource,
    EventSink,
    ManifestFetch,
    ManifestGateway,
)
from promptsync.domain.content_hash import HASH_UNAVAILABLE, format_hash, hash_file
from promptsync.domain.errors import InstallError
from promptsync.domain.manifest import FileRecord, Manifest
from promptsync.domain.records import InstallOutcome, TargetFile
from promptsync.infrastructure.fs_atomic import atomic_write_bytes


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _describe(exc: Exception) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc) or exc.__class__.__name__


class InstallExecutor:
    def __init__(
        self,
        *,
        resolver: ComponentResolver,
        source: ContentSource,
        manifests: ManifestGateway,
        backups: BackupGateway,
        log: EventSink,
        backup_mode: str = "directory",
        file_timeout_seconds: float | None = None,
        write_bytes: Callable[[Path, bytes], None] = atomic_write_bytes,
    ):
        self._resolver = resolver
        self._source = source
        self._manifests = manifests
        self._backups = backups
        self._log = log
        self._backup_mode = backup_mode
        self._file_timeout = file_timeout_seconds
        self._write_bytes = write_bytes

    def run(
        self,
        platform: str,
        selection: Sequence[str] | None = None,
        *,
        remote: ManifestFetch | None = None,
    ) -> InstallOutcome:
        """Install `selection` (None = every component) for `platform`.

        `remote` is the manifest already fetched for detection; when omitted it
        is fetched here so descriptions/versions can be carried into the snapshot.
        """

        files = self._resolver.list_files(platform, selection)
        if remote is None:
            remote = self._manifests.fetch_remote()

        backup_paths: list[Path] = []
        if self._backup_mode == "directory":
            backup_paths.extend(self._backups.backup([f.target for f in files], "directory"))

        written: list[TargetFile] = []
        for f in files:
            try:
                content = self._source.fetch(f.source, timeout=self._file_timeout)
            except Exception as exc:
                # ContentSource is opaque; any failure aborts the run with a report.
                raise self._failure(f, written, f"content fetch failed: {_describe(exc)}") from exc
            if self._backup_mode == "file":
                backup_paths.extend(self._backups.backup([f.target], "file"))
            try:
                self._write_bytes(f.target, content)
            except Exception as exc:
                raise self._failure(f, written, f"write to {f.target} failed: {_describe(exc)}") from exc
            written.append(f)

        snapshot = self._build_snapshot(written, remote.manifest)
        self._manifests.write_installed(snapshot)

        return InstallOutcome(
            total_files=len(written),
            components_installed=frozenset(f.component for f in written),
            backup_paths=tuple(backup_paths),
        )

    def _failure(self, failed: TargetFile, written: list[TargetFile], cause: str) -> InstallError:
        targets = [f.target for f in written]
        self._log.error(
            "install-aborted",
            f"Installation aborted at {failed.source}: {cause}",
            failed=failed.source,
            written=[str(t) for t in targets],
        )
        return InstallError(
            f"Installation aborted at {failed.source}: {cause} "
            f"({len(targets)} file(s) already written; installed-state record not updated)",
            written=targets,
            failed=failed.source,
        )

    def _build_snapshot(self, written: Sequence[TargetFile], remote: Manifest) -> Manifest:
        previous = self._manifests.load_installed()
        now = _utc_now()
        files: dict[str, FileRecord] = dict(previous.files) if previous is not None else {}

        for f in written:
            digest = hash_file(f.target)
            if digest is HASH_UNAVAILABLE:
                self._log.warning("snapshot-hash-unavailable", f"Could not re-read {f.target} after writing", path=str(f.target))
                files.pop(f.source, None)
                continue
            remote_record = remote.get(f.source)
            files[f.source] = FileRecord(
                hash=format_hash(digest),
                size=f.target.stat().st_size,
                last_modified=now,
                version=remote_record.version if remote_record is not None else remote.version,
                component=f.component,
                description=remote_record.description if remote_record is not None else None,
            )

        return Manifest(version=remote.version, timestamp=now, commit=remote.commit, files=files)
