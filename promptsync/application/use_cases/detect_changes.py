"""Classify a platform's target files against a manifest.

First-install rule: when none of the selected targets exist on disk the run
is a first install, whatever the manifest or installed-state record says.
A leftover installed-state record with every tracked file deleted is
therefore treated as a fresh environment.
"""

from __future__ import annotations

from typing import Sequence

from promptsync.application.ports.gateways import ComponentResolver, ManifestFetch, ManifestGateway
from promptsync.application.use_cases.recommend_updates import FULL_REINSTALL_ADVICE, recommend_updates
from promptsync.domain.content_hash import HASH_UNAVAILABLE, display_prefix, hash_file, strip_hash_prefix
from promptsync.domain.manifest import Manifest
from promptsync.domain.records import ChangeRecord, DetectionResult, TargetFile

REASON_MISSING_LOCALLY = "File does not exist locally"
REASON_UNREADABLE = "Unable to read local file"
REASON_CONTENT_CHANGED = "File content has changed"
REASON_NEW_REMOTE = "New file in remote repository"


def detect_changes(
    files: Sequence[TargetFile],
    fetch: ManifestFetch,
    installed: Manifest | None = None,
) -> DetectionResult:
    manifest = fetch.manifest
    installed_version = installed.version if installed is not None else None

    if not any(f.target.exists() for f in files):
        return DetectionResult(
            is_first_install=True,
            manifest_is_fallback=fetch.is_fallback,
            recommendations=("Full installation recommended",),
            remote_version=manifest.version,
            installed_version=installed_version,
        )

    changes: list[ChangeRecord] = []
    new_files: list[ChangeRecord] = []
    for f in files:
        if not f.target.exists():
            new_files.append(ChangeRecord(kind="new", file=f.source, component=f.component, reason=REASON_MISSING_LOCALLY))
            continue

        local_hash = hash_file(f.target)
        if local_hash is HASH_UNAVAILABLE:
            changes.append(ChangeRecord(kind="unreadable", file=f.source, component=f.component, reason=REASON_UNREADABLE))
            continue

        remote = manifest.get(f.source)
        if remote is None:
            # A fallback registry is empty by construction; absence proves nothing.
            if not fetch.is_fallback:
                new_files.append(ChangeRecord(kind="new", file=f.source, component=f.component, reason=REASON_NEW_REMOTE))
            continue

        remote_hash = strip_hash_prefix(remote.hash)
        if local_hash == remote_hash:
            continue

        installed_record = installed.get(f.source) if installed is not None else None
        changes.append(
            ChangeRecord(
                kind="changed",
                file=f.source,
                component=f.component,
                reason=REASON_CONTENT_CHANGED,
                local_hash_prefix=display_prefix(local_hash),
                remote_hash_prefix=display_prefix(remote_hash),
                remote_version=remote.version or "latest",
                locally_modified=(
                    installed_record is not None and strip_hash_prefix(installed_record.hash) != local_hash
                ),
            )
        )

    return DetectionResult(
        is_first_install=False,
        manifest_is_fallback=fetch.is_fallback,
        changes=tuple(changes),
        new_files=tuple(new_files),
        recommendations=tuple(recommend_updates(changes, new_files, fetch.is_fallback)),
        remote_version=manifest.version,
        installed_version=installed_version,
    )


class ChangeDetector:
    """Resolves the platform file list, fetches the manifest and runs detection."""

    def __init__(self, resolver: ComponentResolver, manifests: ManifestGateway):
        self._resolver = resolver
        self._manifests = manifests

    def detect(self, platform: str, components: Sequence[str] | None = None) -> DetectionResult:
        result, _ = self.analyze(platform, components)
        return result

    def analyze(
        self, platform: str, components: Sequence[str] | None = None
    ) -> tuple[DetectionResult, ManifestFetch | None]:
        """Like detect(), also returning the manifest fetch for reuse by the installer."""

        files = self._resolver.list_files(platform, components)
        try:
            fetch = self._manifests.fetch_remote()
        except Exception as exc:
            # fetch_remote already absorbs transport errors; anything else is a bug upstream.
            return (
                DetectionResult(
                    is_first_install=False,
                    manifest_is_fallback=True,
                    recommendations=(FULL_REINSTALL_ADVICE,),
                    error=str(exc) or exc.__class__.__name__,
                ),
                None,
            )
        return detect_changes(files, fetch, self._manifests.load_installed()), fetch
