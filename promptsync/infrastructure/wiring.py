"""Composition root: build the sync engine from one SyncSettings value."""

from __future__ import annotations

from dataclasses import dataclass

from promptsync.application.use_cases.detect_changes import ChangeDetector
from promptsync.application.use_cases.install_components import InstallExecutor
from promptsync.infrastructure.backup_manager import BackupManager
from promptsync.infrastructure.content_source import build_content_source
from promptsync.infrastructure.manifest_store import ManifestStore
from promptsync.infrastructure.platform_catalog import PlatformCatalog
from promptsync.infrastructure.run_log import RunLog
from promptsync.infrastructure.settings import SyncSettings


@dataclass(frozen=True)
class SyncEngine:
    settings: SyncSettings
    catalog: PlatformCatalog
    manifests: ManifestStore
    detector: ChangeDetector
    executor: InstallExecutor
    log: RunLog
    source_label: str


def build_engine(settings: SyncSettings, *, catalog: PlatformCatalog | None = None) -> SyncEngine:
    log = RunLog(
        settings.logs_dir if settings.run_log_enabled else None,
        retention_days=settings.run_log_retention_days,
    )
    catalog = catalog or PlatformCatalog.load(settings.target_root, settings.catalog_path)
    source = build_content_source(settings)
    manifests = ManifestStore(settings, source, log)
    return SyncEngine(
        settings=settings,
        catalog=catalog,
        manifests=manifests,
        detector=ChangeDetector(catalog, manifests),
        executor=InstallExecutor(
            resolver=catalog,
            source=source,
            manifests=manifests,
            backups=BackupManager(settings.target_root, log),
            log=log,
            backup_mode=settings.backup_mode,
            file_timeout_seconds=settings.file_timeout_seconds,
        ),
        log=log,
        source_label=source.describe(),
    )
