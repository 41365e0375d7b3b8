#!/usr/bin/env python3
"""
prompt-sync - Installer
Installs and re-syncs AI assistant command/prompt/rule files into a working tree.

Features:
- manifest-based change detection (sha256 of exact file bytes)
- first install vs. update: first install when none of the platform's targets exist
- offline/fallback mode when the upstream manifest cannot be loaded
- selective install per component, defaulting to components with updates
- backups before overwrite: directory snapshots (<dir>.backup) or per-file
  timestamped copies (--backup-mode)
- installed-state record (.prompt-sync/installed-manifest.json)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from promptsync.domain.errors import InstallError
from promptsync.domain.records import DetectionResult, InstallOutcome
from promptsync.infrastructure.platform_catalog import CatalogError, PlatformCatalog
from promptsync.infrastructure.settings import BACKUP_MODES, SettingsError, SyncSettings, load_settings
from promptsync.infrastructure.wiring import SyncEngine, build_engine

VERSION = "1.0.0"

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_INSTALL_FAILED = 3


def eprint(*args, **kwargs):
    print(*args, file=sys.stderr, **kwargs)


def parse_components(raw: str) -> list[str] | None:
    """Comma list -> component ids; `all` (or empty) -> None, i.e. every component."""
    items = [c.strip() for c in raw.split(",") if c.strip()]
    if not items or items == ["all"]:
        return None
    return items


def print_catalog(catalog: PlatformCatalog) -> None:
    for platform in catalog.platforms():
        print(f"{platform.id} ({platform.label})")
        for component in platform.components:
            print(f"  - {component.id}: {component.label} [{len(component.files)} file(s)]")


def print_change_analysis(result: DetectionResult) -> None:
    print("\n🔍 Change Analysis")
    print("=" * 60)

    if result.error:
        eprint(f"⚠️  Could not analyze changes: {result.error}")

    if result.manifest_is_fallback:
        print("⚠️  Operating in offline/fallback mode - limited change detection capabilities")
        print("   Remote manifest unavailable - cannot detect all new files or verify latest versions")

    if result.remote_version:
        label = "Local/fallback version:" if result.manifest_is_fallback else "Available version:"
        print(f"{label} {result.remote_version}")
    if result.installed_version:
        print(f"Installed version: {result.installed_version}")

    if result.is_first_install:
        print("No existing files found - treating as fresh installation")

    if result.changes:
        print("\n📝 Updated Files:")
        for change in result.changes:
            print(f"  • {change.file} ({change.component})")
            print(f"    {change.reason}")
            if change.local_hash_prefix and change.remote_hash_prefix:
                print(f"    Local: {change.local_hash_prefix}... → Remote: {change.remote_hash_prefix}...")

    if result.new_files:
        print("\n🆕 New Files:")
        for record in result.new_files:
            print(f"  • {record.file} ({record.component})")
            print(f"    {record.reason}")

    print("\n💡 Recommendations:")
    for line in result.recommendations:
        print(f"  {line}")


def print_outcome(outcome: InstallOutcome, settings: SyncSettings) -> None:
    print("\n" + "=" * 60)
    print("🎉 Installation complete!")
    print("=" * 60)
    print(f"Files installed: {outcome.total_files}")
    print(f"Components:      {', '.join(sorted(outcome.components_installed))}")
    print(f"Target root:     {settings.target_root}")
    if outcome.backup_paths:
        print("\n💾 Backups created:")
        for p in outcome.backup_paths:
            print(f"  • {p}")
        print("You can delete these backups once you're satisfied with the installation.")


def print_warnings(engine: SyncEngine, already_shown: int) -> int:
    events = engine.log.events
    for event in events[already_shown:]:
        if event.level == "warning":
            eprint(f"  ⚠️  {event.message}")
    return len(events)


def report_log_failures(engine: SyncEngine) -> None:
    if engine.log.persist_failures:
        eprint(
            f"  ⚠️  {engine.log.persist_failures} event(s) could not be written to {engine.settings.logs_dir}"
            " (shown above only)"
        )


def resolve_selection(args: argparse.Namespace, result: DetectionResult) -> tuple[bool, list[str] | None]:
    """Return (proceed, selection); selection None installs every component."""

    if result.is_first_install:
        return True, None
    if args.components is not None:
        return True, parse_components(args.components)
    if result.has_updates:
        return True, result.affected_components()
    if args.force:
        return True, None
    return False, None


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Install/re-sync AI assistant command files into a working tree.")
    p.add_argument("--platform", help="Target platform id (see --list).")
    p.add_argument(
        "--components",
        default=None,
        help="Comma-separated component ids, or 'all' (default: components with updates).",
    )
    p.add_argument("--target-root", type=Path, default=None, help="Working tree to install into (default: cwd).")
    p.add_argument("--source-dir", type=Path, default=None, help="Local mirror directory holding manifest.json.")
    p.add_argument("--base-url", default=None, help="Remote base URL serving manifest.json and content.")
    p.add_argument("--backup-mode", choices=BACKUP_MODES, default=None, help="Backup granularity before overwrite.")
    p.add_argument("--settings", type=Path, default=None, help="Explicit settings YAML file.")
    p.add_argument("--check", action="store_true", help="Only analyze changes; write nothing.")
    p.add_argument("--force", action="store_true", help="Reinstall even when everything looks current.")
    p.add_argument("--list", action="store_true", help="List platforms and components, then exit.")
    return p.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    target_root = args.target_root if args.target_root is not None else Path.cwd()

    try:
        settings = load_settings(
            target_root,
            settings_file=args.settings,
            overrides={
                "source_dir": args.source_dir,
                "base_url": args.base_url,
                "backup_mode": args.backup_mode,
            },
        )
        if args.list:
            print_catalog(PlatformCatalog.load(settings.target_root, settings.catalog_path))
            return EXIT_OK
        if not args.platform:
            eprint("❌ --platform is required (use --list to see platforms).")
            return EXIT_CONFIG
        engine = build_engine(settings)
        engine.catalog.platform(args.platform)
        if args.components is not None:
            engine.catalog.list_files(args.platform, parse_components(args.components))
    except (SettingsError, CatalogError) as e:
        eprint(f"❌ {e}")
        return EXIT_CONFIG

    code = run_sync(args, engine, settings)
    report_log_failures(engine)
    return code


def run_sync(args: argparse.Namespace, engine: SyncEngine, settings: SyncSettings) -> int:
    print("=" * 60)
    print("prompt-sync Installer")
    print(f"Installer Version: {VERSION}")
    print(f"Mode: {'CHECK' if args.check else 'INSTALL'} | Platform: {args.platform}")
    print("=" * 60)
    print(f"Source:      {engine.source_label}")
    print(f"Target root: {settings.target_root}")
    print(f"Backups:     {settings.backup_mode}")

    result, fetch = engine.detector.analyze(args.platform)
    shown = print_warnings(engine, 0)
    print_change_analysis(result)

    if args.check:
        return EXIT_OK

    proceed, selection = resolve_selection(args, result)
    if not proceed:
        print("\n✨ Nothing to install (use --force to reinstall anyway).")
        return EXIT_OK

    label = "all components" if selection is None else ", ".join(selection)
    print(f"\n📋 Installing {label} ...")
    try:
        outcome = engine.executor.run(args.platform, selection, remote=fetch)
    except InstallError as e:
        print_warnings(engine, shown)
        eprint("\n❌ Installation failed")
        eprint(f"Error: {e}")
        if e.written:
            eprint("Already written (now at the new version):")
            for p in e.written:
                eprint(f"  - {p}")
        eprint(f"Not written: {e.failed} and every file after it")
        return EXIT_INSTALL_FAILED
    print_warnings(engine, shown)
    print_outcome(outcome, settings)
    return EXIT_OK


def cli() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
