from __future__ import annotations

from pathlib import Path

import pytest

from promptsync.infrastructure.content_source import HttpContentSource, LocalMirrorSource, build_content_source
from promptsync.infrastructure.settings import SettingsError, SyncSettings, load_settings


def _write_settings(target_root: Path, text: str) -> Path:
    path = target_root / ".prompt-sync" / "settings.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.engine
def test_defaults(target_root: Path):
    s = load_settings(target_root, env={})
    assert s.target_root == target_root.resolve()
    assert s.backup_mode == "directory"
    assert s.manifest_timeout_seconds == 15.0
    assert s.file_timeout_seconds == 20.0
    assert s.installed_manifest_path == target_root.resolve() / ".prompt-sync" / "installed-manifest.json"


@pytest.mark.engine
def test_precedence_file_then_env_then_overrides(target_root: Path):
    _write_settings(
        target_root,
        "base_url: https://file.example/raw/\nbackup_mode: file\nsource_dir: mirror\nmanifest_timeout_seconds: 5\n",
    )

    from_file = load_settings(target_root, env={})
    assert from_file.base_url == "https://file.example/raw"
    assert from_file.backup_mode == "file"
    assert from_file.manifest_timeout_seconds == 5.0
    # relative paths in the settings file resolve against the file's directory
    assert from_file.source_dir == target_root.resolve() / ".prompt-sync" / "mirror"

    from_env = load_settings(target_root, env={"PROMPTSYNC_BACKUP_MODE": "NONE"})
    assert from_env.backup_mode == "none"

    from_cli = load_settings(
        target_root,
        env={"PROMPTSYNC_BACKUP_MODE": "none"},
        overrides={"backup_mode": "directory", "base_url": None},
    )
    assert from_cli.backup_mode == "directory"
    assert from_cli.base_url == "https://file.example/raw"


@pytest.mark.engine
@pytest.mark.parametrize(
    "text, needle",
    [
        ("backup_mode: zip\n", "backup_mode"),
        ("manifest_timeout_seconds: 0\n", "positive"),
        ("base_url: ftp://x\n", "http"),
        ("colour: blue\n", "unknown setting"),
        ("- a\n- b\n", "mapping"),
        ("key: [unclosed\n", "invalid YAML"),
    ],
)
def test_invalid_settings_file_fails_closed(target_root: Path, text: str, needle: str):
    _write_settings(target_root, text)
    with pytest.raises(SettingsError, match=needle):
        load_settings(target_root, env={})


@pytest.mark.engine
def test_explicit_settings_file_must_exist(target_root: Path):
    with pytest.raises(SettingsError, match="cannot read"):
        load_settings(target_root, settings_file=target_root / "nope.yaml", env={})


@pytest.mark.engine
def test_content_source_selection(tmp_path: Path):
    both = SyncSettings(target_root=tmp_path, source_dir=tmp_path / "m", base_url="https://example.invalid")
    assert isinstance(build_content_source(both), LocalMirrorSource)

    remote = SyncSettings(target_root=tmp_path, base_url="https://example.invalid")
    assert isinstance(build_content_source(remote), HttpContentSource)

    with pytest.raises(SettingsError, match="no content source"):
        build_content_source(SyncSettings(target_root=tmp_path))
