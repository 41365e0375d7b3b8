"""Installer settings.

Resolution order (later wins):
  1. built-in defaults
  2. YAML settings file (<target_root>/.prompt-sync/settings.yaml, or explicit path)
  3. environment (PROMPTSYNC_LOCAL_SOURCE, PROMPTSYNC_BASE_URL, PROMPTSYNC_BACKUP_MODE)
  4. explicit overrides (CLI flags)
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

STATE_DIR_NAME = ".prompt-sync"
SETTINGS_FILE_NAME = "settings.yaml"
INSTALLED_MANIFEST_NAME = "installed-manifest.json"
LOGS_DIR_NAME = "logs"

BACKUP_MODES = ("directory", "file", "none")

ENV_LOCAL_SOURCE = "PROMPTSYNC_LOCAL_SOURCE"
ENV_BASE_URL = "PROMPTSYNC_BASE_URL"
ENV_BACKUP_MODE = "PROMPTSYNC_BACKUP_MODE"


class SettingsError(ValueError):
    pass


@dataclass(frozen=True)
class SyncSettings:
    target_root: Path
    source_dir: Path | None = None
    base_url: str | None = None
    backup_mode: str = "directory"
    manifest_timeout_seconds: float = 15.0
    file_timeout_seconds: float = 20.0
    catalog_path: Path | None = None
    version_label: str = "unknown"
    run_log_enabled: bool = True
    run_log_retention_days: int = 30

    @property
    def state_dir(self) -> Path:
        return self.target_root / STATE_DIR_NAME

    @property
    def installed_manifest_path(self) -> Path:
        return self.state_dir / INSTALLED_MANIFEST_NAME

    @property
    def logs_dir(self) -> Path:
        return self.state_dir / LOGS_DIR_NAME


def _as_path(value: Any, key: str, base: Path) -> Path | None:
    if value is None or value == "":
        return None
    if not isinstance(value, (str, os.PathLike)):
        raise SettingsError(f"setting {key!r} must be a path string")
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def _as_timeout(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise SettingsError(f"setting {key!r} must be a positive number of seconds")
    return float(value)


def _coerce(key: str, value: Any, base: Path) -> Any:
    if key in ("source_dir", "catalog_path"):
        return _as_path(value, key, base)
    if key == "target_root":
        resolved = _as_path(value, key, base)
        if resolved is None:
            raise SettingsError("setting 'target_root' must not be empty")
        return resolved
    if key == "base_url":
        if value in (None, ""):
            return None
        if not isinstance(value, str) or not value.startswith(("http://", "https://")):
            raise SettingsError("setting 'base_url' must be an http(s) URL")
        return value.rstrip("/")
    if key == "backup_mode":
        mode = str(value).strip().lower()
        if mode not in BACKUP_MODES:
            raise SettingsError(f"setting 'backup_mode' must be one of {', '.join(BACKUP_MODES)}; got {value!r}")
        return mode
    if key in ("manifest_timeout_seconds", "file_timeout_seconds"):
        return _as_timeout(value, key)
    if key == "run_log_enabled":
        if not isinstance(value, bool):
            raise SettingsError("setting 'run_log_enabled' must be a boolean")
        return value
    if key == "run_log_retention_days":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise SettingsError("setting 'run_log_retention_days' must be a non-negative integer")
        return value
    if key == "version_label":
        return str(value)
    raise SettingsError(f"unknown setting: {key!r}")


def load_settings_file(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SettingsError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SettingsError(f"invalid YAML in settings file {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise SettingsError(f"settings file {path} must contain a mapping")
    return payload


def _env_values(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    local_source = env.get(ENV_LOCAL_SOURCE, "").strip()
    if local_source:
        values["source_dir"] = local_source
    base_url = env.get(ENV_BASE_URL, "").strip()
    if base_url:
        values["base_url"] = base_url
    backup_mode = env.get(ENV_BACKUP_MODE, "").strip()
    if backup_mode:
        values["backup_mode"] = backup_mode
    return values


def load_settings(
    target_root: Path,
    *,
    settings_file: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> SyncSettings:
    root = Path(target_root).expanduser().resolve()
    settings = SyncSettings(target_root=root)
    known = {f.name for f in fields(SyncSettings)}

    layers: list[tuple[dict[str, Any], Path]] = []
    file_path = settings_file if settings_file is not None else settings.state_dir / SETTINGS_FILE_NAME
    if settings_file is not None or file_path.exists():
        layers.append((load_settings_file(file_path), file_path.resolve().parent))
    layers.append((_env_values(os.environ if env is None else env), Path.cwd()))
    layers.append(({k: v for k, v in (overrides or {}).items() if v is not None}, Path.cwd()))

    for values, base in layers:
        unknown = sorted(set(values) - known)
        if unknown:
            raise SettingsError(f"unknown setting(s): {', '.join(unknown)}")
        changes = {key: _coerce(key, value, base) for key, value in values.items()}
        settings = replace(settings, **changes)
    return settings
