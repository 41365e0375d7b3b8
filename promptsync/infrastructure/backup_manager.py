"""Pre-overwrite snapshots of installed targets.

Modes:
- directory: every distinct top-level directory under the target root that
  holds a target is copied once to `<dir>.backup`; an older snapshot at that
  name is replaced only once the new copy is complete.
- file: each existing target is copied to `<name>.backup-<timestamp>` right
  before it is overwritten; taken names get a numeric suffix.
- none: no snapshots.

A failed copy is reported to the event sink and left out of the result; it
never stops the install.
"""

from __future__ import annotations

from datetime import datetime
import os
from pathlib import Path
import shutil
from typing import Callable, Sequence

from promptsync.application.ports.gateways import EventSink


def now_ts() -> str:
    # filesystem friendly
    return datetime.now().strftime("%Y%m%d-%H%M%S")


class BackupManager:
    def __init__(self, target_root: Path, log: EventSink, *, clock: Callable[[], str] = now_ts):
        self.target_root = target_root
        self._log = log
        self._clock = clock

    def backup(self, paths: Sequence[Path], mode: str) -> list[Path]:
        if mode == "none":
            return []
        if mode == "directory":
            return self._backup_roots(self.snapshot_roots(paths))
        if mode == "file":
            out: list[Path] = []
            for path in paths:
                dest = self._backup_file(path)
                if dest is not None:
                    out.append(dest)
            return out
        raise ValueError(f"unknown backup mode: {mode!r}")

    def snapshot_roots(self, paths: Sequence[Path]) -> list[Path]:
        """Distinct top-level entries under the target root, in first-seen order."""

        roots: list[Path] = []
        for path in paths:
            try:
                rel = path.relative_to(self.target_root)
            except ValueError:
                root = path.parent
            else:
                if not rel.parts:
                    continue
                root = self.target_root / rel.parts[0]
            if root not in roots:
                roots.append(root)
        return roots

    def _backup_roots(self, roots: Sequence[Path]) -> list[Path]:
        out: list[Path] = []
        for root in roots:
            if not root.exists():
                continue
            dest = root.with_name(root.name + ".backup")
            staging = root.with_name(f"{dest.name}.tmp-{self._clock()}")
            try:
                _remove(staging)
                _copy(root, staging)
                # The previous snapshot survives until the new copy is complete.
                _remove(dest)
                os.replace(staging, dest)
            except OSError as exc:
                try:
                    _remove(staging)
                except OSError:
                    pass
                self._log.warning("backup-failed", f"Could not backup {root}: {exc}", path=str(root))
                continue
            out.append(dest)
        return out

    def _free_name(self, path: Path) -> Path:
        base = f"{path.name}.backup-{self._clock()}"
        candidate = path.with_name(base)
        counter = 1
        while candidate.exists() or candidate.is_symlink():
            candidate = path.with_name(f"{base}-{counter}")
            counter += 1
        return candidate

    def _backup_file(self, path: Path) -> Path | None:
        if not path.exists():
            return None
        dest = self._free_name(path)
        try:
            _copy(path, dest)
        except OSError as exc:
            self._log.warning("backup-failed", f"Could not backup {path}: {exc}", path=str(path))
            return None
        return dest


def _copy(src: Path, dest: Path) -> None:
    if src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
