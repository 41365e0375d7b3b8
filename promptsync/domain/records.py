from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal

ChangeKind = Literal["new", "changed", "unreadable"]


@dataclass(frozen=True)
class TargetFile:
    """One logical artifact and where it lands for a platform."""

    source: str
    target: Path
    component: str


@dataclass(frozen=True)
class ChangeRecord:
    kind: ChangeKind
    file: str
    component: str
    reason: str
    local_hash_prefix: str | None = None
    remote_hash_prefix: str | None = None
    remote_version: str | None = None
    locally_modified: bool = False


def affected_components(records: Iterable[ChangeRecord]) -> list[str]:
    """Component ids in first-seen order."""

    seen: list[str] = []
    for record in records:
        if record.component and record.component not in seen:
            seen.append(record.component)
    return seen


@dataclass(frozen=True)
class DetectionResult:
    is_first_install: bool
    manifest_is_fallback: bool
    changes: tuple[ChangeRecord, ...] = ()
    new_files: tuple[ChangeRecord, ...] = ()
    recommendations: tuple[str, ...] = ()
    remote_version: str | None = None
    installed_version: str | None = None
    error: str | None = None

    @property
    def has_updates(self) -> bool:
        return bool(self.changes or self.new_files)

    def affected_components(self) -> list[str]:
        return affected_components((*self.changes, *self.new_files))


@dataclass(frozen=True)
class InstallOutcome:
    total_files: int
    components_installed: frozenset[str]
    backup_paths: tuple[Path, ...] = field(default_factory=tuple)
