"""Platform component catalog loaded from YAML.

Fail-closed loader: any structural problem in the catalog raises CatalogError
instead of silently producing a partial file list.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Sequence

import yaml

from promptsync.domain.records import TargetFile

CATALOG_SCHEMA = "prompt-sync.catalog.v1"
DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "catalog" / "platforms.yaml"


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class CatalogEntry:
    source: str
    target: str


@dataclass(frozen=True)
class ComponentSpec:
    id: str
    label: str
    files: tuple[CatalogEntry, ...]


@dataclass(frozen=True)
class PlatformSpec:
    id: str
    label: str
    components: tuple[ComponentSpec, ...]


@dataclass(frozen=True)
class ManifestPattern:
    pattern: str
    component: str
    description: str | None = None


def _safe_relative(raw: Any, what: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise CatalogError(f"{what} must be a non-empty string")
    p = PurePosixPath(raw.strip().replace("\\", "/"))
    if p.is_absolute() or ".." in p.parts:
        raise CatalogError(f"{what} must be a relative path inside the tree: {raw!r}")
    return str(p)


def _label(raw: Any, default: str) -> str:
    return raw.strip() if isinstance(raw, str) and raw.strip() else default


def _parse_component(platform_id: str, component_id: str, raw: Any) -> ComponentSpec:
    where = f"platforms.{platform_id}.components.{component_id}"
    if not isinstance(raw, dict):
        raise CatalogError(f"{where} must be a mapping")
    files_raw = raw.get("files")
    if not isinstance(files_raw, list) or not files_raw:
        raise CatalogError(f"{where}.files must be a non-empty list")
    entries: list[CatalogEntry] = []
    for i, item in enumerate(files_raw):
        if not isinstance(item, dict):
            raise CatalogError(f"{where}.files[{i}] must be a mapping")
        entries.append(
            CatalogEntry(
                source=_safe_relative(item.get("source"), f"{where}.files[{i}].source"),
                target=_safe_relative(item.get("target"), f"{where}.files[{i}].target"),
            )
        )
    return ComponentSpec(id=component_id, label=_label(raw.get("label"), component_id), files=tuple(entries))


def _parse_platform(platform_id: str, raw: Any) -> PlatformSpec:
    if not isinstance(raw, dict):
        raise CatalogError(f"platforms.{platform_id} must be a mapping")
    components_raw = raw.get("components")
    if not isinstance(components_raw, dict) or not components_raw:
        raise CatalogError(f"platforms.{platform_id}.components must be a non-empty mapping")
    components = tuple(_parse_component(platform_id, str(cid), craw) for cid, craw in components_raw.items())

    seen_targets: dict[str, str] = {}
    for component in components:
        for entry in component.files:
            owner = seen_targets.get(entry.target)
            if owner is not None:
                raise CatalogError(
                    f"platforms.{platform_id}: target {entry.target!r} claimed by both {owner!r} and {component.id!r}"
                )
            seen_targets[entry.target] = component.id
    return PlatformSpec(id=platform_id, label=_label(raw.get("label"), platform_id), components=components)


def _parse_patterns(raw: Any) -> tuple[ManifestPattern, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise CatalogError("manifest_patterns must be a list")
    out: list[ManifestPattern] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise CatalogError(f"manifest_patterns[{i}] must be a mapping")
        component = item.get("component")
        if not isinstance(component, str) or not component.strip():
            raise CatalogError(f"manifest_patterns[{i}].component is required")
        description = item.get("description")
        out.append(
            ManifestPattern(
                pattern=_safe_relative(item.get("pattern"), f"manifest_patterns[{i}].pattern"),
                component=component.strip(),
                description=description.strip() if isinstance(description, str) and description.strip() else None,
            )
        )
    return tuple(out)


class PlatformCatalog:
    """Resolves (platform, components) to concrete TargetFiles under a target root."""

    def __init__(self, platforms: Sequence[PlatformSpec], target_root: Path, manifest_patterns: Sequence[ManifestPattern] = ()):
        self._platforms = {p.id: p for p in platforms}
        self.target_root = target_root
        self.manifest_patterns = tuple(manifest_patterns)

    @classmethod
    def from_dict(cls, payload: Any, target_root: Path) -> PlatformCatalog:
        if not isinstance(payload, dict):
            raise CatalogError("catalog must be a mapping")
        schema = payload.get("schema")
        if schema is not None and schema != CATALOG_SCHEMA:
            raise CatalogError(f"unsupported catalog schema: {schema!r}")
        platforms_raw = payload.get("platforms")
        if not isinstance(platforms_raw, dict) or not platforms_raw:
            raise CatalogError("catalog must define at least one platform")
        platforms = [_parse_platform(str(pid), raw) for pid, raw in platforms_raw.items()]
        return cls(platforms, target_root, _parse_patterns(payload.get("manifest_patterns")))

    @classmethod
    def load(cls, target_root: Path, path: Path | None = None) -> PlatformCatalog:
        catalog_path = path or DEFAULT_CATALOG_PATH
        try:
            payload = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise CatalogError(f"cannot read catalog {catalog_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise CatalogError(f"invalid YAML in catalog {catalog_path}: {exc}") from exc
        return cls.from_dict(payload, target_root)

    def platforms(self) -> list[PlatformSpec]:
        return list(self._platforms.values())

    def platform(self, platform_id: str) -> PlatformSpec:
        spec = self._platforms.get(platform_id)
        if spec is None:
            known = ", ".join(sorted(self._platforms))
            raise CatalogError(f"unknown platform {platform_id!r} (known: {known})")
        return spec

    def components(self, platform_id: str) -> list[str]:
        return [c.id for c in self.platform(platform_id).components]

    def list_files(self, platform: str, components: Sequence[str] | None = None) -> list[TargetFile]:
        spec = self.platform(platform)
        if components is not None:
            unknown = sorted(set(components) - {c.id for c in spec.components})
            if unknown:
                raise CatalogError(f"unknown component(s) for {platform!r}: {', '.join(unknown)}")
            wanted = set(components)
        else:
            wanted = {c.id for c in spec.components}

        files: list[TargetFile] = []
        for component in spec.components:
            if component.id not in wanted:
                continue
            for entry in component.files:
                files.append(
                    TargetFile(
                        source=entry.source,
                        target=self.target_root.joinpath(*PurePosixPath(entry.target).parts),
                        component=component.id,
                    )
                )
        return files
