"""Build manifest.json (logical path -> sha256/size/component) for a content source tree."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import re
import subprocess
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from promptsync.infrastructure.fs_atomic import atomic_write_json  # noqa: E402
from promptsync.infrastructure.manifest_builder import build_manifest  # noqa: E402
from promptsync.infrastructure.manifest_store import MANIFEST_NAME  # noqa: E402
from promptsync.infrastructure.platform_catalog import CatalogError, PlatformCatalog  # noqa: E402


def git_commit(source_root: Path) -> str:
    try:
        r = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(source_root),
            text=True,
            capture_output=True,
            check=False,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return "unknown"
    commit = r.stdout.strip()
    return commit if r.returncode == 0 and commit else "unknown"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build the content manifest for a source tree.")
    parser.add_argument("--source-root", required=True, help="Directory holding the logical content files.")
    parser.add_argument("--version", required=True)
    parser.add_argument("--commit", default="", help="Commit id (default: git rev-parse HEAD, else 'unknown').")
    parser.add_argument("--catalog", default="", help="Catalog YAML with manifest_patterns (default: bundled).")
    parser.add_argument("--output", default="", help="Output path (default: <source-root>/manifest.json).")
    args = parser.parse_args(argv)

    if not re.fullmatch(r"\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?", args.version):
        print(json.dumps({"status": "BLOCKED", "message": "version must be semver"}, ensure_ascii=True))
        return 2

    source_root = Path(args.source_root).resolve()
    if not source_root.is_dir():
        print(json.dumps({"status": "BLOCKED", "message": f"source root not found: {source_root}"}, ensure_ascii=True))
        return 2

    try:
        catalog = PlatformCatalog.load(source_root, Path(args.catalog) if args.catalog else None)
    except CatalogError as exc:
        print(json.dumps({"status": "BLOCKED", "message": str(exc)}, ensure_ascii=True))
        return 2

    manifest = build_manifest(
        source_root,
        catalog.manifest_patterns,
        version=args.version,
        commit=args.commit or git_commit(source_root),
    )
    output = Path(args.output) if args.output else source_root / MANIFEST_NAME
    atomic_write_json(output, manifest.to_dict())
    print(
        json.dumps(
            {
                "status": "OK",
                "manifest": str(output),
                "files": len(manifest.files),
                "commit": manifest.commit[:8],
            },
            ensure_ascii=True,
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
