from __future__ import annotations

import json
from pathlib import Path

import pytest

from promptsync.infrastructure.manifest_builder import build_manifest, expand_pattern, extract_description
from promptsync.infrastructure.platform_catalog import ManifestPattern

from .util import read_json, run_build_manifest, sha256_bytes


def _tree(root: Path) -> Path:
    (root / "cursor" / "commands").mkdir(parents=True)
    (root / "cursor" / "commands" / "status.md").write_bytes(b"# Status\n\nShows the current state of the project in detail.\n")
    (root / "cursor" / "commands" / "notes.txt").write_bytes(b"ignored\n")
    (root / "cursor" / "cc.mdc").write_bytes(b"---\ndescription: \"Agent rules\"\n---\n")
    return root


@pytest.mark.build
def test_expand_pattern_matches_suffix_in_one_directory(tmp_path: Path):
    root = _tree(tmp_path)
    assert expand_pattern(root, "cursor/commands/*.md") == ["cursor/commands/status.md"]
    assert expand_pattern(root, "cursor/cc.mdc") == ["cursor/cc.mdc"]
    assert expand_pattern(root, "cursor/missing.md") == []
    assert expand_pattern(root, "windsurf/rules/*.md") == []


@pytest.mark.build
@pytest.mark.parametrize(
    "text, expected",
    [
        ("---\ndescription: 'Plan things'\n---\n", "Plan things"),
        ("# Title\n\nDescription: Explains code paths\n", "Explains code paths"),
        ("# Title\n\nA sufficiently long first paragraph line.\n", "A sufficiently long first paragraph line."),
        ("# Title\nshort\n", None),
        ("# T\n" + "x" * 150 + "\n", "x" * 100 + "..."),
    ],
)
def test_extract_description(text: str, expected):
    assert extract_description(text) == expected


@pytest.mark.build
def test_build_manifest_hashes_exact_bytes(tmp_path: Path):
    root = _tree(tmp_path)
    manifest = build_manifest(
        root,
        [
            ManifestPattern("cursor/cc.mdc", "rules", "Cursor rules"),
            ManifestPattern("cursor/commands/*.md", "commands"),
        ],
        version="1.2.3",
        commit="abc",
        timestamp="2026-01-01T00:00:00+00:00",
    )
    assert sorted(manifest.files) == ["cursor/cc.mdc", "cursor/commands/status.md"]
    rec = manifest.get("cursor/cc.mdc")
    assert rec.hash == "sha256:" + sha256_bytes((root / "cursor" / "cc.mdc").read_bytes())
    assert rec.description == "Agent rules"
    assert rec.component == "rules"
    assert manifest.get("cursor/commands/status.md").description.startswith("Shows the current state")


@pytest.mark.build
def test_build_manifest_script_writes_manifest(tmp_path: Path):
    root = _tree(tmp_path / "src")
    result = run_build_manifest(["--source-root", str(root), "--version", "1.2.3", "--commit", "deadbeefcafe"])

    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload["status"] == "OK"
    assert payload["files"] == 2
    manifest = read_json(root / "manifest.json")
    assert manifest["version"] == "1.2.3"
    assert manifest["commit"] == "deadbeefcafe"
    assert manifest["files"]["cursor/commands/status.md"]["component"] == "commands"


@pytest.mark.build
def test_build_manifest_script_rejects_bad_version(tmp_path: Path):
    root = _tree(tmp_path / "src")
    result = run_build_manifest(["--source-root", str(root), "--version", "latest"])
    assert result.returncode == 2
    assert json.loads(result.stdout)["status"] == "BLOCKED"
    assert not (root / "manifest.json").exists()
