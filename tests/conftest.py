"""Pytest configuration for prompt-sync tests."""
from __future__ import annotations

from pathlib import Path

import pytest

from promptsync.infrastructure.platform_catalog import PlatformCatalog
from promptsync.infrastructure.settings import ENV_BACKUP_MODE, ENV_BASE_URL, ENV_LOCAL_SOURCE

from .util import write_catalog, write_mirror

DEMO_FILES = {
    "demo/commands/status.md": (b"# Status\nShow project status.\n", "commands"),
    "demo/commands/plan.md": (b"# Plan\nPlan the next step.\n", "commands"),
    "demo/rules/agent.mdc": (b"---\ndescription: agent rules\n---\nBe terse.\n", "rules"),
}

DEMO_COMPONENTS = {
    "commands": [
        ("demo/commands/status.md", ".assistant/commands/status.md"),
        ("demo/commands/plan.md", ".assistant/commands/plan.md"),
    ],
    "rules": [("demo/rules/agent.mdc", ".rules/agent.mdc")],
}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Source selection must come from each test, never from the developer shell."""
    for key in (ENV_LOCAL_SOURCE, ENV_BASE_URL, ENV_BACKUP_MODE):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture()
def mirror(tmp_path: Path) -> Path:
    return write_mirror(tmp_path / "mirror", DEMO_FILES)


@pytest.fixture()
def target_root(tmp_path: Path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture()
def catalog_path(tmp_path: Path) -> Path:
    return write_catalog(tmp_path / "catalog.yaml", DEMO_COMPONENTS)


@pytest.fixture()
def catalog(catalog_path: Path, target_root: Path) -> PlatformCatalog:
    return PlatformCatalog.load(target_root, catalog_path)
