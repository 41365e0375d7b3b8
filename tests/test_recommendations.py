from __future__ import annotations

import pytest

from promptsync.application.use_cases.recommend_updates import (
    COMPONENT_ADVICE,
    FALLBACK_CONNECTIVITY_HINT,
    FALLBACK_DISCLAIMER,
    FALLBACK_FULL_REINSTALL,
    UP_TO_DATE,
    recommend_updates,
)
from promptsync.domain.records import ChangeRecord


def _rec(component: str, file: str = "x.md", kind: str = "changed", locally_modified: bool = False) -> ChangeRecord:
    return ChangeRecord(kind=kind, file=file, component=component, reason="r", locally_modified=locally_modified)  # type: ignore[arg-type]


@pytest.mark.engine
def test_nothing_changed_is_up_to_date():
    assert recommend_updates([], [], is_fallback=False) == [UP_TO_DATE]


@pytest.mark.engine
def test_components_listed_in_first_seen_order_with_advice():
    lines = recommend_updates([_rec("docs"), _rec("commands")], [_rec("commands", kind="new")], is_fallback=False)
    assert lines[0] == "📦 Recommended updates: docs, commands"
    assert lines[1:] == [COMPONENT_ADVICE["commands"], COMPONENT_ADVICE["docs"]]


@pytest.mark.engine
def test_component_without_advice_only_appears_in_summary():
    assert recommend_updates([_rec("workflows")], [], is_fallback=False) == ["📦 Recommended updates: workflows"]


@pytest.mark.engine
def test_locally_edited_files_are_called_out():
    lines = recommend_updates([_rec("rules", file="r.mdc", locally_modified=True)], [], is_fallback=False)
    assert lines[-1].endswith(": r.mdc")
    assert COMPONENT_ADVICE["rules"] in lines


@pytest.mark.engine
def test_fallback_without_changes_recommends_full_reinstall():
    assert recommend_updates([], [], is_fallback=True) == [
        FALLBACK_DISCLAIMER,
        FALLBACK_CONNECTIVITY_HINT,
        FALLBACK_FULL_REINSTALL,
    ]


@pytest.mark.engine
def test_fallback_with_changes_names_components_only():
    lines = recommend_updates([], [_rec("commands", kind="new")], is_fallback=True)
    assert lines[:2] == [FALLBACK_DISCLAIMER, FALLBACK_CONNECTIVITY_HINT]
    assert lines[2] == "📦 Local changes detected in: commands"
    assert len(lines) == 3
