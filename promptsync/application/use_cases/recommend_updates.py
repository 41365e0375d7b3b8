"""Turn change records into short, component-grouped advice lines."""

from __future__ import annotations

from typing import Iterable

from promptsync.domain.records import ChangeRecord, affected_components

FALLBACK_DISCLAIMER = "⚠️  Operating in offline/fallback mode - limited change detection"
FALLBACK_CONNECTIVITY_HINT = "📶 Remote manifest unavailable - check connectivity for a full update analysis"
FALLBACK_FULL_REINSTALL = "📦 No local file changes detected - full reinstall recommended for latest updates"
UP_TO_DATE = "✅ All files are up to date!"
FULL_REINSTALL_ADVICE = "Unable to detect changes - full reinstall recommended"

COMPONENT_ADVICE = {
    "commands": "🚀 Commands updated - new features or bug fixes available",
    "rules": "⚙️ Rules updated - improved AI agent behavior",
    "docs": "📚 Documentation updated - check for new best practices",
}


def recommend_updates(
    changes: Iterable[ChangeRecord],
    new_files: Iterable[ChangeRecord],
    is_fallback: bool,
) -> list[str]:
    changes = list(changes)
    new_files = list(new_files)
    components = affected_components([*changes, *new_files])
    edited = [c.file for c in changes if c.locally_modified]

    if is_fallback:
        lines = [FALLBACK_DISCLAIMER, FALLBACK_CONNECTIVITY_HINT]
        if not components:
            lines.append(FALLBACK_FULL_REINSTALL)
        else:
            lines.append(f"📦 Local changes detected in: {', '.join(components)}")
        return lines

    if not components:
        return [UP_TO_DATE]

    lines = [f"📦 Recommended updates: {', '.join(components)}"]
    for component_id, advice in COMPONENT_ADVICE.items():
        if component_id in components:
            lines.append(advice)
    if edited:
        lines.append(f"✏️  Locally edited since last install (an update overwrites them): {', '.join(edited)}")
    return lines
