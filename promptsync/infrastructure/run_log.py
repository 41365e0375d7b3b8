"""Per-run event log for warnings and errors raised by the sync engine.

Events are kept in memory for the caller to display. When a log directory is
configured each event is also persisted as its own JSONL file (one file per
event, atomic write, no append) next to a small `events-index.json` summary.
Persisting is best-effort: a failure to write the log never fails the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
import json
from pathlib import Path
import re
from typing import Any
import uuid

from promptsync.infrastructure.fs_atomic import atomic_write_bytes, atomic_write_json

EVENT_SCHEMA = "prompt-sync.event.v1"
INDEX_SCHEMA = "prompt-sync.event-index.v1"
INDEX_FILE_NAME = "events-index.json"
DEFAULT_RETENTION_DAYS = 30

_LOG_NAME = re.compile(r"^events-(\d{4}-\d{2}-\d{2})-[A-Fa-f0-9]{8,64}\.jsonl$")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _normalize_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize_value(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class RunEvent:
    level: str
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": EVENT_SCHEMA,
            "timestamp": self.timestamp,
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "details": _normalize_value(self.details),
        }


class RunLog:
    def __init__(self, log_dir: Path | None = None, *, retention_days: int = DEFAULT_RETENTION_DAYS):
        self._log_dir = log_dir
        self._retention_days = retention_days
        self.events: list[RunEvent] = []
        self.persist_failures = 0

    def warning(self, code: str, message: str, **details: Any) -> None:
        self._record(RunEvent(level="warning", code=code, message=message, details=details))

    def error(self, code: str, message: str, **details: Any) -> None:
        self._record(RunEvent(level="error", code=code, message=message, details=details))

    def messages(self, level: str | None = None) -> list[str]:
        return [e.message for e in self.events if level is None or e.level == level]

    def _record(self, event: RunEvent) -> None:
        self.events.append(event)
        if self._log_dir is None:
            return
        try:
            self._persist(event)
        except OSError:
            self.persist_failures += 1

    def _persist(self, event: RunEvent) -> None:
        assert self._log_dir is not None
        today = datetime.now(timezone.utc).date().isoformat()
        target = self._log_dir / f"events-{today}-{uuid.uuid4().hex}.jsonl"
        record = event.to_dict()
        atomic_write_bytes(target, (json.dumps(record, ensure_ascii=True) + "\n").encode("utf-8"))
        self._update_index(target, record)
        prune_old_logs(self._log_dir, self._retention_days)

    def _update_index(self, log_file: Path, record: dict[str, Any]) -> None:
        assert self._log_dir is not None
        index_path = self._log_dir / INDEX_FILE_NAME
        idx = load_index(index_path)
        by_code = idx["byCode"]
        by_code[record["code"]] = int(by_code.get(record["code"], 0)) + 1
        idx["totalEvents"] = int(idx["totalEvents"]) + 1
        idx["updatedAt"] = _utc_now()
        idx["latestLogFile"] = log_file.name
        idx["lastEvent"] = {k: record[k] for k in ("timestamp", "level", "code", "message")}
        atomic_write_json(index_path, idx)


def load_index(index_path: Path) -> dict[str, Any]:
    try:
        existing = json.loads(index_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        existing = None
    if not isinstance(existing, dict):
        existing = {}
    return {
        "schema": INDEX_SCHEMA,
        "updatedAt": str(existing.get("updatedAt") or _utc_now()),
        "totalEvents": existing["totalEvents"] if isinstance(existing.get("totalEvents"), int) else 0,
        "byCode": existing["byCode"] if isinstance(existing.get("byCode"), dict) else {},
        "lastEvent": existing["lastEvent"] if isinstance(existing.get("lastEvent"), dict) else {},
        "latestLogFile": str(existing.get("latestLogFile") or ""),
    }


def _log_date(name: str) -> date | None:
    m = _LOG_NAME.match(name)
    if not m:
        return None
    try:
        return datetime.strptime(m.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def prune_old_logs(log_dir: Path, keep_days: int) -> int:
    if keep_days <= 0:
        return 0
    cutoff = datetime.now(timezone.utc).date() - timedelta(days=keep_days)
    removed = 0
    for p in log_dir.glob("events-*.jsonl"):
        d = _log_date(p.name)
        if d is None or d >= cutoff:
            continue
        try:
            p.unlink()
            removed += 1
        except OSError:
            continue
    return removed
