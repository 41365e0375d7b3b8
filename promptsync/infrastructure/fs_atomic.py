from __future__ import annotations

import errno
import json
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, TypeVar

T = TypeVar("T")

# Transient on Windows when an editor or indexer holds the target open.
_RETRYABLE_ERRNOS = {errno.EACCES, errno.EPERM, errno.EBUSY}


def is_retryable_replace_error(exc: OSError) -> bool:
    return getattr(exc, "errno", None) in _RETRYABLE_ERRNOS


def bounded_retry(fn: Callable[[], T], attempts: int = 5, backoff_ms: int = 50) -> T:
    for attempt in range(attempts):
        try:
            return fn()
        except OSError as exc:
            if attempt == attempts - 1 or not is_retryable_replace_error(exc):
                raise
            time.sleep(backoff_ms / 1000.0)
    raise RuntimeError("bounded_retry called with attempts < 1")


def atomic_write_bytes(path: Path, data: bytes, *, attempts: int = 5, backoff_ms: int = 50) -> None:
    """Replace `path` with exactly `data`; readers never observe a partial file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        bounded_retry(lambda: os.replace(str(temp_path), str(path)), attempts=attempts, backoff_ms=backoff_ms)
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)


def json_bytes(doc: Any) -> bytes:
    return (json.dumps(doc, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def atomic_write_json(path: Path, doc: Any) -> None:
    atomic_write_bytes(path, json_bytes(doc))
