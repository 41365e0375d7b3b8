from __future__ import annotations

import errno
import os
from pathlib import Path

import pytest

from promptsync.infrastructure import fs_atomic


@pytest.mark.engine
def test_atomic_write_bytes_keeps_exact_bytes_and_no_temp_files(tmp_path: Path):
    target = tmp_path / "nested" / "out.md"
    fs_atomic.atomic_write_bytes(target, b"a\r\nb\n")
    fs_atomic.atomic_write_bytes(target, b"c\r\n")
    assert target.read_bytes() == b"c\r\n"
    assert [p.name for p in target.parent.iterdir()] == ["out.md"]


@pytest.mark.engine
def test_bounded_retry_retries_retryable_replace():
    calls = {"n": 0}

    def flaky() -> str:
        calls["n"] += 1
        if calls["n"] == 1:
            raise OSError(errno.EACCES, "locked")
        return "ok"

    assert fs_atomic.bounded_retry(flaky, attempts=3, backoff_ms=1) == "ok"
    assert calls["n"] == 2


@pytest.mark.engine
def test_bounded_retry_does_not_retry_other_errors():
    calls = {"n": 0}

    def missing() -> None:
        calls["n"] += 1
        raise OSError(errno.ENOENT, "gone")

    with pytest.raises(OSError):
        fs_atomic.bounded_retry(missing, attempts=3, backoff_ms=1)
    assert calls["n"] == 1


@pytest.mark.engine
def test_failed_replace_cleans_up_temp_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def broken_replace(src, dst):
        raise OSError(errno.EXDEV, "cross-device link")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(OSError):
        fs_atomic.atomic_write_bytes(tmp_path / "x.json", b"{}")
    assert list(tmp_path.iterdir()) == []
