from __future__ import annotations

from pathlib import Path


class ContentFetchError(RuntimeError):
    """Raised by a content source when a logical path cannot be retrieved."""

    def __init__(self, logical_path: str, message: str):
        self.logical_path = logical_path
        super().__init__(f"Failed to fetch {logical_path}: {message}")


class InstallError(RuntimeError):
    """Install run aborted part-way; nothing was recorded as installed.

    `written` lists the targets that were already overwritten before the
    failure, `failed` the logical path that could not be fetched or written.
    """

    def __init__(self, message: str, *, written: list[Path], failed: str):
        self.written = list(written)
        self.failed = failed
        super().__init__(message)
