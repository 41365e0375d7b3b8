"""Content digests for synced artifacts.

Digests are always computed over the exact bytes on disk or on the wire, never
over decoded or newline-normalized text.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

HASH_PREFIX = "sha256:"
DISPLAY_PREFIX_LENGTH = 8

# Sentinel for "could not be read"; never equal to a real digest.
HASH_UNAVAILABLE = None


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_file(path: Path) -> str | None:
    """Return the hex digest of `path`, or HASH_UNAVAILABLE when it cannot be read."""

    h = hashlib.sha256()
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(chunk)
    except OSError:
        return HASH_UNAVAILABLE
    return h.hexdigest()


def strip_hash_prefix(value: str) -> str:
    if value.startswith(HASH_PREFIX):
        return value[len(HASH_PREFIX):]
    return value


def format_hash(hex_digest: str) -> str:
    return HASH_PREFIX + strip_hash_prefix(hex_digest)


def display_prefix(value: str) -> str:
    return strip_hash_prefix(value)[:DISPLAY_PREFIX_LENGTH]
