from __future__ import annotations

from contextlib import contextmanager
import hashlib
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import Iterator

import yaml

REPO_ROOT = Path(__file__).resolve().parents[1]

_ENV_KEYS = ("PROMPTSYNC_LOCAL_SOURCE", "PROMPTSYNC_BASE_URL", "PROMPTSYNC_BACKUP_MODE")


def run(cmd: list[str], *, env: dict[str, str] | None = None, cwd: Path | None = None) -> subprocess.CompletedProcess:
    e = os.environ.copy()
    for key in _ENV_KEYS:
        e.pop(key, None)
    if env:
        e.update(env)
    return subprocess.run(
        cmd,
        cwd=str(cwd or REPO_ROOT),
        env=e,
        text=True,
        encoding="utf-8",
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=False,
    )


def run_install(args: list[str], *, env: dict[str, str] | None = None) -> subprocess.CompletedProcess:
    # Always use the current interpreter (matrix python-version).
    return run([sys.executable, "-X", "utf8", "install.py", *args], env=env)


def run_build_manifest(args: list[str]) -> subprocess.CompletedProcess:
    return run([sys.executable, "-X", "utf8", "scripts/build_manifest.py", *args])


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def write_catalog(path: Path, components: dict[str, list[tuple[str, str]]], *, platform: str = "demo") -> Path:
    """Single-platform catalog: component -> [(source, target), ...]."""

    payload = {
        "schema": "prompt-sync.catalog.v1",
        "platforms": {
            platform: {
                "label": platform.title(),
                "components": {
                    cid: {"files": [{"source": s, "target": t} for s, t in files]}
                    for cid, files in components.items()
                },
            }
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def manifest_payload(files: dict[str, tuple[bytes, str]], *, version: str = "1.0.0") -> dict:
    return {
        "version": version,
        "timestamp": "2026-01-01T00:00:00+00:00",
        "commit": "0123456789abcdef",
        "files": {
            logical: {
                "hash": "sha256:" + sha256_bytes(data),
                "size": len(data),
                "lastModified": "2026-01-01T00:00:00+00:00",
                "version": version,
                "component": component,
            }
            for logical, (data, component) in files.items()
        },
    }


def write_mirror(
    root: Path,
    files: dict[str, tuple[bytes, str]],
    *,
    version: str = "1.0.0",
    with_manifest: bool = True,
) -> Path:
    """Content mirror: logical path -> (bytes, component), plus manifest.json."""

    for logical, (data, _) in files.items():
        p = root.joinpath(*logical.split("/"))
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    if with_manifest:
        (root / "manifest.json").write_text(
            json.dumps(manifest_payload(files, version=version), indent=2), encoding="utf-8"
        )
    return root


def read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@contextmanager
def http_content_server(routes: dict[str, tuple[bytes, int | None]]) -> Iterator[str]:
    """Serve `routes` (url path -> (body, declared Content-Length)) on localhost.

    A declared length larger than the body simulates a connection dropped
    mid-response. Unknown paths get 404. Yields the base URL.
    """

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            route = routes.get(self.path)
            if route is None:
                self.send_error(404, "Not Found")
                return
            body, declared = route
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Content-Length", str(len(body) if declared is None else declared))
            self.send_header("Connection", "close")
            self.end_headers()
            self.wfile.write(body)
            self.wfile.flush()
            self.close_connection = True

        def log_message(self, format: str, *args) -> None:
            return

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)
