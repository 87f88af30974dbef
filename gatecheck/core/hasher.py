"""Canonical hashing helpers for instance keys and bundle digests."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: sorted keys, compact, ASCII, UTF-8."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path, chunk_size: int = 65536) -> str:
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def compute_instance_key(host_url: str, container_id: str | None = None) -> str:
    """Stable key identifying one host instance in the component-id store.

    Derived from the host URL (lower-cased, no trailing slash) and the
    container id when known. Returns the first 16 hex chars.
    """
    payload = {
        "hostUrl": host_url.strip().rstrip("/").lower(),
        "containerId": container_id or "",
    }
    return sha256_hex(canonical_json_bytes(payload))[:16]
