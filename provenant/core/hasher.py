"""Fingerprint engine and canonical hashing helpers.

Fingerprints are plain SHA-256 digests of the artifact bytes, rendered as
``0x``-prefixed lowercase hex.  There is no per-run salt: identical bytes
produce the identical fingerprint on every machine, forever.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1024 * 1024


class ArtifactTooLargeError(ValueError):
    """Raised when an artifact exceeds the configured byte ceiling."""

    def __init__(self, size: int, max_bytes: int) -> None:
        super().__init__(
            f"Artifact is {size} bytes, exceeds the {max_bytes}-byte limit"
        )
        self.size = size
        self.max_bytes = max_bytes


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def _check_size(size: int, max_bytes: int | None) -> None:
    if max_bytes is not None and size > max_bytes:
        raise ArtifactTooLargeError(size, max_bytes)


def fingerprint(data: bytes, *, max_bytes: int | None = None) -> str:
    """Compute the canonical fingerprint of *data*.

    The size ceiling is checked before any hashing happens.
    """
    _check_size(len(data), max_bytes)
    return f"0x{sha256_hex(data)}"


def fingerprint_file(
    path: Path,
    *,
    max_bytes: int | None = None,
    chunk_size: int = _CHUNK_SIZE,
) -> str:
    """Fingerprint a file by streaming it in chunks.

    Yields the same value as ``fingerprint(path.read_bytes())``.
    """
    path = Path(path)
    _check_size(path.stat().st_size, max_bytes)
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            digest.update(chunk)
    return f"0x{digest.hexdigest()}"


def content_address(data: bytes) -> str:
    """Content-address raw bytes in ``sha256:<hex>`` form (artifact store keys)."""
    return f"sha256:{sha256_hex(data)}"
