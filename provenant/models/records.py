"""Provenance record models (append-only, immutable once committed).

A ProvenanceRecord is created exactly once by a successful commit and is
never mutated or deleted afterwards. Ordering lives in the registry's
insertion index, not on the record itself.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

# Endorsement length bounds enforced by the registry at commit time.
MIN_ENDORSEMENT_BYTES = 1
MAX_ENDORSEMENT_BYTES = 2048

# The null identity can never endorse a record.
NULL_IDENTITY = "0" * 64

FINGERPRINT_BYTES = 32

_FINGERPRINT_RE = re.compile(r"^0x[0-9a-f]{64}$")


def normalize_fingerprint(value: str | bytes) -> str:
    """Return *value* as a lowercase ``0x``-prefixed fingerprint string.

    Accepts a raw 32-byte digest, or hex text with or without the ``0x``
    prefix in any case.  Raises ``ValueError`` for anything else.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != FINGERPRINT_BYTES:
            raise ValueError(
                f"Raw fingerprint must be {FINGERPRINT_BYTES} bytes, got {len(value)}"
            )
        return f"0x{bytes(value).hex()}"
    if not isinstance(value, str):
        raise ValueError(f"Fingerprint must be str or bytes, got {type(value).__name__}")
    text = value.strip().lower()
    if not text.startswith("0x"):
        text = f"0x{text}"
    if not _FINGERPRINT_RE.match(text):
        raise ValueError(f"Not a 32-byte hex fingerprint: {value!r}")
    return text


def is_valid_fingerprint(value: str) -> bool:
    """Return ``True`` if *value* is already in canonical fingerprint form."""
    return isinstance(value, str) and bool(_FINGERPRINT_RE.match(value))


def format_fingerprint(value: str, length: int = 8) -> str:
    """Shorten a fingerprint for display: ``0x1234ab...89cdef01``."""
    if not value:
        return ""
    return f"{value[:length]}...{value[-length:]}"


def normalize_identity(value: str | bytes | None) -> str:
    """Lowercase an identity and strip an optional ``0x`` prefix.

    Raw public-key bytes are hex-encoded.  Raises ``ValueError`` for any
    other non-string value.
    """
    if not value:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError(f"Identity must be str or bytes, got {type(value).__name__}")
    text = value.strip().lower()
    return text.removeprefix("0x")


def is_null_identity(value: str | bytes | None) -> bool:
    """Whether *value* is the null identity (empty or all zeroes)."""
    normalized = normalize_identity(value)
    return not normalized or set(normalized) == {"0"}


class ProvenanceRecord(BaseModel):
    """The immutable tuple committed per fingerprint.

    ``exists`` is derived from the endorser identity rather than stored,
    so the two can never disagree.
    """

    model_config = ConfigDict(
        frozen=True,
        ser_json_bytes="hex",
        val_json_bytes="hex",
    )

    fingerprint: str  # "0x<sha256 hex>"
    timestamp: int  # unix seconds, registry clock
    endorser_identity: str  # hex Ed25519 public key
    endorsement: bytes
    storage_locator: str = ""  # "" means not published

    @property
    def exists(self) -> bool:
        return not is_null_identity(self.endorser_identity)

    @property
    def has_locator(self) -> bool:
        return bool(self.storage_locator)
