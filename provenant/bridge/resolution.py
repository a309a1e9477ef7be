"""Name resolution — human-readable labels to endorser identities.

Only the Verifier's optional indirection uses this.  The registration
protocol behind labels is external; ``StaticNameResolver`` reads a plain
label directory so the indirection can be exercised without a network.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from provenant.models.records import normalize_identity

logger = logging.getLogger(__name__)

_IDENTITY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


class ResolutionError(LookupError):
    """A label could not be resolved to an identity."""


def looks_like_identity(value: str) -> bool:
    """Whether *value* is already a hex identity rather than a label."""
    return bool(_IDENTITY_RE.match(value.strip()))


@runtime_checkable
class NameResolver(Protocol):
    """Protocol for label resolution.

    ``resolve`` returns the identity, or ``None`` if the label is unknown.
    """

    def resolve(self, label: str) -> str | None:
        ...


class StaticNameResolver:
    """Resolves labels from an in-memory directory.

    Labels are matched case-insensitively.  Inputs that already look like
    identities are returned unchanged (normalized), without a lookup.
    """

    def __init__(self, directory: Mapping[str, str] | None = None) -> None:
        self._directory = {
            label.strip().lower(): normalize_identity(identity)
            for label, identity in (directory or {}).items()
        }

    @classmethod
    def from_file(cls, path: Path) -> StaticNameResolver:
        """Load a ``{"label": "identity"}`` JSON object from *path*."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ResolutionError(f"Cannot load label directory {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ResolutionError(f"Label directory {path} must be a JSON object")
        return cls({str(k): str(v) for k, v in data.items()})

    def resolve(self, label: str) -> str | None:
        if not label or not label.strip():
            return None
        if looks_like_identity(label):
            return normalize_identity(label)
        return self._directory.get(label.strip().lower())


class CachingResolver:
    """Memoizes another resolver, including misses."""

    def __init__(self, inner: NameResolver) -> None:
        self._inner = inner
        self._cache: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def resolve(self, label: str) -> str | None:
        key = label.strip().lower()
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        identity = self._inner.resolve(label)
        with self._lock:
            self._cache[key] = identity
        if identity is None:
            logger.debug("Label %r did not resolve", label)
        return identity

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
