"""Local content-addressed artifact store.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat

The store is the retrievability backend behind ``LocalStorePublisher``.
Content-addressed storage has no meaningful delete, so none is offered.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from provenant.core.hasher import sha256_hex

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "sha256:"


class ArtifactIntegrityError(RuntimeError):
    """Raised when stored bytes no longer hash to their address."""


class ArtifactStore:
    """SHA-256 keyed, write-once artifact store.

    Storing the same bytes twice is a no-op and returns the same locator.

    Parameters
    ----------
    base_path:
        Root directory for artifact storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _digest_of(locator: str) -> str:
        return locator.removeprefix(LOCATOR_PREFIX).lower()

    def _path_for(self, digest: str) -> Path:
        return self._base / digest[:2] / digest[2:4] / f"{digest}.dat"

    def store(self, data: bytes) -> str:
        """Persist *data* and return its ``sha256:<hex>`` locator."""
        digest = sha256_hex(data)
        path = self._path_for(digest)

        if path.exists():
            if not self.verify(digest):
                raise ArtifactIntegrityError(
                    f"Existing artifact at {digest} failed integrity check"
                )
            return f"{LOCATOR_PREFIX}{digest}"

        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file then rename, so readers never see a
        # partially written artifact.
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Stored %d bytes at %s", len(data), digest)
        return f"{LOCATOR_PREFIX}{digest}"

    def retrieve(self, locator: str) -> bytes:
        """Return the bytes stored under *locator* (with or without prefix)."""
        path = self._path_for(self._digest_of(locator))
        if not path.exists():
            raise FileNotFoundError(f"Artifact not found: {locator}")
        return path.read_bytes()

    def exists(self, locator: str) -> bool:
        return self._path_for(self._digest_of(locator)).exists()

    def verify(self, locator: str) -> bool:
        """Re-hash stored bytes and compare against the locator."""
        digest = self._digest_of(locator)
        path = self._path_for(digest)
        if not path.exists():
            return False
        return sha256_hex(path.read_bytes()) == digest
