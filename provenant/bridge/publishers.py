"""Publishers — push artifact bytes to content-addressed storage.

Defines the ``Publisher`` Protocol the orchestrator depends on, with a
deliberately small error set so that failures can be classified
exhaustively:

- ``PublishTransientError``: worth retrying (network, timeout, 5xx, 429).
- ``PublishPermanentError``: not worth retrying (payload rejected, auth).

Backends:
1. **LocalStorePublisher** — the local ``ArtifactStore`` (``sha256:`` locators).
2. **PinataPublisher** — an IPFS pinning service over HTTP (CID locators).

The storage network's own replication and pinning guarantees are not
this module's concern.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from provenant.core.artifact_store import ArtifactStore

if TYPE_CHECKING:
    from provenant.config import ProvenantConfig

logger = logging.getLogger(__name__)

_CID_RE = re.compile(r"^(Qm[1-9A-HJ-NP-Za-km-z]{44,}|b[A-Za-z2-7]{58,})$")
_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PublishError(RuntimeError):
    """Base class for publisher failures."""


class PublishTransientError(PublishError):
    """A failure that may succeed if retried."""


class PublishPermanentError(PublishError):
    """A failure that will not succeed on retry."""


class RetrievalError(RuntimeError):
    """Raised when published bytes cannot be fetched back."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Publisher(Protocol):
    """Protocol for storage backends.

    ``publish`` must return a non-empty locator or raise one of the two
    ``PublishError`` subclasses.  *timeout* bounds a single attempt.
    """

    def publish(self, data: bytes, *, timeout: float) -> str:
        ...


# ---------------------------------------------------------------------------
# Local content-addressed store
# ---------------------------------------------------------------------------


class LocalStorePublisher:
    """Publishes into a local ``ArtifactStore``.

    Parameters
    ----------
    store:
        The artifact store to write into.
    max_bytes:
        Payloads larger than this are rejected permanently.
    """

    def __init__(self, store: ArtifactStore, *, max_bytes: int | None = None) -> None:
        self._store = store
        self._max_bytes = max_bytes

    @property
    def store(self) -> ArtifactStore:
        return self._store

    def publish(self, data: bytes, *, timeout: float) -> str:
        _check_payload(data, self._max_bytes)
        try:
            return self._store.store(data)
        except OSError as exc:
            raise PublishTransientError(f"Local store write failed: {exc}") from exc

    def fetch(self, locator: str) -> bytes:
        try:
            return self._store.retrieve(locator)
        except FileNotFoundError as exc:
            raise RetrievalError(str(exc)) from exc


# ---------------------------------------------------------------------------
# IPFS pinning service
# ---------------------------------------------------------------------------


class PinataPublisher:
    """Pins artifacts to IPFS through the Pinata HTTP upload API.

    Parameters
    ----------
    jwt:
        Bearer token for the pinning service.  Missing tokens are a
        permanent failure, not a transient one.
    upload_url:
        Upload endpoint (multipart ``file`` field).
    gateway:
        Base URL used to build retrieval links.
    max_bytes:
        Payloads larger than this are rejected before any request is made.
    client:
        Optional pre-built ``httpx.Client`` (tests inject a MockTransport).
    """

    def __init__(
        self,
        jwt: str,
        *,
        upload_url: str = "https://uploads.pinata.cloud/v3/files",
        gateway: str = "https://gateway.pinata.cloud/ipfs",
        max_bytes: int | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._jwt = jwt.strip()
        self._upload_url = upload_url
        self._gateway = gateway.rstrip("/")
        self._max_bytes = max_bytes
        self._client = client or httpx.Client()

    @classmethod
    def from_config(cls, config: ProvenantConfig) -> PinataPublisher:
        return cls(
            config.pinata_jwt.get_secret_value(),
            upload_url=config.pinata_upload_url,
            gateway=config.ipfs_gateway,
            max_bytes=config.max_artifact_bytes,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._jwt)

    def publish(self, data: bytes, *, timeout: float, name: str = "artifact") -> str:
        if not self._jwt:
            raise PublishPermanentError(
                "Pinning service token is not configured. Set PROVENANT_PINATA_JWT."
            )
        _check_payload(data, self._max_bytes)

        try:
            resp = self._client.post(
                self._upload_url,
                headers={"Authorization": f"Bearer {self._jwt}"},
                files={"file": (name, data, "application/octet-stream")},
                data={"network": "public"},
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise PublishTransientError(
                f"Upload timed out after {timeout:g}s"
            ) from exc
        except httpx.RequestError as exc:
            raise PublishTransientError(f"Network error during upload: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise PublishTransientError(
                f"Pinning service unavailable (status {resp.status_code})"
            )
        if resp.status_code in (401, 403):
            raise PublishPermanentError(
                "Pinning service rejected the token. Check PROVENANT_PINATA_JWT."
            )
        if resp.status_code >= 400:
            raise PublishPermanentError(
                f"Pinning service rejected the upload (status {resp.status_code})"
            )

        cid = _extract_cid(resp)
        if not cid:
            raise PublishPermanentError(
                "Upload succeeded but no CID was returned by the pinning service"
            )
        logger.info("Pinned %d bytes as %s", len(data), cid)
        return cid

    def gateway_url(self, cid: str, *, filename: str | None = None) -> str:
        """Return the gateway URL for *cid*, optionally with a download name.

        Raises ``ValueError`` for malformed CIDs.
        """
        cid = (cid or "").strip()
        if not cid:
            raise ValueError("Invalid CID: CID cannot be empty")
        if not _CID_RE.match(cid):
            raise ValueError(f"Invalid CID format: {cid!r}")
        url = f"{self._gateway}/{cid}"
        if filename:
            url = f"{url}?filename={quote(sanitize_filename(filename))}"
        return url

    def download(self, cid: str, *, timeout: float = 30.0) -> bytes:
        """Fetch the bytes behind *cid* through the gateway."""
        try:
            url = self.gateway_url(cid)
        except ValueError as exc:
            raise RetrievalError(str(exc)) from exc
        try:
            resp = self._client.get(url, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise RetrievalError(f"Download timed out after {timeout:g}s") from exc
        except httpx.RequestError as exc:
            raise RetrievalError(f"Network error during download: {exc}") from exc
        if resp.status_code == 404:
            raise RetrievalError(
                f"{cid} not found; it may never have been pinned"
            )
        if resp.status_code >= 400:
            raise RetrievalError(f"Download failed (status {resp.status_code})")
        return resp.content

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_payload(data: bytes, max_bytes: int | None) -> None:
    if not data:
        raise PublishPermanentError("Cannot publish an empty artifact")
    if max_bytes is not None and len(data) > max_bytes:
        raise PublishPermanentError(
            f"Artifact size {len(data)} exceeds the {max_bytes}-byte upload limit"
        )


def _extract_cid(resp: httpx.Response) -> str:
    try:
        body: Any = resp.json()
    except ValueError:
        logger.warning("Non-JSON upload response (status %d)", resp.status_code)
        return ""
    if not isinstance(body, dict):
        return ""
    data = body.get("data")
    if isinstance(data, dict) and data.get("cid"):
        return str(data["cid"])
    # Legacy pinning API shape
    return str(body.get("cid") or body.get("IpfsHash") or "")


def sanitize_filename(filename: str) -> str:
    """Make *filename* safe for use in a URL query string."""
    cleaned = _UNSAFE_FILENAME_RE.sub("_", filename).lstrip(".")
    return cleaned[:255]


def build_publisher(config: ProvenantConfig) -> Publisher | None:
    """Construct the publisher selected by ``PROVENANT_PUBLISHER``.

    Returns ``None`` for ``"none"``, meaning records are committed without
    a storage locator.
    """
    kind = config.publisher.strip().lower()
    if kind == "none":
        return None
    if kind == "local":
        return LocalStorePublisher(
            ArtifactStore(Path(config.artifact_store_path)),
            max_bytes=config.max_artifact_bytes,
        )
    if kind == "pinata":
        return PinataPublisher.from_config(config)
    raise ValueError(f"Unknown publisher {config.publisher!r}; expected none, local or pinata")
