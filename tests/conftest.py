"""Shared test fixtures for Provenant."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from provenant.bridge.credentials import Ed25519CredentialProvider
from provenant.bridge.publishers import (
    LocalStorePublisher,
    PublishPermanentError,
    PublishTransientError,
)
from provenant.core.artifact_store import ArtifactStore
from provenant.core.orchestrator import AnchoringOrchestrator
from provenant.core.registry import ProvenanceRegistry
from provenant.models.config import RetryPolicy

# Fixed registry clock: 2024-01-01T00:00:00Z
FIXED_NOW = 1_704_067_200


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def clock() -> Callable[[], int]:
    """Provide a deterministic registry clock."""
    return lambda: FIXED_NOW


@pytest.fixture
def registry(tmp_dir: Path, clock: Callable[[], int]) -> ProvenanceRegistry:
    """Provide a fresh ProvenanceRegistry backed by a temp SQLite database."""
    return ProvenanceRegistry(tmp_dir / "registry.db", clock=clock)


@pytest.fixture
def artifact_store(tmp_dir: Path) -> ArtifactStore:
    """Provide a fresh ArtifactStore in a temp directory."""
    return ArtifactStore(tmp_dir / "artifacts")


@pytest.fixture
def local_publisher(artifact_store: ArtifactStore) -> LocalStorePublisher:
    return LocalStorePublisher(artifact_store)


@pytest.fixture
def credential() -> Ed25519CredentialProvider:
    """Provide an endorsing credential with a fresh key."""
    return Ed25519CredentialProvider.generate()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Three retries, no waiting."""
    return RetryPolicy(max_retries=3, retry_delay=0.0, timeout=1.0)


@pytest.fixture
def orchestrator(
    registry: ProvenanceRegistry, local_publisher: LocalStorePublisher
) -> AnchoringOrchestrator:
    return AnchoringOrchestrator(registry, local_publisher)


# ---------------------------------------------------------------------------
# Scripted collaborators
# ---------------------------------------------------------------------------


class ScriptedPublisher:
    """Publisher that plays back a script of outcomes, one per call.

    Each script item is either a locator string (returned) or an exception
    instance (raised).  The last item repeats once the script runs out.
    """

    def __init__(self, *script: str | Exception) -> None:
        self.script = list(script) or ["sha256:" + "ab" * 32]
        self.calls: list[bytes] = []

    def publish(self, data: bytes, *, timeout: float) -> str:
        self.calls.append(data)
        item = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


class FixedCredential:
    """CredentialProvider with a fixed identity and signature."""

    def __init__(self, identity: str = "ab" * 32, signature: bytes = b"\x01" * 64) -> None:
        self._identity = identity
        self._signature = signature
        self.messages: list[bytes] = []

    def identity(self) -> str:
        return self._identity

    def sign(self, message: bytes) -> bytes:
        self.messages.append(message)
        return self._signature


@pytest.fixture
def make_publisher() -> Callable[..., ScriptedPublisher]:
    """Factory fixture: build a ScriptedPublisher from outcomes."""
    return ScriptedPublisher


@pytest.fixture
def always_transient() -> ScriptedPublisher:
    return ScriptedPublisher(PublishTransientError("gateway timeout"))


@pytest.fixture
def always_permanent() -> ScriptedPublisher:
    return ScriptedPublisher(PublishPermanentError("payload rejected"))


@pytest.fixture
def fixed_credential() -> FixedCredential:
    return FixedCredential()
