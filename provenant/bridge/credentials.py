"""Credential providers — the endorsing identity and its signing capability.

Defines the ``CredentialProvider`` Protocol the orchestrator depends on and
an Ed25519 implementation backed by the crypto bridge.  Deriving keys from
wallets or hardware is out of scope; any object with ``identity()`` and
``sign()`` satisfies the protocol.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from provenant.bridge.crypto_bridge import (
    derive_identity,
    generate_keypair,
    key_fingerprint,
    sign_data,
)

if TYPE_CHECKING:
    from provenant.config import ProvenantConfig

logger = logging.getLogger(__name__)


class CredentialError(RuntimeError):
    """Base class for credential provider failures."""


class CredentialUnavailableError(CredentialError):
    """No credential is configured, or it cannot be loaded."""


class SigningRejectedError(CredentialError):
    """The provider declined to sign the message."""


@runtime_checkable
class CredentialProvider(Protocol):
    """Protocol for endorsing identities.

    Implementations must raise only ``CredentialUnavailableError`` or
    ``SigningRejectedError``.  Signing calls carry no built-in timeout;
    providers that block on external devices must bound themselves.
    """

    def identity(self) -> str:
        """Return the public identity (hex) that endorsements are bound to."""
        ...

    def sign(self, message: bytes) -> bytes:
        """Return an endorsement over *message*."""
        ...


class Ed25519CredentialProvider:
    """Signs with a locally held Ed25519 seed.

    Parameters
    ----------
    private_key:
        Hex-encoded 32-byte seed.  An empty value yields a provider whose
        every call raises ``CredentialUnavailableError``.
    """

    def __init__(self, private_key: str) -> None:
        self._private_key = private_key.strip().removeprefix("0x")
        self._identity = ""
        if self._private_key:
            try:
                self._identity = derive_identity(self._private_key)
            except ValueError as exc:
                raise CredentialUnavailableError(
                    "Configured signing key is not a valid Ed25519 seed"
                ) from exc

    @classmethod
    def generate(cls) -> Ed25519CredentialProvider:
        """Create a provider with a fresh random key."""
        private_key, _public_key = generate_keypair()
        return cls(private_key)

    @classmethod
    def from_config(cls, config: ProvenantConfig) -> Ed25519CredentialProvider:
        """Build a provider from ``PROVENANT_SIGNING_KEY``."""
        return cls(config.signing_key.get_secret_value())

    @property
    def private_key(self) -> str:
        """The hex seed; callers printing this are responsible for secrecy."""
        self._require()
        return self._private_key

    def _require(self) -> None:
        if not self._private_key:
            raise CredentialUnavailableError(
                "No signing key configured. Set PROVENANT_SIGNING_KEY."
            )

    def identity(self) -> str:
        self._require()
        return self._identity

    def sign(self, message: bytes) -> bytes:
        self._require()
        if not message:
            raise SigningRejectedError("Refusing to sign an empty message")
        signature = sign_data(message, self._private_key)
        logger.debug(
            "Signed %d-byte message as %s", len(message), key_fingerprint(self._identity)
        )
        return signature

    def __repr__(self) -> str:
        fp = key_fingerprint(self._identity) if self._identity else "unconfigured"
        return f"Ed25519CredentialProvider({fp})"
