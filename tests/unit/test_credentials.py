"""Tests for the Ed25519 CredentialProvider."""

from __future__ import annotations

import pytest
from pydantic import SecretStr

from provenant.bridge.credentials import (
    CredentialProvider,
    CredentialUnavailableError,
    Ed25519CredentialProvider,
    SigningRejectedError,
)
from provenant.bridge.crypto_bridge import generate_keypair, verify_data
from provenant.config import ProvenantConfig


class TestEd25519CredentialProvider:
    def test_satisfies_protocol(self, credential):
        assert isinstance(credential, CredentialProvider)

    def test_identity_is_public_key(self):
        priv, pub = generate_keypair()
        assert Ed25519CredentialProvider(priv).identity() == pub

    def test_accepts_0x_prefixed_seed(self):
        priv, pub = generate_keypair()
        assert Ed25519CredentialProvider("0x" + priv).identity() == pub

    def test_signature_verifies_under_identity(self, credential):
        sig = credential.sign(b"Signing document with hash: 0xabc")
        assert verify_data(b"Signing document with hash: 0xabc", sig, credential.identity())

    def test_empty_key_is_unavailable(self):
        provider = Ed25519CredentialProvider("")
        with pytest.raises(CredentialUnavailableError):
            provider.identity()
        with pytest.raises(CredentialUnavailableError):
            provider.sign(b"m")

    def test_invalid_key_is_unavailable(self):
        with pytest.raises(CredentialUnavailableError):
            Ed25519CredentialProvider("not a key")

    def test_refuses_empty_message(self, credential):
        with pytest.raises(SigningRejectedError):
            credential.sign(b"")

    def test_from_config(self):
        priv, pub = generate_keypair()
        cfg = ProvenantConfig(signing_key=SecretStr(priv))
        assert Ed25519CredentialProvider.from_config(cfg).identity() == pub

    def test_repr_hides_the_seed(self, credential):
        assert credential.private_key not in repr(credential)
        assert "unconfigured" in repr(Ed25519CredentialProvider(""))
