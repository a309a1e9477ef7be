"""Crypto bridge — Ed25519 signing and verification via PyNaCl (libsodium).

Keys and signatures cross this boundary as hex strings or raw bytes; the
rest of the code base never imports ``nacl`` directly.
"""

from __future__ import annotations

import hashlib
import logging

import nacl.signing
from nacl.exceptions import BadSignatureError

logger = logging.getLogger(__name__)

SEED_HEX_LENGTH = 64  # 32-byte Ed25519 seed
SIGNATURE_BYTES = 64


def generate_keypair() -> tuple[str, str]:
    """Generate a signing key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)`` — the private key is the
        32-byte seed, the public key is the identity.
    """
    sk = nacl.signing.SigningKey.generate()
    return (sk.encode().hex(), sk.verify_key.encode().hex())


def derive_identity(private_key: str) -> str:
    """Return the hex public key (identity) for a hex seed.

    Raises ``ValueError`` on malformed seeds.
    """
    seed = bytes.fromhex(private_key)
    if len(seed) != 32:
        raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
    return nacl.signing.SigningKey(seed).verify_key.encode().hex()


def sign_data(data: bytes, private_key: str) -> bytes:
    """Sign *data* with the hex seed *private_key*; return the raw signature.

    Ed25519 signatures are deterministic: the same data and key always
    produce the same 64 bytes.
    """
    sk = nacl.signing.SigningKey(bytes.fromhex(private_key))
    return sk.sign(data).signature


def verify_data(data: bytes, signature: bytes, public_key: str) -> bool:
    """Verify that *signature* is valid for *data* under *public_key*.

    Fail-closed: returns ``False`` if the signature is empty or malformed,
    the key is not valid hex, or verification fails.
    """
    if not signature:
        return False
    try:
        vk = nacl.signing.VerifyKey(bytes.fromhex(public_key.removeprefix("0x")))
        vk.verify(data, bytes(signature))
        return True
    except BadSignatureError:
        return False
    except (ValueError, TypeError) as exc:
        # nacl raises ValueError/TypeError for wrong key or signature sizes
        logger.debug("verify_data: malformed input rejected: %s", exc)
        return False


def key_fingerprint(public_key: str) -> str:
    """Compute a short fingerprint of a public key.

    Returns the first 16 hex characters of SHA-256(public_key).  Used in
    log lines so identities can be correlated without printing full keys.
    """
    if not public_key:
        return ""
    return hashlib.sha256(public_key.encode("utf-8")).hexdigest()[:16]
