"""Verifier — read-only cross-check of artifact bytes against the registry.

The verifier always recomputes the fingerprint itself, so a caller cannot
pair bytes with someone else's fingerprint.  The endorser check compares
the *recorded* endorser identity with the expected one; it does not
re-derive the endorser from the endorsement bytes.  ``check_endorsement``
is available as a separate, stronger check and does not alter
``verify()`` results.
"""

from __future__ import annotations

import logging
from pathlib import Path

from provenant.bridge.crypto_bridge import verify_data
from provenant.bridge.resolution import NameResolver, ResolutionError
from provenant.config import DEFAULT_STATEMENT_TEMPLATE
from provenant.core.hasher import fingerprint, fingerprint_file
from provenant.core.orchestrator import build_statement
from provenant.core.registry import ProvenanceRegistry, RecordNotFoundError
from provenant.models.records import ProvenanceRecord, normalize_identity
from provenant.models.verification import VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)


class Verifier:
    """Recomputes fingerprints and checks them against the registry.

    Parameters
    ----------
    registry:
        Registry to read from.  The verifier never writes.
    resolver:
        Optional label resolver for ``verify_label``.
    max_artifact_bytes:
        Fingerprinting ceiling, as for anchoring.
    """

    def __init__(
        self,
        registry: ProvenanceRegistry,
        resolver: NameResolver | None = None,
        *,
        max_artifact_bytes: int | None = None,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._max_bytes = max_artifact_bytes

    def verify(self, data: bytes, expected_identity: str) -> VerificationResult:
        """Check whether *data* was anchored by *expected_identity*."""
        fp = fingerprint(data, max_bytes=self._max_bytes)
        return self._check(fp, expected_identity)

    def verify_file(self, path: Path, expected_identity: str) -> VerificationResult:
        fp = fingerprint_file(Path(path), max_bytes=self._max_bytes)
        return self._check(fp, expected_identity)

    def verify_label(self, data: bytes, label: str) -> VerificationResult:
        """Like ``verify`` but resolves *label* to an identity first.

        Raises ``ResolutionError`` when no resolver is configured or the
        label does not resolve; this is distinct from ``not_found``.
        """
        return self.verify(data, self.resolve(label))

    def resolve(self, label: str) -> str:
        if self._resolver is None:
            raise ResolutionError("No name resolver configured")
        identity = self._resolver.resolve(label)
        if not identity:
            raise ResolutionError(f"Label {label!r} did not resolve to an identity")
        return normalize_identity(identity)

    def _check(self, fp: str, expected_identity: str) -> VerificationResult:
        expected = normalize_identity(expected_identity)
        try:
            record = self._registry.get(fp)
        except RecordNotFoundError:
            logger.info("Verify %s: not found", fp)
            return VerificationResult(
                status=VerificationStatus.NOT_FOUND,
                fingerprint=fp,
                expected_identity=expected,
            )

        actual = normalize_identity(record.endorser_identity)
        status = (
            VerificationStatus.MATCHED if actual == expected else VerificationStatus.MISMATCH
        )
        logger.info("Verify %s: %s", fp, status.value)
        return VerificationResult(
            status=status,
            fingerprint=fp,
            expected_identity=expected,
            actual_identity=actual,
            record=record,
        )


def check_endorsement(
    record: ProvenanceRecord,
    statement_template: str = DEFAULT_STATEMENT_TEMPLATE,
) -> bool:
    """Cryptographically check a record's endorsement against its endorser.

    Rebuilds the statement the endorser was asked to sign and verifies the
    stored Ed25519 signature under the recorded identity.
    """
    message = build_statement(record.fingerprint, statement_template)
    return verify_data(message, record.endorsement, record.endorser_identity)
