"""Verification result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from provenant.models.records import ProvenanceRecord


class VerificationStatus(str, Enum):
    MATCHED = "matched"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"


class VerificationResult(BaseModel):
    """Outcome of recomputing a fingerprint and cross-checking the registry.

    ``actual_identity`` is the endorser recorded in the registry; it is set
    for ``matched`` and ``mismatch`` and empty for ``not_found``.
    """

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    fingerprint: str
    expected_identity: str
    actual_identity: str = ""
    record: ProvenanceRecord | None = None

    @property
    def matched(self) -> bool:
        return self.status == VerificationStatus.MATCHED
