"""Provenant data models — all Pydantic v2, all frozen (immutable)."""

from provenant.models.config import RetryPolicy
from provenant.models.progress import (
    PipelineStep,
    ProgressEvent,
    RunOutcome,
    RunStage,
    StageFailure,
)
from provenant.models.records import (
    MAX_ENDORSEMENT_BYTES,
    MIN_ENDORSEMENT_BYTES,
    NULL_IDENTITY,
    ProvenanceRecord,
)
from provenant.models.verification import VerificationResult, VerificationStatus

__all__ = [
    # records
    "ProvenanceRecord",
    "NULL_IDENTITY",
    "MIN_ENDORSEMENT_BYTES",
    "MAX_ENDORSEMENT_BYTES",
    # config
    "RetryPolicy",
    # progress
    "RunStage",
    "PipelineStep",
    "StageFailure",
    "ProgressEvent",
    "RunOutcome",
    # verification
    "VerificationStatus",
    "VerificationResult",
]
