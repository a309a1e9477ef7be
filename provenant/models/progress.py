"""Anchoring run progress models — one event per stage transition.

A run is observed as a stream of ``ProgressEvent``s keyed by stage.  The
stream always ends with exactly one terminal event: ``committed`` (carrying
the record) or ``failed`` (carrying the failing step and reason).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from provenant.models.records import ProvenanceRecord


class RunStage(str, Enum):
    """Orchestrator state machine positions."""

    IDLE = "idle"
    FINGERPRINTING = "fingerprinting"
    ENDORSING = "endorsing"
    PUBLISHING = "publishing"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


TERMINAL_STAGES: frozenset[RunStage] = frozenset(
    {RunStage.COMMITTED, RunStage.FAILED}
)


class PipelineStep(str, Enum):
    """Step names reported in a failure."""

    FINGERPRINT = "fingerprint"
    ENDORSE = "endorse"
    PUBLISH = "publish"
    COMMIT = "commit"


class StageFailure(BaseModel):
    """Why a run failed: the step that failed and its underlying reason."""

    model_config = ConfigDict(frozen=True)

    step: PipelineStep
    reason: str
    error_code: str = ""  # registry error code when the commit was rejected

    def __str__(self) -> str:
        return f"{self.step.value}: {self.reason}"


class ProgressEvent(BaseModel):
    """A single observable transition in an anchoring run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    stage: RunStage
    message: str = ""
    fingerprint: str = ""
    attempt: int = 0  # 1-based publish attempt; 0 outside publishing
    max_attempts: int = 0
    record: ProvenanceRecord | None = None
    failure: StageFailure | None = None
    publish_error: str = ""  # set on the committed event after degraded publish
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES


class RunOutcome(BaseModel):
    """Summary of a finished run, built from its event stream."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    stage: RunStage
    record: ProvenanceRecord | None = None
    failure: StageFailure | None = None
    publish_error: str = ""
    events: list[ProgressEvent] = []

    @property
    def committed(self) -> bool:
        return self.stage == RunStage.COMMITTED

    @property
    def publish_failed(self) -> bool:
        """Publishing was attempted and given up; the record has no locator."""
        return bool(self.publish_error)

    @property
    def locator_empty(self) -> bool:
        return self.record is None or not self.record.storage_locator

    @property
    def publish_attempts(self) -> int:
        return sum(
            1
            for e in self.events
            if e.stage == RunStage.PUBLISHING and e.attempt > 0
        )

    @classmethod
    def from_events(cls, events: list[ProgressEvent]) -> RunOutcome:
        """Build an outcome from a complete event stream.

        Raises ``ValueError`` if the stream has no terminal event.
        """
        if not events or not events[-1].is_terminal:
            raise ValueError("Event stream did not reach a terminal state")
        last = events[-1]
        return cls(
            run_id=last.run_id,
            stage=last.stage,
            record=last.record,
            failure=last.failure,
            publish_error=last.publish_error,
            events=list(events),
        )
