"""RunProjection — pure read-only view over a run's ProgressEvent stream.

The projection does not compute truth, it displays it: every snapshot is
rebuilt from the events seen so far and never stored.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict

from provenant.models.progress import PipelineStep, ProgressEvent, RunStage


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    DEGRADED = "degraded"  # publish gave up, run continued
    SKIPPED = "skipped"
    FAILED = "failed"


_STEP_FOR_STAGE: dict[RunStage, PipelineStep] = {
    RunStage.FINGERPRINTING: PipelineStep.FINGERPRINT,
    RunStage.ENDORSING: PipelineStep.ENDORSE,
    RunStage.PUBLISHING: PipelineStep.PUBLISH,
    RunStage.COMMITTING: PipelineStep.COMMIT,
}

STEP_DISPLAY_NAMES: dict[PipelineStep, str] = {
    PipelineStep.FINGERPRINT: "Fingerprint",
    PipelineStep.ENDORSE: "Endorse",
    PipelineStep.PUBLISH: "Publish",
    PipelineStep.COMMIT: "Commit",
}


class StepStatus(BaseModel):
    """Point-in-time status of one pipeline step."""

    model_config = ConfigDict(frozen=True)

    step: PipelineStep
    state: StepState = StepState.PENDING
    detail: str = ""
    attempt: int = 0
    max_attempts: int = 0


class RunSnapshot(BaseModel):
    """A frozen, point-in-time view of an anchoring run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = ""
    stage: RunStage = RunStage.IDLE
    fingerprint: str = ""
    steps: list[StepStatus] = []
    storage_locator: str = ""
    publish_error: str = ""
    failure_reason: str = ""

    @property
    def finished(self) -> bool:
        return self.stage in (RunStage.COMMITTED, RunStage.FAILED)


def project(events: Sequence[ProgressEvent]) -> RunSnapshot:
    """Fold an event stream (possibly incomplete) into a RunSnapshot."""
    steps: dict[PipelineStep, StepStatus] = {
        step: StepStatus(step=step) for step in PipelineStep
    }
    snapshot: dict = {"steps": []}
    current: PipelineStep | None = None

    for ev in events:
        snapshot["run_id"] = ev.run_id
        snapshot["stage"] = ev.stage
        if ev.fingerprint:
            snapshot["fingerprint"] = ev.fingerprint

        step = _STEP_FOR_STAGE.get(ev.stage)
        if step is not None:
            # Entering a new step completes the previous one.
            if current is not None and current != step:
                prev = steps[current]
                if prev.state == StepState.RUNNING:
                    steps[current] = prev.model_copy(update={"state": StepState.DONE})
            current = step
            state = StepState.RUNNING
            if step == PipelineStep.PUBLISH and "skipping" in ev.message:
                state = StepState.SKIPPED
            elif step == PipelineStep.PUBLISH and "gave up" in ev.message:
                state = StepState.DEGRADED
            steps[step] = steps[step].model_copy(
                update={
                    "state": state,
                    "detail": ev.message,
                    "attempt": ev.attempt or steps[step].attempt,
                    "max_attempts": ev.max_attempts or steps[step].max_attempts,
                }
            )
        elif ev.stage == RunStage.COMMITTED:
            for s, status in steps.items():
                if status.state == StepState.RUNNING:
                    steps[s] = status.model_copy(update={"state": StepState.DONE})
            if ev.record is not None:
                snapshot["storage_locator"] = ev.record.storage_locator
            snapshot["publish_error"] = ev.publish_error
        elif ev.stage == RunStage.FAILED and ev.failure is not None:
            failed = ev.failure.step
            steps[failed] = steps[failed].model_copy(
                update={"state": StepState.FAILED, "detail": ev.failure.reason}
            )
            if current is not None and current != failed:
                prev = steps[current]
                if prev.state == StepState.RUNNING:
                    steps[current] = prev.model_copy(update={"state": StepState.DONE})
            snapshot["failure_reason"] = str(ev.failure)

    snapshot["steps"] = list(steps.values())
    return RunSnapshot(**snapshot)
