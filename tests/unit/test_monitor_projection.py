"""Tests for the run projection — event streams folded into step states."""

from __future__ import annotations

from provenant.core.orchestrator import AnchoringOrchestrator
from provenant.models.config import RetryPolicy
from provenant.models.progress import PipelineStep, ProgressEvent, RunStage
from provenant.monitor.projection import RunSnapshot, StepState, project

DATA = b"projection test artifact"


def _states(snapshot: RunSnapshot) -> dict[PipelineStep, StepState]:
    return {s.step: s.state for s in snapshot.steps}


class TestProjection:
    def test_empty_stream(self):
        snapshot = project([])
        assert snapshot.stage == RunStage.IDLE
        assert set(_states(snapshot).values()) == {StepState.PENDING}
        assert not snapshot.finished

    def test_partial_stream(self):
        events = [
            ProgressEvent(run_id="r", stage=RunStage.FINGERPRINTING),
            ProgressEvent(run_id="r", stage=RunStage.ENDORSING, fingerprint="0xabc"),
        ]
        snapshot = project(events)
        states = _states(snapshot)
        assert states[PipelineStep.FINGERPRINT] == StepState.DONE
        assert states[PipelineStep.ENDORSE] == StepState.RUNNING
        assert states[PipelineStep.PUBLISH] == StepState.PENDING
        assert snapshot.fingerprint == "0xabc"

    def test_committed_run(self, orchestrator, credential, fast_policy):
        snapshot = project(orchestrator.anchor(DATA, credential, fast_policy).events)
        assert snapshot.finished
        assert set(_states(snapshot).values()) == {StepState.DONE}
        assert snapshot.storage_locator.startswith("sha256:")

    def test_degraded_publish(self, registry, always_transient, fixed_credential):
        outcome = AnchoringOrchestrator(registry, always_transient).anchor(
            DATA, fixed_credential, RetryPolicy(max_retries=1, retry_delay=0)
        )
        snapshot = project(outcome.events)
        publish = next(s for s in snapshot.steps if s.step == PipelineStep.PUBLISH)
        assert publish.state == StepState.DEGRADED
        assert publish.max_attempts == 2
        assert _states(snapshot)[PipelineStep.COMMIT] == StepState.DONE
        assert snapshot.publish_error

    def test_skipped_publish(self, registry, fixed_credential):
        outcome = AnchoringOrchestrator(registry).anchor(DATA, fixed_credential)
        assert _states(project(outcome.events))[PipelineStep.PUBLISH] == StepState.SKIPPED

    def test_failed_run(self, orchestrator, credential, fast_policy):
        orchestrator.anchor(DATA, credential, fast_policy)
        duplicate = orchestrator.anchor(DATA, credential, fast_policy)
        snapshot = project(duplicate.events)
        states = _states(snapshot)
        assert states[PipelineStep.COMMIT] == StepState.FAILED
        assert states[PipelineStep.PUBLISH] == StepState.DONE
        assert snapshot.failure_reason.startswith("commit:")
