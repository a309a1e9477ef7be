"""Anchoring orchestrator — turns raw artifact bytes into a committed record.

The orchestrator wires the fingerprint engine, a CredentialProvider, an
optional Publisher and the ProvenanceRegistry into one staged run:

    fingerprinting -> endorsing -> publishing -> committing -> committed

Failure policy
--------------
- Fingerprinting / endorsing errors are fatal before any external effect.
- Publishing retries transient failures per the RetryPolicy.  Exhaustion
  (or a permanent failure) is non-fatal: the record is committed without a
  storage locator and the publish error is surfaced on the terminal event.
- Commit errors are fatal and may leave a published artifact orphaned; the
  orchestrator never tries to un-publish.

A run is a generator of ProgressEvents.  The orchestrator keeps no state
between runs, so concurrent runs share only the registry.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timezone

from provenant.bridge.credentials import CredentialError, CredentialProvider
from provenant.bridge.crypto_bridge import key_fingerprint
from provenant.bridge.publishers import (
    PublishPermanentError,
    Publisher,
    PublishTransientError,
    build_publisher,
)
from provenant.config import DEFAULT_STATEMENT_TEMPLATE, ProvenantConfig
from provenant.core.hasher import ArtifactTooLargeError, fingerprint
from provenant.core.registry import (
    ProvenanceRegistry,
    RecordNotFoundError,
    RegistryError,
)
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
    is_null_identity,
    normalize_identity,
)

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"

# (locator, publish_error, cancelled)
_PublishResult = tuple[str, str, bool]


def build_statement(fingerprint_hex: str, template: str = DEFAULT_STATEMENT_TEMPLATE) -> bytes:
    """Render the endorsement message that binds an identity to a fingerprint."""
    return template.format(fingerprint=fingerprint_hex).encode("utf-8")


def new_run_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"pv-{ts}-{uuid.uuid4().hex[:6]}"


class AnchoringOrchestrator:
    """Coordinates one artifact at a time through endorse -> publish -> commit.

    Parameters
    ----------
    registry:
        The provenance registry records are committed to.
    publisher:
        Storage backend.  ``None`` skips publishing; records are committed
        with an empty locator.
    max_artifact_bytes:
        Fingerprinting ceiling.  ``None`` disables the check.
    statement_template:
        Endorsement message template; ``{fingerprint}`` is substituted.
    default_policy:
        RetryPolicy used when ``run()`` is not given one.
    """

    def __init__(
        self,
        registry: ProvenanceRegistry,
        publisher: Publisher | None = None,
        *,
        max_artifact_bytes: int | None = None,
        statement_template: str = DEFAULT_STATEMENT_TEMPLATE,
        default_policy: RetryPolicy | None = None,
    ) -> None:
        self.registry = registry
        self.publisher = publisher
        self.max_artifact_bytes = max_artifact_bytes
        self.statement_template = statement_template
        self.default_policy = default_policy or RetryPolicy()

    @classmethod
    def from_config(cls, config: ProvenantConfig) -> AnchoringOrchestrator:
        """Build an orchestrator with the registry and publisher from *config*."""
        return cls(
            ProvenanceRegistry(config.registry_path),
            build_publisher(config),
            max_artifact_bytes=config.max_artifact_bytes,
            statement_template=config.statement_template,
            default_policy=config.retry_policy(),
        )

    def build_message(self, fingerprint_hex: str) -> bytes:
        return build_statement(fingerprint_hex, self.statement_template)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(
        self,
        data: bytes,
        credential: CredentialProvider,
        retry_policy: RetryPolicy | None = None,
        *,
        cancel: threading.Event | None = None,
        run_id: str | None = None,
    ) -> Iterator[ProgressEvent]:
        """Anchor *data*, yielding a ProgressEvent per stage transition.

        The stream ends with exactly one ``committed`` or ``failed`` event.
        *cancel* is honoured between publish attempts only; a cancelled run
        ends ``failed("publish", "cancelled")`` and commits nothing.
        """
        run_id = run_id or new_run_id()
        policy = retry_policy or self.default_policy

        def event(stage: RunStage, message: str = "", **fields) -> ProgressEvent:
            return ProgressEvent(run_id=run_id, stage=stage, message=message, **fields)

        # 1. Fingerprinting
        yield event(RunStage.FINGERPRINTING, "Fingerprinting artifact")
        try:
            fp = fingerprint(data, max_bytes=self.max_artifact_bytes)
        except (ArtifactTooLargeError, TypeError) as exc:
            yield self._failed(run_id, PipelineStep.FINGERPRINT, str(exc))
            return

        # 2. Endorsing
        yield event(RunStage.ENDORSING, "Requesting endorsement", fingerprint=fp)
        try:
            identity = credential.identity()
            endorsement = credential.sign(self.build_message(fp))
        except CredentialError as exc:
            yield self._failed(run_id, PipelineStep.ENDORSE, str(exc), fingerprint=fp)
            return
        except Exception as exc:
            logger.exception("Credential provider raised unexpectedly (run %s)", run_id)
            yield self._failed(
                run_id, PipelineStep.ENDORSE, f"{type(exc).__name__}: {exc}", fingerprint=fp
            )
            return

        try:
            identity = normalize_identity(identity)
        except ValueError as exc:
            yield self._failed(run_id, PipelineStep.ENDORSE, str(exc), fingerprint=fp)
            return
        if is_null_identity(identity):
            yield self._failed(
                run_id, PipelineStep.ENDORSE, "Credential has a null identity", fingerprint=fp
            )
            return
        if not isinstance(endorsement, (bytes, bytearray)) or not (
            MIN_ENDORSEMENT_BYTES <= len(endorsement) <= MAX_ENDORSEMENT_BYTES
        ):
            yield self._failed(
                run_id,
                PipelineStep.ENDORSE,
                "Credential returned an empty or oversized endorsement",
                fingerprint=fp,
            )
            return
        timestamp = self.registry.current_time()
        logger.info(
            "Run %s: %s endorsed by %s", run_id, fp, key_fingerprint(identity)
        )

        # 3. Publishing
        if self.publisher is None:
            yield event(
                RunStage.PUBLISHING, "No publisher configured; skipping", fingerprint=fp
            )
            locator, publish_error = "", ""
        else:
            locator, publish_error, cancelled = yield from self._publish_with_retry(
                run_id, fp, data, policy, cancel
            )
            if cancelled:
                yield self._failed(
                    run_id, PipelineStep.PUBLISH, CANCELLED_REASON, fingerprint=fp
                )
                return

        # 4. Committing
        yield event(RunStage.COMMITTING, "Committing record", fingerprint=fp)
        try:
            record = self.registry.put(
                fp, timestamp, bytes(endorsement), identity, locator
            )
        except RegistryError as exc:
            if locator:
                logger.warning(
                    "Run %s: commit failed after publishing; %s is orphaned", run_id, locator
                )
            yield self._failed(
                run_id, PipelineStep.COMMIT, str(exc), fingerprint=fp, error_code=exc.code
            )
            return
        except Exception as exc:
            logger.exception("Registry raised unexpectedly (run %s)", run_id)
            yield self._failed(
                run_id, PipelineStep.COMMIT, f"{type(exc).__name__}: {exc}", fingerprint=fp
            )
            return

        message = (
            f"Committed without storage locator ({publish_error})"
            if publish_error
            else "Committed"
        )
        yield event(
            RunStage.COMMITTED,
            message,
            fingerprint=fp,
            record=record,
            publish_error=publish_error,
        )

    def anchor(
        self,
        data: bytes,
        credential: CredentialProvider,
        retry_policy: RetryPolicy | None = None,
        *,
        cancel: threading.Event | None = None,
        on_event: Callable[[ProgressEvent], None] | None = None,
    ) -> RunOutcome:
        """Drain a run and return its RunOutcome.

        *on_event* is called with every event as it happens.
        """
        events: list[ProgressEvent] = []
        for ev in self.run(data, credential, retry_policy, cancel=cancel):
            events.append(ev)
            if on_event is not None:
                on_event(ev)
        return RunOutcome.from_events(events)

    def republish(
        self,
        data: bytes,
        retry_policy: RetryPolicy | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        """Retry only the publish step for an already committed artifact.

        Records are immutable, so the returned locator is not written back
        to the registry.  Raises ``RecordNotFoundError`` if the artifact was
        never committed and ``PublishPermanentError`` if publishing fails.
        """
        if self.publisher is None:
            raise PublishPermanentError("No publisher configured")
        fp = fingerprint(data, max_bytes=self.max_artifact_bytes)
        if not self.registry.exists(fp):
            raise RecordNotFoundError(f"No record for {fp}; anchor it first")

        stream = self._publish_with_retry(
            "republish", fp, data, retry_policy or self.default_policy, cancel
        )
        while True:
            try:
                next(stream)
            except StopIteration as stop:
                locator, error, cancelled = stop.value
                break
        if cancelled:
            raise PublishPermanentError("Publishing was cancelled")
        if not locator:
            raise PublishPermanentError(error)
        return locator

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish_with_retry(
        self,
        run_id: str,
        fp: str,
        data: bytes,
        policy: RetryPolicy,
        cancel: threading.Event | None,
    ) -> Generator[ProgressEvent, None, _PublishResult]:
        """Publish with bounded retries; returns (locator, error, cancelled)."""
        assert self.publisher is not None
        last_error = ""
        attempts = policy.max_attempts

        for attempt in range(1, attempts + 1):
            if cancel is not None and cancel.is_set():
                logger.info("Run %s: cancelled before publish attempt %d", run_id, attempt)
                return "", last_error, True

            label = "Publishing" if attempt == 1 else "Retrying publish"
            yield ProgressEvent(
                run_id=run_id,
                stage=RunStage.PUBLISHING,
                message=f"{label} (attempt {attempt}/{attempts})",
                fingerprint=fp,
                attempt=attempt,
                max_attempts=attempts,
            )

            try:
                locator = self.publisher.publish(data, timeout=policy.timeout)
            except PublishPermanentError as exc:
                last_error = str(exc) or "permanent publish failure"
                logger.warning("Run %s: publish rejected permanently: %s", run_id, last_error)
                break
            except PublishTransientError as exc:
                last_error = str(exc) or "transient publish failure"
                logger.warning(
                    "Run %s: publish attempt %d/%d failed: %s",
                    run_id, attempt, attempts, last_error,
                )
            except Exception as exc:
                # An unclassified error from an untrusted boundary is retried.
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "Run %s: publish attempt %d/%d raised %s",
                    run_id, attempt, attempts, last_error,
                )
            else:
                if locator:
                    yield ProgressEvent(
                        run_id=run_id,
                        stage=RunStage.PUBLISHING,
                        message=f"Published as {locator}",
                        fingerprint=fp,
                        max_attempts=attempts,
                    )
                    return locator, "", False
                last_error = "Publisher returned an empty locator"
                logger.warning("Run %s: %s", run_id, last_error)
                break

            if attempt < attempts and policy.retry_delay > 0:
                if cancel is not None:
                    if cancel.wait(policy.retry_delay):
                        logger.info("Run %s: cancelled while waiting to retry", run_id)
                        return "", last_error, True
                else:
                    time.sleep(policy.retry_delay)

        yield ProgressEvent(
            run_id=run_id,
            stage=RunStage.PUBLISHING,
            message=f"Publishing gave up: {last_error}; continuing without locator",
            fingerprint=fp,
            max_attempts=attempts,
        )
        return "", last_error, False

    @staticmethod
    def _failed(
        run_id: str,
        step: PipelineStep,
        reason: str,
        *,
        fingerprint: str = "",
        error_code: str = "",
    ) -> ProgressEvent:
        logger.error("Run %s failed at %s: %s", run_id, step.value, reason)
        return ProgressEvent(
            run_id=run_id,
            stage=RunStage.FAILED,
            message=f"Failed at {step.value}: {reason}",
            fingerprint=fingerprint,
            failure=StageFailure(step=step, reason=reason, error_code=error_code),
        )
