"""Per-run policy models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Publish retry policy, passed into each anchoring run.

    ``max_retries`` counts *additional* attempts after the first one, so a
    policy with ``max_retries=3`` makes at most four publish attempts.
    Tests inject ``retry_delay=0`` for fast, deterministic exhaustion.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=2.0, ge=0.0)  # seconds between attempts
    timeout: float = Field(default=30.0, gt=0.0)  # seconds per attempt

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1
