"""Runtime configuration — env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
PROVENANT_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from provenant.models.config import RetryPolicy

DEFAULT_STATEMENT_TEMPLATE = "Signing document with hash: {fingerprint}"


class ProvenantConfig(BaseSettings):
    """Provenant configuration with environment variable overrides.

    All settings can be overridden via PROVENANT_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export PROVENANT_LOG_LEVEL=DEBUG
        export PROVENANT_REGISTRY_PATH=/data/registry.db
        export PROVENANT_PUBLISHER=pinata
        export PROVENANT_PINATA_JWT=eyJhbGciOi...

    Or via .env file::

        PROVENANT_SIGNING_KEY=<64 hex chars>
        PROVENANT_PUBLISH_MAX_RETRIES=5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROVENANT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    registry_path: Path = Path(".provenant/registry.db")
    artifact_store_path: Path = Path(".provenant/artifacts")

    # Fingerprinting ceiling (100 MiB)
    max_artifact_bytes: int = Field(default=100 * 1024 * 1024, gt=0)

    # Publish retry policy defaults
    publish_max_retries: int = Field(default=3, ge=0)
    publish_retry_delay: float = Field(default=2.0, ge=0.0)
    publish_timeout: float = Field(default=30.0, gt=0.0)

    # Publisher backend: "none", "local" or "pinata"
    publisher: str = "local"
    pinata_jwt: SecretStr = SecretStr("")
    pinata_upload_url: str = "https://uploads.pinata.cloud/v3/files"
    ipfs_gateway: str = "https://gateway.pinata.cloud/ipfs"

    # Endorsing credential — hex Ed25519 seed, never logged
    signing_key: SecretStr = SecretStr("")

    # Optional label -> identity directory for verification by name
    resolver_path: Path | None = None

    statement_template: str = DEFAULT_STATEMENT_TEMPLATE

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    def retry_policy(self) -> RetryPolicy:
        """Build the default publish RetryPolicy from these settings."""
        return RetryPolicy(
            max_retries=self.publish_max_retries,
            retry_delay=self.publish_retry_delay,
            timeout=self.publish_timeout,
        )


# Module-level singleton — import as `from provenant.config import config`
config = ProvenantConfig()
