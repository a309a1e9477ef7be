"""Tests for runtime config — env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from provenant.config import DEFAULT_STATEMENT_TEMPLATE, ProvenantConfig
from provenant.models.config import RetryPolicy


class TestProvenantConfig:
    def test_defaults(self):
        config = ProvenantConfig()
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.publisher == "local"
        assert config.max_artifact_bytes == 100 * 1024 * 1024
        assert config.statement_template == DEFAULT_STATEMENT_TEMPLATE

    def test_default_paths(self):
        config = ProvenantConfig()
        assert config.registry_path == Path(".provenant/registry.db")
        assert config.artifact_store_path == Path(".provenant/artifacts")
        assert config.resolver_path is None

    def test_is_production(self):
        assert ProvenantConfig().is_production is False
        assert ProvenantConfig(environment="production").is_production is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PROVENANT_PUBLISH_MAX_RETRIES", "5")
        monkeypatch.setenv("PROVENANT_PUBLISHER", "none")
        config = ProvenantConfig()
        assert config.publish_max_retries == 5
        assert config.publisher == "none"

    def test_secrets_are_masked(self):
        config = ProvenantConfig(signing_key="ab" * 32, pinata_jwt="token")
        assert "ab" * 32 not in repr(config)
        assert "token" not in str(config.pinata_jwt)
        assert config.signing_key.get_secret_value() == "ab" * 32

    def test_retry_policy(self):
        config = ProvenantConfig(
            publish_max_retries=2, publish_retry_delay=0.5, publish_timeout=9.0
        )
        assert config.retry_policy() == RetryPolicy(max_retries=2, retry_delay=0.5, timeout=9.0)

    def test_rejects_negative_retries(self):
        with pytest.raises(ValidationError):
            ProvenantConfig(publish_max_retries=-1)


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.retry_delay == 2.0
        assert policy.timeout == 30.0
        assert policy.max_attempts == 4

    @pytest.mark.parametrize(
        "kwargs", [{"max_retries": -1}, {"retry_delay": -0.1}, {"timeout": 0}]
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            RetryPolicy(**kwargs)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            RetryPolicy().max_retries = 9
