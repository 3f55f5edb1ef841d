"""
Tests for configuration models.
"""

import pytest
from pydantic import ValidationError

from forge_swarm.config import CollaborationConfig, LLMSettings, SwarmConfig
from forge_swarm.models import CollaborationType


class TestCollaborationConfig:
    """Test collaboration settings."""

    def test_defaults(self):
        config = CollaborationConfig()
        assert config.max_rounds == 5
        assert config.temperature == 0.8
        assert config.enable_cross_validation
        assert config.validation_temperature == 0.3
        assert config.collaboration_type == CollaborationType.FREEFORM

    def test_collaboration_type_is_case_insensitive(self):
        assert CollaborationConfig(collaboration_type=" Quest ").collaboration_type == CollaborationType.QUEST

    def test_invalid_collaboration_type(self):
        with pytest.raises(ValidationError):
            CollaborationConfig(collaboration_type="poetry")

    @pytest.mark.parametrize("rounds", [0, 51])
    def test_max_rounds_bounds(self, rounds):
        with pytest.raises(ValidationError):
            CollaborationConfig(max_rounds=rounds)


class TestSwarmConfig:
    """Test swarm settings."""

    def test_defaults(self):
        config = SwarmConfig()
        assert config.parallel
        assert config.temperature == 0.7
        assert config.max_concurrent is None
        assert not config.exclude_failed_from_metrics

    def test_max_concurrent_must_be_positive(self):
        with pytest.raises(ValidationError):
            SwarmConfig(max_concurrent=0)


class TestLLMSettings:
    """Test environment-driven generator settings."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "secret")
        monkeypatch.setenv("FORGE_SWARM_MODEL", "some-model")
        monkeypatch.setenv("FORGE_SWARM_TIMEOUT", "30")
        monkeypatch.setenv("FORGE_SWARM_MAX_ATTEMPTS", "4")
        monkeypatch.setenv("FORGE_SWARM_LOG_LEVEL", "debug")

        settings = LLMSettings.from_env()

        assert settings.api_key == "secret"
        assert settings.model == "some-model"
        assert settings.timeout == 30.0
        assert settings.max_attempts == 4
        assert settings.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("ANTHROPIC_API_KEY", "FORGE_SWARM_MODEL", "FORGE_SWARM_MAX_TOKENS",
                     "FORGE_SWARM_TIMEOUT", "FORGE_SWARM_MAX_ATTEMPTS", "FORGE_SWARM_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = LLMSettings.from_env()

        assert settings.api_key is None
        assert settings.max_attempts == 2
        assert settings.log_level == "INFO"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            LLMSettings(log_level="LOUD")
