"""Tests for settings and agent configuration."""

import pytest

from application.agents.agent_config import AgentConfig
from application.settings import Settings


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        """Test the default model and budgets."""
        settings = Settings()

        assert settings.anthropic_model == "claude-sonnet-4-20250514"
        assert settings.anthropic_thinking_budget_tokens == 10000
        assert settings.agent_max_rounds == 10

    def test_env_prefix(self, monkeypatch):
        """Test that DEMO_HOST_ variables override defaults."""
        monkeypatch.setenv("DEMO_HOST_AGENT_MAX_ROUNDS", "3")
        monkeypatch.setenv("DEMO_HOST_ANTHROPIC_STREAM", "false")

        settings = Settings()

        assert settings.agent_max_rounds == 3
        assert settings.anthropic_stream is False


class TestAgentConfig:
    """Test AgentConfig validation."""

    @pytest.mark.parametrize("field", ["max_rounds", "thinking_chunk_size"])
    def test_rejects_values_below_one(self, field):
        """Test that limits must be positive."""
        with pytest.raises(ValueError):
            AgentConfig(**{field: 0})
