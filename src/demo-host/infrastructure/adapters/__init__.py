"""Infrastructure adapters for the Demo Host."""

from infrastructure.adapters.anthropic_llm_provider import AnthropicLlmProvider

__all__ = ["AnthropicLlmProvider"]
