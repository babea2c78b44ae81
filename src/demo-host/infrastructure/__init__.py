"""Infrastructure layer for the Demo Host.

Contains:
- adapters/: Model provider adapters (Anthropic)
- google/: Google Workspace credential holder and REST client
"""

from infrastructure.adapters.anthropic_llm_provider import AnthropicLlmProvider
from infrastructure.google import FileTokenAuthCapability, GoogleWorkspaceClient

__all__ = [
    "AnthropicLlmProvider",
    "FileTokenAuthCapability",
    "GoogleWorkspaceClient",
]
