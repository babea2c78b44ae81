"""Agent abstractions for the demo host.

This package contains the turn engine and its collaborators:
- LlmProvider: Abstract interface for model providers
- Conversation: Append-only message history of one turn
- ToolInvoker: Failure-containing execution of workspace tools
- AgentTurnEngine: Multi-round tool-use loop emitting TurnEvents
"""

from application.agents.agent_config import AgentConfig
from application.agents.conversation import Conversation
from application.agents.llm_provider import (
    ContentSegment,
    ContentSegmentType,
    LlmConfig,
    LlmMessage,
    LlmMessageRole,
    LlmProvider,
    LlmProviderError,
    LlmProviderType,
    LlmResponse,
    LlmStreamChunk,
    LlmStreamChunkType,
    TextSegment,
    ThinkingSegment,
    ToolResultSegment,
    ToolUseSegment,
)
from application.agents.tool_invoker import ToolInvoker, ToolResult, WorkspaceToolsProtocol
from application.agents.turn_engine import AgentError, AgentTurnEngine, AuthCapability, TurnRun, TurnState
from application.agents.turn_events import TurnEvent, TurnEventType
from application.agents.workspace_tools import (
    WORKSPACE_TOOL_NAMES,
    WORKSPACE_TOOLS,
    WorkspaceToolName,
    get_all_workspace_tools,
    get_workspace_tool,
    get_workspace_tool_manifest,
    is_workspace_tool,
)

__all__ = [
    # Configuration
    "AgentConfig",
    # LLM Provider
    "ContentSegment",
    "ContentSegmentType",
    "Conversation",
    "LlmConfig",
    "LlmMessage",
    "LlmMessageRole",
    "LlmProvider",
    "LlmProviderError",
    "LlmProviderType",
    "LlmResponse",
    "LlmStreamChunk",
    "LlmStreamChunkType",
    "TextSegment",
    "ThinkingSegment",
    "ToolResultSegment",
    "ToolUseSegment",
    # Tools
    "ToolInvoker",
    "ToolResult",
    "WorkspaceToolsProtocol",
    "WORKSPACE_TOOL_NAMES",
    "WORKSPACE_TOOLS",
    "WorkspaceToolName",
    "get_all_workspace_tools",
    "get_workspace_tool",
    "get_workspace_tool_manifest",
    "is_workspace_tool",
    # Engine
    "AgentError",
    "AgentTurnEngine",
    "AuthCapability",
    "TurnEvent",
    "TurnEventType",
    "TurnRun",
    "TurnState",
]
