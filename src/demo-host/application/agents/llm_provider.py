"""LLM Provider abstraction for the demo host.

This module defines the abstract interface for LLM providers together with
the message and content types exchanged with them, so the turn engine does
not depend on a specific backend.

Design Principles:
- Model responses are a list of typed content segments (thinking, text,
  tool use) rather than free-form dictionaries
- Support for both streaming and non-streaming responses
- Tool calling as first-class citizen
- Unified error handling across providers
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from application.agents.conversation import Conversation
    from domain.models.tool import ToolDefinition

logger = logging.getLogger(__name__)


# =============================================================================
# Provider Enumeration
# =============================================================================


class LlmProviderType(str, Enum):
    """Supported LLM provider types."""

    ANTHROPIC = "anthropic"


# =============================================================================
# Unified Error Handling
# =============================================================================


class LlmProviderError(Exception):
    """Base error class for all LLM provider errors.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code for programmatic handling
        provider: The provider that raised the error
        is_retryable: Whether the operation might succeed on retry
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        provider: str,
        is_retryable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.is_retryable = is_retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "provider": self.provider,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"LlmProviderError({self.provider}:{self.error_code}: {self.message})"


# =============================================================================
# Content Segments
# =============================================================================


class ContentSegmentType(str, Enum):
    """Kind of content segment produced by the model."""

    THINKING = "thinking"
    TEXT = "text"
    TOOL_USE = "tool_use"


@dataclass(frozen=True)
class ThinkingSegment:
    """Reasoning produced by the model.

    Attributes:
        thinking: The reasoning text (empty when redacted)
        signature: Opaque signature that must be echoed back with tool results
        redacted_data: Encrypted payload of a redacted reasoning block
    """

    thinking: str
    signature: str = ""
    redacted_data: Optional[str] = None

    @property
    def type(self) -> ContentSegmentType:
        return ContentSegmentType.THINKING

    @property
    def is_redacted(self) -> bool:
        return self.redacted_data is not None


@dataclass(frozen=True)
class TextSegment:
    """Final output text produced by the model."""

    text: str

    @property
    def type(self) -> ContentSegmentType:
        return ContentSegmentType.TEXT


@dataclass(frozen=True)
class ToolUseSegment:
    """A tool call requested by the model.

    Attributes:
        id: Correlation identifier, echoed back in exactly one tool result
        name: Name of the tool to call
        input: Arguments to pass to the tool
    """

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> ContentSegmentType:
        return ContentSegmentType.TOOL_USE


ContentSegment = Union[ThinkingSegment, TextSegment, ToolUseSegment]


@dataclass(frozen=True)
class ToolResultSegment:
    """Result of a tool call, fed back to the model.

    Attributes:
        tool_use_id: ID of the tool call this result answers
        content: Serialized result payload
        is_error: Whether the tool call failed
    """

    tool_use_id: str
    content: str
    is_error: bool = False


# =============================================================================
# Messages
# =============================================================================


class LlmMessageRole(str, Enum):
    """Role of a message in the LLM conversation."""

    USER = "user"
    ASSISTANT = "assistant"


MessageContent = Union[str, tuple[ContentSegment, ...], tuple[ToolResultSegment, ...]]


@dataclass(frozen=True)
class LlmMessage:
    """A message in the LLM conversation.

    Attributes:
        role: Role of the message sender
        content: Plain text (user task), assistant content segments, or tool results
    """

    role: LlmMessageRole
    content: MessageContent

    @property
    def tool_results(self) -> list[ToolResultSegment]:
        if isinstance(self.content, str):
            return []
        return [s for s in self.content if isinstance(s, ToolResultSegment)]

    @classmethod
    def user(cls, content: str) -> "LlmMessage":
        """Create a user message."""
        return cls(role=LlmMessageRole.USER, content=content)

    @classmethod
    def assistant(cls, segments: Sequence[ContentSegment]) -> "LlmMessage":
        """Create an assistant message echoing the model's content."""
        return cls(role=LlmMessageRole.ASSISTANT, content=tuple(segments))

    @classmethod
    def tool_results_message(cls, results: Sequence[ToolResultSegment]) -> "LlmMessage":
        """Create the user message carrying tool results."""
        return cls(role=LlmMessageRole.USER, content=tuple(results))


# =============================================================================
# Responses
# =============================================================================


TOOL_USE_STOP_REASON = "tool_use"


@dataclass
class LlmResponse:
    """Response from an LLM.

    Attributes:
        content: Content segments in emission order
        stop_reason: Why the response ended (end_turn, tool_use, max_tokens, ...)
        usage: Optional token usage statistics
    """

    content: list[ContentSegment] = field(default_factory=list)
    stop_reason: str = "end_turn"
    usage: Optional[dict[str, int]] = None

    @property
    def tool_calls(self) -> list[ToolUseSegment]:
        return [s for s in self.content if isinstance(s, ToolUseSegment)]

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return bool(self.tool_calls)

    @property
    def stopped_for_tool_use(self) -> bool:
        """True only when the model stopped because it wants tool results."""
        return self.stop_reason == TOOL_USE_STOP_REASON

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.content if isinstance(s, TextSegment))


class LlmStreamChunkType(str, Enum):
    """Kind of incremental streaming chunk."""

    BLOCK_START = "block_start"
    THINKING_DELTA = "thinking_delta"
    TEXT_DELTA = "text_delta"
    BLOCK_STOP = "block_stop"
    DONE = "done"


@dataclass
class LlmStreamChunk:
    """A chunk from a streaming LLM response.

    Attributes:
        type: Kind of chunk
        segment_type: Kind of the content block the chunk belongs to
        content: Text delta (thinking or output)
        response: Complete response, only on the DONE chunk
    """

    type: LlmStreamChunkType
    segment_type: Optional[ContentSegmentType] = None
    content: str = ""
    response: Optional[LlmResponse] = None

    @property
    def done(self) -> bool:
        return self.type == LlmStreamChunkType.DONE


@dataclass
class LlmConfig:
    """Configuration for an LLM provider.

    Attributes:
        model: Model identifier
        max_tokens: Maximum tokens to generate
        thinking_budget_tokens: Reasoning budget (0 disables extended thinking)
        timeout: Request timeout in seconds
        base_url: Base URL for the API
        api_key: API key
        extra: Provider-specific extra configuration
    """

    model: str
    max_tokens: int = 16000
    thinking_budget_tokens: int = 10000
    timeout: float = 120.0
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)


class LlmProvider(ABC):
    """Abstract base class for LLM providers.

    Usage:
        provider = AnthropicLlmProvider(config)
        response = await provider.chat(conversation, system="...", tools=manifest)
    """

    def __init__(self, config: LlmConfig) -> None:
        """Initialize the LLM provider.

        Args:
            config: Provider configuration
        """
        self._config = config

    @property
    @abstractmethod
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        pass

    @property
    def config(self) -> LlmConfig:
        """Get the provider configuration."""
        return self._config

    @property
    def model(self) -> str:
        """Get the model identifier."""
        return self._config.model

    @abstractmethod
    async def chat(
        self,
        conversation: "Conversation",
        system: str,
        tools: Optional[list["ToolDefinition"]] = None,
    ) -> LlmResponse:
        """Send a completion request and wait for the whole response.

        Args:
            conversation: Conversation messages
            system: System instruction
            tools: Optional list of available tools

        Returns:
            Complete response from the LLM
        """
        pass

    @abstractmethod
    def chat_stream(
        self,
        conversation: "Conversation",
        system: str,
        tools: Optional[list["ToolDefinition"]] = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Send a streaming completion request.

        This method is an async generator - implementations should use
        `async def` with `yield` statements. The last chunk is always a DONE
        chunk carrying the complete response.

        Args:
            conversation: Conversation messages
            system: System instruction
            tools: Optional list of available tools

        Yields:
            Streaming chunks from the LLM
        """
        raise NotImplementedError

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the LLM provider is available."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by the provider."""
        pass

    async def __aenter__(self) -> "LlmProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
