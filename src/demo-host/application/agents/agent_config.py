"""Agent configuration for the demo host.

This module defines the configuration dataclass for the turn engine:
loop bounds, streaming mode and how reasoning text is paced to the client.
"""

from dataclasses import dataclass

TOOLS_AVAILABLE_NOTE = (
    "\n\nYou have access to Google tools (Gmail, Drive, Calendar). Use them to complete the task. "
    "When sending emails, use the actual recipient email from the context."
)

TOOLS_UNAVAILABLE_NOTE = (
    "\n\nNote: Google integration is not connected. Generate the email content but indicate it would be "
    "sent when connected."
)

TOOLS_AVAILABLE_STATUS = "> Tools available: Gmail, Drive, Calendar\n"
TOOLS_UNAVAILABLE_STATUS = "> No Google connection - generating content only\n"


@dataclass
class AgentConfig:
    """Configuration for the agent turn engine.

    Attributes:
        name: Human-readable name for the agent
        max_rounds: Maximum number of model requests in a single turn (prevents infinite loops)
        stream_responses: Whether to stream model responses or chunk a complete response
        thinking_chunk_size: Size of reasoning pieces when chunking a complete response
        thinking_chunk_delay: Pause in seconds between reasoning pieces
        tool_input_preview_chars: How much of a tool call's input is echoed in the reasoning pane
        tools_available_note: Appended to the system prompt when tools are advertised
        tools_unavailable_note: Appended to the system prompt when no tools are advertised
        tools_available_status: Reasoning line opening each round when tools are advertised
        tools_unavailable_status: Reasoning line opening each round when no tools are advertised
    """

    # Identity
    name: str = "sales-agent"

    # Iteration limits (safety bounds)
    max_rounds: int = 10

    # Response handling
    stream_responses: bool = True
    thinking_chunk_size: int = 100
    thinking_chunk_delay: float = 0.01
    tool_input_preview_chars: int = 200

    # Prompt augmentation
    tools_available_note: str = TOOLS_AVAILABLE_NOTE
    tools_unavailable_note: str = TOOLS_UNAVAILABLE_NOTE
    tools_available_status: str = TOOLS_AVAILABLE_STATUS
    tools_unavailable_status: str = TOOLS_UNAVAILABLE_STATUS

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if self.thinking_chunk_size < 1:
            raise ValueError("thinking_chunk_size must be at least 1")
