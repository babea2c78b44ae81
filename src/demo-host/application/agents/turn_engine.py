"""Agent turn engine.

Drives one multi-round tool-use conversation with the model for a single
demo step, emitting its reasoning and output incrementally as TurnEvents.

Loop:
1. Request: send the conversation, the tool manifest and the thinking budget
2. If the model stopped to use tools:
   a. Execute each call in order through the ToolInvoker
   b. Append the assistant content and one message with all tool results
   c. Go back to step 1
3. Otherwise emit `complete` with the last output text

Every run ends with exactly one terminal event (`complete` or `error`) and
nothing is emitted after it. All per-run state lives on a TurnRun, so one
engine instance can serve any number of sequential or concurrent runs.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

from application.agents.agent_config import AgentConfig
from application.agents.conversation import Conversation
from application.agents.llm_provider import (
    ContentSegmentType,
    LlmMessage,
    LlmProvider,
    LlmProviderError,
    LlmResponse,
    LlmStreamChunkType,
    TextSegment,
    ThinkingSegment,
    ToolResultSegment,
    ToolUseSegment,
)
from application.agents.tool_invoker import ToolInvoker
from application.agents.turn_events import TurnEvent
from application.agents.workspace_tools import get_all_workspace_tools
from domain.models.demo_step import AgentContext
from domain.models.tool import ToolDefinition
from observability.metrics import llm_tool_calls, turn_duration, turn_rounds, turns_completed, turns_failed, turns_started

logger = logging.getLogger(__name__)


class AuthCapability(Protocol):
    """Protocol for the credential holder gating tool availability."""

    def is_authenticated(self) -> bool:
        ...


class AgentError(Exception):
    """Error during agent execution.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code
        is_retryable: Whether the operation might succeed on retry
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        error_code: str = "agent_error",
        is_retryable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.is_retryable = is_retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }


class TurnState(str, Enum):
    """Lifecycle of a single agent turn."""

    IDLE = "idle"
    REQUESTING = "requesting"
    DISPATCHING = "dispatching"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class TurnRun:
    """Mutable state of one run. Never shared between runs."""

    conversation: Conversation
    state: TurnState = TurnState.IDLE
    rounds: int = 0
    output_buffer: str = ""
    final_output: str = ""
    last_response: Optional[LlmResponse] = None
    started_at: float = field(default_factory=time.time)

    def begin_output_segment(self) -> None:
        self.output_buffer = ""
        self.final_output = ""

    def append_output(self, text: str) -> None:
        self.output_buffer += text
        self.final_output = self.output_buffer


class AgentTurnEngine:
    """Runs agent turns against the model and the workspace tools.

    Usage:
        engine = AgentTurnEngine(llm_provider, tool_invoker, auth, AgentConfig())
        async for event in engine.run_stream(step.agent_context):
            ...
    """

    def __init__(
        self,
        llm: LlmProvider,
        invoker: ToolInvoker,
        auth: AuthCapability,
        config: Optional[AgentConfig] = None,
    ) -> None:
        self._llm = llm
        self._invoker = invoker
        self._auth = auth
        self._config = config or AgentConfig()

    @property
    def config(self) -> AgentConfig:
        return self._config

    async def run_stream(self, context: AgentContext) -> AsyncIterator[TurnEvent]:
        """Run one agent turn with streaming events.

        Args:
            context: System prompt and task of the step being executed

        Yields:
            TurnEvents, ending with exactly one `complete` or `error`
        """
        run = TurnRun(conversation=Conversation.start(context.task))
        turns_started.add(1, {"agent": self._config.name})
        terminal: TurnEvent

        yield TurnEvent.status("Starting agent...")

        try:
            authenticated = self._auth.is_authenticated()
            tools = get_all_workspace_tools() if authenticated else []
            system = self._build_system_prompt(context.system_prompt, authenticated)

            while True:
                if run.rounds >= self._config.max_rounds:
                    raise AgentError(
                        f"Agent exceeded the maximum of {self._config.max_rounds} rounds",
                        "max_rounds_exceeded",
                        details={"max_rounds": self._config.max_rounds},
                    )
                run.rounds += 1
                run.state = TurnState.REQUESTING
                logger.debug(f"Agent round {run.rounds}/{self._config.max_rounds}")

                yield TurnEvent.thinking_delta(self._config.tools_available_status if authenticated else self._config.tools_unavailable_status)

                if self._config.stream_responses:
                    async for event in self._request_streaming(run, system, tools):
                        yield event
                else:
                    async for event in self._request_complete(run, system, tools):
                        yield event

                response = run.last_response
                if response is None:
                    raise AgentError("Model returned no response", "empty_response")

                if not (response.has_tool_calls and response.stopped_for_tool_use):
                    break

                run.state = TurnState.DISPATCHING
                results: list[ToolResultSegment] = []
                for call in response.tool_calls:
                    async for event in self._dispatch(call, results):
                        yield event

                # The assistant content is echoed verbatim (thinking signatures included)
                run.conversation = run.conversation.append(
                    LlmMessage.assistant(response.content),
                    LlmMessage.tool_results_message(results),
                )

            run.state = TurnState.COMPLETE
            terminal = TurnEvent.complete(run.final_output)
            turns_completed.add(1, {"agent": self._config.name})

        except (AgentError, LlmProviderError) as e:
            run.state = TurnState.FAILED
            logger.error(f"Agent turn failed: {e.message}")
            terminal = TurnEvent.error(e.message)
            turns_failed.add(1, {"agent": self._config.name, "error_code": e.error_code})

        except Exception as e:
            run.state = TurnState.FAILED
            logger.exception(f"Agent turn error: {e}")
            terminal = TurnEvent.error(str(e) or "Unknown error")
            turns_failed.add(1, {"agent": self._config.name, "error_code": type(e).__name__})

        turn_rounds.record(run.rounds, {"agent": self._config.name})
        turn_duration.record((time.time() - run.started_at) * 1000, {"agent": self._config.name, "state": run.state.value})
        yield terminal

    def _build_system_prompt(self, system_prompt: str, authenticated: bool) -> str:
        note = self._config.tools_available_note if authenticated else self._config.tools_unavailable_note
        return f"{system_prompt}{note}"

    async def _request_streaming(self, run: TurnRun, system: str, tools: list[ToolDefinition]) -> AsyncIterator[TurnEvent]:
        """Stream one model request, mapping chunks to events."""
        run.last_response = None
        async for chunk in self._llm.chat_stream(run.conversation, system=system, tools=tools or None):
            if chunk.type == LlmStreamChunkType.BLOCK_START:
                if chunk.segment_type == ContentSegmentType.THINKING:
                    yield TurnEvent.thinking_start()
                elif chunk.segment_type == ContentSegmentType.TEXT:
                    run.begin_output_segment()
                    yield TurnEvent.output_start()
            elif chunk.type == LlmStreamChunkType.THINKING_DELTA:
                if chunk.content:
                    yield TurnEvent.thinking_delta(chunk.content)
            elif chunk.type == LlmStreamChunkType.TEXT_DELTA:
                if chunk.content:
                    run.append_output(chunk.content)
                    yield TurnEvent.output_delta(chunk.content)
            elif chunk.type == LlmStreamChunkType.BLOCK_STOP:
                if chunk.segment_type in (ContentSegmentType.THINKING, ContentSegmentType.TEXT):
                    yield TurnEvent.block_stop()
            elif chunk.done:
                run.last_response = chunk.response

        if run.last_response is None:
            raise AgentError("Model stream ended before the response completed", "incomplete_stream", is_retryable=True)

    async def _request_complete(self, run: TurnRun, system: str, tools: list[ToolDefinition]) -> AsyncIterator[TurnEvent]:
        """Send one model request and replay its segments as events."""
        run.last_response = None
        response = await self._llm.chat(run.conversation, system=system, tools=tools or None)

        for segment in response.content:
            if isinstance(segment, ThinkingSegment):
                if segment.is_redacted or not segment.thinking:
                    continue
                yield TurnEvent.thinking_start()
                for piece in self._chunk_thinking(segment.thinking):
                    yield TurnEvent.thinking_delta(piece)
                    await asyncio.sleep(self._config.thinking_chunk_delay)
                yield TurnEvent.block_stop()
            elif isinstance(segment, TextSegment):
                run.begin_output_segment()
                yield TurnEvent.output_start()
                run.append_output(segment.text)
                yield TurnEvent.output_delta(segment.text)
                yield TurnEvent.block_stop()
            elif isinstance(segment, ToolUseSegment):
                continue
            else:
                raise TypeError(f"Unsupported content segment: {type(segment).__name__}")

        run.last_response = response

    def _chunk_thinking(self, text: str) -> list[str]:
        size = self._config.thinking_chunk_size
        return [text[i : i + size] for i in range(0, len(text), size)]

    async def _dispatch(self, call: ToolUseSegment, results: list[ToolResultSegment]) -> AsyncIterator[TurnEvent]:
        """Execute one tool call, reporting progress in the reasoning pane."""
        llm_tool_calls.add(1, {"tool_name": call.name})
        preview = json.dumps(call.input, indent=2)[: self._config.tool_input_preview_chars]

        yield TurnEvent.thinking_delta(f"\n\n> Executing tool: {call.name}...\n")
        yield TurnEvent.thinking_delta(f"  Input: {preview}...\n")

        result = await self._invoker.invoke(call.name, call.input)

        if result.success:
            yield TurnEvent.thinking_delta(f"  ✓ {call.name} completed successfully\n")
            if result.result:
                yield TurnEvent.thinking_delta(f"  Result: {json.dumps(result.result)}\n")
        else:
            yield TurnEvent.thinking_delta(f"  ✗ {call.name} failed: {result.error}\n")

        results.append(ToolResultSegment(tool_use_id=call.id, content=result.to_json(), is_error=not result.success))
