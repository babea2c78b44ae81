"""Tests for the Agent API controller."""

import json
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.responses import JSONResponse, StreamingResponse
from neuroglia.core import OperationResult

from api.controllers.agent_controller import AgentController, RunStepRequest
from application.agents.agent_config import AgentConfig
from application.agents.llm_provider import (
    LlmConfig,
    LlmProvider,
    LlmProviderType,
    LlmResponse,
    LlmStreamChunk,
    LlmStreamChunkType,
    TextSegment,
    ThinkingSegment,
)
from application.agents.turn_engine import AgentTurnEngine
from application.services.turn_service import TurnService
from domain.demo_script import DemoScript, build_demo_steps

RESPONSE = LlmResponse(
    content=[ThinkingSegment(thinking="Drafting.", signature="sig"), TextSegment(text="Subject: Hi\n\n---\nHello Marcus\n---")],
    stop_reason="end_turn",
)


class OneShotLlmProvider(LlmProvider):
    """Provider answering every request with the same final response."""

    def __init__(self) -> None:
        super().__init__(LlmConfig(model="test-model"))
        self.request_count = 0

    @property
    def provider_type(self) -> LlmProviderType:
        return LlmProviderType.ANTHROPIC

    async def chat(self, conversation, system, tools=None) -> LlmResponse:
        self.request_count += 1
        return RESPONSE

    async def chat_stream(self, conversation, system, tools=None) -> AsyncIterator[LlmStreamChunk]:
        self.request_count += 1
        for segment in RESPONSE.content:
            yield LlmStreamChunk(type=LlmStreamChunkType.BLOCK_START, segment_type=segment.type)
            if isinstance(segment, ThinkingSegment):
                yield LlmStreamChunk(type=LlmStreamChunkType.THINKING_DELTA, segment_type=segment.type, content=segment.thinking)
            else:
                yield LlmStreamChunk(type=LlmStreamChunkType.TEXT_DELTA, segment_type=segment.type, content=segment.text)
            yield LlmStreamChunk(type=LlmStreamChunkType.BLOCK_STOP, segment_type=segment.type)
        yield LlmStreamChunk(type=LlmStreamChunkType.DONE, response=RESPONSE)

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass


async def read_frames(response: StreamingResponse) -> list[str]:
    return [chunk if isinstance(chunk, str) else chunk.decode("utf-8") async for chunk in response.body_iterator]


class TestAgentController:
    """Test AgentController endpoints."""

    @pytest.fixture
    def llm(self) -> OneShotLlmProvider:
        """Create the scripted model."""
        return OneShotLlmProvider()

    @pytest.fixture
    def turn_service(self, llm: OneShotLlmProvider) -> TurnService:
        """Create a TurnService over the real demo script and engine."""
        auth = MagicMock()
        auth.is_authenticated.return_value = False
        engine = AgentTurnEngine(llm=llm, invoker=MagicMock(), auth=auth, config=AgentConfig(thinking_chunk_delay=0.0))
        return TurnService(engine=engine, script=DemoScript(build_demo_steps()))

    @pytest.fixture
    def mock_mediator(self) -> MagicMock:
        """Create a mock mediator."""
        mock = MagicMock()
        mock.execute_async = AsyncMock()
        return mock

    @pytest.fixture
    def controller(self, turn_service: TurnService, mock_mediator: MagicMock) -> AgentController:
        """Create an AgentController resolving the real TurnService."""
        service_provider = MagicMock()
        service_provider.get_required_service.side_effect = lambda t: turn_service if t is TurnService else MagicMock()
        return AgentController(service_provider=service_provider, mapper=MagicMock(), mediator=mock_mediator)

    # =========================================================================
    # POST /run
    # =========================================================================

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"stepId": "does-not-exist"},
            {"stepId": "customer-interested"},
            {"stepId": ""},
            {},
        ],
    )
    async def test_run_invalid_step(self, controller: AgentController, llm: OneShotLlmProvider, body: dict) -> None:
        """Test that unknown, simulated and missing steps get 400 and no stream."""
        # Act
        response = await controller.run_step(RunStepRequest.model_validate(body))

        # Assert
        assert isinstance(response, JSONResponse)
        assert response.status_code == 400
        assert json.loads(response.body) == {"error": "Invalid step"}
        assert llm.request_count == 0

    @pytest.mark.asyncio
    async def test_run_valid_step_streams_events(self, controller: AgentController, llm: OneShotLlmProvider) -> None:
        """Test that an agent step answers with SSE frames ending in complete."""
        # Act
        response = await controller.run_step(RunStepRequest.model_validate({"stepId": "send-outreach"}))
        frames = await read_frames(response)

        # Assert
        assert isinstance(response, StreamingResponse)
        assert response.status_code == 200
        assert response.media_type == "text/event-stream"
        assert response.headers["cache-control"] == "no-cache"
        assert all(frame.startswith("data: ") and frame.endswith("\n\n") for frame in frames)

        events = [json.loads(frame[len("data: ") :]) for frame in frames]
        assert events[0] == {"type": "status", "data": {"message": "Starting agent..."}}
        assert events[-1] == {"type": "complete", "data": {"output": "Subject: Hi\n\n---\nHello Marcus\n---"}}
        assert [e["type"] for e in events].count("complete") == 1
        assert llm.request_count == 1

    @pytest.mark.asyncio
    async def test_stream_not_started_until_read(self, controller: AgentController, llm: OneShotLlmProvider) -> None:
        """Test that the model is only called once the response body is read."""
        response = await controller.run_step(RunStepRequest.model_validate({"stepId": "send-outreach"}))

        assert llm.request_count == 0

        await read_frames(response)

        assert llm.request_count == 1

    # =========================================================================
    # GET /steps
    # =========================================================================

    @pytest.mark.asyncio
    async def test_list_steps(self, controller: AgentController, mock_mediator: MagicMock) -> None:
        """Test that the agent-only filter is passed to the query."""
        # Arrange
        mock_result = MagicMock(spec=OperationResult)
        mock_result.is_success = True
        mock_result.data = []
        mock_result.status = 200
        mock_mediator.execute_async.return_value = mock_result

        # Act
        await controller.list_steps(agent_only=True)

        # Assert
        query = mock_mediator.execute_async.call_args[0][0]
        assert query.agent_steps_only is True
