"""Unit tests for TurnService."""

from unittest.mock import MagicMock

import pytest

from application.agents.turn_events import TurnEvent
from application.services.event_stream import TurnEventStream
from application.services.turn_service import InvalidStepError, TurnService
from domain.demo_script import DemoScript, build_demo_steps
from domain.models.demo_step import TurnRequest


async def _events():
    yield TurnEvent.status("Starting agent...")
    yield TurnEvent.complete("done")


@pytest.fixture
def engine():
    """Create a mock turn engine."""
    mock = MagicMock()
    mock.run_stream = MagicMock(side_effect=lambda context: _events())
    return mock


@pytest.fixture
def service(engine):
    """Create a TurnService over the real demo script."""
    return TurnService(engine=engine, script=DemoScript(build_demo_steps()))


class TestResolveStep:
    """Test request validation."""

    def test_agent_step(self, service):
        """Test that agent steps resolve."""
        step = service.resolve_step("send-outreach")

        assert step.id == "send-outreach"

    @pytest.mark.parametrize("step_id", ["does-not-exist", "customer-interested", "", None])
    def test_invalid_steps(self, service, step_id):
        """Test that unknown, simulated and missing steps are rejected."""
        with pytest.raises(InvalidStepError) as exc_info:
            service.resolve_step(step_id)

        assert exc_info.value.message == "Invalid step"
        assert exc_info.value.error_code == "invalid_step"

    def test_error_to_dict(self):
        """Test error serialization."""
        error = InvalidStepError("nope")

        assert error.to_dict() == {
            "message": "Invalid step",
            "error_code": "invalid_step",
            "is_retryable": False,
            "details": {"step_id": "nope"},
        }


class TestOpenStream:
    """Test stream creation."""

    def test_invalid_step_opens_nothing(self, service, engine):
        """Test that a rejected request never starts the engine."""
        with pytest.raises(InvalidStepError):
            service.open_stream(TurnRequest(step_id="customer-picks-time"))

        engine.run_stream.assert_not_called()

    def test_runs_step_context(self, service, engine):
        """Test that the engine receives the step's prompt material."""
        stream = service.open_stream(TurnRequest(step_id="book-meeting"))

        assert isinstance(stream, TurnEventStream)
        context = engine.run_stream.call_args.args[0]
        assert context == service.script.find("book-meeting").agent_context

    @pytest.mark.asyncio
    async def test_stream_frames(self, service):
        """Test that the opened stream yields the engine's events as frames."""
        stream = service.open_stream(TurnRequest(step_id="send-proposal"))

        frames = [frame async for frame in stream.frames()]

        assert frames == [
            'data: {"type": "status", "data": {"message": "Starting agent..."}}\n\n',
            'data: {"type": "complete", "data": {"output": "done"}}\n\n',
        ]
