"""Unit tests for the SSE transport."""

import json

import pytest

from application.agents.turn_events import TurnEvent, TurnEventType
from application.services.event_stream import SSE_MEDIA_TYPE, TurnEventStream, encode_event


class TrackedEvents:
    """Async iterator over prepared events that counts aclose() calls."""

    def __init__(self, events, fail_after=None):
        self._events = list(events)
        self._fail_after = fail_after
        self._index = 0
        self.close_count = 0
        self.consumed = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._fail_after is not None and self._index == self._fail_after:
            raise RuntimeError("engine crashed")
        if self._index >= len(self._events):
            raise StopAsyncIteration
        event = self._events[self._index]
        self._index += 1
        self.consumed += 1
        return event

    async def aclose(self):
        self.close_count += 1


def parse(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: ") : -2])


class TestEncodeEvent:
    """Test frame encoding."""

    def test_frame_format(self):
        """Test the data: <JSON> blank-line framing."""
        frame = encode_event(TurnEvent.output_delta("Hi"))

        assert frame == 'data: {"type": "output_delta", "data": {"content": "Hi"}}\n\n'

    def test_newlines_stay_inside_json(self):
        """Test that content newlines never break framing."""
        frame = encode_event(TurnEvent.thinking_delta("a\n\nb"))

        assert frame.count("\n\n") == 1
        assert parse(frame)["data"]["content"] == "a\n\nb"


class TestTurnEventStream:
    """Test frame production and source cleanup."""

    @pytest.mark.asyncio
    async def test_frames_until_terminal(self):
        """Test that nothing is written after the terminal event."""
        source = TrackedEvents([TurnEvent.status("s"), TurnEvent.complete("out"), TurnEvent.status("late")])
        stream = TurnEventStream(source)

        frames = [parse(frame) async for frame in stream.frames()]

        assert [f["type"] for f in frames] == ["status", "complete"]
        assert stream.terminal_sent
        assert source.close_count == 1

    @pytest.mark.asyncio
    async def test_missing_terminal_is_synthesized(self):
        """Test that a source ending early gets an error frame."""
        source = TrackedEvents([TurnEvent.status("s")])
        stream = TurnEventStream(source)

        frames = [parse(frame) async for frame in stream.frames()]

        assert frames[-1] == {"type": "error", "data": {"message": "Agent stream ended unexpectedly"}}
        assert source.close_count == 1

    @pytest.mark.asyncio
    async def test_source_failure_becomes_error_frame(self):
        """Test that a failing source produces one error frame."""
        source = TrackedEvents([TurnEvent.status("s")], fail_after=1)
        stream = TurnEventStream(source)

        frames = [parse(frame) async for frame in stream.frames()]

        assert frames[-1] == {"type": "error", "data": {"message": "engine crashed"}}
        assert sum(1 for f in frames if TurnEventType(f["type"]).is_terminal) == 1
        assert source.close_count == 1

    @pytest.mark.asyncio
    async def test_client_disconnect_closes_source(self):
        """Test that closing the writer mid-stream closes the source once."""
        source = TrackedEvents([TurnEvent.status("a"), TurnEvent.thinking_delta("b"), TurnEvent.complete("c")])
        stream = TurnEventStream(source)

        frames = stream.frames()
        await frames.__anext__()
        await frames.aclose()
        await stream.aclose()

        assert stream.closed
        assert source.close_count == 1
        assert source.consumed == 1

    @pytest.mark.asyncio
    async def test_response_headers(self):
        """Test the streaming response media type and caching headers."""
        stream = TurnEventStream(TrackedEvents([TurnEvent.complete("x")]))

        response = stream.to_response()

        assert response.media_type == SSE_MEDIA_TYPE
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
