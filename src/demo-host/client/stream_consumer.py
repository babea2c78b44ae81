"""Client-side consumer of the agent turn event stream.

Reads the SSE response of ``POST /api/agent/run`` incrementally, reassembles
frames that arrive split across reads, and keeps a StreamState that a
renderer can redraw on every update.
"""

import asyncio
import codecs
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Optional

import httpx

from application.agents.turn_events import TurnEventType

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = "\n\n"
DATA_PREFIX = "data:"


class SseFrameParser:
    """Incremental SSE frame parser.

    Bytes may be split anywhere, including inside a multi-byte character or a
    frame separator; the incomplete tail is kept for the next call.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.malformed_count = 0

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        """Add bytes and return the events completed by them, in order."""
        self._buffer += self._decoder.decode(data)
        *frames, self._buffer = self._buffer.split(FRAME_SEPARATOR)
        events = []
        for frame in frames:
            event = self._parse_frame(frame)
            if event is not None:
                events.append(event)
        return events

    def _parse_frame(self, frame: str) -> Optional[dict[str, Any]]:
        data_lines = [line[len(DATA_PREFIX) :].lstrip(" ") for line in frame.split("\n") if line.startswith(DATA_PREFIX)]
        if not data_lines:
            return None
        payload = "\n".join(data_lines)
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            self.malformed_count += 1
            logger.warning(f"Malformed SSE data: {payload[:200]}")
            return None
        if not isinstance(event, dict) or not isinstance(event.get("type"), str):
            self.malformed_count += 1
            logger.warning(f"SSE frame without an event type: {payload[:200]}")
            return None
        if not isinstance(event.get("data"), dict):
            event["data"] = {}
        return event


@dataclass
class StreamState:
    """What the renderer shows for the current step."""

    is_streaming: bool = False
    thinking: str = ""
    output: str = ""
    status: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class StreamResult:
    """Outcome of a completed step."""

    thinking: str
    output: str
    final_output: str


UpdateCallback = Callable[[StreamState], None]


class AgentStreamConsumer:
    """Runs agent steps against the demo host and tracks their stream.

    Usage:
        consumer = AgentStreamConsumer(base_url="http://localhost:8060", on_update=render)
        result = await consumer.execute_step("send-outreach")

    Only one request is in flight at a time. `cancel()` stops the current one
    without recording an error and leaves the accumulated text untouched.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = "http://localhost:8060",
        on_update: Optional[UpdateCallback] = None,
        run_path: str = "/api/agent/run",
        timeout: float = 300.0,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._base_url = base_url.rstrip("/")
        self._on_update = on_update
        self._run_path = run_path
        self._timeout = timeout
        self._state = StreamState()
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> StreamState:
        return replace(self._state)

    @property
    def is_streaming(self) -> bool:
        return self._state.is_streaming

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Cancel any request and close the HTTP client if it was created here."""
        await self._cancel_and_wait()
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def execute_step(self, step_id: str) -> Optional[StreamResult]:
        """Run a step and follow its stream to the end.

        Returns:
            StreamResult on `complete`; None on error or cancellation
        """
        await self._cancel_and_wait()

        self._generation += 1
        generation = self._generation
        self._state = StreamState(is_streaming=True)
        self._notify(generation)

        task = asyncio.create_task(self._run(step_id, generation))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            # The request task must finish before the client can be closed.
            self.cancel()
            await asyncio.wait({task})
            raise
        finally:
            if self._task is task:
                self._task = None

        if task.cancelled():
            logger.info(f"Step '{step_id}' cancelled")
            return None
        return task.result()

    def cancel(self) -> None:
        """Abort the in-flight request. Accumulated text is kept."""
        task = self._task
        if task is None or task.done():
            return
        self._generation += 1
        task.cancel()
        self._state.is_streaming = False
        if self._on_update is not None:
            self._on_update(replace(self._state))

    def reset(self) -> None:
        self.cancel()
        self._state = StreamState()

    async def _cancel_and_wait(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        self.cancel()
        await asyncio.wait({task})

    def _notify(self, generation: int) -> None:
        if generation == self._generation and self._on_update is not None:
            self._on_update(replace(self._state))

    async def _run(self, step_id: str, generation: int) -> Optional[StreamResult]:
        try:
            client = await self._get_client()
            async with client.stream("POST", self._run_path, json={"stepId": step_id}) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    return self._fail(generation, _http_error_message(response.status_code, body))

                parser = SseFrameParser()
                async for data in response.aiter_bytes():
                    for event in parser.feed(data):
                        if generation != self._generation:
                            return None
                        done, result = self._apply(event, generation)
                        if done:
                            return result

            return self._fail(generation, "Stream ended before the agent finished")

        except httpx.HTTPError as e:
            logger.error(f"Agent stream transport error: {e}")
            return self._fail(generation, str(e) or type(e).__name__)

    def _apply(self, event: dict[str, Any], generation: int) -> tuple[bool, Optional[StreamResult]]:
        """Update the state from one event. Returns (terminal, result)."""
        event_type = event["type"]
        data = event["data"]

        if event_type == TurnEventType.THINKING_DELTA:
            self._state.thinking += str(data.get("content", ""))
        elif event_type == TurnEventType.OUTPUT_DELTA:
            self._state.output += str(data.get("content", ""))
        elif event_type == TurnEventType.STATUS:
            self._state.status = data.get("message")
        elif event_type == TurnEventType.ERROR:
            self._fail(generation, str(data.get("message") or "Unknown error"))
            return True, None
        elif event_type == TurnEventType.COMPLETE:
            self._state.is_streaming = False
            self._notify(generation)
            final_output = data.get("output")
            return True, StreamResult(
                thinking=self._state.thinking,
                output=self._state.output,
                final_output=final_output if isinstance(final_output, str) else self._state.output,
            )
        elif event_type in (TurnEventType.THINKING_START, TurnEventType.OUTPUT_START, TurnEventType.BLOCK_STOP):
            return False, None
        else:
            logger.debug(f"Ignoring unknown event type: {event_type}")
            return False, None

        self._notify(generation)
        return False, None

    def _fail(self, generation: int, message: str) -> None:
        if generation != self._generation:
            return None
        self._state.error = message
        self._state.is_streaming = False
        self._notify(generation)
        return None


def _http_error_message(status_code: int, body: bytes) -> str:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return f"HTTP error: {status_code} - {payload['error']}"
    return f"HTTP error: {status_code}"
