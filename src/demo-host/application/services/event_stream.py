"""Server-Sent Events transport for agent turns.

Serializes TurnEvents as ``data: <JSON>\\n\\n`` frames, one per event, and
guarantees that the source event iterator is closed exactly once whether the
turn completes, fails, or the client goes away mid-stream.
"""

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Optional

from fastapi.responses import StreamingResponse

from application.agents.turn_events import TurnEvent

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: TurnEvent) -> str:
    """Encode a single event as an SSE frame."""
    return f"data: {json.dumps(event.to_dict())}\n\n"


class TurnEventStream:
    """Writes a turn's events to an SSE response.

    Example:
        >>> stream = TurnEventStream(engine.run_stream(step.agent_context))
        >>> return stream.to_response()
    """

    def __init__(self, events: AsyncIterator[TurnEvent], request_id: Optional[str] = None) -> None:
        self._events = events
        self._request_id = request_id
        self._closed = False
        self._terminal_sent = False
        self._frames_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    @property
    def frames_sent(self) -> int:
        return self._frames_sent

    async def aclose(self) -> None:
        """Close the source iterator. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._events, "aclose", None)
        if close is not None:
            await close()

    async def frames(self) -> AsyncGenerator[str, None]:
        """Yield encoded frames until the terminal event, then stop."""
        try:
            async for event in self._events:
                yield self._frame(event)
                if event.is_terminal:
                    break

            if not self._terminal_sent:
                logger.warning(f"Turn stream {self._request_id} ended without a terminal event")
                yield self._frame(TurnEvent.error("Agent stream ended unexpectedly"))

        except Exception as e:
            logger.error(f"Error in turn stream {self._request_id}: {e}")
            if not self._terminal_sent:
                yield self._frame(TurnEvent.error(str(e) or "Unknown error"))

        finally:
            await self.aclose()

    def _frame(self, event: TurnEvent) -> str:
        if event.is_terminal:
            self._terminal_sent = True
        self._frames_sent += 1
        return encode_event(event)

    def to_response(self) -> StreamingResponse:
        """Wrap the frames in a streaming HTTP response."""
        return StreamingResponse(
            self.frames(),
            media_type=SSE_MEDIA_TYPE,
            headers=dict(SSE_HEADERS),
        )
