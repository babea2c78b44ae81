"""Application services for the Demo Host."""

from application.services.event_stream import SSE_HEADERS, TurnEventStream, encode_event
from application.services.turn_service import InvalidStepError, TurnService, TurnServiceError

__all__ = [
    "SSE_HEADERS",
    "InvalidStepError",
    "TurnEventStream",
    "TurnService",
    "TurnServiceError",
    "encode_event",
]
