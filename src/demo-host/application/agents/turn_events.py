"""Events emitted by the agent turn engine.

These are the increments pushed to the client over the event stream. The
`to_dict` shape is the wire payload: ``{"type": ..., "data": {...}}``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TurnEventType(str, Enum):
    """Types of events emitted during an agent turn."""

    STATUS = "status"
    THINKING_START = "thinking_start"
    THINKING_DELTA = "thinking_delta"
    OUTPUT_START = "output_start"
    OUTPUT_DELTA = "output_delta"
    BLOCK_STOP = "block_stop"
    ERROR = "error"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnEventType.ERROR, TurnEventType.COMPLETE)


@dataclass(frozen=True)
class TurnEvent:
    """A single increment of an agent turn.

    Attributes:
        type: Type of the event
        data: Event-specific payload
    """

    type: TurnEventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"type": self.type.value, "data": dict(self.data)}

    @classmethod
    def status(cls, message: str) -> "TurnEvent":
        return cls(TurnEventType.STATUS, {"message": message})

    @classmethod
    def thinking_start(cls) -> "TurnEvent":
        return cls(TurnEventType.THINKING_START)

    @classmethod
    def thinking_delta(cls, text: str) -> "TurnEvent":
        return cls(TurnEventType.THINKING_DELTA, {"content": text})

    @classmethod
    def output_start(cls) -> "TurnEvent":
        return cls(TurnEventType.OUTPUT_START)

    @classmethod
    def output_delta(cls, text: str) -> "TurnEvent":
        return cls(TurnEventType.OUTPUT_DELTA, {"content": text})

    @classmethod
    def block_stop(cls) -> "TurnEvent":
        return cls(TurnEventType.BLOCK_STOP)

    @classmethod
    def error(cls, message: str) -> "TurnEvent":
        return cls(TurnEventType.ERROR, {"message": message})

    @classmethod
    def complete(cls, final_output: str) -> "TurnEvent":
        return cls(TurnEventType.COMPLETE, {"output": final_output})
