"""Demo step models.

A demo is a fixed sequence of steps. Agent steps are executed live by the
language model; simulated steps replay canned counterparty content (an
inbound email or a call transcript).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class StepType(str, Enum):
    """Kind of demo step."""

    AGENT_ACTION = "agent_action"
    SIMULATED_RESPONSE = "simulated_response"


class SimulatedContentType(str, Enum):
    """Kind of canned content shown by a simulated step."""

    EMAIL = "email"
    TRANSCRIPT = "transcript"


@dataclass(frozen=True)
class AgentContext:
    """Prompt material for an agent step."""

    system_prompt: str
    task: str


@dataclass(frozen=True)
class SimulatedContent:
    """Canned content for a simulated step."""

    type: SimulatedContentType
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DemoStep:
    """A single step of the scripted demo."""

    id: str
    number: int
    title: str
    description: str
    type: StepType
    requires_approval: bool = False
    tools: tuple[str, ...] = ()
    agent_context: Optional[AgentContext] = None
    simulated_content: Optional[SimulatedContent] = None

    @property
    def is_agent_action(self) -> bool:
        """True when the step is executed live by the agent."""
        return self.type == StepType.AGENT_ACTION and self.agent_context is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses (prompts are not exposed)."""
        result: dict[str, Any] = {
            "id": self.id,
            "number": self.number,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "requires_approval": self.requires_approval,
            "tools": list(self.tools),
        }
        if self.simulated_content is not None:
            result["simulated_content"] = {
                "type": self.simulated_content.type.value,
                "data": dict(self.simulated_content.data),
            }
        return result


@dataclass(frozen=True)
class TurnRequest:
    """Request to run one agent step. Immutable once issued."""

    step_id: str
