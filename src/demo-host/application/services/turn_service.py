"""Turn orchestration service.

Resolves a turn request against the demo script and hands valid agent steps
to the turn engine. Invalid requests are rejected before any stream is
opened, so no partial state is ever created for them.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any, Optional
from uuid import uuid4

from neuroglia.hosting.abstractions import ApplicationBuilderBase

from application.agents.turn_engine import AgentTurnEngine
from application.agents.turn_events import TurnEvent
from application.services.event_stream import TurnEventStream
from domain.demo_script import DemoScript
from domain.models.demo_step import DemoStep, TurnRequest

logger = logging.getLogger(__name__)


class TurnServiceError(Exception):
    """Error raised while preparing a turn.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code
        is_retryable: Whether the operation might succeed on retry
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        error_code: str = "turn_error",
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


class InvalidStepError(TurnServiceError):
    """The requested step does not exist or is not an agent step."""

    def __init__(self, step_id: str) -> None:
        super().__init__("Invalid step", "invalid_step", details={"step_id": step_id})
        self.step_id = step_id


class TurnService:
    """Runs demo steps through the agent turn engine."""

    def __init__(self, engine: AgentTurnEngine, script: DemoScript) -> None:
        self._engine = engine
        self._script = script

    @property
    def script(self) -> DemoScript:
        return self._script

    def resolve_step(self, step_id: Optional[str]) -> DemoStep:
        """Find the agent step a request refers to.

        Raises:
            InvalidStepError: If the id is unknown or names a simulated step
        """
        step = self._script.find(step_id) if step_id else None
        if step is None or not step.is_agent_action:
            logger.warning(f"Rejected turn request for step '{step_id}'")
            raise InvalidStepError(step_id or "")
        return step

    def run_step(self, step: DemoStep) -> AsyncIterator[TurnEvent]:
        """Start the agent turn for a resolved step."""
        if step.agent_context is None:
            raise InvalidStepError(step.id)
        logger.info(f"▶️ Running step {step.number} '{step.id}'")
        return self._engine.run_stream(step.agent_context)

    def open_stream(self, request: TurnRequest) -> TurnEventStream:
        """Validate a request and return the event stream for it.

        Validation happens eagerly; the engine only starts when the stream
        is iterated.
        """
        step = self.resolve_step(request.step_id)
        request_id = str(uuid4())
        logger.debug(f"Turn {request_id} opened for step '{step.id}'")
        return TurnEventStream(self.run_step(step), request_id=request_id)

    @staticmethod
    def configure(builder: ApplicationBuilderBase) -> None:
        """
        Configure TurnService as a singleton in the DI container.

        Args:
            builder: The application builder
        """
        builder.services.add_singleton(
            TurnService,
            implementation_factory=lambda sp: TurnService(
                engine=sp.get_required_service(AgentTurnEngine),
                script=sp.get_required_service(DemoScript),
            ),
        )
        logger.info("Configured TurnService as singleton service")
