"""Agent controller for running demo steps and streaming their turns."""

import logging
from typing import Any, Optional

from classy_fastapi.decorators import get, post
from fastapi import status
from fastapi.responses import JSONResponse, StreamingResponse
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from opentelemetry import trace
from pydantic import BaseModel, Field

from application.queries import GetDemoStepsQuery
from application.services.turn_service import InvalidStepError, TurnService
from domain.models.demo_step import TurnRequest

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class RunStepRequest(BaseModel):
    """Request body for running an agent step."""

    model_config = {"populate_by_name": True}

    step_id: Optional[str] = Field(None, alias="stepId", description="ID of the demo step to run")


class AgentController(ControllerBase):
    """Controller for agent turn endpoints."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)
        self._turn_service: Optional[TurnService] = None

    @property
    def turn_service(self) -> TurnService:
        """Lazy-load TurnService from DI container."""
        if self._turn_service is None:
            self._turn_service = self.service_provider.get_required_service(TurnService)
        return self._turn_service

    @get("/steps")
    async def list_steps(self, agent_only: bool = False) -> Any:
        """List the demo script steps (prompts are not exposed)."""
        result = await self.mediator.execute_async(GetDemoStepsQuery(agent_steps_only=agent_only))
        return self.process(result)

    @post("/run")
    async def run_step(self, body: RunStepRequest) -> StreamingResponse:
        """
        Run an agent step and stream its turn.

        Uses Server-Sent Events (SSE) to stream:
        - Status and reasoning increments
        - Output increments
        - Exactly one terminal `complete` or `error` event

        Unknown or non-agent steps are rejected with 400 before any stream opens.
        """
        with tracer.start_as_current_span("agent.run_step") as span:
            span.set_attribute("agent.step_id", body.step_id or "")
            try:
                stream = self.turn_service.open_stream(TurnRequest(step_id=body.step_id or ""))
            except InvalidStepError as e:
                span.set_attribute("error", True)
                return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})

            return stream.to_response()
