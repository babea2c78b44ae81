"""Tools controller for inspecting and directly invoking workspace tools."""

import logging
from typing import Any, Optional

from classy_fastapi.decorators import get, post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, Field

from application.agents.tool_invoker import ToolInvoker
from application.queries import GetToolManifestQuery

logger = logging.getLogger(__name__)


class InvokeToolRequest(BaseModel):
    """Request body for a direct tool invocation."""

    tool: str = Field(..., min_length=1, description="Name of the tool to invoke")
    params: dict[str, Any] = Field(default_factory=dict, description="Tool input")


class ToolsController(ControllerBase):
    """Controller for workspace tool endpoints."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)
        self._invoker: Optional[ToolInvoker] = None

    @property
    def invoker(self) -> ToolInvoker:
        """Lazy-load ToolInvoker from DI container."""
        if self._invoker is None:
            self._invoker = self.service_provider.get_required_service(ToolInvoker)
        return self._invoker

    @get("/")
    async def list_tools(self) -> Any:
        """Get the tool manifest advertised to the model."""
        result = await self.mediator.execute_async(GetToolManifestQuery())
        return self.process(result)

    @post("/invoke")
    async def invoke_tool(self, body: InvokeToolRequest) -> dict[str, Any]:
        """Invoke a tool outside an agent turn. Failures are reported in the body."""
        logger.info(f"Direct tool invocation: {body.tool}")
        result = await self.invoker.invoke(body.tool, body.params)
        return result.to_dict()
