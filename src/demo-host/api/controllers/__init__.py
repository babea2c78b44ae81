"""API controllers for the Demo Host.

Controllers are auto-discovered by WebApplicationBuilder from this package.
"""

from api.controllers.agent_controller import AgentController
from api.controllers.auth_controller import AuthController
from api.controllers.tools_controller import ToolsController

__all__ = [
    "AgentController",
    "AuthController",
    "ToolsController",
]
