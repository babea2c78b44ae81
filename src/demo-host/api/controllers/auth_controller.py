"""Authentication controller reporting and clearing the Google connection."""

import logging
from typing import Any, Optional

from classy_fastapi.decorators import get, post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase

from infrastructure.google.auth_capability import FileTokenAuthCapability

logger = logging.getLogger(__name__)


class AuthController(ControllerBase):
    """Controller for the Google connection status."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)
        self._auth: Optional[FileTokenAuthCapability] = None

    @property
    def auth(self) -> FileTokenAuthCapability:
        """Lazy-load the auth capability from DI container."""
        if self._auth is None:
            self._auth = self.service_provider.get_required_service(FileTokenAuthCapability)
        return self._auth

    @get("/status")
    async def get_status(self) -> dict[str, Any]:
        """Report whether Google tools are available to the agent."""
        return self.auth.status()

    @post("/logout")
    async def logout(self) -> dict[str, Any]:
        """Forget the Google tokens. Later turns run without tools."""
        self.auth.invalidate()
        logger.info("Google connection cleared by client")
        return {"success": True}
