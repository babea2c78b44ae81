"""Get tool manifest query with handler."""

from dataclasses import dataclass
from typing import Any

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler

from application.agents.workspace_tools import get_all_workspace_tools


@dataclass
class GetToolManifestQuery(Query[OperationResult[list[dict[str, Any]]]]):
    """Query to retrieve the workspace tools advertised to the model."""


class GetToolManifestQueryHandler(QueryHandler[GetToolManifestQuery, OperationResult[list[dict[str, Any]]]]):
    """Handle tool manifest retrieval."""

    async def handle_async(self, request: GetToolManifestQuery) -> OperationResult[list[dict[str, Any]]]:
        return self.ok([tool.to_anthropic_format() for tool in get_all_workspace_tools()])
