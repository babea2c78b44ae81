"""Get demo steps query with handler."""

from dataclasses import dataclass
from typing import Any

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler

from domain.demo_script import DemoScript


@dataclass
class GetDemoStepsQuery(Query[OperationResult[list[dict[str, Any]]]]):
    """Query to retrieve the demo script catalog."""

    agent_steps_only: bool = False


class GetDemoStepsQueryHandler(QueryHandler[GetDemoStepsQuery, OperationResult[list[dict[str, Any]]]]):
    """Handle demo step retrieval.

    Prompts stay on the server; only the catalog view of each step is returned.
    """

    def __init__(self, demo_script: DemoScript):
        super().__init__()
        self.demo_script = demo_script

    async def handle_async(self, request: GetDemoStepsQuery) -> OperationResult[list[dict[str, Any]]]:
        """Handle get demo steps query."""
        steps = self.demo_script.agent_steps() if request.agent_steps_only else self.demo_script.steps
        return self.ok([step.to_dict() for step in steps])
