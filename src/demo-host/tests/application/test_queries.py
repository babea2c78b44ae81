"""Application layer query handler tests."""

from typing import Any

import pytest
from neuroglia.core import OperationResult

from application.queries import GetDemoStepsQuery, GetDemoStepsQueryHandler, GetToolManifestQuery, GetToolManifestQueryHandler
from domain.demo_script import DemoScript, build_demo_steps


class TestGetDemoStepsQuery:
    """Test GetDemoStepsQuery handler."""

    @pytest.fixture
    def handler(self) -> GetDemoStepsQueryHandler:
        """Create a handler over the real demo script."""
        return GetDemoStepsQueryHandler(demo_script=DemoScript(build_demo_steps()))

    @pytest.mark.asyncio
    async def test_all_steps(self, handler: GetDemoStepsQueryHandler) -> None:
        """Test that all steps are returned in order."""
        result: OperationResult[Any] = await handler.handle_async(GetDemoStepsQuery())

        assert result.is_success
        assert result.status_code == 200
        assert [step["number"] for step in result.data] == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_agent_steps_only(self, handler: GetDemoStepsQueryHandler) -> None:
        """Test filtering to agent steps."""
        result: OperationResult[Any] = await handler.handle_async(GetDemoStepsQuery(agent_steps_only=True))

        assert result.is_success
        assert {step["type"] for step in result.data} == {"agent_action"}


class TestGetToolManifestQuery:
    """Test GetToolManifestQuery handler."""

    @pytest.mark.asyncio
    async def test_manifest(self) -> None:
        """Test that the manifest lists the workspace tools."""
        handler = GetToolManifestQueryHandler()

        result: OperationResult[Any] = await handler.handle_async(GetToolManifestQuery())

        assert result.is_success
        assert [tool["name"] for tool in result.data] == [
            "send_email",
            "search_drive",
            "create_calendar_event",
            "get_calendar_availability",
        ]
