"""Tool invocation for agent turns.

This module provides the ToolInvoker which maps a tool call requested by the
model onto exactly one call of a Google Workspace collaborator, and converts
every outcome into a ToolResult. The invoker never raises: unknown tools,
collaborator failures and raised exceptions all become failed results that
are fed back to the model.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from application.agents.workspace_tools import WorkspaceToolName, is_workspace_tool
from domain.models.workspace import BusySlot, CalendarEventResult, DriveFile, EmailSendResult
from observability.metrics import tool_execution_count, tool_execution_errors, tool_execution_time

log = logging.getLogger(__name__)


class WorkspaceToolsProtocol(Protocol):
    """Protocol for the Google Workspace collaborator."""

    async def send_email(self, to: str, subject: str, body: str) -> EmailSendResult:
        ...

    async def search_files(self, query: str) -> list[DriveFile]:
        ...

    async def create_event(
        self,
        summary: str,
        start: str,
        end: str,
        description: Optional[str] = None,
        attendees: Optional[list[str]] = None,
    ) -> CalendarEventResult:
        ...

    async def get_availability(self, date: str) -> list[BusySlot]:
        ...


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a single tool invocation.

    Attributes:
        success: Whether the invocation succeeded
        result: Normalized payload (only on success)
        error: Error message (only on failure)
    """

    success: bool
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.success and self.result is not None:
            raise ValueError("A failed ToolResult cannot carry a result payload")

    @classmethod
    def ok(cls, result: dict[str, Any]) -> "ToolResult":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        payload: dict[str, Any] = {"success": self.success}
        if self.result is not None:
            payload["result"] = self.result
        if self.error is not None:
            payload["error"] = self.error
        return payload

    def to_json(self) -> str:
        """Serialize for the model's tool result content."""
        return json.dumps(self.to_dict())


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _as_str(value)


def _as_str_list(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [_as_str(item) for item in value]
    return [_as_str(value)]


class ToolInvoker:
    """Executes workspace tool calls on behalf of the agent.

    Example:
        >>> invoker = ToolInvoker(workspace_client)
        >>> result = await invoker.invoke("search_drive", {"query": "case study"})
        >>> result.success
        True
    """

    def __init__(self, workspace: WorkspaceToolsProtocol) -> None:
        """Initialize the ToolInvoker.

        Args:
            workspace: Collaborator performing the Gmail, Drive and Calendar operations
        """
        self._workspace = workspace

    async def invoke(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolResult:
        """Invoke a tool by name.

        Args:
            name: Name of the tool requested by the model
            arguments: Tool input as produced by the model

        Returns:
            ToolResult describing the outcome (never raises)
        """
        args = arguments if isinstance(arguments, dict) else {}
        start_time = time.time()

        if not is_workspace_tool(name):
            log.warning(f"🔧 Unknown tool requested: {name}")
            tool_execution_errors.add(1, {"tool_name": name, "reason": "unknown_tool"})
            return ToolResult.failed(f"Unknown tool: {name}")

        log.info(f"🔧 Tool execution requested: {name}({args})")
        tool_execution_count.add(1, {"tool_name": name})

        try:
            result = await self._dispatch(WorkspaceToolName(name), args)
        except Exception as e:
            log.error(f"🔧 Tool execution error: {name} - {e}")
            result = ToolResult.failed(str(e) or type(e).__name__)

        execution_time_ms = (time.time() - start_time) * 1000
        tool_execution_time.record(execution_time_ms, {"tool_name": name})

        if result.success:
            log.info(f"🔧 Tool executed successfully: {name} in {execution_time_ms:.2f}ms")
        else:
            log.warning(f"🔧 Tool execution failed: {name} - {result.error}")
            tool_execution_errors.add(1, {"tool_name": name, "reason": "failed"})
        return result

    async def _dispatch(self, name: WorkspaceToolName, args: dict[str, Any]) -> ToolResult:
        if name == WorkspaceToolName.SEND_EMAIL:
            sent = await self._workspace.send_email(
                to=_as_str(args.get("to")),
                subject=_as_str(args.get("subject")),
                body=_as_str(args.get("body")),
            )
            if not sent.success:
                return ToolResult.failed(sent.error or "Failed to send email")
            return ToolResult.ok({"messageId": sent.message_id})

        if name == WorkspaceToolName.SEARCH_DRIVE:
            files = await self._workspace.search_files(_as_str(args.get("query")))
            return ToolResult.ok({"files": [f.to_dict() for f in files], "count": len(files)})

        if name == WorkspaceToolName.CREATE_CALENDAR_EVENT:
            created = await self._workspace.create_event(
                summary=_as_str(args.get("summary")),
                start=_as_str(args.get("start_time")),
                end=_as_str(args.get("end_time")),
                description=_as_optional_str(args.get("description")),
                attendees=_as_str_list(args.get("attendees")),
            )
            if not created.success:
                return ToolResult.failed(created.error or "Failed to create event")
            return ToolResult.ok({"eventId": created.event_id, "eventLink": created.link})

        if name == WorkspaceToolName.GET_CALENDAR_AVAILABILITY:
            date = _as_str(args.get("date"))
            busy = await self._workspace.get_availability(date)
            return ToolResult.ok({"date": date, "busy": [slot.to_dict() for slot in busy], "count": len(busy)})

        return ToolResult.failed(f"Unknown tool: {name.value}")
