"""Workspace Tool Registry.

This module defines the Google Workspace tools the agent can call. The
registry is read-only: it is used to advertise capabilities to the model
and to bound what the tool invoker accepts.

Workspace Tools:
- send_email: Send an email from the connected Gmail account
- search_drive: Search Google Drive by file name
- create_calendar_event: Create a calendar event with optional attendees
- get_calendar_availability: List busy slots for a given day
"""

import logging
from enum import Enum
from typing import Any, Optional

from domain.models.tool import ToolDefinition, ToolParameter

logger = logging.getLogger(__name__)


class WorkspaceToolName(str, Enum):
    """Names of available workspace tools."""

    SEND_EMAIL = "send_email"
    SEARCH_DRIVE = "search_drive"
    CREATE_CALENDAR_EVENT = "create_calendar_event"
    GET_CALENDAR_AVAILABILITY = "get_calendar_availability"


# =============================================================================
# Workspace Tool Definitions
# =============================================================================

SEND_EMAIL_TOOL = ToolDefinition(
    name=WorkspaceToolName.SEND_EMAIL.value,
    description="Send an email via Gmail. Use this to send outreach, follow-ups and proposals.",
    parameters=(
        ToolParameter(name="to", type="string", description="Recipient email address"),
        ToolParameter(name="subject", type="string", description="Email subject line"),
        ToolParameter(name="body", type="string", description="Email body content (plain text)"),
    ),
)

SEARCH_DRIVE_TOOL = ToolDefinition(
    name=WorkspaceToolName.SEARCH_DRIVE.value,
    description="Search Google Drive for files by name. Returns matching files with links.",
    parameters=(ToolParameter(name="query", type="string", description="Text to look for in file names"),),
)

CREATE_CALENDAR_EVENT_TOOL = ToolDefinition(
    name=WorkspaceToolName.CREATE_CALENDAR_EVENT.value,
    description="Create a Google Calendar event with a video conference link and invite attendees.",
    parameters=(
        ToolParameter(name="summary", type="string", description="Event title"),
        ToolParameter(name="start_time", type="string", description="Start time in ISO 8601 format"),
        ToolParameter(name="end_time", type="string", description="End time in ISO 8601 format"),
        ToolParameter(name="description", type="string", description="Event description or agenda", required=False),
        ToolParameter(
            name="attendees",
            type="array",
            description="Email addresses of attendees",
            required=False,
            items_type="string",
        ),
    ),
)

GET_CALENDAR_AVAILABILITY_TOOL = ToolDefinition(
    name=WorkspaceToolName.GET_CALENDAR_AVAILABILITY.value,
    description="List the busy time slots on the calendar for a given day.",
    parameters=(ToolParameter(name="date", type="string", description="Day to check, as an ISO date (YYYY-MM-DD)"),),
)


# Registry of all workspace tools
WORKSPACE_TOOLS: dict[str, ToolDefinition] = {
    SEND_EMAIL_TOOL.name: SEND_EMAIL_TOOL,
    SEARCH_DRIVE_TOOL.name: SEARCH_DRIVE_TOOL,
    CREATE_CALENDAR_EVENT_TOOL.name: CREATE_CALENDAR_EVENT_TOOL,
    GET_CALENDAR_AVAILABILITY_TOOL.name: GET_CALENDAR_AVAILABILITY_TOOL,
}

WORKSPACE_TOOL_NAMES: frozenset[str] = frozenset(WORKSPACE_TOOLS.keys())


# =============================================================================
# Registry Helpers
# =============================================================================


def is_workspace_tool(tool_name: str) -> bool:
    """Check if a tool name is a registered workspace tool.

    Args:
        tool_name: Name of the tool to check

    Returns:
        True if the tool is registered
    """
    return tool_name in WORKSPACE_TOOL_NAMES


def get_workspace_tool(tool_name: str) -> Optional[ToolDefinition]:
    """Get a workspace tool definition by name.

    Args:
        tool_name: Name of the tool

    Returns:
        ToolDefinition if found, None otherwise
    """
    return WORKSPACE_TOOLS.get(tool_name)


def get_all_workspace_tools() -> list[ToolDefinition]:
    """Get all registered workspace tool definitions."""
    return list(WORKSPACE_TOOLS.values())


def get_workspace_tool_manifest() -> list[dict[str, Any]]:
    """Get the tool manifest in Messages API format.

    Returns:
        List of {name, description, input_schema} dictionaries
    """
    return [tool.to_anthropic_format() for tool in WORKSPACE_TOOLS.values()]
