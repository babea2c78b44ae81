"""Unit tests for the workspace tool registry."""

from application.agents.workspace_tools import (
    WORKSPACE_TOOL_NAMES,
    WorkspaceToolName,
    get_all_workspace_tools,
    get_workspace_tool,
    get_workspace_tool_manifest,
    is_workspace_tool,
)


class TestWorkspaceToolRegistry:
    """Test the registry contents and lookups."""

    def test_registry_holds_four_tools(self):
        """Test that exactly the four workspace tools are registered."""
        assert WORKSPACE_TOOL_NAMES == {
            "send_email",
            "search_drive",
            "create_calendar_event",
            "get_calendar_availability",
        }

    def test_is_workspace_tool(self):
        """Test membership checks."""
        assert is_workspace_tool("send_email")
        assert not is_workspace_tool("delete_everything")

    def test_get_workspace_tool(self):
        """Test lookup by name."""
        tool = get_workspace_tool(WorkspaceToolName.SEARCH_DRIVE.value)

        assert tool is not None
        assert tool.required_fields == ["query"]
        assert get_workspace_tool("unknown") is None

    def test_get_all_returns_copy(self):
        """Test that callers cannot mutate the registry through the list."""
        tools = get_all_workspace_tools()
        tools.clear()

        assert len(get_all_workspace_tools()) == 4


class TestToolManifest:
    """Test the Messages API manifest format."""

    def test_manifest_entries_have_schema(self):
        """Test that every entry has name, description and input_schema."""
        for entry in get_workspace_tool_manifest():
            assert set(entry) == {"name", "description", "input_schema"}
            assert entry["input_schema"]["type"] == "object"

    def test_send_email_schema(self):
        """Test the send_email input schema."""
        manifest = {entry["name"]: entry for entry in get_workspace_tool_manifest()}
        schema = manifest["send_email"]["input_schema"]

        assert set(schema["properties"]) == {"to", "subject", "body"}
        assert schema["required"] == ["to", "subject", "body"]

    def test_calendar_event_optional_fields(self):
        """Test that description and attendees are optional and attendees is a string array."""
        manifest = {entry["name"]: entry for entry in get_workspace_tool_manifest()}
        schema = manifest["create_calendar_event"]["input_schema"]

        assert schema["required"] == ["summary", "start_time", "end_time"]
        assert schema["properties"]["attendees"] == {
            "type": "array",
            "description": "Email addresses of attendees",
            "items": {"type": "string"},
        }
