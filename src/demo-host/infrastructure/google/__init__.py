"""Google Workspace collaborators."""

from infrastructure.google.auth_capability import FileTokenAuthCapability
from infrastructure.google.workspace_client import GoogleWorkspaceClient, WorkspaceAuthError, WorkspaceError, build_raw_message

__all__ = [
    "FileTokenAuthCapability",
    "GoogleWorkspaceClient",
    "WorkspaceAuthError",
    "WorkspaceError",
    "build_raw_message",
]
