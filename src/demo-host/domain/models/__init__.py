"""Domain models for the demo host.

Value objects and domain models.
"""

from domain.models.demo_step import AgentContext, DemoStep, SimulatedContent, SimulatedContentType, StepType, TurnRequest
from domain.models.tool import ToolDefinition, ToolParameter
from domain.models.workspace import BusySlot, CalendarEventResult, DriveFile, EmailSendResult

__all__ = [
    "AgentContext",
    "DemoStep",
    "SimulatedContent",
    "SimulatedContentType",
    "StepType",
    "TurnRequest",
    "ToolDefinition",
    "ToolParameter",
    "BusySlot",
    "CalendarEventResult",
    "DriveFile",
    "EmailSendResult",
]
