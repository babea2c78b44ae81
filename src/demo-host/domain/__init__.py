"""Domain layer for the demo host.

Contains:
- models/: Value objects (demo steps, tool definitions, workspace results)
- demo_script.py: The fixed sales demo script
"""

from domain.demo_script import PROSPECT, SENDER, DemoScript, build_demo_steps
from domain.models import AgentContext, DemoStep, SimulatedContent, SimulatedContentType, StepType, ToolDefinition, ToolParameter, TurnRequest

__all__ = [
    "DemoScript",
    "PROSPECT",
    "SENDER",
    "build_demo_steps",
    "AgentContext",
    "DemoStep",
    "SimulatedContent",
    "SimulatedContentType",
    "StepType",
    "ToolDefinition",
    "ToolParameter",
    "TurnRequest",
]
