"""Application queries package.

Queries are re-exported here for Neuroglia framework auto-discovery.
"""

from application.queries.get_demo_steps_query import GetDemoStepsQuery, GetDemoStepsQueryHandler
from application.queries.get_tool_manifest_query import GetToolManifestQuery, GetToolManifestQueryHandler

__all__ = [
    "GetDemoStepsQuery",
    "GetDemoStepsQueryHandler",
    "GetToolManifestQuery",
    "GetToolManifestQueryHandler",
]
