"""Demo Host main application entry point with Neuroglia framework."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from neuroglia.hosting.web import SubAppConfig, WebApplicationBuilder
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.observability import Observability
from neuroglia.serialization.json import JsonSerializer

from application.agents import AgentConfig, AgentTurnEngine, ToolInvoker
from application.services.turn_service import TurnService
from application.settings import app_settings, configure_logging
from domain.demo_script import DemoScript, build_demo_steps
from infrastructure.adapters.anthropic_llm_provider import AnthropicLlmProvider
from infrastructure.google.auth_capability import FileTokenAuthCapability
from infrastructure.google.workspace_client import GoogleWorkspaceClient

configure_logging(log_level=app_settings.log_level)
log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the Demo Host application.

    Creates a single API sub-app (/api prefix) serving the agent turn stream,
    the demo step catalog, the Google connection status and the tool endpoints.

    Returns:
        Configured FastAPI application with Neuroglia framework
    """
    log.debug("🚀 Creating Demo Host application...")

    builder = WebApplicationBuilder(app_settings=app_settings)

    # Configure core Neuroglia services
    Mediator.configure(builder, ["application.queries"])
    Mapper.configure(builder, ["application.queries"])
    JsonSerializer.configure(builder, ["domain.models"])
    Observability.configure(builder)

    # Configure infrastructure services
    _configure_infrastructure_services(builder)

    # Add SubApp for API with controllers
    builder.add_sub_app(
        SubAppConfig(
            path="/api",
            name="api",
            title=f"{app_settings.app_name} API",
            description="Streaming agent turns for the scripted sales demo",
            version=app_settings.app_version,
            controllers=["api.controllers"],
            docs_url="/docs",
        )
    )

    # Build the application
    app = builder.build_app_with_lifespan(
        title="Demo Host",
        description="Scripted sales-agent demo with live reasoning and tool use",
        version=app_settings.app_version,
        debug=app_settings.debug,
    )

    if app_settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    log.info("✅ Demo Host application created successfully!")
    log.info("📊 Access points:")
    log.info(f"   - API: http://localhost:{app_settings.app_port}/api")
    log.info(f"   - API Docs: http://localhost:{app_settings.app_port}/api/docs")
    return app


def _configure_infrastructure_services(builder: WebApplicationBuilder) -> None:
    """Configure infrastructure services in the DI container.

    Args:
        builder: The WebApplicationBuilder
    """
    log.info("🔧 Configuring infrastructure services...")

    # Demo script
    script = DemoScript(build_demo_steps(recipient=app_settings.demo_prospect_email))
    builder.services.add_singleton(DemoScript, singleton=script)

    # Google Workspace
    auth = FileTokenAuthCapability(app_settings.google_token_path)
    builder.services.add_singleton(FileTokenAuthCapability, singleton=auth)
    workspace = GoogleWorkspaceClient.configure(builder, auth=auth)

    tool_invoker = ToolInvoker(workspace)
    builder.services.add_singleton(ToolInvoker, singleton=tool_invoker)

    # ==========================================================================
    # LLM Provider and Agent
    # ==========================================================================
    llm_provider = AnthropicLlmProvider.configure(builder)

    agent_config = AgentConfig(
        name=app_settings.agent_name,
        max_rounds=app_settings.agent_max_rounds,
        stream_responses=app_settings.anthropic_stream,
        thinking_chunk_size=app_settings.thinking_chunk_size,
        thinking_chunk_delay=app_settings.thinking_chunk_delay,
        tool_input_preview_chars=app_settings.tool_input_preview_chars,
    )
    engine = AgentTurnEngine(llm=llm_provider, invoker=tool_invoker, auth=auth, config=agent_config)
    builder.services.add_singleton(AgentTurnEngine, singleton=engine)

    TurnService.configure(builder)

    log.info("✅ Infrastructure services configured")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=app_settings.debug,
    )
