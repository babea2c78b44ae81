"""Application settings configuration for the Demo Host."""

import logging
import sys
from typing import Optional

from neuroglia.hosting.abstractions import ApplicationSettings


class Settings(ApplicationSettings):
    """Demo Host settings with Anthropic and Google Workspace configuration."""

    # Debugging Configuration
    debug: bool = True
    environment: str = "development"  # development, production
    log_level: str = "INFO"

    # Application Configuration
    app_name: str = "Sales Agent Demo Host"
    app_version: str = "1.0.0"
    app_url: str = "http://localhost:8060"  # External URL for the terminal client
    app_host: str = "127.0.0.1"  # Uvicorn bind address
    app_port: int = 8060  # Uvicorn port

    # Observability Configuration
    service_name: str = "demo-host"
    service_version: str = app_version
    deployment_environment: str = "development"

    observability_enabled: bool = True
    observability_metrics_enabled: bool = True
    observability_tracing_enabled: bool = True
    observability_logging_enabled: bool = True
    observability_health_endpoint: bool = True
    observability_metrics_endpoint: bool = True
    observability_ready_endpoint: bool = True
    observability_health_path: str = "/health"
    observability_metrics_path: str = "/metrics"
    observability_ready_path: str = "/ready"
    observability_health_checks: list[str] = []

    otel_enabled: bool = False  # Optional - enable for tracing
    otel_endpoint: str = "http://otel-collector:4317"
    otel_protocol: str = "grpc"
    otel_timeout: int = 10
    otel_console_export: bool = False
    otel_instrument_fastapi: bool = True
    otel_instrument_httpx: bool = True
    otel_instrument_logging: bool = True
    otel_resource_attributes: dict = {}

    # CORS Configuration
    enable_cors: bool = True
    cors_origins: list[str] = ["http://localhost:8060", "http://localhost:3000"]

    # ==========================================================================
    # Anthropic Configuration
    # ==========================================================================
    anthropic_api_key: Optional[str] = None  # Set via DEMO_HOST_ANTHROPIC_API_KEY
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_api_version: str = "2023-06-01"
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 16000
    anthropic_thinking_budget_tokens: int = 10000  # Extended thinking budget per request
    anthropic_timeout: float = 120.0  # Thinking requests can take a while
    anthropic_stream: bool = True  # Stream responses instead of chunking complete ones

    # ==========================================================================
    # Agent Configuration
    # ==========================================================================
    agent_name: str = "sales-agent"
    agent_max_rounds: int = 10  # Max model requests per step (prevents infinite loops)
    thinking_chunk_size: int = 100  # Reasoning piece size in non-streaming mode
    thinking_chunk_delay: float = 0.01  # Seconds between reasoning pieces
    tool_input_preview_chars: int = 200  # Tool input echoed in the reasoning pane

    # ==========================================================================
    # Google Workspace Configuration
    # ==========================================================================
    google_token_path: str = ".google-tokens.json"  # Written by the OAuth callback
    google_client_id: Optional[str] = None  # OAuth client used to refresh expired access tokens
    google_client_secret: Optional[str] = None
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_api_timeout: float = 30.0
    google_calendar_time_zone: str = "America/Los_Angeles"

    # ==========================================================================
    # Demo Configuration
    # ==========================================================================
    # Where agent emails are actually delivered (point at your own inbox for rehearsals)
    demo_prospect_email: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "DEMO_HOST_"  # All env vars prefixed with DEMO_HOST_
        case_sensitive = False
        extra = "ignore"


app_settings = Settings()


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
