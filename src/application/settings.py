"""Application settings configuration for Mail Agent."""

import logging
import sys
from typing import TYPE_CHECKING, Optional

from neuroglia.hosting.abstractions import ApplicationSettings

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase


class Settings(ApplicationSettings):
    """Mail Agent settings."""

    # Debugging Configuration
    debug: bool = True
    environment: str = "development"  # development, production
    log_level: str = "INFO"

    # Application Configuration
    app_name: str = "Mail Agent"
    app_version: str = "1.0.0"
    app_host: str = "127.0.0.1"  # Uvicorn bind address
    app_port: int = 8060  # Uvicorn port

    # Observability Configuration
    service_name: str = "mail-agent"
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
    otel_instrument_system_metrics: bool = False
    otel_resource_attributes: dict = {}

    # CORS Configuration
    enable_cors: bool = True
    cors_origins: list[str] = ["http://localhost:3000"]

    # ==========================================================================
    # LLM Provider Configuration
    # ==========================================================================
    default_llm_provider: str = "anthropic"  # Used when a request names no known provider

    openai_enabled: bool = True
    openai_api_endpoint: str = "https://api.openai.com/v1"
    openai_api_key: str = ""
    openai_timeout: float = 120.0

    anthropic_enabled: bool = True
    anthropic_api_endpoint: str = "https://api.anthropic.com/v1"
    anthropic_api_key: str = ""
    anthropic_api_version: str = "2023-06-01"
    anthropic_timeout: float = 120.0

    llm_max_tokens: int = 2000
    # Unparsable stream frames tolerated in a row before the pass is failed
    stream_max_consecutive_malformed_frames: int = 5

    # ==========================================================================
    # Tool Configuration
    # ==========================================================================
    tavily_api_url: str = "https://api.tavily.com"
    tavily_api_key: str = ""
    tavily_timeout: float = 30.0

    web_search_max_results: int = 5
    web_search_snippet_length: int = 500

    browse_timeout: float = 20.0
    browse_max_content_length: int = 10000  # Cap applied by the page fetcher
    browse_tool_max_content_length: int = 5000  # Cap applied before the follow-up pass

    gmail_api_url: str = "https://gmail.googleapis.com/gmail/v1/users/me"
    gmail_timeout: float = 30.0
    gmail_batch_size: int = 3
    gmail_batch_delay_seconds: float = 0.15
    email_search_default_results: int = 5
    email_search_max_results: int = 10
    email_search_max_body_length: int = 2000  # Per-message cap for the chat tool
    gmail_search_max_body_length: int = 1500  # Per-message cap for the search endpoint

    # Preview length of search_result events
    tool_result_preview_length: int = 200

    # ==========================================================================
    # Voice Agent Configuration
    # ==========================================================================
    elevenlabs_api_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_api_key: str = ""
    elevenlabs_agent_id: Optional[str] = None  # Pre-configured agent, skips creation
    elevenlabs_timeout: float = 30.0
    voice_agent_cache_ttl_seconds: int = 24 * 60 * 60

    class Config:
        env_file = ".env"
        env_prefix = "MAIL_AGENT_"  # All env vars prefixed with MAIL_AGENT_
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


def get_settings(builder: "ApplicationBuilderBase") -> Settings:
    """Get the Settings registered in the builder, falling back to app_settings."""
    for desc in builder.services:
        if desc.service_type is Settings and desc.singleton:
            return desc.singleton
    return app_settings
