"""Main application entry point for Mail Agent."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from neuroglia.hosting.web import SubAppConfig, WebApplicationBuilder
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.observability import Observability
from neuroglia.serialization.json import JsonSerializer

from application.orchestrator import ToolDispatcher
from application.services import RequestRegistry
from application.settings import Settings, app_settings, configure_logging
from application.tools import BrowseExecutor, EmailSearchExecutor, WebSearchExecutor
from infrastructure import AnthropicLlmProvider, LlmProviderFactory, OpenAiLlmProvider, configure_agent_id_cache
from infrastructure.clients import ElevenLabsClient, GmailClient, PageFetcher, TavilyClient

configure_logging(log_level=app_settings.log_level)
log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the Mail Agent application.

    Returns:
        Configured FastAPI application with the API mounted under /api
    """
    log.debug("🚀 Creating Mail Agent application...")

    builder = WebApplicationBuilder(app_settings=app_settings)
    builder.services.add_singleton(Settings, singleton=app_settings)

    # Configure core Neuroglia services
    Mediator.configure(builder, ["application.commands", "application.queries"])
    Mapper.configure(builder, ["application.commands", "application.queries"])
    JsonSerializer.configure(builder, ["domain.models"])
    Observability.configure(builder)

    # Configure infrastructure services
    closeables = _configure_infrastructure_services(builder)

    builder.add_sub_app(
        SubAppConfig(
            path="/api",
            name="api",
            title=f"{app_settings.app_name} API",
            description="Streaming email assistant API: chat, web search, browsing, mailbox search and voice",
            version=app_settings.app_version,
            controllers=["api.controllers"],
            docs_url="/docs",
        )
    )

    # Build the application
    app = builder.build_app_with_lifespan(
        title=app_settings.app_name,
        description="AI email assistant backend",
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
            expose_headers=["X-Request-Id"],
        )

    @app.on_event("shutdown")
    async def close_http_clients() -> None:
        """Close the shared HTTP clients."""
        log.info("🛑 Closing HTTP clients...")
        for closeable in closeables:
            await closeable.close()
        log.info("✅ HTTP clients closed")

    log.info("✅ Application created successfully!")
    log.info("📊 Access points:")
    log.info(f"   - API Docs: http://localhost:{app_settings.app_port}/api/docs")
    return app


def _configure_infrastructure_services(builder: WebApplicationBuilder) -> list:
    """Configure clients, model providers and tool executors.

    Returns:
        Services holding HTTP clients that must be closed on shutdown
    """
    # HTTP clients for external collaborators
    tavily_client = TavilyClient.configure(builder)
    page_fetcher = PageFetcher.configure(builder, tavily_client=tavily_client)
    gmail_client = GmailClient.configure(builder)
    elevenlabs_client = ElevenLabsClient.configure(builder)
    configure_agent_id_cache(builder)

    # LLM providers (the factory picks one per request)
    openai_provider = OpenAiLlmProvider.configure(builder)
    anthropic_provider = AnthropicLlmProvider.configure(builder)
    LlmProviderFactory.configure(builder)

    # Server-side tools
    ToolDispatcher.configure(
        builder,
        [
            WebSearchExecutor.configure(builder, tavily_client),
            BrowseExecutor.configure(builder, page_fetcher),
            EmailSearchExecutor.configure(builder, gmail_client),
        ],
    )
    RequestRegistry.configure(builder)

    log.info("✅ Infrastructure services configured")
    closeables = [tavily_client, page_fetcher, gmail_client, elevenlabs_client, openai_provider, anthropic_provider]
    return [c for c in closeables if c is not None]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=app_settings.debug,
        timeout_graceful_shutdown=5,  # Force-close SSE connections after 5s on reload/shutdown
    )
