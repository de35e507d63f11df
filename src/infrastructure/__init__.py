"""Infrastructure layer: model adapters, HTTP clients and process-wide state."""

from infrastructure.adapters import AnthropicLlmProvider, OpenAiLlmProvider
from infrastructure.agent_id_cache import AgentIdCache, configure_agent_id_cache
from infrastructure.llm_provider_factory import LlmProviderFactory

__all__ = [
    "AnthropicLlmProvider",
    "OpenAiLlmProvider",
    "AgentIdCache",
    "configure_agent_id_cache",
    "LlmProviderFactory",
]
