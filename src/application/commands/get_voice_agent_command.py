"""Voice agent command with handler.

Returns an ElevenLabs agent id (creating and caching one when needed) or a
signed URL for a private conversation with that agent.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Command, CommandHandler, Mediator
from neuroglia.observability.tracing import add_span_attributes

from application.agents.voice_agent import build_agent_config
from application.commands.command_handler_base import CommandHandlerBase
from application.settings import Settings
from infrastructure.agent_id_cache import AgentIdCache
from infrastructure.clients.elevenlabs_client import ElevenLabsApiError, ElevenLabsClient
from observability import voice_agents_created

log = logging.getLogger(__name__)

VOICE_ACTIONS = ("get_agent", "get_signed_url")


@dataclass
class GetVoiceAgentCommand(Command[OperationResult[Dict[str, Any]]]):
    """Command to obtain a voice agent id or a signed conversation URL."""

    action: str = "get_agent"
    """Either ``get_agent`` or ``get_signed_url``."""

    voice_id: Optional[str] = None
    """Voice used when a new agent is created."""

    llm_model: Optional[str] = None
    """App model id mapped onto the agent's LLM."""


class GetVoiceAgentCommandHandler(
    CommandHandlerBase,
    CommandHandler[GetVoiceAgentCommand, OperationResult[Dict[str, Any]]],
):
    """Handler for GetVoiceAgentCommand."""

    def __init__(
        self,
        mediator: Mediator,
        mapper: Mapper,
        elevenlabs_client: ElevenLabsClient,
        agent_id_cache: AgentIdCache,
        settings: Settings,
    ):
        super().__init__(mediator, mapper)
        self._elevenlabs = elevenlabs_client
        self._cache = agent_id_cache
        self._settings = settings

    async def handle_async(self, request: GetVoiceAgentCommand) -> OperationResult[Dict[str, Any]]:
        """Handle the voice agent command."""
        command = request
        if not self._elevenlabs.is_configured:
            return self.internal_server_error("ElevenLabs API key not configured. Add ELEVENLABS_API_KEY to your environment variables.")
        if command.action not in VOICE_ACTIONS:
            return self.bad_request(f"Invalid action: {command.action}")

        add_span_attributes({"voice.action": command.action})

        try:
            if command.action == "get_agent":
                return self.ok({"agentId": await self._get_agent_id(command)})

            # A configured agent wins; otherwise any agent created earlier, even if its cache entry expired
            agent_id = self._settings.elevenlabs_agent_id or self._cache.peek()
            if not agent_id:
                return self.bad_request("No agent ID available. Create an agent first.")
            return self.ok({"signedUrl": await self._elevenlabs.get_signed_url(agent_id)})

        except ElevenLabsApiError as e:
            log.error(f"Voice agent request failed: {e.message}")
            return self.internal_server_error(e.message)

    async def _get_agent_id(self, command: GetVoiceAgentCommand) -> str:
        if self._settings.elevenlabs_agent_id:
            return self._settings.elevenlabs_agent_id

        cached = self._cache.get()
        if cached:
            return cached

        agent_id = await self._elevenlabs.create_agent(build_agent_config(voice_id=command.voice_id, llm_model=command.llm_model))
        self._cache.set(agent_id)
        voice_agents_created.add(1)
        return agent_id
