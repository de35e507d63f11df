"""Voice agent API controller."""

from typing import Optional

from classy_fastapi.decorators import post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, Field

from application.commands import GetVoiceAgentCommand


class VoiceAgentRequest(BaseModel):
    """Request for a voice agent or a signed conversation URL."""

    model_config = {"populate_by_name": True}

    action: str = Field(default="get_agent", description="'get_agent' or 'get_signed_url'")
    voice_id: Optional[str] = Field(default=None, alias="voiceId", description="Voice for a newly created agent")
    llm_model: Optional[str] = Field(default=None, alias="llmModel", description="App model id for the agent's LLM")


class VoiceController(ControllerBase):
    """Controller for voice mode."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    @post("/elevenlabs")
    async def elevenlabs(self, body: VoiceAgentRequest):
        """Get the ElevenLabs agent id (`{agentId}`) or a signed URL (`{signedUrl}`)."""
        command = GetVoiceAgentCommand(action=body.action, voice_id=body.voice_id, llm_model=body.llm_model)
        result = await self.mediator.execute_async(command)
        return self.process(result)
