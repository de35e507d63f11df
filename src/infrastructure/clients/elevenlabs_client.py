"""ElevenLabs Conversational AI client."""

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx
from opentelemetry import trace

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ElevenLabsApiError(Exception):
    """Raised when an ElevenLabs request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ElevenLabsClient:
    """HTTP client for creating voice agents and signed conversation URLs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"xi-api-key": self._api_key},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise ElevenLabsApiError(f"Failed to reach ElevenLabs: {e}")

        if response.status_code >= 400:
            logger.error(f"ElevenLabs {method} {path} failed: {response.status_code} - {response.text[:200]}")
            raise ElevenLabsApiError(f"ElevenLabs request failed: {response.reason_phrase}", status_code=response.status_code)
        return response.json()

    async def create_agent(self, config: dict[str, Any]) -> str:
        """
        Create a conversational agent.

        Args:
            config: Agent creation payload

        Returns:
            The new agent id

        Raises:
            ElevenLabsApiError: If creation fails
        """
        with tracer.start_as_current_span("elevenlabs.create_agent"):
            data = await self._request("POST", "/convai/agents/create", json=config)
            agent_id = data.get("agent_id")
            if not agent_id:
                raise ElevenLabsApiError("ElevenLabs did not return an agent id")
            logger.info(f"🎙️ Created ElevenLabs agent: {agent_id}")
            return agent_id

    async def get_signed_url(self, agent_id: str) -> str:
        """
        Get a signed URL for a private conversation session.

        Raises:
            ElevenLabsApiError: If the request fails
        """
        with tracer.start_as_current_span("elevenlabs.get_signed_url"):
            data = await self._request("GET", "/convai/conversation/get_signed_url", params={"agent_id": agent_id})
            signed_url = data.get("signed_url")
            if not signed_url:
                raise ElevenLabsApiError("ElevenLabs did not return a signed URL")
            return signed_url

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "ElevenLabsClient":
        """Configure ElevenLabsClient in the service collection."""
        from application.settings import get_settings

        settings = get_settings(builder)
        client = ElevenLabsClient(
            api_key=settings.elevenlabs_api_key,
            base_url=settings.elevenlabs_api_url,
            timeout=settings.elevenlabs_timeout,
        )
        builder.services.add_singleton(ElevenLabsClient, singleton=client)
        return client
