"""In-process cache for the voice agent id.

Creating an ElevenLabs agent is slow, so the id of the last created agent is
kept for a while and reused. The cache is advisory: losing it (restart, expiry)
only causes a new agent to be created.
"""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CachedAgentId:
    """A cached agent id with its creation time.

    Attributes:
        agent_id: Provider-assigned agent identifier
        created_at: Clock reading (seconds) when the id was stored
    """

    agent_id: str
    created_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at >= ttl_seconds

    def remaining_seconds(self, now: float, ttl_seconds: float) -> float:
        return max(0.0, self.created_at + ttl_seconds - now)


class AgentIdCache:
    """Process-wide agent id cache with a time-based expiry.

    The clock is injectable so expiry can be driven deterministically.
    """

    def __init__(self, ttl_seconds: float = 24 * 60 * 60, clock: Clock = time.time) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[CachedAgentId] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self) -> Optional[str]:
        """Get the cached id if it has not expired."""
        entry = self._entry
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self._ttl_seconds):
            logger.info(f"Cached voice agent {entry.agent_id} expired")
            return None
        return entry.agent_id

    def peek(self) -> Optional[str]:
        """Get the cached id regardless of expiry."""
        return self._entry.agent_id if self._entry else None

    def set(self, agent_id: str) -> None:
        self._entry = CachedAgentId(agent_id=agent_id, created_at=self._clock())

    def clear(self) -> None:
        self._entry = None


def configure_agent_id_cache(builder: "ApplicationBuilderBase") -> AgentIdCache:
    """Register the process-wide AgentIdCache in the service collection."""
    from application.settings import get_settings

    settings = get_settings(builder)
    cache = AgentIdCache(ttl_seconds=settings.voice_agent_cache_ttl_seconds)
    builder.services.add_singleton(AgentIdCache, singleton=cache)
    return cache
