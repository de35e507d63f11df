"""Gmail API controller."""

from typing import Optional

from classy_fastapi.decorators import post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, Field

from application.queries import SearchEmailsQuery


class GmailSearchRequest(BaseModel):
    """Request to search the user's mailbox."""

    model_config = {"populate_by_name": True}

    query: str = Field(default="", description="Gmail search query")
    access_token: str = Field(default="", alias="accessToken", description="Gmail OAuth access token")
    max_results: Optional[int] = Field(default=None, alias="maxResults", description="Threads to return (1-10)")


class GmailController(ControllerBase):
    """Controller for mailbox operations."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    @post("/search")
    async def search_emails(self, body: GmailSearchRequest):
        """Search threads with Gmail query syntax.

        Returns `{query, totalFound, threads, formatted}` where `formatted` is
        the plain-text rendering handed to the assistant.
        """
        query = SearchEmailsQuery(query=body.query, access_token=body.access_token, max_results=body.max_results)
        result = await self.mediator.execute_async(query)
        return self.process(result)
