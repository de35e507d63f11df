"""Web search API controller."""

from classy_fastapi.decorators import post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, Field

from application.queries import SearchWebQuery


class SearchRequest(BaseModel):
    """Request to search the web."""

    query: str = Field(default="", description="Free-text search query")

    class Config:
        json_schema_extra = {"example": {"query": "latest python release"}}


class SearchController(ControllerBase):
    """Controller for web search."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    @post("/")
    async def search(self, body: SearchRequest):
        """Search the web.

        Returns `{answer, results: [{rank, title, url, snippet}]}`.
        """
        result = await self.mediator.execute_async(SearchWebQuery(query=body.query))
        return self.process(result)
