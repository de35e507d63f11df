"""Browse API controller."""

from classy_fastapi.decorators import post
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, Field

from application.queries import BrowseUrlQuery


class BrowseRequest(BaseModel):
    """Request to read a web page."""

    url: str = Field(default="", description="HTTPS URL of the page")

    class Config:
        json_schema_extra = {"example": {"url": "https://example.com/article"}}


class BrowseController(ControllerBase):
    """Controller for reading web pages."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    @post("/")
    async def browse(self, body: BrowseRequest):
        """Fetch a page and return its title and text.

        Only HTTPS URLs are accepted. Fetch failures are reported with
        `success: false` and an `error` message.
        """
        result = await self.mediator.execute_async(BrowseUrlQuery(url=body.url))
        return self.process(result)
