"""Tool call and tool result models."""

from dataclasses import dataclass, field
from typing import Any, Optional

# Argument shown to the user for each executable tool
PRIMARY_ARGUMENTS: dict[str, str] = {
    "web_search": "query",
    "browse_url": "url",
    "search_emails": "query",
}


@dataclass(frozen=True)
class ToolCall:
    """A completed tool invocation emitted by the model.

    Attributes:
        id: Provider-assigned call identifier (may be absent)
        name: Tool name
        arguments: Parsed arguments
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    @property
    def primary_argument(self) -> str:
        """Get the argument used to describe this call to the user."""
        key = PRIMARY_ARGUMENTS.get(self.name)
        if key is None:
            return ""
        value = self.arguments.get(key, "")
        return value if isinstance(value, str) else str(value)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass(frozen=True)
class ToolResult:
    """Outcome of an executed tool.

    Attributes:
        name: Tool name
        query: Primary argument the tool ran with
        result_text: Bounded text handed back to the model
        success: Whether the tool completed successfully
    """

    name: str
    query: str
    result_text: str
    success: bool

    def preview(self, limit: int = 200) -> str:
        if len(self.result_text) <= limit:
            return self.result_text
        return self.result_text[:limit] + "..."

    @classmethod
    def failure(cls, name: str, query: str, message: str) -> "ToolResult":
        return cls(name=name, query=query, result_text=message, success=False)
