"""
Core types for mcp-bridge.

Provider-neutral: everything provider-specific lives in adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

__all__ = [
    "Role",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    "Turn",
    "ToolDescriptor",
    "ToolCallRequest",
    "ToolCallResult",
]


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: str


@dataclass(frozen=True, slots=True)
class ToolUseBlock:
    """A tool invocation emitted natively by the model."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResultBlock:
    """Payload sent back to the model after the tool finished running."""

    tool_use_id: str  # must match the ToolUseBlock id
    content: Any
    is_error: bool = False


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


@dataclass(frozen=True, slots=True)
class Turn:
    """One immutable entry in the conversation transcript."""

    role: Role
    content: Union[str, tuple[ContentBlock, ...]]

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))

    @property
    def text(self) -> str:
        """Plain-text view of the turn."""
        if isinstance(self.content, str):
            return self.content
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Static metadata for one tool, fetched once at connection time."""

    name: str
    description: str = ""
    parameter_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @classmethod
    def from_mcp(cls, tool: Any) -> "ToolDescriptor":
        """Build a descriptor from an MCP ``Tool`` object."""
        schema = tool.inputSchema if isinstance(tool.inputSchema, dict) else None
        return cls(
            name=tool.name,
            description=tool.description or "",
            parameter_schema=dict(schema or {"type": "object", "properties": {}}),
        )


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a tool."""

    name: str
    arguments: dict[str, Any]
    id: Optional[str] = None  # only structured mode carries one


@dataclass(slots=True)
class ToolCallResult:
    """Outcome of a tool invocation."""

    content: Any
    is_error: bool = False
    id: Optional[str] = None
