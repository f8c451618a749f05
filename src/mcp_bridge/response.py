from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from mcp_bridge.errors import EndpointError
from mcp_bridge.types import ContentBlock, ToolCallRequest, ToolUseBlock


@dataclass
class ChatResponse:
    """Unified response object for all model endpoints."""

    content: str
    blocks: tuple[ContentBlock, ...] = field(default_factory=tuple)
    raw: Any = None
    error: Optional[str] = None
    exception: Optional[EndpointError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def tool_calls(self) -> list[ToolCallRequest]:
        return [
            ToolCallRequest(name=b.name, arguments=dict(b.input), id=b.id)
            for b in self.blocks
            if isinstance(b, ToolUseBlock)
        ]

    def raise_for_error(self) -> None:
        if not self.is_error:
            return
        if self.exception is not None:
            raise self.exception
        raise EndpointError(self.error or "Unknown endpoint error")
