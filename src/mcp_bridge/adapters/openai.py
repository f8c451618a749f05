"""OpenAI-compatible adapter (OpenRouter and friends), text-only."""

from __future__ import annotations

import json
from typing import Any, Sequence

from openai.types.chat import ChatCompletion

from mcp_bridge.params import split_extra
from mcp_bridge.response import ChatResponse
from mcp_bridge.types import (
    Role,
    TextBlock,
    ToolDescriptor,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)


def _flatten(turn: Turn) -> str:
    """Render block content as plain text; this endpoint only sees strings."""
    if isinstance(turn.content, str):
        return turn.content

    parts: list[str] = []
    for block in turn.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            parts.append(json.dumps({"tool_call": {"name": block.name, "arguments": block.input}}))
        elif isinstance(block, ToolResultBlock):
            parts.append(f"Tool result: {json.dumps(block.content)}")
    return "\n".join(parts)


def message_text(content: Any) -> str:
    """Extract text from message content that is either a string or a list of parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for item in content:
            if isinstance(item, dict):
                if item.get("type") == "text":
                    texts.append(item.get("text", ""))
            elif getattr(item, "type", None) == "text":
                texts.append(getattr(item, "text", ""))
        return "".join(texts)
    return ""


def function_schema(tool: ToolDescriptor | dict[str, Any]) -> dict[str, Any]:
    if isinstance(tool, ToolDescriptor):
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameter_schema,
            },
        }
    return tool


class OpenAIRequestAdapter:
    """Adapter for converting between turns and the chat completions API."""

    def to_provider(
        self, turns: Sequence[Turn], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert a turn snapshot and normalized params to a completions request."""
        messages: list[dict[str, Any]] = []
        for turn in turns:
            # No native tool role here; results are injected as user text.
            role = "user" if turn.role is Role.TOOL else turn.role.value
            messages.append({"role": role, "content": _flatten(turn)})

        base_params = split_extra(params)
        tools = base_params.pop("tools", None)
        if tools:
            base_params["tools"] = [function_schema(t) for t in tools]

        return {"messages": messages, **base_params}

    def from_provider(self, raw: ChatCompletion) -> ChatResponse:
        """Convert a chat completion to unified ChatResponse."""
        content = ""
        if raw.choices and raw.choices[0].message:
            content = message_text(raw.choices[0].message.content)

        blocks = (TextBlock(content),) if content else ()
        return ChatResponse(content=content, blocks=blocks, raw=raw)
