"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Sequence

from anthropic.types import Message

from mcp_bridge.params import DEFAULT_MAX_TOKENS, split_extra
from mcp_bridge.response import ChatResponse
from mcp_bridge.types import (
    ContentBlock,
    Role,
    TextBlock,
    ToolDescriptor,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)


def _tool_result_content(content: Any) -> Any:
    """Map MCP result content onto the blocks a tool_result accepts."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return json.dumps(content)

    blocks: list[dict[str, Any]] = []
    for item in content:
        kind = item.get("type") if isinstance(item, dict) else None
        if kind == "text":
            blocks.append({"type": "text", "text": item.get("text", "")})
        elif kind == "image":
            blocks.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": item.get("mimeType", "image/png"),
                        "data": item.get("data", ""),
                    },
                }
            )
        else:
            blocks.append({"type": "text", "text": json.dumps(item)})
    return blocks


def _block_to_dict(block: ContentBlock) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": dict(block.input)}
    if isinstance(block, ToolResultBlock):
        result: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": _tool_result_content(block.content),
        }
        if block.is_error:
            result["is_error"] = True
        return result
    raise TypeError(f"Unsupported content block: {type(block).__name__}")


def _as_block_list(content: Any) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [{"type": "text", "text": content}] if content else []
    return list(content)


def tool_schema(tool: ToolDescriptor | dict[str, Any]) -> dict[str, Any]:
    """Render a tool descriptor as an Anthropic tool definition."""
    if isinstance(tool, ToolDescriptor):
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameter_schema,
        }
    if tool.get("type") == "function":
        func = tool["function"]
        return {
            "name": func["name"],
            "description": func.get("description", ""),
            "input_schema": func.get("parameters", {}),
        }
    return tool


class AnthropicRequestAdapter:
    """Adapter for converting between turns and the Anthropic Messages API."""

    def to_provider(
        self, turns: Sequence[Turn], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert a turn snapshot and normalized params to an Anthropic request."""
        system_parts: list[str] = []
        messages: list[dict[str, Any]] = []

        for turn in turns:
            if turn.role is Role.SYSTEM:
                system_parts.append(turn.text)
                continue

            # Tool results travel back to Anthropic as user content.
            role = "user" if turn.role is Role.TOOL else turn.role.value
            if isinstance(turn.content, str):
                content: Any = turn.content
            else:
                content = [_block_to_dict(b) for b in turn.content]

            # The API wants strict alternation; fold repeated roles together.
            if messages and messages[-1]["role"] == role:
                previous = messages[-1]
                previous["content"] = _as_block_list(previous["content"]) + _as_block_list(content)
                continue

            messages.append({"role": role, "content": content})

        base_params = split_extra(params)

        # Anthropic requires max_tokens
        if base_params.get("max_tokens") is None:
            base_params["max_tokens"] = DEFAULT_MAX_TOKENS

        if "stop" in base_params:
            stop = base_params.pop("stop")
            if stop:
                base_params["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        tools = base_params.pop("tools", None)
        if tools:
            base_params["tools"] = [tool_schema(t) for t in tools]

        request: dict[str, Any] = {"messages": messages, **base_params}
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        return request

    def from_provider(self, raw: Message) -> ChatResponse:
        """Convert Anthropic response to unified ChatResponse."""
        blocks: list[ContentBlock] = []

        for block in raw.content or []:
            if block.type == "text":
                blocks.append(TextBlock(block.text))
            elif block.type == "tool_use":
                blocks.append(
                    ToolUseBlock(
                        id=block.id,
                        name=block.name,
                        input=dict(block.input) if hasattr(block.input, "items") else {},
                    )
                )

        content = "".join(b.text for b in blocks if isinstance(b, TextBlock))
        return ChatResponse(content=content, blocks=tuple(blocks), raw=raw)
