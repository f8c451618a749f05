"""
Tool-call detection strategies.

Structured endpoints tag tool calls as typed content blocks. Unstructured
endpoints return free text, and the call has to be recovered from a JSON
object embedded in it::

    {"tool_call": {"name": "add", "arguments": {"a": 2, "b": 3}}}

Both strategies share the ``CallDetector`` interface and also own the parts of
the conversation that differ between the two modes: the system prompt, the
tool schemas sent with each request, and the shape of assistant and
tool-result turns.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from mcp_bridge.errors import DetectionAmbiguous, DetectionMalformed
from mcp_bridge.response import ChatResponse
from mcp_bridge.types import (
    Role,
    TextBlock,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)

__all__ = [
    "Detection",
    "CallDetector",
    "StructuredDetector",
    "UnstructuredDetector",
    "create_detector",
    "extract_tool_call_json",
    "scan_json_object",
]

logger = logging.getLogger(__name__)

Segment = Union[str, ToolCallRequest]

# Fast existence check. Tolerates one level of nesting inside "arguments"; the
# exact extent is found by scan_json_object.
TOOL_CALL_PATTERN = re.compile(r'\{\s*"tool_call"\s*:\s*\{[^{}]*\{[^}]*\}[^}]*\}\s*\}')
TOOL_CALL_MARKER = '{"tool_call"'

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant with access to the following tools:

{tool_descriptions}

To use a tool, respond with a JSON object in this exact format:
{{
  "tool_call": {{
    "name": "tool_name",
    "arguments": {{"param1": "value1", "param2": "value2"}}
  }}
}}

If you don't need to use any tools, just respond normally. Only use tools when specifically needed to answer the user's question."""


@dataclass(frozen=True)
class Detection:
    """Outcome of scanning one model response.

    ``segments`` keeps visible text and tool calls in the order the model
    produced them. ``error`` is set when a call marker was found but could not
    be parsed; segments are then empty.
    """

    segments: tuple[Segment, ...] = field(default_factory=tuple)
    error: Optional[DetectionMalformed] = None

    @property
    def calls(self) -> list[ToolCallRequest]:
        return [s for s in self.segments if isinstance(s, ToolCallRequest)]

    @property
    def text(self) -> str:
        return "".join(s for s in self.segments if isinstance(s, str))


class CallDetector(ABC):
    """Decides whether a model response requests a tool call."""

    #: Whether recovered arguments need numeric-string coercion.
    normalizes_arguments: bool = False

    @abstractmethod
    def detect(self, response: ChatResponse) -> Detection:
        """Scan ``response``. Never raises; malformed input is reported on the result."""
        ...

    def visible_text(self, response: ChatResponse) -> str:
        """Text to show the user when the response is not scanned for calls."""
        return response.content

    def system_prompt(self, tools: Sequence[ToolDescriptor]) -> Optional[str]:
        return None

    def request_tools(self, tools: Sequence[ToolDescriptor]) -> Optional[list[ToolDescriptor]]:
        return None

    @abstractmethod
    def assistant_turn(
        self, response: ChatResponse, call: ToolCallRequest, preface: str = ""
    ) -> Turn:
        """Assistant turn recording the model output that requested ``call``."""
        ...

    @abstractmethod
    def result_turn(self, call: ToolCallRequest, result: ToolCallResult) -> Turn:
        """Turn carrying the tool outcome back to the model."""
        ...


class StructuredDetector(CallDetector):
    """Trusts the typed tool-use blocks of the response."""

    def detect(self, response: ChatResponse) -> Detection:
        if not response.blocks:
            return Detection(segments=(response.content,) if response.content else ())

        segments: list[Segment] = []
        pending: list[str] = []
        for block in response.blocks:
            if isinstance(block, TextBlock):
                pending.append(block.text)
            elif isinstance(block, ToolUseBlock):
                if pending:
                    segments.append("".join(pending))
                    pending = []
                segments.append(
                    ToolCallRequest(name=block.name, arguments=dict(block.input), id=block.id)
                )
        if pending:
            segments.append("".join(pending))
        return Detection(segments=tuple(segments))

    def request_tools(self, tools: Sequence[ToolDescriptor]) -> Optional[list[ToolDescriptor]]:
        return list(tools) or None

    def assistant_turn(
        self, response: ChatResponse, call: ToolCallRequest, preface: str = ""
    ) -> Turn:
        blocks: list[Any] = [TextBlock(preface)] if preface else []
        blocks.append(ToolUseBlock(id=call.id or "", name=call.name, input=dict(call.arguments)))
        return Turn(Role.ASSISTANT, tuple(blocks))

    def result_turn(self, call: ToolCallRequest, result: ToolCallResult) -> Turn:
        block = ToolResultBlock(
            tool_use_id=call.id or "",
            content=result.content,
            is_error=result.is_error,
        )
        return Turn(Role.TOOL, (block,))


def scan_json_object(text: str, start: int) -> Optional[int]:
    """
    Return the index just past the object that opens at ``text[start]``.

    Counts braces until the depth returns to zero; braces inside string
    literals do not count. Returns None if the object never closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_tool_call_json(text: str) -> Optional[str]:
    """
    Locate the tool-call JSON object in ``text``.

    Returns None when there is no sign of a tool call. Raises
    DetectionMalformed when a call starts but never closes.
    """
    match = TOOL_CALL_PATTERN.search(text)
    start = text.find(TOOL_CALL_MARKER)
    if match is None and start == -1:
        return None
    if start == -1:
        # e.g. '{ "tool_call"' with whitespace after the brace
        start = match.start()

    end = scan_json_object(text, start)
    if end is not None:
        return text[start:end]
    if match is not None:
        return match.group(0)
    raise DetectionMalformed("Unterminated tool call object", text[start:])


def _parse_tool_call(fragment: str) -> ToolCallRequest:
    try:
        payload = json.loads(fragment)
    except (ValueError, RecursionError) as exc:
        # RecursionError: nesting deeper than the decoder handles
        raise DetectionMalformed(f"{exc.__class__.__name__}: {exc}", fragment) from exc

    call = payload.get("tool_call") if isinstance(payload, dict) else None
    if not isinstance(call, dict):
        raise DetectionAmbiguous("'tool_call' is not an object")
    name = call.get("name")
    if not isinstance(name, str) or not name:
        raise DetectionAmbiguous("'tool_call.name' is missing or not a string")
    arguments = call.get("arguments")
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise DetectionAmbiguous("'tool_call.arguments' is not an object")
    return ToolCallRequest(name=name, arguments=arguments)


def describe_tools(tools: Sequence[ToolDescriptor]) -> str:
    return "\n".join(
        f"- {tool.name}: {tool.description}\n  Parameters: {json.dumps(tool.parameter_schema, indent=2)}"
        for tool in tools
    )


class UnstructuredDetector(CallDetector):
    """
    Recovers a tool call from JSON embedded in free text.

    Only the first call object is used. When one is found, the prose around it
    is not shown to the user; the response only lands in the transcript as the
    assistant turn.
    """

    normalizes_arguments = True

    def detect(self, response: ChatResponse) -> Detection:
        content = response.content
        plain = Detection(segments=(content,) if content else ())

        try:
            fragment = extract_tool_call_json(content)
            if fragment is None:
                return plain
            logger.debug("Attempting to parse JSON: %s", fragment)
            request = _parse_tool_call(fragment)
        except DetectionMalformed as exc:
            logger.warning("Malformed tool call: %s", exc)
            logger.debug("Full content: %s", content)
            return Detection(error=exc)
        except DetectionAmbiguous as exc:
            logger.debug("Ignoring tool-call-like JSON: %s", exc)
            return plain

        # Surrounding prose is dropped from the visible answer.
        return Detection(segments=(request,))

    def system_prompt(self, tools: Sequence[ToolDescriptor]) -> Optional[str]:
        return SYSTEM_PROMPT_TEMPLATE.format(tool_descriptions=describe_tools(tools))

    def assistant_turn(
        self, response: ChatResponse, call: ToolCallRequest, preface: str = ""
    ) -> Turn:
        return Turn(Role.ASSISTANT, response.content)

    def result_turn(self, call: ToolCallRequest, result: ToolCallResult) -> Turn:
        if result.is_error:
            text = (
                f"Tool {call.name} failed: {_render(result.content)}. "
                "Please explain this to the user."
            )
        else:
            text = (
                f"Tool result: {_render(result.content)}. "
                "Please provide a final response based on this information."
            )
        return Turn(Role.TOOL, text)


def _render(content: Any) -> str:
    return content if isinstance(content, str) else json.dumps(content)


def create_detector(llm: Any) -> CallDetector:
    """Pick the strategy matching the configured endpoint."""
    if getattr(llm, "supports_tool_use", False):
        return StructuredDetector()
    return UnstructuredDetector()
