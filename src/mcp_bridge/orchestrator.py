"""
The tool-invocation loop.

One query runs as::

    request -> detect -> [no call] done
                      -> [call] normalize -> invoke -> append result -> request -> ...

Follow-up responses are scanned for further calls only while their depth is
within ``max_tool_rounds``; past that, their text is the answer.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Optional

from mcp_bridge.client import BaseAsyncLLM
from mcp_bridge.conversation import Conversation
from mcp_bridge.detection import CallDetector, create_detector
from mcp_bridge.errors import ToolHostDisconnected, ToolHostError
from mcp_bridge.normalize import normalize_arguments
from mcp_bridge.response import ChatResponse
from mcp_bridge.tool_host import ToolHost, ToolInvoker
from mcp_bridge.types import Role, ToolCallRequest, ToolCallResult, Turn

__all__ = ["Orchestrator", "announce"]


def announce(call: ToolCallRequest) -> str:
    """The line shown to the user for each tool call."""
    args = json.dumps(call.arguments, separators=(",", ":"), ensure_ascii=False)
    return f"[Calling tool {call.name}] with args {args}"


class Orchestrator:
    """
    Drives one query at a time through the model and the tool host.

    Args:
        llm: Model endpoint client.
        tool_host: Connected tool host; its tool list is read once here.
        detector: Call detection strategy. Defaults to the one matching
            ``llm.supports_tool_use``.
        max_tool_rounds: How many levels of chained tool calls to follow.
            1 executes only the calls in the first response.
        params: Extra request params (max_tokens, temperature, ...).
    """

    def __init__(
        self,
        llm: BaseAsyncLLM,
        tool_host: ToolHost,
        *,
        detector: Optional[CallDetector] = None,
        max_tool_rounds: int = 1,
        params: Optional[dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_tool_rounds < 1:
            raise ValueError("max_tool_rounds must be at least 1")
        self.llm = llm
        self.tool_host = tool_host
        self.tools = tuple(tool_host.tools)
        self.detector = detector or create_detector(llm)
        self.max_tool_rounds = max_tool_rounds
        self.params = dict(params or {})
        self.logger = logger or logging.getLogger(__name__)
        self.invoker = ToolInvoker(tool_host, logger=self.logger)

    async def process_query(self, query: str) -> str:
        """Answer ``query``, running any tool calls the model asks for.

        Raises:
            EndpointError: the model request failed.
            ToolHostDisconnected: the tool host went away.
        """
        conversation = Conversation()
        system_prompt = self.detector.system_prompt(self.tools)
        if system_prompt:
            conversation.append(Turn(Role.SYSTEM, system_prompt))
        conversation.append(Turn(Role.USER, query))

        parts: list[str] = []
        response = await self._request(conversation)
        await self._resolve(conversation, response, 1, parts)
        return "\n".join(parts)

    async def _request(self, conversation: Conversation) -> ChatResponse:
        params = dict(self.params)
        tools = self.detector.request_tools(self.tools)
        if tools:
            params["tools"] = tools

        response = await self.llm.chat(conversation.snapshot(), params=params)
        response.raise_for_error()
        return response

    async def _resolve(
        self,
        conversation: Conversation,
        response: ChatResponse,
        depth: int,
        parts: list[str],
    ) -> None:
        if depth > self.max_tool_rounds:
            dropped = len(response.tool_calls)
            if dropped:
                self.logger.warning(
                    "Tool round limit (%d) reached; ignoring %d further call(s)",
                    self.max_tool_rounds,
                    dropped,
                )
            text = self.detector.visible_text(response)
            if text:
                parts.append(text)
                conversation.append(Turn(Role.ASSISTANT, text))
            return

        detection = self.detector.detect(response)
        if detection.error is not None:
            parts.append(f"Error parsing tool call: {detection.error}")
            parts.append(response.content)
            return

        preface = ""
        for segment in detection.segments:
            if isinstance(segment, str):
                if segment:
                    parts.append(segment)
                preface = segment
                continue
            await self._run_round(conversation, response, segment, preface, depth, parts)
            preface = ""

        if depth > 1 and not detection.calls and detection.text:
            conversation.append(Turn(Role.ASSISTANT, detection.text))

    async def _run_round(
        self,
        conversation: Conversation,
        response: ChatResponse,
        call: ToolCallRequest,
        preface: str,
        depth: int,
        parts: list[str],
    ) -> None:
        conversation.append(self.detector.assistant_turn(response, call, preface))

        if self.detector.normalizes_arguments:
            call = replace(call, arguments=normalize_arguments(call.arguments))

        parts.append(announce(call))
        result = await self._invoke(call)
        conversation.append(self.detector.result_turn(call, result))

        follow_up = await self._request(conversation)
        await self._resolve(conversation, follow_up, depth + 1, parts)

    async def _invoke(self, call: ToolCallRequest) -> ToolCallResult:
        try:
            return await self.invoker.invoke(call)
        except ToolHostDisconnected:
            raise
        except ToolHostError as exc:
            # The model gets to explain the failure in its follow-up.
            self.logger.warning("Tool %s failed: %s", call.name, exc)
            return ToolCallResult(content=f"Error: {exc}", is_error=True, id=call.id)
