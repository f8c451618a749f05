"""
Tool host boundary: an MCP server reached over stdio, and the invoker that
forwards normalized tool calls to it.
"""

from __future__ import annotations

import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError

from mcp_bridge.errors import (
    DISCONNECT_ERRORS,
    ConfigError,
    ToolHostDisconnected,
    ToolHostError,
)
from mcp_bridge.types import ToolCallRequest, ToolCallResult, ToolDescriptor

__all__ = ["ToolHost", "MCPToolHost", "ToolInvoker", "server_command", "dump_content"]

logger = logging.getLogger(__name__)


class ToolHost(Protocol):
    """What the orchestrator needs from a tool host."""

    @property
    def tools(self) -> tuple[ToolDescriptor, ...]:
        ...

    async def list_tools(self) -> tuple[ToolDescriptor, ...]:
        ...

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolCallResult:
        ...

    async def aclose(self) -> None:
        ...


def server_command(script_path: str, platform: str = sys.platform) -> tuple[str, list[str]]:
    """Return the command and args that launch the server script."""
    suffix = Path(script_path).suffix
    if suffix == ".py":
        command = "python" if platform == "win32" else "python3"
    elif suffix == ".js":
        command = "node"
    else:
        raise ConfigError("Server script must be a .js or .py file")
    return command, [script_path]


def dump_content(content: Sequence[Any]) -> list[Any]:
    """MCP content items (pydantic models) as JSON-compatible dicts."""
    dumped: list[Any] = []
    for item in content or []:
        if hasattr(item, "model_dump"):
            dumped.append(item.model_dump(mode="json", exclude_none=True))
        else:
            dumped.append(item)
    return dumped


class MCPToolHost:
    """
    One MCP server session over stdio.

    The tool list is fetched once on connect and never refreshed.

    Usage:
        async with await MCPToolHost.connect("server.py") as host:
            result = await host.call_tool("add", {"a": 2, "b": 3})
    """

    def __init__(self, session: Any, stack: Optional[AsyncExitStack] = None) -> None:
        self._session = session
        self._stack = stack
        self._tools: tuple[ToolDescriptor, ...] = ()

    @classmethod
    async def connect(
        cls,
        script_path: str,
        *,
        env: Optional[dict[str, str]] = None,
    ) -> "MCPToolHost":
        command, args = server_command(script_path)
        params = StdioServerParameters(command=command, args=args, env=env)

        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await session.initialize()
            host = cls(session, stack)
            await host.list_tools()
        except BaseException:
            logger.exception("Failed to connect to MCP server %s", script_path)
            await stack.aclose()
            raise

        logger.info("Connected to %s with %d tools", script_path, len(host.tools))
        return host

    @property
    def tools(self) -> tuple[ToolDescriptor, ...]:
        return self._tools

    async def list_tools(self) -> tuple[ToolDescriptor, ...]:
        try:
            result = await self._session.list_tools()
        except DISCONNECT_ERRORS as exc:
            raise ToolHostDisconnected(f"Tool host disconnected: {exc!r}") from exc
        except McpError as exc:
            raise ToolHostError(f"Listing tools failed: {exc}") from exc
        self._tools = tuple(ToolDescriptor.from_mcp(t) for t in result.tools)
        return self._tools

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> ToolCallResult:
        try:
            result = await self._session.call_tool(name, dict(arguments))
        except DISCONNECT_ERRORS as exc:
            raise ToolHostDisconnected(f"Tool host disconnected: {exc!r}", name) from exc
        except McpError as exc:
            raise ToolHostError(f"Tool {name} was rejected: {exc}", name) from exc
        return ToolCallResult(content=dump_content(result.content), is_error=bool(result.isError))

    async def aclose(self) -> None:
        """Shut the session and the server process down. Safe to call multiple times."""
        stack, self._stack = self._stack, None
        if stack is not None:
            await stack.aclose()

    async def __aenter__(self) -> "MCPToolHost":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class ToolInvoker:
    """Forwards one tool call to the host. No retries, no deduplication."""

    def __init__(self, host: ToolHost, logger: Optional[logging.Logger] = None) -> None:
        self.host = host
        self.logger = logger or logging.getLogger(__name__)

    async def invoke(self, request: ToolCallRequest) -> ToolCallResult:
        known = {tool.name for tool in self.host.tools}
        if request.name not in known:
            raise ToolHostError(f"Unknown tool: {request.name}", request.name)

        self.logger.info("Calling tool %s", request.name)
        result = await self.host.call_tool(request.name, request.arguments)
        result.id = request.id
        if result.is_error:
            self.logger.warning("Tool %s reported an error", request.name)
        return result
