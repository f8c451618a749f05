"""Tests for the MCP tool host wrapper and the invoker."""

import anyio
import pytest
from mcp.shared.exceptions import McpError
from mcp.types import CallToolResult, ErrorData, ListToolsResult, TextContent, Tool

from fakes import FakeToolHost
from mcp_bridge.errors import ConfigError, ToolHostDisconnected, ToolHostError
from mcp_bridge.tool_host import MCPToolHost, ToolInvoker, dump_content, server_command
from mcp_bridge.types import ToolCallRequest


class FakeSession:
    def __init__(self, *, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def list_tools(self):
        if self.error:
            raise self.error
        return ListToolsResult(tools=[Tool(name="add", description="Add", inputSchema={"type": "object"})])

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if self.error:
            raise self.error
        return self.result


class TestServerCommand:
    def test_python_script(self):
        """Test Python servers are launched with the platform interpreter."""
        assert server_command("weather.py", platform="linux") == ("python3", ["weather.py"])
        assert server_command("weather.py", platform="win32") == ("python", ["weather.py"])

    def test_node_script(self):
        """Test JavaScript servers are launched with node."""
        assert server_command("build/index.js") == ("node", ["build/index.js"])

    @pytest.mark.parametrize("path", ["server.ts", "server", "server.py.bak"])
    def test_other_files_are_rejected(self, path):
        """Test other script types are rejected."""
        with pytest.raises(ConfigError, match=".js or .py"):
            server_command(path)


def test_dump_content():
    """Test MCP content is dumped to plain dicts."""
    assert dump_content([TextContent(type="text", text="5")]) == [{"type": "text", "text": "5"}]
    assert dump_content([]) == []


class TestMCPToolHost:
    @pytest.mark.asyncio
    async def test_list_tools_caches_descriptors(self):
        """Test the tool list is cached."""
        host = MCPToolHost(FakeSession())

        tools = await host.list_tools()

        assert [t.name for t in tools] == ["add"]
        assert host.tools == tools

    @pytest.mark.asyncio
    async def test_call_tool(self):
        """Test a successful tool call."""
        session = FakeSession(result=CallToolResult(content=[TextContent(type="text", text="5")]))
        host = MCPToolHost(session)

        result = await host.call_tool("add", {"a": 2, "b": 3})

        assert session.calls == [("add", {"a": 2, "b": 3})]
        assert result.content == [{"type": "text", "text": "5"}]
        assert result.is_error is False

    @pytest.mark.asyncio
    async def test_tool_side_error_is_a_result(self):
        """Test a tool-side error comes back as a result."""
        session = FakeSession(
            result=CallToolResult(content=[TextContent(type="text", text="bad input")], isError=True)
        )

        result = await MCPToolHost(session).call_tool("add", {})

        assert result.is_error is True

    @pytest.mark.asyncio
    async def test_protocol_error_raises_tool_host_error(self):
        """Test protocol errors raise ToolHostError."""
        session = FakeSession(error=McpError(ErrorData(code=-32602, message="Unknown tool: nope")))

        with pytest.raises(ToolHostError, match="Unknown tool: nope") as exc_info:
            await MCPToolHost(session).call_tool("nope", {})

        assert not isinstance(exc_info.value, ToolHostDisconnected)
        assert exc_info.value.tool_name == "nope"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [anyio.ClosedResourceError(), anyio.BrokenResourceError()])
    async def test_closed_stream_is_a_disconnect(self, error):
        """Test a closed stream is a disconnect."""
        with pytest.raises(ToolHostDisconnected):
            await MCPToolHost(FakeSession(error=error)).call_tool("add", {})

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self):
        """Test closing twice."""
        host = MCPToolHost(FakeSession())

        await host.aclose()
        await host.aclose()

    @pytest.mark.asyncio
    async def test_connect_rejects_unknown_script_type(self):
        """Test connect checks the script type first."""
        with pytest.raises(ConfigError):
            await MCPToolHost.connect("server.rb")


class TestToolInvoker:
    @pytest.mark.asyncio
    async def test_invoke_forwards_once_and_keeps_the_id(self, add_host):
        """Test the invoker calls the host once and keeps the call id."""
        result = await ToolInvoker(add_host).invoke(ToolCallRequest("add", {"a": 2, "b": 3}, id="tu_9"))

        assert add_host.calls == [("add", {"a": 2, "b": 3})]
        assert result.content == [{"type": "text", "text": "5"}]
        assert result.id == "tu_9"

    @pytest.mark.asyncio
    async def test_repeated_requests_are_not_deduplicated(self, add_host):
        """Test repeated requests are each sent."""
        invoker = ToolInvoker(add_host)
        request = ToolCallRequest("add", {"a": 1, "b": 1})

        await invoker.invoke(request)
        await invoker.invoke(request)

        assert len(add_host.calls) == 2

    @pytest.mark.asyncio
    async def test_unknown_tool_is_rejected_before_sending(self):
        """Test unknown tools never reach the host."""
        host = FakeToolHost({"subtract": lambda a: a["a"] - a["b"]})

        with pytest.raises(ToolHostError, match="Unknown tool: subtract"):
            await ToolInvoker(host).invoke(ToolCallRequest("subtract", {"a": 5, "b": 3}))

        assert host.calls == []
