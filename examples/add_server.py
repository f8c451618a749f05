"""A one-tool MCP server for trying the client out.

    $ mcp-bridge examples/add_server.py
    Query: What is 2+3 using the add tool?
"""

from mcp.server.fastmcp import FastMCP

mcp = FastMCP("calculator")


@mcp.tool()
def add(a: float, b: float) -> float:
    """Add two numbers."""
    return a + b


if __name__ == "__main__":
    mcp.run(transport="stdio")
