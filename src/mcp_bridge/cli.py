"""
Interactive command line client.

    $ mcp-bridge path/to/server.py
    $ MCP_BRIDGE_PROVIDER=openrouter mcp-bridge path/to/server.js
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from mcp_bridge.client import create_llm
from mcp_bridge.config import Settings
from mcp_bridge.errors import MCPBridgeError
from mcp_bridge.orchestrator import Orchestrator
from mcp_bridge.providers import Provider
from mcp_bridge.tool_host import MCPToolHost

logger = logging.getLogger(__name__)

QUIT_COMMAND = "quit"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-bridge",
        description="Chat with a language model that can call tools on an MCP server.",
    )
    parser.add_argument("server_script", help="path to the MCP server script (.py or .js)")
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=None,
        help="model endpoint (default: $MCP_BRIDGE_PROVIDER or anthropic)",
    )
    parser.add_argument("--model", default=None, help="model identifier")
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=None,
        help="levels of chained tool calls to follow per query (default: 1)",
    )
    parser.add_argument("--max-tokens", type=int, default=None)
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    return parser


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    # Suppress noisy third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def chat_loop(orchestrator: Orchestrator) -> None:
    print("\nMCP Client Started!")
    print(f"Type your queries or '{QUIT_COMMAND}' to exit.")

    while True:
        try:
            query = await asyncio.to_thread(input, "\nQuery: ")
        except EOFError:
            break
        if query.strip().lower() == QUIT_COMMAND:
            break
        if not query.strip():
            continue
        response = await orchestrator.process_query(query)
        print("\n" + response)


async def run(settings: Settings, server_script: str) -> None:
    llm = create_llm(settings.provider, settings.resolved_model, **settings.llm_kwargs())
    host: Optional[MCPToolHost] = None
    try:
        host = await MCPToolHost.connect(server_script)
        print("Connected to server with tools:", [t.name for t in host.tools])

        orchestrator = Orchestrator(
            llm,
            host,
            max_tool_rounds=settings.max_tool_rounds,
            params={"max_tokens": settings.max_tokens},
        )
        await chat_loop(orchestrator)
    finally:
        if host is not None:
            await host.aclose()
        await llm.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env().override(
            provider=args.provider,
            model=args.model,
            max_tool_rounds=args.max_tool_rounds,
            max_tokens=args.max_tokens,
            log_level=args.log_level,
        )
    except MCPBridgeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level)

    try:
        asyncio.run(run(settings, args.server_script))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:
        logger.debug("Session ended with an error", exc_info=exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
