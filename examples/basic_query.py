from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from mcp_bridge import MCPToolHost, Orchestrator, Provider, create_llm
from mcp_bridge.providers import DEFAULT_MODELS

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

SERVER = Path(__file__).with_name("add_server.py")


async def single_query(provider: Provider, model: str, rounds: int) -> None:
    """
    Run one query against the bundled add server.

    1) Connect to the MCP server and list its tools
    2) Let the model request the add tool
    3) Execute it and feed the result back
    4) Print the joined answer
    """
    llm = create_llm(provider, model)
    async with await MCPToolHost.connect(str(SERVER)) as host:
        orchestrator = Orchestrator(llm, host, max_tool_rounds=rounds)
        answer = await orchestrator.process_query("What is 2+3 using the add tool?")
    await llm.aclose()
    logger.info("%s says:\n%s", provider.value.capitalize(), answer)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.ANTHROPIC.value,
    )
    parser.add_argument("--model", default=None)
    parser.add_argument("--rounds", type=int, default=1)
    args = parser.parse_args()

    provider = Provider(args.provider)
    asyncio.run(single_query(provider, args.model or DEFAULT_MODELS[provider], args.rounds))
