"""
Runtime settings, read from the environment (and a local ``.env``).

    MCP_BRIDGE_PROVIDER          anthropic | openrouter   (anthropic)
    MCP_BRIDGE_MODEL             model identifier          (per-provider default)
    MCP_BRIDGE_MAX_TOKENS        completion budget         (1000)
    MCP_BRIDGE_MAX_TOOL_ROUNDS   chained tool-call depth   (1)
    MCP_BRIDGE_LOG_LEVEL         logging level name        (WARNING)
    OPENROUTER_BASE_URL          OpenAI-compatible endpoint
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Optional

from dotenv import load_dotenv

from mcp_bridge.errors import ConfigError
from mcp_bridge.params import DEFAULT_MAX_TOKENS
from mcp_bridge.providers import DEFAULT_MODELS, OPENROUTER_BASE_URL, Provider

__all__ = ["Settings"]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    provider: Provider = Provider.ANTHROPIC
    model: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    max_tool_rounds: int = 1
    log_level: str = "WARNING"
    base_url: Optional[str] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "provider", Provider(self.provider))
        except ValueError as exc:
            choices = ", ".join(p.value for p in Provider)
            raise ConfigError(f"Unknown provider {self.provider!r} (choose from {choices})") from exc
        if self.max_tool_rounds < 1:
            raise ConfigError("max_tool_rounds must be at least 1")
        if self.max_tokens < 1:
            raise ConfigError("max_tokens must be positive")

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        provider = os.getenv("MCP_BRIDGE_PROVIDER", Provider.ANTHROPIC.value).lower()
        return cls(
            provider=provider,
            model=os.getenv("MCP_BRIDGE_MODEL") or None,
            max_tokens=_int_env("MCP_BRIDGE_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            max_tool_rounds=_int_env("MCP_BRIDGE_MAX_TOOL_ROUNDS", 1),
            log_level=os.getenv("MCP_BRIDGE_LOG_LEVEL", "WARNING").upper(),
            base_url=os.getenv("OPENROUTER_BASE_URL") or None,
        )

    def override(self, **changes: Any) -> "Settings":
        """Copy with the non-None values in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def llm_kwargs(self) -> dict[str, Any]:
        if self.provider is Provider.OPENROUTER:
            return {"base_url": self.base_url or OPENROUTER_BASE_URL}
        return {}
