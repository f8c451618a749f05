from enum import Enum
import os

from dotenv import load_dotenv

from mcp_bridge.errors import ConfigError


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


_ENV_VARS: dict[Provider, str] = {
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.OPENROUTER: "OPENROUTER_API_KEY",
}

DEFAULT_MODELS: dict[Provider, str] = {
    Provider.ANTHROPIC: "claude-sonnet-4-20250514",
    Provider.OPENROUTER: "meta-llama/llama-3.2-3b-instruct:free",
}

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def get_api_key(provider: Provider) -> str:
    load_dotenv()
    env = _ENV_VARS.get(provider)
    if not env:
        raise ConfigError(f"No config for {provider}")
    key = os.getenv(env)
    if not key:
        raise ConfigError(f"{env} is not set")
    return key
