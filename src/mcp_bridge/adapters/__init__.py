"""Pure transformation adapters for the supported model endpoints."""

from .openai import OpenAIRequestAdapter
from .anthropic import AnthropicRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
]
