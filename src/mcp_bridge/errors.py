"""
Exception taxonomy for mcp-bridge.

Provider SDK tracebacks are translated into a unified `EndpointError` while the
original exception is preserved for full tracebacks.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import anyio
import openai

__all__: tuple[str, ...] = (
    "MCPBridgeError",
    "ConfigError",
    "EndpointError",
    "ToolHostError",
    "ToolHostDisconnected",
    "DetectionMalformed",
    "DetectionAmbiguous",
    "classify_error",
    "DISCONNECT_ERRORS",
)


class MCPBridgeError(RuntimeError):
    """Base class for every error raised by mcp-bridge."""


class ConfigError(MCPBridgeError):
    """Raised when settings, API keys or the server script are unusable."""


class EndpointError(MCPBridgeError):
    """The model endpoint request failed outright.

    Attributes:
        original_exc: The underlying provider exception, if any.
    """

    original_exc: Optional[Exception]

    def __init__(self, message: str, original_exc: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


class ToolHostError(MCPBridgeError):
    """The tool host rejected a call, or the tool is unknown to it."""

    def __init__(self, message: str, tool_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolHostDisconnected(ToolHostError):
    """The tool host connection is gone. Fatal for the session."""


class DetectionMalformed(MCPBridgeError):
    """A tool-call marker was found but the JSON behind it does not parse."""

    def __init__(self, message: str, fragment: str = "") -> None:
        super().__init__(message)
        self.fragment = fragment


class DetectionAmbiguous(MCPBridgeError):
    """Parsed JSON that does not have the tool-call shape; treated as no call."""


RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIError,
    anthropic.APIError,
)

# Raised by the MCP stdio streams once the server process has gone away.
DISCONNECT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> EndpointError:
    """Wrap an SDK exception in EndpointError with a friendly, concise message."""
    log = logger or logging.getLogger(__name__)

    # Rate-limit and connection errors subclass APIError, so check them first.
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the model endpoint"
    elif isinstance(exc, API_ERRORS):
        status = getattr(exc, "status_code", None)
        msg = f"Model endpoint reported an error ({status})" if status else "Model endpoint reported an error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception: %s", msg, exc_info=exc)
    return EndpointError(f"{msg}: {exc}", exc)
