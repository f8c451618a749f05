"""
MCP Bridge - let a language model call tools on an MCP server mid-conversation.
"""

from .client import (
    BaseAsyncLLM,
    OpenAILLM,
    AnthropicLLM,
    create_llm,
)
from .config import Settings
from .conversation import Conversation
from .detection import (
    CallDetector,
    Detection,
    StructuredDetector,
    UnstructuredDetector,
    create_detector,
)
from .errors import (
    MCPBridgeError,
    ConfigError,
    EndpointError,
    ToolHostError,
    ToolHostDisconnected,
    DetectionMalformed,
    DetectionAmbiguous,
)
from .normalize import normalize_arguments
from .orchestrator import Orchestrator
from .providers import Provider, get_api_key
from .response import ChatResponse
from .tool_host import MCPToolHost, ToolHost, ToolInvoker
from .types import (
    Role,
    TextBlock,
    ToolUseBlock,
    ToolResultBlock,
    Turn,
    ToolDescriptor,
    ToolCallRequest,
    ToolCallResult,
)

__version__ = "0.1.0"

__all__ = [
    "BaseAsyncLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "create_llm",
    "Settings",
    "Conversation",
    "CallDetector",
    "Detection",
    "StructuredDetector",
    "UnstructuredDetector",
    "create_detector",
    "MCPBridgeError",
    "ConfigError",
    "EndpointError",
    "ToolHostError",
    "ToolHostDisconnected",
    "DetectionMalformed",
    "DetectionAmbiguous",
    "normalize_arguments",
    "Orchestrator",
    "Provider",
    "get_api_key",
    "ChatResponse",
    "MCPToolHost",
    "ToolHost",
    "ToolInvoker",
    "Role",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "Turn",
    "ToolDescriptor",
    "ToolCallRequest",
    "ToolCallResult",
]
