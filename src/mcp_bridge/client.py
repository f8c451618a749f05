"""
Model endpoint clients with a unified async chat() method.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Protocol, Self, Sequence

from anthropic import AsyncAnthropic
from anthropic.types import Message
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from mcp_bridge.adapters import AnthropicRequestAdapter, OpenAIRequestAdapter
from mcp_bridge.errors import classify_error
from mcp_bridge.params import normalize_params
from mcp_bridge.providers import OPENROUTER_BASE_URL, Provider, get_api_key
from mcp_bridge.response import ChatResponse
from mcp_bridge.types import Turn


class RequestAdapter(Protocol):
    """Protocol for adapting between turns and a provider-specific format."""

    def to_provider(
        self, turns: Sequence[Turn], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert turns and normalized params to provider-specific request format."""
        ...

    def from_provider(self, raw: Any) -> ChatResponse:
        """Convert provider response to unified ChatResponse."""
        ...


class BaseAsyncLLM(ABC):
    """
    Abstract base class for async model endpoint wrappers.

    ``supports_tool_use`` tells whether the endpoint returns typed tool-use
    blocks (structured mode) or only free text (unstructured mode).
    """

    supports_tool_use: ClassVar[bool] = False

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def _chat_impl(self, turns: Sequence[Turn], params: dict[str, Any]) -> Any:
        """
        Send one non-streaming request and return the raw provider response.

        Args:
            turns: The conversation transcript to submit.
            params: Normalized request parameters.
        """
        ...

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    async def chat(
        self,
        turns: Sequence[Turn],
        *,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse:
        """
        Send chat request and return a single response.

        Provider failures do not raise here; they come back as an error
        response, see ``ChatResponse.raise_for_error``.
        """
        normalized_params = normalize_params(params)

        try:
            raw = await self._chat_impl(turns, normalized_params)
            return self.adapter.from_provider(raw)
        except Exception as exc:
            return self._wrap_error(exc)

    def _wrap_error(self, exc: Exception) -> ChatResponse:
        """Wrap exception into an error response."""
        err = classify_error(exc, self.logger)
        return ChatResponse(content="", error=str(err), exception=err)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients. Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseAsyncLLM":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class OpenAILLM(BaseAsyncLLM):
    """
    OpenAI-compatible endpoint (OpenRouter by default), used in unstructured mode.

    Use ``OpenAILLM.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    supports_tool_use = False

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = OPENROUTER_BASE_URL,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = OpenAIRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenAILLM`` around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAILLM.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self._client = client
        self._adapter = OpenAIRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(
        self, turns: Sequence[Turn], params: dict[str, Any]
    ) -> ChatCompletion:
        request_data = self._adapter.to_provider(turns, params)

        self._log(
            f"Sending {len(request_data['messages'])} messages to {self.model}",
            logging.DEBUG,
        )
        return await self._client.chat.completions.create(
            model=self.model, stream=False, **request_data
        )


class AnthropicLLM(BaseAsyncLLM):
    """
    Anthropic Messages API, used in structured mode.

    Use ``AnthropicLLM.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    supports_tool_use = True

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicLLM.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(
        self, turns: Sequence[Turn], params: dict[str, Any]
    ) -> Message:
        request_data = self._adapter.to_provider(turns, params)

        self._log(
            f"Sending {len(request_data['messages'])} messages to {self.model}",
            logging.DEBUG,
        )
        return await self._client.messages.create(model=self.model, **request_data)


_LLM_REGISTRY: dict[Provider, type[BaseAsyncLLM]] = {
    Provider.ANTHROPIC: AnthropicLLM,
    Provider.OPENROUTER: OpenAILLM,
}


def create_llm(
    provider: Provider,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> BaseAsyncLLM:
    """
    Factory for creating any supported model client.

    Args:
        provider: Which endpoint to use (ANTHROPIC, OPENROUTER).
        model: Model identifier.
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured SDK client to wrap verbatim
            (AsyncAnthropic for ANTHROPIC, AsyncOpenAI for OPENROUTER).
        logger: Optional custom logger.
        **provider_kwargs: Extra constructor args (timeout, max_retries, base_url).
    """
    try:
        llm_cls = _LLM_REGISTRY[Provider(provider)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:
        return llm_cls.from_client(model, client, logger=logger)

    key = api_key or get_api_key(Provider(provider))
    return llm_cls(model, api_key=key, logger=logger, **provider_kwargs)
