"""Base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

# Provider registry - providers register themselves here
_PROVIDER_REGISTRY: dict[str, type["LLMProvider"]] = {}


def register_provider(name: str):
    """
    Decorator to register an LLM provider class.

    Usage:
        @register_provider("openai")
        class OpenAIProvider(LLMProvider):
            ...

    Args:
        name: Provider name (e.g., "openai")

    Returns:
        Decorator function
    """

    def decorator(cls: type["LLMProvider"]) -> type["LLMProvider"]:
        _PROVIDER_REGISTRY[name.lower()] = cls
        return cls

    return decorator


class LLMResponse(BaseModel):
    """Response from an LLM call.

    ``raw_output`` is the full conversation after the call (request messages
    plus the assistant message) so the next iteration can continue from it.
    """

    content: str | None = None
    usage: dict[str, Any] | None = Field(default_factory=dict)
    tool_calls: list[dict[str, Any]] | None = Field(default_factory=list)
    raw_output: list[dict[str, Any]] | None = Field(default_factory=list)
    model: str | None = None
    stop_reason: str | None = None


class LLMProvider(ABC):
    """Base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, Any]],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        agent_config: dict[str, Any] | None = None,
        tool_results: list[dict[str, Any]] | None = None,
        **kwargs,
    ) -> LLMResponse:
        """
        Make a chat completion request to the LLM.

        Args:
            messages: List of message dicts with 'role' and 'content' keys
            model: Model identifier (e.g., "gpt-4.1")
            tools: Optional list of tool schemas for function calling
            temperature: Optional temperature parameter
            max_tokens: Optional max tokens parameter
            top_p: Optional top_p parameter for nucleus sampling
            agent_config: Optional AgentConfig dict containing system_prompt and other config
            tool_results: Optional list of ``function_call_output`` items to add to messages
            **kwargs: Provider-specific additional parameters

        Returns:
            LLMResponse with content, usage, tool_calls, raw_output, model, and stop_reason
        """
        pass


def get_provider(provider_name: str, **kwargs) -> LLMProvider:
    """
    Get LLM provider instance by name from the registry.

    Args:
        provider_name: Name of the provider ("openai")
        **kwargs: Provider-specific initialization parameters

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If the provider is not found or not supported
    """
    provider_name_lower = provider_name.lower()

    provider_class = _PROVIDER_REGISTRY.get(provider_name_lower)
    if provider_class:
        return provider_class(**kwargs)

    if provider_name_lower == "openai":
        # Importing the module triggers @register_provider
        from . import openai  # noqa: F401
    else:
        available = ", ".join(sorted({"openai", *_PROVIDER_REGISTRY}))
        raise ValueError(
            f"Unknown LLM provider: {provider_name}. Supported providers: {available}."
        )

    provider_class = _PROVIDER_REGISTRY.get(provider_name_lower)
    if not provider_class:
        raise ValueError(
            f"Provider {provider_name} was imported but not registered. "
            f"This is likely a bug in the provider implementation."
        )

    return provider_class(**kwargs)
