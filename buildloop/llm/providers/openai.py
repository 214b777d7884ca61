"""OpenAI provider implementation using the Chat Completions API."""

import json
import logging
import os
from typing import Any

from openai import AsyncOpenAI

from .base import LLMProvider, LLMResponse, register_provider

logger = logging.getLogger(__name__)


@register_provider("openai")
class OpenAIProvider(LLMProvider):
    """OpenAI provider for LLM calls via Chat Completions."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            base_url: Optional base URL for the API. If not provided, defaults to OpenAI's URL.
                     Useful for OpenAI-compatible endpoints.
            client: Optional pre-built client (takes precedence over api_key/base_url)
        """
        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not provided. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.base_url = base_url or os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)

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
        Make a request to OpenAI using the Chat Completions API.

        Args:
            messages: List of message dicts with 'role' and 'content' keys
            model: Model identifier (e.g., "gpt-4.1")
            tools: Optional list of tool schemas for function calling
            temperature: Optional temperature parameter (0-2)
            max_tokens: Optional max tokens parameter
            agent_config: Optional AgentConfig dict containing system_prompt and other config
            tool_results: Optional list of tool results to add to messages
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            LLMResponse with content, usage, and tool_calls
        """
        # Copy to avoid mutating input
        processed_messages = [dict(msg) for msg in messages] if messages else []

        # Chat Completions uses a "system" role message for the system prompt
        if agent_config and agent_config.get("system_prompt"):
            has_system = any(msg.get("role") == "system" for msg in processed_messages)
            if not has_system:
                processed_messages.insert(
                    0, {"role": "system", "content": agent_config.get("system_prompt")}
                )

        if tool_results:
            for tool_result in tool_results:
                if tool_result.get("type") == "function_call_output":
                    output = tool_result.get("output")
                    processed_messages.append(
                        {
                            "role": "tool",
                            "content": output if isinstance(output, str) else json.dumps(output),
                            "tool_call_id": tool_result.get("call_id"),
                        }
                    )

        request_params: dict[str, Any] = {
            "model": model,
            "messages": processed_messages,
        }

        if temperature is not None:
            request_params["temperature"] = temperature
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        if top_p is not None:
            request_params["top_p"] = top_p

        if tools:
            validated_tools = _validate_tools_chat_completions(tools)
            if validated_tools:
                request_params["tools"] = validated_tools

        request_params.update(kwargs)

        try:
            usage = {
                "input_tokens": 0,
                "output_tokens": 0,
                "total_tokens": 0,
            }
            response_stop_reason = None
            tool_calls = []
            content = None

            response = await self.client.chat.completions.create(**request_params)
            if not response:
                raise RuntimeError("OpenAI API returned no response")

            if response.choices and len(response.choices) > 0:
                choice = response.choices[0]
                if not choice.message:
                    raise RuntimeError("OpenAI API returned no message")

                processed_messages.append(choice.message.model_dump(exclude_none=True, mode="json"))
                content = choice.message.content or ""
                response_stop_reason = choice.finish_reason

                if choice.message.tool_calls:
                    for tool_call in choice.message.tool_calls:
                        tool_calls.append(
                            {
                                "call_id": tool_call.id,
                                "id": "",
                                "type": "function",
                                "function": {
                                    "name": tool_call.function.name,
                                    "arguments": tool_call.function.arguments,
                                },
                            }
                        )

            if response.usage:
                usage["input_tokens"] = response.usage.prompt_tokens
                usage["output_tokens"] = response.usage.completion_tokens
                usage["total_tokens"] = response.usage.total_tokens

            return LLMResponse(
                content=content,
                usage=usage,
                tool_calls=tool_calls,
                raw_output=processed_messages,
                model=response.model or model,
                stop_reason=response_stop_reason,
            )

        except Exception as e:
            raise RuntimeError(f"OpenAI Chat Completions API call failed: {str(e)}") from e


def _validate_tools_chat_completions(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """
    Validate and normalize tools to OpenAI Chat Completions format.

    OpenAI Chat Completions expects:
    [{"type": "function", "function": {"name": "...", "description": "...", "parameters": {...}}}]
    """
    validated = []
    for tool in tools or []:
        if not isinstance(tool, dict):
            continue

        if tool.get("type", "function") == "function":
            if tool.get("name"):
                validated.append(
                    {
                        "type": "function",
                        "function": {
                            "name": tool.get("name"),
                            "description": tool.get("description", ""),
                            "parameters": tool.get("parameters", {}),
                        },
                    }
                )
            elif tool.get("function"):
                validated.append(tool)
        else:
            validated.append(tool)

    return validated
