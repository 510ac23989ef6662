"""Anthropic model provider with client-side rate limiting and error mapping."""

import asyncio
import json
import os
import time
from dataclasses import dataclass
from typing import Any

import anthropic
import tiktoken
from anthropic import AsyncAnthropic
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from toolloop.errors import RETRYABLE_STATUS_CODES, ProviderError
from toolloop.models.llm import ModelCallOptions, ModelResponse, ToolSpec
from toolloop.models.messages import Message, ToolCallRequest
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic provider."""

    max_tokens: int = 4096
    temperature: float = 0.1
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class AnthropicRateLimiter:
    """Moving-window limiter on request count and estimated tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits in both windows."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(1, estimated_tokens)):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit: Any, identifier: str, kind: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            # reset_time is a wall-clock timestamp
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{kind} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


def to_anthropic_messages(messages: list[Message]) -> tuple[list[str], list[dict[str, Any]]]:
    """Split history into system prompt parts and Anthropic message dicts.

    Consecutive tool results are grouped into a single user turn, which is
    what the Messages API expects after an assistant ``tool_use`` turn.
    """
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for message in messages:
        if message.role == "system":
            system_parts.append(message.content)
            continue

        if message.role == "tool":
            block = {"type": "tool_result", "tool_use_id": message.tool_call_id, "content": message.content}
            previous = converted[-1] if converted else None
            if previous and previous["role"] == "user" and _is_tool_result_turn(previous):
                previous["content"].append(block)
            else:
                converted.append({"role": "user", "content": [block]})
            continue

        if message.role == "assistant" and message.tool_calls:
            content: list[dict[str, Any]] = []
            if message.content:
                content.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                content.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
            converted.append({"role": "assistant", "content": content})
            continue

        converted.append({"role": message.role, "content": message.content})

    return system_parts, converted


def _is_tool_result_turn(message: dict[str, Any]) -> bool:
    content = message["content"]
    return isinstance(content, list) and all(block.get("type") == "tool_result" for block in content)


def build_system_prompt(system_parts: list[str], extras: dict[str, Any] | None) -> str:
    """Join system messages and append the caller's context block."""
    prompt = "\n\n".join(part for part in system_parts if part)
    if extras:
        context = "\n".join(f"- {key}: {_render_extra(value)}" for key, value in extras.items())
        prompt = f"{prompt}\n\nCURRENT CONTEXT:\n{context}" if prompt else f"CURRENT CONTEXT:\n{context}"
    return prompt


def _render_extra(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


def map_provider_error(error: Exception) -> ProviderError:
    """Translate an SDK exception into a ProviderError with retry classification."""
    if isinstance(error, anthropic.RateLimitError):
        return ProviderError(f"Rate limited by Anthropic: {error}", retryable=True, status_code=429)
    if isinstance(error, anthropic.APIStatusError):
        retryable = error.status_code in RETRYABLE_STATUS_CODES
        return ProviderError(
            f"Anthropic API error {error.status_code}: {error}", retryable=retryable, status_code=error.status_code
        )
    if isinstance(error, anthropic.APIConnectionError):
        return ProviderError(f"Could not reach Anthropic: {error}", retryable=True)
    return ProviderError(f"Anthropic call failed: {error}")


class AnthropicProvider:
    """Model provider backed by the Anthropic Messages API.

    SDK retries are disabled; transient failures surface as retryable
    ProviderErrors and the agent loop owns the backoff.
    """

    tokenizer: tiktoken.Encoding | None = None

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
        rate_limiter: AnthropicRateLimiter | None = None,
    ):
        self.config = config or AnthropicConfig()

        if client is None:
            anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable is required")
            client = AsyncAnthropic(api_key=anthropic_api_key, max_retries=0)

        self.client = client
        self.rate_limiter = rate_limiter or AnthropicRateLimiter(
            self.config.requests_per_minute, self.config.tokens_per_minute
        )

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        model: str,
        extras: dict[str, Any] | None,
        options: ModelCallOptions,
    ) -> ModelResponse:
        system_parts, anthropic_messages = to_anthropic_messages(messages)
        system_prompt = build_system_prompt(system_parts, extras)

        estimated_tokens = self.estimate_tokens(system_prompt + "".join(m.content for m in messages))
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": anthropic_messages,
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if tools:
            request_params["tools"] = [tool.model_dump() for tool in tools]

        logger.debug(f"Making Anthropic API call with model: {model}, {len(anthropic_messages)} messages")

        try:
            response = await self.client.messages.create(**request_params)
        except anthropic.AnthropicError as e:
            error = map_provider_error(e)
            logger.warning(f"Anthropic call failed (retryable={error.retryable}): {e}")
            raise error from e

        logger.debug(f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}")
        return self._to_model_response(response.content)

    def _to_model_response(self, content: list[Any]) -> ModelResponse:
        texts: list[str] = []
        tool_calls: list[ToolCallRequest] = []
        for block in content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCallRequest(id=block.id, name=block.name, arguments=block.input))
            else:
                logger.warning(f"Unknown content block type: {block.type}")

        return ModelResponse(message="\n".join(texts) or None, tool_calls=tool_calls)

    def estimate_tokens(self, text: str) -> int:
        try:
            return len(self.tokenizer.encode(text)) if self.tokenizer else len(text) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(text) // 4
