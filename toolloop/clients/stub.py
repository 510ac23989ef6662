"""Scripted model provider for local runs and end-to-end tests."""

import json
import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from toolloop.models.llm import ModelCallOptions, ModelResponse, ToolSpec
from toolloop.models.messages import Message, ToolCallRequest
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RESPONSE = "Stubbed response"

_TEMPLATE_PATTERN = re.compile(r"\{\{\s*message\s*\}\}")


class StubRule(BaseModel):
    """One scripted reply, chosen when ``match`` matches the last user message."""

    match: str
    response: str
    match_type: Literal["exact", "includes", "regex"] = "exact"
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    def matches(self, text: str) -> bool:
        if self.match_type == "regex":
            try:
                return re.search(self.match, text) is not None
            except re.error as e:
                logger.warning(f"Invalid regex in stub rule {self.match!r}: {e}")
                return False
        if self.match_type == "includes":
            return self.match in text
        return text == self.match


class StubConfig(BaseModel):
    default_response: str = DEFAULT_RESPONSE
    responses: list[StubRule] = Field(default_factory=list)

    @classmethod
    def parse(cls, raw: Any) -> "StubConfig":
        """Accept either ``{"responses": [...], "default_response": ...}`` or a flat ``{match: response}`` map."""
        if not isinstance(raw, dict):
            return cls()
        if "responses" in raw or "default_response" in raw:
            return cls.model_validate(raw)
        return cls(responses=[StubRule(match=k, response=v) for k, v in raw.items() if isinstance(v, str)])


def render_template(template: str, message: str) -> str:
    return _TEMPLATE_PATTERN.sub(lambda _: message, template)


class StubProvider:
    """Answers from a fixed rule list instead of a real model.

    A rule's tool calls are only requested for a fresh user message; once
    the tool results are in the history the rule's text is returned as the
    final answer, so a scripted turn always terminates.
    """

    def __init__(self, config: StubConfig | None = None):
        self.config = config or StubConfig()
        self.calls: list[list[Message]] = []

    @classmethod
    def from_env(cls) -> "StubProvider":
        """Load rules from ``LLM_STUB_RESPONSES`` (JSON) or ``LLM_STUB_FIXTURE_PATH`` (JSON file)."""
        raw_json = os.getenv("LLM_STUB_RESPONSES")
        fixture_path = os.getenv("LLM_STUB_FIXTURE_PATH")

        raw: Any = None
        if raw_json:
            try:
                raw = json.loads(raw_json)
            except json.JSONDecodeError as e:
                raise ValueError(f"LLM_STUB_RESPONSES is not valid JSON: {e.msg}") from e
        elif fixture_path:
            contents = Path(fixture_path).resolve().read_text(encoding="utf-8")
            try:
                raw = json.loads(contents)
            except json.JSONDecodeError as e:
                raise ValueError(f"LLM_STUB_FIXTURE_PATH JSON invalid: {e.msg}") from e

        config = StubConfig.parse(raw)
        if default := os.getenv("LLM_STUB_DEFAULT_RESPONSE"):
            config.default_response = default

        return cls(config)

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        model: str,
        extras: dict[str, Any] | None,
        options: ModelCallOptions,
    ) -> ModelResponse:
        self.calls.append(list(messages))

        user_text = next((m.content for m in reversed(messages) if m.role == "user"), "")
        awaiting_tool_results = bool(messages) and messages[-1].role == "user"

        for rule in self.config.responses:
            if rule.matches(user_text):
                logger.debug(f"Stub rule matched: {rule.match!r}")
                tool_calls = rule.tool_calls if awaiting_tool_results else []
                return ModelResponse(message=render_template(rule.response, user_text), tool_calls=list(tool_calls))

        return ModelResponse(message=render_template(self.config.default_response, user_text))
