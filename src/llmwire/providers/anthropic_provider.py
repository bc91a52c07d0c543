"""
Anthropic provider adapter for the Messages API.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from ..chat import Chat
from ..env import load_default_env
from ..exceptions import InvalidStateError, ProviderConfigurationError, ProviderError
from ..http import (
    HttpRequest,
    HttpResponse,
    check_status,
    dump_body,
    expect_count,
    expect_dict,
    expect_list,
    expect_str,
    join_url,
    load_body,
)
from ..types import AssistantMessage, Message, ModelDescriptor, ToolCall, Turn, UserMessage
from ..usage import UsageStats
from .base import Provider, group_tool_results

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096
MIN_THINKING_BUDGET = 1024
INTERLEAVED_THINKING_BETA = "interleaved-thinking-2025-05-14"
STRUCTURED_OUTPUTS_BETA = "structured-outputs-2025-11-13"


@dataclass(frozen=True)
class AnthropicOptions:
    """
    Messages API extension state carried on Chat and Turn.

    Attributes:
        thinking_budget: Extended thinking token budget, or None to disable.
        interleaved_thinking: Let the model think between tool calls. Only
            sent when thinking and tools are both enabled.
        thinking: Thinking text from the last decoded response.
    """

    thinking_budget: Optional[int] = None
    interleaved_thinking: bool = False
    thinking: Optional[str] = None


def _error_message(data: Any) -> Optional[str]:
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        kind = error.get("type")
        if message and kind:
            return f"{kind}: {message}"
        return message
    return None


class AnthropicProvider(Provider):
    """Anthropic Messages API adapter (`POST /v1/messages`)."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "claude-3-5-sonnet-20241022",
        base_url: str | None = None,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="Anthropic",
                missing_config="API key",
                env_var="ANTHROPIC_API_KEY",
            )
        self.base_url = base_url or os.getenv("ANTHROPIC_BASE_URL") or DEFAULT_BASE_URL
        self.default_model = default_model

    def chat(self, model: Optional[str] = None) -> Chat:
        return Chat(model=model or self.default_model, extension=AnthropicOptions())

    def with_thinking(self, chat: Chat, budget_tokens: int, interleaved: bool = False) -> Chat:
        """
        Enable extended thinking with the given token budget.

        Raises:
            ProviderError: If the budget is below MIN_THINKING_BUDGET, or not
                below the chat's max_tokens when one is set.
        """
        if budget_tokens < MIN_THINKING_BUDGET:
            raise ProviderError(
                self.name,
                f"thinking budget must be at least {MIN_THINKING_BUDGET} tokens, got {budget_tokens}",
            )
        self._check_budget(budget_tokens, chat.sampling.max_tokens)
        options = replace(
            self._options(chat.extension),
            thinking_budget=budget_tokens,
            interleaved_thinking=interleaved,
        )
        return chat.with_extension(options)

    def _check_budget(self, budget_tokens: int, max_tokens: Optional[int]) -> None:
        if max_tokens is not None and budget_tokens >= max_tokens:
            raise ProviderError(
                self.name,
                f"thinking budget must be less than max_tokens ({max_tokens}), got {budget_tokens}",
            )

    def without_thinking(self, chat: Chat) -> Chat:
        options = replace(self._options(chat.extension), thinking_budget=None, interleaved_thinking=False)
        return chat.with_extension(options)

    def _options(self, extension: Any) -> AnthropicOptions:
        if extension is None:
            return AnthropicOptions()
        if not isinstance(extension, AnthropicOptions):
            raise InvalidStateError(
                "encode", f"chat carries {type(extension).__name__}, expected AnthropicOptions"
            )
        return extension

    def _base_headers(self) -> List[tuple]:
        return [
            ("x-api-key", self.api_key),
            ("anthropic-version", ANTHROPIC_VERSION),
        ]

    def _format_messages(self, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        """
        Format messages for Anthropic's API.

        Anthropic has no tool role: results go back as `tool_result` blocks in a
        user message, and all results answering one assistant turn must share
        a single message. Each maximal run of consecutive tool results is
        therefore merged into one user message.
        """
        formatted: List[Dict[str, Any]] = []
        for group in group_tool_results(messages):
            if isinstance(group, tuple):
                formatted.append(
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": result.call_id,
                                "content": result.output,
                            }
                            for result in group
                        ],
                    }
                )
            elif isinstance(group, UserMessage):
                formatted.append({"role": "user", "content": group.text})
            elif isinstance(group, AssistantMessage):
                content: List[Dict[str, Any]] = []
                if group.text:
                    content.append({"type": "text", "text": group.text})
                for call in group.tool_calls:
                    content.append(
                        {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                    )
                if content:
                    formatted.append({"role": "assistant", "content": content})
        return formatted

    def encode(self, chat: Chat) -> HttpRequest:
        chat.require_sendable()
        options = self._options(chat.extension)
        url = join_url(self.base_url, "/v1/messages")

        if options.thinking_budget is not None:
            # max_tokens may have been lowered after thinking was enabled.
            self._check_budget(options.thinking_budget, chat.sampling.max_tokens)

        max_tokens = chat.sampling.max_tokens
        if max_tokens is None:
            max_tokens = DEFAULT_MAX_TOKENS
            if options.thinking_budget is not None:
                max_tokens += options.thinking_budget

        payload: Dict[str, Any] = {"model": chat.model, "max_tokens": max_tokens}
        if chat.system_prompt:
            payload["system"] = chat.system_prompt
        payload["messages"] = self._format_messages(chat.messages)
        if chat.tools_enabled and chat.tools:
            payload["tools"] = [
                {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}
                for tool in chat.tools
            ]
        if chat.sampling.temperature is not None:
            payload["temperature"] = chat.sampling.temperature
        if options.thinking_budget is not None:
            payload["thinking"] = {"type": "enabled", "budget_tokens": options.thinking_budget}
        if chat.json_output:
            payload["output_format"] = {"type": "json_schema", "schema": chat.output_schema or {}}

        betas: List[str] = []
        if options.interleaved_thinking and options.thinking_budget is not None and chat.tools_enabled:
            betas.append(INTERLEAVED_THINKING_BETA)
        if chat.json_output:
            betas.append(STRUCTURED_OUTPUTS_BETA)

        headers = self._base_headers()
        if betas:
            headers.append(("anthropic-beta", ",".join(betas)))
        headers.append(("content-type", "application/json"))

        logger.debug(
            "Encoded anthropic request: %d messages, %d tools, betas=%s",
            len(payload["messages"]),
            len(chat.tools),
            betas,
        )
        return HttpRequest(
            method="POST",
            url=url,
            headers=tuple(headers),
            body=dump_body(payload),
            timeout=chat.sampling.timeout,
        )

    def decode(self, response: HttpResponse, extension: Any = None) -> Turn:
        options = self._options(extension)
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "response")
        if data.get("type") == "error":
            raise ProviderError(self.name, _error_message(data) or "unknown error", response.body)

        texts: List[str] = []
        calls: List[ToolCall] = []
        thoughts: List[str] = []
        for raw_block in expect_list(data.get("content", []), "content"):
            block = expect_dict(raw_block, "content block")
            kind = block.get("type")
            if kind == "text":
                texts.append(expect_str(block.get("text"), "text block"))
            elif kind == "tool_use":
                calls.append(
                    ToolCall(
                        id=expect_str(block.get("id"), "tool_use.id"),
                        name=expect_str(block.get("name"), "tool_use.name"),
                        arguments=block.get("input", {}),
                    )
                )
            elif kind == "thinking":
                thoughts.append(expect_str(block.get("thinking"), "thinking block"))

        usage_data = expect_dict(data.get("usage") or {}, "usage")
        usage = UsageStats(
            prompt_tokens=expect_count(usage_data.get("input_tokens"), "usage.input_tokens"),
            completion_tokens=expect_count(usage_data.get("output_tokens"), "usage.output_tokens"),
            model=data.get("model", ""),
            provider=self.name,
        )
        updated = replace(options, thinking="".join(thoughts) if thoughts else None)
        logger.debug(
            "Decoded anthropic response: %d text blocks, %d tool calls, stop_reason=%s",
            len(texts),
            len(calls),
            data.get("stop_reason"),
        )
        return Turn(text="".join(texts), tool_calls=tuple(calls), extension=updated, usage=usage)

    def models_request(self) -> HttpRequest:
        return HttpRequest(
            method="GET",
            url=join_url(self.base_url, "/v1/models"),
            headers=tuple(self._base_headers()),
        )

    def decode_models(self, response: HttpResponse) -> List[ModelDescriptor]:
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "model list")
        models = []
        for raw in expect_list(data.get("data", []), "data"):
            entry = expect_dict(raw, "model")
            models.append(
                ModelDescriptor(
                    id=expect_str(entry.get("id"), "model.id"),
                    provider=self.name,
                    display_name=entry.get("display_name"),
                )
            )
        return models


__all__ = ["AnthropicProvider", "AnthropicOptions"]
