"""
OpenAI provider adapter for the Responses API.
"""

from __future__ import annotations

import json
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
from ..types import (
    AssistantMessage,
    Message,
    ModelDescriptor,
    ToolCall,
    ToolResultMessage,
    Turn,
    UserMessage,
)
from ..usage import UsageStats
from .base import Provider, parse_arguments

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"
REASONING_EFFORTS = ("minimal", "low", "medium", "high")
REASONING_SUMMARIES = ("auto", "concise", "detailed")


@dataclass(frozen=True)
class OpenAIOptions:
    """
    Responses API extension state carried on Chat and Turn.

    Attributes:
        reasoning_effort: One of REASONING_EFFORTS, for reasoning models.
        reasoning_summary: One of REASONING_SUMMARIES; asks for a summary of
            the model's reasoning.
        store: Let the server keep the response so the next request can
            continue from it with previous_response_id.
        previous_response_id: Id of the last decoded response, recorded only
            when that response was created with store on.
        reasoning: Reasoning summary text from the last decoded response.
    """

    reasoning_effort: Optional[str] = None
    reasoning_summary: Optional[str] = None
    store: bool = False
    previous_response_id: Optional[str] = None
    reasoning: Optional[str] = None


def _error_message(data: Any) -> Optional[str]:
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return None


class OpenAIProvider(Provider):
    """Adapter that speaks OpenAI's Responses API (`POST /v1/responses`)."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gpt-4o",
        base_url: str | None = None,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="OpenAI",
                missing_config="API key",
                env_var="OPENAI_API_KEY",
            )
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL
        self.default_model = default_model

    def chat(self, model: Optional[str] = None) -> Chat:
        return Chat(model=model or self.default_model, extension=OpenAIOptions())

    def with_reasoning(self, chat: Chat, effort: str, summary: Optional[str] = None) -> Chat:
        """
        Configure reasoning effort (and optionally a reasoning summary).

        Raises:
            ProviderError: If `effort` or `summary` is not an accepted value.
        """
        if effort not in REASONING_EFFORTS:
            raise ProviderError(
                self.name,
                f"reasoning effort must be one of {', '.join(REASONING_EFFORTS)}, got {effort!r}",
            )
        if summary is not None and summary not in REASONING_SUMMARIES:
            raise ProviderError(
                self.name,
                f"reasoning summary must be one of {', '.join(REASONING_SUMMARIES)}, got {summary!r}",
            )
        options = replace(self._options(chat.extension), reasoning_effort=effort, reasoning_summary=summary)
        return chat.with_extension(options)

    def with_store(self, chat: Chat, store: bool = True) -> Chat:
        """Toggle server-side storage and continuation via previous_response_id."""
        return chat.with_extension(replace(self._options(chat.extension), store=store))

    def _options(self, extension: Any) -> OpenAIOptions:
        if extension is None:
            return OpenAIOptions()
        if not isinstance(extension, OpenAIOptions):
            raise InvalidStateError(
                "encode", f"chat carries {type(extension).__name__}, expected OpenAIOptions"
            )
        return extension

    def _headers(self) -> tuple:
        return (
            ("authorization", f"Bearer {self.api_key}"),
            ("content-type", "application/json"),
        )

    def _format_input(self, system_prompt: Optional[str], messages: Sequence[Message]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        if system_prompt:
            items.append({"role": "system", "content": system_prompt})
        for message in messages:
            if isinstance(message, UserMessage):
                items.append({"role": "user", "content": message.text})
            elif isinstance(message, AssistantMessage):
                if message.text:
                    items.append({"role": "assistant", "content": message.text})
                for call in message.tool_calls:
                    items.append(
                        {
                            "type": "function_call",
                            "call_id": call.id,
                            "name": call.name,
                            "arguments": json.dumps(call.arguments, ensure_ascii=False),
                        }
                    )
            elif isinstance(message, ToolResultMessage):
                items.append(
                    {
                        "type": "function_call_output",
                        "call_id": message.call_id,
                        "output": message.output,
                    }
                )
        return items

    def encode(self, chat: Chat) -> HttpRequest:
        chat.require_sendable()
        options = self._options(chat.extension)
        url = join_url(self.base_url, "/v1/responses")

        payload: Dict[str, Any] = {"model": chat.model}
        system_prompt = chat.system_prompt
        messages: Sequence[Message] = chat.messages
        if options.store and options.previous_response_id and chat.turn_index is not None:
            # The server already holds everything up to and including the stored reply.
            payload["previous_response_id"] = options.previous_response_id
            messages = messages[chat.turn_index + 1 :]
            system_prompt = None
        payload["input"] = self._format_input(system_prompt, messages)

        if chat.tools_enabled and chat.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                }
                for tool in chat.tools
            ]
        if chat.sampling.temperature is not None:
            payload["temperature"] = chat.sampling.temperature
        if chat.sampling.max_tokens is not None:
            payload["max_output_tokens"] = chat.sampling.max_tokens
        if options.reasoning_effort or options.reasoning_summary:
            reasoning: Dict[str, Any] = {}
            if options.reasoning_effort:
                reasoning["effort"] = options.reasoning_effort
            if options.reasoning_summary:
                reasoning["summary"] = options.reasoning_summary
            payload["reasoning"] = reasoning
        if chat.json_output:
            payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": "output",
                    "schema": chat.output_schema or {},
                    "strict": True,
                }
            }
        payload["store"] = options.store

        logger.debug(
            "Encoded openai request: %d input items, %d tools", len(payload["input"]), len(chat.tools)
        )
        return HttpRequest(
            method="POST",
            url=url,
            headers=self._headers(),
            body=dump_body(payload),
            timeout=chat.sampling.timeout,
        )

    def decode(self, response: HttpResponse, extension: Any = None) -> Turn:
        options = self._options(extension)
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "response")
        if data.get("error"):
            raise ProviderError(self.name, _error_message(data) or "response failed", response.body)

        texts: List[str] = []
        calls: List[ToolCall] = []
        summaries: List[str] = []
        for raw_item in expect_list(data.get("output", []), "output"):
            item = expect_dict(raw_item, "output item")
            kind = item.get("type")
            if kind == "message":
                for raw_block in expect_list(item.get("content", []), "message content"):
                    block = expect_dict(raw_block, "content block")
                    if block.get("type") == "output_text":
                        texts.append(expect_str(block.get("text"), "output_text.text"))
            elif kind == "function_call":
                name = expect_str(item.get("name"), "function_call.name")
                call_id = expect_str(item.get("call_id"), "function_call.call_id")
                calls.append(ToolCall(call_id, name, parse_arguments(item.get("arguments", ""), name)))
            elif kind == "reasoning":
                for raw_part in item.get("summary") or []:
                    part = expect_dict(raw_part, "reasoning summary")
                    if part.get("type") == "summary_text":
                        summaries.append(expect_str(part.get("text"), "summary_text.text"))

        updated = replace(
            options,
            previous_response_id=data.get("id") if options.store else None,
            reasoning="\n".join(summaries) if summaries else None,
        )
        usage_data = expect_dict(data.get("usage") or {}, "usage")
        usage = UsageStats(
            prompt_tokens=expect_count(usage_data.get("input_tokens"), "usage.input_tokens"),
            completion_tokens=expect_count(usage_data.get("output_tokens"), "usage.output_tokens"),
            total_tokens=expect_count(usage_data.get("total_tokens"), "usage.total_tokens"),
            model=data.get("model", ""),
            provider=self.name,
        )
        logger.debug("Decoded openai response: %d text blocks, %d tool calls", len(texts), len(calls))
        return Turn(text="".join(texts), tool_calls=tuple(calls), extension=updated, usage=usage)

    def models_request(self) -> HttpRequest:
        return HttpRequest(
            method="GET",
            url=join_url(self.base_url, "/v1/models"),
            headers=(("authorization", f"Bearer {self.api_key}"),),
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
                    owned_by=entry.get("owned_by"),
                )
            )
        return models


__all__ = ["OpenAIProvider", "OpenAIOptions"]
