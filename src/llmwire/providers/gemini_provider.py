"""
Google Gemini provider adapter for the v1beta generateContent REST API.

See: https://ai.google.dev/api/generate-content
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from ..chat import Chat
from ..env import first_env, load_default_env
from ..exceptions import DecodeError, InvalidStateError, ProviderConfigurationError, ProviderError
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
from .base import Provider, output_value, synthesize_call_id

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DYNAMIC_THINKING_BUDGET = -1
MAX_THINKING_BUDGET = 32768


@dataclass(frozen=True)
class GeminiOptions:
    """
    generateContent extension state carried on Chat and Turn.

    Attributes:
        thinking_budget: -1 for dynamic thinking, 0 to disable it, otherwise a
            token budget up to MAX_THINKING_BUDGET. None leaves the default.
        include_thoughts: Ask for thought summaries in the response.
        thoughts: Thought summary text from the last decoded response.
    """

    thinking_budget: Optional[int] = None
    include_thoughts: bool = False
    thoughts: Optional[str] = None


def _error_message(data: Any) -> Optional[str]:
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        status = error.get("status")
        if message and status:
            return f"{status}: {message}"
        return message
    return None


def _model_path(model: str) -> str:
    return model if model.startswith("models/") else f"models/{model}"


class GeminiProvider(Provider):
    """
    Google Gemini adapter (`POST /v1beta/models/<model>:generateContent`).

    Gemini assigns no ids to function calls, so decoded calls get
    deterministic ids from their order in the response: gemini-0, gemini-1...
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gemini-2.0-flash",
        base_url: str | None = None,
    ):
        load_default_env()
        self.api_key = api_key or first_env("GEMINI_API_KEY", "GOOGLE_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="Gemini",
                missing_config="API key",
                env_var="GEMINI_API_KEY",
            )
        self.base_url = base_url or os.getenv("GEMINI_BASE_URL") or DEFAULT_BASE_URL
        self.default_model = default_model

    def chat(self, model: Optional[str] = None) -> Chat:
        return Chat(model=model or self.default_model, extension=GeminiOptions())

    def with_thinking(self, chat: Chat, budget_tokens: int, include_thoughts: bool = False) -> Chat:
        """
        Configure the thinking budget.

        Raises:
            ProviderError: If the budget is neither -1 nor within 0..MAX_THINKING_BUDGET.
        """
        if budget_tokens != DYNAMIC_THINKING_BUDGET and not 0 <= budget_tokens <= MAX_THINKING_BUDGET:
            raise ProviderError(
                self.name,
                f"thinking budget must be -1 (dynamic) or between 0 and {MAX_THINKING_BUDGET}, "
                f"got {budget_tokens}",
            )
        options = replace(
            self._options(chat.extension),
            thinking_budget=budget_tokens,
            include_thoughts=include_thoughts,
        )
        return chat.with_extension(options)

    def _options(self, extension: Any) -> GeminiOptions:
        if extension is None:
            return GeminiOptions()
        if not isinstance(extension, GeminiOptions):
            raise InvalidStateError(
                "encode", f"chat carries {type(extension).__name__}, expected GeminiOptions"
            )
        return extension

    def _format_contents(self, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        """
        Format messages for Gemini's API.

        Assistant turns use the "model" role. Each tool result becomes its own
        user content holding a single functionResponse part, whose response
        must be an object: non-object outputs are wrapped as {"result": ...}.
        """
        contents: List[Dict[str, Any]] = []
        for message in messages:
            if isinstance(message, UserMessage):
                contents.append({"role": "user", "parts": [{"text": message.text}]})
            elif isinstance(message, AssistantMessage):
                parts: List[Dict[str, Any]] = []
                if message.text:
                    parts.append({"text": message.text})
                for call in message.tool_calls:
                    parts.append({"functionCall": {"name": call.name, "args": call.arguments}})
                if not parts:
                    parts.append({"text": ""})
                contents.append({"role": "model", "parts": parts})
            elif isinstance(message, ToolResultMessage):
                value = output_value(message.output)
                if not isinstance(value, dict):
                    value = {"result": value}
                contents.append(
                    {
                        "role": "user",
                        "parts": [{"functionResponse": {"name": message.tool_name, "response": value}}],
                    }
                )
        return contents

    def encode(self, chat: Chat) -> HttpRequest:
        chat.require_sendable()
        options = self._options(chat.extension)
        url = join_url(self.base_url, f"/v1beta/{_model_path(chat.model)}:generateContent")

        payload: Dict[str, Any] = {}
        if chat.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": chat.system_prompt}]}
        payload["contents"] = self._format_contents(chat.messages)
        if chat.tools_enabled and chat.tools:
            payload["tools"] = [
                {
                    "functionDeclarations": [
                        {
                            "name": tool.name,
                            "description": tool.description,
                            "parameters": tool.parameters,
                        }
                        for tool in chat.tools
                    ]
                }
            ]

        config: Dict[str, Any] = {}
        if chat.sampling.temperature is not None:
            config["temperature"] = chat.sampling.temperature
        if chat.sampling.max_tokens is not None:
            config["maxOutputTokens"] = chat.sampling.max_tokens
        if chat.json_output:
            config["responseMimeType"] = "application/json"
            if chat.output_schema:
                config["responseJsonSchema"] = chat.output_schema
        if options.thinking_budget is not None or options.include_thoughts:
            thinking: Dict[str, Any] = {}
            if options.thinking_budget is not None:
                thinking["thinkingBudget"] = options.thinking_budget
            if options.include_thoughts:
                thinking["includeThoughts"] = True
            config["thinkingConfig"] = thinking
        if config:
            payload["generationConfig"] = config

        logger.debug("Encoded gemini request: %d contents", len(payload["contents"]))
        return HttpRequest(
            method="POST",
            url=url,
            headers=(("x-goog-api-key", self.api_key), ("content-type", "application/json")),
            body=dump_body(payload),
            timeout=chat.sampling.timeout,
        )

    def decode(self, response: HttpResponse, extension: Any = None) -> Turn:
        options = self._options(extension)
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "response")

        candidates = expect_list(data.get("candidates", []), "candidates")
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            if reason:
                raise ProviderError(self.name, f"prompt blocked: {reason}", response.body)
            raise DecodeError("Response contains no candidates")

        candidate = expect_dict(candidates[0], "candidate")
        content = expect_dict(candidate.get("content") or {}, "candidate.content")
        texts: List[str] = []
        thoughts: List[str] = []
        calls: List[ToolCall] = []
        for raw_part in expect_list(content.get("parts", []), "parts"):
            part = expect_dict(raw_part, "part")
            if "functionCall" in part:
                function = expect_dict(part["functionCall"], "functionCall")
                calls.append(
                    ToolCall(
                        id=synthesize_call_id(self.name, len(calls)),
                        name=expect_str(function.get("name"), "functionCall.name"),
                        arguments=function.get("args", {}),
                    )
                )
            elif "text" in part:
                text = expect_str(part["text"], "part.text")
                if part.get("thought"):
                    thoughts.append(text)
                else:
                    texts.append(text)

        usage_data = expect_dict(data.get("usageMetadata") or {}, "usageMetadata")
        usage = UsageStats(
            prompt_tokens=expect_count(usage_data.get("promptTokenCount"), "usageMetadata.promptTokenCount"),
            completion_tokens=expect_count(
                usage_data.get("candidatesTokenCount"), "usageMetadata.candidatesTokenCount"
            ),
            total_tokens=expect_count(usage_data.get("totalTokenCount"), "usageMetadata.totalTokenCount"),
            model=data.get("modelVersion", ""),
            provider=self.name,
        )
        updated = replace(options, thoughts="".join(thoughts) if thoughts else None)
        logger.debug(
            "Decoded gemini response: %d text parts, %d function calls, finishReason=%s",
            len(texts),
            len(calls),
            candidate.get("finishReason"),
        )
        return Turn(text="".join(texts), tool_calls=tuple(calls), extension=updated, usage=usage)

    def models_request(self) -> HttpRequest:
        return HttpRequest(
            method="GET",
            url=join_url(self.base_url, "/v1beta/models"),
            headers=(("x-goog-api-key", self.api_key),),
        )

    def decode_models(self, response: HttpResponse) -> List[ModelDescriptor]:
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "model list")
        models = []
        for raw in expect_list(data.get("models", []), "models"):
            entry = expect_dict(raw, "model")
            name = expect_str(entry.get("name"), "model.name")
            models.append(
                ModelDescriptor(
                    id=name[len("models/") :] if name.startswith("models/") else name,
                    provider=self.name,
                    display_name=entry.get("displayName"),
                    size=entry.get("inputTokenLimit"),
                )
            )
        return models


__all__ = ["GeminiProvider", "GeminiOptions"]
