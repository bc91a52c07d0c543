"""
Ollama provider adapter for local LLM inference.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from ..chat import Chat
from ..exceptions import InvalidStateError, ProviderError
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
from .base import Provider, parse_arguments, synthesize_call_id

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
THINK_LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class OllamaOptions:
    """
    Ollama extension state carried on Chat and Turn.

    Attributes:
        think: True/False to toggle thinking, or one of THINK_LEVELS for
            models that grade it. None leaves the server default.
        keep_alive: How long the server keeps the model loaded (e.g. "5m").
        thinking: Thinking text from the last decoded response.
    """

    think: Union[bool, str, None] = None
    keep_alive: Optional[str] = None
    thinking: Optional[str] = None


def _error_message(data: Any) -> Optional[str]:
    error = data.get("error")
    if isinstance(error, str):
        return error
    return None


def _normalize_host(host: str) -> str:
    # OLLAMA_HOST is commonly set without a scheme, e.g. "127.0.0.1:11434".
    if "://" not in host:
        return f"http://{host}"
    return host


class OllamaProvider(Provider):
    """
    Adapter for Ollama's native chat API (`POST /api/chat`).

    Ollama runs locally and needs no API key. The base URL defaults to
    OLLAMA_HOST, then http://localhost:11434.

    Note:
        Requires Ollama to be installed and running. Download from https://ollama.ai
        Start Ollama with: `ollama serve`
    """

    name = "ollama"

    def __init__(self, model: str = "llama3.2", base_url: str | None = None):
        """
        Initialize Ollama provider.

        Args:
            model: Model name (e.g., "llama3.2", "mistral", "qwen3").
                   Must be already pulled via `ollama pull <model>`.
            base_url: Base URL for Ollama server.
        """
        self.default_model = model
        self.base_url = _normalize_host(base_url or os.getenv("OLLAMA_HOST") or DEFAULT_BASE_URL)

    def chat(self, model: Optional[str] = None) -> Chat:
        return Chat(model=model or self.default_model, extension=OllamaOptions())

    def with_think(self, chat: Chat, think: Union[bool, str]) -> Chat:
        """
        Configure thinking for reasoning-capable local models.

        Raises:
            ProviderError: If `think` is neither a bool nor one of THINK_LEVELS.
        """
        if not isinstance(think, bool) and think not in THINK_LEVELS:
            raise ProviderError(
                self.name,
                f"think must be a boolean or one of {', '.join(THINK_LEVELS)}, got {think!r}",
            )
        return chat.with_extension(replace(self._options(chat.extension), think=think))

    def with_keep_alive(self, chat: Chat, keep_alive: str) -> Chat:
        return chat.with_extension(replace(self._options(chat.extension), keep_alive=keep_alive))

    def _options(self, extension: Any) -> OllamaOptions:
        if extension is None:
            return OllamaOptions()
        if not isinstance(extension, OllamaOptions):
            raise InvalidStateError(
                "encode", f"chat carries {type(extension).__name__}, expected OllamaOptions"
            )
        return extension

    def _format_messages(self, system_prompt: Optional[str], messages: Sequence[Message]):
        payload: List[Dict[str, Any]] = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        for message in messages:
            if isinstance(message, UserMessage):
                payload.append({"role": "user", "content": message.text})
            elif isinstance(message, AssistantMessage):
                entry: Dict[str, Any] = {"role": "assistant", "content": message.text}
                if message.tool_calls:
                    entry["tool_calls"] = [
                        {"function": {"name": call.name, "arguments": call.arguments}}
                        for call in message.tool_calls
                    ]
                payload.append(entry)
            elif isinstance(message, ToolResultMessage):
                payload.append(
                    {"role": "tool", "content": message.output, "tool_name": message.tool_name}
                )
        return payload

    def encode(self, chat: Chat) -> HttpRequest:
        chat.require_sendable()
        options = self._options(chat.extension)
        url = join_url(self.base_url, "/api/chat")

        payload: Dict[str, Any] = {
            "model": chat.model,
            "messages": self._format_messages(chat.system_prompt, chat.messages),
            "stream": False,
        }
        if chat.tools_enabled and chat.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in chat.tools
            ]
        if chat.json_output:
            payload["format"] = chat.output_schema or "json"

        sampling: Dict[str, Any] = {}
        if chat.sampling.temperature is not None:
            sampling["temperature"] = chat.sampling.temperature
        if chat.sampling.max_tokens is not None:
            sampling["num_predict"] = chat.sampling.max_tokens
        if sampling:
            payload["options"] = sampling
        if options.think is not None:
            payload["think"] = options.think
        if options.keep_alive is not None:
            payload["keep_alive"] = options.keep_alive

        logger.debug("Encoded ollama request: %d messages", len(payload["messages"]))
        return HttpRequest(
            method="POST",
            url=url,
            headers=(("content-type", "application/json"),),
            body=dump_body(payload),
            timeout=chat.sampling.timeout,
        )

    def decode(self, response: HttpResponse, extension: Any = None) -> Turn:
        options = self._options(extension)
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "response")
        if data.get("error"):
            raise ProviderError(self.name, str(data["error"]), response.body)

        message = expect_dict(data.get("message"), "message")
        text = message.get("content") or ""
        calls: List[ToolCall] = []
        for index, raw_call in enumerate(message.get("tool_calls") or []):
            entry = expect_dict(raw_call, "tool call")
            function = expect_dict(entry.get("function"), "tool call function")
            name = expect_str(function.get("name"), "function.name")
            call_id = entry.get("id") or synthesize_call_id(self.name, index)
            calls.append(ToolCall(call_id, name, parse_arguments(function.get("arguments", {}), name)))

        usage = UsageStats(
            prompt_tokens=expect_count(data.get("prompt_eval_count"), "prompt_eval_count"),
            completion_tokens=expect_count(data.get("eval_count"), "eval_count"),
            model=data.get("model", ""),
            provider=self.name,
        )
        updated = replace(options, thinking=message.get("thinking") or None)
        logger.debug("Decoded ollama response: %d tool calls", len(calls))
        return Turn(text=expect_str(text, "message.content"), tool_calls=tuple(calls), extension=updated, usage=usage)

    def models_request(self) -> HttpRequest:
        return HttpRequest(method="GET", url=join_url(self.base_url, "/api/tags"))

    def decode_models(self, response: HttpResponse) -> List[ModelDescriptor]:
        check_status(response, self.name, _error_message)
        data = expect_dict(load_body(response.body), "model list")
        models = []
        for raw in expect_list(data.get("models", []), "models"):
            entry = expect_dict(raw, "model")
            models.append(
                ModelDescriptor(
                    id=expect_str(entry.get("name") or entry.get("model"), "model.name"),
                    provider=self.name,
                    size=entry.get("size"),
                )
            )
        return models


__all__ = ["OllamaProvider", "OllamaOptions"]
