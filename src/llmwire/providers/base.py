"""
Provider abstraction for model-agnostic request encoding and response decoding.
"""

from __future__ import annotations

import json
from typing import Any, Iterator, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from ..chat import Chat
from ..exceptions import DecodeError
from ..http import HttpRequest, HttpResponse
from ..types import JsonValue, Message, ModelDescriptor, ToolResultMessage, Turn

# Either a single message or a maximal run of consecutive tool results.
MessageGroup = Union[Message, Tuple[ToolResultMessage, ...]]


@runtime_checkable
class Provider(Protocol):
    """
    Interface every provider adapter must satisfy.

    Adapters are pure translators: encode() and models_request() build request
    descriptors, decode() and decode_models() parse response descriptors.
    Neither side performs I/O.
    """

    name: str
    default_model: str

    def chat(self, model: Optional[str] = None) -> Chat:
        """Start an empty Chat carrying this adapter's default extension value."""
        ...

    def encode(self, chat: Chat) -> HttpRequest:
        """
        Serialize a Chat into this provider's wire request.

        Raises:
            InvalidStateError: If the chat has no user message.
            TransportError: If the configured base URL is malformed.
        """
        ...

    def decode(self, response: HttpResponse, extension: Any = None) -> Turn:
        """
        Parse a response into a Turn.

        Args:
            response: Response descriptor from the caller's transport.
            extension: The extension value the request was encoded with. The
                returned Turn carries it forward, updated with any state
                the response reports. Defaults to the adapter's default.

        Raises:
            RateLimitedError, ProviderError, HttpError: For non-200 responses.
            DecodeError: If a 200 body does not have the expected shape.
        """
        ...

    def models_request(self) -> HttpRequest:
        """Build the read-only model-listing request."""
        ...

    def decode_models(self, response: HttpResponse) -> List[ModelDescriptor]:
        """Parse the model-listing response."""
        ...


def group_tool_results(messages: Sequence[Message]) -> Iterator[MessageGroup]:
    """
    Walk `messages`, collapsing each maximal run of ToolResultMessages into a tuple.

    Every other message is yielded unchanged. Used by adapters whose API wants
    all results for one assistant turn inside a single message.
    """
    index = 0
    while index < len(messages):
        message = messages[index]
        if not isinstance(message, ToolResultMessage):
            yield message
            index += 1
            continue
        run: List[ToolResultMessage] = []
        while index < len(messages) and isinstance(messages[index], ToolResultMessage):
            run.append(messages[index])  # type: ignore[arg-type]
            index += 1
        yield tuple(run)


def synthesize_call_id(provider: str, index: int) -> str:
    """Deterministic id for providers that do not assign tool-call ids."""
    return f"{provider}-{index}"


def parse_arguments(raw: Any, tool_name: str) -> JsonValue:
    """
    Return tool-call arguments as a structured value.

    Providers that send arguments as a JSON-encoded string get a nested parse;
    structured payloads are returned as-is. An empty string means no arguments.
    """
    if not isinstance(raw, str):
        return raw
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Arguments for tool '{tool_name}' are not valid JSON: {exc}") from exc


def output_value(output: str) -> JsonValue:
    """Parse a serialized tool output, falling back to the raw string."""
    try:
        return json.loads(output)
    except json.JSONDecodeError:
        return output


__all__ = [
    "Provider",
    "MessageGroup",
    "group_tool_results",
    "synthesize_call_id",
    "parse_arguments",
    "output_value",
]
