"""
Immutable conversation builder with runtime capability tracking.

A Chat carries the conversation history, the sampling options, and a state
tag with three markers:

- sendability: EMPTY until the first user message, then READY for good
- tools_enabled: False until with_tools(), then True for good
- output format: FREE_TEXT or JSON, toggled freely

Every builder method returns a new Chat. Operations that are not valid in the
current state raise InvalidStateError instead of producing a Chat.

Example:
    >>> chat = (
    ...     provider.chat("gpt-4o")
    ...     .system("You are terse.")
    ...     .user("What's the weather in Oslo?")
    ...     .with_tools([weather.definition()])
    ...     .temperature(0.2)
    ... )
    >>> request = provider.encode(chat)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from .exceptions import InvalidStateError
from .types import (
    AssistantMessage,
    JsonSchema,
    Message,
    ToolDefinition,
    ToolResult,
    ToolResultMessage,
    Turn,
    UserMessage,
)


class Sendability(str, Enum):
    """Whether the conversation has anything to send yet."""

    EMPTY = "empty"
    READY = "ready"


class OutputFormat(str, Enum):
    """Requested shape of the model's text output."""

    FREE_TEXT = "free_text"
    JSON = "json"


@dataclass(frozen=True)
class ChatState:
    """Capability markers carried alongside a Chat."""

    sendability: Sendability = Sendability.EMPTY
    tools_enabled: bool = False
    output_format: OutputFormat = OutputFormat.FREE_TEXT


@dataclass(frozen=True)
class SamplingOptions:
    """
    Optional sampling settings.

    `timeout` is never enforced here; adapters copy it onto the request
    descriptor for the caller's transport.
    """

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class Chat:
    """
    Conversation value passed to an adapter's encode().

    Create one through an adapter (`provider.chat(model)`) so that the
    extension value matches the adapter that will encode it.

    `turn_index` is the position in `messages` of the assistant message added
    by the last append_turn(), i.e. the reply the current extension belongs to.
    """

    model: str
    extension: Any = None
    system_prompt: Optional[str] = None
    messages: Tuple[Message, ...] = ()
    tools: Tuple[ToolDefinition, ...] = ()
    sampling: SamplingOptions = field(default_factory=SamplingOptions)
    output_schema: Optional[JsonSchema] = None
    state: ChatState = field(default_factory=ChatState)
    turn_index: Optional[int] = None

    @property
    def is_sendable(self) -> bool:
        return self.state.sendability is Sendability.READY

    @property
    def tools_enabled(self) -> bool:
        return self.state.tools_enabled

    @property
    def json_output(self) -> bool:
        return self.state.output_format is OutputFormat.JSON

    def _with_state(self, **changes: Any) -> ChatState:
        return replace(self.state, **changes)

    def system(self, text: str) -> "Chat":
        """Set the system prompt. Only allowed before any message exists."""
        if self.state.sendability is not Sendability.EMPTY:
            raise InvalidStateError(
                "system", "the system prompt must be set before the first message"
            )
        return replace(self, system_prompt=text)

    def user(self, text: str) -> "Chat":
        """Append a user message; the chat becomes sendable."""
        return replace(
            self,
            messages=self.messages + (UserMessage(text),),
            state=self._with_state(sendability=Sendability.READY),
        )

    def assistant(self, text: str) -> "Chat":
        """Append an assistant message, e.g. to seed few-shot examples."""
        if not self.is_sendable:
            raise InvalidStateError("assistant", "add a user message first")
        return replace(self, messages=self.messages + (AssistantMessage(text),))

    def temperature(self, value: float) -> "Chat":
        return replace(self, sampling=replace(self.sampling, temperature=value))

    def max_tokens(self, value: int) -> "Chat":
        return replace(self, sampling=replace(self.sampling, max_tokens=value))

    def timeout(self, seconds: float) -> "Chat":
        return replace(self, sampling=replace(self.sampling, timeout=seconds))

    def with_tools(self, definitions: Iterable[ToolDefinition]) -> "Chat":
        """Enable tool calling. Tools cannot be changed or disabled afterwards."""
        if self.state.tools_enabled:
            raise InvalidStateError("with_tools", "tools are already enabled")
        return replace(
            self,
            tools=tuple(definitions),
            state=self._with_state(tools_enabled=True),
        )

    def with_json_output(self, schema: JsonSchema) -> "Chat":
        """Constrain the model's output to JSON matching `schema`."""
        return replace(
            self,
            output_schema=schema,
            state=self._with_state(output_format=OutputFormat.JSON),
        )

    def with_free_text(self) -> "Chat":
        return replace(
            self,
            output_schema=None,
            state=self._with_state(output_format=OutputFormat.FREE_TEXT),
        )

    def with_extension(self, extension: Any) -> "Chat":
        """Replace the provider extension value."""
        return replace(self, extension=extension)

    def append_turn(self, turn: Turn) -> "Chat":
        """Record the model's reply and adopt the turn's extension value."""
        if not self.is_sendable:
            raise InvalidStateError("append_turn", "nothing has been sent yet")
        message = AssistantMessage(turn.text, tuple(turn.tool_calls))
        return replace(
            self,
            messages=self.messages + (message,),
            extension=turn.extension,
            turn_index=len(self.messages),
        )

    def tool_results(self, results: Iterable[ToolResult]) -> "Chat":
        """Append one ToolResultMessage per result, in the given order."""
        if not self.state.tools_enabled:
            raise InvalidStateError("tool_results", "tools are not enabled")
        appended = tuple(ToolResultMessage.from_result(result) for result in results)
        return replace(self, messages=self.messages + appended)

    def require_sendable(self) -> None:
        """Raise InvalidStateError unless at least one user message exists."""
        if not self.is_sendable:
            raise InvalidStateError("encode", "the chat has no user message")


__all__ = ["Chat", "ChatState", "OutputFormat", "SamplingOptions", "Sendability"]
