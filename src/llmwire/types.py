"""
Core conversation types shared by the chat builder, adapters, and dispatcher.

These primitives are provider-agnostic value objects. They carry no behavior
beyond small conveniences; every adapter reads them and none mutate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

if TYPE_CHECKING:
    from .usage import UsageStats

# Recursive JSON value used for tool-call argument payloads. Python's own
# dict/list/str/int/float/bool/None map one-to-one onto JSON, so no wrapper
# type is needed; conversion to and from the wire is json.loads/json.dumps.
JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]
JsonSchema = Dict[str, Any]


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the model may call: name, description, and JSON parameter schema."""

    name: str
    description: str
    parameters: JsonSchema = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    Produced only by decoding. `id` is either provider-assigned or synthesized
    from the call's position in the response, and stays stable for the whole
    round trip so that results can be matched back to it.
    """

    id: str
    name: str
    arguments: JsonValue = None


@dataclass(frozen=True)
class ToolResult:
    """Serialized output of one executed tool call."""

    id: str
    name: str
    output: str


@dataclass(frozen=True)
class UserMessage:
    text: str


@dataclass(frozen=True)
class AssistantMessage:
    text: str
    tool_calls: Tuple[ToolCall, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class ToolResultMessage:
    call_id: str
    tool_name: str
    output: str

    @classmethod
    def from_result(cls, result: ToolResult) -> "ToolResultMessage":
        return cls(call_id=result.id, tool_name=result.name, output=result.output)


Message = Union[UserMessage, AssistantMessage, ToolResultMessage]


@dataclass(frozen=True)
class Turn:
    """
    The decoded result of one provider exchange.

    Attributes:
        text: Concatenated plain-text output. Meaningful in free-text mode; in
            JSON mode it holds the raw JSON document produced by the model.
        tool_calls: Tool calls in emission order (only when tools are enabled).
        extension: Updated provider extension value (continuation id,
            reasoning summary, ...). Opaque to everything but the adapter.
        usage: Token usage reported by the provider, when present.
    """

    text: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    extension: Any = None
    usage: Optional["UsageStats"] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class ModelDescriptor:
    """
    One entry from a provider's model-listing endpoint.

    Attributes:
        id: Model identifier as accepted by the conversation endpoint.
        provider: Adapter name that listed it.
        owned_by: Owner/organization field, when the provider reports one.
        display_name: Human readable name, when the provider reports one.
        size: Size in bytes (local models) or context size, when reported.
    """

    id: str
    provider: str
    owned_by: Optional[str] = None
    display_name: Optional[str] = None
    size: Optional[int] = None


__all__ = [
    "JsonValue",
    "JsonSchema",
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "Message",
    "Turn",
    "ModelDescriptor",
]
