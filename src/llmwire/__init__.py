"""Public exports for the llmwire package."""

from .chat import Chat, ChatState, OutputFormat, SamplingOptions, Sendability
from .dispatch import Done, Step, ToolCallStep, dispatch, step
from .exceptions import (
    DecodeError,
    ExecutionFailedError,
    HttpError,
    InvalidArgumentsError,
    InvalidStateError,
    LlmWireError,
    ProviderConfigurationError,
    ProviderError,
    RateLimitedError,
    ToolError,
    ToolFailure,
    ToolNotFoundError,
    TransportError,
)
from .http import HttpRequest, HttpResponse, Transport
from .providers import (
    AnthropicOptions,
    AnthropicProvider,
    GeminiOptions,
    GeminiProvider,
    OllamaOptions,
    OllamaProvider,
    OpenAIOptions,
    OpenAIProvider,
    Provider,
)
from .tools import Tool, ToolParameter, ToolRegistry, tool
from .types import (
    AssistantMessage,
    Message,
    ModelDescriptor,
    ToolCall,
    ToolDefinition,
    ToolResult,
    ToolResultMessage,
    Turn,
    UserMessage,
)
from .usage import ChatUsage, UsageStats

__all__ = [
    # Conversation
    "Chat",
    "ChatState",
    "OutputFormat",
    "SamplingOptions",
    "Sendability",
    "Message",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "Turn",
    "ModelDescriptor",
    # Providers
    "Provider",
    "OpenAIProvider",
    "OpenAIOptions",
    "AnthropicProvider",
    "AnthropicOptions",
    "GeminiProvider",
    "GeminiOptions",
    "OllamaProvider",
    "OllamaOptions",
    # Transport boundary
    "HttpRequest",
    "HttpResponse",
    "Transport",
    # Tools
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "tool",
    "dispatch",
    "step",
    "Step",
    "Done",
    "ToolCallStep",
    # Exceptions
    "LlmWireError",
    "InvalidStateError",
    "TransportError",
    "HttpError",
    "DecodeError",
    "ProviderError",
    "ProviderConfigurationError",
    "RateLimitedError",
    "ToolError",
    "ToolFailure",
    "ToolNotFoundError",
    "InvalidArgumentsError",
    "ExecutionFailedError",
    # Usage tracking
    "UsageStats",
    "ChatUsage",
]
