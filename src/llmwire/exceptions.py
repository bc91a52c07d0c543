"""
Error taxonomy shared by every adapter, the chat builder, and the dispatcher.

The round-trip kinds form a closed set:

- TransportError: failure before any response (bad base URL, connection error)
- HttpError: generic non-200 response
- DecodeError: malformed or schema-mismatched response body
- ProviderError: structured error extracted from a non-200 body, or an
  invalid provider configuration
- ToolError: wraps a ToolFailure raised while dispatching tool calls
- RateLimitedError: HTTP 429, with the optional Retry-After seconds

InvalidStateError covers builder misuse, which a typed design would reject at
compile time.
"""

from __future__ import annotations

from typing import Optional


class LlmWireError(Exception):
    """Base exception for all llmwire errors."""

    pass


class InvalidStateError(LlmWireError):
    """Raised when a Chat builder operation is not allowed in the current state."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cannot call {operation}(): {reason}")


class TransportError(LlmWireError):
    """Raised when a request cannot be built or delivered."""

    pass


class HttpError(LlmWireError):
    """Raised for a non-200 response whose body is not a structured provider error."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body[:200]}")


class DecodeError(LlmWireError):
    """Raised when a response body cannot be parsed into the expected shape."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProviderError(LlmWireError):
    """Raised for a structured provider error or an invalid provider setting."""

    def __init__(self, provider: str, message: str, raw_body: Optional[str] = None):
        self.provider = provider
        self.message = message
        self.raw_body = raw_body
        super().__init__(f"[{provider}] {message}")


class ProviderConfigurationError(ProviderError):
    """Raised when provider configuration is incorrect."""

    def __init__(self, provider_name: str, missing_config: str, env_var: str = ""):
        self.provider_name = provider_name
        self.missing_config = missing_config
        self.env_var = env_var

        message = f"\n{'='*60}\n"
        message += f"❌ Provider Configuration Error: '{provider_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Missing: {missing_config}\n"
        if env_var:
            message += f"\n💡 How to fix:\n"
            message += f"  1. Set the environment variable:\n"
            message += f"     export {env_var}='your-api-key'\n"
            message += f"  2. Or pass it directly:\n"
            message += f"     provider = {provider_name}Provider(api_key='your-api-key')\n"
        message += f"\n{'='*60}\n"

        super().__init__(provider_name.lower(), message)


class RateLimitedError(LlmWireError):
    """Raised for HTTP 429. `retry_after` is the Retry-After header in seconds, if sent."""

    def __init__(self, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        if retry_after is None:
            super().__init__("Rate limited")
        else:
            super().__init__(f"Rate limited, retry after {retry_after}s")


class ToolFailure(LlmWireError):
    """Base class for failures raised by a single tool handler."""

    pass


class ToolNotFoundError(ToolFailure):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No tool registered under '{name}'")


class InvalidArgumentsError(ToolFailure):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ExecutionFailedError(ToolFailure):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ToolError(LlmWireError):
    """Raised by dispatch when a tool call fails; the remaining calls are not run."""

    def __init__(self, inner: ToolFailure):
        self.inner = inner

        message = f"\n{'='*60}\n"
        message += f"❌ Tool Call Failed: {type(inner).__name__}\n"
        message += f"{'='*60}\n\n"
        message += f"Error: {inner}\n"
        if isinstance(inner, InvalidArgumentsError):
            message += f"\n💡 Check that:\n"
            message += f"  - All required parameters are provided\n"
            message += f"  - Parameter types match the tool's schema\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


__all__ = [
    "LlmWireError",
    "InvalidStateError",
    "TransportError",
    "HttpError",
    "DecodeError",
    "ProviderError",
    "ProviderConfigurationError",
    "RateLimitedError",
    "ToolFailure",
    "ToolNotFoundError",
    "InvalidArgumentsError",
    "ExecutionFailedError",
    "ToolError",
]
