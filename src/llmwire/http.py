"""
Request/response descriptors and the status handling shared by all adapters.

The core never opens a connection. Adapters build an HttpRequest, the
caller's transport executes it, and the resulting HttpResponse is handed back
to the adapter for decoding.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Tuple
from urllib.parse import urlsplit

from .exceptions import DecodeError, HttpError, ProviderError, RateLimitedError, TransportError

logger = logging.getLogger(__name__)

Headers = Tuple[Tuple[str, str], ...]

# Extracts a human readable message from a parsed non-200 body, or None.
ErrorExtractor = Callable[[Any], Optional[str]]


@dataclass(frozen=True)
class HttpRequest:
    """Outbound request descriptor: method, absolute URL, ordered headers, body."""

    method: str
    url: str
    headers: Headers = ()
    body: str = ""
    timeout: Optional[float] = None

    def header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)


@dataclass(frozen=True)
class HttpResponse:
    """Inbound response descriptor produced by the caller's transport."""

    status: int
    headers: Headers = ()
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)


class Transport(Protocol):
    """Anything that can execute an HttpRequest and return an HttpResponse."""

    def __call__(self, request: HttpRequest) -> HttpResponse: ...


def find_header(headers: Headers, name: str) -> Optional[str]:
    """Case-insensitive header lookup; the first match wins."""
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return None


def join_url(base_url: str, path: str) -> str:
    """
    Join a base address and an endpoint path.

    Raises:
        TransportError: If the base address is not an absolute http(s) URL.
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise TransportError(f"Malformed base URL: {base_url!r}")
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def dump_body(payload: Any) -> str:
    """Serialize a request payload. Key order follows insertion order, so output is stable."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def load_body(body: str) -> Any:
    """Parse a JSON response body, raising DecodeError on malformed input."""
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        raise DecodeError(f"Response body is not valid JSON: {exc}") from exc


def parse_retry_after(response: HttpResponse) -> Optional[int]:
    """Return the Retry-After header as whole seconds, or None if absent or unparseable."""
    value = response.header("retry-after")
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        seconds = -1
    if seconds < 0:
        logger.warning("Ignoring Retry-After header that is not a non-negative integer: %r", value)
        return None
    return seconds


def check_status(response: HttpResponse, provider: str, extract_error: ErrorExtractor) -> None:
    """
    Raise the matching error for any non-200 response.

    - 429 raises RateLimitedError with the parsed Retry-After seconds.
    - Other statuses raise ProviderError when `extract_error` finds a message
      in the body, and fall back to HttpError with the raw body otherwise.
    """
    if response.status == 200:
        return

    if response.status == 429:
        retry_after = parse_retry_after(response)
        logger.warning("%s rate limited (retry_after=%s)", provider, retry_after)
        raise RateLimitedError(retry_after)

    message: Optional[str] = None
    try:
        message = extract_error(json.loads(response.body))
    except (json.JSONDecodeError, TypeError, KeyError, AttributeError):
        message = None

    if message:
        raise ProviderError(provider, message, response.body)

    logger.warning("%s returned HTTP %s with an unstructured body", provider, response.status)
    raise HttpError(response.status, response.body)


def expect_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise DecodeError(f"Expected {what} to be an object, got {type(value).__name__}")
    return value


def expect_list(value: Any, what: str) -> list:
    if not isinstance(value, list):
        raise DecodeError(f"Expected {what} to be an array, got {type(value).__name__}")
    return value


def expect_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"Expected {what} to be a string, got {type(value).__name__}")
    return value


def expect_count(value: Any, what: str) -> int:
    """Token counts: absent or null reads as 0, anything but a non-negative int is an error."""
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"Expected {what} to be a non-negative integer, got {value!r}")
    return value


__all__ = [
    "Headers",
    "HttpRequest",
    "HttpResponse",
    "Transport",
    "find_header",
    "join_url",
    "dump_body",
    "load_body",
    "parse_retry_after",
    "check_status",
    "expect_dict",
    "expect_list",
    "expect_str",
    "expect_count",
]
