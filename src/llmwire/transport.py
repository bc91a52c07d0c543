"""
Reference transport built on the `requests` library.

The adapters never perform I/O; any callable taking an HttpRequest and
returning an HttpResponse can drive them. RequestsTransport is one such
callable for scripts and quick experiments.

Requires the 'requests' library (`pip install llmwire[requests]`).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .exceptions import TransportError
from .http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


class RequestsTransport:
    """
    Execute request descriptors with `requests`.

    Args:
        session: Optional `requests.Session` to reuse connections.
        default_timeout: Timeout in seconds used when the request carries none.
    """

    def __init__(self, session: Optional[Any] = None, default_timeout: Optional[float] = 60.0):
        try:
            import requests  # type: ignore[import-untyped]
        except ImportError as exc:
            raise TransportError(
                "requests package not installed. Install with `pip install requests`."
            ) from exc

        self._requests = requests
        self._session = session or requests.Session()
        self.default_timeout = default_timeout

    def __call__(self, request: HttpRequest) -> HttpResponse:
        timeout = request.timeout if request.timeout is not None else self.default_timeout
        logger.debug("%s %s (timeout=%s)", request.method, request.url, timeout)
        try:
            response = self._session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body.encode("utf-8") if request.body else None,
                timeout=timeout,
            )
        except self._requests.exceptions.RequestException as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc

        return HttpResponse(
            status=response.status_code,
            headers=tuple(response.headers.items()),
            body=response.text,
        )


__all__ = ["RequestsTransport"]
