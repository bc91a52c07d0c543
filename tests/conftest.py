"""
Pytest configuration and shared fixtures for llmwire tests.

Nothing here touches the network: responses are built as HttpResponse
descriptors and transports are plain callables.
"""

import json
from typing import Any, Callable, List

import pytest

from llmwire import (
    AnthropicProvider,
    GeminiProvider,
    HttpRequest,
    HttpResponse,
    OllamaProvider,
    OpenAIProvider,
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests with real API calls",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real API keys, use --run-e2e to run)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --run-e2e is passed."""
    if config.getoption("--run-e2e"):
        return

    skip_e2e = pytest.mark.skip(reason="Need --run-e2e option to run end-to-end tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


def json_response(payload: Any, status: int = 200, headers=()) -> HttpResponse:
    """Build a response descriptor with a JSON body."""
    return HttpResponse(status=status, headers=tuple(headers), body=json.dumps(payload))


class ScriptedTransport:
    """A transport that replays canned responses and records every request."""

    def __init__(self, responses: List[HttpResponse]) -> None:
        self._responses = list(responses)
        self.requests: List[HttpRequest] = []

    def __call__(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError("ScriptedTransport ran out of responses")
        return self._responses.pop(0)


@pytest.fixture
def make_response() -> Callable[..., HttpResponse]:
    return json_response


@pytest.fixture
def scripted_transport() -> Callable[[List[HttpResponse]], ScriptedTransport]:
    return ScriptedTransport


# Base URLs are pinned so exported *_BASE_URL or OLLAMA_HOST variables cannot redirect requests.
@pytest.fixture
def openai_provider() -> OpenAIProvider:
    return OpenAIProvider(api_key="sk-test", base_url="https://api.openai.com")


@pytest.fixture
def anthropic_provider() -> AnthropicProvider:
    return AnthropicProvider(api_key="sk-ant-test", base_url="https://api.anthropic.com")


@pytest.fixture
def ollama_provider() -> OllamaProvider:
    return OllamaProvider(model="llama3.2", base_url="http://localhost:11434")


@pytest.fixture
def gemini_provider() -> GeminiProvider:
    return GeminiProvider(api_key="gm-test", base_url="https://generativelanguage.googleapis.com")


@pytest.fixture(params=["openai", "anthropic", "ollama", "gemini"])
def any_provider(request, openai_provider, anthropic_provider, ollama_provider, gemini_provider):
    """Each of the four adapters in turn."""
    return {
        "openai": openai_provider,
        "anthropic": anthropic_provider,
        "ollama": ollama_provider,
        "gemini": gemini_provider,
    }[request.param]
