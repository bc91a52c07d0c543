"""Provider adapters for the supported LLM backends."""

from .anthropic_provider import AnthropicOptions, AnthropicProvider
from .base import Provider
from .gemini_provider import GeminiOptions, GeminiProvider
from .ollama_provider import OllamaOptions, OllamaProvider
from .openai_provider import OpenAIOptions, OpenAIProvider

__all__ = [
    "Provider",
    "OpenAIProvider",
    "OpenAIOptions",
    "AnthropicProvider",
    "AnthropicOptions",
    "GeminiProvider",
    "GeminiOptions",
    "OllamaProvider",
    "OllamaOptions",
]
