"""
Tests for the Anthropic Messages API adapter, including tool-result batching.
"""

from __future__ import annotations

import json

import pytest

from llmwire import (
    HttpError,
    ProviderError,
    RateLimitedError,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Turn,
)
from llmwire.providers.anthropic_provider import (
    DEFAULT_MAX_TOKENS,
    INTERLEAVED_THINKING_BETA,
    STRUCTURED_OUTPUTS_BETA,
    AnthropicOptions,
)

WEATHER = ToolDefinition(
    "get_weather",
    "Current weather for a city",
    {"type": "object", "properties": {"city": {"type": "string"}}, "required": ["city"]},
)
CALLS = (
    ToolCall("toolu_1", "get_weather", {"city": "Oslo"}),
    ToolCall("toolu_2", "get_weather", {"city": "Bergen"}),
)


def _body(request):
    return json.loads(request.body)


def _tool_chat(provider):
    chat = provider.chat().with_tools([WEATHER]).user("Weather in Oslo and Bergen?")
    return chat.append_turn(Turn(text="Checking both.", tool_calls=CALLS, extension=AnthropicOptions()))


class TestEncode:
    def test_endpoint_and_headers(self, anthropic_provider) -> None:
        request = anthropic_provider.encode(anthropic_provider.chat().user("hi"))

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers == (
            ("x-api-key", "sk-ant-test"),
            ("anthropic-version", "2023-06-01"),
            ("content-type", "application/json"),
        )

    def test_system_is_top_level_field(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().system("be brief").user("hi")
        body = _body(anthropic_provider.encode(chat))

        assert body["system"] == "be brief"
        assert body["messages"] == [{"role": "user", "content": "hi"}]
        assert body["max_tokens"] == DEFAULT_MAX_TOKENS

    def test_assistant_tool_use_blocks(self, anthropic_provider) -> None:
        body = _body(anthropic_provider.encode(_tool_chat(anthropic_provider)))

        assert body["messages"][1] == {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Checking both."},
                {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Oslo"}},
                {"type": "tool_use", "id": "toolu_2", "name": "get_weather", "input": {"city": "Bergen"}},
            ],
        }
        assert body["tools"] == [
            {
                "name": "get_weather",
                "description": "Current weather for a city",
                "input_schema": WEATHER.parameters,
            }
        ]

    def test_empty_assistant_text_is_omitted(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().with_tools([WEATHER]).user("q")
        chat = chat.append_turn(Turn(text="", tool_calls=CALLS[:1], extension=AnthropicOptions()))
        content = _body(anthropic_provider.encode(chat))["messages"][1]["content"]

        assert [block["type"] for block in content] == ["tool_use"]

    def test_empty_assistant_message_is_skipped(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().user("q").assistant("").user("again")
        messages = _body(anthropic_provider.encode(chat))["messages"]

        assert [m["role"] for m in messages] == ["user", "user"]
        assert all(m["content"] for m in messages)

    def test_consecutive_tool_results_share_one_user_message(self, anthropic_provider) -> None:
        chat = _tool_chat(anthropic_provider).tool_results(
            [ToolResult("toolu_1", "get_weather", '"sunny"'), ToolResult("toolu_2", "get_weather", '"rain"')]
        )
        messages = _body(anthropic_provider.encode(chat))["messages"]

        assert len(messages) == 3
        assert messages[2] == {
            "role": "user",
            "content": [
                {"type": "tool_result", "tool_use_id": "toolu_1", "content": '"sunny"'},
                {"type": "tool_result", "tool_use_id": "toolu_2", "content": '"rain"'},
            ],
        }

    def test_three_results_batched(self, anthropic_provider) -> None:
        calls = CALLS + (ToolCall("toolu_3", "get_weather", {"city": "Tromsø"}),)
        chat = anthropic_provider.chat().with_tools([WEATHER]).user("q")
        chat = chat.append_turn(Turn(tool_calls=calls, extension=AnthropicOptions()))
        chat = chat.tool_results([ToolResult(c.id, c.name, '"ok"') for c in calls])
        messages = _body(anthropic_provider.encode(chat))["messages"]

        assert len(messages) == 3
        assert len(messages[2]["content"]) == 3

    def test_separate_runs_stay_separate(self, anthropic_provider) -> None:
        chat = _tool_chat(anthropic_provider).tool_results(
            [ToolResult("toolu_1", "get_weather", '"sunny"'), ToolResult("toolu_2", "get_weather", '"rain"')]
        )
        next_call = (ToolCall("toolu_3", "get_weather", {"city": "Bodø"}),)
        chat = chat.append_turn(Turn(tool_calls=next_call, extension=AnthropicOptions()))
        chat = chat.tool_results([ToolResult("toolu_3", "get_weather", '"snow"')])
        messages = _body(anthropic_provider.encode(chat))["messages"]

        assert [m["role"] for m in messages] == ["user", "assistant", "user", "assistant", "user"]
        assert len(messages[2]["content"]) == 2
        assert len(messages[4]["content"]) == 1

    def test_user_message_ends_a_run(self, anthropic_provider) -> None:
        chat = _tool_chat(anthropic_provider).tool_results([ToolResult("toolu_1", "get_weather", '"sunny"')])
        chat = chat.user("also Bergen please").tool_results([ToolResult("toolu_2", "get_weather", '"rain"')])
        messages = _body(anthropic_provider.encode(chat))["messages"]

        assert [m["role"] for m in messages] == ["user", "assistant", "user", "user", "user"]
        assert messages[2]["content"][0]["tool_use_id"] == "toolu_1"
        assert messages[3] == {"role": "user", "content": "also Bergen please"}
        assert messages[4]["content"][0]["tool_use_id"] == "toolu_2"

    def test_stored_history_is_not_reordered(self, anthropic_provider) -> None:
        chat = _tool_chat(anthropic_provider).tool_results(
            [ToolResult("toolu_1", "get_weather", '"sunny"'), ToolResult("toolu_2", "get_weather", '"rain"')]
        )
        anthropic_provider.encode(chat)
        assert len(chat.messages) == 4

    def test_thinking_configuration(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().user("q").max_tokens(8000)
        chat = anthropic_provider.with_thinking(chat, 2048)
        request = anthropic_provider.encode(chat)
        body = _body(request)

        assert body["thinking"] == {"type": "enabled", "budget_tokens": 2048}
        assert body["max_tokens"] == 8000
        assert request.header("anthropic-beta") is None

    def test_thinking_without_max_tokens_reserves_room(self, anthropic_provider) -> None:
        chat = anthropic_provider.with_thinking(anthropic_provider.chat().user("q"), 10000)
        body = _body(anthropic_provider.encode(chat))
        assert body["max_tokens"] == 10000 + DEFAULT_MAX_TOKENS

    def test_thinking_budget_below_minimum(self, anthropic_provider) -> None:
        with pytest.raises(ProviderError) as exc_info:
            anthropic_provider.with_thinking(anthropic_provider.chat(), 500)
        assert exc_info.value.provider == "anthropic"
        assert "at least 1024" in exc_info.value.message

    def test_thinking_budget_not_below_max_tokens(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().max_tokens(2000)
        with pytest.raises(ProviderError) as exc_info:
            anthropic_provider.with_thinking(chat, 2000)
        assert "less than max_tokens" in exc_info.value.message

    def test_max_tokens_lowered_after_thinking(self, anthropic_provider) -> None:
        chat = anthropic_provider.with_thinking(anthropic_provider.chat().user("q"), 2048).max_tokens(1000)
        with pytest.raises(ProviderError) as exc_info:
            anthropic_provider.encode(chat)
        assert exc_info.value.provider == "anthropic"
        assert "less than max_tokens (1000)" in exc_info.value.message

    def test_without_thinking(self, anthropic_provider) -> None:
        chat = anthropic_provider.with_thinking(anthropic_provider.chat().user("q"), 2048)
        chat = anthropic_provider.without_thinking(chat)
        assert "thinking" not in _body(anthropic_provider.encode(chat))

    def test_beta_headers(self, anthropic_provider) -> None:
        chat = anthropic_provider.chat().with_tools([WEATHER]).user("q").with_json_output({"type": "object"})
        chat = anthropic_provider.with_thinking(chat, 2048, interleaved=True)
        request = anthropic_provider.encode(chat)

        assert request.header("anthropic-beta") == f"{INTERLEAVED_THINKING_BETA},{STRUCTURED_OUTPUTS_BETA}"
        assert _body(request)["output_format"] == {"type": "json_schema", "schema": {"type": "object"}}

    def test_interleaved_needs_tools(self, anthropic_provider) -> None:
        chat = anthropic_provider.with_thinking(anthropic_provider.chat().user("q"), 2048, interleaved=True)
        assert anthropic_provider.encode(chat).header("anthropic-beta") is None


class TestDecode:
    def test_ordered_text_blocks(self, anthropic_provider, make_response) -> None:
        response = make_response(
            {
                "id": "msg_1",
                "type": "message",
                "role": "assistant",
                "model": "claude-3-5-sonnet-20241022",
                "content": [
                    {"type": "text", "text": "Hello "},
                    {"type": "text", "text": "there"},
                    {"type": "text", "text": "!"},
                ],
                "stop_reason": "end_turn",
                "usage": {"input_tokens": 10, "output_tokens": 4},
            }
        )
        turn = anthropic_provider.decode(response)

        assert turn.text == "Hello there!"
        assert turn.usage.prompt_tokens == 10
        assert turn.usage.total_tokens == 14

    def test_tool_use_and_thinking(self, anthropic_provider, make_response) -> None:
        response = make_response(
            {
                "type": "message",
                "content": [
                    {"type": "thinking", "thinking": "Two cities.", "signature": "sig"},
                    {"type": "text", "text": "Checking."},
                    {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Oslo"}},
                    {"type": "tool_use", "id": "toolu_2", "name": "get_weather", "input": {"city": "Bergen"}},
                ],
                "stop_reason": "tool_use",
            }
        )
        turn = anthropic_provider.decode(response, AnthropicOptions(thinking_budget=2048))

        assert turn.text == "Checking."
        assert turn.tool_calls == CALLS
        assert turn.extension.thinking == "Two cities."
        assert turn.extension.thinking_budget == 2048

    def test_structured_error(self, anthropic_provider, make_response) -> None:
        response = make_response(
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}, status=529
        )
        with pytest.raises(ProviderError) as exc_info:
            anthropic_provider.decode(response)
        assert exc_info.value.message == "overloaded_error: Overloaded"

    def test_rate_limited_header_case(self, anthropic_provider, make_response) -> None:
        response = make_response({}, status=429, headers=[("retry-after", "7")])
        with pytest.raises(RateLimitedError) as exc_info:
            anthropic_provider.decode(response)
        assert exc_info.value.retry_after == 7

    def test_gateway_error_without_json(self, anthropic_provider) -> None:
        from llmwire import HttpResponse

        with pytest.raises(HttpError):
            anthropic_provider.decode(HttpResponse(status=502, body="Bad Gateway"))


class TestModels:
    def test_models_request_and_decode(self, anthropic_provider, make_response) -> None:
        request = anthropic_provider.models_request()
        assert request.url == "https://api.anthropic.com/v1/models"
        assert request.header("x-api-key") == "sk-ant-test"

        models = anthropic_provider.decode_models(
            make_response({"data": [{"id": "claude-sonnet-4-20250514", "display_name": "Claude Sonnet 4"}]})
        )
        assert models[0].id == "claude-sonnet-4-20250514"
        assert models[0].display_name == "Claude Sonnet 4"
