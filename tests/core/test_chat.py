"""
Tests for the Chat builder and its capability markers.

Tests cover:
- Sendability: EMPTY -> READY on the first user message, never back
- System prompt only while EMPTY
- Tools enabled once, never re-enabled or disabled
- JSON output toggling in both directions
- append_turn / tool_results folding
- Immutability of every builder step
"""

from __future__ import annotations

import dataclasses

import pytest

from llmwire import (
    AssistantMessage,
    Chat,
    InvalidStateError,
    OutputFormat,
    Sendability,
    ToolCall,
    ToolDefinition,
    ToolResult,
    ToolResultMessage,
    Turn,
    UserMessage,
)

WEATHER = ToolDefinition(
    name="get_weather",
    description="Look up the weather",
    parameters={"type": "object", "properties": {"city": {"type": "string"}}},
)


class TestSendability:
    def test_new_chat_is_empty(self) -> None:
        chat = Chat(model="m")
        assert chat.state.sendability is Sendability.EMPTY
        assert not chat.is_sendable

    def test_user_message_makes_chat_ready(self) -> None:
        chat = Chat(model="m").user("hi")
        assert chat.is_sendable
        assert chat.messages == (UserMessage("hi"),)

    def test_ready_is_permanent(self) -> None:
        chat = Chat(model="m").user("hi").temperature(0.5).with_json_output({}).with_free_text()
        assert chat.is_sendable

    def test_assistant_requires_ready(self) -> None:
        with pytest.raises(InvalidStateError) as exc_info:
            Chat(model="m").assistant("hello")
        assert exc_info.value.operation == "assistant"

    def test_assistant_appends_without_tool_calls(self) -> None:
        chat = Chat(model="m").user("2+2?").assistant("4").user("3+3?")
        assert chat.messages[1] == AssistantMessage("4")
        assert chat.messages[1].tool_calls == ()

    def test_require_sendable_on_empty_chat(self) -> None:
        with pytest.raises(InvalidStateError):
            Chat(model="m").require_sendable()


class TestSystemPrompt:
    def test_system_before_messages(self) -> None:
        chat = Chat(model="m").system("be brief").user("hi")
        assert chat.system_prompt == "be brief"

    def test_system_can_be_replaced_while_empty(self) -> None:
        chat = Chat(model="m").system("one").system("two")
        assert chat.system_prompt == "two"

    def test_system_after_user_message_is_rejected(self) -> None:
        chat = Chat(model="m").user("hi")
        with pytest.raises(InvalidStateError) as exc_info:
            chat.system("too late")
        assert exc_info.value.operation == "system"


class TestTools:
    def test_with_tools_enables_tools(self) -> None:
        chat = Chat(model="m").with_tools([WEATHER])
        assert chat.tools_enabled
        assert chat.tools == (WEATHER,)

    def test_with_tools_twice_is_rejected(self) -> None:
        chat = Chat(model="m").with_tools([WEATHER])
        with pytest.raises(InvalidStateError):
            chat.with_tools([])

    def test_tools_survive_other_builder_calls(self) -> None:
        chat = (
            Chat(model="m")
            .with_tools([WEATHER])
            .user("hi")
            .with_json_output({"type": "object"})
            .with_free_text()
            .max_tokens(10)
        )
        assert chat.tools_enabled

    def test_tool_results_require_tools(self) -> None:
        chat = Chat(model="m").user("hi")
        with pytest.raises(InvalidStateError):
            chat.tool_results([ToolResult("c1", "get_weather", '"sunny"')])

    def test_tool_results_append_in_order(self) -> None:
        chat = Chat(model="m").with_tools([WEATHER]).user("hi")
        chat = chat.tool_results(
            [ToolResult("c1", "get_weather", '"sunny"'), ToolResult("c2", "get_weather", '"rain"')]
        )
        assert chat.messages[1:] == (
            ToolResultMessage("c1", "get_weather", '"sunny"'),
            ToolResultMessage("c2", "get_weather", '"rain"'),
        )


class TestOutputFormat:
    def test_default_is_free_text(self) -> None:
        assert Chat(model="m").state.output_format is OutputFormat.FREE_TEXT

    def test_toggle_json_and_back(self) -> None:
        schema = {"type": "object"}
        chat = Chat(model="m").with_json_output(schema)
        assert chat.json_output
        assert chat.output_schema == schema

        chat = chat.with_free_text()
        assert not chat.json_output
        assert chat.output_schema is None

        chat = chat.with_json_output(schema)
        assert chat.json_output

    def test_toggles_are_idempotent(self) -> None:
        chat = Chat(model="m").with_free_text().with_free_text()
        assert not chat.json_output
        chat = chat.with_json_output({}).with_json_output({"type": "array"})
        assert chat.output_schema == {"type": "array"}


class TestSampling:
    def test_options_replace_previous_values(self) -> None:
        chat = Chat(model="m").temperature(0.1).temperature(0.9).max_tokens(5).timeout(2.5)
        assert chat.sampling.temperature == 0.9
        assert chat.sampling.max_tokens == 5
        assert chat.sampling.timeout == 2.5


class TestAppendTurn:
    def test_append_turn_records_assistant_message_and_extension(self) -> None:
        call = ToolCall("c1", "get_weather", {"city": "Oslo"})
        turn = Turn(text="checking", tool_calls=(call,), extension={"response": "r1"})
        chat = Chat(model="m", extension={"response": None}).user("weather?").append_turn(turn)

        assert chat.messages[-1] == AssistantMessage("checking", (call,))
        assert chat.extension == {"response": "r1"}

    def test_turn_index_points_at_last_decoded_reply(self) -> None:
        chat = Chat(model="m").user("q1")
        assert chat.turn_index is None

        chat = chat.append_turn(Turn(text="a1")).user("q2").assistant("seeded")
        assert chat.turn_index == 1
        assert chat.messages[chat.turn_index] == AssistantMessage("a1")

    def test_append_turn_on_empty_chat_is_rejected(self) -> None:
        with pytest.raises(InvalidStateError):
            Chat(model="m").append_turn(Turn(text="x"))


class TestImmutability:
    def test_builder_returns_new_values(self) -> None:
        original = Chat(model="m")
        updated = original.user("hi")
        assert original.messages == ()
        assert updated is not original

    def test_chat_is_frozen(self) -> None:
        chat = Chat(model="m")
        with pytest.raises(dataclasses.FrozenInstanceError):
            chat.model = "other"  # type: ignore[misc]

    def test_old_value_stays_valid_after_branching(self) -> None:
        base = Chat(model="m").user("hi")
        left = base.assistant("a")
        right = base.assistant("b")
        assert left.messages[-1].text == "a"
        assert right.messages[-1].text == "b"
        assert len(base.messages) == 1
