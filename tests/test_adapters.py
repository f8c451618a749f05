"""Test suite for parameter normalization and request adapters."""

import pytest
from anthropic.types import Message
from openai.types.chat import ChatCompletion, ChatCompletionMessage
from openai.types.chat.chat_completion import Choice

from fakes import ADD_TOOL
from mcp_bridge.adapters.anthropic import AnthropicRequestAdapter
from mcp_bridge.adapters.openai import OpenAIRequestAdapter, message_text
from mcp_bridge.params import normalize_params
from mcp_bridge.types import (
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)


class TestParamsNormalization:
    """Test parameter normalization functionality."""

    def test_standard_keys_stay_top_level(self):
        """Test standard parameters stay at the top level."""
        params = normalize_params({"max_tokens": 100, "temperature": 0.2, "tools": [ADD_TOOL]})

        assert params["max_tokens"] == 100
        assert params["temperature"] == 0.2
        assert params["tools"] == [ADD_TOOL]
        assert params["extra"] == {}

    def test_unknown_keys_move_to_extra(self):
        """Test provider specific keys are moved under extra."""
        params = normalize_params({"max_tokens": 10, "metadata": {"user_id": "u1"}})

        assert params == {"max_tokens": 10, "extra": {"metadata": {"user_id": "u1"}}}

    def test_user_extra_wins(self):
        """Test an explicit extra entry beats a top-level key of the same name."""
        params = normalize_params({"top_k": 5, "extra": {"top_k": 7}})

        assert params["extra"] == {"top_k": 7}

    def test_empty(self):
        """Test empty and missing params normalize to an empty extra."""
        assert normalize_params(None) == {"extra": {}}
        assert normalize_params({}) == {"extra": {}}

    def test_rejects_non_dict(self):
        """Test non-dict params are rejected."""
        with pytest.raises(TypeError):
            normalize_params([("max_tokens", 1)])


class TestAnthropicRequestAdapter:
    @pytest.fixture
    def adapter(self):
        return AnthropicRequestAdapter()

    def test_plain_query(self, adapter):
        """Test a single user turn with the default token limit."""
        result = adapter.to_provider([Turn(Role.USER, "Hello")], normalize_params({}))

        assert result == {"messages": [{"role": "user", "content": "Hello"}], "max_tokens": 1000}

    def test_system_turn_is_lifted(self, adapter):
        """Test system turns go to the top-level system field."""
        turns = [Turn(Role.SYSTEM, "Be brief."), Turn(Role.USER, "Hello")]

        result = adapter.to_provider(turns, normalize_params({"max_tokens": 50}))

        assert result["system"] == "Be brief."
        assert result["max_tokens"] == 50
        assert [m["role"] for m in result["messages"]] == ["user"]

    def test_tool_round_trip_messages(self, adapter):
        """Test tool_use and tool_result blocks in the message list."""
        turns = [
            Turn(Role.USER, "What is 2+3?"),
            Turn(Role.ASSISTANT, (TextBlock("Adding."), ToolUseBlock("tu_1", "add", {"a": 2, "b": 3}))),
            Turn(Role.TOOL, (ToolResultBlock("tu_1", [{"type": "text", "text": "5"}]),)),
        ]

        result = adapter.to_provider(turns, normalize_params({"tools": [ADD_TOOL]}))

        messages = result["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[1]["content"][1] == {
            "type": "tool_use",
            "id": "tu_1",
            "name": "add",
            "input": {"a": 2, "b": 3},
        }
        assert messages[2]["content"] == [
            {
                "type": "tool_result",
                "tool_use_id": "tu_1",
                "content": [{"type": "text", "text": "5"}],
            }
        ]
        assert result["tools"] == [
            {
                "name": "add",
                "description": "Add two numbers",
                "input_schema": ADD_TOOL.parameter_schema,
            }
        ]

    def test_error_results_are_flagged(self, adapter):
        """Test failed tool results carry is_error."""
        turns = [Turn(Role.TOOL, (ToolResultBlock("tu_1", "Error: boom", is_error=True),))]

        block = adapter.to_provider(turns, normalize_params({}))["messages"][0]["content"][0]

        assert block["is_error"] is True
        assert block["content"] == "Error: boom"

    def test_consecutive_roles_are_merged(self, adapter):
        """Test consecutive turns of one role become one message."""
        turns = [
            Turn(Role.USER, "q"),
            Turn(Role.ASSISTANT, "Sum is 3."),
            Turn(Role.ASSISTANT, (ToolUseBlock("tu_2", "mul", {"a": 3}),)),
            Turn(Role.TOOL, (ToolResultBlock("tu_2", "12"),)),
        ]

        messages = adapter.to_provider(turns, normalize_params({}))["messages"]

        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[1]["content"] == [
            {"type": "text", "text": "Sum is 3."},
            {"type": "tool_use", "id": "tu_2", "name": "mul", "input": {"a": 3}},
        ]

    def test_stop_becomes_stop_sequences(self, adapter):
        """Test stop is renamed to stop_sequences."""
        result = adapter.to_provider([Turn(Role.USER, "x")], normalize_params({"stop": "END"}))

        assert result["stop_sequences"] == ["END"]
        assert "stop" not in result

    def test_from_provider(self, adapter):
        """Test a Messages API response becomes text and tool_use blocks."""
        raw = Message.model_validate(
            {
                "id": "msg_1",
                "type": "message",
                "role": "assistant",
                "model": "claude-test",
                "content": [
                    {"type": "text", "text": "Let me add."},
                    {"type": "tool_use", "id": "tu_1", "name": "add", "input": {"a": 2, "b": 3}},
                ],
                "stop_reason": "tool_use",
                "stop_sequence": None,
                "usage": {"input_tokens": 10, "output_tokens": 5},
            }
        )

        response = adapter.from_provider(raw)

        assert response.content == "Let me add."
        assert response.blocks == (
            TextBlock("Let me add."),
            ToolUseBlock("tu_1", "add", {"a": 2, "b": 3}),
        )
        assert response.tool_calls[0].id == "tu_1"
        assert response.raw is raw


class TestOpenAIRequestAdapter:
    @pytest.fixture
    def adapter(self):
        return OpenAIRequestAdapter()

    def test_tool_results_are_sent_as_user_text(self, adapter):
        """Test tool result turns are sent as user messages."""
        turns = [
            Turn(Role.SYSTEM, "tools..."),
            Turn(Role.USER, "What is 2+3?"),
            Turn(Role.ASSISTANT, '{"tool_call": {"name": "add", "arguments": {"a": 2, "b": 3}}}'),
            Turn(Role.TOOL, "Tool result: 5."),
        ]

        result = adapter.to_provider(turns, normalize_params({"max_tokens": 1000}))

        assert [m["role"] for m in result["messages"]] == ["system", "user", "assistant", "user"]
        assert result["messages"][3]["content"] == "Tool result: 5."
        assert result["max_tokens"] == 1000
        assert "extra" not in result

    def test_extra_params_pass_through(self, adapter):
        """Test extra params are merged into the request."""
        result = adapter.to_provider([Turn(Role.USER, "x")], normalize_params({"seed": 7}))

        assert result["seed"] == 7

    def test_from_provider(self, adapter):
        """Test a chat completion becomes a single text block."""
        message = ChatCompletionMessage(role="assistant", content="hello")
        completion = ChatCompletion(
            id="cmpl-1",
            choices=[Choice(finish_reason="stop", index=0, message=message)],
            created=0,
            model="meta-llama/llama-3.2-3b-instruct:free",
            object="chat.completion",
        )

        response = adapter.from_provider(completion)

        assert response.content == "hello"
        assert response.blocks == (TextBlock("hello"),)
        assert response.tool_calls == []

    def test_empty_choices(self, adapter):
        """Test a completion without choices gives an empty response."""
        completion = ChatCompletion(id="c", choices=[], created=0, model="m", object="chat.completion")

        response = adapter.from_provider(completion)

        assert response.content == ""
        assert response.blocks == ()

    def test_message_text_accepts_parts(self):
        """Test content given as a list of parts is flattened to text."""
        parts = [{"type": "text", "text": "Hello "}, {"type": "image_url"}, {"type": "text", "text": "world"}]

        assert message_text(parts) == "Hello world"
        assert message_text("plain") == "plain"
        assert message_text(None) == ""
