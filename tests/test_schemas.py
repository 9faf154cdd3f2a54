"""Tests for message, result and streaming schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from aisdk.schemas.messages import Message, Role, ToolCall
from aisdk.schemas.results import FinishReason, TextResult, ToolInvocation, Usage
from aisdk.schemas.streaming import ObjectChunk, TextChunk


class TestUsage:
    def test_of_computes_total(self):
        assert Usage.of(3, 4).total_tokens == 7

    def test_addition(self):
        assert Usage.of(1, 2) + Usage.of(10, 20) == Usage.of(11, 22)

    def test_from_openai_dict(self):
        usage = Usage.from_dict({"prompt_tokens": 5, "completion_tokens": 6, "total_tokens": 11})
        assert usage == Usage.of(5, 6)

    def test_from_anthropic_dict(self):
        assert Usage.from_dict({"input_tokens": 2, "output_tokens": 3}) == Usage.of(2, 3)

    def test_from_none(self):
        assert Usage.from_dict(None) == Usage()

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            Usage(prompt_tokens=-1)


class TestFinishReason:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("stop", FinishReason.STOP),
            ("end_turn", FinishReason.STOP),
            ("max_tokens", FinishReason.LENGTH),
            ("tool_use", FinishReason.TOOL_CALLS),
            ("TOOL_CALLS", FinishReason.TOOL_CALLS),
            ("SAFETY", FinishReason.CONTENT_FILTER),
            ("something_new", None),
            (None, None),
        ],
    )
    def test_parse(self, raw, expected):
        assert FinishReason.parse(raw) is expected


class TestMessages:
    def test_factories(self):
        assert Message.system("s").role == Role.SYSTEM
        assert Message.user("u").to_dict() == {"role": "user", "content": "u"}

    def test_assistant_with_tool_calls(self):
        call = ToolCall(id="c1", name="lookup", arguments={"q": "x"})
        data = Message.assistant(None, [call]).to_dict()
        assert data["content"] is None
        assert data["tool_calls"] == [
            {"id": "c1", "type": "function", "function": {"name": "lookup", "arguments": '{"q": "x"}'}}
        ]

    def test_tool_message(self):
        data = Message.tool("c1", "result", name="lookup").to_dict()
        assert data == {"role": "tool", "content": "result", "tool_call_id": "c1", "name": "lookup"}

    def test_tool_call_from_openai(self):
        call = ToolCall.from_openai(
            {"id": "c2", "type": "function", "function": {"name": "f", "arguments": '{"a": 1}'}}
        )
        assert call.arguments == {"a": 1}

    def test_tool_call_from_openai_bad_json(self):
        call = ToolCall.from_openai({"id": "c3", "function": {"name": "f", "arguments": "{oops"}})
        assert call.arguments == {"_raw": "{oops"}

    def test_tool_call_from_openai_empty_arguments(self):
        call = ToolCall.from_openai({"id": "c4", "function": {"name": "f", "arguments": ""}})
        assert call.arguments == {}


class TestResults:
    def test_has_tool_calls(self):
        assert not TextResult().has_tool_calls()
        assert TextResult(tool_calls=[ToolCall(id="1", name="t")]).has_tool_calls()

    def test_invocation_success(self):
        call = ToolCall(id="1", name="t")
        assert ToolInvocation(tool_call=call, result=3).is_success
        assert not ToolInvocation(tool_call=call, error="boom").is_success

    def test_chunk_defaults(self):
        assert not TextChunk().is_complete
        assert ObjectChunk().object is None
