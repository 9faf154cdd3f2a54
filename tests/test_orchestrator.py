"""Tests for GenerationOrchestrator: tool loop, memory guard, objects and streams."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from aisdk.errors import (
    InputValidationError,
    MemoryLimitExceededError,
    ProviderError,
    SchemaValidationError,
    ToolSecurityError,
)
from aisdk.events import ErrorOccurred, MemoryLimitWarning
from aisdk.generation import (
    GenerationOrchestrator,
    ObjectGenerationOptions,
    TextGenerationOptions,
)
from aisdk.schema import Schema
from aisdk.schemas.messages import Message, Role, ToolCall
from aisdk.schemas.results import FinishReason, ObjectResult, TextResult, Usage
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.tools import Tool, ToolExecutionPolicy, ToolExecutor


@dataclass
class Person:
    name: str
    age: int


PERSON = Schema.object({"name": Schema.string(), "age": Schema.integer()})


def _text(text: str = "", *calls: ToolCall, usage: Usage | None = None) -> TextResult:
    return TextResult(
        text=text,
        tool_calls=list(calls),
        finish_reason=FinishReason.TOOL_CALLS if calls else FinishReason.STOP,
        usage=usage or Usage.of(10, 5),
    )


def _call(name: str = "get_weather", call_id: str = "call_1", **arguments) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=arguments or {"city": "Oslo"})


def _weather_tool(log: list | None = None) -> Tool:
    def handler(args):
        if log is not None:
            log.append(args)
        return {"city": args["city"], "temp": 21}

    return Tool(
        "get_weather",
        "Weather for a city",
        Schema.object({"city": Schema.string()}),
        handler,
    )


def _orchestrator(provider, **kwargs) -> GenerationOrchestrator:
    kwargs.setdefault("model", "test-model")
    return GenerationOrchestrator(provider, **kwargs)


# ── Text without tools ──────────────────────────────────────────


class TestGenerateText:
    @pytest.mark.asyncio
    async def test_single_call(self, make_provider):
        provider = make_provider(text_results=[_text("Hello")])
        result = await _orchestrator(provider).generate_text(TextGenerationOptions(prompt="Hi"))
        assert result.text == "Hello"
        assert result.roundtrips == 0
        assert len(provider.requests) == 1
        request = provider.requests[0]
        assert request.model == "test-model"
        assert [m.role for m in request.messages] == [Role.USER]

    @pytest.mark.asyncio
    async def test_system_and_history_order(self, make_provider):
        provider = make_provider(text_results=[_text("ok")])
        options = TextGenerationOptions(
            system="Be brief",
            messages=[{"role": "user", "content": "earlier"}, Message.assistant("reply")],
            prompt="now",
        )
        await _orchestrator(provider).generate_text(options)
        messages = provider.requests[0].messages
        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
        assert messages[-1].content == "now"

    @pytest.mark.asyncio
    async def test_options_model_overrides_default(self, make_provider):
        provider = make_provider(text_results=[_text("ok")])
        await _orchestrator(provider).generate_text(TextGenerationOptions(model="other", prompt="x"))
        assert provider.requests[0].model == "other"

    @pytest.mark.asyncio
    async def test_missing_prompt(self, make_provider):
        with pytest.raises(InputValidationError, match="prompt"):
            await _orchestrator(make_provider()).generate_text(TextGenerationOptions())

    @pytest.mark.asyncio
    async def test_missing_model(self, make_provider):
        orchestrator = GenerationOrchestrator(make_provider(text_results=[_text()]))
        with pytest.raises(InputValidationError, match="model"):
            await orchestrator.generate_text(TextGenerationOptions(prompt="x"))

    @pytest.mark.asyncio
    async def test_out_of_range_temperature(self, make_provider):
        with pytest.raises(InputValidationError, match="temperature"):
            await _orchestrator(make_provider()).generate_text(
                TextGenerationOptions(prompt="x", temperature=3)
            )

    @pytest.mark.asyncio
    async def test_sampling_options_forwarded(self, make_provider):
        provider = make_provider(text_results=[_text("ok")])
        options = TextGenerationOptions(
            prompt="x", max_tokens=50, temperature=0.2, top_p=0.9, stop=["END"], extra={"seed": 1}
        )
        await _orchestrator(provider, timeout=12).generate_text(options)
        request = provider.requests[0]
        assert (request.max_tokens, request.temperature, request.top_p) == (50, 0.2, 0.9)
        assert request.stop == ["END"]
        assert request.timeout == 12
        assert request.extra == {"seed": 1}

    @pytest.mark.asyncio
    async def test_on_finish_fires_once(self, make_provider):
        seen = []
        provider = make_provider(text_results=[_text("", _call()), _text("done")])
        options = TextGenerationOptions(prompt="x", tools=[_weather_tool()], on_finish=seen.append)
        result = await _orchestrator(provider).generate_text(options)
        assert seen == [result]

    @pytest.mark.asyncio
    async def test_async_on_finish(self, make_provider):
        seen = []

        async def on_finish(result):
            seen.append(result.text)

        provider = make_provider(text_results=[_text("done")])
        await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", on_finish=on_finish)
        )
        assert seen == ["done"]


# ── Tool roundtrips ─────────────────────────────────────────────


class TestToolLoop:
    @pytest.mark.asyncio
    async def test_roundtrip_appends_assistant_and_tool_messages(self, make_provider):
        log = []
        provider = make_provider(
            text_results=[
                _text("", _call(), usage=Usage.of(10, 5)),
                _text("It is 21 degrees", usage=Usage.of(30, 8)),
            ]
        )
        options = TextGenerationOptions(prompt="Weather?", tools=[_weather_tool(log)])
        result = await _orchestrator(provider).generate_text(options)

        assert result.text == "It is 21 degrees"
        assert result.roundtrips == 1
        assert log == [{"city": "Oslo"}]
        second = provider.requests[1].messages
        assert [m.role for m in second] == [Role.USER, Role.ASSISTANT, Role.TOOL]
        assert second[1].tool_calls[0].id == "call_1"
        assert second[2].tool_call_id == "call_1"
        assert second[2].content == '{"city": "Oslo", "temp": 21}'

    @pytest.mark.asyncio
    async def test_usage_summed_across_calls(self, make_provider):
        provider = make_provider(
            text_results=[_text("", _call(), usage=Usage.of(10, 5)), _text("x", usage=Usage.of(30, 8))]
        )
        result = await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        assert result.usage == Usage.of(40, 13)
        assert result.usage_per_call == [Usage.of(10, 5), Usage.of(30, 8)]

    @pytest.mark.asyncio
    async def test_invocations_recorded(self, make_provider):
        provider = make_provider(text_results=[_text("", _call()), _text("x")])
        result = await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        (invocation,) = result.tool_invocations
        assert invocation.is_success
        assert invocation.roundtrip == 1
        assert invocation.result == {"city": "Oslo", "temp": 21}

    @pytest.mark.asyncio
    async def test_cap_reached_returns_unresolved_calls(self, make_provider):
        provider = make_provider(text_results=[_text("", _call())])
        options = TextGenerationOptions(prompt="x", tools=[_weather_tool()], max_tool_roundtrips=2)
        result = await _orchestrator(provider).generate_text(options)
        assert len(provider.requests) == 3
        assert result.roundtrips == 2
        assert result.has_tool_calls()
        assert len(result.tool_invocations) == 2

    @pytest.mark.asyncio
    async def test_zero_cap_never_executes(self, make_provider):
        log = []
        provider = make_provider(text_results=[_text("", _call())])
        options = TextGenerationOptions(prompt="x", tools=[_weather_tool(log)], max_tool_roundtrips=0)
        result = await _orchestrator(provider).generate_text(options)
        assert len(provider.requests) == 1
        assert log == []
        assert result.has_tool_calls()

    @pytest.mark.asyncio
    async def test_orchestrator_default_cap(self, make_provider):
        provider = make_provider(text_results=[_text("", _call())])
        await _orchestrator(provider, max_tool_roundtrips=1).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        assert len(provider.requests) == 2

    @pytest.mark.asyncio
    async def test_unknown_tool_answered_with_error(self, make_provider):
        provider = make_provider(text_results=[_text("", _call("teleport")), _text("sorry")])
        result = await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        tool_message = provider.requests[1].messages[-1]
        assert tool_message.role == Role.TOOL
        assert tool_message.content == "Error: Tool 'teleport' not found"
        assert result.text == "sorry"
        assert result.tool_invocations[0].error == "Tool 'teleport' not found"

    @pytest.mark.asyncio
    async def test_failed_tool_reported_to_model(self, make_provider):
        def broken(args):
            raise RuntimeError("service down")

        tool = Tool("get_weather", "w", Schema.object({"city": Schema.string()}), broken)
        provider = make_provider(text_results=[_text("", _call()), _text("sorry")])
        await _orchestrator(provider).generate_text(TextGenerationOptions(prompt="x", tools=[tool]))
        content = provider.requests[1].messages[-1].content
        assert content.startswith("Error: ")
        assert "service down" in content

    @pytest.mark.asyncio
    async def test_tool_choice_none_skips_execution(self, make_provider):
        log = []
        provider = make_provider(text_results=[_text("", _call())])
        result = await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool(log)], tool_choice="none")
        )
        assert len(provider.requests) == 1
        assert log == []
        assert result.has_tool_calls()
        assert provider.requests[0].tool_choice == "none"

    @pytest.mark.asyncio
    async def test_declaration_only_tools_are_not_executed(self, make_provider):
        provider = make_provider(text_results=[_text("", _call())])
        declared = Tool("get_weather", "w", Schema.object({"city": Schema.string()}))
        result = await _orchestrator(provider).generate_text(
            TextGenerationOptions(prompt="x", tools=[declared])
        )
        assert len(provider.requests) == 1
        assert result.tool_calls[0].name == "get_weather"
        assert provider.requests[0].tools == [declared]

    @pytest.mark.asyncio
    async def test_policy_violation_can_abort(self, make_provider):
        provider = make_provider(text_results=[_text("", _call())])
        executor = ToolExecutor(ToolExecutionPolicy.restrictive().fail_on_violation())
        with pytest.raises(ToolSecurityError):
            await _orchestrator(provider, executor=executor).generate_text(
                TextGenerationOptions(prompt="x", tools=[_weather_tool()])
            )

    @pytest.mark.asyncio
    async def test_policy_violation_returned_to_model(self, make_provider):
        provider = make_provider(text_results=[_text("", _call()), _text("ok")])
        executor = ToolExecutor(ToolExecutionPolicy.create().deny_tools(["get_weather"]))
        await _orchestrator(provider, executor=executor).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        assert "explicitly denied" in provider.requests[1].messages[-1].content


# ── Memory guard ────────────────────────────────────────────────


class TestMemoryGuard:
    @pytest.mark.asyncio
    async def test_limit_exceeded(self, make_provider, sink):
        provider = make_provider(text_results=[_text("", _call())])
        orchestrator = _orchestrator(provider, max_messages=3, events=sink)
        with pytest.raises(MemoryLimitExceededError) as exc_info:
            await orchestrator.generate_text(TextGenerationOptions(prompt="x", tools=[_weather_tool()]))
        assert exc_info.value.current_count == 5
        assert exc_info.value.roundtrips == 2
        assert isinstance(sink.events[-1], ErrorOccurred)
        assert sink.events[-1].error_type == "MemoryLimitExceededError"

    @pytest.mark.asyncio
    async def test_warning_emitted_once(self, make_provider, sink):
        provider = make_provider(text_results=[_text("", _call())])
        orchestrator = _orchestrator(provider, max_messages=10, events=sink)
        await orchestrator.generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()], max_tool_roundtrips=4)
        )
        warnings = [e for e in sink.events if isinstance(e, MemoryLimitWarning)]
        assert len(warnings) == 1
        assert warnings[0].current_count == 9
        assert warnings[0].usage_ratio == pytest.approx(0.9)


# ── Events ──────────────────────────────────────────────────────


class TestEvents:
    @pytest.mark.asyncio
    async def test_request_lifecycle(self, make_provider, sink):
        provider = make_provider(text_results=[_text("", _call()), _text("x")])
        await _orchestrator(provider, events=sink).generate_text(
            TextGenerationOptions(prompt="x", tools=[_weather_tool()])
        )
        assert sink.names() == [
            "RequestStarted",
            "ToolCallStarted",
            "ToolCallCompleted",
            "RequestCompleted",
        ]
        assert sink.events[-1].usage == Usage.of(20, 10)

    @pytest.mark.asyncio
    async def test_provider_error_reported(self, make_provider, sink):
        provider = make_provider(error=ProviderError("boom", "fake"))
        with pytest.raises(ProviderError):
            await _orchestrator(provider, events=sink).generate_text(TextGenerationOptions(prompt="x"))
        assert sink.names() == ["RequestStarted", "ErrorOccurred"]
        assert sink.events[-1].message == "boom"


# ── Objects ─────────────────────────────────────────────────────


class TestGenerateObject:
    @pytest.mark.asyncio
    async def test_valid_object(self, make_provider):
        provider = make_provider(
            object_results=[ObjectResult(object={"name": "Ann", "age": 30}, text='{"name": "Ann", "age": 30}')]
        )
        result = await _orchestrator(provider).generate_object(
            ObjectGenerationOptions(prompt="Who?", schema=PERSON)
        )
        assert result.object == {"name": "Ann", "age": 30}
        assert provider.requests[0].schema is PERSON

    @pytest.mark.asyncio
    async def test_invalid_object_raises(self, make_provider):
        provider = make_provider(object_results=[ObjectResult(object={"name": "Ann"})])
        with pytest.raises(SchemaValidationError) as exc_info:
            await _orchestrator(provider).generate_object(
                ObjectGenerationOptions(prompt="Who?", schema=PERSON, schema_name="Person")
            )
        assert exc_info.value.errors == ["Missing required property: age"]
        assert exc_info.value.schema_name == "Person"

    @pytest.mark.asyncio
    async def test_schema_derived_from_class(self, make_provider):
        provider = make_provider(object_results=[ObjectResult(object={"name": "Bo", "age": 4})])
        await _orchestrator(provider).generate_object(ObjectGenerationOptions(prompt="x", schema=Person))
        assert provider.requests[0].schema.required == ["name", "age"]

    @pytest.mark.asyncio
    async def test_schema_name_and_description_in_system_prompt(self, make_provider):
        provider = make_provider(object_results=[ObjectResult(object={"name": "A", "age": 1})])
        await _orchestrator(provider).generate_object(
            ObjectGenerationOptions(
                prompt="x",
                system="You extract people.",
                schema=PERSON,
                schema_name="Person",
                schema_description="A human",
            )
        )
        system = provider.requests[0].messages[0]
        assert system.role == Role.SYSTEM
        assert system.content == (
            "You extract people.\n\nSchema name: Person\nSchema description: A human"
        )
        assert provider.requests[0].schema_name == "Person"

    @pytest.mark.asyncio
    async def test_schema_required(self, make_provider):
        with pytest.raises(InputValidationError, match="schema"):
            await _orchestrator(make_provider()).generate_object(ObjectGenerationOptions(prompt="x"))


# ── Streams ─────────────────────────────────────────────────────


class TestStreamText:
    @pytest.mark.asyncio
    async def test_callbacks(self, make_provider):
        chunks = [
            TextChunk(delta="Hel", text="Hel"),
            TextChunk(delta="lo", text="Hello", is_complete=True, finish_reason=FinishReason.STOP),
        ]
        seen, finished = [], []
        options = TextGenerationOptions(prompt="x", on_chunk=seen.append, on_finish=finished.append)
        out = [c async for c in _orchestrator(make_provider(text_chunks=chunks)).stream_text(options)]
        assert out == chunks
        assert seen == chunks
        assert finished == [chunks[-1]]

    @pytest.mark.asyncio
    async def test_missing_terminal_chunk_is_synthesized(self, make_provider):
        provider = make_provider(text_chunks=[TextChunk(delta="Hi", text="Hi")])
        out = [c async for c in _orchestrator(provider).stream_text(TextGenerationOptions(prompt="x"))]
        assert len(out) == 2
        assert out[-1].is_complete
        assert out[-1].text == "Hi"

    @pytest.mark.asyncio
    async def test_chunks_after_terminal_dropped(self, make_provider):
        chunks = [
            TextChunk(delta="a", text="a", is_complete=True),
            TextChunk(delta="b", text="ab"),
        ]
        out = [
            c async for c in _orchestrator(make_provider(text_chunks=chunks)).stream_text(
                TextGenerationOptions(prompt="x")
            )
        ]
        assert out == chunks[:1]

    @pytest.mark.asyncio
    async def test_chunk_events(self, make_provider, sink):
        chunks = [TextChunk(delta="a", text="a"), TextChunk(delta="b", text="ab", is_complete=True)]
        orchestrator = _orchestrator(make_provider(text_chunks=chunks), events=sink)
        [c async for c in orchestrator.stream_text(TextGenerationOptions(prompt="x"))]
        assert sink.names() == [
            "RequestStarted",
            "StreamChunkReceived",
            "StreamChunkReceived",
            "RequestCompleted",
        ]
        assert [e.chunk_index for e in sink.events[1:3]] == [0, 1]


class TestStreamObject:
    @pytest.mark.asyncio
    async def test_final_chunk_validated(self, make_provider):
        chunks = [
            ObjectChunk(delta='{"name": "A', partial_json='{"name": "A', partial_object={"name": "A"}),
            ObjectChunk(
                delta='", "age": 2}',
                partial_json='{"name": "A", "age": 2}',
                partial_object={"name": "A", "age": 2},
                object={"name": "A", "age": 2},
                is_complete=True,
            ),
        ]
        finished = []
        options = ObjectGenerationOptions(prompt="x", schema=PERSON, on_finish=finished.append)
        out = [c async for c in _orchestrator(make_provider(object_chunks=chunks)).stream_object(options)]
        assert out == chunks
        assert finished == [chunks[-1]]

    @pytest.mark.asyncio
    async def test_invalid_final_object_raises(self, make_provider):
        chunks = [
            ObjectChunk(delta='{"name": "A"}', partial_json='{"name": "A"}', partial_object={"name": "A"}),
            ObjectChunk(partial_json='{"name": "A"}', object={"name": "A"}, is_complete=True),
        ]
        out = []
        with pytest.raises(SchemaValidationError):
            async for chunk in _orchestrator(make_provider(object_chunks=chunks)).stream_object(
                ObjectGenerationOptions(prompt="x", schema=PERSON)
            ):
                out.append(chunk)
        assert out == chunks[:1]

    @pytest.mark.asyncio
    async def test_missing_terminal_chunk_is_synthesized(self, make_provider):
        text = '{"name": "A", "age": 2}'
        chunks = [ObjectChunk(delta=text, partial_json=text, partial_object={"name": "A", "age": 2})]
        out = [
            c async for c in _orchestrator(make_provider(object_chunks=chunks)).stream_object(
                ObjectGenerationOptions(prompt="x", schema=PERSON)
            )
        ]
        assert out[-1].is_complete
        assert out[-1].object == {"name": "A", "age": 2}
