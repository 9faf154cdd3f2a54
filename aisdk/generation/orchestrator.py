"""Generation orchestrator.

Drives one provider through a generation: a single call for objects and
streams, and for text the tool loop

    call provider -> tool calls? -> execute -> append results -> resubmit

bounded by ``max_tool_roundtrips``. Hitting the cap is not an error: the last
result is returned with its unresolved tool calls so callers can inspect
``has_tool_calls()``. A tool call naming an unknown tool is answered with an
error tool message and the conversation continues.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from aisdk.errors import InputValidationError, MemoryLimitExceededError, SchemaValidationError
from aisdk.events import (
    ErrorOccurred,
    EventSink,
    MemoryLimitWarning,
    RequestCompleted,
    RequestStarted,
    StreamChunkReceived,
    safe_dispatch,
)
from aisdk.generation.options import (
    GenerationOptions,
    ObjectGenerationOptions,
    TextGenerationOptions,
)
from aisdk.providers.base import ProviderRequest, TextProvider
from aisdk.schema.base import Schema
from aisdk.schemas.messages import Message, ToolCall
from aisdk.schemas.results import ObjectResult, TextResult, ToolInvocation, Usage
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.streaming.accumulator import parse_json_output
from aisdk.tools.executor import ToolExecutor
from aisdk.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Fraction of max_messages at which a MemoryLimitWarning is emitted
_MEMORY_WARNING_RATIO = 0.8


async def _invoke(callback: Any, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


def _should_execute_tools(registry: ToolRegistry | None, tool_choice: str | None) -> bool:
    if registry is None or tool_choice == "none":
        return False
    return bool(registry.executable())


class GenerationOrchestrator:
    """Runs generations against one provider.

    Args:
        provider: Backend that performs the calls.
        model: Default model name passed to the provider.
        executor: Tool executor (carries the security policy).
        events: Sink for lifecycle events.
        max_tool_roundtrips: Default cap on tool resubmissions.
        max_messages: Cap on the conversation size during the tool loop.
        timeout: Default provider call timeout in seconds.
    """

    def __init__(
        self,
        provider: TextProvider,
        *,
        model: str | None = None,
        executor: ToolExecutor | None = None,
        events: EventSink | None = None,
        max_tool_roundtrips: int = 5,
        max_messages: int = 100,
        timeout: float | None = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.events = events
        self.executor = executor or ToolExecutor(events=events)
        self.max_tool_roundtrips = max_tool_roundtrips
        self.max_messages = max_messages
        self.timeout = timeout

    # ── Helpers ───────────────────────────────────────────────

    def _model(self, options: GenerationOptions) -> str:
        model = options.model or self.model
        if not model:
            raise InputValidationError.required_parameter("model")
        return model

    def _request(
        self,
        options: GenerationOptions,
        model: str,
        messages: list[Message],
        **fields: Any,
    ) -> ProviderRequest:
        return ProviderRequest(
            model=model,
            messages=list(messages),
            max_tokens=options.max_tokens,
            temperature=options.temperature,
            top_p=options.top_p,
            stop=options.stop,
            timeout=options.timeout or self.timeout,
            extra=dict(options.extra),
            **fields,
        )

    def _started(self, operation: str, model: str, messages: list[Message]) -> float:
        logger.info("%s via %s/%s (%d messages)", operation, self.provider.name, model, len(messages))
        safe_dispatch(
            self.events,
            RequestStarted(
                provider=self.provider.name,
                model=model,
                operation=operation,
                message_count=len(messages),
            ),
        )
        return time.monotonic()

    def _completed(self, operation: str, model: str, started: float, usage: Usage | None) -> None:
        safe_dispatch(
            self.events,
            RequestCompleted(
                provider=self.provider.name,
                model=model,
                operation=operation,
                usage=usage,
                duration_ms=(time.monotonic() - started) * 1000,
            ),
        )

    def _failed(self, operation: str, model: str, exc: Exception) -> None:
        logger.error("%s via %s/%s failed: %s", operation, self.provider.name, model, exc)
        safe_dispatch(
            self.events,
            ErrorOccurred(
                operation=operation,
                error_type=type(exc).__name__,
                message=str(exc),
                provider=self.provider.name,
                model=model,
            ),
        )

    def _check_memory(self, messages: list[Message], roundtrips: int, warned: bool) -> bool:
        """Enforce max_messages; returns whether the warning has been emitted."""
        count = len(messages)
        if count > self.max_messages:
            raise MemoryLimitExceededError(count, self.max_messages, roundtrips)
        if not warned and count >= self.max_messages * _MEMORY_WARNING_RATIO:
            logger.warning(
                "Conversation at %d of %d messages after %d tool roundtrips",
                count,
                self.max_messages,
                roundtrips,
            )
            safe_dispatch(
                self.events,
                MemoryLimitWarning(
                    current_count=count, max_messages=self.max_messages, roundtrips=roundtrips
                ),
            )
            return True
        return warned

    async def _run_tool_calls(
        self,
        registry: ToolRegistry,
        calls: list[ToolCall],
        roundtrip: int,
    ) -> tuple[list[Message], list[ToolInvocation]]:
        messages = []
        invocations = []
        for call in calls:
            found = registry.get(call.name)
            if found is None:
                logger.warning("Model requested unknown tool %s", call.name)
                error = f"Tool '{call.name}' not found"
                messages.append(Message.tool(call.id, f"Error: {error}", name=call.name))
                invocations.append(
                    ToolInvocation(tool_call=call, error=error, roundtrip=roundtrip)
                )
                continue
            result = await self.executor.execute(found, call)
            messages.append(result.to_message(call.name))
            invocations.append(
                ToolInvocation(
                    tool_call=call,
                    result=result.result,
                    error=str(result.error) if result.error is not None else None,
                    roundtrip=roundtrip,
                )
            )
        return messages, invocations

    # ── Text ──────────────────────────────────────────────────

    async def generate_text(self, options: TextGenerationOptions) -> TextResult:
        """Generate text, running tool roundtrips as requested by the model.

        Returns:
            The final TextResult with usage summed over every provider call.

        Raises:
            InputValidationError: On invalid options.
            MemoryLimitExceededError: If the conversation outgrows max_messages.
            ToolSecurityError: If the executor's policy fails on violation.
            ProviderError: If the provider call fails.
        """
        options.validate()
        model = self._model(options)
        registry = options.tool_registry()
        tools = registry.all() if registry is not None else []
        execute_tools = _should_execute_tools(registry, options.tool_choice)
        cap = (
            options.max_tool_roundtrips
            if options.max_tool_roundtrips is not None
            else self.max_tool_roundtrips
        )
        messages = options.build_messages()
        started = self._started("generate_text", model, messages)

        usage = Usage()
        per_call: list[Usage] = []
        invocations: list[ToolInvocation] = []
        roundtrips = 0
        warned = False
        try:
            while True:
                request = self._request(
                    options, model, messages, tools=tools, tool_choice=options.tool_choice
                )
                result = await self.provider.generate_text(request)
                per_call.append(result.usage)
                usage = usage + result.usage

                if not result.has_tool_calls() or not execute_tools:
                    break
                if roundtrips >= cap:
                    logger.warning(
                        "Tool roundtrip cap (%d) reached with %d unresolved tool calls",
                        cap,
                        len(result.tool_calls),
                    )
                    break

                roundtrips += 1
                messages.append(Message.assistant(result.text or None, result.tool_calls))
                tool_messages, executed = await self._run_tool_calls(
                    registry, result.tool_calls, roundtrips
                )
                messages.extend(tool_messages)
                invocations.extend(executed)
                warned = self._check_memory(messages, roundtrips, warned)
                logger.debug("Roundtrip %d: resubmitting %d messages", roundtrips, len(messages))
        except Exception as exc:
            self._failed("generate_text", model, exc)
            raise

        final = result.model_copy(
            update={
                "usage": usage,
                "usage_per_call": per_call,
                "tool_invocations": invocations,
                "roundtrips": roundtrips,
            }
        )
        self._completed("generate_text", model, started, usage)
        await _invoke(options.on_finish, final)
        return final

    async def stream_text(self, options: TextGenerationOptions) -> AsyncIterator[TextChunk]:
        """Stream text chunks; tools are passed through but never executed."""
        options.validate()
        model = self._model(options)
        registry = options.tool_registry()
        messages = options.build_messages()
        request = self._request(
            options,
            model,
            messages,
            tools=registry.all() if registry is not None else [],
            tool_choice=options.tool_choice,
        )

        started = self._started("stream_text", model, messages)
        final: TextChunk | None = None
        last: TextChunk | None = None
        index = 0
        try:
            async for chunk in self.provider.stream_text(request):
                if final is not None:
                    logger.warning("Dropping chunk received after the final chunk")
                    continue
                if chunk.is_complete:
                    final = chunk
                last = chunk
                self._chunk_event(model, index, chunk.delta, chunk.is_complete)
                index += 1
                await _invoke(options.on_chunk, chunk)
                yield chunk
            if final is None:
                logger.warning("Provider stream ended without a final chunk")
                final = TextChunk(text=last.text if last else "", is_complete=True)
                self._chunk_event(model, index, "", True)
                await _invoke(options.on_chunk, final)
                yield final
        except Exception as exc:
            self._failed("stream_text", model, exc)
            raise

        self._completed("stream_text", model, started, final.usage)
        await _invoke(options.on_finish, final)

    def _chunk_event(self, model: str, index: int, delta: str, complete: bool) -> None:
        safe_dispatch(
            self.events,
            StreamChunkReceived(
                provider=self.provider.name,
                model=model,
                chunk_index=index,
                delta=delta,
                is_complete=complete,
            ),
        )

    # ── Objects ───────────────────────────────────────────────

    def _object_request(
        self, options: ObjectGenerationOptions
    ) -> tuple[str, Schema, list[Message], ProviderRequest]:
        options.validate()
        model = self._model(options)
        schema = options.resolved_schema()
        messages = options.build_messages()
        request = self._request(
            options,
            model,
            messages,
            schema=schema,
            schema_name=options.schema_name,
            schema_description=options.schema_description,
        )
        return model, schema, messages, request

    async def generate_object(self, options: ObjectGenerationOptions) -> ObjectResult:
        """Generate a structured value and validate it against the schema.

        Raises:
            SchemaValidationError: If the output does not match the schema.
        """
        model, schema, messages, request = self._object_request(options)
        started = self._started("generate_object", model, messages)
        try:
            result = await self.provider.generate_object(request)
            validation = schema.validate(result.object)
            if not validation.is_valid:
                raise SchemaValidationError.from_issues(
                    list(validation.issues), options.schema_name
                )
        except Exception as exc:
            self._failed("generate_object", model, exc)
            raise

        self._completed("generate_object", model, started, result.usage)
        await _invoke(options.on_finish, result)
        return result

    async def stream_object(self, options: ObjectGenerationOptions) -> AsyncIterator[ObjectChunk]:
        """Stream object chunks; the final chunk is validated before it is yielded."""
        model, schema, messages, request = self._object_request(options)
        started = self._started("stream_object", model, messages)
        final: ObjectChunk | None = None
        last: ObjectChunk | None = None
        index = 0
        try:
            async for chunk in self.provider.stream_object(request):
                if final is not None:
                    logger.warning("Dropping chunk received after the final chunk")
                    continue
                if not chunk.is_complete:
                    last = chunk
                    self._chunk_event(model, index, chunk.delta, False)
                    index += 1
                    await _invoke(options.on_chunk, chunk)
                    yield chunk
                    continue
                final = chunk
            if final is None:
                logger.warning("Provider stream ended without a final chunk")
                text = last.partial_json if last else ""
                value = parse_json_output(text)
                final = ObjectChunk(
                    partial_json=text, partial_object=value, object=value, is_complete=True
                )

            validation = schema.validate(final.object)
            if not validation.is_valid:
                raise SchemaValidationError.from_issues(
                    list(validation.issues), options.schema_name
                )
            self._chunk_event(model, index, final.delta, True)
            await _invoke(options.on_chunk, final)
            yield final
        except Exception as exc:
            self._failed("stream_object", model, exc)
            raise

        self._completed("stream_object", model, started, final.usage)
        await _invoke(options.on_finish, final)
