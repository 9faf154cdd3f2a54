"""Delta accumulation: normalized provider deltas in, chunks out.

Each accumulator emits exactly one terminal chunk per stream and it is always
the last chunk. A finish reason seen mid-stream is remembered and the terminal
chunk is built by ``finish()`` once the source is exhausted, so usage figures
that trail the finish reason still land on it.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from aisdk.errors import StreamingError
from aisdk.schemas.results import FinishReason, Usage
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.streaming.partial_json import parse_partial_json
from aisdk.streaming.sse import parse_sse

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class StreamDelta:
    """One provider event reduced to what accumulation needs."""

    text: str = ""
    finish_reason: FinishReason | None = None
    usage: Usage | None = None


EventParser = Callable[[Any], StreamDelta | None]


# ── Provider event decoding ───────────────────────────────────


def delta_from_openai_event(payload: Any) -> StreamDelta | None:
    """Decode an OpenAI chat-completions stream event."""
    if not isinstance(payload, dict):
        raise StreamingError.invalid_event("message", "expected a JSON object", json.dumps(payload))
    text = ""
    finish = None
    choices = payload.get("choices") or []
    if choices:
        choice = choices[0]
        text = (choice.get("delta") or {}).get("content") or ""
        finish = FinishReason.parse(choice.get("finish_reason"))
    usage = Usage.from_dict(payload["usage"]) if payload.get("usage") else None
    if not text and finish is None and usage is None:
        return None
    return StreamDelta(text, finish, usage)


def delta_from_anthropic_event(payload: Any) -> StreamDelta | None:
    """Decode an Anthropic messages stream event."""
    if not isinstance(payload, dict):
        raise StreamingError.invalid_event("message", "expected a JSON object", json.dumps(payload))
    kind = payload.get("type")
    if kind == "content_block_delta":
        return StreamDelta(text=(payload.get("delta") or {}).get("text") or "")
    if kind == "message_start":
        usage = (payload.get("message") or {}).get("usage")
        return StreamDelta(usage=Usage.from_dict(usage)) if usage else None
    if kind == "message_delta":
        finish = FinishReason.parse((payload.get("delta") or {}).get("stop_reason"))
        usage = Usage.from_dict(payload["usage"]) if payload.get("usage") else None
        return StreamDelta(finish_reason=finish, usage=usage)
    return None


def _merge_usage(current: Usage | None, update: Usage | None) -> Usage | None:
    # Stream usage figures are cumulative and may arrive split across events
    # (prompt tokens first, completion tokens last), so keep the larger value.
    if update is None:
        return current
    if current is None:
        return update
    return Usage.of(
        max(current.prompt_tokens, update.prompt_tokens),
        max(current.completion_tokens, update.completion_tokens),
    )


# ── Accumulators ──────────────────────────────────────────────


class _Accumulator:
    def __init__(self) -> None:
        self.text = ""
        self.usage: Usage | None = None
        self.finish_reason: FinishReason | None = None
        self.completed = False
        self._tail = ""

    def push(self, delta: StreamDelta) -> list[Any]:
        if self.completed:
            return []
        self.usage = _merge_usage(self.usage, delta.usage)
        if self.finish_reason is not None:
            if delta.text:
                logger.debug("Ignoring %d chars received after the finish reason", len(delta.text))
            return []
        self.text += delta.text
        if delta.finish_reason is not None:
            # Held back until the stream ends: usage often arrives after it.
            self.finish_reason = delta.finish_reason
            self._tail = delta.text
            return []
        if delta.text:
            return [self._chunk(delta.text, False, None)]
        return []

    def finish(self) -> list[Any]:
        """Emit the terminal chunk; a second call emits nothing."""
        if self.completed:
            return []
        self.completed = True
        if self.finish_reason is None:
            logger.debug("Stream ended without a finish reason")
        return [self._chunk(self._tail, True, self.finish_reason)]

    def _chunk(self, delta: str, complete: bool, finish: FinishReason | None) -> Any:
        raise NotImplementedError


class TextAccumulator(_Accumulator):
    """Builds TextChunks by concatenating deltas."""

    def _chunk(self, delta: str, complete: bool, finish: FinishReason | None) -> TextChunk:
        return TextChunk(
            delta=delta,
            text=self.text,
            is_complete=complete,
            finish_reason=finish,
            usage=self.usage if complete else None,
        )


def parse_json_output(text: str) -> Any:
    """Parse model JSON output, tolerating a surrounding markdown fence.

    Raises:
        StreamingError: If the text is not valid JSON.
    """
    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise StreamingError.invalid_json_chunk(text) from exc


class ObjectAccumulator(_Accumulator):
    """Builds ObjectChunks from streamed JSON text."""

    def _chunk(self, delta: str, complete: bool, finish: FinishReason | None) -> ObjectChunk:
        if complete:
            final = parse_json_output(self.text)
            return ObjectChunk(
                delta=delta,
                partial_json=self.text,
                partial_object=final,
                object=final,
                is_complete=True,
                finish_reason=finish,
                usage=self.usage,
            )
        return ObjectChunk(
            delta=delta,
            partial_json=self.text,
            partial_object=parse_partial_json(self.text),
        )


# ── Composition ───────────────────────────────────────────────


async def accumulate_text(deltas: AsyncIterable[StreamDelta]) -> AsyncIterator[TextChunk]:
    acc = TextAccumulator()
    async for delta in deltas:
        for chunk in acc.push(delta):
            yield chunk
    for chunk in acc.finish():
        yield chunk


async def accumulate_object(deltas: AsyncIterable[StreamDelta]) -> AsyncIterator[ObjectChunk]:
    acc = ObjectAccumulator()
    async for delta in deltas:
        for chunk in acc.push(delta):
            yield chunk
    for chunk in acc.finish():
        yield chunk


async def _deltas(
    source: AsyncIterable[bytes | str],
    event_parser: EventParser,
    strict: bool,
    idle_timeout: float | None,
) -> AsyncIterator[StreamDelta]:
    async for payload in parse_sse(source, strict=strict, idle_timeout=idle_timeout):
        delta = event_parser(payload)
        if delta is not None:
            yield delta


async def stream_text_from_sse(
    source: AsyncIterable[bytes | str],
    *,
    event_parser: EventParser = delta_from_openai_event,
    strict: bool = False,
    idle_timeout: float | None = None,
) -> AsyncIterator[TextChunk]:
    """Turn a raw SSE body into TextChunks."""
    async for chunk in accumulate_text(_deltas(source, event_parser, strict, idle_timeout)):
        yield chunk


async def stream_object_from_sse(
    source: AsyncIterable[bytes | str],
    *,
    event_parser: EventParser = delta_from_openai_event,
    strict: bool = False,
    idle_timeout: float | None = None,
) -> AsyncIterator[ObjectChunk]:
    """Turn a raw SSE body carrying JSON text into ObjectChunks."""
    async for chunk in accumulate_object(_deltas(source, event_parser, strict, idle_timeout)):
        yield chunk
