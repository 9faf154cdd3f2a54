"""SSE parsing and chunk accumulation."""

from aisdk.streaming.accumulator import (
    ObjectAccumulator,
    StreamDelta,
    TextAccumulator,
    accumulate_object,
    accumulate_text,
    delta_from_anthropic_event,
    delta_from_openai_event,
    parse_json_output,
    stream_object_from_sse,
    stream_text_from_sse,
)
from aisdk.streaming.partial_json import parse_partial_json
from aisdk.streaming.sse import SSEEvent, SSEParser, parse_sse

__all__ = [
    "ObjectAccumulator",
    "SSEEvent",
    "SSEParser",
    "StreamDelta",
    "TextAccumulator",
    "accumulate_object",
    "accumulate_text",
    "delta_from_anthropic_event",
    "delta_from_openai_event",
    "parse_json_output",
    "parse_partial_json",
    "parse_sse",
    "stream_object_from_sse",
    "stream_text_from_sse",
]
