"""Streaming schemas for incremental delivery.

Every chunk carries the full accumulated value so consumers can render
without keeping their own buffer. Exactly one chunk per stream has
``is_complete`` set, and it is the last one.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from aisdk.schemas.results import FinishReason, Usage


class TextChunk(BaseModel):
    """A single chunk of streamed text."""

    delta: str = Field(default="", description="New text in this chunk")
    text: str = Field(default="", description="Full text accumulated so far")
    is_complete: bool = Field(default=False, description="True on the final chunk")
    finish_reason: FinishReason | None = None
    usage: Usage | None = None


class ObjectChunk(BaseModel):
    """A single chunk of streamed structured output."""

    delta: str = Field(default="", description="New JSON text in this chunk")
    partial_json: str = Field(default="", description="JSON text accumulated so far")
    partial_object: Any = Field(
        default=None, description="Best-effort parse of the incomplete JSON"
    )
    object: Any = Field(default=None, description="Final parsed value (final chunk only)")
    is_complete: bool = Field(default=False, description="True on the final chunk")
    finish_reason: FinishReason | None = None
    usage: Usage | None = None
