"""Pydantic data types shared across the SDK."""

from aisdk.schemas.messages import Message, Role, ToolCall
from aisdk.schemas.results import (
    FinishReason,
    ObjectResult,
    TextResult,
    ToolInvocation,
    Usage,
)
from aisdk.schemas.streaming import ObjectChunk, TextChunk

__all__ = [
    "FinishReason",
    "Message",
    "ObjectChunk",
    "ObjectResult",
    "Role",
    "TextChunk",
    "TextResult",
    "ToolCall",
    "ToolInvocation",
    "Usage",
]
