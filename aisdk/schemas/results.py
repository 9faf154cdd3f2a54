"""Generation result schemas: usage, finish reasons and results."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from aisdk.schemas.messages import ToolCall

_FINISH_ALIASES = {
    "stop": "stop",
    "end_turn": "stop",
    "complete": "stop",
    "stop_sequence": "stop",
    "length": "length",
    "max_tokens": "length",
    "tool_calls": "tool_calls",
    "tool_use": "tool_calls",
    "function_call": "tool_calls",
    "content_filter": "content_filter",
    "safety": "content_filter",
}


class FinishReason(StrEnum):
    """Why the model stopped generating."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"

    @classmethod
    def parse(cls, value: str | None) -> FinishReason | None:
        """Map a vendor finish string onto a FinishReason; unknown → None."""
        if not value:
            return None
        alias = _FINISH_ALIASES.get(str(value).lower())
        return cls(alias) if alias else None


class Usage(BaseModel):
    """Token consumption for one or more provider calls."""

    prompt_tokens: int = Field(default=0, ge=0, description="Input tokens consumed")
    completion_tokens: int = Field(default=0, ge=0, description="Output tokens generated")
    total_tokens: int = Field(default=0, ge=0, description="Prompt plus completion")

    @classmethod
    def of(cls, prompt_tokens: int, completion_tokens: int) -> Usage:
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Usage:
        """Build from a vendor usage dict (OpenAI or Anthropic key names)."""
        data = data or {}
        prompt = data.get("prompt_tokens", data.get("input_tokens")) or 0
        completion = data.get("completion_tokens", data.get("output_tokens")) or 0
        total = data.get("total_tokens") or prompt + completion
        return cls(
            prompt_tokens=int(prompt),
            completion_tokens=int(completion),
            total_tokens=int(total),
        )

    def __add__(self, other: Usage) -> Usage:
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ToolInvocation(BaseModel):
    """Record of one executed tool call."""

    tool_call: ToolCall
    result: Any = Field(default=None, description="Handler return value on success")
    error: str | None = Field(default=None, description="Error message on failure")
    roundtrip: int = Field(default=0, ge=0, description="Roundtrip the call ran in")

    @property
    def is_success(self) -> bool:
        return self.error is None


class TextResult(BaseModel):
    """Outcome of a text generation, including any tool roundtrips."""

    text: str = Field(default="", description="Generated text of the last call")
    tool_calls: list[ToolCall] = Field(
        default_factory=list, description="Tool calls requested by the last call"
    )
    finish_reason: FinishReason | None = None
    usage: Usage = Field(default_factory=Usage, description="Total across all calls")
    usage_per_call: list[Usage] = Field(default_factory=list)
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)
    roundtrips: int = Field(default=0, ge=0, description="Tool resubmissions performed")

    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ObjectResult(BaseModel):
    """Outcome of a structured-output generation."""

    object: Any = Field(default=None, description="Parsed and validated value")
    text: str = Field(default="", description="Raw JSON text returned by the model")
    finish_reason: FinishReason | None = None
    usage: Usage = Field(default_factory=Usage)
