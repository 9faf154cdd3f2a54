"""Generation options.

Options are plain dataclasses: they hold callables, schemas and tools, which
are not data a pydantic model should validate.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from aisdk.errors import InputValidationError
from aisdk.schema.base import Schema
from aisdk.schema.derive import derive
from aisdk.schemas.messages import Message
from aisdk.tools.registry import ToolRegistry
from aisdk.tools.tool import Tool

Callback = Callable[[Any], Any]


@dataclass
class GenerationOptions:
    """Options shared by every generation call."""

    model: str | None = None
    prompt: str | None = None
    messages: Sequence[Message | dict[str, Any]] = field(default_factory=list)
    system: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    stop: list[str] | None = None
    timeout: float | None = None
    on_chunk: Callback | None = None
    on_finish: Callback | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """Raise InputValidationError on missing or out-of-range options."""
        if not self.prompt and not self.messages:
            raise InputValidationError.required_parameter("prompt")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise InputValidationError.invalid_parameter("max_tokens", "must be positive")
        if self.temperature is not None and not 0 <= self.temperature <= 2:
            raise InputValidationError.invalid_parameter(
                "temperature", "must be between 0 and 2"
            )
        if self.top_p is not None and not 0 <= self.top_p <= 1:
            raise InputValidationError.invalid_parameter("top_p", "must be between 0 and 1")
        if self.timeout is not None and self.timeout <= 0:
            raise InputValidationError.invalid_parameter("timeout", "must be positive")

    def effective_system(self) -> str | None:
        return self.system

    def build_messages(self) -> list[Message]:
        """System prompt first, then the given messages, then the prompt."""
        messages: list[Message] = []
        system = self.effective_system()
        if system:
            messages.append(Message.system(system))
        for message in self.messages:
            messages.append(
                message if isinstance(message, Message) else Message.model_validate(message)
            )
        if self.prompt:
            messages.append(Message.user(self.prompt))
        return messages


@dataclass
class TextGenerationOptions(GenerationOptions):
    tools: ToolRegistry | Sequence[Tool] | None = None
    tool_choice: str | None = None
    max_tool_roundtrips: int | None = None

    def validate(self) -> None:
        super().validate()
        if self.max_tool_roundtrips is not None and self.max_tool_roundtrips < 0:
            raise InputValidationError.invalid_parameter(
                "max_tool_roundtrips", "must not be negative"
            )

    def tool_registry(self) -> ToolRegistry | None:
        if self.tools is None or isinstance(self.tools, ToolRegistry):
            return self.tools
        return ToolRegistry(self.tools)


@dataclass
class ObjectGenerationOptions(GenerationOptions):
    """Structured output options; ``schema`` may be a Schema or a class to derive one from."""

    schema: Schema | type | None = None
    schema_name: str | None = None
    schema_description: str | None = None

    def validate(self) -> None:
        super().validate()
        if self.schema is None:
            raise InputValidationError.required_parameter("schema")

    def resolved_schema(self) -> Schema:
        if isinstance(self.schema, Schema):
            return self.schema
        if isinstance(self.schema, type):
            return derive(self.schema)
        raise InputValidationError.invalid_parameter(
            "schema", "expected a Schema or a class to derive one from"
        )

    def effective_system(self) -> str | None:
        parts = [self.system] if self.system else []
        schema_parts = []
        if self.schema_name is not None:
            schema_parts.append(f"Schema name: {self.schema_name}")
        if self.schema_description is not None:
            schema_parts.append(f"Schema description: {self.schema_description}")
        if schema_parts:
            parts.append("\n".join(schema_parts))
        return "\n\n".join(parts) if parts else None
