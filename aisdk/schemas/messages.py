"""Conversation message schemas.

Messages use the OpenAI chat shape as the neutral interchange format; provider
adapters translate from it.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A model's request to invoke a tool."""

    id: str = Field(description="Provider-assigned call identifier")
    name: str = Field(description="Name of the tool to invoke")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Decoded JSON arguments"
    )

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }

    @classmethod
    def from_openai(cls, data: dict[str, Any]) -> ToolCall:
        """Build from an OpenAI ``tool_calls`` entry (arguments may be a JSON string)."""
        function = data.get("function", data)
        arguments = function.get("arguments") or {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                arguments = {"_raw": arguments}
        return cls(id=data.get("id", ""), name=function.get("name", ""), arguments=arguments)


class Message(BaseModel):
    """One turn in a conversation."""

    role: Role
    content: str | None = Field(default=None, description="Text content")
    tool_calls: list[ToolCall] = Field(
        default_factory=list, description="Tool calls requested by the assistant"
    )
    tool_call_id: str | None = Field(
        default=None, description="Call this tool message answers"
    )
    name: str | None = Field(default=None, description="Tool name for tool messages")

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str | None = None, tool_calls: list[ToolCall] | None = None
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, tool_call_id: str, content: str, name: str | None = None) -> Message:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name)

    def to_dict(self) -> dict[str, Any]:
        """Render in OpenAI chat format (keys only when meaningful)."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None and self.role == Role.TOOL:
            data["name"] = self.name
        return data
