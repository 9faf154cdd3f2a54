"""Outcome of one tool call."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from aisdk.errors import SecurityReason, ToolSecurityError
from aisdk.schemas.messages import Message


@dataclass(frozen=True)
class ToolResult:
    """Result of executing a tool call: success iff ``error is None``."""

    tool_call_id: str
    result: Any = None
    error: Exception | None = None

    @classmethod
    def success(cls, tool_call_id: str, result: Any) -> ToolResult:
        return cls(tool_call_id, result, None)

    @classmethod
    def failure(cls, tool_call_id: str, error: Exception) -> ToolResult:
        return cls(tool_call_id, None, error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def security_reason(self) -> SecurityReason | None:
        if isinstance(self.error, ToolSecurityError):
            return self.error.reason
        return None

    def content(self) -> str:
        """Text sent back to the model for this call."""
        if self.error is not None:
            return f"Error: {self.error}"
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, default=str)

    def to_message(self, tool_name: str | None = None) -> Message:
        return Message.tool(self.tool_call_id, self.content(), name=tool_name)
