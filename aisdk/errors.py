"""Exception taxonomy for the aisdk package.

Every error raised by the SDK derives from AIError, which exposes a
``to_dict()`` method for structured logging. Validation failures are
recoverable and local; security-policy violations are returned as failed
ToolResults unless the policy is configured to fail; streaming errors are
always raised to the consumer of the chunk sequence.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class AIError(Exception):
    """Base class for all SDK errors."""

    def to_dict(self) -> dict[str, Any]:
        """Structured error details for logging."""
        chain: list[dict[str, str]] = []
        exc: BaseException | None = self
        while exc is not None:
            chain.append({"type": type(exc).__name__, "message": str(exc)})
            exc = exc.__cause__
        return {"type": type(self).__name__, "message": str(self), "chain": chain}


# ── Validation ────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidationError:
    """A single validation failure: where it happened, what, and the bad value."""

    path: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "message": self.message, "value": self.value}

    def __str__(self) -> str:
        return f"[{self.path}] {self.message}"


# Schema validation produces issues of this shape.
ValidationIssue = ValidationError


class InputValidationError(AIError, ValueError):
    """Raised when caller-supplied options are missing or malformed."""

    def __init__(self, message: str, parameter: str | None = None) -> None:
        super().__init__(message)
        self.parameter = parameter

    @classmethod
    def required_parameter(cls, name: str) -> InputValidationError:
        return cls(f'The parameter "{name}" is required.', name)

    @classmethod
    def invalid_parameter(cls, name: str, reason: str) -> InputValidationError:
        return cls(f'Invalid value for parameter "{name}": {reason}', name)


class SchemaValidationError(AIError):
    """Raised when a value (usually model output) does not match its schema."""

    def __init__(
        self,
        message: str,
        issues: list[ValidationError] | None = None,
        schema_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.issues = list(issues or [])
        self.schema_name = schema_name

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @classmethod
    def from_issues(
        cls, issues: list[ValidationError], schema_name: str | None = None
    ) -> SchemaValidationError:
        joined = "; ".join(str(issue) for issue in issues)
        if schema_name is not None:
            message = (
                f'Schema "{schema_name}" validation failed with '
                f"{len(issues)} error(s): {joined}"
            )
        else:
            message = f"Schema validation failed with {len(issues)} error(s): {joined}"
        return cls(message, issues, schema_name)

    @classmethod
    def invalid_json_output(
        cls, output: str, schema_name: str | None = None
    ) -> SchemaValidationError:
        return cls(
            "AI output is not valid JSON",
            [ValidationError("$", "Output is not valid JSON", output)],
            schema_name,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["schema_name"] = self.schema_name
        data["issues"] = [issue.to_dict() for issue in self.issues]
        return data


class SchemaDerivationError(AIError, TypeError):
    """Raised when a host type cannot be turned into a schema."""


# ── Tools ─────────────────────────────────────────────────────


class ToolError(AIError):
    """Base class for tool failures; carries the tool name and arguments."""

    def __init__(
        self,
        message: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.arguments = dict(arguments or {})

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["tool_name"] = self.tool_name
        data["arguments"] = self.arguments
        return data


class ToolExecutionError(ToolError):
    """Raised when a tool handler is missing or raises."""

    @classmethod
    def from_exception(
        cls, tool_name: str, arguments: dict[str, Any], exc: BaseException
    ) -> ToolExecutionError:
        err = cls(f'Tool "{tool_name}" execution failed: {exc}', tool_name, arguments)
        err.__cause__ = exc
        return err

    @classmethod
    def not_executable(cls, tool_name: str) -> ToolExecutionError:
        return cls(
            f"Tool '{tool_name}' is not executable (no handler provided)", tool_name
        )


class ArgumentValidationError(ToolError):
    """Tool input failed its parameter schema; raised before the handler runs."""

    def __init__(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        errors: list[str],
    ) -> None:
        super().__init__(
            f"Tool '{tool_name}' argument validation failed: {', '.join(errors)}",
            tool_name,
            arguments,
        )
        self.errors = list(errors)


class ReturnValidationError(ToolError):
    """Tool output failed its return schema; raised after the handler ran."""

    def __init__(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        output: Any,
        errors: list[str],
    ) -> None:
        super().__init__(
            f"Tool '{tool_name}' returned invalid output: {', '.join(errors)}",
            tool_name,
            arguments,
        )
        self.output = output
        self.errors = list(errors)


class ToolNotFoundError(ToolError):
    """Raised when a tool call names a tool that is not registered."""

    def __init__(self, tool_name: str, arguments: dict[str, Any] | None = None) -> None:
        super().__init__(f"Tool not found: {tool_name}", tool_name, arguments)


class ToolAlreadyRegisteredError(ToolError, ValueError):
    """Raised by ToolRegistry.register on a duplicate name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool already registered: {tool_name}", tool_name)


class SecurityReason(StrEnum):
    """Why a tool execution was blocked by policy."""

    NOT_ALLOWED = "not_in_allowed_list"
    EXPLICITLY_DENIED = "explicitly_denied"
    CONFIRMATION_DENIED = "confirmation_denied"
    TIMEOUT = "timeout"


class ToolSecurityError(ToolError):
    """Raised (or returned inside a ToolResult) when policy blocks a tool."""

    def __init__(
        self,
        message: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        reason: SecurityReason = SecurityReason.NOT_ALLOWED,
    ) -> None:
        super().__init__(message, tool_name, arguments)
        self.reason = reason

    @classmethod
    def not_allowed(
        cls,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        allowed_tools: list[str] | None = None,
    ) -> ToolSecurityError:
        allowed = ", ".join(allowed_tools) if allowed_tools else "none specified"
        return cls(
            f'Tool "{tool_name}" is not allowed by security policy. '
            f"Allowed tools: {allowed}",
            tool_name,
            arguments,
            SecurityReason.NOT_ALLOWED,
        )

    @classmethod
    def explicitly_denied(
        cls, tool_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolSecurityError:
        return cls(
            f'Tool "{tool_name}" is explicitly denied by security policy.',
            tool_name,
            arguments,
            SecurityReason.EXPLICITLY_DENIED,
        )

    @classmethod
    def confirmation_denied(
        cls, tool_name: str, arguments: dict[str, Any] | None = None
    ) -> ToolSecurityError:
        return cls(
            f'Tool "{tool_name}" execution was denied by confirmation callback.',
            tool_name,
            arguments,
            SecurityReason.CONFIRMATION_DENIED,
        )

    @classmethod
    def timeout(
        cls, tool_name: str, arguments: dict[str, Any], timeout_seconds: float
    ) -> ToolSecurityError:
        return cls(
            f'Tool "{tool_name}" execution timed out after {timeout_seconds:g} seconds.',
            tool_name,
            arguments,
            SecurityReason.TIMEOUT,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data


# ── Streaming ─────────────────────────────────────────────────


class StreamingError(AIError):
    """Raised when an SSE stream cannot be parsed or ends abnormally."""

    def __init__(
        self,
        message: str,
        event_type: str | None = None,
        last_data: str | None = None,
    ) -> None:
        super().__init__(message)
        self.event_type = event_type
        self.last_data = last_data

    @classmethod
    def invalid_json_chunk(cls, chunk: str) -> StreamingError:
        return cls("Received invalid JSON in streaming chunk.", last_data=chunk)

    @classmethod
    def unexpected_termination(cls, last_data: str | None = None) -> StreamingError:
        return cls("Stream terminated unexpectedly.", last_data=last_data)

    @classmethod
    def invalid_event(
        cls, event_type: str, reason: str, data: str | None = None
    ) -> StreamingError:
        return cls(f'Invalid SSE event "{event_type}": {reason}', event_type, data)

    @classmethod
    def no_data(cls, timeout_seconds: float) -> StreamingError:
        return cls(f"No data received from stream within {timeout_seconds:g} seconds.")

    @classmethod
    def provider_error(
        cls, message: str, error_data: dict[str, Any] | None = None
    ) -> StreamingError:
        encoded = json.dumps(error_data) if error_data is not None else None
        return cls(f"Provider streaming error: {message}", "error", encoded)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["event_type"] = self.event_type
        data["last_data"] = self.last_data
        return data


# ── Providers and session ─────────────────────────────────────


class ProviderError(AIError):
    """Raised when the provider collaborator fails a request."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["provider"] = self.provider
        data["status_code"] = self.status_code
        return data


class ProviderNotFoundError(AIError, KeyError):
    """Raised when a provider name is not registered in the context."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        listing = ", ".join(available) if available else "none"
        super().__init__(f'Provider "{name}" is not registered. Available: {listing}')
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class InvalidModelStringError(AIError, ValueError):
    """Raised when a model string is not of the form 'provider/model'."""

    def __init__(self, model_string: str) -> None:
        super().__init__(
            f'Invalid model string "{model_string}". Expected "provider/model".'
        )
        self.model_string = model_string


class MemoryLimitExceededError(AIError):
    """Raised when a tool conversation grows past the configured message cap."""

    def __init__(self, current_count: int, max_messages: int, roundtrips: int) -> None:
        super().__init__(
            f"Message limit exceeded: {current_count} messages (max: {max_messages}) "
            f"after {roundtrips} tool roundtrips. Consider increasing max_messages "
            "or reducing tool call frequency."
        )
        self.current_count = current_count
        self.max_messages = max_messages
        self.roundtrips = roundtrips
