"""Security policy for tool execution.

Policies are immutable; every builder returns a modified copy::

    policy = (
        ToolExecutionPolicy.create()
        .deny_tools(["delete_file"])
        .with_timeout(5)
        .fail_on_violation()
    )
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from aisdk.errors import ToolSecurityError
from aisdk.schemas.messages import ToolCall

ConfirmationCallback = Callable[[str, dict[str, Any]], bool]
ArgumentSanitizer = Callable[[str, dict[str, Any]], dict[str, Any]]


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


@dataclass(frozen=True)
class ToolExecutionPolicy:
    """Which tools may run, under what checks, for how long.

    ``allowed_tools`` of None allows every tool; an empty tuple allows none.
    The deny list always wins over the allow list.
    """

    allowed_tools: tuple[str, ...] | None = None
    denied_tools: tuple[str, ...] = ()
    confirmation: ConfirmationCallback | None = None
    timeout: float | None = None
    argument_sanitizer: ArgumentSanitizer | None = None
    raise_on_violation: bool = False

    @classmethod
    def create(cls) -> ToolExecutionPolicy:
        return cls()

    @classmethod
    def restrictive(cls) -> ToolExecutionPolicy:
        """Allow nothing until tools are explicitly allowed."""
        return cls(allowed_tools=())

    # ── Builders ──────────────────────────────────────────────

    def allow_tools(self, names: Iterable[str] | None) -> ToolExecutionPolicy:
        allowed = None if names is None else _unique(names)
        return dataclasses.replace(self, allowed_tools=allowed)

    def add_allowed_tools(self, names: Iterable[str]) -> ToolExecutionPolicy:
        return dataclasses.replace(
            self, allowed_tools=_unique([*(self.allowed_tools or ()), *names])
        )

    def deny_tools(self, names: Iterable[str]) -> ToolExecutionPolicy:
        return dataclasses.replace(self, denied_tools=_unique(names))

    def add_denied_tools(self, names: Iterable[str]) -> ToolExecutionPolicy:
        return dataclasses.replace(
            self, denied_tools=_unique([*self.denied_tools, *names])
        )

    def with_confirmation(self, callback: ConfirmationCallback) -> ToolExecutionPolicy:
        return dataclasses.replace(self, confirmation=callback)

    def with_timeout(self, seconds: float | None) -> ToolExecutionPolicy:
        if seconds is not None and seconds <= 0:
            raise ValueError(f"Tool timeout must be positive, got {seconds}")
        return dataclasses.replace(self, timeout=seconds)

    def with_argument_sanitizer(self, sanitizer: ArgumentSanitizer) -> ToolExecutionPolicy:
        return dataclasses.replace(self, argument_sanitizer=sanitizer)

    def fail_on_violation(self, fail: bool = True) -> ToolExecutionPolicy:
        return dataclasses.replace(self, raise_on_violation=fail)

    # ── Queries ───────────────────────────────────────────────

    def is_tool_allowed(self, name: str) -> bool:
        if name in self.denied_tools:
            return False
        if self.allowed_tools is not None:
            return name in self.allowed_tools
        return True

    def confirm_execution(self, name: str, arguments: dict[str, Any]) -> bool:
        if self.confirmation is None:
            return True
        return bool(self.confirmation(name, arguments))

    def sanitize_arguments(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        if self.argument_sanitizer is None:
            return arguments
        return self.argument_sanitizer(name, dict(arguments))

    @property
    def should_fail_on_violation(self) -> bool:
        return self.raise_on_violation

    def has_restrictions(self) -> bool:
        return (
            self.allowed_tools is not None
            or bool(self.denied_tools)
            or self.confirmation is not None
            or self.timeout is not None
            or self.argument_sanitizer is not None
        )

    def validate(self, call: ToolCall) -> ToolSecurityError | None:
        """Return the violation for *call*, or None when it may run."""
        return self.screen(call)[1]

    def screen(self, call: ToolCall) -> tuple[dict[str, Any], ToolSecurityError | None]:
        """Sanitize *call* once and check it against the policy.

        Returns:
            The sanitized arguments and the violation, if any. The
            confirmation callback sees the same sanitized arguments the
            handler will receive.
        """
        if call.name in self.denied_tools:
            violation = ToolSecurityError.explicitly_denied(call.name, call.arguments)
            return call.arguments, violation
        if self.allowed_tools is not None and call.name not in self.allowed_tools:
            return call.arguments, ToolSecurityError.not_allowed(
                call.name, call.arguments, list(self.allowed_tools)
            )
        sanitized = self.sanitize_arguments(call.name, call.arguments)
        if not self.confirm_execution(call.name, sanitized):
            return sanitized, ToolSecurityError.confirmation_denied(call.name, sanitized)
        return sanitized, None
