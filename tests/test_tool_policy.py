"""Tests for ToolExecutionPolicy."""

from __future__ import annotations

import pytest

from aisdk.errors import SecurityReason
from aisdk.schemas.messages import ToolCall
from aisdk.tools import ToolExecutionPolicy


def _call(name: str, **arguments) -> ToolCall:
    return ToolCall(id=f"call_{name}", name=name, arguments=arguments)


class TestAllowAndDeny:
    def test_default_policy_allows_everything(self):
        policy = ToolExecutionPolicy.create()
        assert policy.is_tool_allowed("anything")
        assert policy.validate(_call("anything")) is None
        assert not policy.has_restrictions()

    def test_restrictive_allows_nothing(self):
        policy = ToolExecutionPolicy.restrictive()
        assert not policy.is_tool_allowed("read_file")
        violation = policy.validate(_call("read_file"))
        assert violation.reason is SecurityReason.NOT_ALLOWED
        assert "not allowed by security policy" in str(violation)
        assert policy.has_restrictions()

    def test_deny_wins_over_allow(self):
        policy = ToolExecutionPolicy.create().allow_tools(["A", "B"]).deny_tools(["B"])
        assert policy.is_tool_allowed("A")
        assert not policy.is_tool_allowed("B")
        assert not policy.is_tool_allowed("C")
        assert policy.validate(_call("B")).reason is SecurityReason.EXPLICITLY_DENIED
        assert policy.validate(_call("C")).reason is SecurityReason.NOT_ALLOWED

    def test_not_allowed_lists_allowed_tools(self):
        violation = ToolExecutionPolicy.create().allow_tools(["a", "b"]).validate(_call("c"))
        assert "Allowed tools: a, b" in str(violation)

    def test_add_tools_accumulates_without_duplicates(self):
        policy = (
            ToolExecutionPolicy.restrictive()
            .add_allowed_tools(["a"])
            .add_allowed_tools(["a", "b"])
            .add_denied_tools(["x"])
            .add_denied_tools(["y"])
        )
        assert policy.allowed_tools == ("a", "b")
        assert policy.denied_tools == ("x", "y")

    def test_allow_none_resets(self):
        policy = ToolExecutionPolicy.restrictive().allow_tools(None)
        assert policy.is_tool_allowed("anything")


class TestBuilders:
    def test_builders_return_copies(self):
        base = ToolExecutionPolicy.create()
        strict = base.deny_tools(["rm"]).fail_on_violation()
        assert base.denied_tools == ()
        assert not base.should_fail_on_violation
        assert strict.should_fail_on_violation
        assert not strict.fail_on_violation(False).should_fail_on_violation

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ToolExecutionPolicy.create().with_timeout(0)
        assert ToolExecutionPolicy.create().with_timeout(2.5).timeout == 2.5


class TestConfirmationAndSanitizing:
    def test_confirmation_denied(self):
        policy = ToolExecutionPolicy.create().with_confirmation(lambda name, args: False)
        violation = policy.validate(_call("deploy"))
        assert violation.reason is SecurityReason.CONFIRMATION_DENIED
        assert "denied by confirmation callback" in str(violation)

    def test_confirmation_receives_sanitized_arguments(self):
        seen = []

        def confirm(name, args):
            seen.append((name, args))
            return True

        policy = (
            ToolExecutionPolicy.create()
            .with_argument_sanitizer(lambda name, args: {**args, "path": "/safe"})
            .with_confirmation(confirm)
        )
        assert policy.validate(_call("write", path="../../etc/passwd")) is None
        assert seen == [("write", {"path": "/safe"})]

    def test_screen_returns_sanitized_arguments(self):
        policy = ToolExecutionPolicy.create().with_argument_sanitizer(
            lambda name, args: {**args, "path": "/safe"}
        )
        arguments, violation = policy.screen(_call("write", path="../x"))
        assert violation is None
        assert arguments == {"path": "/safe"}

    def test_confirmation_not_called_for_denied_tool(self):
        seen = []
        policy = (
            ToolExecutionPolicy.create()
            .deny_tools(["rm"])
            .with_confirmation(lambda name, args: seen.append(name) or True)
        )
        policy.validate(_call("rm"))
        assert seen == []

    def test_sanitizer_gets_a_copy(self):
        original = {"q": "x"}

        def sanitizer(name, args):
            args["q"] = "y"
            return args

        policy = ToolExecutionPolicy.create().with_argument_sanitizer(sanitizer)
        assert policy.sanitize_arguments("t", original) == {"q": "y"}
        assert original == {"q": "x"}
