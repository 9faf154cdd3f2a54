"""Policy-enforcing tool executor.

Turns ToolCalls into ToolResults. Handler failures never escape: they come
back as failed results so one bad call cannot abort a batch. Security
violations do the same unless the policy is set to fail on violation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

from aisdk.errors import ToolNotFoundError, ToolSecurityError
from aisdk.events import EventSink, ToolCallCompleted, ToolCallStarted, safe_dispatch
from aisdk.schemas.messages import ToolCall
from aisdk.tools.policy import ToolExecutionPolicy
from aisdk.tools.registry import ToolRegistry
from aisdk.tools.result import ToolResult
from aisdk.tools.tool import Tool

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Runs tool calls under a ToolExecutionPolicy."""

    def __init__(
        self,
        policy: ToolExecutionPolicy | None = None,
        events: EventSink | None = None,
    ) -> None:
        self.policy = policy or ToolExecutionPolicy.create()
        self.events = events

    async def execute(self, tool: Tool, call: ToolCall) -> ToolResult:
        """Execute one call against *tool*.

        Raises:
            ToolSecurityError: Only when the policy fails on violation.
        """
        arguments, violation = self.policy.screen(call)
        if violation is not None:
            logger.warning("Blocked tool call %s (%s)", call.name, violation.reason)
            if self.policy.should_fail_on_violation:
                raise violation
            return ToolResult.failure(call.id, violation)
        safe_dispatch(
            self.events,
            ToolCallStarted(tool_name=call.name, tool_call_id=call.id, arguments=arguments),
        )
        started = time.monotonic()

        try:
            output = await self._run(tool, arguments, call)
            result = ToolResult.success(call.id, output)
        except ToolSecurityError as exc:
            logger.warning("Tool %s: %s", call.name, exc)
            self._completed(call, started, exc)
            if self.policy.should_fail_on_violation:
                raise
            return ToolResult.failure(call.id, exc)
        except Exception as exc:
            logger.warning("Tool %s failed: %s", call.name, exc)
            result = ToolResult.failure(call.id, exc)

        self._completed(call, started, result.error)
        return result

    async def _run(self, tool: Tool, arguments: dict[str, Any], call: ToolCall) -> Any:
        timeout = self.policy.timeout
        if timeout is None:
            return await tool.execute(arguments)
        # Sync handlers move to a worker thread so the deadline can fire;
        # the thread itself cannot be stopped and runs to completion.
        try:
            return await asyncio.wait_for(tool.execute(arguments, in_thread=True), timeout)
        except TimeoutError as exc:
            raise ToolSecurityError.timeout(call.name, arguments, timeout) from exc

    def _completed(self, call: ToolCall, started: float, error: Exception | None) -> None:
        safe_dispatch(
            self.events,
            ToolCallCompleted(
                tool_name=call.name,
                tool_call_id=call.id,
                success=error is None,
                error=str(error) if error is not None else None,
                duration_ms=(time.monotonic() - started) * 1000,
            ),
        )

    async def execute_all(
        self,
        registry: ToolRegistry,
        calls: Sequence[ToolCall],
        *,
        concurrent: bool = False,
    ) -> list[ToolResult]:
        """Execute every call, returning results in call order.

        Unknown tool names yield a failed result carrying ToolNotFoundError.

        Args:
            registry: Tools to resolve call names against.
            calls: Calls to run.
            concurrent: Run the calls with ``asyncio.gather`` instead of
                one after another. Result order is unchanged.
        """

        async def one(call: ToolCall) -> ToolResult:
            found = registry.get(call.name)
            if found is None:
                logger.warning("Tool call for unknown tool %s", call.name)
                return ToolResult.failure(call.id, ToolNotFoundError(call.name, call.arguments))
            return await self.execute(found, call)

        if concurrent:
            return list(await asyncio.gather(*(one(call) for call in calls)))
        return [await one(call) for call in calls]

    async def execute_call(self, registry: ToolRegistry, call: ToolCall) -> ToolResult:
        """Like ``execute`` but resolves the tool by name.

        Raises:
            ToolNotFoundError: If no tool named ``call.name`` is registered.
        """
        found = registry.get(call.name)
        if found is None:
            raise ToolNotFoundError(call.name, call.arguments)
        return await self.execute(found, call)
