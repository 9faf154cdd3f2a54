"""Tool definitions, registry, security policy and executor."""

from aisdk.tools.executor import ToolExecutor
from aisdk.tools.policy import ToolExecutionPolicy
from aisdk.tools.registry import ToolRegistry
from aisdk.tools.result import ToolResult
from aisdk.tools.tool import Tool, tool

__all__ = [
    "Tool",
    "ToolExecutionPolicy",
    "ToolExecutor",
    "ToolRegistry",
    "ToolResult",
    "tool",
]
