"""Name-keyed collection of tools."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from aisdk.errors import ToolAlreadyRegisteredError
from aisdk.tools.tool import TOOL_MARKER, Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Ordered registry of tools, unique by name."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for t in tools:
            self.register(t)

    def register(self, tool: Tool) -> ToolRegistry:
        """Add *tool*; raises ToolAlreadyRegisteredError on a duplicate name."""
        if tool.name in self._tools:
            raise ToolAlreadyRegisteredError(tool.name)
        self._tools[tool.name] = tool
        logger.debug("Registered tool %s", tool.name)
        return self

    def set(self, tool: Tool) -> ToolRegistry:
        """Add or replace *tool*."""
        self._tools[tool.name] = tool
        return self

    def register_object(self, obj: Any) -> list[Tool]:
        """Register every ``@tool``-marked method of *obj*.

        Returns:
            The tools that were registered, sorted by attribute name.
        """
        registered = []
        for attr, member in inspect.getmembers(type(obj)):
            if attr.startswith("__") or not hasattr(member, TOOL_MARKER):
                continue
            built = Tool.from_function(getattr(obj, attr))
            self.register(built)
            registered.append(built)
        return registered

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def remove(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def executable(self) -> list[Tool]:
        return [t for t in self._tools.values() if t.is_executable]

    def clear(self) -> None:
        self._tools.clear()

    def to_provider_format(self, provider: str = "openai") -> list[dict[str, Any]]:
        return [t.to_provider_format(provider) for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())
