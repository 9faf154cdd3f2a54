"""aisdk: cross-provider AI client SDK."""

__version__ = "0.1.0"

from .context import AIContext
from .generation import GenerationOrchestrator, ObjectGenerationOptions, TextGenerationOptions
from .schema import Schema
from .tools import Tool, ToolExecutionPolicy, ToolExecutor, ToolRegistry, tool

__all__ = [
    "AIContext",
    "GenerationOrchestrator",
    "ObjectGenerationOptions",
    "Schema",
    "TextGenerationOptions",
    "Tool",
    "ToolExecutionPolicy",
    "ToolExecutor",
    "ToolRegistry",
    "tool",
]
