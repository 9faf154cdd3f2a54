"""Abstract base class for text/object providers.

Defines the TextProvider interface every vendor adapter implements. The
orchestrator talks to providers only through this interface: it never builds
vendor requests itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from aisdk.schema.base import Schema
from aisdk.schemas.messages import Message
from aisdk.schemas.results import ObjectResult, TextResult
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.tools.tool import Tool


@dataclass
class ProviderRequest:
    """Everything a provider needs for one call."""

    model: str
    messages: list[Message]
    tools: list[Tool] = field(default_factory=list)
    tool_choice: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    stop: list[str] | None = None
    timeout: float | None = None
    schema: Schema | None = None
    schema_name: str | None = None
    schema_description: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class TextProvider(ABC):
    """Interface for any backend that can generate text and structured output."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'openai', 'anthropic')."""

    @abstractmethod
    async def generate_text(self, request: ProviderRequest) -> TextResult:
        """Run one completion; tool calls are returned, never executed here."""

    @abstractmethod
    def stream_text(self, request: ProviderRequest) -> AsyncIterator[TextChunk]:
        """Stream one completion as TextChunks ending in one terminal chunk."""

    @abstractmethod
    async def generate_object(self, request: ProviderRequest) -> ObjectResult:
        """Run one JSON-mode completion and parse the result."""

    @abstractmethod
    def stream_object(self, request: ProviderRequest) -> AsyncIterator[ObjectChunk]:
        """Stream one JSON-mode completion as ObjectChunks."""
