"""Session context.

An AIContext bundles the providers, defaults, tool policy and event sink of
one logical session. Build one and pass it around; nothing here is global.

    ctx = AIContext.from_config(load_config())
    result = await ctx.generate_text(model="openai/gpt-4o", prompt="Hi")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import fields
from typing import Any

from aisdk.config import SDKConfig
from aisdk.errors import InputValidationError
from aisdk.events import EventSink, NullEventSink
from aisdk.generation.options import (
    GenerationOptions,
    ObjectGenerationOptions,
    TextGenerationOptions,
)
from aisdk.generation.orchestrator import GenerationOrchestrator
from aisdk.providers.base import TextProvider
from aisdk.providers.litellm_provider import LiteLLMProvider
from aisdk.providers.registry import ProviderRegistry
from aisdk.schemas.results import ObjectResult, TextResult
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.tools.executor import ToolExecutor
from aisdk.tools.policy import ToolExecutionPolicy

logger = logging.getLogger(__name__)


class AIContext:
    """Providers and defaults for one session."""

    def __init__(
        self,
        providers: ProviderRegistry | None = None,
        *,
        default_model: str | None = None,
        defaults: dict[str, Any] | None = None,
        timeout: float = 30.0,
        max_tool_roundtrips: int = 5,
        max_messages: int = 100,
        events: EventSink | None = None,
        tool_policy: ToolExecutionPolicy | None = None,
    ) -> None:
        self.providers = providers or ProviderRegistry()
        self.default_model = default_model
        self.defaults = dict(defaults or {})
        self.timeout = timeout
        self.max_tool_roundtrips = max_tool_roundtrips
        self.max_messages = max_messages
        self.events = events or NullEventSink()
        self.tool_policy = tool_policy

    @classmethod
    def from_config(cls, config: SDKConfig, **overrides: Any) -> AIContext:
        """Build a context with one LiteLLMProvider per provider that has an API key."""
        registry = ProviderRegistry()
        for name, settings in config.providers.items():
            if not settings.api_key_env or settings.api_key:
                registry.register(LiteLLMProvider(name, settings, config.timeout))
            else:
                logger.debug("Skipping provider %s: %s is not set", name, settings.api_key_env)
        options: dict[str, Any] = {
            "default_model": config.default_model,
            "timeout": config.timeout,
            "max_tool_roundtrips": config.max_tool_roundtrips,
            "max_messages": config.max_messages,
        }
        options.update(overrides)
        return cls(registry, **options)

    def register_provider(self, provider: TextProvider, name: str | None = None) -> None:
        self.providers.register(provider, name)

    def orchestrator(self, model: str | None = None) -> GenerationOrchestrator:
        """Build an orchestrator for ``provider/model`` (or the default model)."""
        model = model or self.default_model
        if not model:
            raise InputValidationError.required_parameter("model")
        provider, model_name = self.providers.resolve(model)
        return GenerationOrchestrator(
            provider,
            model=model_name,
            executor=ToolExecutor(self.tool_policy, self.events),
            events=self.events,
            max_tool_roundtrips=self.max_tool_roundtrips,
            max_messages=self.max_messages,
            timeout=self.timeout,
        )

    def _options(self, cls: type[GenerationOptions], kwargs: dict[str, Any]) -> tuple[str | None, Any]:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise InputValidationError.invalid_parameter(
                unknown[0], f"unknown option for {cls.__name__}"
            )
        # Defaults that do not apply to this kind of call are skipped.
        merged = {k: v for k, v in self.defaults.items() if k in known}
        merged.update(kwargs)
        model = merged.pop("model", None)
        return model, cls(**merged)

    async def generate_text(self, **kwargs: Any) -> TextResult:
        model, options = self._options(TextGenerationOptions, kwargs)
        return await self.orchestrator(model).generate_text(options)

    async def stream_text(self, **kwargs: Any) -> AsyncIterator[TextChunk]:
        model, options = self._options(TextGenerationOptions, kwargs)
        async for chunk in self.orchestrator(model).stream_text(options):
            yield chunk

    async def generate_object(self, **kwargs: Any) -> ObjectResult:
        model, options = self._options(ObjectGenerationOptions, kwargs)
        return await self.orchestrator(model).generate_object(options)

    async def stream_object(self, **kwargs: Any) -> AsyncIterator[ObjectChunk]:
        model, options = self._options(ObjectGenerationOptions, kwargs)
        async for chunk in self.orchestrator(model).stream_object(options):
            yield chunk
