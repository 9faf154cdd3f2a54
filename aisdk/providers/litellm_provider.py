"""LiteLLM adapter implementing the TextProvider interface.

Routes every call through ``litellm.acompletion``, which speaks each vendor's
wire protocol. Tools are sent in OpenAI function format (LiteLLM translates
them); structured output uses JSON mode. Vendor failures surface as
ProviderError. There is no retry layer.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import litellm

from aisdk.config import ProviderSettings
from aisdk.errors import ProviderError, SchemaValidationError, StreamingError
from aisdk.providers.base import ProviderRequest, TextProvider
from aisdk.schemas.messages import Message, ToolCall
from aisdk.schemas.results import FinishReason, ObjectResult, TextResult, Usage
from aisdk.schemas.streaming import ObjectChunk, TextChunk
from aisdk.streaming.accumulator import (
    StreamDelta,
    accumulate_object,
    accumulate_text,
    parse_json_output,
)

# Suppress LiteLLM's "Give Feedback / Get Help" banners
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)

_VENDOR_ERRORS = (
    litellm.AuthenticationError,
    litellm.BadRequestError,
    litellm.RateLimitError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
    litellm.APIConnectionError,
    litellm.Timeout,
)


def _usage_from(response: Any) -> Usage | None:
    usage = getattr(response, "usage", None)
    if not usage:
        return None
    return Usage.from_dict(
        {
            "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
            "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
            "total_tokens": getattr(usage, "total_tokens", 0) or 0,
        }
    )


def _tool_calls_from(message: Any) -> list[ToolCall]:
    calls = []
    for raw in getattr(message, "tool_calls", None) or []:
        function = raw.function
        calls.append(
            ToolCall.from_openai(
                {
                    "id": raw.id,
                    "function": {"name": function.name, "arguments": function.arguments},
                }
            )
        )
    return calls


def _json_instructions(request: ProviderRequest) -> Message:
    schema = request.schema.to_wire_schema() if request.schema is not None else {}
    return Message.system(
        "Respond only with a JSON value matching this JSON Schema:\n" + json.dumps(schema)
    )


class LiteLLMProvider(TextProvider):
    """Universal provider powered by LiteLLM.

    One instance serves one provider name; model names are routed as
    ``<litellm_prefix>/<model>``.
    """

    def __init__(
        self,
        name: str,
        settings: ProviderSettings | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._name = name
        self._settings = settings or ProviderSettings()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    # ── Request building ──────────────────────────────────────

    def _build_kwargs(
        self, request: ProviderRequest, *, json_mode: bool = False, stream: bool = False
    ) -> dict[str, Any]:
        messages = list(request.messages)
        if json_mode:
            messages.insert(0, _json_instructions(request))

        prefix = self._settings.litellm_prefix or self._name
        kwargs: dict[str, Any] = {
            "model": f"{prefix}/{request.model}",
            "messages": [m.to_dict() for m in messages],
            "timeout": float(request.timeout or self._timeout),
        }
        if self._settings.api_key:
            kwargs["api_key"] = self._settings.api_key
        if self._settings.api_base:
            kwargs["api_base"] = self._settings.api_base

        for option in ("max_tokens", "temperature", "top_p", "stop"):
            value = getattr(request, option)
            if value is not None:
                kwargs[option] = value

        if request.tools and not json_mode:
            kwargs["tools"] = [t.to_provider_format("openai") for t in request.tools]
            if request.tool_choice in ("auto", "none", "required"):
                kwargs["tool_choice"] = request.tool_choice
            elif request.tool_choice:
                kwargs["tool_choice"] = {
                    "type": "function",
                    "function": {"name": request.tool_choice},
                }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if stream:
            kwargs["stream"] = True
            kwargs["stream_options"] = {"include_usage": True}
        kwargs.update(request.extra)
        return kwargs

    async def _call(self, kwargs: dict[str, Any]) -> Any:
        """Call litellm.acompletion, mapping vendor failures to ProviderError."""
        logger.debug("litellm.acompletion model=%s stream=%s", kwargs["model"], kwargs.get("stream", False))
        try:
            return await litellm.acompletion(**kwargs)
        except TimeoutError as exc:
            raise ProviderError(
                f"Call to {kwargs['model']} timed out after {kwargs['timeout']:g}s", self._name
            ) from exc
        except litellm.AuthenticationError as exc:
            raise ProviderError(
                f"Authentication failed for {kwargs['model']}. "
                f"Check that {self._settings.api_key_env or 'the API key'} is set correctly.",
                self._name,
                getattr(exc, "status_code", None),
            ) from exc
        except _VENDOR_ERRORS as exc:
            raise ProviderError(
                f"Call to {kwargs['model']} failed: {exc}",
                self._name,
                getattr(exc, "status_code", None),
            ) from exc

    # ── Text ──────────────────────────────────────────────────

    async def generate_text(self, request: ProviderRequest) -> TextResult:
        response = await self._call(self._build_kwargs(request))
        if not response.choices:
            return TextResult(usage=_usage_from(response) or Usage())
        choice = response.choices[0]
        message = choice.message
        usage = _usage_from(response) or Usage()
        return TextResult(
            text=(message.content or "") if message else "",
            tool_calls=_tool_calls_from(message),
            finish_reason=FinishReason.parse(choice.finish_reason),
            usage=usage,
            usage_per_call=[usage],
        )

    async def _deltas(self, kwargs: dict[str, Any]) -> AsyncIterator[StreamDelta]:
        response = await self._call(kwargs)
        try:
            async for chunk in response:
                text = ""
                finish = None
                if chunk.choices:
                    choice = chunk.choices[0]
                    if choice.delta:
                        text = choice.delta.content or ""
                    finish = FinishReason.parse(getattr(choice, "finish_reason", None))
                yield StreamDelta(text, finish, _usage_from(chunk))
        except _VENDOR_ERRORS as exc:
            raise StreamingError.provider_error(str(exc)) from exc

    async def stream_text(self, request: ProviderRequest) -> AsyncIterator[TextChunk]:
        async for chunk in accumulate_text(self._deltas(self._build_kwargs(request, stream=True))):
            yield chunk

    # ── Objects ───────────────────────────────────────────────

    async def generate_object(self, request: ProviderRequest) -> ObjectResult:
        response = await self._call(self._build_kwargs(request, json_mode=True))
        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice and choice.message else ""
        try:
            value = parse_json_output(content)
        except StreamingError as exc:
            raise SchemaValidationError.invalid_json_output(content, request.schema_name) from exc
        return ObjectResult(
            object=value,
            text=content,
            finish_reason=FinishReason.parse(choice.finish_reason) if choice else None,
            usage=_usage_from(response) or Usage(),
        )

    async def stream_object(self, request: ProviderRequest) -> AsyncIterator[ObjectChunk]:
        kwargs = self._build_kwargs(request, json_mode=True, stream=True)
        async for chunk in accumulate_object(self._deltas(kwargs)):
            yield chunk
