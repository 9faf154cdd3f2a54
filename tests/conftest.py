"""Shared test doubles."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator

import pytest

from aisdk.providers.base import ProviderRequest, TextProvider
from aisdk.schemas.results import ObjectResult, TextResult
from aisdk.schemas.streaming import ObjectChunk, TextChunk


class FakeProvider(TextProvider):
    """Scripted provider: returns queued results and records every request.

    When only one scripted text result is left it is returned again on every
    further call, which is how tests model a model that never stops calling
    tools.
    """

    def __init__(
        self,
        name: str = "fake",
        *,
        text_results: list[TextResult] | None = None,
        object_results: list[ObjectResult] | None = None,
        text_chunks: list[TextChunk] | None = None,
        object_chunks: list[ObjectChunk] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._name = name
        self.text_results = list(text_results or [])
        self.object_results = list(object_results or [])
        self.text_chunks = list(text_chunks or [])
        self.object_chunks = list(object_chunks or [])
        self.error = error
        self.requests: list[ProviderRequest] = []

    @property
    def name(self) -> str:
        return self._name

    def _record(self, request: ProviderRequest) -> None:
        self.requests.append(copy.copy(request))
        if self.error is not None:
            raise self.error

    async def generate_text(self, request: ProviderRequest) -> TextResult:
        self._record(request)
        if len(self.text_results) > 1:
            return self.text_results.pop(0)
        return self.text_results[0]

    async def stream_text(self, request: ProviderRequest) -> AsyncIterator[TextChunk]:
        self._record(request)
        for chunk in self.text_chunks:
            yield chunk

    async def generate_object(self, request: ProviderRequest) -> ObjectResult:
        self._record(request)
        return self.object_results.pop(0)

    async def stream_object(self, request: ProviderRequest) -> AsyncIterator[ObjectChunk]:
        self._record(request)
        for chunk in self.object_chunks:
            yield chunk


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


class RecordingSink:
    """Event sink that keeps every event."""

    def __init__(self) -> None:
        self.events = []

    def dispatch(self, event) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
