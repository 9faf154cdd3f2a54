"""Lifecycle events and event sinks.

The orchestrator and tool executor report what they do through an EventSink.
Dispatch is best-effort: a failing sink is logged and otherwise ignored, it
never changes control flow.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from aisdk.schemas.results import Usage

logger = logging.getLogger(__name__)


class Event(BaseModel):
    """Base for all lifecycle events."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return type(self).__name__


class RequestStarted(Event):
    provider: str
    model: str
    operation: str = Field(description="generate_text, stream_object, ...")
    message_count: int = Field(default=0, ge=0)


class RequestCompleted(Event):
    provider: str
    model: str
    operation: str
    usage: Usage | None = None
    duration_ms: float = Field(default=0.0, ge=0.0)


class StreamChunkReceived(Event):
    provider: str
    model: str
    chunk_index: int = Field(ge=0)
    delta: str = ""
    is_complete: bool = False


class ToolCallStarted(Event):
    tool_name: str
    tool_call_id: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallCompleted(Event):
    tool_name: str
    tool_call_id: str
    success: bool
    error: str | None = None
    duration_ms: float = Field(default=0.0, ge=0.0)


class ErrorOccurred(Event):
    operation: str
    error_type: str
    message: str
    provider: str | None = None
    model: str | None = None


class MemoryLimitWarning(Event):
    """Emitted once a tool conversation reaches 80% of its message cap."""

    current_count: int
    max_messages: int
    roundtrips: int

    @property
    def usage_ratio(self) -> float:
        return self.current_count / self.max_messages if self.max_messages else 0.0


# ── Sinks ─────────────────────────────────────────────────────


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts events."""

    def dispatch(self, event: Event) -> None: ...


class NullEventSink:
    """Discards every event."""

    def dispatch(self, event: Event) -> None:
        return None


class LoggingEventSink:
    """Mirrors events to a logger, one line per event."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._log = log or logger
        self._level = level

    def dispatch(self, event: Event) -> None:
        self._log.log(
            self._level,
            "%s %s",
            event.name,
            event.model_dump_json(exclude={"timestamp"}),
        )


class CallbackEventSink:
    """Fans events out to subscribed callables, optionally filtered by type."""

    def __init__(self, *callbacks: Callable[[Event], Any]) -> None:
        self._subscribers: list[tuple[type[Event], Callable[[Event], Any]]] = [
            (Event, cb) for cb in callbacks
        ]

    def subscribe(
        self, callback: Callable[[Event], Any], event_type: type[Event] = Event
    ) -> None:
        self._subscribers.append((event_type, callback))

    def dispatch(self, event: Event) -> None:
        for event_type, callback in self._subscribers:
            if isinstance(event, event_type):
                callback(event)


def safe_dispatch(sink: EventSink | None, event: Event) -> None:
    """Dispatch *event*, logging and swallowing any sink failure."""
    if sink is None:
        return
    try:
        sink.dispatch(event)
    except Exception:
        logger.exception("Event sink %s failed on %s", type(sink).__name__, event.name)
