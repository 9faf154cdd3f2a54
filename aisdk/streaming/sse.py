"""Server-Sent Events frame parser.

``SSEParser`` is a push parser: feed it whatever the network read returned
(partial frames included) and it hands back the complete events. Frames end
at a blank line; ``data:`` lines of one frame are joined with newlines.
``parse_sse`` drives the parser from an async byte stream and decodes each
event's JSON payload.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

from aisdk.errors import StreamingError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class SSEEvent:
    """One dispatched SSE frame."""

    data: str = ""
    event: str | None = None
    id: str | None = None
    retry: int | None = None

    @property
    def is_done(self) -> bool:
        return self.data.strip() == DONE_SENTINEL

    def json(self) -> Any:
        """Decode ``data`` as JSON.

        Raises:
            StreamingError: If the payload is not valid JSON.
        """
        try:
            return json.loads(self.data)
        except json.JSONDecodeError as exc:
            raise StreamingError.invalid_json_chunk(self.data) from exc


class SSEParser:
    """Incremental SSE parser.

    In strict mode malformed ``id``/``retry`` fields and a stream that ends
    mid-frame raise StreamingError; otherwise they are tolerated.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")()

    def feed(self, data: bytes | str) -> list[SSEEvent]:
        if isinstance(data, bytes):
            try:
                data = self._decoder.decode(data)
            except UnicodeDecodeError as exc:
                raise StreamingError(f"Stream is not valid UTF-8: {exc}") from exc
        # A "\r" at the end of one read pairs with "\n" at the start of the next,
        # so normalise the whole buffer rather than the new piece only.
        self._buffer = (self._buffer + data).replace("\r\n", "\n")

        events = []
        while (pos := self._buffer.find("\n\n")) != -1:
            block, self._buffer = self._buffer[:pos], self._buffer[pos + 2 :]
            event = self._parse_block(block)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[SSEEvent]:
        """Handle whatever is left once the stream has ended."""
        try:
            tail = self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            raise StreamingError.unexpected_termination(self._buffer) from exc
        remaining, self._buffer = self._buffer + tail, ""
        if not remaining.strip():
            return []
        if self.strict:
            raise StreamingError.unexpected_termination(remaining)
        logger.debug("Parsing unterminated trailing SSE frame")
        event = self._parse_block(remaining.strip("\n"))
        return [event] if event is not None else []

    def _parse_block(self, block: str) -> SSEEvent | None:
        data: list[str] = []
        event = event_id = None
        retry = None
        has_field = False

        for line in block.split("\n"):
            if not line or line.startswith(":"):
                continue
            name, sep, value = line.partition(":")
            if sep and value.startswith(" "):
                value = value[1:]

            if name == "data":
                data.append(value)
                has_field = True
            elif name == "event":
                event = value
                has_field = True
            elif name == "id":
                if "\0" in value:
                    if self.strict:
                        raise StreamingError.invalid_event(
                            event or "message", "id field contains a null character", block
                        )
                    continue
                event_id = value
                has_field = True
            elif name == "retry":
                if value.isdigit():
                    retry = int(value)
                    has_field = True
                elif self.strict and value:
                    raise StreamingError.invalid_event(
                        event or "message", "retry field must be an integer", block
                    )

        if not has_field:
            return None
        return SSEEvent("\n".join(data), event, event_id, retry)


def _raise_for_error(event: SSEEvent, payload: Any) -> None:
    if event.event == "error" or (
        isinstance(payload, dict) and "error" in payload and "choices" not in payload
    ):
        error = payload.get("error", payload) if isinstance(payload, dict) else payload
        message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
        raise StreamingError.provider_error(
            message, payload if isinstance(payload, dict) else {"error": payload}
        )


async def _next_piece(
    iterator: AsyncIterator[bytes | str], idle_timeout: float | None
) -> bytes | str:
    if idle_timeout is None:
        return await anext(iterator)
    try:
        async with asyncio.timeout(idle_timeout) as deadline:
            return await anext(iterator)
    except TimeoutError:
        # A TimeoutError raised by the transport itself propagates unchanged.
        if deadline.expired():
            raise StreamingError.no_data(idle_timeout) from None
        raise


async def parse_sse(
    source: AsyncIterable[bytes | str],
    *,
    strict: bool = False,
    idle_timeout: float | None = None,
) -> AsyncIterator[Any]:
    """Yield the decoded JSON payload of each SSE event in *source*.

    The ``[DONE]`` sentinel ends the sequence. Events without data are skipped.

    Args:
        source: Raw response body, in whatever pieces the transport delivers.
        strict: Reject malformed fields and an unterminated final frame.
        idle_timeout: Seconds to wait for the next read before giving up.

    Raises:
        StreamingError: On malformed JSON, a provider error event, an idle
            timeout or (strict mode) an unterminated stream.
    """
    parser = SSEParser(strict=strict)
    iterator = aiter(source)

    while True:
        try:
            piece = await _next_piece(iterator, idle_timeout)
        except StopAsyncIteration:
            break

        for event in parser.feed(piece):
            if event.is_done:
                return
            if not event.data:
                continue
            payload = event.json()
            _raise_for_error(event, payload)
            yield payload

    for event in parser.flush():
        if event.is_done or not event.data:
            return
        payload = event.json()
        _raise_for_error(event, payload)
        yield payload
