"""Best-effort parsing of incomplete JSON text.

While an object streams in, its text is usually cut mid-value. We close any
open string and containers and, if that still does not parse, back off to
the previous structural boundary (``,``, ``:``, ``{``, ``[``) and try again.
The result is a snapshot of everything complete so far.
"""

from __future__ import annotations

import json
from typing import Any

_OPENERS = {"{": "}", "[": "]"}


def _scan(text: str) -> tuple[list[str], bool, bool, list[int]]:
    """Return (closers needed, inside string, pending escape, boundary offsets)."""
    closers: list[str] = []
    boundaries: list[int] = []
    in_string = escape = False
    for index, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            closers.append(_OPENERS[ch])
            boundaries.append(index + 1)
        elif ch in "}]":
            if closers:
                closers.pop()
        elif ch in ",:":
            boundaries.append(index)
    return closers, in_string, escape, boundaries


def _close(prefix: str) -> str:
    closers, in_string, escape, _ = _scan(prefix)
    if in_string:
        if escape:
            prefix = prefix[:-1]
        prefix += '"'
    else:
        prefix = prefix.rstrip().rstrip(",").rstrip()
    return prefix + "".join(reversed(closers))


def parse_partial_json(text: str) -> Any:
    """Parse *text*, repairing truncation; None when nothing usable is there."""
    text = text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    _, _, _, boundaries = _scan(text)
    for cut in [len(text), *reversed(boundaries)]:
        try:
            return json.loads(_close(text[:cut]))
        except json.JSONDecodeError:
            continue
    return None
