"""Metadata markers for schema derivation.

Attach them to fields with ``typing.Annotated``::

    @dataclass
    class Weather:
        city: Annotated[str, Description("City name")]
        tags: Annotated[list, ArrayItems(str, max_items=5)]
        days: Annotated[int, Minimum(1), Maximum(14)] = 3
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Description:
    text: str


@dataclass(frozen=True)
class Format:
    """String format hint (``email``, ``date-time``, ``uri``...)."""

    value: str


@dataclass(frozen=True)
class Minimum:
    value: float


@dataclass(frozen=True)
class Maximum:
    value: float


@dataclass(frozen=True)
class Optional:
    """Marks a field optional regardless of its type or default."""


@dataclass(frozen=True)
class ArrayItems:
    """Element type (a host type or a Schema) for bare ``list`` fields."""

    items: Any
    min_items: int | None = None
    max_items: int | None = None
