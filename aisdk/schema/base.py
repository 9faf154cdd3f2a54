"""Base Schema type and validation result.

A Schema both validates runtime values and serializes itself to a JSON
Schema (draft-07 style) wire document. Schemas are frozen dataclasses: the
fluent modifiers below return modified copies, so one schema instance can be
shared between several object definitions without aliasing.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from aisdk.errors import SchemaValidationError, ValidationIssue

if TYPE_CHECKING:
    from aisdk.schema.types import (
        ArraySchema,
        BooleanSchema,
        EnumSchema,
        IntegerSchema,
        NullableSchema,
        NumberSchema,
        ObjectSchema,
        StringSchema,
        UnionSchema,
    )

ROOT_PATH = "$"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value: ``errors`` is empty iff ``is_valid``."""

    is_valid: bool
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(True)

    @classmethod
    def invalid(cls, issues: Iterable[ValidationIssue]) -> ValidationResult:
        collected = tuple(issues)
        if not collected:
            raise ValueError("An invalid result needs at least one issue")
        return cls(False, collected)

    @classmethod
    def from_issues(cls, issues: Sequence[ValidationIssue]) -> ValidationResult:
        return cls.invalid(issues) if issues else cls.valid()

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True, kw_only=True)
class Schema(ABC):
    """Abstract base for every schema variant."""

    description: str | None = None
    default: Any = None
    optional: bool = False

    # ── Contract ──────────────────────────────────────────────

    @abstractmethod
    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        """Return the issues found for *value*, located under *path*."""

    @abstractmethod
    def _wire(self) -> dict[str, Any]:
        """Variant-specific wire keys (without description/default)."""

    def validate(self, value: Any) -> ValidationResult:
        return ValidationResult.from_issues(self.check(value, ROOT_PATH))

    def to_wire_schema(self) -> dict[str, Any]:
        """Serialize to a JSON-Schema-like document; unset keys are omitted."""
        document = self._wire()
        if self.description:
            document["description"] = self.description
        if self.default is not None:
            document["default"] = self.default
        return document

    # ── Fluent modifiers (copy-on-write) ──────────────────────

    def describe(self, description: str) -> Self:
        return dataclasses.replace(self, description=description)

    def with_default(self, value: Any) -> Self:
        return dataclasses.replace(self, default=value)

    def as_optional(self) -> Self:
        return dataclasses.replace(self, optional=True)

    def as_required(self) -> Self:
        return dataclasses.replace(self, optional=False)

    def replace(self, **changes: Any) -> Self:
        """Copy with arbitrary constraint changes, e.g. ``s.replace(max_length=5)``."""
        return dataclasses.replace(self, **changes)

    @property
    def is_optional(self) -> bool:
        return self.optional

    # ── Factories ─────────────────────────────────────────────

    @staticmethod
    def string(**constraints: Any) -> StringSchema:
        from aisdk.schema.types import StringSchema

        return StringSchema(**constraints)

    @staticmethod
    def number(**constraints: Any) -> NumberSchema:
        from aisdk.schema.types import NumberSchema

        return NumberSchema(**constraints)

    @staticmethod
    def integer(**constraints: Any) -> IntegerSchema:
        from aisdk.schema.types import IntegerSchema

        return IntegerSchema(**constraints)

    @staticmethod
    def boolean(**options: Any) -> BooleanSchema:
        from aisdk.schema.types import BooleanSchema

        return BooleanSchema(**options)

    @staticmethod
    def array(items: Schema, **constraints: Any) -> ArraySchema:
        from aisdk.schema.types import ArraySchema

        return ArraySchema(items, **constraints)

    @staticmethod
    def object(properties: Mapping[str, Schema], **options: Any) -> ObjectSchema:
        from aisdk.schema.types import ObjectSchema

        return ObjectSchema(properties, **options)

    @staticmethod
    def enum(values: Iterable[Any], **options: Any) -> EnumSchema:
        from aisdk.schema.types import EnumSchema

        return EnumSchema(tuple(values), **options)

    @staticmethod
    def nullable(inner: Schema, **options: Any) -> NullableSchema:
        from aisdk.schema.types import NullableSchema

        return NullableSchema(inner, **options)

    @staticmethod
    def union(candidates: Iterable[Schema], **options: Any) -> UnionSchema:
        from aisdk.schema.types import UnionSchema

        return UnionSchema(tuple(candidates), **options)

    @staticmethod
    def from_type(cls: type) -> ObjectSchema:
        """Derive an object schema from a dataclass, pydantic model or annotated class."""
        from aisdk.schema.derive import derive

        return derive(cls)


def validate_or_raise(schema: Schema, value: Any, name: str | None = None) -> Any:
    """Validate *value* and return it unchanged, or raise SchemaValidationError."""
    result = schema.validate(value)
    if not result.is_valid:
        raise SchemaValidationError.from_issues(list(result.issues), name)
    return value
