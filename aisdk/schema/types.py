"""Concrete schema variants.

Error messages are part of the public contract: callers (and models that
receive them as tool errors) match on them, so keep the wording stable.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel

from aisdk.errors import ValidationIssue
from aisdk.schema.base import ROOT_PATH, Schema

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    """Read dataclass and pydantic instances as their field dicts."""
    if isinstance(value, Mapping):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return None


def _prefixed(issues: list[ValidationIssue], prefix: str) -> list[ValidationIssue]:
    return [dataclasses.replace(i, message=prefix + i.message) for i in issues]


# ── Scalars ───────────────────────────────────────────────────


@dataclass(frozen=True, kw_only=True)
class StringSchema(Schema):
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        if not isinstance(value, str):
            return [ValidationIssue(path, "Value must be a string", value)]
        issues = []
        if self.min_length is not None and len(value) < self.min_length:
            issues.append(
                ValidationIssue(
                    path, f"String length must be at least {self.min_length}", value
                )
            )
        if self.max_length is not None and len(value) > self.max_length:
            issues.append(
                ValidationIssue(
                    path, f"String length must be at most {self.max_length}", value
                )
            )
        if self.pattern is not None and re.search(self.pattern, value) is None:
            issues.append(
                ValidationIssue(path, f"String does not match pattern {self.pattern}", value)
            )
        return issues

    def _wire(self) -> dict[str, Any]:
        document: dict[str, Any] = {"type": "string"}
        if self.min_length is not None:
            document["minLength"] = self.min_length
        if self.max_length is not None:
            document["maxLength"] = self.max_length
        if self.pattern is not None:
            document["pattern"] = self.pattern
        if self.format is not None:
            document["format"] = self.format
        return document


@dataclass(frozen=True, kw_only=True)
class NumberSchema(Schema):
    minimum: float | None = None
    maximum: float | None = None
    multiple_of: float | None = None

    wire_type: ClassVar[str] = "number"

    def __post_init__(self) -> None:
        if self.multiple_of is not None and self.multiple_of <= 0:
            raise ValueError(f"multiple_of must be positive, got {self.multiple_of}")

    def _type_issue(self, value: Any, path: str) -> ValidationIssue | None:
        if not _is_number(value):
            return ValidationIssue(path, "Value must be a number", value)
        return None

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        type_issue = self._type_issue(value, path)
        if type_issue is not None:
            return [type_issue]
        issues = []
        if self.minimum is not None and value < self.minimum:
            issues.append(
                ValidationIssue(path, f"Value must be at least {self.minimum}", value)
            )
        if self.maximum is not None and value > self.maximum:
            issues.append(
                ValidationIssue(path, f"Value must be at most {self.maximum}", value)
            )
        # No epsilon: 0.3 is not a multiple of 0.1 in binary floating point.
        if self.multiple_of is not None and math.fmod(value, self.multiple_of) != 0:
            issues.append(
                ValidationIssue(
                    path, f"Value must be a multiple of {self.multiple_of}", value
                )
            )
        return issues

    def _wire(self) -> dict[str, Any]:
        document: dict[str, Any] = {"type": self.wire_type}
        if self.minimum is not None:
            document["minimum"] = self.minimum
        if self.maximum is not None:
            document["maximum"] = self.maximum
        if self.multiple_of is not None:
            document["multipleOf"] = self.multiple_of
        return document


@dataclass(frozen=True, kw_only=True)
class IntegerSchema(NumberSchema):
    minimum: int | None = None
    maximum: int | None = None
    multiple_of: int | None = None

    wire_type: ClassVar[str] = "integer"

    def _type_issue(self, value: Any, path: str) -> ValidationIssue | None:
        if not isinstance(value, int) or isinstance(value, bool):
            return ValidationIssue(path, "Value must be an integer", value)
        return None


@dataclass(frozen=True, kw_only=True)
class BooleanSchema(Schema):
    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        if not isinstance(value, bool):
            return [ValidationIssue(path, "Value must be a boolean", value)]
        return []

    def _wire(self) -> dict[str, Any]:
        return {"type": "boolean"}


# ── Composites ────────────────────────────────────────────────


@dataclass(frozen=True)
class ArraySchema(Schema):
    items: Schema
    min_items: int | None = None
    max_items: int | None = None

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        if not isinstance(value, (list, tuple)):
            return [ValidationIssue(path, "Value must be an array (list)", value)]
        if self.min_items is not None and len(value) < self.min_items:
            return [
                ValidationIssue(
                    path, f"Array must contain at least {self.min_items} items", value
                )
            ]
        if self.max_items is not None and len(value) > self.max_items:
            return [
                ValidationIssue(
                    path, f"Array must contain at most {self.max_items} items", value
                )
            ]
        for index, item in enumerate(value):
            issues = self.items.check(item, f"{path}[{index}]")
            if issues:
                return _prefixed(issues, f"Item at index {index}: ")
        return []

    def _wire(self) -> dict[str, Any]:
        document: dict[str, Any] = {"type": "array", "items": self.items.to_wire_schema()}
        if self.min_items is not None:
            document["minItems"] = self.min_items
        if self.max_items is not None:
            document["maxItems"] = self.max_items
        return document


@dataclass(frozen=True)
class ObjectSchema(Schema):
    properties: Mapping[str, Schema] = field(default_factory=dict)
    additional_properties: bool = False

    def __post_init__(self) -> None:
        # Own an insertion-ordered copy so later edits to the caller's dict
        # cannot leak into this schema.
        object.__setattr__(self, "properties", dict(self.properties))

    @property
    def required(self) -> list[str]:
        return [name for name, schema in self.properties.items() if not schema.optional]

    def with_property(self, name: str, schema: Schema) -> ObjectSchema:
        return dataclasses.replace(self, properties={**self.properties, name: schema})

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        mapping = _as_mapping(value)
        if mapping is None:
            return [ValidationIssue(path, "Value must be an object", value)]
        issues: list[ValidationIssue] = []
        for name, schema in self.properties.items():
            child_path = f"{path}.{name}"
            if name not in mapping:
                if not schema.optional:
                    issues.append(
                        ValidationIssue(child_path, f"Missing required property: {name}")
                    )
                continue
            issues.extend(
                _prefixed(schema.check(mapping[name], child_path), f"Property '{name}': ")
            )
        if not self.additional_properties:
            for key in mapping:
                if key not in self.properties:
                    issues.append(
                        ValidationIssue(
                            f"{path}.{key}", f"Unexpected property: {key}", mapping[key]
                        )
                    )
        return issues

    def _wire(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "type": "object",
            "properties": {
                name: schema.to_wire_schema() for name, schema in self.properties.items()
            },
        }
        required = self.required
        if required:
            document["required"] = required
        document["additionalProperties"] = self.additional_properties
        return document


@dataclass(frozen=True)
class EnumSchema(Schema):
    values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def _contains(self, value: Any) -> bool:
        if isinstance(value, enum.Enum):
            value = value.value
        return any(type(v) is type(value) and v == value for v in self.values)

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        if self._contains(value):
            return []
        allowed = ", ".join(json.dumps(v) for v in self.values)
        return [ValidationIssue(path, f"Value must be one of: {allowed}", value)]

    def _wire(self) -> dict[str, Any]:
        return {"enum": list(self.values)}


@dataclass(frozen=True)
class NullableSchema(Schema):
    inner: Schema

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        if value is None:
            return []
        return self.inner.check(value, path)

    def _wire(self) -> dict[str, Any]:
        inner = self.inner.to_wire_schema()
        wire_type = inner.get("type")
        if wire_type is None:
            return {"anyOf": [inner, {"type": "null"}]}
        types = list(wire_type) if isinstance(wire_type, list) else [wire_type]
        if "null" not in types:
            types.append("null")
        inner["type"] = types
        return inner


@dataclass(frozen=True)
class UnionSchema(Schema):
    candidates: tuple[Schema, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "candidates", tuple(self.candidates))

    def check(self, value: Any, path: str = ROOT_PATH) -> list[ValidationIssue]:
        for candidate in self.candidates:
            issues = candidate.check(value, path)
            if not issues:
                return []
            logger.debug(
                "Union candidate %s rejected value at %s: %s",
                type(candidate).__name__,
                path,
                "; ".join(i.message for i in issues),
            )
        return [
            ValidationIssue(
                path, "Value does not match any of the allowed schemas", value
            )
        ]

    def _wire(self) -> dict[str, Any]:
        return {"anyOf": [c.to_wire_schema() for c in self.candidates]}
