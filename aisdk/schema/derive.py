"""Derive ObjectSchemas from host structures.

Host introspection happens in one place, ``describe_type``, which turns a
dataclass, a pydantic model or a plain annotated class into an ordered list
of ``FieldSpec``. ``SchemaDeriver`` then maps each field's type to a Schema
through a small type registry and applies ``Annotated`` metadata markers.
"""

from __future__ import annotations

import dataclasses
import enum
import inspect
import logging
import types
import typing
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel

from aisdk.errors import SchemaDerivationError
from aisdk.schema.annotations import (
    ArrayItems,
    Description,
    Format,
    Maximum,
    Minimum,
    Optional,
)
from aisdk.schema.base import Schema
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

logger = logging.getLogger(__name__)

MISSING: Any = dataclasses.MISSING

_NONE_TYPE = type(None)


@dataclass(frozen=True)
class FieldSpec:
    """One field of a structural type, independent of how it was declared."""

    name: str
    type: Any
    default: Any = MISSING
    metadata: tuple[Any, ...] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


# ── Host introspection ────────────────────────────────────────


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        raise SchemaDerivationError(
            f"Cannot resolve type annotations of {cls.__name__}: {exc}"
        ) from exc


def is_structural(tp: Any) -> bool:
    """True for classes the deriver can turn into an ObjectSchema."""
    if not isinstance(tp, type):
        return False
    if issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp):
        return True
    return bool(inspect.get_annotations(tp))


def describe_type(cls: type) -> list[FieldSpec]:
    """Return the ordered fields of *cls*.

    Raises:
        SchemaDerivationError: If *cls* is not a structural type or a field
            annotation cannot be resolved.
    """
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        specs = []
        for name, info in cls.model_fields.items():
            metadata = list(info.metadata)
            if info.description:
                metadata.append(Description(info.description))
            default = MISSING if info.is_required() else info.get_default(
                call_default_factory=True
            )
            specs.append(FieldSpec(name, info.annotation, default, tuple(metadata)))
        return specs

    if dataclasses.is_dataclass(cls) and isinstance(cls, type):
        hints = _type_hints(cls)
        specs = []
        for f in dataclasses.fields(cls):
            if f.default is not dataclasses.MISSING:
                default = f.default
            elif f.default_factory is not dataclasses.MISSING:
                default = f.default_factory()
            else:
                default = MISSING
            specs.append(FieldSpec(f.name, hints.get(f.name, f.type), default))
        return specs

    if is_structural(cls):
        hints = _type_hints(cls)
        return [
            FieldSpec(name, hint, cls.__dict__.get(name, MISSING))
            for name, hint in hints.items()
            if get_origin(hint) is not typing.ClassVar and not name.startswith("_")
        ]

    raise SchemaDerivationError(
        f"Cannot derive a schema from {cls!r}: expected a dataclass, "
        "a pydantic model or an annotated class"
    )


def type_description(cls: type) -> str | None:
    """First paragraph of the class's own docstring, if it wrote one."""
    doc = cls.__dict__.get("__doc__")
    if not doc:
        return None
    # dataclasses synthesize "Name(field: type, ...)" when no docstring exists
    if dataclasses.is_dataclass(cls) and doc.startswith(f"{cls.__name__}("):
        return None
    return inspect.cleandoc(doc).split("\n\n", 1)[0].replace("\n", " ")


def _split_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    if get_origin(tp) is Annotated:
        return tp.__origin__, tuple(tp.__metadata__)
    return tp, ()


def _json_default(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


# ── Deriver ───────────────────────────────────────────────────


class SchemaDeriver:
    """Maps host types to Schemas.

    The registry is consulted along the MRO, so registering a base class
    covers its subclasses. Nested structural types recurse; a type that
    reaches itself again raises instead of recursing forever.
    """

    def __init__(self) -> None:
        self._registry: dict[type, Callable[[], Schema]] = {
            str: StringSchema,
            bool: BooleanSchema,
            int: IntegerSchema,
            float: NumberSchema,
        }
        self._in_progress: list[type] = []

    def register(self, py_type: type, factory: Callable[[], Schema]) -> None:
        self._registry[py_type] = factory

    def derive(self, cls: type) -> ObjectSchema:
        if cls in self._in_progress:
            cycle = " -> ".join(c.__name__ for c in [*self._in_progress, cls])
            raise SchemaDerivationError(f"Self-referential type detected: {cycle}")
        self._in_progress.append(cls)
        try:
            return self.derive_fields(
                describe_type(cls), description=type_description(cls), owner=cls.__name__
            )
        finally:
            self._in_progress.pop()

    def derive_fields(
        self,
        fields: Sequence[FieldSpec],
        description: str | None = None,
        owner: str = "object",
    ) -> ObjectSchema:
        properties = {spec.name: self._field_schema(spec, owner) for spec in fields}
        return ObjectSchema(properties, description=description)

    def _field_schema(self, spec: FieldSpec, owner: str) -> Schema:
        base_type, extras = _split_annotated(spec.type)
        metadata = (*extras, *spec.metadata)
        schema = self.schema_for(base_type, f"{owner}.{spec.name}", metadata)
        schema = apply_metadata(schema, metadata)

        if spec.has_default and spec.default is not None:
            schema = schema.with_default(_json_default(spec.default))
        if isinstance(schema, NullableSchema) and spec.has_default and spec.default is None:
            schema = schema.as_optional()
        return schema

    def schema_for(
        self, tp: Any, where: str = "value", metadata: tuple[Any, ...] = ()
    ) -> Schema:
        """Build the Schema for a single type expression."""
        if isinstance(tp, Schema):
            return tp

        tp, extras = _split_annotated(tp)
        if extras:
            return apply_metadata(self.schema_for(tp, where, extras), extras)

        if tp is Any or tp is None or tp is _NONE_TYPE or tp is inspect.Parameter.empty:
            raise SchemaDerivationError(f"Field '{where}' has no usable type annotation")

        origin = get_origin(tp)
        args = get_args(tp)
        array_items = next((m for m in metadata if isinstance(m, ArrayItems)), None)

        if origin is Union or origin is types.UnionType:
            members = [a for a in args if a is not _NONE_TYPE]
            if len(members) == 1:
                inner = self.schema_for(members[0], where, metadata)
            else:
                inner = UnionSchema(tuple(self.schema_for(a, where) for a in members))
            if len(members) < len(args):
                return NullableSchema(inner)
            return inner

        if origin is Literal:
            return EnumSchema(args)

        if origin in (list, set, frozenset) or origin is Sequence:
            return self._array(self.schema_for(args[0], f"{where}[]"), array_items)

        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return self._array(self.schema_for(args[0], f"{where}[]"), array_items)
            raise SchemaDerivationError(
                f"Field '{where}': only homogeneous tuple[X, ...] is supported"
            )

        if tp in (list, tuple, set, frozenset):
            if array_items is None:
                raise SchemaDerivationError(
                    f"Array field '{where}' needs an ArrayItems(...) annotation"
                )
            return self._array(self.schema_for(array_items.items, f"{where}[]"), array_items)

        if origin in (dict, Mapping) or tp in (dict, Mapping):
            return ObjectSchema(additional_properties=True)

        if isinstance(tp, type):
            if issubclass(tp, enum.Enum):
                return EnumSchema(tuple(member.value for member in tp))
            for klass in tp.__mro__:
                factory = self._registry.get(klass)
                if factory is not None:
                    return factory()
            if is_structural(tp):
                return self.derive(tp)

        raise SchemaDerivationError(f"Field '{where}' has unsupported type {tp!r}")

    @staticmethod
    def _array(items: Schema, array_items: ArrayItems | None) -> ArraySchema:
        if array_items is None:
            return ArraySchema(items)
        return ArraySchema(
            items, min_items=array_items.min_items, max_items=array_items.max_items
        )


def _on_variant(schema: Schema, variant: type[Schema], **changes: Any) -> Schema:
    """Apply *changes* to *schema*, looking through a Nullable wrapper."""
    if isinstance(schema, variant):
        return schema.replace(**changes)
    if isinstance(schema, NullableSchema) and isinstance(schema.inner, variant):
        return schema.replace(inner=schema.inner.replace(**changes))
    logger.debug("Ignoring %s metadata on %s", changes, type(schema).__name__)
    return schema


def apply_metadata(schema: Schema, metadata: tuple[Any, ...]) -> Schema:
    """Apply Annotated markers; unknown markers are ignored."""
    for marker in metadata:
        if isinstance(marker, Description):
            schema = schema.describe(marker.text)
        elif isinstance(marker, Format):
            schema = _on_variant(schema, StringSchema, format=marker.value)
        elif isinstance(marker, Minimum):
            schema = _on_variant(schema, NumberSchema, minimum=marker.value)
        elif isinstance(marker, Maximum):
            schema = _on_variant(schema, NumberSchema, maximum=marker.value)
        elif isinstance(marker, Optional):
            schema = schema.as_optional()
    return schema


def derive(cls: type) -> ObjectSchema:
    """Derive an ObjectSchema from *cls* with the default type registry."""
    return SchemaDeriver().derive(cls)
