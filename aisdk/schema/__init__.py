"""Schema model: validation, wire serialization and derivation."""

from aisdk.schema.annotations import (
    ArrayItems,
    Description,
    Format,
    Maximum,
    Minimum,
    Optional,
)
from aisdk.schema.base import Schema, ValidationResult, validate_or_raise
from aisdk.schema.derive import FieldSpec, SchemaDeriver, derive, describe_type
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

__all__ = [
    "ArrayItems",
    "ArraySchema",
    "BooleanSchema",
    "Description",
    "EnumSchema",
    "FieldSpec",
    "Format",
    "IntegerSchema",
    "Maximum",
    "Minimum",
    "NullableSchema",
    "NumberSchema",
    "ObjectSchema",
    "Optional",
    "Schema",
    "SchemaDeriver",
    "StringSchema",
    "UnionSchema",
    "ValidationResult",
    "derive",
    "describe_type",
]
