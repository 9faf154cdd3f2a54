"""Tool definitions.

A Tool pairs a name, a description and an ObjectSchema for its arguments
with an optional handler. A Tool without a handler is a declaration only:
it can be exported to a provider but not executed.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from aisdk.errors import (
    AIError,
    ArgumentValidationError,
    InputValidationError,
    ReturnValidationError,
    SchemaDerivationError,
    ToolExecutionError,
)
from aisdk.schema.annotations import Description
from aisdk.schema.base import Schema, ValidationResult
from aisdk.schema.derive import MISSING, FieldSpec, SchemaDeriver
from aisdk.schema.types import ObjectSchema

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Any]

TOOL_MARKER = "__aisdk_tool__"

# Matches "name: text" / "name (type): text" entries of a Google-style Args section
_ARG_LINE_RE = re.compile(r"^\s{2,}(\w+)\s*(?:\([^)]*\))?\s*:\s*(.+)$")


@dataclass(frozen=True)
class ToolMarker:
    """Attached to functions decorated with ``@tool``."""

    name: str | None = None
    description: str | None = None


def tool(
    fn: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Any:
    """Mark a function or method as a tool.

    The function is returned unchanged; build the Tool with
    ``Tool.from_function`` or register a whole object with
    ``ToolRegistry.register_object``. Usable bare (``@tool``) or with
    overrides (``@tool(name="lookup")``).
    """

    def mark(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(func, TOOL_MARKER, ToolMarker(name, description))
        return func

    if fn is not None:
        return mark(fn)
    return mark


def _docstring_parts(fn: Callable[..., Any]) -> tuple[str, dict[str, str]]:
    """Return (summary line, {param: description}) from a Google-style docstring."""
    doc = inspect.getdoc(fn) or ""
    lines = doc.splitlines()
    summary = lines[0].strip() if lines else ""

    params: dict[str, str] = {}
    in_args = False
    for line in lines:
        stripped = line.strip()
        if stripped in ("Args:", "Arguments:", "Parameters:"):
            in_args = True
            continue
        if in_args:
            if stripped and not line.startswith(" "):
                break
            match = _ARG_LINE_RE.match(line)
            if match:
                params[match.group(1)] = match.group(2).strip()
    return summary, params


class Tool:
    """A named, schema-described capability the model may call."""

    def __init__(
        self,
        name: str,
        description: str,
        parameters: ObjectSchema | None = None,
        handler: Handler | None = None,
        return_schema: Schema | None = None,
    ) -> None:
        if not name:
            raise InputValidationError.required_parameter("name")
        if parameters is None:
            parameters = ObjectSchema()
        if not isinstance(parameters, ObjectSchema):
            raise InputValidationError.invalid_parameter(
                "parameters", f"tool parameters must be an ObjectSchema, got {type(parameters).__name__}"
            )
        self.name = name
        self.description = description
        self.parameters = parameters
        self.handler = handler
        self.return_schema = return_schema

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, executable={self.is_executable})"

    @property
    def is_executable(self) -> bool:
        return self.handler is not None

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    # ── Execution ─────────────────────────────────────────────

    def check_arguments(self, arguments: dict[str, Any]) -> ValidationResult:
        """Validate *arguments* without running the handler."""
        return self.parameters.validate(arguments)

    async def execute(self, arguments: dict[str, Any], *, in_thread: bool = False) -> Any:
        """Validate arguments, run the handler and validate its return value.

        Args:
            arguments: Decoded tool arguments.
            in_thread: Run a synchronous handler in a worker thread so an
                enclosing ``asyncio.wait_for`` can give up on it.

        Returns:
            The handler's return value.

        Raises:
            ToolExecutionError: If the tool has no handler or the handler raises.
            ArgumentValidationError: If *arguments* fail the parameter schema.
            ReturnValidationError: If the output fails ``return_schema``.
        """
        if self.handler is None:
            raise ToolExecutionError.not_executable(self.name)

        check = self.check_arguments(arguments)
        if not check.is_valid:
            raise ArgumentValidationError(self.name, arguments, check.errors)

        try:
            if in_thread and not self.is_async:
                output = await asyncio.to_thread(self.handler, arguments)
            else:
                output = self.handler(arguments)
            if inspect.isawaitable(output):
                output = await output
        except AIError:
            raise
        except Exception as exc:
            raise ToolExecutionError.from_exception(self.name, arguments, exc) from exc

        if self.return_schema is not None:
            returned = self.return_schema.validate(output)
            if not returned.is_valid:
                raise ReturnValidationError(self.name, arguments, output, returned.errors)
        return output

    # ── Export ────────────────────────────────────────────────

    def definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.to_wire_schema(),
        }

    def to_provider_format(self, provider: str = "openai") -> dict[str, Any]:
        """Render the tool definition in a vendor's format.

        ``gemini``/``google`` get the bare definition, ``anthropic``/``claude``
        get ``input_schema``; every other provider gets the OpenAI function
        format. A ``provider/model`` string is accepted.
        """
        key = provider.split("/", 1)[0].lower()
        if key in ("gemini", "google"):
            return self.definition()
        if key in ("anthropic", "claude"):
            return {
                "name": self.name,
                "description": self.description,
                "input_schema": self.parameters.to_wire_schema(),
            }
        return {"type": "function", "function": self.definition()}

    # ── Construction from functions ───────────────────────────

    @classmethod
    def from_function(
        cls,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        return_schema: Schema | None = None,
    ) -> Tool:
        """Build a Tool whose parameters come from *fn*'s signature.

        Parameters with a default value are optional. The description
        defaults to the first docstring line, and ``Args:`` entries become
        parameter descriptions.

        Raises:
            SchemaDerivationError: If a parameter has no usable annotation.
        """
        marker: ToolMarker = getattr(fn, TOOL_MARKER, None) or ToolMarker()
        summary, param_docs = _docstring_parts(fn)

        try:
            hints = typing.get_type_hints(fn, include_extras=True)
        except (NameError, TypeError) as exc:
            raise SchemaDerivationError(
                f"Cannot resolve annotations of {fn.__qualname__}: {exc}"
            ) from exc

        specs: list[FieldSpec] = []
        optional: set[str] = set()
        for param in inspect.signature(fn).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.name in ("self", "cls"):
                continue
            metadata = (Description(param_docs[param.name]),) if param.name in param_docs else ()
            default = MISSING if param.default is param.empty else param.default
            if default is not MISSING:
                optional.add(param.name)
            specs.append(
                FieldSpec(param.name, hints.get(param.name, param.empty), default, metadata)
            )

        schema = SchemaDeriver().derive_fields(specs, owner=fn.__name__)
        for param_name in optional:
            schema = schema.with_property(param_name, schema.properties[param_name].as_optional())

        if inspect.iscoroutinefunction(fn):

            async def handler(arguments: dict[str, Any]) -> Any:
                return await fn(**arguments)

        else:

            def handler(arguments: dict[str, Any]) -> Any:
                return fn(**arguments)

        return cls(
            name or marker.name or fn.__name__,
            description or marker.description or summary,
            schema,
            handler,
            return_schema,
        )
