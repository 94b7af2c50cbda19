"""Structural validation of generation output.

A *shape* is either ``str`` or a pydantic model class whose fields are
strings, string lists, nested models or lists of nested models. The same
shape drives both the request schema sent to the model and the check run
on the model's answer.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Type, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

Shape = Union[Type[str], Type[BaseModel]]


@dataclass(frozen=True)
class ValidationFailure:
    """Returned (never raised) when a value does not match its shape."""

    errors: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return "; ".join(self.errors) or "value does not match shape"


@lru_cache(maxsize=None)
def _adapter(shape: Shape) -> TypeAdapter:
    return TypeAdapter(shape)


def _format_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        messages.append(f"{loc}: {err.get('msg', 'invalid')}")
    return messages


def validate(value: Any, shape: Shape) -> Any:
    """Check `value` against `shape`.

    Returns the parsed value (a str or a model instance) on success and a
    ValidationFailure otherwise. Extra object keys are ignored; primitive
    kinds are checked strictly, without coercion.
    """
    if value is None:
        return ValidationFailure(["<root>: value is missing"])
    try:
        return _adapter(shape).validate_python(value, strict=True)
    except ValidationError as exc:
        return ValidationFailure(_format_errors(exc))


# ── Request schema (Gemini OpenAPI subset) ───────────────────────────────

_PRIMITIVES = {
    str: "STRING",
    int: "INTEGER",
    float: "NUMBER",
    bool: "BOOLEAN",
}


def _is_none_type(tp: Any) -> bool:
    return tp is type(None)


def _annotation_schema(annotation: Any) -> Dict[str, Any]:
    origin = get_origin(annotation)

    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        args = [a for a in get_args(annotation) if not _is_none_type(a)]
        if len(args) != 1:
            raise TypeError(f"Unsupported union in shape: {annotation!r}")
        schema = _annotation_schema(args[0])
        schema["nullable"] = True
        return schema

    if origin in (list, List):
        (item,) = get_args(annotation) or (str,)
        return {"type": "ARRAY", "items": _annotation_schema(item)}

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return _model_schema(annotation)

    if annotation in _PRIMITIVES:
        return {"type": _PRIMITIVES[annotation]}

    raise TypeError(f"Unsupported type in shape: {annotation!r}")


def _model_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for name, info in model.model_fields.items():
        prop = _annotation_schema(info.annotation)
        if info.description:
            prop["description"] = info.description
        properties[name] = prop
        if info.is_required():
            required.append(name)

    schema: Dict[str, Any] = {
        "type": "OBJECT",
        "properties": properties,
        "propertyOrdering": list(properties),
    }
    if required:
        schema["required"] = required
    return schema


def response_schema(shape: Shape) -> Dict[str, Any]:
    """Convert a shape into a Gemini ``responseSchema`` dict."""
    return _annotation_schema(shape)
