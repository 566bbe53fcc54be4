"""Shapes of live Python values."""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Mapping
from typing import List, Set

from .types import (
    NEVER,
    PRIMITIVES,
    ArrayShape,
    FieldEntry,
    ObjectShape,
    ShapeConstructionError,
    ShapeNode,
    TupleShape,
    UnionShape,
    literal as literal_shape,
    opaque,
)


def shape_of(value: object, literal: bool = True) -> ShapeNode:
    """Describe *value* as a ShapeNode.

    Scalars become literal shapes unless ``literal=False``, in which case they
    widen to their kind. Containers are walked recursively; a container that
    contains itself raises ShapeConstructionError.
    """
    return _infer(value, literal, set())


def _infer(value: object, literal: bool, active: Set[int]) -> ShapeNode:
    if value is None:
        return PRIMITIVES["null"]

    if isinstance(value, (bool, int, float, str)):
        if literal:
            return literal_shape(value)
        return PRIMITIVES[_scalar_kind(value)]

    if inspect.isroutine(value) or inspect.isclass(value):
        return PRIMITIVES["function"]

    if isinstance(value, (Mapping, list, tuple)) or _is_dataclass_instance(value):
        if id(value) in active:
            raise ShapeConstructionError(f"Cannot infer a shape for a self-referencing {type(value).__name__}")

        active.add(id(value))
        try:
            return _infer_container(value, literal, active)
        finally:
            active.discard(id(value))

    if callable(value):
        return PRIMITIVES["function"]

    return opaque(_marker_name(type(value)))


def _infer_container(value: object, literal: bool, active: Set[int]) -> ShapeNode:
    if isinstance(value, Mapping):
        fields = {}

        for key, item in value.items():
            if not isinstance(key, str):
                raise ShapeConstructionError(f"Object keys must be strings, got {key!r}")
            fields[key] = FieldEntry(_infer(item, literal, active))

        return ObjectShape(fields)

    if isinstance(value, list):
        return ArrayShape(_element_shape([_infer(item, literal, active) for item in value]))

    if isinstance(value, tuple):
        return TupleShape(tuple(FieldEntry(_infer(item, literal, active)) for item in value))

    fields = {
        f.name: FieldEntry(_infer(getattr(value, f.name), literal, active))
        for f in dataclasses.fields(value)
    }
    return ObjectShape(fields)


def _element_shape(shapes: List[ShapeNode]) -> ShapeNode:
    distinct: List[ShapeNode] = []

    for shape in shapes:
        if shape not in distinct:
            distinct.append(shape)

    if not distinct:
        return NEVER

    if len(distinct) == 1:
        return distinct[0]

    return UnionShape(tuple(distinct))


def _scalar_kind(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    return "number"


def _is_dataclass_instance(value: object) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _marker_name(cls: type) -> str:
    """Module-qualified class name; builtins stay bare."""
    if cls.__module__ == "builtins":
        return cls.__qualname__

    return f"{cls.__module__}.{cls.__qualname__}"
