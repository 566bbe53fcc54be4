"""
Assertion helpers built on the exact-shape validator.

Every helper takes an optional ``message_or_error``: an exception instance is
raised as-is, a string replaces the default message.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import is_dataclass
from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from .eval.common import Options
from .eval.leaf import match_leaf
from .eval.match import explain_match
from .infer import shape_of
from .lower import Definition, ShapeEnv, Show, lower_program
from .parser_rd import parse_source
from .types import (
    PRIMITIVES,
    Kind,
    MatchReport,
    Primitive,
    ShapeAssertionError,
    ShapeConstructionError,
    ShapeMismatchError,
    ShapeNode,
    Verdict,
    is_shape_node,
)

T = TypeVar("T")

MessageOrError = Optional[Union[str, BaseException]]

NOT_SUBTYPE_MESSAGE = "candidate does not conform to expected shape"
EXTRA_PROPERTIES_MESSAGE = "candidate has properties not present in expected shape"


def create_error(message_or_error: MessageOrError, default_message: str) -> BaseException:
    if isinstance(message_or_error, BaseException):
        return message_or_error

    return ShapeAssertionError(message_or_error if message_or_error is not None else default_message)


# ---------- plain predicates ----------

def assert_(condition: object, message_or_error: MessageOrError = None) -> None:
    if not condition:
        raise create_error(message_or_error, "Assertion failed")


assert_condition = assert_


def assert_not_none(value: Optional[T], message_or_error: MessageOrError = None) -> None:
    if value is None:
        raise create_error(message_or_error, "Value is None")


def asserted(value: Optional[T], message_or_error: MessageOrError = None) -> T:
    assert_not_none(value, message_or_error)
    return value  # type: ignore[return-value]


def _leaf_of(value: object) -> Optional[Primitive]:
    if isinstance(value, (Mapping, list, tuple)) or (is_dataclass(value) and not isinstance(value, type)):
        return None

    shape = shape_of(value, literal=False)
    return shape if isinstance(shape, Primitive) else None


def type_name(value: object) -> str:
    """Kind name of *value* as the shape vocabulary spells it."""
    leaf = _leaf_of(value)

    if leaf is None:
        if isinstance(value, list):
            return "array"
        if isinstance(value, tuple):
            return "tuple"
        return "object"

    if leaf.kind is Kind.OPAQUE:
        return type(value).__name__

    return repr(leaf)


def _is_kind(value: object, kind: str) -> bool:
    leaf = _leaf_of(value)
    return leaf is not None and match_leaf(leaf, PRIMITIVES[kind])


def _require_kind(value: object, kind: str, message_or_error: MessageOrError) -> None:
    if not _is_kind(value, kind):
        raise create_error(message_or_error, f"Expected {kind}, got {type_name(value)}")


def assert_string(value: object, message_or_error: MessageOrError = None) -> None:
    _require_kind(value, "string", message_or_error)


def assert_number(value: object, message_or_error: MessageOrError = None) -> None:
    _require_kind(value, "number", message_or_error)


def assert_boolean(value: object, message_or_error: MessageOrError = None) -> None:
    _require_kind(value, "boolean", message_or_error)


def assert_function(value: object, message_or_error: MessageOrError = None) -> None:
    _require_kind(value, "function", message_or_error)


def assert_object(value: object, message_or_error: MessageOrError = None) -> None:
    if not isinstance(value, Mapping):
        raise create_error(message_or_error, f"Expected object, got {type_name(value)}")


def assert_array(value: object, message_or_error: MessageOrError = None) -> None:
    if not isinstance(value, list):
        raise create_error(message_or_error, f"Expected array, got {type_name(value)}")


def assert_date(value: object, message_or_error: MessageOrError = None) -> None:
    if not isinstance(value, date):
        raise create_error(message_or_error, f"Expected date, got {type_name(value)}")


def asserted_string(value: object, message_or_error: MessageOrError = None) -> str:
    assert_string(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_number(value: object, message_or_error: MessageOrError = None) -> Union[int, float]:
    assert_number(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_boolean(value: object, message_or_error: MessageOrError = None) -> bool:
    assert_boolean(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_function(value: object, message_or_error: MessageOrError = None) -> Callable[..., Any]:
    assert_function(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_object(value: object, message_or_error: MessageOrError = None) -> Mapping:
    assert_object(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_array(value: object, message_or_error: MessageOrError = None) -> list:
    assert_array(value, message_or_error)
    return value  # type: ignore[return-value]


def asserted_date(value: object, message_or_error: MessageOrError = None) -> date:
    assert_date(value, message_or_error)
    return value  # type: ignore[return-value]


def assert_never(value: object, message_or_error: MessageOrError = None) -> None:
    raise create_error(message_or_error, f"Unhandled value: {value!r}")


def assert_one_of(value: object, allowed: Sequence[object], message_or_error: MessageOrError = None) -> None:
    if value not in allowed:
        listed = ", ".join(str(v) for v in allowed)
        raise create_error(message_or_error, f'Value "{value}" is not one of the allowed values: [{listed}]')


def asserted_one_of(value: object, allowed: Sequence[T], message_or_error: MessageOrError = None) -> T:
    assert_one_of(value, allowed, message_or_error)
    return value  # type: ignore[return-value]


def array_includes(seq: Iterable[object], value: object) -> bool:
    return value in list(seq)


# ---------- mapping helpers ----------

def object_keys(obj: Mapping) -> List[str]:
    return list(obj.keys())


def object_get(obj: Mapping, key: object, default: object = None) -> object:
    return obj[key] if key in obj else default


def asserted_key_of(obj: Mapping, key: object, message_or_error: MessageOrError = None) -> object:
    if key not in obj:
        raise create_error(message_or_error, f'Key "{key}" is not a valid key of the object')

    return key


def asserted_property(obj: Mapping, key: object, message_or_error: MessageOrError = None) -> object:
    return obj[asserted_key_of(obj, key, message_or_error)]


def assert_exhaustive_keys(obj: Mapping, keys: Iterable[object], message_or_error: MessageOrError = None) -> None:
    """*keys* must name every key of *obj* and nothing else."""
    listed = list(keys)
    missing = [k for k in obj if k not in listed]
    unknown = [k for k in listed if k not in obj]

    if not missing and not unknown:
        return

    parts = []
    if missing:
        parts.append("missing " + ", ".join(repr(k) for k in missing))
    if unknown:
        parts.append("unknown " + ", ".join(repr(k) for k in unknown))

    raise create_error(message_or_error, "Key list is not exhaustive: " + "; ".join(parts))


def assert_empty(obj: Mapping, message_or_error: MessageOrError = None) -> None:
    if obj:
        keys = ", ".join(repr(k) for k in obj)
        raise create_error(message_or_error, f"Expected an empty object, found keys {keys}")


# ---------- shape assertions ----------

def parse_shape(text: str) -> ShapeNode:
    """Lower DSL text to a shape.

    The text may start with ``type`` definitions. Its final statement is
    either a bare shape or a definition, whose named shape is returned.
    """
    stmts = lower_program(parse_source(text), ShapeEnv())
    last = stmts[-1] if stmts else None

    match last:
        case Show(shape=shape):
            return shape
        case Definition(ref=ref):
            return ref
        case _:
            raise ShapeConstructionError("Expected the text to end with a shape")


def _coerce_shape(expected: Union[ShapeNode, str]) -> ShapeNode:
    if isinstance(expected, str):
        return parse_shape(expected)

    if not is_shape_node(expected):
        raise ShapeConstructionError(f"Expected a shape or shape text, got {type(expected).__name__}")

    return expected


def _raise_for(report: MatchReport, message_or_error: MessageOrError) -> None:
    if isinstance(message_or_error, BaseException):
        raise message_or_error

    if message_or_error is not None:
        message = message_or_error
    elif report.verdict is Verdict.REJECTED_EXTRA_PROPERTIES:
        message = EXTRA_PROPERTIES_MESSAGE
    else:
        message = NOT_SUBTYPE_MESSAGE

    lines = report.lines()
    if lines:
        message = message + "\n" + "\n".join(f"  {line}" for line in lines)

    raise ShapeMismatchError(message, report)


def assert_shape(
    candidate: Union[ShapeNode, str],
    expected: Union[ShapeNode, str],
    message_or_error: MessageOrError = None,
    options: Optional[Options] = None,
) -> None:
    report = explain_match(_coerce_shape(candidate), _coerce_shape(expected), options)

    if not report.ok:
        _raise_for(report, message_or_error)


def assert_extends_exact(value: object, expected: Union[ShapeNode, str], message_or_error: MessageOrError = None) -> None:
    """The shape of *value* must match *expected* with no extra properties anywhere."""
    assert_shape(shape_of(value), expected, message_or_error)


def assert_extends(value: object, expected: Union[ShapeNode, str], message_or_error: MessageOrError = None) -> None:
    """Like assert_extends_exact, but extra properties are allowed."""
    assert_shape(shape_of(value), expected, message_or_error, Options(exact=False))


def assert_same_shape(
    left: Union[ShapeNode, str],
    right: Union[ShapeNode, str],
    message_or_error: MessageOrError = None,
) -> None:
    """Both shapes must exactly match each other."""
    left_node, right_node = _coerce_shape(left), _coerce_shape(right)
    assert_shape(left_node, right_node, message_or_error)
    assert_shape(right_node, left_node, message_or_error)
