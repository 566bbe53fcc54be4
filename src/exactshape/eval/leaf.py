"""
Leaf matching for primitive shapes.

Rules:
- literal vs literal: same base kind and equal value (NaN equals NaN)
- literal vs plain kind: the literal's base kind must equal that kind
- plain kind vs literal: never (a wide kind is not one of its values)
- opaque vs opaque: same marker name only
- anything else: kind equality
"""

from __future__ import annotations

import math

from ..types import Kind, Primitive


def match_leaf(candidate: Primitive, expected: Primitive) -> bool:
    match (candidate.kind, expected.kind):
        case (Kind.LITERAL, Kind.LITERAL):
            return candidate.base is expected.base and _same_value(candidate.value, expected.value)
        case (Kind.LITERAL, _):
            return candidate.base is expected.kind
        case (_, Kind.LITERAL):
            return False
        case (Kind.OPAQUE, Kind.OPAQUE):
            return candidate.value == expected.value
        case (left, right):
            return left is right


def _same_value(left: object, right: object) -> bool:
    if isinstance(left, float) and isinstance(right, float) and math.isnan(left):
        return math.isnan(right)

    return left == right


def base_kind(prim: Primitive) -> Kind:
    """The non-literal kind a primitive belongs to."""
    if prim.kind is Kind.LITERAL and prim.base is not None:
        return prim.base

    return prim.kind
