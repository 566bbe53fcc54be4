from __future__ import annotations

import pytest

from exactshape.eval.leaf import base_kind, match_leaf
from exactshape.types import Kind, Primitive, ShapeConstructionError
from tests.support.harness import (
    BIGINT,
    BOOLEAN,
    FALSE,
    FUNCTION,
    NULL,
    NUMBER,
    STRING,
    SYMBOL,
    TRUE,
    UNDEFINED,
    bigint_literal,
    lit,
    opaque,
)

SCENARIOS = [
    pytest.param(NUMBER, NUMBER, True, id="kind-same"),
    pytest.param(STRING, NUMBER, False, id="kind-different"),
    pytest.param(NULL, UNDEFINED, False, id="null-vs-undefined"),
    pytest.param(SYMBOL, SYMBOL, True, id="symbol-same"),
    pytest.param(FUNCTION, FUNCTION, True, id="function-same"),
    pytest.param(lit(3000), NUMBER, True, id="literal-widens-to-kind"),
    pytest.param(lit("a"), STRING, True, id="string-literal-widens"),
    pytest.param(TRUE, BOOLEAN, True, id="true-widens-to-boolean"),
    pytest.param(bigint_literal(10), BIGINT, True, id="bigint-literal-widens"),
    pytest.param(bigint_literal(10), NUMBER, False, id="bigint-is-not-number"),
    pytest.param(lit(3000), STRING, False, id="literal-wrong-kind"),
    pytest.param(NUMBER, lit(3000), False, id="kind-never-fits-literal"),
    pytest.param(lit(2), lit(2), True, id="literal-same-value"),
    pytest.param(lit(2), lit(3), False, id="literal-other-value"),
    pytest.param(lit(2), lit(2.0), True, id="literal-int-float-equal"),
    pytest.param(lit(float("nan")), lit(float("nan")), True, id="nan-same-literal"),
    pytest.param(lit(float("nan")), lit(1.0), False, id="nan-vs-number-literal"),
    pytest.param(lit(1.0), lit(float("nan")), False, id="number-literal-vs-nan"),
    pytest.param(lit(float("nan")), NUMBER, True, id="nan-widens"),
    pytest.param(opaque("pkg_a.User"), opaque("pkg_b.User"), False, id="opaque-same-name-other-module"),
    pytest.param(lit(1), TRUE, False, id="one-is-not-true"),
    pytest.param(FALSE, lit(0), False, id="false-is-not-zero"),
    pytest.param(bigint_literal(1), lit(1), False, id="bigint-vs-number-literal"),
    pytest.param(opaque("Date"), opaque("Date"), True, id="opaque-same-marker"),
    pytest.param(opaque("Date"), opaque("RegExp"), False, id="opaque-other-marker"),
    pytest.param(opaque("Date"), STRING, False, id="opaque-vs-kind"),
    pytest.param(STRING, opaque("Date"), False, id="kind-vs-opaque"),
]


@pytest.mark.parametrize("candidate, expected, result", SCENARIOS)
def test_match_leaf(candidate: Primitive, expected: Primitive, result: bool) -> None:
    assert match_leaf(candidate, expected) is result


def test_base_kind_of_literal_and_plain_kind() -> None:
    assert base_kind(lit("x")) is Kind.STRING
    assert base_kind(NUMBER) is Kind.NUMBER
    assert base_kind(opaque("Date")) is Kind.OPAQUE


@pytest.mark.parametrize(
    "build",
    [
        pytest.param(lambda: Primitive(Kind.LITERAL, 1, Kind.NULL), id="literal-null-base"),
        pytest.param(lambda: Primitive(Kind.LITERAL, "x", Kind.NUMBER), id="literal-wrong-value"),
        pytest.param(lambda: Primitive(Kind.LITERAL, True, Kind.NUMBER), id="bool-is-not-number-literal"),
        pytest.param(lambda: Primitive(Kind.OPAQUE, ""), id="opaque-empty-name"),
        pytest.param(lambda: Primitive(Kind.STRING, "x"), id="kind-with-value"),
    ],
)
def test_malformed_primitives_are_rejected(build) -> None:
    with pytest.raises(ShapeConstructionError):
        build()


def test_primitive_rendering() -> None:
    assert repr(lit(3)) == "3"
    assert repr(lit(2.0)) == "2"
    assert repr(lit(1.5)) == "1.5"
    assert repr(lit('say "hi"')) == '"say \\"hi\\""'
    assert repr(TRUE) == "true"
    assert repr(bigint_literal(7)) == "7n"
    assert repr(opaque("Date")) == "opaque Date"
    assert repr(UNDEFINED) == "undefined"
