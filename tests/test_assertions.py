from __future__ import annotations

from datetime import date, datetime

import pytest

from exactshape import assertions as a
from exactshape.types import ShapeAssertionError, ShapeConstructionError, ShapeMismatchError, ShapeRef
from tests.support.harness import EXTRA, NOT_SUBTYPE, NUMBER, obj


class Marker:
    pass


@pytest.mark.parametrize(
    "value, name",
    [
        pytest.param(None, "null", id="none"),
        pytest.param(1, "number", id="int"),
        pytest.param("x", "string", id="str"),
        pytest.param(False, "boolean", id="bool"),
        pytest.param(len, "function", id="function"),
        pytest.param([1], "array", id="list"),
        pytest.param((1,), "tuple", id="tuple"),
        pytest.param({}, "object", id="dict"),
        pytest.param(date(2020, 1, 1), "date", id="date"),
        pytest.param(Marker(), "Marker", id="instance"),
    ],
)
def test_type_name(value, name: str) -> None:
    assert a.type_name(value) == name


def test_type_name_of_cyclic_container() -> None:
    xs: list = []
    xs.append(xs)
    assert a.type_name(xs) == "array"


KIND_FAILURES = [
    pytest.param(a.assert_string, 1, "Expected string, got number", id="string"),
    pytest.param(a.assert_number, True, "Expected number, got boolean", id="number-rejects-bool"),
    pytest.param(a.assert_number, "1", "Expected number, got string", id="number"),
    pytest.param(a.assert_boolean, 0, "Expected boolean, got number", id="boolean"),
    pytest.param(a.assert_function, "f", "Expected function, got string", id="function"),
    pytest.param(a.assert_object, [], "Expected object, got array", id="object"),
    pytest.param(a.assert_array, (1, 2), "Expected array, got tuple", id="array"),
    pytest.param(a.assert_date, "2020-01-01", "Expected date, got string", id="date"),
]


@pytest.mark.parametrize("check, value, msg", KIND_FAILURES)
def test_kind_assertions_fail(check, value, msg: str) -> None:
    with pytest.raises(ShapeAssertionError) as exc_info:
        check(value)
    assert str(exc_info.value) == msg


@pytest.mark.parametrize(
    "fn, value",
    [
        pytest.param(a.asserted_string, "x", id="string"),
        pytest.param(a.asserted_number, 2.5, id="number"),
        pytest.param(a.asserted_boolean, True, id="boolean"),
        pytest.param(a.asserted_function, print, id="function"),
        pytest.param(a.asserted_object, {"a": 1}, id="object"),
        pytest.param(a.asserted_array, [1], id="array"),
        pytest.param(a.asserted_date, datetime(2020, 1, 1, 12), id="datetime-is-a-date"),
        pytest.param(a.asserted, 0, id="falsy-but-present"),
    ],
)
def test_asserted_helpers_return_value(fn, value) -> None:
    assert fn(value) is value


def test_message_or_error() -> None:
    with pytest.raises(ShapeAssertionError, match="^custom$"):
        a.assert_string(1, "custom")

    boom = ValueError("boom")
    with pytest.raises(ValueError) as exc_info:
        a.assert_(False, boom)
    assert exc_info.value is boom


def test_plain_predicates() -> None:
    a.assert_(1)
    a.assert_condition("non-empty")
    a.assert_not_none(0)

    with pytest.raises(ShapeAssertionError, match="Assertion failed"):
        a.assert_condition(0)
    with pytest.raises(ShapeAssertionError, match="Value is None"):
        a.asserted(None)
    with pytest.raises(ShapeAssertionError, match="Unhandled value: 'x'"):
        a.assert_never("x")


def test_one_of() -> None:
    assert a.asserted_one_of("a", ["a", "b"]) == "a"

    with pytest.raises(ShapeAssertionError) as exc_info:
        a.assert_one_of("c", ["a", "b"])
    assert str(exc_info.value) == 'Value "c" is not one of the allowed values: [a, b]'


def test_mapping_helpers() -> None:
    data = {"a": 1, "b": 2}

    assert a.object_keys(data) == ["a", "b"]
    assert a.object_get(data, "a") == 1
    assert a.object_get(data, "z", 0) == 0
    assert a.array_includes((1, 2), 2)
    assert not a.array_includes(iter([1, 2]), 3)
    assert a.asserted_key_of(data, "b") == "b"
    assert a.asserted_property(data, "b") == 2

    with pytest.raises(ShapeAssertionError) as exc_info:
        a.asserted_property(data, "z")
    assert str(exc_info.value) == 'Key "z" is not a valid key of the object'


def test_exhaustive_keys() -> None:
    a.assert_exhaustive_keys({"a": 1, "b": 2}, ["b", "a"])

    with pytest.raises(ShapeAssertionError) as exc_info:
        a.assert_exhaustive_keys({"a": 1, "b": 2}, ["a", "c"])
    assert str(exc_info.value) == "Key list is not exhaustive: missing 'b'; unknown 'c'"


def test_assert_empty() -> None:
    a.assert_empty({})

    with pytest.raises(ShapeAssertionError) as exc_info:
        a.assert_empty({"a": 1, "b": 2})
    assert str(exc_info.value) == "Expected an empty object, found keys 'a', 'b'"


# Same fixtures the matcher tests use, driven through live values.
EXTENDS_EXACT_CASES = [
    pytest.param({"a": 1, "b": 2}, "{ a: number, b: number }", None, id="obj"),
    pytest.param({"a": 1, "b": 2}, "{ a: number }", EXTRA, id="obj2"),
    pytest.param({"a": 1}, "{ a: number, b: number }", NOT_SUBTYPE, id="obj3"),
    pytest.param({"a": 1, "b": {"c": 3, "d": 4}}, "{ a: number, b: { c: number, d: number } }", None, id="obj4"),
    pytest.param({"a": "hello"}, "{ a: number }", NOT_SUBTYPE, id="obj5"),
    pytest.param({"a": 1, "b": {"c": 3}}, "{ a: number, b: { c: number } | { d: string } }", None, id="obj6"),
    pytest.param({"a": 1, "b": {"c": 2}}, "{ a: number, b: { c: 2 | 3 } }", None, id="obj7"),
    pytest.param({"a": 1, "b": {"c": 4}}, "{ a: number, b: { c: 2 | 3 } }", NOT_SUBTYPE, id="obj8"),
]


@pytest.mark.parametrize("value, text, verdict", EXTENDS_EXACT_CASES)
def test_assert_extends_exact(value, text: str, verdict) -> None:
    if verdict is None:
        a.assert_extends_exact(value, text)
        return

    with pytest.raises(ShapeMismatchError) as exc_info:
        a.assert_extends_exact(value, text)
    assert exc_info.value.verdict is verdict


def test_mismatch_message_lists_paths() -> None:
    with pytest.raises(ShapeMismatchError) as exc_info:
        a.assert_extends_exact({"a": 1, "b": 2}, "{ a: number }")
    assert str(exc_info.value) == (
        "candidate has properties not present in expected shape\n"
        "  $: extra property 'b'"
    )

    with pytest.raises(ShapeMismatchError) as exc_info:
        a.assert_extends_exact({"a": 1}, obj(a=NUMBER, b=NUMBER))
    assert str(exc_info.value) == (
        "candidate does not conform to expected shape\n"
        "  $: missing required property 'b'"
    )


def test_mismatch_with_custom_message_keeps_details() -> None:
    with pytest.raises(ShapeMismatchError) as exc_info:
        a.assert_extends_exact({"a": 1}, "{}", "bad payload")

    assert str(exc_info.value).startswith("bad payload\n  $: extra property 'a'")
    assert exc_info.value.report.verdict is EXTRA


def test_assert_extends_allows_extra_properties() -> None:
    a.assert_extends({"a": 1, "b": {"c": 1, "d": 2}}, "{ a: number, b: { c: number } }")

    with pytest.raises(ShapeMismatchError):
        a.assert_extends({"a": "x", "b": 2}, "{ a: number }")


def test_shape_text_may_carry_definitions() -> None:
    a.assert_extends_exact([{"x": 1}], "type P = { x: number }\nP[]")

    assert a.parse_shape("type P = { x: number }") == ShapeRef("P")

    with pytest.raises(ShapeConstructionError, match="end with a shape"):
        a.parse_shape("1 ~ 2")
    with pytest.raises(ShapeConstructionError, match="end with a shape"):
        a.parse_shape("")


def test_assert_shape_rejects_non_shapes() -> None:
    with pytest.raises(ShapeConstructionError, match="Expected a shape or shape text, got int"):
        a.assert_shape(42, "number")


def test_assert_same_shape() -> None:
    a.assert_same_shape("{ a: 1 | 2 }", "{ a: 2 | 1 }")

    with pytest.raises(ShapeMismatchError):
        a.assert_same_shape("{ a: 1 }", "{ a: number }")


def test_cyclic_values_cannot_be_checked() -> None:
    d: dict = {}
    d["self"] = d
    with pytest.raises(ShapeConstructionError):
        a.assert_extends_exact(d, "{}")
