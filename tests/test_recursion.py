from __future__ import annotations

from textwrap import dedent

import pytest

from exactshape.eval.match import explain_match, match_shape
from exactshape.types import ShapeCycleError, ShapeDepthError
from tests.support.harness import (
    EXTRA,
    MATCH,
    NOT_SUBTYPE,
    NUMBER,
    Options,
    ShapeEnv,
    check_dsl,
    lit,
    obj,
    shape,
)

DEFS = dedent(
    """\
    type List = { head: number, tail?: List }
    type Chain = { head: number, tail?: Chain }
    type Words = { head: string, tail?: Words }
    type Wide = { head: number, tail?: Wide, extra: number }
    type Ones = { head: 1, tail?: Ones }
    type Tree = { value: number, children: Tree[] }
    type OneTree = { value: 1, children: OneTree[] }
    type Linked = null | { next: Linked }
    type Loose = A | number
    type A = A | number
    """
)

SCENARIOS = [
    pytest.param("List ~ List", MATCH, id="self"),
    pytest.param("List ~ Chain", MATCH, id="isomorphic-names"),
    pytest.param("List ~ Words", NOT_SUBTYPE, id="field-type-differs"),
    pytest.param("Wide ~ List", EXTRA, id="extra-field-in-cycle"),
    pytest.param("List ~ Wide", NOT_SUBTYPE, id="missing-field-in-cycle"),
    pytest.param("Ones ~ List", MATCH, id="literal-narrower"),
    pytest.param("List ~ Ones", NOT_SUBTYPE, id="kind-wider"),
    pytest.param("Tree ~ Tree", MATCH, id="array-recursion"),
    pytest.param("OneTree ~ Tree", MATCH, id="array-recursion-narrower"),
    pytest.param("Tree ~ OneTree", NOT_SUBTYPE, id="array-recursion-wider"),
    pytest.param("Linked ~ Linked", MATCH, id="recursive-union"),
    pytest.param("{ next: null } ~ Linked", MATCH, id="unrolled-into-union"),
    pytest.param("{ next: { next: 1 } } ~ Linked", NOT_SUBTYPE, id="unrolled-wrong-leaf"),
    pytest.param("{ head: 1, tail: { head: 2 } } ~ List", MATCH, id="finite-value-vs-list"),
    pytest.param("{ head: 1, tail: { head: 2, x: 3 } } ~ List", EXTRA, id="finite-value-extra"),
    pytest.param("A ~ number", MATCH, id="self-union-collapses"),
    pytest.param("number ~ Loose", MATCH, id="alias-of-self-union"),
]


@pytest.mark.parametrize("check, verdict", SCENARIOS)
def test_recursive_shapes(check: str, verdict) -> None:
    assert check_dsl(DEFS + check) is verdict


@pytest.mark.parametrize("check, verdict", SCENARIOS)
def test_memo_does_not_change_verdicts(check: str, verdict) -> None:
    assert check_dsl(DEFS + check, Options(memoize=False)) is verdict


def test_cycle_raises_when_recursion_disabled() -> None:
    with pytest.raises(ShapeCycleError):
        check_dsl(DEFS + "List ~ Chain", Options(allow_recursion=False))


def test_finite_shapes_pass_with_recursion_disabled() -> None:
    verdict = check_dsl("{ a: { b: [1, 2] } } ~ { a: { b: number[] } }", Options(allow_recursion=False))
    assert verdict is MATCH


def _nested(depth: int):
    node = NUMBER
    for _ in range(depth):
        node = obj(inner=node)
    return node


def test_depth_limit_is_enforced() -> None:
    deep = _nested(20)

    with pytest.raises(ShapeDepthError) as exc_info:
        match_shape(deep, deep, Options(max_depth=5))

    assert "max_depth=5" in str(exc_info.value)


def test_depth_limit_allows_shallow_shapes() -> None:
    deep = _nested(20)
    assert match_shape(deep, deep, Options(max_depth=64)) is MATCH


@pytest.mark.parametrize("run", [match_shape, explain_match], ids=["fast", "explain"])
def test_depth_beyond_interpreter_stack_is_a_depth_error(run) -> None:
    deep = _nested(5000)

    with pytest.raises(ShapeDepthError, match="recursion limit before max_depth=100000"):
        run(deep, deep, Options(max_depth=100_000))


def test_explain_handles_cycles() -> None:
    env = ShapeEnv()
    shape("type L = { head: number, tail?: L }", env)
    shape("type S = { head: number, tail?: { head: string, tail?: L } }", env)

    report = explain_match(env.get("L"), env.get("S"))

    assert report.verdict is NOT_SUBTYPE
    assert [m.path for m in report.mismatches] == ["$.tail.head"]


def test_shared_subshape_failure() -> None:
    shared = obj(a=lit("x"))
    candidate = obj(left=shared, right=shared)
    expected = obj(left=obj(a=NUMBER), right=obj(a=NUMBER))
    assert match_shape(candidate, expected) is NOT_SUBTYPE
