from __future__ import annotations

from textwrap import dedent

import pytest

from exactshape.parse_lark import parse_source_lark, parse_statement_lark
from exactshape.parser_rd import parse_source, parse_statement
from exactshape.types import ShapeSyntaxError

PARITY_CASES = [
    ("kind", "number"),
    ("kind-undefined", "undefined"),
    ("int", "42"),
    ("negative-float", "-3.5"),
    ("exponent", "1e3"),
    ("bigint", "10n"),
    ("string-double", '"hi"'),
    ("string-single", "'hi'"),
    ("bool", "true"),
    ("opaque", "opaque Date"),
    ("opaque-dotted", "opaque pkg.mod.Date"),
    ("never", "never"),
    ("ref", "Node"),
    ("array", "string[]"),
    ("array-nested", "number[][]"),
    ("array-of-union", "(1 | 2)[]"),
    ("union", "1 | 2 | 3"),
    ("union-leading-pipe", "| 'a' | 'b'"),
    ("intersection", "{ a: 1 } & { b: 2 }"),
    ("intersection-in-union", "A & B | C"),
    ("object-empty", "{}"),
    ("object", "{ a: number, b?: string }"),
    ("object-semicolons", "{ a: 1; b: 2; }"),
    ("object-quoted", '{ "my key": 1, other: string }'),
    ("object-nested", "{ a: { b: { c: number[] } } }"),
    ("tuple-empty", "[]"),
    ("tuple", "[number, string?]"),
    ("tuple-trailing-comma", "[1,]"),
    ("parens", "((number))"),
    ("typedef", "type T = { head: number, tail?: T }"),
    ("check", "{ a: 1 } ~ { a: number }"),
    ("check-verdict", "{ a: 1 } ~ {} -> extra_properties"),
    ("check-verdict-match", "A ~ B -> match"),
    ("comment", "number # trailing"),
]


@pytest.mark.parametrize("source", [src for _, src in PARITY_CASES], ids=[name for name, _ in PARITY_CASES])
def test_rd_matches_lark(source: str) -> None:
    assert parse_statement(source) == parse_statement_lark(source)


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("a ~", id="missing-rhs"),
        pytest.param("{ a number }", id="missing-colon"),
        pytest.param("type = number", id="missing-name"),
        pytest.param("a ~ b -> maybe", id="unknown-verdict"),
    ],
)
def test_both_front_ends_reject(source: str) -> None:
    with pytest.raises(ShapeSyntaxError):
        parse_statement(source)
    with pytest.raises(ShapeSyntaxError):
        parse_statement_lark(source)


PROGRAM = dedent(
    """\
    # shapes
    type P = {
        a: number;
        b?: string
    }
    { a: 1 } ~ P; [1, 2] ~ [number, number]
    P[]
    """
)


def test_program_trees_match() -> None:
    lark_tree = parse_source_lark(PROGRAM)

    assert parse_source(PROGRAM) == lark_tree
    assert [(s.meta.line, s.meta.column) for s in lark_tree.children] == [(2, 1), (6, 1), (6, 15), (7, 1)]


def test_empty_program_through_lark() -> None:
    assert parse_source_lark("\n# nothing\n").children == []


def test_lark_program_errors_point_into_the_source() -> None:
    with pytest.raises(ShapeSyntaxError) as exc_info:
        parse_source_lark("1 ~ 1\n  a ~ ~ b")

    assert (exc_info.value.line, exc_info.value.column) == (2, 7)
