"""Lark front-end built from grammar.lark.

The grammar covers one statement. Whole programs are split into statements
with the DSL lexer (top-level newlines and ';') and each piece is parsed on
its own, so ``exactshape --lark`` and the parity tests share this module with
the recursive descent parser.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from lark import Lark, Tree, UnexpectedInput

from .lexer_rd import tokenize
from .token_types import TT, Tok
from .types import ShapeSyntaxError

GRAMMAR_PATH = Path(__file__).resolve().with_name("grammar.lark")

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")
_OPEN = {TT.LPAR, TT.LSQB, TT.LBRACE}
_CLOSE = {TT.RPAR, TT.RSQB, TT.RBRACE}


def _read_grammar(grammar_path: Optional[str]) -> str:
    if grammar_path:
        p = Path(grammar_path)
        if p.exists():
            return p.read_text(encoding="utf-8")

    if GRAMMAR_PATH.exists():
        return GRAMMAR_PATH.read_text(encoding="utf-8")

    raise FileNotFoundError("grammar.lark not found. pass an explicit path")


@lru_cache(maxsize=4)
def make_parser(grammar_path: Optional[str] = None) -> Lark:
    return Lark(_read_grammar(grammar_path), parser="lalr", start="start")


def parse_statement_lark(source: str, grammar_path: Optional[str] = None) -> Tree:
    parser = make_parser(grammar_path)

    try:
        return parser.parse(source)
    except UnexpectedInput as exc:
        raise ShapeSyntaxError(
            f"Syntax error: {exc.__class__.__name__}",
            getattr(exc, "line", None),
            getattr(exc, "column", None),
        ) from exc


def parse_source_lark(source: str, grammar_path: Optional[str] = None) -> Tree:
    """Parse a whole program into the same 'program' tree parse_source builds."""
    line_starts = [0] + [m.end() for m in _NEWLINE_RE.finditer(source)]
    stmts: List[Tree] = []

    for first, end in _statement_spans(tokenize(source)):
        start = _offset(first, line_starts)

        try:
            stmt = parse_statement_lark(source[start:_offset(end, line_starts)], grammar_path)
        except ShapeSyntaxError as exc:
            raise _shifted(exc, first) from exc

        stmt.meta.line = first.line
        stmt.meta.column = first.column
        stmt.meta.empty = False
        stmts.append(stmt)

    program = Tree('program', stmts)
    program.meta.line = program.meta.column = 1
    program.meta.empty = False
    return program


def _statement_spans(tokens: List[Tok]) -> Iterator[Tuple[Tok, Tok]]:
    """(first token, terminating token) for every non-empty statement."""
    depth = 0
    first: Optional[Tok] = None

    for tok in tokens:
        if tok.type in _OPEN:
            depth += 1
        elif tok.type in _CLOSE:
            depth = max(depth - 1, 0)

        if tok.type in (TT.NEWLINE, TT.EOF) or (tok.type is TT.SEMI and depth == 0):
            if first is not None:
                yield first, tok
            first = None
        elif first is None:
            first = tok


def _offset(tok: Tok, line_starts: List[int]) -> int:
    return line_starts[tok.line - 1] + tok.column - 1


def _shifted(exc: ShapeSyntaxError, first: Tok) -> ShapeSyntaxError:
    # Positions Lark reports are relative to the statement text.
    line, column = exc.line, exc.column

    if line is not None:
        if line == 1 and column is not None:
            column += first.column - 1
        line += first.line - 1

    return ShapeSyntaxError(exc.args[0], line, column)
