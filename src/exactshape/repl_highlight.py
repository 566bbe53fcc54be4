"""prompt_toolkit lexer for live shape DSL highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as ShapeTokenizer, LexError
from .parser_rd import VERDICT_NAMES
from .token_types import KEYWORD_TYPES, TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "kind": "bold ansiblue",
    "boolean": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "property": "ansiyellow",
    "verdict": "bold ansimagenta",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

# Token type → highlight group.
_TT_GROUP = {
    TT.TYPE: "keyword",
    TT.OPAQUE: "keyword",
    TT.NEVER: "keyword",
    TT.KIND: "kind",
    TT.TRUE: "boolean",
    TT.FALSE: "boolean",
    TT.NUMBER: "number",
    TT.BIGINT: "number",
    TT.STRING: "string",
    TT.IDENT: "identifier",
    TT.PIPE: "operator",
    TT.AMP: "operator",
    TT.TILDE: "operator",
    TT.ARROW: "operator",
    TT.ASSIGN: "operator",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LSQB: "punctuation",
    TT.RSQB: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.COMMA: "punctuation",
    TT.COLON: "punctuation",
    TT.SEMI: "punctuation",
    TT.QMARK: "punctuation",
    TT.DOT: "punctuation",
    TT.COMMENT: "comment",
}

_LAYOUT = {TT.NEWLINE, TT.EOF}
_SIG_SKIP = _LAYOUT | {TT.COMMENT}
_NAME_TYPES = KEYWORD_TYPES | {TT.IDENT, TT.STRING}


def _prev_sig_idx(tokens: list[Tok], idx: int) -> int:
    j = idx - 1
    while j >= 0:
        if tokens[j].type not in _SIG_SKIP:
            return j
        j -= 1
    return -1


def _next_sig_idx(tokens: list[Tok], idx: int) -> int:
    j = idx + 1
    while j < len(tokens):
        if tokens[j].type not in _SIG_SKIP:
            return j
        j += 1
    return -1


def _is_field_name(tokens: list[Tok], idx: int) -> bool:
    """Name directly followed by ':' or '?:' inside an object shape."""
    if tokens[idx].type not in _NAME_TYPES:
        return False

    prev_idx = _prev_sig_idx(tokens, idx)
    if prev_idx < 0 or tokens[prev_idx].type not in (TT.LBRACE, TT.COMMA, TT.SEMI):
        return False

    next_idx = _next_sig_idx(tokens, idx)
    if next_idx < 0:
        return False

    if tokens[next_idx].type == TT.QMARK:
        next_idx = _next_sig_idx(tokens, next_idx)

    return next_idx >= 0 and tokens[next_idx].type == TT.COLON


def _is_verdict(tokens: list[Tok], idx: int) -> bool:
    tok = tokens[idx]
    if tok.type != TT.IDENT or tok.value not in VERDICT_NAMES:
        return False

    prev_idx = _prev_sig_idx(tokens, idx)
    return prev_idx >= 0 and tokens[prev_idx].type == TT.ARROW


def _group_for(tokens: list[Tok], idx: int) -> str:
    if _is_field_name(tokens, idx):
        return "property"
    if _is_verdict(tokens, idx):
        return "verdict"
    return _TT_GROUP.get(tokens[idx].type, "")


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = ShapeTokenizer(text, emit_comments=True).tokenize()
    except LexError:
        return [("", text)]

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type in _LAYOUT:
            continue

        tok_text = str(tok.value) if tok.value is not None else ""
        if not tok_text:
            continue

        # Find actual position of this token value in the line from pos onwards.
        idx = text.find(tok_text, pos)
        if idx < 0:
            continue

        # Unstyled gap before token.
        if idx > pos:
            result.append(("", text[pos:idx]))

        result.append((GROUP_STYLE.get(_group_for(tokens, i), ""), tok_text))
        pos = idx + len(tok_text)

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class ShapeLexer(Lexer):
    """prompt_toolkit Lexer that highlights shape DSL input using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
