"""
Token Types for the shape DSL

Shared between lexer and parser to avoid circular dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - mirrors grammar terminals"""

    # Literals
    NUMBER = auto()
    BIGINT = auto()
    STRING = auto()
    IDENT = auto()

    # Keywords
    TYPE = auto()
    OPAQUE = auto()
    NEVER = auto()
    KIND = auto()  # string, number, boolean, ...
    TRUE = auto()
    FALSE = auto()

    # Operators
    PIPE = auto()  # |
    AMP = auto()  # &
    TILDE = auto()  # ~
    ARROW = auto()  # ->
    ASSIGN = auto()  # =

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LSQB = auto()
    RSQB = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    COLON = auto()
    SEMI = auto()
    QMARK = auto()
    DOT = auto()  # opaque marker paths

    # Special
    NEWLINE = auto()
    EOF = auto()
    COMMENT = auto()


# Words the lexer never reports as IDENT.
KEYWORD_TYPES = frozenset({TT.TYPE, TT.OPAQUE, TT.NEVER, TT.KIND, TT.TRUE, TT.FALSE})


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
