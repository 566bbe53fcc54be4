"""
Lexer for the shape DSL

Tokenizes shape source into a stream of tokens.

Features:
- Single-pass tokenization
- Newlines are statement separators, except inside (), [] and {}
- Position tracking (line, column of the first character)
- Negative numbers and bigint literals (``10n``) are single tokens
"""

from typing import List, Optional

from .token_types import TT, Tok
from .types import ShapeSyntaxError

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    Shape DSL lexer.

    Bracket depth is tracked so that shapes can span several lines without
    any continuation marker, the same way Python joins bracketed lines.
    """

    KIND_NAMES = frozenset({
        'string',
        'number',
        'boolean',
        'null',
        'undefined',
        'symbol',
        'bigint',
        'function',
    })

    KEYWORDS = {
        'type': TT.TYPE,
        'opaque': TT.OPAQUE,
        'never': TT.NEVER,
        'true': TT.TRUE,
        'false': TT.FALSE,
        **{name: TT.KIND for name in KIND_NAMES},
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Two-character operators
        ('->', TT.ARROW),

        # Single-character operators
        ('|', TT.PIPE),
        ('&', TT.AMP),
        ('~', TT.TILDE),
        ('=', TT.ASSIGN),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        (',', TT.COMMA),
        (':', TT.COLON),
        (';', TT.SEMI),
        ('?', TT.QMARK),
        ('.', TT.DOT),
    ]

    _OPEN = {TT.LPAR, TT.LSQB, TT.LBRACE}
    _CLOSE = {TT.RPAR, TT.RSQB, TT.RBRACE}

    def __init__(self, source: str, emit_comments: bool = False):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []
        self.emit_comments = emit_comments
        self.depth = 0
        self.start_line = 1
        self.start_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.start_line, self.start_column = self.line, self.column
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        self.start_line, self.start_column = self.line, self.column

        # Skip whitespace (not newlines)
        if self.skip_whitespace():
            return

        ch = self.peek()

        # Comments
        if ch == '#':
            self.scan_comment()
            return

        # Newlines
        if ch in ('\n', '\r'):
            self.scan_newline()
            return

        # String literals
        if ch in ('"', "'"):
            self.scan_string()
            return

        # Numbers, including a leading minus
        if self._is_digit(ch) or (ch == '-' and self._is_digit(self.peek(1))):
            self.scan_number()
            return

        # Identifiers and keywords
        if self._is_ident_start(ch):
            self.scan_identifier()
            return

        # Operators and punctuation
        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_newline(self):
        """Consume LF or CRLF; only emitted outside brackets"""
        self.advance(2 if self.source.startswith('\r\n', self.pos) else 1)

        if self.depth == 0:
            self.emit(TT.NEWLINE, '\n')

        self.line += 1
        self.column = 1

    def scan_string(self):
        """Quoted string; escapes stay in the token text for lowering to decode"""
        quote = self.peek()
        start = self.pos
        self.advance()

        while self.peek() != quote:
            ch = self.peek()
            if self.pos >= len(self.source) or ch in ('\n', '\r'):
                raise LexError("Unterminated string", self.start_line, self.start_column)

            self.advance(2 if ch == '\\' and self.pos + 1 < len(self.source) else 1)

        self.advance()
        self.emit(TT.STRING, self.source[start:self.pos])

    def scan_number(self):
        """Number literal; an integer directly followed by 'n' is a bigint"""
        start = self.pos

        if self.peek() == '-':
            self.advance()
        self._take_digits()

        is_integer = True

        if self.peek() == '.' and self._is_digit(self.peek(1)):
            is_integer = False
            self.advance()
            self._take_digits()

        sign = 1 if self.peek(1) in ('+', '-') else 0
        if self.peek() in ('e', 'E') and self._is_digit(self.peek(1 + sign)):
            is_integer = False
            self.advance(1 + sign)
            self._take_digits()

        if is_integer and self.peek() == 'n' and not self._is_ident_char(self.peek(1)):
            self.advance()
            self.emit(TT.BIGINT, self.source[start:self.pos])
            return

        # Text is kept verbatim, same as the Lark terminal
        self.emit(TT.NUMBER, self.source[start:self.pos])

    def scan_identifier(self):
        """Identifier, keyword or kind name"""
        start = self.pos

        while self._is_ident_char(self.peek()):
            self.advance()

        value = self.source[start:self.pos]
        self.emit(self.KEYWORDS.get(value, TT.IDENT), value)

    def scan_operator(self):
        """Operators and punctuation; brackets adjust the nesting depth"""
        for text, op_type in self.OPERATORS:
            if not self.source.startswith(text, self.pos):
                continue

            self.advance(len(text))

            if op_type in self._OPEN:
                self.depth += 1
            elif op_type in self._CLOSE:
                self.depth = max(self.depth - 1, 0)

            self.emit(op_type, text)
            return

        raise LexError(f"Unexpected character '{self.peek()}'", self.line, self.column)

    def scan_comment(self):
        """'#' to end of line"""
        start = self.pos

        while self.pos < len(self.source) and self.peek() not in ('\n', '\r'):
            self.advance()

        if self.emit_comments:
            self.emit(TT.COMMENT, self.source[start:self.pos])

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Character at pos + offset, or '\\0' past the end"""
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters on the current line"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")

        text = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return text

    def skip_whitespace(self) -> bool:
        """Skip spaces and tabs; True if anything was skipped"""
        start = self.pos
        while self.peek() in (' ', '\t'):
            self.advance()
        return self.pos > start

    def _take_digits(self):
        while self._is_digit(self.peek()):
            self.advance()

    # ASCII only, matching the NUMBER and IDENT terminals of grammar.lark
    @staticmethod
    def _is_digit(ch: str) -> bool:
        return '0' <= ch <= '9'

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        return ch.isascii() and (ch.isalpha() or ch == '_')

    @staticmethod
    def _is_ident_char(ch: str) -> bool:
        return ch.isascii() and (ch.isalnum() or ch == '_')

    def emit(self, token_type: TT, value):
        """Append a token positioned where it started"""
        self.tokens.append(Tok(token_type, value, self.start_line, self.start_column))

class LexError(ShapeSyntaxError):
    """Lexical analysis error"""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message, line, column)

def tokenize(source: str, emit_comments: bool = False) -> List[Tok]:
    """Tokenize *source* in one pass"""
    return Lexer(source, emit_comments=emit_comments).tokenize()
