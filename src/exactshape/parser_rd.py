"""
Recursive Descent Parser for the shape DSL

Structure:
- Lexer: Token stream from source
- Parser: Recursive descent, one method per grammar rule
- AST: Same tree structure as the Lark grammar in grammar.lark, so either
  front-end can feed lower.py

Precedence (lowest to highest):
1. check (~) and definitions (type X = ...), statement level only
2. union (|)
3. intersection (&)
4. postfix array suffix ([])
5. primary (literals, kinds, objects, tuples, references, parens)
"""

from typing import List, Optional

from lark import Token, Tree
from lark.tree import Meta

from .lexer_rd import tokenize
from .token_types import KEYWORD_TYPES, TT, Tok
from .types import ShapeSyntaxError, Verdict

# ============================================================================
# Parser
# ============================================================================

class ParseError(ShapeSyntaxError):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        super().__init__(
            message,
            token.line if token else None,
            token.column if token else None,
        )

VERDICT_NAMES = frozenset(v.value for v in Verdict)

class Parser:
    """Recursive descent parser for shape programs."""

    def __init__(self, tokens: List[Tok]):
        self.tokens = tokens
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return Tok(TT.EOF, None, 0, 0)

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current = self.tokens[self.pos]
        else:
            self.current = Tok(TT.EOF, None, 0, 0)
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise ParseError(msg, self.current)
        return self.advance()

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse(self) -> Tree:
        """Parse entire program: statements split by newlines or ';'"""
        stmts = []

        while not self.check(TT.EOF):
            if self.match(TT.NEWLINE, TT.SEMI):
                continue

            start = self.current
            stmt = self.parse_statement()
            stmt.meta.line = start.line
            stmt.meta.column = start.column
            stmt.meta.empty = False
            stmts.append(stmt)

            if not self.check(TT.EOF) and not self.match(TT.NEWLINE, TT.SEMI):
                raise ParseError(f"Expected end of statement, got {self.current.type.name}", self.current)

        return Tree('program', stmts, _meta_at(1, 1))

    def parse_single(self) -> Tree:
        """Parse exactly one statement (the unit the Lark grammar accepts)"""
        while self.match(TT.NEWLINE):
            pass

        stmt = self.parse_statement()

        while self.match(TT.NEWLINE, TT.SEMI):
            pass

        if not self.check(TT.EOF):
            raise ParseError(f"Unexpected {self.current.type.name} after statement", self.current)

        return stmt

    # ========================================================================
    # Statements
    # ========================================================================

    def parse_statement(self) -> Tree:
        """
        Parse a single statement:
        - type NAME = shape
        - shape ~ shape [-> verdict]
        - shape
        """
        if self.check(TT.TYPE):
            return self.parse_typedef()

        lhs = self.parse_shape()

        if not self.match(TT.TILDE):
            return lhs

        rhs = self.parse_shape()
        children = [lhs, rhs]

        if self.match(TT.ARROW):
            tok = self.expect(TT.IDENT, "Expected a verdict after '->'")
            if tok.value not in VERDICT_NAMES:
                names = ", ".join(sorted(VERDICT_NAMES))
                raise ParseError(f"Unknown verdict '{tok.value}' (expected one of {names})", tok)
            children.append(Token('VERDICT', tok.value))

        return Tree('check', children)

    def parse_typedef(self) -> Tree:
        self.expect(TT.TYPE)
        name = self.expect(TT.IDENT, "Expected a type name after 'type'")
        self.expect(TT.ASSIGN, "Expected '=' in type definition")
        body = self.parse_shape()
        return Tree('typedef', [Token('IDENT', name.value), body])

    # ========================================================================
    # Shapes
    # ========================================================================

    def parse_shape(self) -> Tree:
        """Union: a leading '|' is allowed and ignored"""
        self.match(TT.PIPE)
        alternatives = [self.parse_intersection()]

        while self.match(TT.PIPE):
            alternatives.append(self.parse_intersection())

        if len(alternatives) == 1:
            return alternatives[0]

        return Tree('union', alternatives)

    def parse_intersection(self) -> Tree:
        parts = [self.parse_postfix()]

        while self.match(TT.AMP):
            parts.append(self.parse_postfix())

        if len(parts) == 1:
            return parts[0]

        return Tree('intersection', parts)

    def parse_postfix(self) -> Tree:
        node = self.parse_primary()

        while self.check(TT.LSQB) and self.peek(1).type == TT.RSQB:
            self.advance()
            self.advance()
            node = Tree('array', [node])

        return node

    def parse_primary(self) -> Tree:
        tok = self.current

        match tok.type:
            case TT.LPAR:
                self.advance()
                inner = self.parse_shape()
                self.expect(TT.RPAR, "Expected ')'")
                return inner
            case TT.LBRACE:
                return self.parse_object()
            case TT.LSQB:
                return self.parse_tuple()
            case TT.NUMBER:
                self.advance()
                return Tree('number_lit', [Token('NUMBER', tok.value)])
            case TT.BIGINT:
                self.advance()
                return Tree('bigint_lit', [Token('BIGINT', tok.value)])
            case TT.STRING:
                self.advance()
                return Tree('string_lit', [Token('STRING', tok.value)])
            case TT.TRUE | TT.FALSE:
                self.advance()
                return Tree('bool_lit', [Token('BOOL', tok.value)])
            case TT.KIND:
                self.advance()
                return Tree('kind', [Token('KIND', tok.value)])
            case TT.OPAQUE:
                self.advance()
                parts = [self.expect(TT.IDENT, "Expected a marker name after 'opaque'")]
                while self.match(TT.DOT):
                    parts.append(self.expect(TT.IDENT, "Expected a name after '.' in opaque marker"))
                return Tree('opaque', [Token('IDENT', part.value) for part in parts])
            case TT.NEVER:
                self.advance()
                return Tree('never', [])
            case TT.IDENT:
                self.advance()
                return Tree('ref', [Token('IDENT', tok.value)])
            case _:
                raise ParseError(f"Expected a shape, got {tok.type.name}", tok)

    def parse_object(self) -> Tree:
        self.expect(TT.LBRACE)
        fields = []

        while not self.check(TT.RBRACE):
            fields.append(self.parse_field())

            if not self.match(TT.COMMA, TT.SEMI):
                break

        self.expect(TT.RBRACE, "Expected '}' to close object shape")
        return Tree('object', fields)

    def parse_field(self) -> Tree:
        tok = self.current

        if tok.type == TT.STRING:
            name = Token('STRING', tok.value)
        elif tok.type == TT.IDENT or tok.type in KEYWORD_TYPES:
            # Keywords are plain names in field position.
            name = Token('IDENT', tok.value)
        else:
            raise ParseError(f"Expected a field name, got {tok.type.name}", tok)

        self.advance()
        optional = self.match(TT.QMARK)
        self.expect(TT.COLON, "Expected ':' after field name")
        shape = self.parse_shape()
        return Tree('optfield' if optional else 'field', [name, shape])

    def parse_tuple(self) -> Tree:
        self.expect(TT.LSQB)
        items = []

        while not self.check(TT.RSQB):
            shape = self.parse_shape()
            label = 'optitem' if self.match(TT.QMARK) else 'item'
            items.append(Tree(label, [shape]))

            if not self.match(TT.COMMA):
                break

        self.expect(TT.RSQB, "Expected ']' to close tuple shape")
        return Tree('tuple', items)

def _meta_at(line: int, column: int) -> Meta:
    meta = Meta()
    meta.line = line
    meta.column = column
    meta.empty = False
    return meta

def parse_source(source: str) -> Tree:
    """Parse a whole program into a 'program' tree"""
    try:
        return Parser(tokenize(source)).parse()
    except RecursionError as exc:
        raise ParseError("Shape nesting is too deep to parse") from exc

def parse_statement(source: str) -> Tree:
    """Parse one statement; the result is comparable with the Lark grammar's"""
    return Parser(tokenize(source)).parse_single()
