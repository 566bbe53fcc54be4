"""
Lowering: DSL parse trees -> ShapeNodes.

Named definitions are declared before any body is lowered so bodies may
refer to themselves or to later definitions. Intersections are resolved here,
which means their operands must already be bound.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from lark import Token, Transformer, Tree, v_args
from lark.exceptions import VisitError

from .types import (
    NEVER,
    PRIMITIVES,
    ArrayShape,
    FieldEntry,
    ObjectShape,
    ShapeConstructionError,
    ShapeError,
    ShapeNode,
    ShapeRef,
    TupleShape,
    UnionShape,
    Verdict,
    bigint_literal,
    literal,
    opaque,
    resolve,
)

logger = logging.getLogger(__name__)


class ShapeEnv:
    """Named definitions visible to a program (or a REPL session)."""

    def __init__(self) -> None:
        self.defs: Dict[str, ShapeRef] = {}

    def declare(self, name: str) -> ShapeRef:
        if name in self.defs:
            raise ShapeConstructionError(f"Type '{name}' is already defined")

        ref = ShapeRef(name)
        self.defs[name] = ref
        return ref

    def get(self, name: str) -> ShapeRef:
        ref = self.defs.get(name)

        if ref is None:
            raise ShapeConstructionError(f"Unknown type '{name}'")

        return ref

    def forget(self, name: str) -> None:
        self.defs.pop(name, None)

    def names(self) -> List[str]:
        return list(self.defs)


@dataclass(frozen=True)
class Definition:
    line: int
    ref: ShapeRef


@dataclass(frozen=True)
class Check:
    line: int
    candidate: ShapeNode
    expected: ShapeNode
    expected_verdict: Optional[Verdict] = None


@dataclass(frozen=True)
class Show:
    line: int
    shape: ShapeNode


Statement = Union[Definition, Check, Show]


def unquote(raw: str) -> str:
    try:
        value = ast.literal_eval(raw)
    except (SyntaxError, ValueError) as exc:
        raise ShapeConstructionError(f"Invalid string literal {raw}") from exc

    if not isinstance(value, str):
        raise ShapeConstructionError(f"Invalid string literal {raw}")

    return value


def parse_number(raw: str) -> Union[int, float]:
    try:
        if any(ch in raw for ch in ".eE"):
            return float(raw)
        return int(raw)
    except ValueError as exc:
        raise ShapeConstructionError(f"Invalid number literal {raw}") from exc


def _name_of(tok: Token) -> str:
    if tok.type == "STRING":
        return unquote(str(tok))

    return str(tok)


@v_args(inline=True)
class ShapeBuilder(Transformer):
    """Bottom-up conversion of shape trees. Statement nodes are handled by lower_program."""

    def __init__(self, env: ShapeEnv):
        super().__init__()
        self.env = env

    def number_lit(self, tok: Token) -> ShapeNode:
        return literal(parse_number(str(tok)))

    def bigint_lit(self, tok: Token) -> ShapeNode:
        return bigint_literal(int(str(tok)[:-1]))

    def string_lit(self, tok: Token) -> ShapeNode:
        return literal(unquote(str(tok)))

    def bool_lit(self, tok: Token) -> ShapeNode:
        return literal(str(tok) == "true")

    def kind(self, tok: Token) -> ShapeNode:
        return PRIMITIVES[str(tok)]

    def opaque(self, *parts: Token) -> ShapeNode:
        return opaque(".".join(str(part) for part in parts))

    def never(self) -> ShapeNode:
        return NEVER

    def ref(self, tok: Token) -> ShapeNode:
        return self.env.get(str(tok))

    def array(self, element: ShapeNode) -> ShapeNode:
        return ArrayShape(element)

    def union(self, *alternatives: ShapeNode) -> ShapeNode:
        return UnionShape(alternatives)

    def intersection(self, *parts: ShapeNode) -> ShapeNode:
        merged = _as_object(parts[0])

        for part in parts[1:]:
            merged = merge_objects(merged, _as_object(part))

        return merged

    def field(self, name: Token, shape: ShapeNode) -> Tuple[str, FieldEntry]:
        return _name_of(name), FieldEntry(shape)

    def optfield(self, name: Token, shape: ShapeNode) -> Tuple[str, FieldEntry]:
        return _name_of(name), FieldEntry(shape, optional=True)

    def object(self, *fields: Tuple[str, FieldEntry]) -> ShapeNode:
        return ObjectShape.from_pairs(fields)

    def item(self, shape: ShapeNode) -> FieldEntry:
        return FieldEntry(shape)

    def optitem(self, shape: ShapeNode) -> FieldEntry:
        return FieldEntry(shape, optional=True)

    def tuple(self, *items: FieldEntry) -> ShapeNode:
        return TupleShape(items)


def _as_object(node: ShapeNode) -> ObjectShape:
    if isinstance(node, ShapeRef) and not node.bound:
        raise ShapeConstructionError(f"Type '{node.name}' must be defined before it is intersected")

    target = resolve(node)

    if not isinstance(target, ObjectShape):
        raise ShapeConstructionError(f"Only object shapes can be intersected, got {target!r}")

    return target


def merge_objects(left: ObjectShape, right: ObjectShape) -> ObjectShape:
    fields: Dict[str, FieldEntry] = dict(left.fields)

    for name, entry in right.fields.items():
        existing = fields.get(name)

        if existing is None:
            fields[name] = entry
            continue

        optional = existing.optional and entry.optional
        a, b = resolve(existing.shape), resolve(entry.shape)

        if isinstance(a, ObjectShape) and isinstance(b, ObjectShape):
            fields[name] = FieldEntry(merge_objects(a, b), optional)
        elif existing.shape == entry.shape:
            fields[name] = FieldEntry(existing.shape, optional)
        else:
            raise ShapeConstructionError(
                f"Conflicting shapes for field '{name}' in intersection: {existing.shape!r} vs {entry.shape!r}"
            )

    return ObjectShape(fields)


def lower_shape(tree: Union[Tree, Token], env: Optional[ShapeEnv] = None) -> ShapeNode:
    """Lower one shape expression tree."""
    builder = ShapeBuilder(env or ShapeEnv())

    if not isinstance(tree, Tree):
        raise ShapeConstructionError(f"Expected a shape tree, got {tree!r}")

    try:
        return builder.transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, ShapeError):
            raise exc.orig_exc from None
        raise


def lower_program(tree: Tree, env: ShapeEnv) -> List[Statement]:
    """Lower a 'program' (or single statement) tree.

    Definitions are declared up front. If anything fails, names this call
    declared are removed again so *env* is left as it was.
    """
    stmts = tree.children if tree.data == "program" else [tree]
    declared: List[Tuple[ShapeRef, Tree]] = []

    try:
        for stmt in stmts:
            if stmt.data == "typedef":
                declared.append((env.declare(str(stmt.children[0])), stmt.children[1]))

        out: List[Statement] = []

        for stmt in stmts:
            line = getattr(stmt.meta, "line", 1) if not stmt.meta.empty else 1

            match stmt.data:
                case "typedef":
                    ref = env.get(str(stmt.children[0]))
                    ref.bind(lower_shape(stmt.children[1], env))
                    logger.debug("bound type %s = %r", ref.name, ref.target)
                    out.append(Definition(line, ref))
                case "check":
                    candidate = lower_shape(stmt.children[0], env)
                    expected = lower_shape(stmt.children[1], env)
                    verdict = None

                    if len(stmt.children) > 2:
                        verdict = Verdict.from_name(str(stmt.children[2]))

                    out.append(Check(line, candidate, expected, verdict))
                case _:
                    out.append(Show(line, lower_shape(stmt, env)))

        # Aliases that never reach a structural shape are rejected here.
        for ref, _ in declared:
            resolve(ref)

        return out
    except ShapeError:
        for ref, _ in declared:
            env.forget(ref.name)
        raise
