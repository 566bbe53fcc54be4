"""
Exact structural match: candidate ~ expected

Rules:
1. A candidate union holds only if every alternative holds (a candidate with
   no alternatives holds vacuously). ``boolean`` is distributed as
   ``true | false``.
2. A single candidate alternative against an expected union holds if any
   expected alternative accepts it. When none does, the failure is
   REJECTED_EXTRA_PROPERTIES only if every attempt failed that way.
3. Object ~ object goes through field reconciliation, array ~ array through
   the element shapes, primitive ~ primitive through the leaf rules. Any
   other pairing of kinds is REJECTED_NOT_SUBTYPE.

Named references are followed transparently. A (candidate, expected) pair met
again while it is still being decided is assumed to match.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..types import (
    ArrayShape,
    FALSE,
    Kind,
    MatchReport,
    ObjectShape,
    Primitive,
    ShapeCycleError,
    ShapeDepthError,
    ShapeNode,
    TRUE,
    TupleShape,
    UnionShape,
    Verdict,
    flatten_alternatives,
    resolve,
)
from .arrays import match_array, match_tuple, match_tuple_to_array
from .common import (
    DEFAULT_OPTIONS,
    EXTRA,
    MATCH,
    NOT_SUBTYPE,
    MatchContext,
    Options,
    combine,
)
from .fields import match_fields
from .leaf import match_leaf

logger = logging.getLogger(__name__)


def match_shape(candidate: ShapeNode, expected: ShapeNode, options: Optional[Options] = None) -> Verdict:
    """Return the verdict for ``candidate ~ expected``."""
    ctx = MatchContext(options or DEFAULT_OPTIONS)
    return _run(candidate, expected, ctx)


def explain_match(candidate: ShapeNode, expected: ShapeNode, options: Optional[Options] = None) -> MatchReport:
    """Like match_shape, but evaluates every branch and records where it failed."""
    ctx = MatchContext(options or DEFAULT_OPTIONS, explain=True)
    verdict = _run(candidate, expected, ctx)
    return MatchReport(verdict, tuple(ctx.mismatches))


def _run(candidate: ShapeNode, expected: ShapeNode, ctx: MatchContext) -> Verdict:
    # A max_depth above what the interpreter stack allows fails the same way as max_depth itself.
    try:
        return match_node(candidate, expected, ctx)
    except RecursionError as exc:
        raise ShapeDepthError(
            f"Shape nesting exceeds the interpreter recursion limit before max_depth={ctx.options.max_depth}"
        ) from exc


def match_node(candidate: ShapeNode, expected: ShapeNode, ctx: MatchContext) -> Verdict:
    candidate = resolve(candidate)
    expected = resolve(expected)
    key = (id(candidate), id(expected))

    if key in ctx.active:
        if not ctx.options.allow_recursion:
            raise ShapeCycleError(f"Recursive comparison of {candidate!r} ~ {expected!r}")

        ctx.assumptions += 1
        logger.debug("re-entered %r ~ %r, assuming match", candidate, expected)
        return MATCH

    if ctx.use_memo:
        hit = ctx.memo.get(key)
        if hit is not None:
            logger.debug("memo hit for %r ~ %r", candidate, expected)
            return hit[2]

    if ctx.depth >= ctx.options.max_depth:
        raise ShapeDepthError(f"Shape nesting exceeds max_depth={ctx.options.max_depth} at {ctx.render_path()}")

    assumptions_before = ctx.assumptions
    ctx.active.add(key)
    ctx.depth += 1

    try:
        verdict = _distribute_candidate(candidate, expected, ctx)
    finally:
        ctx.active.discard(key)
        ctx.depth -= 1

    # A MATCH that leaned on an assumption is only provisional.
    if ctx.use_memo and (verdict is not MATCH or ctx.assumptions == assumptions_before):
        ctx.memo[key] = (candidate, expected, verdict)

    return verdict


def _candidate_alternatives(node: ShapeNode) -> Optional[List[ShapeNode]]:
    if isinstance(node, UnionShape):
        out: List[ShapeNode] = []

        for alt in flatten_alternatives(node):
            expanded = _candidate_alternatives(alt)
            out.extend(expanded if expanded is not None else [alt])

        return out

    if isinstance(node, Primitive) and node.kind is Kind.BOOLEAN:
        return [TRUE, FALSE]

    return None


def _distribute_candidate(candidate: ShapeNode, expected: ShapeNode, ctx: MatchContext) -> Verdict:
    alternatives = _candidate_alternatives(candidate)

    if alternatives is None:
        return _match_alternative(candidate, expected, ctx)

    verdicts: List[Verdict] = []

    for alt in alternatives:
        verdict = match_node(alt, expected, ctx)

        if verdict is NOT_SUBTYPE and ctx.short_circuit:
            return verdict

        verdicts.append(verdict)

    return combine(verdicts)


def _match_alternative(candidate: ShapeNode, expected: ShapeNode, ctx: MatchContext) -> Verdict:
    if not isinstance(expected, UnionShape):
        return _match_pair(candidate, expected, ctx)

    options = flatten_alternatives(expected)

    if not options:
        return ctx.record(NOT_SUBTYPE, f"{candidate!r} is not assignable to never")

    failures: List[Verdict] = []
    matched = False

    with ctx.capture() as scratch:
        for alt in options:
            verdict = match_node(candidate, alt, ctx)

            if verdict is MATCH:
                matched = True
                if ctx.short_circuit:
                    break
                continue

            failures.append(verdict)

    if matched:
        return MATCH

    verdict = EXTRA if all(v is EXTRA for v in failures) else NOT_SUBTYPE

    if ctx.explain:
        ctx.mismatches.extend(scratch)
        ctx.record(verdict, f"no alternative of {expected!r} accepts {candidate!r}")

    return verdict


def _match_pair(candidate: ShapeNode, expected: ShapeNode, ctx: MatchContext) -> Verdict:
    match (candidate, expected):
        case (ObjectShape(), ObjectShape()):
            return match_fields(candidate, expected, ctx)
        case (ArrayShape(), ArrayShape()):
            return match_array(candidate, expected, ctx)
        case (TupleShape(), TupleShape()):
            return match_tuple(candidate, expected, ctx)
        case (TupleShape(), ArrayShape()):
            return match_tuple_to_array(candidate, expected, ctx)
        case (Primitive(), Primitive()):
            if match_leaf(candidate, expected):
                return MATCH
            return ctx.record(NOT_SUBTYPE, f"expected {expected!r}, got {candidate!r}")
        case _:
            return ctx.record(NOT_SUBTYPE, f"expected {describe(expected)}, got {describe(candidate)}")


def describe(node: ShapeNode) -> str:
    node = resolve(node)

    match node:
        case ObjectShape():
            return "object"
        case ArrayShape():
            return "array"
        case TupleShape():
            return "tuple"
        case UnionShape():
            return repr(node)
        case Primitive():
            return repr(node)
        case _:
            return type(node).__name__
