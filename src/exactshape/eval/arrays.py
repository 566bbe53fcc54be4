from __future__ import annotations

from typing import List

from ..types import ArrayShape, TupleShape, Verdict
from .common import NOT_SUBTYPE, MatchContext, combine
from .fields import match_fields


def match_array(candidate: ArrayShape, expected: ArrayShape, ctx: MatchContext) -> Verdict:
    from .match import match_node

    with ctx.at("[]"):
        return match_node(candidate.element, expected.element, ctx)


def match_tuple(candidate: TupleShape, expected: TupleShape, ctx: MatchContext) -> Verdict:
    """Positions reconcile like fields named by their index."""
    if not ctx.options.exact and len(candidate.items) > len(expected.items):
        return ctx.record(
            NOT_SUBTYPE,
            f"tuple of length {len(candidate.items)} is longer than {len(expected.items)}",
        )

    return match_fields(candidate.as_object(), expected.as_object(), ctx, noun="element")


def match_tuple_to_array(candidate: TupleShape, expected: ArrayShape, ctx: MatchContext) -> Verdict:
    from .match import match_node

    verdicts: List[Verdict] = []

    for index, item in enumerate(candidate.items):
        with ctx.at(f"[{index}]"):
            verdict = match_node(item.shape, expected.element, ctx)

        if verdict is NOT_SUBTYPE and ctx.short_circuit:
            return verdict

        verdicts.append(verdict)

    return combine(verdicts)
