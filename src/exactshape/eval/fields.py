"""
Field reconciliation between one candidate object and one expected object.

Order of checks:
1. Any candidate field the expected object lacks rejects the pair as
   REJECTED_EXTRA_PROPERTIES before field types are looked at.
2. Every expected field is then reconciled:

   candidate    expected    outcome
   ---------    --------    -------
   absent       optional    MATCH
   absent       required    REJECTED_NOT_SUBTYPE
   optional     required    REJECTED_NOT_SUBTYPE
   optional     optional    recurse
   required     either      recurse
"""

from __future__ import annotations

from typing import List, Optional

from ..types import FieldEntry, ObjectShape, Verdict
from .common import EXTRA, MATCH, NOT_SUBTYPE, MatchContext, combine, field_segment


def match_fields(candidate: ObjectShape, expected: ObjectShape, ctx: MatchContext, noun: str = "property") -> Verdict:
    if ctx.options.exact:
        extra = [name for name in candidate.fields if name not in expected.fields]

        if extra:
            for name in extra:
                ctx.record(EXTRA, f"extra {noun} '{name}'")
            return EXTRA

    verdicts: List[Verdict] = []

    for name, want in expected.fields.items():
        verdict = _match_field(name, candidate.fields.get(name), want, ctx, noun)

        if verdict is NOT_SUBTYPE and ctx.short_circuit:
            return verdict

        verdicts.append(verdict)

    return combine(verdicts)


def _match_field(name: str, have: Optional[FieldEntry], want: FieldEntry, ctx: MatchContext, noun: str) -> Verdict:
    if have is None:
        if want.optional:
            return MATCH
        return ctx.record(NOT_SUBTYPE, f"missing required {noun} '{name}'")

    if have.optional and not want.optional:
        return ctx.record(NOT_SUBTYPE, f"{noun} '{name}' is optional but the expected shape requires it")

    from .match import match_node

    with ctx.at(field_segment(name) if noun == "property" else f"[{name}]"):
        return match_node(have.shape, want.shape, ctx)
