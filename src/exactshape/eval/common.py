from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from ..types import (
    Mismatch,
    ShapeNode,
    Verdict,
    render_field_name,
)

MATCH = Verdict.MATCH
NOT_SUBTYPE = Verdict.REJECTED_NOT_SUBTYPE
EXTRA = Verdict.REJECTED_EXTRA_PROPERTIES

@dataclass(frozen=True)
class Options:
    exact: bool = True             # forbid properties the expected shape does not declare
    allow_recursion: bool = True   # re-entering a pair in progress assumes MATCH
    memoize: bool = True
    max_depth: int = 128

DEFAULT_OPTIONS = Options()

def combine(verdicts: Iterable[Verdict]) -> Verdict:
    """Fold several verdicts that all have to hold.

    REJECTED_NOT_SUBTYPE outranks REJECTED_EXTRA_PROPERTIES, so the result does
    not depend on the order the parts were visited in.
    """
    result = MATCH

    for verdict in verdicts:
        if verdict is NOT_SUBTYPE:
            return NOT_SUBTYPE
        if verdict is EXTRA:
            result = EXTRA

    return result

def field_segment(name: str) -> str:
    rendered = render_field_name(name)

    if rendered == name:
        return f".{name}"

    return f"[{rendered}]"

PairKey = Tuple[int, int]

class MatchContext:
    """State for one top-level comparison. Never shared between calls."""

    def __init__(self, options: Options = DEFAULT_OPTIONS, explain: bool = False):
        self.options = options
        self.explain = explain
        self.active: Set[PairKey] = set()
        # Entries keep both nodes alive so their ids cannot be recycled mid-call.
        self.memo: Dict[PairKey, Tuple[ShapeNode, ShapeNode, Verdict]] = {}
        self.assumptions = 0
        self.depth = 0
        self.path: List[str] = []
        self.mismatches: List[Mismatch] = []

    @property
    def short_circuit(self) -> bool:
        return not self.explain

    @property
    def use_memo(self) -> bool:
        return self.options.memoize and not self.explain

    def render_path(self) -> str:
        return "$" + "".join(self.path)

    def record(self, verdict: Verdict, detail: str) -> Verdict:
        if self.explain and verdict is not MATCH:
            self.mismatches.append(Mismatch(self.render_path(), verdict, detail))

        return verdict

    @contextmanager
    def at(self, segment: str) -> Iterator[None]:
        self.path.append(segment)
        try:
            yield
        finally:
            self.path.pop()

    @contextmanager
    def capture(self) -> Iterator[List[Mismatch]]:
        """Collect mismatches recorded inside the block into a separate list."""
        saved = self.mismatches
        scratch: List[Mismatch] = []
        self.mismatches = scratch
        try:
            yield scratch
        finally:
            self.mismatches = saved
