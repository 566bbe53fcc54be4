from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard

# ---------- Shape Model ----------

class Kind(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    UNDEFINED = "undefined"
    SYMBOL = "symbol"
    BIGINT = "bigint"
    FUNCTION = "function"
    OPAQUE = "opaque"
    LITERAL = "literal"

# Kinds that can carry a literal value.
LITERAL_BASES = frozenset({Kind.STRING, Kind.NUMBER, Kind.BOOLEAN, Kind.BIGINT})

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")

def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'

def render_field_name(name: str) -> str:
    return name if _IDENT_RE.match(name) else _quote(name)

@dataclass(frozen=True, repr=False)
class Primitive:
    """Leaf shape. ``value`` holds the literal value or the opaque marker name."""
    kind: Kind
    value: object = None
    base: Optional[Kind] = None

    def __post_init__(self) -> None:
        if self.kind is Kind.LITERAL:
            if self.base not in LITERAL_BASES:
                raise ShapeConstructionError(f"Literal base must be one of string, number, boolean, bigint; got {self.base}")
            if not _literal_fits(self.value, self.base):
                raise ShapeConstructionError(f"Literal {self.value!r} is not a valid {self.base.value}")
            return

        if self.kind is Kind.OPAQUE:
            if not isinstance(self.value, str) or not self.value:
                raise ShapeConstructionError("Opaque shapes need a non-empty marker name")
            return

        if self.value is not None or self.base is not None:
            raise ShapeConstructionError(f"{self.kind.value} does not take a value")

    @property
    def is_literal(self) -> bool:
        return self.kind is Kind.LITERAL

    def __repr__(self) -> str:
        if self.kind is Kind.OPAQUE:
            return f"opaque {self.value}"

        if self.kind is not Kind.LITERAL:
            return self.kind.value

        v = self.value
        if self.base is Kind.BOOLEAN:
            return "true" if v else "false"
        if self.base is Kind.STRING:
            return _quote(str(v))
        if self.base is Kind.BIGINT:
            return f"{v}n"
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)

def _literal_fits(value: object, base: Optional[Kind]) -> bool:
    if base is Kind.BOOLEAN:
        return isinstance(value, bool)
    if base is Kind.STRING:
        return isinstance(value, str)
    if base is Kind.BIGINT:
        return isinstance(value, int) and not isinstance(value, bool)
    if base is Kind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return False

@dataclass(frozen=True)
class FieldEntry:
    shape: 'ShapeNode'
    optional: bool = False

@dataclass(frozen=True, repr=False)
class ObjectShape:
    fields: Mapping[str, FieldEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, entry in self.fields.items():
            if not isinstance(name, str):
                raise ShapeConstructionError(f"Field names must be strings, got {name!r}")
            if not isinstance(entry, FieldEntry):
                raise ShapeConstructionError(f"Field '{name}' must be a FieldEntry, got {type(entry).__name__}")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    # The generated hash would try to hash the mappingproxy itself.
    def __hash__(self) -> int:
        return hash(frozenset(self.fields.items()))

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, FieldEntry]]) -> 'ObjectShape':
        """Build from (name, entry) pairs, rejecting duplicate names."""
        fields: Dict[str, FieldEntry] = {}

        for name, entry in pairs:
            if name in fields:
                raise ShapeConstructionError(f"Duplicate field '{name}'")
            fields[name] = entry

        return cls(fields)

    def __repr__(self) -> str:
        if not self.fields:
            return "{}"

        parts = []

        for name, entry in self.fields.items():
            mark = "?" if entry.optional else ""
            parts.append(f"{render_field_name(name)}{mark}: {repr(entry.shape)}")

        return "{ " + ", ".join(parts) + " }"

@dataclass(frozen=True, repr=False)
class ArrayShape:
    element: 'ShapeNode'

    def __repr__(self) -> str:
        inner = repr(self.element)

        if isinstance(self.element, UnionShape) and len(self.element.alternatives) > 1:
            inner = f"({inner})"

        return f"{inner}[]"

@dataclass(frozen=True, repr=False)
class TupleShape:
    """Fixed-length array; positions behave like fields named "0", "1", ..."""
    items: Tuple[FieldEntry, ...] = ()

    def __post_init__(self) -> None:
        items = tuple(self.items)
        seen_optional = False

        for index, item in enumerate(items):
            if not isinstance(item, FieldEntry):
                raise ShapeConstructionError(f"Tuple position {index} must be a FieldEntry")
            if item.optional:
                seen_optional = True
            elif seen_optional:
                raise ShapeConstructionError(f"Required tuple position {index} follows an optional one")

        object.__setattr__(self, "items", items)

    def as_object(self) -> ObjectShape:
        return ObjectShape({str(index): item for index, item in enumerate(self.items)})

    def __repr__(self) -> str:
        parts = [repr(item.shape) + ("?" if item.optional else "") for item in self.items]
        return "[" + ", ".join(parts) + "]"

@dataclass(frozen=True, repr=False)
class UnionShape:
    alternatives: Tuple['ShapeNode', ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "alternatives", tuple(self.alternatives))

    def __repr__(self) -> str:
        if not self.alternatives:
            return "never"

        return " | ".join(repr(alt) for alt in self.alternatives)

class ShapeRef:
    """Named indirection used for recursive shapes. Bound exactly once."""
    __slots__ = ("name", "_target")

    def __init__(self, name: str, target: Optional['ShapeNode'] = None):
        self.name = name
        self._target = target

    @property
    def bound(self) -> bool:
        return self._target is not None

    @property
    def target(self) -> 'ShapeNode':
        if self._target is None:
            raise ShapeConstructionError(f"Type '{self.name}' is used before it is defined")

        return self._target

    def bind(self, target: 'ShapeNode') -> None:
        if self._target is not None:
            raise ShapeConstructionError(f"Type '{self.name}' is already defined")

        self._target = target

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ShapeRef) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("ref", self.name))

    def __repr__(self) -> str:
        return self.name

ShapeNode: TypeAlias = Union[
    Primitive,
    ObjectShape,
    ArrayShape,
    TupleShape,
    UnionShape,
    ShapeRef,
]

_SHAPE_TYPES: Tuple[type, ...] = (
    Primitive,
    ObjectShape,
    ArrayShape,
    TupleShape,
    UnionShape,
    ShapeRef,
)

def is_shape_node(value: object) -> TypeGuard[ShapeNode]:
    return isinstance(value, _SHAPE_TYPES)

def resolve(node: ShapeNode) -> ShapeNode:
    """Follow named references until a structural node is reached."""
    seen: Set[int] = set()

    while isinstance(node, ShapeRef):
        if id(node) in seen:
            raise ShapeConstructionError(f"Type '{node.name}' only refers to itself")
        seen.add(id(node))
        node = node.target

    return node

def flatten_alternatives(node: ShapeNode) -> List[ShapeNode]:
    """Resolved, non-union members of *node*; nested unions are spliced in.

    A union reached again through a reference contributes nothing the second
    time, so ``type A = A | number`` flattens to ``[number]``.
    """
    out: List[ShapeNode] = []
    seen: Set[int] = set()

    def visit(current: ShapeNode) -> None:
        current = resolve(current)

        if isinstance(current, UnionShape):
            if id(current) in seen:
                return
            seen.add(id(current))

            for alt in current.alternatives:
                visit(alt)
            return

        out.append(current)

    visit(node)
    return out

# ---------- Constructors ----------

PRIMITIVES: Dict[str, Primitive] = {
    kind.value: Primitive(kind)
    for kind in Kind
    if kind not in (Kind.OPAQUE, Kind.LITERAL)
}

NEVER = UnionShape(())

def literal(value: object) -> Primitive:
    if isinstance(value, bool):
        return Primitive(Kind.LITERAL, value, Kind.BOOLEAN)
    if isinstance(value, (int, float)):
        return Primitive(Kind.LITERAL, value, Kind.NUMBER)
    if isinstance(value, str):
        return Primitive(Kind.LITERAL, value, Kind.STRING)

    raise ShapeConstructionError(f"Cannot build a literal shape from {type(value).__name__}")

def bigint_literal(value: int) -> Primitive:
    return Primitive(Kind.LITERAL, value, Kind.BIGINT)

def opaque(name: str) -> Primitive:
    return Primitive(Kind.OPAQUE, name)

TRUE = literal(True)
FALSE = literal(False)

# ---------- Verdicts ----------

class Verdict(Enum):
    MATCH = "match"
    REJECTED_NOT_SUBTYPE = "not_subtype"
    REJECTED_EXTRA_PROPERTIES = "extra_properties"

    @classmethod
    def from_name(cls, name: str) -> 'Verdict':
        for verdict in cls:
            if verdict.value == name:
                return verdict

        raise ValueError(f"Unknown verdict '{name}'")

@dataclass(frozen=True)
class Mismatch:
    path: str
    verdict: Verdict
    detail: str

    def __str__(self) -> str:
        return f"{self.path}: {self.detail}"

@dataclass(frozen=True)
class MatchReport:
    verdict: Verdict
    mismatches: Tuple[Mismatch, ...] = ()

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.MATCH

    def lines(self) -> List[str]:
        return [str(m) for m in self.mismatches]

# ---------- Exceptions ----------

class ShapeError(Exception):
    pass

class ShapeSyntaxError(ShapeError):
    line: Optional[int]
    column: Optional[int]

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        msg = super().__str__()

        if self.line is None:
            return msg

        if self.column is None:
            return f"{msg} (line {self.line})"

        return f"{msg} (line {self.line}, col {self.column})"

class ShapeConstructionError(ShapeError):
    pass

class ShapeCycleError(ShapeError):
    pass

class ShapeDepthError(ShapeError):
    pass

class ShapeAssertionError(ShapeError):
    pass

class ShapeMismatchError(ShapeAssertionError):
    def __init__(self, message: str, report: MatchReport):
        super().__init__(message)
        self.report = report
        self.verdict = report.verdict
