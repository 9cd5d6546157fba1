"""
SPARQL query and update builder with typed parameter slots.

Queries are assembled as trees of pattern nodes. Values supplied by callers
never get spliced into query text: they are bound to ``Slot`` objects, looked
up by identity at render time, checked against the slot's kind and rendered
as full IRIs or escaped literals.

    user = Slot("user", SlotKind.USER)
    update = UpdateOperation(insert=[...], where=[...])
    sparql = update.render({user: "Hjfocs"})
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Union

from primary_sources.terms import BlankNode, Iri, LangLiteral, PlainLiteral, TypedLiteral, is_language_tag
from primary_sources.validation.terms import TermKind, is_valid_term

Bindings = Mapping["Slot", Any]

# Characters that cannot appear between < and > in SPARQL
_IRI_FORBIDDEN = re.compile(r'[\x00-\x20<>"{}|^`\\]')
_ABSOLUTE_IRI = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_USER_NAME_ILLEGAL = re.compile(r"[:/?#\[\]@!$&'()*+,;=]")


def is_iri(value: str) -> bool:
    """Absolute IRI that can sit between < and > in SPARQL."""
    return _ABSOLUTE_IRI.match(value) is not None and _IRI_FORBIDDEN.search(value) is None


class SlotKind(Enum):
    """What a slot accepts."""
    ITEM_ID = "item_id"          # Q5921
    PROPERTY_ID = "property_id"  # P18
    USER = "user"                # Wiki user name
    IRI = "iri"                  # absolute IRI string
    TERM = "term"                # statement value graph term
    NAME = "name"                # path segment, e.g. a workflow state

    def check(self, value: Any) -> None:
        """Raise ValueError if ``value`` cannot fill a slot of this kind."""
        if self is SlotKind.TERM:
            if not isinstance(value, (Iri, PlainLiteral, LangLiteral, TypedLiteral)):
                raise ValueError(f"Expected a graph term, got {value!r}")
            if isinstance(value, Iri) and not is_iri(value.value):
                raise ValueError(f"Invalid IRI: {value.value!r}")
            if isinstance(value, LangLiteral) and not is_language_tag(value.language):
                raise ValueError(f"Invalid language tag: {value.language!r}")
            if isinstance(value, TypedLiteral) and not is_iri(value.datatype):
                raise ValueError(f"Invalid datatype IRI: {value.datatype!r}")
            return
        if not isinstance(value, str):
            raise ValueError(f"Expected a string for {self.value}, got {value!r}")
        if self is SlotKind.ITEM_ID and not is_valid_term(value, TermKind.ITEM):
            raise ValueError(f"Invalid item id: {value!r}")
        if self is SlotKind.PROPERTY_ID and not is_valid_term(value, TermKind.PROPERTY):
            raise ValueError(f"Invalid property id: {value!r}")
        if self is SlotKind.USER and (not value or _USER_NAME_ILLEGAL.search(value)
                                      or _IRI_FORBIDDEN.search(value)):
            raise ValueError(f"Invalid user name: {value!r}")
        if self is SlotKind.IRI and not is_iri(value):
            raise ValueError(f"Invalid IRI: {value!r}")
        if self is SlotKind.NAME and not re.fullmatch(r"[A-Za-z0-9_\-]+", value):
            raise ValueError(f"Invalid name: {value!r}")


class UnboundSlotError(KeyError):
    """Raised when rendering without a value for a slot."""
    pass


# =============================================================================
# Terms
# =============================================================================

@dataclass(eq=False)
class Slot:
    """
    A named, typed parameter.

    Slots compare and hash by identity; the name is only used in messages.
    """
    name: str
    kind: SlotKind

    def value(self, bindings: Bindings) -> Any:
        if self not in bindings:
            raise UnboundSlotError(f"No value bound for slot {self.name!r}")
        value = bindings[self]
        try:
            self.kind.check(value)
        except ValueError as e:
            raise ValueError(f"Slot {self.name!r}: {e}") from e
        return value

    def render(self, bindings: Bindings) -> str:
        value = self.value(bindings)
        if self.kind is SlotKind.TERM:
            return str(value)
        if self.kind is SlotKind.IRI:
            return f"<{value}>"
        raise ValueError(f"Slot {self.name!r} of kind {self.kind.value} needs a SlotIri")

    def slots(self) -> list[Slot]:
        return [self]


@dataclass(frozen=True)
class Variable:
    """A SPARQL variable."""
    name: str

    def render(self, bindings: Bindings) -> str:
        return f"?{self.name}"

    def __str__(self) -> str:
        return f"?{self.name}"

    def slots(self) -> list[Slot]:
        return []


@dataclass(frozen=True)
class SlotIri:
    """
    An IRI assembled from constant parts and slot values.

    ``SlotIri(PROP, pid)`` renders ``<http://www.wikidata.org/prop/P18>``.
    """
    parts: tuple

    def __init__(self, *parts: Union[str, Slot]):
        object.__setattr__(self, "parts", parts)

    def render(self, bindings: Bindings) -> str:
        text = "".join(
            part.value(bindings) if isinstance(part, Slot) else part
            for part in self.parts
        )
        if _IRI_FORBIDDEN.search(text):
            raise ValueError(f"Invalid IRI: {text!r}")
        return f"<{text}>"

    def slots(self) -> list[Slot]:
        return [part for part in self.parts if isinstance(part, Slot)]


@dataclass(frozen=True)
class Constant:
    """A fixed graph term."""
    term: Union[Iri, PlainLiteral, LangLiteral, TypedLiteral, BlankNode]

    def render(self, bindings: Bindings) -> str:
        return str(self.term)

    def slots(self) -> list[Slot]:
        return []


def const(value: str) -> Constant:
    """A constant IRI."""
    return Constant(Iri(value))


Term = Union[Variable, Slot, SlotIri, Constant]


# =============================================================================
# Patterns
# =============================================================================

@dataclass(frozen=True)
class TriplePattern:
    subject: Term
    predicate: Term
    object: Term

    def render(self, bindings: Bindings) -> str:
        return (
            f"{self.subject.render(bindings)} {self.predicate.render(bindings)} "
            f"{self.object.render(bindings)} ."
        )

    def slots(self) -> list[Slot]:
        return self.subject.slots() + self.predicate.slots() + self.object.slots()


@dataclass
class Filter:
    """FILTER over an expression built from variables and constant text."""
    expression: str

    def render(self, bindings: Bindings) -> str:
        return f"FILTER({self.expression})"

    def slots(self) -> list[Slot]:
        return []


def strstarts(variable: Variable, prefix: str) -> Filter:
    """FILTER(STRSTARTS(STR(?x), "prefix"))"""
    return Filter(f"STRSTARTS(STR({variable}), {PlainLiteral(prefix)})")


def strends(variable: Variable, suffix: str) -> Filter:
    return Filter(f"STRENDS(STR({variable}), {PlainLiteral(suffix)})")


@dataclass
class Bind:
    """BIND(expression AS ?variable)"""
    expression: str
    variable: Variable

    def render(self, bindings: Bindings) -> str:
        return f"BIND({self.expression} AS {self.variable})"

    def slots(self) -> list[Slot]:
        return []


@dataclass
class Group:
    """A group of patterns, optionally OPTIONAL or inside a GRAPH."""
    patterns: list = field(default_factory=list)
    graph: Term | None = None
    optional: bool = False

    def render(self, bindings: Bindings, indent: int = 1) -> str:
        pad = "  " * indent
        inner = "\n".join(_render_element(p, bindings, indent + 1) for p in self.patterns)
        header = f"GRAPH {self.graph.render(bindings)} " if self.graph is not None else ""
        if self.optional:
            header = f"OPTIONAL {{ {header}" if header else "OPTIONAL "
            closing = f"{pad}}} }}" if self.graph is not None else f"{pad}}}"
        else:
            closing = f"{pad}}}"
        return f"{pad}{header}{{\n{inner}\n{closing}"

    def slots(self) -> list[Slot]:
        found = self.graph.slots() if self.graph is not None else []
        for pattern in self.patterns:
            found.extend(pattern.slots())
        return found


def graph(name: Term, *patterns) -> Group:
    return Group(list(patterns), graph=name)


def optional(*patterns) -> Group:
    return Group(list(patterns), optional=True)


def optional_graph(name: Term, *patterns) -> Group:
    return Group(list(patterns), graph=name, optional=True)


def _render_element(element: Any, bindings: Bindings, indent: int) -> str:
    if isinstance(element, Group):
        return element.render(bindings, indent)
    return "  " * indent + element.render(bindings)


def _render_block(elements: list, bindings: Bindings) -> str:
    return "\n".join(_render_element(e, bindings, 1) for e in elements)


def _unique(slots: list[Slot]) -> list[Slot]:
    seen: list[Slot] = []
    for slot in slots:
        if not any(slot is s for s in seen):
            seen.append(slot)
    return seen


# =============================================================================
# Operations
# =============================================================================

@dataclass
class UpdateOperation:
    """A single DELETE { } INSERT { } WHERE { } update."""
    delete: list[Group] = field(default_factory=list)
    insert: list[Group] = field(default_factory=list)
    where: list = field(default_factory=list)

    def slots(self) -> list[Slot]:
        found: list[Slot] = []
        for element in self.delete + self.insert + self.where:
            found.extend(element.slots())
        return _unique(found)

    def render(self, bindings: Bindings) -> str:
        missing = [slot.name for slot in self.slots() if slot not in bindings]
        if missing:
            raise UnboundSlotError(f"No values bound for slots {missing}")
        parts = []
        if self.delete:
            parts.append("DELETE {\n" + _render_block(self.delete, bindings) + "\n}")
        if self.insert:
            parts.append("INSERT {\n" + _render_block(self.insert, bindings) + "\n}")
        parts.append("WHERE {\n" + _render_block(self.where, bindings) + "\n}")
        return "\n".join(parts)


@dataclass
class InsertData:
    """INSERT DATA { GRAPH <g> { ground triples } }"""
    graphs: dict[str, list] = field(default_factory=dict)

    keyword: ClassVar[str] = "INSERT DATA"

    def add(self, graph_iri: str, subject: Any, predicate: Any, obj: Any) -> None:
        if not is_iri(graph_iri):
            raise ValueError(f"Invalid graph IRI: {graph_iri!r}")
        self.graphs.setdefault(graph_iri, []).append((subject, predicate, obj))

    def __len__(self) -> int:
        return sum(len(triples) for triples in self.graphs.values())

    def render(self) -> str:
        blocks = []
        for graph_iri, triples in self.graphs.items():
            lines = "\n".join(f"    {s} {p} {o} ." for s, p, o in triples)
            blocks.append(f"  GRAPH {Iri(graph_iri)} {{\n{lines}\n  }}")
        return f"{self.keyword} {{\n" + "\n".join(blocks) + "\n}"


@dataclass
class DeleteData(InsertData):
    """DELETE DATA { GRAPH <g> { ground triples } }"""
    keyword: ClassVar[str] = "DELETE DATA"


def update_request(*operations: InsertData) -> str:
    """Join non-empty data blocks into one update request."""
    return " ;\n".join(operation.render() for operation in operations if len(operation))


@dataclass
class SelectQuery:
    """SELECT query; an empty variable list means SELECT *."""
    variables: list[Variable] = field(default_factory=list)
    where: list = field(default_factory=list)
    distinct: bool = False
    group_by: list[Variable] = field(default_factory=list)
    aggregates: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None

    def slots(self) -> list[Slot]:
        found: list[Slot] = []
        for element in self.where:
            found.extend(element.slots())
        return _unique(found)

    def render(self, bindings: Bindings | None = None) -> str:
        bindings = bindings or {}
        missing = [slot.name for slot in self.slots() if slot not in bindings]
        if missing:
            raise UnboundSlotError(f"No values bound for slots {missing}")
        projection = " ".join([str(v) for v in self.variables] + self.aggregates) or "*"
        distinct = "DISTINCT " if self.distinct else ""
        parts = [f"SELECT {distinct}{projection}", "WHERE {", _render_block(self.where, bindings), "}"]
        if self.group_by:
            parts.append("GROUP BY " + " ".join(str(v) for v in self.group_by))
        if self.limit is not None:
            parts.append(f"LIMIT {self.limit}")
        if self.offset is not None:
            parts.append(f"OFFSET {self.offset}")
        return "\n".join(parts)
