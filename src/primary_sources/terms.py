"""
RDF graph terms.

A closed set of term types shared by the validator, the value codec and
the curation update builder:

- Iri: an absolute IRI
- PlainLiteral: a string literal without language or datatype
- LangLiteral: a language-tagged string
- TypedLiteral: a literal with a datatype IRI
- BlankNode: only produced when parsing; never a statement value
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

import pyoxigraph as ox

from primary_sources.vocabulary import RDF_LANG_STRING, XSD_STRING


# BCP 47 shape: primary subtag, then hyphen-separated subtags
LANGUAGE_TAG = re.compile(r"[A-Za-z]+(?:-[A-Za-z0-9]+)*")


def is_language_tag(value: str) -> bool:
    return LANGUAGE_TAG.fullmatch(value) is not None


def escape_literal(value: str) -> str:
    """Escape a lexical form for N-Triples and SPARQL string syntax."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


# =============================================================================
# Term Types
# =============================================================================

@dataclass(frozen=True)
class Iri:
    """An absolute IRI."""
    value: str

    def __str__(self) -> str:
        return f"<{self.value}>"


@dataclass(frozen=True)
class PlainLiteral:
    """A simple string literal."""
    value: str

    def __str__(self) -> str:
        return f'"{escape_literal(self.value)}"'


@dataclass(frozen=True)
class LangLiteral:
    """A language-tagged string literal."""
    value: str
    language: str

    def __str__(self) -> str:
        return f'"{escape_literal(self.value)}"@{self.language}'


@dataclass(frozen=True)
class TypedLiteral:
    """A literal with an explicit datatype."""
    value: str
    datatype: str

    def __str__(self) -> str:
        return f'"{escape_literal(self.value)}"^^<{self.datatype}>'


@dataclass(frozen=True)
class BlankNode:
    """A blank node (anonymous resource)."""
    label: str

    def __str__(self) -> str:
        return f"_:{self.label}"


# Any term that can be a statement value
GraphTerm = Union[Iri, PlainLiteral, LangLiteral, TypedLiteral]

# Any term that can appear in a parsed triple
Node = Union[Iri, PlainLiteral, LangLiteral, TypedLiteral, BlankNode]


def term_string(term: Node) -> str:
    """String form of a term as reported in invalid-component lists."""
    if isinstance(term, BlankNode):
        return str(term)
    return term.value


# =============================================================================
# Triples
# =============================================================================

@dataclass(frozen=True)
class Triple:
    """A parsed RDF triple."""
    subject: Iri | BlankNode
    predicate: Iri
    object: Node

    def __str__(self) -> str:
        return f"{self.subject} {self.predicate} {self.object} ."

    def component_strings(self) -> tuple[str, str, str]:
        return (
            term_string(self.subject),
            term_string(self.predicate),
            term_string(self.object),
        )


# =============================================================================
# pyoxigraph conversion
# =============================================================================

def from_oxigraph(term: ox.NamedNode | ox.BlankNode | ox.Literal) -> Node:
    """Convert a pyoxigraph term into a graph term."""
    if isinstance(term, ox.NamedNode):
        return Iri(term.value)
    if isinstance(term, ox.BlankNode):
        return BlankNode(term.value)
    if isinstance(term, ox.Literal):
        if term.language:
            return LangLiteral(term.value, term.language)
        datatype = term.datatype.value if term.datatype is not None else XSD_STRING
        if datatype == XSD_STRING:
            return PlainLiteral(term.value)
        return TypedLiteral(term.value, datatype)
    raise TypeError(f"Unsupported pyoxigraph term: {term!r}")


def to_oxigraph(term: Node) -> ox.NamedNode | ox.BlankNode | ox.Literal:
    """Convert a graph term into a pyoxigraph term."""
    if isinstance(term, Iri):
        return ox.NamedNode(term.value)
    if isinstance(term, BlankNode):
        return ox.BlankNode(term.label)
    if isinstance(term, PlainLiteral):
        return ox.Literal(term.value)
    if isinstance(term, LangLiteral):
        return ox.Literal(term.value, language=term.language)
    if isinstance(term, TypedLiteral):
        if term.datatype == RDF_LANG_STRING:
            raise TypeError("rdf:langString literals need a language tag")
        return ox.Literal(term.value, datatype=ox.NamedNode(term.datatype))
    raise TypeError(f"Unsupported graph term: {term!r}")


def triple_from_oxigraph(triple: ox.Triple | ox.Quad) -> Triple:
    """Convert a pyoxigraph triple or quad, dropping the graph name."""
    return Triple(
        from_oxigraph(triple.subject),
        from_oxigraph(triple.predicate),
        from_oxigraph(triple.object),
    )
