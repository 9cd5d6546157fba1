"""
Error taxonomy for primary sources.

Scope of each error:
- RdfSyntaxError: the whole submission is rejected
- StructuralViolation: one triple is dropped, the rest proceeds
- AmbiguousValue / UnsupportedDatatype / MalformedStatement: one statement
- StoreError: graph store failure, payload passed through unchanged
"""
from __future__ import annotations

from typing import Any


class PrimarySourcesError(Exception):
    """Base class for primary sources errors."""
    pass


class RdfSyntaxError(PrimarySourcesError):
    """Raised when submitted bytes are not valid RDF."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        location = ""
        if line is not None:
            location = f" (line {line}, column {column})"
        super().__init__(f"{message}{location}")


class StructuralViolation(PrimarySourcesError):
    """
    A triple component that does not fit the position it occupies.

    Collected into validation reports rather than raised.
    """

    def __init__(self, component: str, expected_kind: str):
        self.component = component
        self.expected_kind = expected_kind
        super().__init__(f"{component} is not a valid {expected_kind}")

    def to_dict(self) -> dict[str, str]:
        return {"component": self.component, "expected_kind": self.expected_kind}


class AmbiguousValue(PrimarySourcesError):
    """Raised when a value token matches none of the known value shapes."""

    def __init__(self, raw: Any, reason: str | None = None):
        self.raw = raw
        message = f"Ambiguous value: {raw!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedDatatype(PrimarySourcesError):
    """Raised when a literal carries a datatype the codec does not handle."""

    def __init__(self, iri: str):
        self.iri = iri
        super().__init__(f"Unsupported datatype: <{iri}>")


class MalformedStatement(PrimarySourcesError):
    """Raised when a curator line cannot be parsed."""
    pass


class InvalidLocator(PrimarySourcesError):
    """Raised when a statement locator has invalid identifiers."""
    pass


class InvalidTransition(PrimarySourcesError):
    """Raised when a curation decision targets a state it cannot reach."""

    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(f"Cannot move a statement from {source} to {target}")


class StoreError(PrimarySourcesError):
    """Raised when the graph store rejects a query or update."""

    def __init__(self, payload: Any, status_code: int | None = None):
        self.payload = payload
        self.status_code = status_code
        super().__init__(f"Graph store error: {payload}")
