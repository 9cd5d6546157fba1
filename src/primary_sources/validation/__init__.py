"""Dataset validation: identifier grammars and statement patterns."""

from primary_sources.validation.terms import (
    ForeignResource,
    TermKind,
    classify_foreign_resource,
    is_invalid_component,
    is_valid_term,
    levenshtein_distance,
    namespace_edit_distance,
)
from primary_sources.validation.statements import (
    StatementValidator,
    TriplePattern,
    ValidationReport,
    check_syntax,
    classify,
    partition,
    rdf_format_for,
)

__all__ = [
    "ForeignResource",
    "TermKind",
    "classify_foreign_resource",
    "is_invalid_component",
    "is_valid_term",
    "levenshtein_distance",
    "namespace_edit_distance",
    "StatementValidator",
    "TriplePattern",
    "ValidationReport",
    "check_syntax",
    "classify",
    "partition",
    "rdf_format_for",
]
