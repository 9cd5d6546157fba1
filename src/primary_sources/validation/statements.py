"""
Structural validation of Wikidata statement datasets.

A dataset is a set of triples following five patterns, e.g. for
https://www.wikidata.org/wiki/Special:EntityData/Q5921.ttl:

- Item:            wd:Q5921          p:P18               wds:Q5921-{uuid}
- Statement:       wds:Q5921-{uuid}  ps:P18              <http://commons...jpg>
- Reference:       wds:Q5921-{uuid}  prov:wasDerivedFrom wdref:{sha1}
- Qualifier:       wds:Q5921-{uuid}  pq:P2096            "Chuck Berry (2007)"@ca
- Reference value: wdref:{sha1}      pr:P143             wd:Q206855

Triples that fit none of the patterns, or that carry invalid identifiers,
are excluded and their offending components reported.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

import pyoxigraph as ox

from primary_sources.config import ValidatorConfig
from primary_sources.errors import RdfSyntaxError, StructuralViolation
from primary_sources.terms import Iri, Triple, term_string, triple_from_oxigraph
from primary_sources.validation.terms import (
    ForeignResource,
    TermKind,
    classify_foreign_resource,
    is_invalid_component,
)
from primary_sources.vocabulary import (
    ENTITY,
    PROP,
    PROP_QUALIFIER,
    PROP_REFERENCE,
    PROP_STATEMENT,
    PROV_WAS_DERIVED_FROM,
    REFERENCE,
    STATEMENT,
    WIKIDATA_ROOT,
)

logger = logging.getLogger(__name__)


class TriplePattern(Enum):
    """Structural pattern of a dataset triple."""
    ITEM = "item"
    STATEMENT = "statement"
    REFERENCE = "reference"
    QUALIFIER = "qualifier"
    REFERENCE_VALUE = "reference_value"
    UNRECOGNIZED = "unrecognized"


def classify(triple: Triple) -> TriplePattern:
    """Classify a triple by the namespaces of its subject and predicate."""
    subject = term_string(triple.subject)
    if subject.startswith(f"{ENTITY}Q"):
        return TriplePattern.ITEM
    if subject.startswith(STATEMENT):
        predicate = term_string(triple.predicate)
        if predicate.startswith(PROP_STATEMENT):
            return TriplePattern.STATEMENT
        if predicate == PROV_WAS_DERIVED_FROM:
            return TriplePattern.REFERENCE
        if predicate.startswith(PROP_QUALIFIER):
            return TriplePattern.QUALIFIER
        return TriplePattern.UNRECOGNIZED
    if subject.startswith(REFERENCE):
        return TriplePattern.REFERENCE_VALUE
    return TriplePattern.UNRECOGNIZED


@dataclass
class ValidationReport:
    """Outcome of partitioning a dataset."""
    valid: list[Triple] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    violations: list[StructuralViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.invalid

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid_triples": len(self.valid),
            "invalid": list(self.invalid),
            "violations": [v.to_dict() for v in self.violations],
        }


class StatementValidator:
    """
    Validates triples against the five statement patterns.

    Each ``validate_*`` method returns the string forms of the components
    that do not fit the position they occupy, in subject, predicate, object
    order. An empty list means the triple is valid.
    """

    def __init__(self, config: ValidatorConfig | None = None):
        self.config = config or ValidatorConfig()

    # =========================================================================
    # Per-pattern checks
    # =========================================================================

    def _check(self, component: str, namespace: str, kind: TermKind,
               expected: str) -> list[StructuralViolation]:
        if is_invalid_component(component, namespace, kind):
            return [StructuralViolation(component, expected)]
        return []

    def _check_item_value(self, obj: Any) -> list[StructuralViolation]:
        """Object check for statement and reference value triples."""
        if not isinstance(obj, Iri):
            return []
        value = obj.value
        if not is_invalid_component(value, ENTITY, TermKind.ITEM):
            return []
        if value.startswith(WIKIDATA_ROOT):
            logger.error(f"Probably a Wikidata term, but not an Item: {value}")
            return [StructuralViolation(value, "item")]
        threshold = self.config.edit_distance_threshold
        if classify_foreign_resource(value, ENTITY, threshold) is ForeignResource.TYPO:
            return [StructuralViolation(value, "item")]
        return []

    def item_violations(self, triple: Triple) -> list[StructuralViolation]:
        subject, predicate, obj = triple.component_strings()
        return (
            self._check(subject, ENTITY, TermKind.ITEM, "item")
            + self._check(predicate, PROP, TermKind.PROPERTY, "claim property")
            + self._check(obj, STATEMENT, TermKind.STATEMENT, "statement node")
        )

    def statement_violations(self, triple: Triple) -> list[StructuralViolation]:
        subject, predicate, _ = triple.component_strings()
        return (
            self._check(subject, STATEMENT, TermKind.STATEMENT, "statement node")
            + self._check(predicate, PROP_STATEMENT, TermKind.PROPERTY, "statement property")
            + self._check_item_value(triple.object)
        )

    def reference_violations(self, triple: Triple) -> list[StructuralViolation]:
        subject, predicate, obj = triple.component_strings()
        violations = self._check(subject, STATEMENT, TermKind.STATEMENT, "statement node")
        if predicate != PROV_WAS_DERIVED_FROM:
            violations.append(StructuralViolation(predicate, "provenance predicate"))
        violations += self._check(obj, REFERENCE, TermKind.REFERENCE, "reference node")
        return violations

    def qualifier_violations(self, triple: Triple) -> list[StructuralViolation]:
        subject, predicate, obj = triple.component_strings()
        violations = (
            self._check(subject, STATEMENT, TermKind.STATEMENT, "statement node")
            + self._check(predicate, PROP_QUALIFIER, TermKind.PROPERTY, "qualifier property")
        )
        if isinstance(triple.object, Iri):
            violations += self._check(obj, ENTITY, TermKind.ITEM, "item")
        return violations

    def reference_value_violations(self, triple: Triple) -> list[StructuralViolation]:
        subject, predicate, _ = triple.component_strings()
        return (
            self._check(subject, REFERENCE, TermKind.REFERENCE, "reference node")
            + self._check(predicate, PROP_REFERENCE, TermKind.PROPERTY, "reference property")
            + self._check_item_value(triple.object)
        )

    def validate_item_triple(self, triple: Triple) -> list[str]:
        return [v.component for v in self.item_violations(triple)]

    def validate_statement_triple(self, triple: Triple) -> list[str]:
        return [v.component for v in self.statement_violations(triple)]

    def validate_reference_triple(self, triple: Triple) -> list[str]:
        return [v.component for v in self.reference_violations(triple)]

    def validate_qualifier_triple(self, triple: Triple) -> list[str]:
        return [v.component for v in self.qualifier_violations(triple)]

    def validate_reference_value_triple(self, triple: Triple) -> list[str]:
        return [v.component for v in self.reference_value_violations(triple)]

    # =========================================================================
    # Dataset partitioning
    # =========================================================================

    def violations(self, triple: Triple) -> list[StructuralViolation]:
        """All violations of a single triple, whatever its pattern."""
        pattern = classify(triple)
        if pattern is TriplePattern.ITEM:
            return self.item_violations(triple)
        if pattern is TriplePattern.STATEMENT:
            return self.statement_violations(triple)
        if pattern is TriplePattern.REFERENCE:
            return self.reference_violations(triple)
        if pattern is TriplePattern.QUALIFIER:
            return self.qualifier_violations(triple)
        if pattern is TriplePattern.REFERENCE_VALUE:
            return self.reference_value_violations(triple)
        logger.error(f"Invalid triple: {triple}")
        return [StructuralViolation(str(triple), "statement pattern")]

    def partition(self, triples: Iterable[Triple]) -> ValidationReport:
        """
        Split a dataset into valid triples and invalid components.

        Invalid components are reported in input order; a triple fitting no
        pattern is reported as a whole.
        """
        report = ValidationReport()
        for triple in triples:
            violations = self.violations(triple)
            if violations:
                report.violations.extend(violations)
                report.invalid.extend(v.component for v in violations)
            else:
                report.valid.append(triple)

        if report.is_valid:
            logger.info("Your dataset is valid and will be fully uploaded")
        else:
            logger.warning(
                f"Your dataset has issues, only valid triples will be uploaded. "
                f"List of invalid triples: {report.invalid}"
            )
        return report


def partition(triples: Iterable[Triple], config: ValidatorConfig | None = None) -> ValidationReport:
    """Partition ``triples`` with a default validator."""
    return StatementValidator(config).partition(triples)


# =============================================================================
# Syntax check
# =============================================================================

RDF_FORMATS = {
    "turtle": ox.RdfFormat.TURTLE,
    "ttl": ox.RdfFormat.TURTLE,
    "nt": ox.RdfFormat.N_TRIPLES,
    "ntriples": ox.RdfFormat.N_TRIPLES,
    "nq": ox.RdfFormat.N_QUADS,
    "nquads": ox.RdfFormat.N_QUADS,
    "trig": ox.RdfFormat.TRIG,
    "xml": ox.RdfFormat.RDF_XML,
    "rdf": ox.RdfFormat.RDF_XML,
    "rdfxml": ox.RdfFormat.RDF_XML,
}

CONTENT_TYPES = {
    "text/turtle": ox.RdfFormat.TURTLE,
    "application/x-turtle": ox.RdfFormat.TURTLE,
    "application/n-triples": ox.RdfFormat.N_TRIPLES,
    "application/n-quads": ox.RdfFormat.N_QUADS,
    "application/trig": ox.RdfFormat.TRIG,
    "application/rdf+xml": ox.RdfFormat.RDF_XML,
}


def rdf_format_for(content_type: str | None = None, file_name: str | None = None) -> ox.RdfFormat:
    """Guess the RDF format of an upload, falling back to Turtle."""
    if content_type:
        media_type = content_type.split(";")[0].strip().lower()
        if media_type in CONTENT_TYPES:
            return CONTENT_TYPES[media_type]
    if file_name:
        extension = os.path.splitext(file_name)[1].lstrip(".").lower()
        if extension in RDF_FORMATS:
            return RDF_FORMATS[extension]
    logger.debug(f"Could not guess RDF format of {file_name!r} ({content_type}), using Turtle")
    return ox.RdfFormat.TURTLE


def check_syntax(data: bytes | str, base_uri: str, format: str | ox.RdfFormat = "turtle") -> list[Triple]:
    """
    Parse a whole dataset in memory.

    Raises:
        RdfSyntaxError: if the data is not valid RDF, or uses RDF-star
        quoted triples; nothing is returned for partially valid input.
    """
    if isinstance(format, ox.RdfFormat):
        rdf_format = format
    else:
        if format.lower() not in RDF_FORMATS:
            raise ValueError(f"Unsupported RDF format: {format}")
        rdf_format = RDF_FORMATS[format.lower()]

    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        quads = list(ox.parse(data, rdf_format, base_iri=base_uri))
    except SyntaxError as e:
        raise RdfSyntaxError(
            str(e.msg or e),
            line=getattr(e, "lineno", None),
            column=getattr(e, "offset", None),
        ) from e

    for quad in quads:
        if isinstance(quad.subject, ox.Triple) or isinstance(quad.object, ox.Triple):
            raise RdfSyntaxError(f"Quoted triples are not supported: {quad}")

    triples = [triple_from_oxigraph(quad) for quad in quads]
    logger.debug(f"Parsed {len(triples)} triples from {base_uri}")
    return triples
