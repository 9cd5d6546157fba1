"""
Wikidata identifier grammars and the namespace typo heuristic.
"""
from __future__ import annotations

import logging
import re
from enum import Enum

from primary_sources.config import DEFAULT_EDIT_DISTANCE_THRESHOLD

logger = logging.getLogger(__name__)


class TermKind(Enum):
    """Kinds of Wikidata identifiers."""
    ITEM = "item"
    PROPERTY = "property"
    STATEMENT = "statement"
    REFERENCE = "reference"


class ForeignResource(Enum):
    """How a resource outside the expected namespace is treated."""
    TYPO = "typo"        # Close to a Wikidata namespace, flagged invalid
    FOREIGN = "foreign"  # Unrelated resource, left alone


_UUID = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

TERM_GRAMMARS: dict[TermKind, re.Pattern] = {
    TermKind.ITEM: re.compile(r"^Q\d+$"),
    TermKind.PROPERTY: re.compile(r"^P\d+$"),
    TermKind.STATEMENT: re.compile(rf"^Q\d+-{_UUID}$"),
    TermKind.REFERENCE: re.compile(r"^[0-9a-f]{40}$"),
}

# Item grammar without anchors, used to cut a resource into namespace + term
_ITEM_TERM = re.compile(r"Q\d+")


def is_valid_term(term: str, kind: TermKind) -> bool:
    """Check a local name against the grammar of ``kind``."""
    return TERM_GRAMMARS[kind].fullmatch(term) is not None


def is_invalid_component(component: str, expected_namespace: str, kind: TermKind) -> bool:
    """
    Check a full IRI string against a namespace and a term grammar.

    Returns True unless ``component`` starts with ``expected_namespace`` and
    the remainder is a valid term of ``kind``.
    """
    if not component.startswith(expected_namespace):
        return True
    return not is_valid_term(component[len(expected_namespace):], kind)


def levenshtein_distance(a: str, b: str) -> int:
    """Levenshtein edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def resource_namespace(resource: str) -> str:
    """Part of ``resource`` preceding the first item identifier, or all of it."""
    return _ITEM_TERM.split(resource, maxsplit=1)[0]


def namespace_edit_distance(resource: str, expected_namespace: str) -> int:
    """Edit distance between the namespace of ``resource`` and ``expected_namespace``."""
    return levenshtein_distance(resource_namespace(resource), expected_namespace)


def classify_foreign_resource(
    resource: str,
    expected_namespace: str,
    threshold: int = DEFAULT_EDIT_DISTANCE_THRESHOLD,
) -> ForeignResource:
    """
    Tell a mistyped Wikidata resource from an unrelated one.

    A namespace within ``threshold`` edits of the expected one is a typo;
    anything further away is an intentionally foreign resource.
    """
    distance = namespace_edit_distance(resource, expected_namespace)
    if distance <= threshold:
        logger.error(f"Probably a typo: {resource} (distance {distance})")
        return ForeignResource.TYPO
    logger.debug(f"Foreign resource: {resource} (distance {distance})")
    return ForeignResource.FOREIGN
