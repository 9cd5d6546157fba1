"""
Dataset ingestion.

An upload goes through:
1. Syntax check: invalid RDF rejects the whole upload
2. Structural validation: invalid triples are dropped and reported
3. Typing: every subject item gets ``a wikibase:Item``
4. Loading: valid triples go to ``<dataset>/new``, uploader and description
   to the metadata graph, in one INSERT DATA

Coordinate and time values are stored in the codec's canonical text.
A dataset update runs the same checks on a remove set and an add set and
applies both in one DELETE DATA / INSERT DATA request.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pyoxigraph as ox

from primary_sources.codec.values import canonical_value
from primary_sources.config import ValidatorConfig
from primary_sources.curation.models import ILLEGAL_USER_NAME
from primary_sources.errors import AmbiguousValue
from primary_sources.sparql import DeleteData, InsertData, is_iri, update_request
from primary_sources.terms import Iri, PlainLiteral, Triple
from primary_sources.validation.statements import StatementValidator, check_syntax
from primary_sources.validation.terms import TermKind, is_valid_term
from primary_sources.vocabulary import (
    DESCRIPTION,
    ENTITY,
    METADATA_GRAPH,
    NEW_STATE_SUFFIX,
    RDF_TYPE,
    UPLOADED_BY,
    WIKIBASE_ITEM,
    dataset_graph,
    user_iri,
)

if TYPE_CHECKING:
    from primary_sources.store import GraphStore

logger = logging.getLogger(__name__)

# Scheme followed by ://, anything else is a name to mint a URI from
DATASET_URI = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*://\S+")


def mint_dataset_uri(dataset_name: str) -> str:
    """
    Build a readable ASCII dataset URI from a free-text name.

    >>> mint_dataset_uri("StrepHit Soccer")
    'http://strephit-soccer/new'
    """
    only_letters = re.sub(r"[^\w\s]|_", "", dataset_name)
    no_diacritics = (
        unicodedata.normalize("NFD", only_letters).encode("ascii", "ignore").decode("ascii")
    )
    clean = re.sub(r"\s+", "-", no_diacritics.strip()).lower()
    if not clean:
        raise ValueError(f"Cannot mint a dataset URI from {dataset_name!r}")
    dataset_uri = f"http://{clean}/{NEW_STATE_SUFFIX}"
    logger.info(f"Named graph URI: {dataset_uri}")
    return dataset_uri


def item_type_triples(triples: list[Triple]) -> list[Triple]:
    """``wd:Qn a wikibase:Item`` for every distinct subject item."""
    items: dict[str, None] = {}
    for triple in triples:
        subject = triple.subject
        if isinstance(subject, Iri) and subject.value.startswith(ENTITY):
            if is_valid_term(subject.value[len(ENTITY):], TermKind.ITEM):
                items.setdefault(subject.value)
    return [Triple(Iri(item), Iri(RDF_TYPE), Iri(WIKIBASE_ITEM)) for item in items]


@dataclass
class IngestionReport:
    """Outcome of one upload."""
    dataset: str
    uploader: str
    valid_triples: int = 0
    typed_items: int = 0
    invalid: list[str] = field(default_factory=list)

    @property
    def loaded(self) -> bool:
        return self.valid_triples > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset": self.dataset,
            "uploader": self.uploader,
            "valid_triples": self.valid_triples,
            "typed_items": self.typed_items,
            "invalid": list(self.invalid),
        }


@dataclass
class DatasetUpdateReport:
    """Outcome of one dataset update."""
    dataset: str
    uploader: str
    removed_triples: int = 0
    added_triples: int = 0
    typed_items: int = 0
    invalid_removed: list[str] = field(default_factory=list)
    invalid_added: list[str] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.removed_triples > 0 or self.added_triples > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset": self.dataset,
            "uploader": self.uploader,
            "removed_triples": self.removed_triples,
            "added_triples": self.added_triples,
            "typed_items": self.typed_items,
            "invalid_removed": list(self.invalid_removed),
            "invalid_added": list(self.invalid_added),
        }


def _check_user(user: str) -> None:
    if not user or ILLEGAL_USER_NAME.search(user):
        raise ValueError(f"Illegal characters in user name: {user!r}")


def _canonical_triples(triples: list[Triple]) -> list[Triple]:
    canonical = []
    for triple in triples:
        try:
            obj = canonical_value(triple.object)
        except AmbiguousValue as e:
            logger.warning(f"Keeping value as uploaded: {e}")
            obj = triple.object
        canonical.append(Triple(triple.subject, triple.predicate, obj))
    return canonical


class IngestionService:
    """Validates uploads and loads them into a graph store."""

    def __init__(self, store: GraphStore, config: ValidatorConfig | None = None):
        self.store = store
        self.validator = StatementValidator(config)

    def ingest(
        self,
        data: bytes | str,
        dataset: str,
        user: str,
        format: str | ox.RdfFormat = "turtle",
        description: str | None = None,
    ) -> IngestionReport:
        """
        Upload a dataset into ``<dataset>/new``.

        Args:
            data: serialized RDF
            dataset: dataset URI, or a free-text name to mint one from
            user: uploader's wiki user name
            format: RDF format name or pyoxigraph format
            description: optional dataset description

        Raises:
            RdfSyntaxError: if ``data`` is not valid RDF; nothing is loaded.
            StoreError: if the store rejects the insert.
        """
        _check_user(user)
        if not DATASET_URI.fullmatch(dataset):
            dataset = mint_dataset_uri(dataset)
        graph = dataset_graph(dataset, NEW_STATE_SUFFIX)
        if not is_iri(graph):
            raise ValueError(f"Invalid dataset URI: {dataset!r}")

        triples = check_syntax(data, graph, format)
        validation = self.validator.partition(triples)
        valid = _canonical_triples(validation.valid)
        types = item_type_triples(valid)
        report = IngestionReport(
            dataset=graph,
            uploader=user,
            valid_triples=len(valid),
            typed_items=len(types),
            invalid=validation.invalid,
        )
        if not valid:
            logger.warning(f"Nothing to load into {graph}")
            return report

        insert = InsertData()
        for triple in valid + types:
            insert.add(graph, triple.subject, triple.predicate, triple.object)
        insert.add(METADATA_GRAPH, Iri(graph), Iri(UPLOADED_BY), Iri(user_iri(user)))
        if description:
            insert.add(METADATA_GRAPH, Iri(graph), Iri(DESCRIPTION), PlainLiteral(description))

        self.store.update(insert.render())
        logger.info(f"Loaded {report.valid_triples} triples into {graph}, uploaded by {user}")
        return report

    def update(
        self,
        remove_data: bytes | str,
        add_data: bytes | str,
        dataset: str,
        user: str,
        remove_format: str | ox.RdfFormat = "turtle",
        add_format: str | ox.RdfFormat = "turtle",
    ) -> DatasetUpdateReport:
        """
        Replace part of an uploaded dataset.

        Both sets are syntax checked before anything is validated, so a
        broken set leaves the store untouched. Valid removals and additions
        then go to ``<dataset>/new`` in a single request, removals first.
        Item types are only added, since other statements may still use
        the item.

        Raises:
            ValueError: on an illegal user name or a dataset that is not a URI.
            RdfSyntaxError: if either set is not valid RDF.
            StoreError: if the store rejects the update.
        """
        _check_user(user)
        if not DATASET_URI.fullmatch(dataset) or not is_iri(dataset):
            raise ValueError(f"Invalid dataset URI: {dataset!r}")
        graph = dataset_graph(dataset, NEW_STATE_SUFFIX)

        to_remove = check_syntax(remove_data, graph, remove_format)
        to_add = check_syntax(add_data, graph, add_format)
        removal = self.validator.partition(to_remove)
        addition = self.validator.partition(to_add)
        removed = _canonical_triples(removal.valid)
        added = _canonical_triples(addition.valid)
        types = item_type_triples(added)
        report = DatasetUpdateReport(
            dataset=graph,
            uploader=user,
            removed_triples=len(removed),
            added_triples=len(added),
            typed_items=len(types),
            invalid_removed=removal.invalid,
            invalid_added=addition.invalid,
        )
        if not report.applied:
            logger.warning(f"Neither set has valid content, {graph} is left as is")
            return report

        delete = DeleteData()
        for triple in removed:
            delete.add(graph, triple.subject, triple.predicate, triple.object)
        insert = InsertData()
        for triple in added + types:
            insert.add(graph, triple.subject, triple.predicate, triple.object)

        self.store.update(update_request(delete, insert))
        logger.info(
            f"Updated {graph} for {user}: {report.removed_triples} removed, "
            f"{report.added_triples} added"
        )
        return report
