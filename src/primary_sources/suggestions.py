"""
Statement suggestions for curators.

Reads the ``new`` statements about an item and turns them into
QuickStatements lines, one line per reference value, e.g.:

    Q5921  P18  "http://.../Chuck-berry.jpg"  P2096  en:"Chuck Berry (2007)"  S143  Q206855

Search lists the same lines for any item, filtered by main property and
by an item value, a page of rows at a time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from primary_sources.codec.quickstatements import CuratorLine, property_to_reference
from primary_sources.codec.values import graph_term_to_curator_token, item_id
from primary_sources.errors import AmbiguousValue, UnsupportedDatatype
from primary_sources.sparql import (
    Group,
    SelectQuery,
    Slot,
    SlotIri,
    SlotKind,
    TriplePattern,
    Variable,
    const,
    optional,
    strends,
    strstarts,
)
from primary_sources.terms import term_string
from primary_sources.validation.terms import TermKind, is_valid_term
from primary_sources.vocabulary import (
    ENTITY,
    NEW_STATE_SUFFIX,
    PROP,
    PROP_QUALIFIER,
    PROP_REFERENCE,
    PROP_STATEMENT,
    PROV_WAS_DERIVED_FROM,
    RDF_TYPE,
    WIKIBASE_ITEM,
    dataset_graph,
)

if TYPE_CHECKING:
    from primary_sources.store import GraphStore

logger = logging.getLogger(__name__)

SUGGESTION_FORMAT = "QuickStatement"

QID = Slot("qid", SlotKind.ITEM_ID)
DATASET = Slot("dataset", SlotKind.IRI)
PID = Slot("pid", SlotKind.PROPERTY_ID)
VALUE_QID = Slot("value", SlotKind.ITEM_ID)

DEFAULT_SEARCH_OFFSET = 0
DEFAULT_SEARCH_LIMIT = 50

DATASET_VAR = Variable("dataset")
ITEM = Variable("item")
VALUE_PROPERTY = Variable("value_property")
PROPERTY = Variable("property")
STATEMENT_NODE = Variable("statement_node")
STATEMENT_PROPERTY = Variable("statement_property")
STATEMENT_VALUE = Variable("statement_value")
REFERENCE_PROPERTY = Variable("reference_property")
REFERENCE_VALUE = Variable("reference_value")


def _suggestion_patterns() -> list:
    return [
        TriplePattern(SlotIri(ENTITY, QID), const(RDF_TYPE), const(WIKIBASE_ITEM)),
        TriplePattern(SlotIri(ENTITY, QID), PROPERTY, STATEMENT_NODE),
        strstarts(PROPERTY, PROP),
        TriplePattern(STATEMENT_NODE, STATEMENT_PROPERTY, STATEMENT_VALUE),
        optional(TriplePattern(STATEMENT_VALUE, REFERENCE_PROPERTY, REFERENCE_VALUE)),
    ]


def build_suggestion_query(qid: str, dataset: str | None = None) -> str:
    """Query the new statements of ``qid`` in one dataset, or in all of them."""
    columns = [PROPERTY, STATEMENT_NODE, STATEMENT_PROPERTY, STATEMENT_VALUE,
               REFERENCE_PROPERTY, REFERENCE_VALUE]
    if dataset is None:
        query = SelectQuery(
            variables=[DATASET_VAR] + columns,
            where=[
                Group(_suggestion_patterns(), graph=DATASET_VAR),
                strends(DATASET_VAR, f"/{NEW_STATE_SUFFIX}"),
            ],
        )
        return query.render({QID: qid})
    query = SelectQuery(
        variables=columns,
        where=[Group(_suggestion_patterns(), graph=SlotIri(DATASET))],
    )
    return query.render({QID: qid, DATASET: dataset_graph(dataset, NEW_STATE_SUFFIX)})


def build_search_query(
    dataset: str | None = None,
    property: str | None = None,
    value: str | None = None,
    offset: int = DEFAULT_SEARCH_OFFSET,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> str:
    """
    Query new statements of any item, one dataset or all of them.

    Args:
        dataset: dataset URI; None searches every ``new`` graph
        property: main property PID to restrict to
        value: item QID that the statement or one of its qualifiers must point to
        offset: rows to skip
        limit: maximum number of rows

    Offset and limit count result rows, not statements.
    """
    if property is not None and not is_valid_term(property, TermKind.PROPERTY):
        raise ValueError(f"Invalid PID: {property!r}")
    if value is not None and not is_valid_term(value, TermKind.ITEM):
        raise ValueError(f"Invalid QID: {value!r}. The value must be a Wikidata item")
    if offset < 0 or limit < 1:
        raise ValueError(f"Invalid offset {offset} or limit {limit}")

    bindings: dict[Slot, Any] = {}
    patterns: list = [TriplePattern(ITEM, const(RDF_TYPE), const(WIKIBASE_ITEM))]
    columns = [ITEM]
    if property is None:
        patterns += [TriplePattern(ITEM, PROPERTY, STATEMENT_NODE), strstarts(PROPERTY, PROP)]
        columns.append(PROPERTY)
    else:
        patterns.append(TriplePattern(ITEM, SlotIri(PROP, PID), STATEMENT_NODE))
        bindings[PID] = property
    if value is not None:
        patterns.append(TriplePattern(STATEMENT_NODE, VALUE_PROPERTY, SlotIri(ENTITY, VALUE_QID)))
        bindings[VALUE_QID] = value
    patterns += [
        TriplePattern(STATEMENT_NODE, STATEMENT_PROPERTY, STATEMENT_VALUE),
        optional(TriplePattern(STATEMENT_VALUE, REFERENCE_PROPERTY, REFERENCE_VALUE)),
    ]
    columns += [STATEMENT_NODE, STATEMENT_PROPERTY, STATEMENT_VALUE,
                REFERENCE_PROPERTY, REFERENCE_VALUE]

    if dataset is None:
        query = SelectQuery(
            variables=[DATASET_VAR] + columns,
            where=[Group(patterns, graph=DATASET_VAR), strends(DATASET_VAR, f"/{NEW_STATE_SUFFIX}")],
            limit=limit,
            offset=offset,
        )
    else:
        query = SelectQuery(
            variables=columns,
            where=[Group(patterns, graph=SlotIri(DATASET))],
            limit=limit,
            offset=offset,
        )
        bindings[DATASET] = dataset_graph(dataset, NEW_STATE_SUFFIX)
    return query.render(bindings)


@dataclass
class Suggestion:
    """A statement to be curated, as a QuickStatements line."""
    dataset: str
    statement: str
    state: str = NEW_STATE_SUFFIX
    format: str = SUGGESTION_FORMAT

    def to_dict(self) -> dict[str, str]:
        return {
            "dataset": self.dataset,
            "format": self.format,
            "state": self.state,
            "statement": self.statement,
        }


@dataclass
class _StatementGroup:
    dataset: str
    subject: str
    main: tuple[str, str] | None = None
    qualifiers: list[tuple[str, str]] = field(default_factory=list)
    references: list[tuple[str, str]] = field(default_factory=list)


class SuggestionFormatter:
    """Groups suggestion query rows by statement node and dataset."""

    def format(
        self,
        rows: Iterable[Mapping[str, Any]],
        qid: str,
        dataset: str | None = None,
    ) -> list[Suggestion]:
        if not is_valid_term(qid, TermKind.ITEM):
            raise ValueError(f"Invalid subject QID: {qid}")
        suggestions = self._format(rows, dataset, subject=qid)
        logger.debug(f"Converted {len(suggestions)} suggestions for {qid}")
        return suggestions

    def format_search(
        self,
        rows: Iterable[Mapping[str, Any]],
        dataset: str | None = None,
        property: str | None = None,
    ) -> list[Suggestion]:
        """
        Format search rows, where the subject comes from each row's ``item``.

        ``property`` is the main property when the query fixed it and the
        rows carry no ``property`` column.
        """
        suggestions = self._format(rows, dataset, main_property=property)
        logger.debug(f"Converted {len(suggestions)} search results")
        return suggestions

    def _format(
        self,
        rows: Iterable[Mapping[str, Any]],
        dataset: str | None,
        subject: str | None = None,
        main_property: str | None = None,
    ) -> list[Suggestion]:
        default_dataset = dataset_graph(dataset, NEW_STATE_SUFFIX) if dataset else None
        groups: dict[tuple[str, str], _StatementGroup] = {}

        for row in rows:
            current_dataset = term_string(row["dataset"]) if row.get("dataset") else default_dataset
            if current_dataset is None:
                logger.warning(f"Skipping suggestion row without a dataset: {row}")
                continue
            current_subject = subject or item_id(row.get("item"))
            if current_subject is None:
                logger.warning(f"Skipping suggestion row without a subject item: {row}")
                continue
            key = (term_string(row["statement_node"]), current_dataset)
            group = groups.setdefault(key, _StatementGroup(current_dataset, current_subject))
            try:
                self._add_row(group, row, main_property)
            except (AmbiguousValue, UnsupportedDatatype) as e:
                logger.warning(f"Skipping suggestion value of {key[0]}: {e}")

        suggestions = []
        for (statement_node, _), group in groups.items():
            if group.main is None:
                logger.debug(f"No main value left in new for {statement_node}, skipping")
                continue
            suggestions.extend(self._lines(group))
        return suggestions

    def _add_row(self, group: _StatementGroup, row: Mapping[str, Any],
                 main_property: str | None = None) -> None:
        statement_property = term_string(row["statement_property"])
        if statement_property.startswith(PROP_STATEMENT):
            if row.get("property") is not None:
                main_pid = term_string(row["property"])[len(PROP):]
            elif main_property is not None:
                main_pid = main_property
            else:
                main_pid = statement_property[len(PROP_STATEMENT):]
            group.main = (main_pid, graph_term_to_curator_token(row["statement_value"]))
        elif statement_property.startswith(PROP_QUALIFIER):
            pair = (
                statement_property[len(PROP_QUALIFIER):],
                graph_term_to_curator_token(row["statement_value"]),
            )
            if pair not in group.qualifiers:
                group.qualifiers.append(pair)
        elif statement_property == PROV_WAS_DERIVED_FROM:
            reference_property = row.get("reference_property")
            reference_value = row.get("reference_value")
            if reference_property is None or reference_value is None:
                return
            reference_pid = term_string(reference_property)
            if not reference_pid.startswith(PROP_REFERENCE):
                return
            pair = (
                property_to_reference(reference_pid[len(PROP_REFERENCE):]),
                graph_term_to_curator_token(reference_value),
            )
            if pair not in group.references:
                group.references.append(pair)

    def _lines(self, group: _StatementGroup) -> list[Suggestion]:
        main_pid, main_value = group.main
        line = CuratorLine(group.subject, main_pid, main_value, list(group.qualifiers))
        if not group.references:
            return [Suggestion(group.dataset, line.format())]
        suggestions = []
        for reference in group.references:
            line.references = [reference]
            suggestions.append(Suggestion(group.dataset, line.format()))
        return suggestions


def format_suggestions(rows: Iterable[Mapping[str, Any]], qid: str,
                       dataset: str | None = None) -> list[dict[str, str]]:
    return [s.to_dict() for s in SuggestionFormatter().format(rows, qid, dataset)]


class SuggestionService:
    """Fetches and formats suggestions from a graph store."""

    def __init__(self, store: GraphStore):
        self.store = store
        self.formatter = SuggestionFormatter()

    def suggest(self, qid: str, dataset: str | None = None) -> list[Suggestion]:
        rows = self.store.query(build_suggestion_query(qid, dataset))
        return self.formatter.format(rows, qid, dataset)


class SearchService:
    """Browses new statements by property and item value."""

    def __init__(self, store: GraphStore):
        self.store = store
        self.formatter = SuggestionFormatter()

    def search(
        self,
        dataset: str | None = None,
        property: str | None = None,
        value: str | None = None,
        offset: int = DEFAULT_SEARCH_OFFSET,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[Suggestion]:
        sparql = build_search_query(dataset, property, value, offset, limit)
        rows = self.store.query(sparql)
        return self.formatter.format_search(rows, dataset, property)
