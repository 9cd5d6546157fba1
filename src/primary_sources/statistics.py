"""
Dataset and curator statistics.

Per dataset, statements and reference values are counted in every state
graph and pivoted into one row:

    dataset | missing_statements | approved_statements | ... | total_references

``missing`` counts what is still in ``new``.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import polars as pl

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
    strstarts,
)
from primary_sources.terms import term_string
from primary_sources.vocabulary import (
    ACTIVITIES,
    DESCRIPTION,
    METADATA_GRAPH,
    PROP_REFERENCE,
    PROP_STATEMENT,
    UPLOADED_BY,
    USER_PREFIX,
)

if TYPE_CHECKING:
    from primary_sources.store import GraphStore

logger = logging.getLogger(__name__)

STATE_LABELS = {
    "new": "missing",
    "approved": "approved",
    "rejected": "rejected",
    "duplicate": "duplicate",
    "blacklisted": "blacklisted",
}
COUNTED = ("statements", "references")

GRAPH = Variable("graph")
USER = Slot("user", SlotKind.USER)


def statistics_columns() -> list[str]:
    columns = []
    for kind in COUNTED:
        for label in STATE_LABELS.values():
            columns.append(f"{label}_{kind}")
        columns.append(f"total_{kind}")
    return columns


def statement_count_query() -> str:
    """Statement nodes with a main value, per graph."""
    statement, prop, value = Variable("statement"), Variable("property"), Variable("value")
    return SelectQuery(
        variables=[GRAPH],
        aggregates=[f"(COUNT(DISTINCT {statement}) AS ?count)"],
        where=[Group([TriplePattern(statement, prop, value), strstarts(prop, PROP_STATEMENT)], graph=GRAPH)],
        group_by=[GRAPH],
    ).render()


def reference_count_query() -> str:
    """Reference values, per graph."""
    reference, prop, value = Variable("reference"), Variable("property"), Variable("value")
    return SelectQuery(
        variables=[GRAPH],
        aggregates=["(COUNT(*) AS ?count)"],
        where=[Group([TriplePattern(reference, prop, value), strstarts(prop, PROP_REFERENCE)], graph=GRAPH)],
        group_by=[GRAPH],
    ).render()


def _count_frame(rows: Iterable[Mapping[str, Any]], kind: str) -> pl.DataFrame:
    records = []
    for row in rows:
        graph = term_string(row["graph"]) if not isinstance(row["graph"], str) else row["graph"]
        count = row["count"]
        count = int(count if isinstance(count, int) else term_string(count))
        base, _, state = graph.rpartition("/")
        if state not in STATE_LABELS or not base:
            continue
        records.append({"dataset": base, "state": STATE_LABELS[state], "kind": kind, "count": count})
    return pl.DataFrame(
        records,
        schema={"dataset": pl.Utf8, "state": pl.Utf8, "kind": pl.Utf8, "count": pl.Int64},
    )


def dataset_statistics(
    statement_rows: Iterable[Mapping[str, Any]],
    reference_rows: Iterable[Mapping[str, Any]],
) -> pl.DataFrame:
    """
    Pivot per-graph counts into one row per dataset.

    Rows carry a ``graph`` (IRI string or term) and a ``count``. Graphs that
    are not dataset state graphs are ignored.
    """
    counts = pl.concat([
        _count_frame(statement_rows, "statements"),
        _count_frame(reference_rows, "references"),
    ])

    aggregations = []
    for kind in COUNTED:
        for label in STATE_LABELS.values():
            aggregations.append(
                pl.col("count")
                .filter((pl.col("state") == label) & (pl.col("kind") == kind))
                .sum()
                .alias(f"{label}_{kind}")
            )
    stats = counts.group_by("dataset").agg(aggregations)
    stats = stats.with_columns([
        pl.sum_horizontal([pl.col(f"{label}_{kind}") for label in STATE_LABELS.values()])
        .alias(f"total_{kind}")
        for kind in COUNTED
    ])
    stats = stats.select(["dataset"] + statistics_columns()).sort("dataset")
    logger.debug(f"Computed statistics for {stats.height} datasets")
    return stats


class StatisticsService:
    """Statistics read from a graph store."""

    def __init__(self, store: GraphStore):
        self.store = store

    def dataset_statistics(self) -> pl.DataFrame:
        return dataset_statistics(
            self.store.query(statement_count_query()),
            self.store.query(reference_count_query()),
        )

    def user_activities(self, user: str) -> int:
        """Number of curation decisions taken by ``user``; 0 if none."""
        activities = Variable("activities")
        query = SelectQuery(
            variables=[activities],
            where=[Group(
                [TriplePattern(SlotIri(USER_PREFIX, USER), const(ACTIVITIES), activities)],
                graph=const(METADATA_GRAPH),
            )],
        ).render({USER: user})
        rows = self.store.query(query)
        if not rows or "activities" not in rows[0]:
            return 0
        return int(term_string(rows[0]["activities"]))

    def list_datasets(self) -> list[dict[str, str | None]]:
        """Uploaded datasets with their uploader and description."""
        dataset, uploader, description = Variable("dataset"), Variable("user"), Variable("description")
        query = SelectQuery(
            variables=[dataset, uploader, description],
            where=[Group(
                [
                    TriplePattern(dataset, const(UPLOADED_BY), uploader),
                    optional(TriplePattern(dataset, const(DESCRIPTION), description)),
                ],
                graph=const(METADATA_GRAPH),
            )],
        ).render()
        datasets = []
        for row in self.store.query(query):
            user = term_string(row["user"])
            if user.startswith(USER_PREFIX):
                user = user[len(USER_PREFIX):]
            datasets.append({
                "dataset": term_string(row["dataset"]),
                "user": user,
                "description": term_string(row["description"]) if "description" in row else None,
            })
        return datasets
