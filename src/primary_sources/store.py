"""
Graph store backends.

Two implementations of the same contract:

- SparqlHttpStore: a remote SPARQL 1.1 endpoint (e.g. Blazegraph) over httpx
- OxigraphStore: an in-memory pyoxigraph store, for local runs and tests

``query`` returns rows of graph terms keyed by variable name; ``update``
applies a single update request atomically. Failures raise StoreError
carrying the store's own error payload. Nothing is retried.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
import pyoxigraph as ox

from primary_sources.config import SPARQL_RESULTS_JSON, StoreConfig
from primary_sources.errors import StoreError
from primary_sources.terms import (
    BlankNode,
    Iri,
    LangLiteral,
    Node,
    PlainLiteral,
    Triple,
    TypedLiteral,
    from_oxigraph,
    triple_from_oxigraph,
)
from primary_sources.vocabulary import XSD_STRING

logger = logging.getLogger(__name__)

Row = dict[str, Node]


class GraphStore(Protocol):
    """What the rest of the package needs from a graph store."""

    def query(self, sparql: str) -> list[Row]:
        ...

    def update(self, sparql: str) -> None:
        ...


# =============================================================================
# SPARQL protocol over HTTP
# =============================================================================

def term_from_sparql_json(value: dict[str, Any]) -> Node:
    """Convert one SPARQL JSON results binding into a graph term."""
    kind = value.get("type")
    text = value.get("value", "")
    if kind == "uri":
        return Iri(text)
    if kind == "bnode":
        return BlankNode(text)
    if kind in ("literal", "typed-literal"):
        if "xml:lang" in value:
            return LangLiteral(text, value["xml:lang"])
        datatype = value.get("datatype")
        if datatype and datatype != XSD_STRING:
            return TypedLiteral(text, datatype)
        return PlainLiteral(text)
    raise StoreError({"message": f"Unknown binding type {kind!r}", "binding": value})


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class SparqlHttpStore:
    """
    A SPARQL 1.1 endpoint reached over HTTP.

    Queries and updates are form-encoded POSTs; results are read as
    application/sparql-results+json.
    """

    def __init__(
        self,
        endpoint: str,
        update_endpoint: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.endpoint = endpoint
        self.update_endpoint = update_endpoint or endpoint
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: StoreConfig, client: httpx.Client | None = None) -> SparqlHttpStore:
        return cls(
            endpoint=config.endpoint,
            update_endpoint=config.effective_update_endpoint,
            timeout=config.timeout_seconds,
            client=client,
        )

    def _post(self, url: str, data: dict[str, str], headers: dict[str, str]) -> httpx.Response:
        try:
            if self._client is not None:
                response = self._client.post(url, data=data, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, data=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise StoreError(str(e)) from e

        if response.is_error:
            payload = _error_payload(response)
            logger.error(f"Graph store returned HTTP {response.status_code}: {payload}")
            raise StoreError(payload, status_code=response.status_code)
        return response

    def query(self, sparql: str) -> list[Row]:
        logger.debug(f"SPARQL query to be sent to {self.endpoint}: {sparql}")
        response = self._post(self.endpoint, {"query": sparql}, {"Accept": SPARQL_RESULTS_JSON})
        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(response.text, status_code=response.status_code) from e

        rows = []
        for binding in data.get("results", {}).get("bindings", []):
            rows.append({var: term_from_sparql_json(value) for var, value in binding.items()})
        logger.debug(f"SPARQL query returned {len(rows)} rows")
        return rows

    def update(self, sparql: str) -> None:
        logger.debug(f"SPARQL update to be sent to {self.update_endpoint}: {sparql}")
        self._post(self.update_endpoint, {"update": sparql}, {"Accept": "application/json"})


# =============================================================================
# In-memory store
# =============================================================================

class OxigraphStore:
    """An in-memory pyoxigraph store."""

    def __init__(self, store: ox.Store | None = None):
        self._store = store if store is not None else ox.Store()

    def query(self, sparql: str) -> list[Row]:
        try:
            results = self._store.query(sparql)
        except (SyntaxError, OSError, ValueError) as e:
            raise StoreError(str(e)) from e
        if not isinstance(results, ox.QuerySolutions):
            raise StoreError(f"Expected a SELECT query, got {type(results).__name__}")

        variables = [v.value for v in results.variables]
        rows = []
        for solution in results:
            row = {}
            for name in variables:
                value = solution[name]
                if value is not None:
                    row[name] = from_oxigraph(value)
            rows.append(row)
        return rows

    def update(self, sparql: str) -> None:
        try:
            self._store.update(sparql)
        except (SyntaxError, OSError, ValueError) as e:
            raise StoreError(str(e)) from e

    def load(self, data: bytes | str, graph: str, format: ox.RdfFormat = ox.RdfFormat.TURTLE,
             base_iri: str | None = None) -> None:
        """Load a serialized graph into the named graph ``graph``."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            self._store.load(data, format, base_iri=base_iri, to_graph=ox.NamedNode(graph))
        except (SyntaxError, OSError, ValueError) as e:
            raise StoreError(str(e)) from e

    def triples(self, graph: str) -> list[Triple]:
        """All triples of the named graph ``graph``."""
        quads = self._store.quads_for_pattern(None, None, None, ox.NamedNode(graph))
        return [triple_from_oxigraph(quad) for quad in quads]

    def __len__(self) -> int:
        return len(self._store)
