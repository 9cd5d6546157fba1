"""
primary-sources: validation and curation of third-party Wikidata statements.

Candidate statements are uploaded as RDF into dataset graphs, checked
against the Wikidata statement shape and curated by moving them between
``new``, ``approved``, ``rejected``, ``duplicate`` and ``blacklisted``.
"""

__version__ = "0.1.0"

from primary_sources.terms import Iri, PlainLiteral, LangLiteral, TypedLiteral, BlankNode, Triple
from primary_sources.errors import (
    PrimarySourcesError,
    RdfSyntaxError,
    StructuralViolation,
    AmbiguousValue,
    UnsupportedDatatype,
    MalformedStatement,
    InvalidLocator,
    InvalidTransition,
    StoreError,
)
from primary_sources.config import PrimarySourcesConfig, ValidatorConfig, StoreConfig
from primary_sources.validation import StatementValidator, check_syntax, partition
from primary_sources.codec import (
    api_json_to_graph_term,
    curator_token_to_graph_term,
    graph_term_to_api_json,
    graph_term_to_curator_token,
)
from primary_sources.curation import (
    CurationDecision,
    CurationRequest,
    CurationService,
    CurationState,
    StatementKind,
    StatementLocator,
    build_curation_update,
)
from primary_sources.suggestions import SuggestionFormatter, SuggestionService
from primary_sources.statistics import StatisticsService, dataset_statistics
from primary_sources.ingestion import IngestionService, mint_dataset_uri
from primary_sources.store import OxigraphStore, SparqlHttpStore

__all__ = [
    "Iri",
    "PlainLiteral",
    "LangLiteral",
    "TypedLiteral",
    "BlankNode",
    "Triple",
    "PrimarySourcesError",
    "RdfSyntaxError",
    "StructuralViolation",
    "AmbiguousValue",
    "UnsupportedDatatype",
    "MalformedStatement",
    "InvalidLocator",
    "InvalidTransition",
    "StoreError",
    "PrimarySourcesConfig",
    "ValidatorConfig",
    "StoreConfig",
    "StatementValidator",
    "check_syntax",
    "partition",
    "api_json_to_graph_term",
    "curator_token_to_graph_term",
    "graph_term_to_api_json",
    "graph_term_to_curator_token",
    "CurationDecision",
    "CurationRequest",
    "CurationService",
    "CurationState",
    "StatementKind",
    "StatementLocator",
    "build_curation_update",
    "SuggestionFormatter",
    "SuggestionService",
    "StatisticsService",
    "dataset_statistics",
    "IngestionService",
    "mint_dataset_uri",
    "OxigraphStore",
    "SparqlHttpStore",
]
