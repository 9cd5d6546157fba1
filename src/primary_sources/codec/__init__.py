"""Statement value conversion between graph terms, curator lines and API JSON."""

from primary_sources.codec.values import (
    api_json_reference_to_graph_term,
    api_json_to_graph_term,
    canonical_value,
    curator_token_to_graph_term,
    graph_term_to_api_json,
    graph_term_to_api_reference,
    graph_term_to_curator_token,
    infer_time_precision,
)
from primary_sources.codec.quickstatements import CuratorLine, parse_curator_line
from primary_sources.codec.wikibase import WikibaseDate, WikibasePoint, canonical_coordinate

__all__ = [
    "api_json_reference_to_graph_term",
    "api_json_to_graph_term",
    "canonical_value",
    "curator_token_to_graph_term",
    "graph_term_to_api_json",
    "graph_term_to_api_reference",
    "graph_term_to_curator_token",
    "infer_time_precision",
    "CuratorLine",
    "parse_curator_line",
    "WikibaseDate",
    "WikibasePoint",
    "canonical_coordinate",
]
