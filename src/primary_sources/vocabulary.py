"""
Wikidata and primary sources vocabulary.

Namespaces follow the Wikidata RDF dump format:
https://www.mediawiki.org/wiki/Wikibase/Indexing/RDF_Dump_Format
"""
from __future__ import annotations

import re

# =============================================================================
# Wikidata namespaces
# =============================================================================

WIKIDATA = "http://www.wikidata.org"
WIKIDATA_ROOT = f"{WIKIDATA}/"

ENTITY = f"{WIKIDATA}/entity/"                      # wd:
STATEMENT = f"{WIKIDATA}/entity/statement/"         # wds:
REFERENCE = f"{WIKIDATA}/reference/"                # wdref:
VALUE = f"{WIKIDATA}/value/"                        # wdv:

PROP = f"{WIKIDATA}/prop/"                          # p:
PROP_STATEMENT = f"{WIKIDATA}/prop/statement/"      # ps:
PROP_STATEMENT_VALUE = f"{WIKIDATA}/prop/statement/value/"   # psv:
PROP_QUALIFIER = f"{WIKIDATA}/prop/qualifier/"      # pq:
PROP_QUALIFIER_VALUE = f"{WIKIDATA}/prop/qualifier/value/"   # pqv:
PROP_REFERENCE = f"{WIKIDATA}/prop/reference/"      # pr:
PROP_REFERENCE_VALUE = f"{WIKIDATA}/prop/reference/value/"   # prv:

WIKIBASE = "http://wikiba.se/ontology#"
WIKIBASE_ITEM = f"{WIKIBASE}Item"

PROV = "http://www.w3.org/ns/prov#"
PROV_WAS_DERIVED_FROM = f"{PROV}wasDerivedFrom"

RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDF_TYPE = f"{RDF}type"
RDF_LANG_STRING = f"{RDF}langString"

XSD = "http://www.w3.org/2001/XMLSchema#"
XSD_STRING = f"{XSD}string"
XSD_DATETIME = f"{XSD}dateTime"
XSD_DECIMAL = f"{XSD}decimal"
XSD_INTEGER = f"{XSD}integer"

GEO_WKT_LITERAL = "http://www.opengis.net/ont/geosparql#wktLiteral"

# =============================================================================
# Wikibase value defaults
# =============================================================================

EARTH_GLOBE = f"{ENTITY}Q2"
GREGORIAN_CALENDAR = f"{ENTITY}Q1985727"
DIMENSIONLESS_UNIT = "1"
DAY_PRECISION = 11
MONTH_PRECISION = 10
YEAR_PRECISION = 9

# =============================================================================
# Primary sources metadata
# =============================================================================

METADATA_GRAPH = f"{WIKIDATA}/primary-sources"
ACTIVITIES = f"{METADATA_GRAPH}/activities"
UPLOADED_BY = f"{METADATA_GRAPH}/uploadedBy"
DESCRIPTION = f"{METADATA_GRAPH}/description"
USER_PREFIX = f"{WIKIDATA}/wiki/User:"

NEW_STATE_SUFFIX = "new"

_DATASET_STATE = re.compile(r"/(new|approved|rejected|duplicate|blacklisted)$")


def user_iri(user: str) -> str:
    """IRI identifying a Wikidata user in the metadata graph."""
    return f"{USER_PREFIX}{user}"


def dataset_base(dataset: str) -> str:
    """Strip a trailing workflow state from a dataset graph IRI."""
    return _DATASET_STATE.sub("", dataset.rstrip("/"))


def dataset_graph(dataset: str, state: str) -> str:
    """Named graph holding the statements of ``dataset`` in ``state``."""
    return f"{dataset_base(dataset)}/{state}"
