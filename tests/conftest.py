"""Shared fixtures: Chuck Berry (Q5921) sample datasets and stores."""
import pytest

from primary_sources.store import OxigraphStore
from primary_sources.validation import StatementValidator


P18_STATEMENT = "Q5921-583C7277-B344-4C96-8CF2-0557C2D0CD34"
P999_STATEMENT = "Q5921-0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d"
REFERENCE_HASH = "288ab581e7d2d02995a26dfa8b091d96e78457fc"
OTHER_REFERENCE_HASH = "9a5d4b7b0c2d3e4f5a6b7c8d9e0f1a2b3c4d5e6f"

DATASET = "http://strephit"
NEW_GRAPH = f"{DATASET}/new"
CURATOR = "Hjfocs"

PREFIXES = """
@prefix wd: <http://www.wikidata.org/entity/> .
@prefix wds: <http://www.wikidata.org/entity/statement/> .
@prefix wdref: <http://www.wikidata.org/reference/> .
@prefix p: <http://www.wikidata.org/prop/> .
@prefix ps: <http://www.wikidata.org/prop/statement/> .
@prefix pq: <http://www.wikidata.org/prop/qualifier/> .
@prefix pr: <http://www.wikidata.org/prop/reference/> .
@prefix prov: <http://www.w3.org/ns/prov#> .
@prefix wikibase: <http://wikiba.se/ontology#> .
"""

# Taken from https://www.wikidata.org/wiki/Special:EntityData/Q5921.ttl
GOOD_CHUCK_BERRY = PREFIXES + f"""
wd:Q5921 p:P18 wds:{P18_STATEMENT} .
wds:{P18_STATEMENT} ps:P18 <http://commons.wikimedia.org/wiki/Special:FilePath/Chuck-berry-2007-07-18.jpg> ;
    pq:P2096 "Chuck Berry (2007)"@ca ;
    prov:wasDerivedFrom wdref:{REFERENCE_HASH} .
wdref:{REFERENCE_HASH} pr:P143 wd:Q206855 .
"""

BAD_CHUCK_BERRY = PREFIXES + f"""
wd:Q5921 p:P18 wds:{P18_STATEMENT} .
wd:Q5921 <http://www.wikidata.org/prpo/P18> wds:{P18_STATEMENT} .
wds:{P18_STATEMENT} ps:P18 <http://www.wikidata.orge/entiti/Q42> .
wds:Q5921-not-a-uuid pq:P2096 "Chuck Berry (2007)"@ca .
<http://example.org/chuck> <http://example.org/plays> "guitar" .
"""

JUST_BAD_RDF = """
@prefix wd: <http://www.wikidata.org/entity/> .
wd:Q5921 this is { not turtle
"""

# A claim with two qualifiers and a reference with two values
MAYBELLINE = PREFIXES + f"""
wd:Q5921 a wikibase:Item ;
    p:P999 wds:{P999_STATEMENT} .
wds:{P999_STATEMENT} ps:P999 "Maybelline" ;
    pq:P1 wd:Q1 ;
    pq:P2 "second qualifier" ;
    prov:wasDerivedFrom wdref:{REFERENCE_HASH} .
wdref:{REFERENCE_HASH} pr:P143 wd:Q206855 ;
    pr:P854 <http://example.org/source> .
"""


# Coordinates written with redundant zeros
COORDINATES = PREFIXES + f"""
@prefix geo: <http://www.opengis.net/ont/geosparql#> .
wd:Q5921 p:P625 wds:{P18_STATEMENT} , wds:{P999_STATEMENT} .
wds:{P18_STATEMENT} ps:P625 "Point(-0.120 51.50)"^^geo:wktLiteral .
wds:{P999_STATEMENT} ps:P625 "Point(2.0 1.0)"^^geo:wktLiteral .
"""


@pytest.fixture
def validator():
    return StatementValidator()


@pytest.fixture
def store():
    return OxigraphStore()


@pytest.fixture
def maybelline_store(store):
    store.load(MAYBELLINE, NEW_GRAPH)
    return store


def graph_strings(store, graph):
    """Triples of a named graph as sets of N-Triples lines."""
    return {str(t) for t in store.triples(graph)}
