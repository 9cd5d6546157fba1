"""
Tests for curator suggestions.
"""
import pytest

from primary_sources.curation import CurationService, CurationState
from primary_sources.ingestion import IngestionService
from primary_sources.suggestions import (
    SearchService,
    SuggestionFormatter,
    SuggestionService,
    build_search_query,
    build_suggestion_query,
    format_suggestions,
)
from primary_sources.terms import Iri, PlainLiteral, TypedLiteral
from primary_sources.vocabulary import (
    ENTITY,
    PROP,
    PROP_QUALIFIER,
    PROP_REFERENCE,
    PROP_STATEMENT,
    PROV_WAS_DERIVED_FROM,
    REFERENCE,
    STATEMENT,
    XSD_INTEGER,
)

from conftest import CURATOR, DATASET, GOOD_CHUCK_BERRY, NEW_GRAPH, P999_STATEMENT, REFERENCE_HASH

from test_curation import claim


ST = Iri(f"{STATEMENT}{P999_STATEMENT}")
REF = Iri(f"{REFERENCE}{REFERENCE_HASH}")


def row(statement_property, statement_value, reference_property=None, reference_value=None, dataset=NEW_GRAPH):
    result = {
        "dataset": Iri(dataset),
        "property": Iri(f"{PROP}P999"),
        "statement_node": ST,
        "statement_property": Iri(statement_property),
        "statement_value": statement_value,
    }
    if reference_property is not None:
        result["reference_property"] = Iri(reference_property)
        result["reference_value"] = reference_value
    return result


MAIN_ROW = row(f"{PROP_STATEMENT}P999", PlainLiteral("Maybelline"))
QUALIFIER_ROW = row(f"{PROP_QUALIFIER}P2", PlainLiteral("second qualifier"))


class TestSuggestionQuery:
    """Tests for the suggestion query."""

    def test_all_datasets(self):
        sparql = build_suggestion_query("Q5921")
        assert "GRAPH ?dataset" in sparql
        assert 'STRENDS(STR(?dataset), "/new")' in sparql
        assert f"<{ENTITY}Q5921> <http://www.w3.org/1999/02/22-rdf-syntax-ns#type>" in sparql

    def test_one_dataset(self):
        sparql = build_suggestion_query("Q5921", DATASET)
        assert "GRAPH <http://strephit/new>" in sparql
        assert "?dataset" not in sparql

    def test_invalid_qid(self):
        with pytest.raises(ValueError):
            build_suggestion_query("Q5921> <x")


class TestSuggestionFormatter:
    """Tests for grouping rows into QuickStatements lines."""

    def test_main_value_only(self):
        suggestions = SuggestionFormatter().format([MAIN_ROW], "Q5921")
        assert len(suggestions) == 1
        assert suggestions[0].statement == 'Q5921\tP999\t"Maybelline"'
        assert suggestions[0].dataset == NEW_GRAPH

    def test_one_line_per_reference(self):
        rows = [
            MAIN_ROW,
            QUALIFIER_ROW,
            QUALIFIER_ROW,
            row(PROV_WAS_DERIVED_FROM, REF, f"{PROP_REFERENCE}P143", Iri(f"{ENTITY}Q206855")),
            row(PROV_WAS_DERIVED_FROM, REF, f"{PROP_REFERENCE}P854", Iri("http://example.org/source")),
        ]
        statements = [s.statement for s in SuggestionFormatter().format(rows, "Q5921")]
        assert statements == [
            'Q5921\tP999\t"Maybelline"\tP2\t"second qualifier"\tS143\tQ206855',
            'Q5921\tP999\t"Maybelline"\tP2\t"second qualifier"\tS854\t"http://example.org/source"',
        ]

    def test_group_without_main_value_is_skipped(self):
        assert SuggestionFormatter().format([QUALIFIER_ROW], "Q5921") == []

    def test_datasets_kept_apart(self):
        other = row(f"{PROP_STATEMENT}P999", PlainLiteral("Maybelline"), dataset="http://other/new")
        suggestions = SuggestionFormatter().format([MAIN_ROW, other], "Q5921")
        assert {s.dataset for s in suggestions} == {NEW_GRAPH, "http://other/new"}

    def test_unsupported_value_is_skipped(self):
        bad = row(f"{PROP_QUALIFIER}P1114", TypedLiteral("3", XSD_INTEGER))
        suggestions = SuggestionFormatter().format([MAIN_ROW, bad], "Q5921")
        assert [s.statement for s in suggestions] == ['Q5921\tP999\t"Maybelline"']

    def test_dataset_from_argument(self):
        single = dict(MAIN_ROW)
        del single["dataset"]
        suggestions = SuggestionFormatter().format([single], "Q5921", DATASET)
        assert suggestions[0].dataset == NEW_GRAPH

    def test_to_dict(self):
        assert format_suggestions([MAIN_ROW], "Q5921") == [{
            "dataset": NEW_GRAPH,
            "format": "QuickStatement",
            "state": "new",
            "statement": 'Q5921\tP999\t"Maybelline"',
        }]

    def test_line_breaks_stay_escaped(self):
        multiline = row(f"{PROP_STATEMENT}P999", PlainLiteral("Maybelline\tNew York\nsince 1915"))
        suggestions = SuggestionFormatter().format([multiline], "Q5921")
        assert suggestions[0].statement == 'Q5921\tP999\t"Maybelline\\tNew York\\nsince 1915"'
        assert "\n" not in suggestions[0].statement

    def test_invalid_qid(self):
        with pytest.raises(ValueError):
            SuggestionFormatter().format([MAIN_ROW], "chuck")


class TestSuggestionService:
    """Tests reading suggestions from a store."""

    def test_uploaded_dataset(self, store):
        IngestionService(store).ingest(GOOD_CHUCK_BERRY, DATASET, CURATOR)
        suggestions = SuggestionService(store).suggest("Q5921", DATASET)
        assert [s.statement for s in suggestions] == [
            'Q5921\tP18\t"http://commons.wikimedia.org/wiki/Special:FilePath/Chuck-berry-2007-07-18.jpg"'
            '\tP2096\tca:"Chuck Berry (2007)"\tS143\tQ206855'
        ]

    def test_all_datasets(self, store):
        IngestionService(store).ingest(GOOD_CHUCK_BERRY, DATASET, CURATOR)
        suggestions = SuggestionService(store).suggest("Q5921")
        assert len(suggestions) == 1
        assert suggestions[0].dataset == NEW_GRAPH

    def test_maybelline(self, maybelline_store):
        suggestions = SuggestionService(maybelline_store).suggest("Q5921", DATASET)
        assert len(suggestions) == 2
        for suggestion in suggestions:
            assert suggestion.statement.startswith('Q5921\tP999\t"Maybelline"')
            assert "P1\tQ1" in suggestion.statement
            assert 'P2\t"second qualifier"' in suggestion.statement
        endings = sorted(s.statement.rsplit("\t", 2)[1] for s in suggestions)
        assert endings == ["S143", "S854"]

    def test_approved_claim_is_no_longer_suggested(self, maybelline_store):
        CurationService(maybelline_store).curate(claim(CurationState.APPROVED))
        assert SuggestionService(maybelline_store).suggest("Q5921", DATASET) == []

    def test_unknown_item(self, maybelline_store):
        assert SuggestionService(maybelline_store).suggest("Q42") == []


def search_row(statement_property, statement_value, dataset=NEW_GRAPH):
    result = row(statement_property, statement_value, dataset=dataset)
    del result["property"]
    result["item"] = Iri(f"{ENTITY}Q5921")
    return result


class TestSearchQuery:
    """Tests for the search query."""

    def test_all_datasets(self):
        sparql = build_search_query()
        assert "SELECT ?dataset ?item ?property" in sparql
        assert "GRAPH ?dataset" in sparql
        assert 'STRENDS(STR(?dataset), "/new")' in sparql
        assert f'STRSTARTS(STR(?property), "{PROP}")' in sparql
        assert "LIMIT 50" in sparql
        assert "OFFSET 0" in sparql

    def test_one_dataset(self):
        sparql = build_search_query(DATASET)
        assert "GRAPH <http://strephit/new>" in sparql
        assert "?dataset" not in sparql

    def test_property_and_value(self):
        sparql = build_search_query(property="P999", value="Q1", offset=100, limit=10)
        assert f"?item <{PROP}P999> ?statement_node" in sparql
        assert f"?statement_node ?value_property <{ENTITY}Q1>" in sparql
        assert "?property" not in sparql
        assert "LIMIT 10" in sparql
        assert "OFFSET 100" in sparql

    @pytest.mark.parametrize("arguments", [
        {"property": "Q5921"},
        {"property": "P999> ?x <y"},
        {"value": "P999"},
        {"value": "chuck"},
        {"offset": -1},
        {"limit": 0},
    ])
    def test_invalid_arguments(self, arguments):
        with pytest.raises(ValueError):
            build_search_query(**arguments)


class TestSearchFormatter:
    """Tests for search rows, which carry their subject item."""

    def test_subject_from_row(self):
        suggestions = SuggestionFormatter().format_search([search_row(f"{PROP_STATEMENT}P999", PlainLiteral("x"))])
        assert [s.statement for s in suggestions] == ['Q5921\tP999\t"x"']

    def test_main_property_from_argument(self):
        rows = [search_row(f"{PROP_STATEMENT}P18", PlainLiteral("x"))]
        suggestions = SuggestionFormatter().format_search(rows, property="P999")
        assert [s.statement for s in suggestions] == ['Q5921\tP999\t"x"']

    def test_row_without_item_is_skipped(self):
        rows = [dict(MAIN_ROW)]
        assert SuggestionFormatter().format_search(rows) == []


CHUCK_BERRY_DATASET = "http://chuck-berry"


class TestSearchService:
    """Tests searching a store."""

    @pytest.fixture
    def search_store(self, maybelline_store):
        IngestionService(maybelline_store).ingest(GOOD_CHUCK_BERRY, CHUCK_BERRY_DATASET, CURATOR)
        return maybelline_store

    def test_everything(self, search_store):
        suggestions = SearchService(search_store).search()
        statements = [s.statement for s in suggestions]
        assert len(statements) == 3
        assert sum(s.startswith("Q5921\tP18\t") for s in statements) == 1
        assert sum(s.startswith('Q5921\tP999\t"Maybelline"') for s in statements) == 2
        assert {s.dataset for s in suggestions} == {NEW_GRAPH, f"{CHUCK_BERRY_DATASET}/new"}

    def test_by_property(self, search_store):
        suggestions = SearchService(search_store).search(CHUCK_BERRY_DATASET, property="P18")
        assert len(suggestions) == 1
        assert suggestions[0].statement.endswith("\tS143\tQ206855")
        assert suggestions[0].dataset == f"{CHUCK_BERRY_DATASET}/new"
        assert SearchService(search_store).search(DATASET, property="P18") == []

    def test_by_value(self, search_store):
        suggestions = SearchService(search_store).search(property="P999", value="Q1")
        assert len(suggestions) == 2
        assert all("P1\tQ1" in s.statement for s in suggestions)

    def test_no_match(self, search_store):
        assert SearchService(search_store).search(value="Q42") == []

    def test_past_the_last_page(self, search_store):
        assert SearchService(search_store).search(offset=1000) == []
