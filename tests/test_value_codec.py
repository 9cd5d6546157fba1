"""
Tests for statement value conversion.
"""
import json

import pytest

from primary_sources.codec import (
    WikibaseDate,
    WikibasePoint,
    api_json_reference_to_graph_term,
    api_json_to_graph_term,
    canonical_coordinate,
    canonical_value,
    curator_token_to_graph_term,
    graph_term_to_api_json,
    graph_term_to_api_reference,
    graph_term_to_curator_token,
)
from primary_sources.errors import AmbiguousValue, UnsupportedDatatype
from primary_sources.terms import BlankNode, Iri, LangLiteral, PlainLiteral, TypedLiteral
from primary_sources.vocabulary import (
    EARTH_GLOBE,
    ENTITY,
    GEO_WKT_LITERAL,
    GREGORIAN_CALENDAR,
    XSD_DATETIME,
    XSD_DECIMAL,
    XSD_INTEGER,
)


CHUCK_BERRY = Iri(f"{ENTITY}Q5921")
BIRTH_DATE = TypedLiteral("1926-10-18T00:00:00Z", XSD_DATETIME)
ST_LOUIS = TypedLiteral("Point(-90.2 38.6)", GEO_WKT_LITERAL)


# =============================================================================
# Wikibase values
# =============================================================================

class TestWikibaseDate:
    """Tests for time parsing and formatting."""

    def test_wikidata_form(self):
        date = WikibaseDate.from_string("+1926-10-18T00:00:00Z")
        assert (date.year, date.month, date.day) == (1926, 10, 18)
        assert date.to_wikidata() == "+1926-10-18T00:00:00Z"
        assert date.to_xsd() == "1926-10-18T00:00:00Z"

    def test_xsd_form(self):
        date = WikibaseDate.from_string("2017-03-18T13:24:00Z")
        assert date.to_wikidata() == "+2017-03-18T13:24:00Z"

    def test_unknown_parts_become_one(self):
        date = WikibaseDate.from_string("+1926-00-00T00:00:00Z")
        assert (date.month, date.day) == (1, 1)

    def test_negative_year(self):
        date = WikibaseDate.from_string("-0044-03-15T00:00:00Z")
        assert date.year == -44
        assert date.to_wikidata() == "-0044-03-15T00:00:00Z"
        assert date.to_xsd() == "-0044-03-15T00:00:00Z"

    def test_not_a_date(self):
        with pytest.raises(AmbiguousValue):
            WikibaseDate.from_string("18 October 1926")


class TestWikibasePoint:
    """Tests for WKT points."""

    def test_longitude_first(self):
        point = WikibasePoint.from_wkt("Point(-90.2 38.6)")
        assert point.latitude == "38.6"
        assert point.longitude == "-90.2"
        assert point.globe == EARTH_GLOBE

    def test_other_globe_kept(self):
        wkt = f"<{ENTITY}Q405> Point(1.5 2.25)"
        point = WikibasePoint.from_wkt(wkt)
        assert point.globe == f"{ENTITY}Q405"
        assert point.to_wkt() == wkt

    def test_earth_globe_omitted(self):
        assert WikibasePoint("38.6", "-90.2").to_wkt() == "Point(-90.2 38.6)"

    def test_precision_uses_more_decimals(self):
        assert WikibasePoint("51.5", "-0.12").precision == pytest.approx(0.01)
        assert WikibasePoint("51", "0").precision == pytest.approx(1.0)

    def test_not_a_point(self):
        with pytest.raises(AmbiguousValue):
            WikibasePoint.from_wkt("LINESTRING(1 2, 3 4)")


# =============================================================================
# Curator tokens
# =============================================================================

class TestCuratorTokens:
    """Tests for QuickStatements values."""

    @pytest.mark.parametrize("term,token", [
        (CHUCK_BERRY, "Q5921"),
        (PlainLiteral("Chuck Berry"), '"Chuck Berry"'),
        (Iri("http://chuckberry.com"), '"http://chuckberry.com"'),
        (LangLiteral("Chuck Berry (2007)", "ca"), 'ca:"Chuck Berry (2007)"'),
        (BIRTH_DATE, "+1926-10-18T00:00:00Z/11"),
        (ST_LOUIS, "@38.6/-90.2"),
        (TypedLiteral("+88", XSD_DECIMAL), "+88"),
    ])
    def test_round_trip(self, term, token):
        assert graph_term_to_curator_token(term) == token
        assert curator_token_to_graph_term(token) == term

    def test_precision_inference(self):
        """Unknown day and month are stored as 01 and read back as absent."""
        assert graph_term_to_curator_token(
            TypedLiteral("1889-10-18T00:00:00Z", XSD_DATETIME)
        ) == "+1889-10-18T00:00:00Z/11"
        assert graph_term_to_curator_token(
            TypedLiteral("1889-10-01T00:00:00Z", XSD_DATETIME)
        ) == "+1889-10-01T00:00:00Z/10"
        assert graph_term_to_curator_token(
            TypedLiteral("1889-01-01T00:00:00Z", XSD_DATETIME)
        ) == "+1889-01-01T00:00:00Z/9"

    def test_precision_is_not_stored(self):
        year = curator_token_to_graph_term("+1926-00-00T00:00:00Z/9")
        assert year == TypedLiteral("1926-01-01T00:00:00Z", XSD_DATETIME)

    def test_quoted_url_becomes_link(self):
        assert curator_token_to_graph_term('"https://example.org/page"') == Iri("https://example.org/page")

    def test_unquoted_text(self):
        assert curator_token_to_graph_term("just text") == PlainLiteral("just text")

    def test_escaped_quotes(self):
        term = PlainLiteral('he said "hail"')
        token = graph_term_to_curator_token(term)
        assert token == '"he said \\"hail\\""'
        assert curator_token_to_graph_term(token) == term

    def test_location_drops_globe(self):
        mars = TypedLiteral(f"<{ENTITY}Q111> Point(10 20)", GEO_WKT_LITERAL)
        assert graph_term_to_curator_token(mars) == "@20/10"

    def test_empty_token(self):
        with pytest.raises(AmbiguousValue):
            curator_token_to_graph_term("")

    def test_unsupported_datatype(self):
        with pytest.raises(UnsupportedDatatype):
            graph_term_to_curator_token(TypedLiteral("5", XSD_INTEGER))

    def test_blank_node(self):
        with pytest.raises(AmbiguousValue):
            graph_term_to_curator_token(BlankNode("b0"))

    def test_bad_date_literal(self):
        with pytest.raises(AmbiguousValue):
            graph_term_to_curator_token(TypedLiteral("sometime", XSD_DATETIME))


# =============================================================================
# Editing API JSON
# =============================================================================

class TestApiJson:
    """Tests for editing API values."""

    def test_item(self):
        value = graph_term_to_api_json(CHUCK_BERRY)
        assert value == {"entity-type": "item", "numeric-id": 5921}
        assert api_json_to_graph_term(value) == CHUCK_BERRY

    def test_string_and_url(self):
        assert graph_term_to_api_json(PlainLiteral("Chuck")) == "Chuck"
        assert graph_term_to_api_json(Iri("http://chuckberry.com")) == "http://chuckberry.com"
        assert api_json_to_graph_term("Chuck") == PlainLiteral("Chuck")
        assert api_json_to_graph_term("http://chuckberry.com") == Iri("http://chuckberry.com")

    def test_monolingual_text(self):
        term = LangLiteral("Chuck Berry (2007)", "ca")
        value = graph_term_to_api_json(term)
        assert value == {"language": "ca", "text": "Chuck Berry (2007)"}
        assert api_json_to_graph_term(value) == term

    def test_time_has_day_precision(self):
        """No inference in this direction: always day precision."""
        value = graph_term_to_api_json(TypedLiteral("1889-01-01T00:00:00Z", XSD_DATETIME))
        assert value == {
            "time": "+1889-01-01T00:00:00Z",
            "timezone": 0,
            "before": 0,
            "after": 0,
            "precision": 11,
            "calendarmodel": GREGORIAN_CALENDAR,
        }
        assert api_json_to_graph_term(value) == TypedLiteral("1889-01-01T00:00:00Z", XSD_DATETIME)

    def test_globe_coordinate(self):
        value = graph_term_to_api_json(TypedLiteral("Point(-0.12 51.5)", GEO_WKT_LITERAL))
        assert value == {
            "latitude": 51.5,
            "longitude": -0.12,
            "precision": pytest.approx(0.01),
            "globe": EARTH_GLOBE,
            "altitude": None,
        }
        assert api_json_to_graph_term(value) == TypedLiteral("Point(-0.12 51.5)", GEO_WKT_LITERAL)

    def test_quantity(self):
        value = graph_term_to_api_json(TypedLiteral("+88", XSD_DECIMAL))
        assert value == {"amount": "+88", "unit": "1"}
        assert api_json_to_graph_term(value) == TypedLiteral("+88", XSD_DECIMAL)

    def test_quantity_unit_dropped(self, caplog):
        with caplog.at_level("WARNING", logger="primary_sources.codec.values"):
            term = api_json_to_graph_term({"amount": "+1.8", "unit": f"{ENTITY}Q11573"})
        assert term == TypedLiteral("+1.8", XSD_DECIMAL)
        assert "not kept" in caplog.text

    def test_json_text(self):
        """Object values may arrive serialized."""
        text = json.dumps({"entity-type": "item", "numeric-id": 206855})
        assert api_json_to_graph_term(text) == Iri(f"{ENTITY}Q206855")

    def test_two_shape_keys(self):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term({"numeric-id": 5, "language": "en", "text": "x"})

    def test_no_shape_key(self):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term({"text": "x"})

    def test_property_entity(self):
        with pytest.raises(UnsupportedDatatype):
            api_json_to_graph_term({"entity-type": "property", "numeric-id": 18})

    def test_not_a_value(self):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term(42)

    def test_malformed_time(self):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term({"time": "yesterday"})


class TestApiReferences:
    """Tests for single-snak references."""

    def test_item_reference(self):
        reference = graph_term_to_api_reference("P143", Iri(f"{ENTITY}Q206855"))
        assert reference == {
            "snaks": {
                "P143": [{
                    "snaktype": "value",
                    "property": "P143",
                    "datavalue": {
                        "type": "wikibase-entityid",
                        "value": {"entity-type": "item", "numeric-id": 206855},
                    },
                }]
            }
        }
        assert api_json_reference_to_graph_term(reference) == ("P143", Iri(f"{ENTITY}Q206855"))

    def test_url_reference_as_json_text(self):
        reference = json.dumps(graph_term_to_api_reference("P854", Iri("http://example.org/source")))
        assert api_json_reference_to_graph_term(reference) == ("P854", Iri("http://example.org/source"))

    def test_datavalue_types(self):
        assert graph_term_to_api_reference("P813", BIRTH_DATE)["snaks"]["P813"][0]["datavalue"]["type"] == "time"
        assert graph_term_to_api_reference("P1", ST_LOUIS)["snaks"]["P1"][0]["datavalue"]["type"] == "globecoordinate"
        assert graph_term_to_api_reference("P2", PlainLiteral("x"))["snaks"]["P2"][0]["datavalue"]["type"] == "string"

    def test_mismatched_type(self):
        reference = {"snaks": {"P813": [{
            "snaktype": "value",
            "property": "P813",
            "datavalue": {"type": "time", "value": {"entity-type": "item", "numeric-id": 5}},
        }]}}
        with pytest.raises(AmbiguousValue):
            api_json_reference_to_graph_term(reference)

    def test_unknown_type(self):
        reference = {"snaks": {"P214": [{
            "datavalue": {"type": "external-id", "value": "113230702"},
        }]}}
        with pytest.raises(UnsupportedDatatype):
            api_json_reference_to_graph_term(reference)

    def test_missing_snaks(self):
        with pytest.raises(AmbiguousValue):
            api_json_reference_to_graph_term({"hash": "abc"})
        with pytest.raises(AmbiguousValue):
            api_json_reference_to_graph_term("not json")


# =============================================================================
# Canonical values
# =============================================================================

class TestCanonicalCoordinates:
    """Tests for coordinate text normalization."""

    @pytest.mark.parametrize("text, canonical", [
        ("2", "2"),
        ("2.0", "2"),
        ("+2", "2"),
        ("51.50", "51.5"),
        ("-0.120", "-0.12"),
        ("-0.0", "0"),
        ("1e-05", "0.00001"),
        ("1.5E1", "15"),
    ])
    def test_text_and_number_agree(self, text, canonical):
        assert canonical_coordinate(text) == canonical
        assert canonical_coordinate(float(text)) == canonical

    @pytest.mark.parametrize("value", ["north", "nan", "inf", None])
    def test_not_a_coordinate(self, value):
        with pytest.raises(AmbiguousValue):
            canonical_coordinate(value)

    def test_point_is_canonical(self):
        assert WikibasePoint.from_wkt("Point(2.0 1.0)").to_wkt() == "Point(2 1)"


CANONICAL_TERMS = [
    TypedLiteral("Point(2 1)", GEO_WKT_LITERAL),
    TypedLiteral("Point(-0.12 51.5)", GEO_WKT_LITERAL),
    TypedLiteral("Point(0.00001 -90)", GEO_WKT_LITERAL),
    TypedLiteral("1926-10-18T00:00:00Z", XSD_DATETIME),
    TypedLiteral("-0044-03-15T00:00:00Z", XSD_DATETIME),
]


class TestCanonicalRoundTrip:
    """Tests that canonical coordinates and times survive every conversion."""

    @pytest.mark.parametrize("term", CANONICAL_TERMS)
    def test_api_json(self, term):
        assert api_json_to_graph_term(graph_term_to_api_json(term)) == term

    @pytest.mark.parametrize("term", CANONICAL_TERMS)
    def test_curator_token(self, term):
        assert curator_token_to_graph_term(graph_term_to_curator_token(term)) == term

    def test_api_json_other_globe(self):
        mars = TypedLiteral(f"<{ENTITY}Q111> Point(10 20)", GEO_WKT_LITERAL)
        assert api_json_to_graph_term(graph_term_to_api_json(mars)) == mars

    def test_location_token_decodes_canonical(self):
        term = curator_token_to_graph_term("@1/2")
        assert term == TypedLiteral("Point(2 1)", GEO_WKT_LITERAL)
        assert api_json_to_graph_term(graph_term_to_api_json(term)) == term

    @pytest.mark.parametrize("raw, canonical", [
        ("Point(2.0 1.0)", "Point(2 1)"),
        ("Point(-0.120 51.50)", "Point(-0.12 51.5)"),
        ("POINT(+10 20.000)", "Point(10 20)"),
    ])
    def test_point_text_is_normalized(self, raw, canonical):
        expected = TypedLiteral(canonical, GEO_WKT_LITERAL)
        raw_term = TypedLiteral(raw, GEO_WKT_LITERAL)
        assert canonical_value(raw_term) == expected
        assert api_json_to_graph_term(graph_term_to_api_json(raw_term)) == expected
        assert canonical_value(expected) == expected

    @pytest.mark.parametrize("raw", [
        "1926-10-18T00:00:00.000Z",
        "1926-10-18T00:00:00+00:00",
        "1926-10-18T00:00:00",
        "+1926-10-18T00:00:00Z",
    ])
    def test_time_text_is_normalized(self, raw):
        expected = TypedLiteral("1926-10-18T00:00:00Z", XSD_DATETIME)
        raw_term = TypedLiteral(raw, XSD_DATETIME)
        assert canonical_value(raw_term) == expected
        assert api_json_to_graph_term(graph_term_to_api_json(raw_term)) == expected

    def test_other_terms_untouched(self):
        for term in (CHUCK_BERRY, PlainLiteral("2.0"), TypedLiteral("+2.0", XSD_DECIMAL)):
            assert canonical_value(term) is term


# =============================================================================
# Hostile input
# =============================================================================

class TestLanguageTags:
    """Tests for monolingual text language tags."""

    def test_api_tag_with_sparql(self):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term({"language": "en . } } ; DROP ALL ; #", "text": "x"})

    @pytest.mark.parametrize("tag", ["", "en gb", "en_", "-en", "en\n"])
    def test_api_malformed_tags(self, tag):
        with pytest.raises(AmbiguousValue):
            api_json_to_graph_term({"language": tag, "text": "x"})

    def test_api_subtags(self):
        value = {"language": "zh-Hant-TW", "text": "查克·貝里"}
        assert api_json_to_graph_term(value) == LangLiteral("查克·貝里", "zh-Hant-TW")

    def test_token_subtags(self):
        assert curator_token_to_graph_term('en-gb:"colour"') == LangLiteral("colour", "en-gb")


class TestTokenEdges:
    """Tests for whitespace and escapes in curator tokens."""

    def test_item_with_trailing_newline(self):
        assert curator_token_to_graph_term("Q5\n") == PlainLiteral("Q5\n")

    def test_url_with_trailing_newline(self):
        assert curator_token_to_graph_term('"http://example.org/a\n"') == PlainLiteral("http://example.org/a\n")

    @pytest.mark.parametrize("text", [
        "line one\nline two",
        "col\tcol",
        "carriage\r\nreturn",
        "C:\\temp\\new",
    ])
    def test_control_characters_are_escaped(self, text):
        token = graph_term_to_curator_token(PlainLiteral(text))
        assert "\t" not in token
        assert "\n" not in token
        assert "\r" not in token
        assert curator_token_to_graph_term(token) == PlainLiteral(text)

    def test_monolingual_newline(self):
        term = LangLiteral("two\nlines", "en")
        token = graph_term_to_curator_token(term)
        assert token == 'en:"two\\nlines"'
        assert curator_token_to_graph_term(token) == term
