"""
Statement value codec.

Converts statement values between three representations:

- graph terms (Iri, PlainLiteral, LangLiteral, TypedLiteral)
- curator tokens, the values of QuickStatements lines
  (https://www.wikidata.org/wiki/Help:QuickStatements)
- Wikidata editing API JSON values
  (https://www.wikidata.org/wiki/Special:ListDatatypes)

Supported datatypes: item, string/URL, monolingual text, time, globe
coordinate and quantity.

Known lossy spots:
- a quoted token that parses as an absolute IRI decodes to an Iri, never
  back to a plain string
- the globe of a coordinate is dropped in curator tokens
- curator tokens infer time precision, API JSON always uses day precision
- coordinate and time text comes out canonical (``canonical_value``), so
  ``Point(2.0 1.0)`` decodes as ``Point(2 1)``; ingestion stores values in
  that form
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Union

from primary_sources.codec.wikibase import WikibaseDate, WikibasePoint, canonical_coordinate
from primary_sources.errors import AmbiguousValue, UnsupportedDatatype
from primary_sources.terms import (
    BlankNode,
    GraphTerm,
    Iri,
    LangLiteral,
    PlainLiteral,
    TypedLiteral,
    is_language_tag,
)
from primary_sources.validation.terms import TermKind, is_valid_term
from primary_sources.vocabulary import (
    DAY_PRECISION,
    DIMENSIONLESS_UNIT,
    EARTH_GLOBE,
    ENTITY,
    GEO_WKT_LITERAL,
    GREGORIAN_CALENDAR,
    MONTH_PRECISION,
    XSD_DATETIME,
    XSD_DECIMAL,
    YEAR_PRECISION,
)

logger = logging.getLogger(__name__)

ApiJsonValue = Union[dict, str]

# Curator token shapes
TIME_TOKEN = re.compile(r"^[+-]\d+-\d\d-\d\dT\d\d:\d\d:\d\dZ/\d+\Z")
LOCATION_TOKEN = re.compile(r"^@([+\-]?\d+(?:\.\d+)?)/([+\-]?\d+(?:\.\d+)?)\Z")
QUANTITY_TOKEN = re.compile(r"^[+-]\d+(\.\d+)?\Z")
MONOLINGUAL_TOKEN = re.compile(r'^([A-Za-z]+(?:-[A-Za-z0-9]+)*):("[^"\\]*(?:\\.[^"\\]*)*")\Z')

# Scheme followed by characters allowed in an IRI
ABSOLUTE_IRI = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*:[^\s<>"{}|\\^`]+\Z')

# Mutually exclusive keys of API JSON value objects
SHAPE_KEYS = ("numeric-id", "language", "globe", "time", "amount")

DEFAULT_TIMEZONE = 0
DEFAULT_TIME_BEFORE = 0
DEFAULT_TIME_AFTER = 0


# =============================================================================
# Helpers
# =============================================================================

def item_id(term: Any) -> str | None:
    """QID of an item IRI, or None for anything else."""
    if isinstance(term, Iri) and term.value.startswith(ENTITY):
        local = term.value[len(ENTITY):]
        if is_valid_term(local, TermKind.ITEM):
            return local
    return None


def item_iri(qid: str) -> Iri:
    return Iri(f"{ENTITY}{qid}")


def is_absolute_iri(value: str) -> bool:
    return ABSOLUTE_IRI.match(value) is not None


def string_to_graph_term(value: str) -> GraphTerm:
    """A URL-or-string value: Iri when it parses as an absolute IRI."""
    if is_absolute_iri(value):
        return Iri(value)
    return PlainLiteral(value)


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\t": "\\t", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"t": "\t", "n": "\n", "r": "\r"}


def _quote(text: str) -> str:
    return '"' + "".join(_ESCAPES.get(char, char) for char in text) + '"'


def _unquote(token: str) -> str:
    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return re.sub(r"\\(.)", lambda m: _UNESCAPES.get(m.group(1), m.group(1)), token[1:-1])
    return token


def infer_time_precision(date: WikibaseDate) -> int:
    """
    Guess the precision of a date loaded from RDF.

    Unknown days and months are stored as 01, so a 01 is read as absent.
    """
    if date.day > 1:
        return DAY_PRECISION
    if date.month > 1:
        return MONTH_PRECISION
    return YEAR_PRECISION


def _coordinate(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise AmbiguousValue(value, "coordinates must be numbers")
    return canonical_coordinate(value)


def canonical_value(term: GraphTerm) -> GraphTerm:
    """
    Rewrite coordinate and time literals to the text the codec produces.

    Any other term is returned as is. Values stored in canonical form come
    back unchanged from every encode/decode pair.
    """
    if not isinstance(term, TypedLiteral):
        return term
    if term.datatype == GEO_WKT_LITERAL:
        return TypedLiteral(WikibasePoint.from_wkt(term.value).to_wkt(), GEO_WKT_LITERAL)
    if term.datatype == XSD_DATETIME:
        return TypedLiteral(WikibaseDate.from_string(term.value).to_xsd(), XSD_DATETIME)
    return term


def _check_literal(term: Any) -> None:
    if isinstance(term, BlankNode):
        raise AmbiguousValue(str(term), "blank nodes are not statement values")
    if isinstance(term, TypedLiteral) and term.datatype not in (
        GEO_WKT_LITERAL, XSD_DATETIME, XSD_DECIMAL,
    ):
        raise UnsupportedDatatype(term.datatype)


# =============================================================================
# Graph term <-> curator token
# =============================================================================

def graph_term_to_curator_token(term: GraphTerm) -> str:
    """Encode a graph term as a QuickStatements value."""
    _check_literal(term)
    if isinstance(term, Iri):
        qid = item_id(term)
        return qid if qid is not None else _quote(term.value)
    if isinstance(term, PlainLiteral):
        return _quote(term.value)
    if isinstance(term, LangLiteral):
        return f"{term.language}:{_quote(term.value)}"
    if term.datatype == GEO_WKT_LITERAL:
        point = WikibasePoint.from_wkt(term.value)
        return f"@{point.latitude}/{point.longitude}"
    if term.datatype == XSD_DATETIME:
        date = WikibaseDate.from_string(term.value)
        return f"{date.to_wikidata()}/{infer_time_precision(date)}"
    return term.value


def curator_token_to_graph_term(token: str) -> GraphTerm:
    """
    Decode a QuickStatements value.

    Shapes are tried in order: item, monolingual text, time, location,
    quantity. Anything else is unquoted and becomes an Iri when it parses
    as an absolute IRI, a PlainLiteral otherwise.
    """
    if not token:
        raise AmbiguousValue(token, "empty value")

    if is_valid_term(token, TermKind.ITEM):
        term: GraphTerm = item_iri(token)
        logger.debug(f"Item value. From curator token [{token}] to [{term}]")
        return term

    match = MONOLINGUAL_TOKEN.match(token)
    if match:
        term = LangLiteral(_unquote(match.group(2)), match.group(1))
        logger.debug(f"Monolingual text value. From curator token [{token}] to [{term}]")
        return term

    if TIME_TOKEN.match(token):
        # Precision is not stored in the graph
        date = WikibaseDate.from_string(token.split("/", 1)[0])
        term = TypedLiteral(date.to_xsd(), XSD_DATETIME)
        logger.debug(f"Time value. From curator token [{token}] to [{term}]")
        return term

    match = LOCATION_TOKEN.match(token)
    if match:
        point = WikibasePoint(latitude=match.group(1), longitude=match.group(2))
        term = TypedLiteral(point.to_wkt(), GEO_WKT_LITERAL)
        logger.debug(f"Location value. From curator token [{token}] to [{term}]")
        return term

    if QUANTITY_TOKEN.match(token):
        term = TypedLiteral(token, XSD_DECIMAL)
        logger.debug(f"Quantity value. From curator token [{token}] to [{term}]")
        return term

    term = string_to_graph_term(_unquote(token))
    logger.debug(f"URL or string value. From curator token [{token}] to [{term}]")
    return term


# =============================================================================
# Graph term <-> editing API JSON
# =============================================================================

def graph_term_to_api_json(term: GraphTerm) -> ApiJsonValue:
    """
    Encode a graph term as an editing API value.

    Strings and URLs are plain JSON strings; other datatypes are objects.
    """
    _check_literal(term)
    if isinstance(term, Iri):
        qid = item_id(term)
        if qid is None:
            return term.value
        return {"entity-type": "item", "numeric-id": int(qid[1:])}
    if isinstance(term, PlainLiteral):
        return term.value
    if isinstance(term, LangLiteral):
        return {"language": term.language, "text": term.value}
    if term.datatype == GEO_WKT_LITERAL:
        point = WikibasePoint.from_wkt(term.value)
        return {
            "latitude": float(point.latitude),
            "longitude": float(point.longitude),
            "precision": point.precision,
            "globe": point.globe,
            "altitude": None,
        }
    if term.datatype == XSD_DATETIME:
        date = WikibaseDate.from_string(term.value)
        return {
            "time": date.to_wikidata(),
            "timezone": DEFAULT_TIMEZONE,
            "before": DEFAULT_TIME_BEFORE,
            "after": DEFAULT_TIME_AFTER,
            "precision": DAY_PRECISION,
            "calendarmodel": GREGORIAN_CALENDAR,
        }
    return {"amount": term.value, "unit": DIMENSIONLESS_UNIT}


def _api_object_to_graph_term(value: dict) -> GraphTerm:
    shapes = [key for key in SHAPE_KEYS if key in value]
    if len(shapes) != 1:
        raise AmbiguousValue(value, f"expected exactly one of {SHAPE_KEYS}, got {shapes}")
    shape = shapes[0]

    try:
        if shape == "numeric-id":
            entity_type = value.get("entity-type", "item")
            if entity_type != "item":
                raise UnsupportedDatatype(f"wikibase-entityid/{entity_type}")
            return item_iri(f"Q{int(value['numeric-id'])}")
        if shape == "language":
            language = str(value["language"])
            if not is_language_tag(language):
                raise AmbiguousValue(value, f"invalid language tag {language!r}")
            return LangLiteral(str(value["text"]), language)
        if shape == "globe":
            point = WikibasePoint(
                latitude=_coordinate(value["latitude"]),
                longitude=_coordinate(value["longitude"]),
                globe=value["globe"] or EARTH_GLOBE,
            )
            return TypedLiteral(point.to_wkt(), GEO_WKT_LITERAL)
        if shape == "time":
            date = WikibaseDate.from_string(str(value["time"]))
            return TypedLiteral(date.to_xsd(), XSD_DATETIME)
        unit = value.get("unit", DIMENSIONLESS_UNIT)
        if unit != DIMENSIONLESS_UNIT:
            logger.warning(f"Quantity unit {unit} is not kept in the graph")
        return TypedLiteral(str(value["amount"]), XSD_DECIMAL)
    except (KeyError, TypeError, ValueError) as e:
        raise AmbiguousValue(value, f"malformed {shape} value: {e}") from e


def api_json_to_graph_term(value: Any) -> GraphTerm:
    """
    Decode an editing API value.

    Object values may arrive as JSON text, the way the API passes them; any
    other string is a URL or a plain string.
    """
    if isinstance(value, dict):
        return _api_object_to_graph_term(value)
    if not isinstance(value, str):
        raise AmbiguousValue(value, "expected a JSON object or a string")
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return _api_object_to_graph_term(parsed)
    return string_to_graph_term(value)


# =============================================================================
# References
# =============================================================================

def _datavalue_type(term: GraphTerm) -> str:
    if isinstance(term, Iri):
        return "wikibase-entityid" if item_id(term) else "string"
    if isinstance(term, PlainLiteral):
        return "string"
    if isinstance(term, LangLiteral):
        return "monolingualtext"
    return {
        GEO_WKT_LITERAL: "globecoordinate",
        XSD_DATETIME: "time",
        XSD_DECIMAL: "quantity",
    }[term.datatype]


def graph_term_to_api_reference(pid: str, term: GraphTerm) -> dict:
    """Wrap a reference value as an API reference with a single snak."""
    value = graph_term_to_api_json(term)
    return {
        "snaks": {
            pid: [{
                "snaktype": "value",
                "property": pid,
                "datavalue": {"type": _datavalue_type(term), "value": value},
            }]
        }
    }


def api_json_reference_to_graph_term(payload: Any) -> tuple[str, GraphTerm]:
    """
    Decode the first snak of an API reference.

    Only the first property and its first value are read.

    Returns:
        (property id, value)
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise AmbiguousValue(payload, "reference is not JSON") from e
    try:
        snaks = payload["snaks"]
        pid = next(iter(snaks))
        snak = snaks[pid][0]
        datavalue = snak["datavalue"]
        value_type = datavalue["type"]
        value = datavalue["value"]
    except (KeyError, IndexError, TypeError, StopIteration) as e:
        raise AmbiguousValue(payload, "expected snaks with one datavalue") from e

    if value_type == "string":
        if not isinstance(value, str):
            raise AmbiguousValue(value, "string datavalue must be a string")
        return pid, string_to_graph_term(value)
    if value_type in ("wikibase-entityid", "monolingualtext", "time", "globecoordinate", "quantity"):
        term = api_json_to_graph_term(value)
        if _datavalue_type(term) != value_type:
            raise AmbiguousValue(value, f"does not match datavalue type {value_type}")
        return pid, term
    raise UnsupportedDatatype(value_type)
