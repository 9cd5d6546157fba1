"""
Wikibase time and globe coordinate values.

Wikidata writes times as ``+YYYY-MM-DDThh:mm:ssZ`` (signed, at least four
year digits) while the RDF dumps use ``xsd:dateTime`` lexical forms without
the leading ``+``. Coordinates are WKT points, longitude first, optionally
prefixed by the globe IRI when it is not the Earth.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal

from primary_sources.errors import AmbiguousValue
from primary_sources.vocabulary import EARTH_GLOBE

_DATE = re.compile(
    r"^(?P<sign>[+-]?)(?P<year>\d+)-(?P<month>\d\d)-(?P<day>\d\d)"
    r"T(?P<hour>\d\d):(?P<minute>\d\d):(?P<second>\d\d)(?:\.\d+)?"
    r"(?:Z|[+-]00:00)?$"
)

_POINT = re.compile(
    r"^(?:<(?P<globe>[^>]+)>\s+)?Point\(\s*(?P<longitude>[+\-]?[\d.eE+\-]+)"
    r"\s+(?P<latitude>[+\-]?[\d.eE+\-]+)\s*\)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class WikibaseDate:
    """A point in time at second granularity, always UTC."""
    year: int
    month: int = 1
    day: int = 1
    hour: int = 0
    minute: int = 0
    second: int = 0

    @classmethod
    def from_string(cls, value: str) -> WikibaseDate:
        """
        Parse either the Wikidata or the xsd:dateTime form.

        Zero months and days, used by Wikidata for unknown parts, become 1.
        Fractional seconds are dropped and a zero offset reads as UTC, so
        ``to_xsd`` gives the canonical form of any accepted string.
        """
        match = _DATE.match(value.strip())
        if match is None:
            raise AmbiguousValue(value, "not a date")
        year = int(match.group("year"))
        if match.group("sign") == "-":
            year = -year
        return cls(
            year=year,
            month=int(match.group("month")) or 1,
            day=int(match.group("day")) or 1,
            hour=int(match.group("hour")),
            minute=int(match.group("minute")),
            second=int(match.group("second")),
        )

    def _time_part(self) -> str:
        return (
            f"{abs(self.year):04d}-{self.month:02d}-{self.day:02d}"
            f"T{self.hour:02d}:{self.minute:02d}:{self.second:02d}Z"
        )

    def to_wikidata(self) -> str:
        """``+YYYY-MM-DDThh:mm:ssZ``"""
        sign = "-" if self.year < 0 else "+"
        return f"{sign}{self._time_part()}"

    def to_xsd(self) -> str:
        """``YYYY-MM-DDThh:mm:ssZ``, with a sign only for negative years."""
        sign = "-" if self.year < 0 else ""
        return f"{sign}{self._time_part()}"


@dataclass(frozen=True)
class WikibasePoint:
    """
    A globe coordinate.

    Latitude and longitude are held as canonical decimal text: the shortest
    form that parses back to the same float, without exponent, ``+`` sign or
    a trailing ``.0``. ``51.50`` and ``51.5`` are the same coordinate.
    """
    latitude: str
    longitude: str
    globe: str = EARTH_GLOBE

    def __post_init__(self):
        object.__setattr__(self, "latitude", canonical_coordinate(self.latitude))
        object.__setattr__(self, "longitude", canonical_coordinate(self.longitude))

    @classmethod
    def from_wkt(cls, value: str) -> WikibasePoint:
        match = _POINT.match(value.strip())
        if match is None:
            raise AmbiguousValue(value, "not a WKT point")
        return cls(
            latitude=match.group("latitude"),
            longitude=match.group("longitude"),
            globe=match.group("globe") or EARTH_GLOBE,
        )

    def to_wkt(self) -> str:
        point = f"Point({self.longitude} {self.latitude})"
        if self.globe == EARTH_GLOBE:
            return point
        return f"<{self.globe}> {point}"

    @property
    def precision(self) -> float:
        """The finer of the two coordinates' decimal precisions."""
        return min(
            10.0 ** -decimal_digits(self.latitude),
            10.0 ** -decimal_digits(self.longitude),
        )


def canonical_coordinate(value: str | float) -> str:
    """Canonical decimal text of a coordinate given as text or a number."""
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise AmbiguousValue(value, "coordinates must be numbers") from e
    if not math.isfinite(number):
        raise AmbiguousValue(value, "coordinates must be finite")
    if number == 0:
        return "0"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def decimal_digits(number: str) -> int:
    """Number of digits after the decimal point."""
    _, _, fraction = number.partition(".")
    return len(fraction)
