"""
Curator lines in QuickStatements syntax.

    Q5921 <TAB> P18 <TAB> "http://..." <TAB> P2096 <TAB> en:"caption" <TAB> S143 <TAB> Q206855

Subject, main property and main value, followed by qualifier pairs and
reference pairs. Reference properties use an ``S`` prefix instead of ``P``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from primary_sources.errors import MalformedStatement
from primary_sources.validation.terms import TermKind, is_valid_term

logger = logging.getLogger(__name__)

REFERENCE_PROPERTY = re.compile(r"^S\d+\Z")


def reference_to_property(sid: str) -> str:
    """``S143`` -> ``P143``"""
    return "P" + sid[1:]


def property_to_reference(pid: str) -> str:
    """``P143`` -> ``S143``"""
    return "S" + pid[1:]


@dataclass
class CuratorLine:
    """A parsed QuickStatements line; values are kept as raw tokens."""
    subject: str
    main_property: str
    main_value: str
    qualifiers: list[tuple[str, str]] = field(default_factory=list)
    references: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def parse(cls, line: str) -> CuratorLine:
        """
        Parse a tab-separated line.

        Raises:
            MalformedStatement: on fewer than 3 tokens, an invalid subject or
            main property, or a dangling property without a value.
        """
        tokens = line.rstrip("\r\n").split("\t")
        if len(tokens) < 3:
            raise MalformedStatement(f"Expected at least 3 tab-separated tokens: {line!r}")
        subject, main_property, main_value = tokens[:3]
        if not is_valid_term(subject, TermKind.ITEM):
            raise MalformedStatement(f"Invalid subject QID: {subject}")
        if not is_valid_term(main_property, TermKind.PROPERTY):
            raise MalformedStatement(f"Invalid main property PID: {main_property}")

        rest = tokens[3:]
        if len(rest) % 2:
            raise MalformedStatement(f"Property without a value: {rest[-1]}")

        parsed = cls(subject, main_property, main_value)
        for prop, value in zip(rest[::2], rest[1::2]):
            if is_valid_term(prop, TermKind.PROPERTY):
                if parsed.references:
                    raise MalformedStatement(f"Qualifier {prop} after a reference")
                parsed.qualifiers.append((prop, value))
            elif REFERENCE_PROPERTY.match(prop):
                parsed.references.append((prop, value))
            else:
                raise MalformedStatement(f"Invalid qualifier or reference property: {prop}")
        logger.debug(f"Parsed curator line {line!r} into {parsed}")
        return parsed

    def format(self) -> str:
        tokens = [self.subject, self.main_property, self.main_value]
        for prop, value in self.qualifiers + self.references:
            tokens.extend((prop, value))
        return "\t".join(tokens)

    def __str__(self) -> str:
        return self.format()


def parse_curator_line(line: str) -> CuratorLine:
    return CuratorLine.parse(line)
