"""
Curation decisions.

A decision names one statement, qualifier or reference of a dataset, the
workflow state it should move to and the curator taking it. Decisions come
either as editing API JSON or as a QuickStatements line.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from primary_sources.codec.quickstatements import CuratorLine, reference_to_property
from primary_sources.codec.values import (
    api_json_reference_to_graph_term,
    api_json_to_graph_term,
    curator_token_to_graph_term,
)
from primary_sources.errors import InvalidLocator, MalformedStatement
from primary_sources.terms import GraphTerm
from primary_sources.validation.terms import TermKind, is_valid_term
from primary_sources.vocabulary import dataset_base

logger = logging.getLogger(__name__)

# URI-reserved characters, see https://tools.ietf.org/html/rfc3986#section-2.2
ILLEGAL_USER_NAME = re.compile(r"[:/?#\[\]@!$&'()*+,;=<>\"{}|\\^`\s]")


class CurationState(Enum):
    """Workflow states; every dataset graph ends with one of them."""
    NEW = "new"
    APPROVED = "approved"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    BLACKLISTED = "blacklisted"

    @property
    def is_terminal(self) -> bool:
        return self is not CurationState.NEW


class StatementKind(Enum):
    """What part of a statement a decision is about."""
    CLAIM = "claim"
    QUALIFIER = "qualifier"
    REFERENCE = "reference"


@dataclass(frozen=True)
class StatementLocator:
    """
    Identifies the triple a decision applies to.

    For claims ``property_id`` is the main property; for qualifiers and
    references it is the qualifier or reference property.
    """
    subject_id: str
    main_property_id: str
    property_id: str
    value: GraphTerm
    kind: StatementKind

    def __post_init__(self):
        if not is_valid_term(self.subject_id, TermKind.ITEM):
            raise InvalidLocator(f"Invalid subject QID: {self.subject_id}")
        for pid in (self.main_property_id, self.property_id):
            if not is_valid_term(pid, TermKind.PROPERTY):
                raise InvalidLocator(f"Invalid PID: {pid}")
        if self.kind is StatementKind.CLAIM and self.property_id != self.main_property_id:
            raise InvalidLocator(
                f"Claim property {self.property_id} differs from main property {self.main_property_id}"
            )

    @classmethod
    def from_curator_line(cls, line: str | CuratorLine, kind: StatementKind) -> StatementLocator:
        """
        Locate the curated part of a QuickStatements line.

        Claims use the main value; qualifiers the first qualifier pair;
        references the first reference pair.
        """
        parsed = line if isinstance(line, CuratorLine) else CuratorLine.parse(line)
        if kind is StatementKind.CLAIM:
            pid, token = parsed.main_property, parsed.main_value
        elif kind is StatementKind.QUALIFIER:
            if not parsed.qualifiers:
                raise MalformedStatement(f"No qualifier in curator line: {parsed}")
            pid, token = parsed.qualifiers[0]
        else:
            if not parsed.references:
                raise MalformedStatement(f"No reference in curator line: {parsed}")
            sid, token = parsed.references[0]
            pid = reference_to_property(sid)
        return cls(
            subject_id=parsed.subject,
            main_property_id=parsed.main_property,
            property_id=pid,
            value=curator_token_to_graph_term(token),
            kind=kind,
        )


@dataclass(frozen=True)
class CurationDecision:
    """A curator's decision about one located triple."""
    locator: StatementLocator
    state: CurationState
    user: str
    dataset: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "qid": self.locator.subject_id,
            "main_property": self.locator.main_property_id,
            "property": self.locator.property_id,
            "value": str(self.locator.value),
            "type": self.locator.kind.value,
            "state": self.state.value,
            "user": self.user,
            "dataset": self.dataset,
        }


class CurationRequest(BaseModel):
    """Body of a curation request."""
    qs: Optional[str] = Field(None, description="QuickStatements line, alternative to the JSON fields")
    qid: Optional[str] = Field(None, description="Subject item, e.g. Q5921")
    main_property: Optional[str] = Field(None, description="Main property, e.g. P18")
    property: Optional[str] = Field(None, description="Qualifier property, for qualifiers")
    value: Any = Field(None, description="Editing API value, or reference snaks for references")
    type: Literal["claim", "qualifier", "reference"] = Field(..., description="Statement part")
    state: Literal["approved", "rejected", "duplicate", "blacklisted"] = Field(
        ..., description="Target state"
    )
    user: str = Field(..., description="Wiki user name of the curator")
    dataset: str = Field(..., description="Dataset URI, with or without the /new suffix")

    @field_validator("user")
    @classmethod
    def _check_user(cls, value: str) -> str:
        if not value or ILLEGAL_USER_NAME.search(value):
            raise ValueError(f"Illegal characters in user name: {value!r}")
        return value

    @field_validator("dataset")
    @classmethod
    def _check_dataset(cls, value: str) -> str:
        if not re.match(r"^[A-Za-z][A-Za-z0-9+.\-]*://[^\s<>\"{}|\\^`]+\Z", value):
            raise ValueError(f"Invalid dataset URI: {value!r}")
        return dataset_base(value)

    @model_validator(mode="after")
    def _check_statement(self) -> CurationRequest:
        if self.qs is not None:
            return self
        if self.qid is None or self.main_property is None or self.value is None:
            raise ValueError("Either qs or qid, main_property and value are required")
        if self.type == "qualifier" and self.property is None:
            raise ValueError("Qualifier decisions need a property")
        return self

    def to_decision(self) -> CurationDecision:
        """
        Resolve the request into a decision.

        Raises:
            MalformedStatement, InvalidLocator, AmbiguousValue,
            UnsupportedDatatype: when the statement cannot be located.
        """
        kind = StatementKind(self.type)
        if self.qs is not None:
            locator = StatementLocator.from_curator_line(self.qs, kind)
        elif kind is StatementKind.CLAIM:
            locator = StatementLocator(
                self.qid, self.main_property, self.main_property,
                api_json_to_graph_term(self.value), kind,
            )
        elif kind is StatementKind.QUALIFIER:
            locator = StatementLocator(
                self.qid, self.main_property, self.property,
                api_json_to_graph_term(self.value), kind,
            )
        else:
            pid, term = api_json_reference_to_graph_term(self.value)
            locator = StatementLocator(self.qid, self.main_property, pid, term, kind)

        decision = CurationDecision(locator, CurationState(self.state), self.user, self.dataset)
        logger.debug(f"Curation decision: {decision.to_dict()}")
        return decision
