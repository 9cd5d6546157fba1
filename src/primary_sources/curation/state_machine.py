"""
Curation workflow.

Statements enter a dataset in ``<dataset>/new`` and leave it exactly once,
for one of ``approved``, ``rejected``, ``duplicate`` or ``blacklisted``. A
decision becomes a single DELETE/INSERT/WHERE update that:

- moves the curated triples from ``<dataset>/new`` to ``<dataset>/<state>``
- bumps the curator's activity counter in the metadata graph

What moves depends on the statement part:

- claim approval: the main value and its qualifiers; references stay in
  ``new`` so they can be curated on their own
- claim rejection: the whole statement, qualifiers and references included
- qualifier: that qualifier triple only
- reference: that reference value triple only

Edges needed to reach a moved qualifier or reference from its item are
copied to the target graph, not moved, so siblings left in ``new`` keep
their anchors.

The counter is bumped even when nothing matches, so replaying a decision
counts twice.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from primary_sources.curation.models import (
    CurationDecision,
    CurationRequest,
    CurationState,
    StatementKind,
)
from primary_sources.errors import InvalidTransition
from primary_sources.sparql import (
    Bind,
    Slot,
    SlotIri,
    SlotKind,
    TriplePattern,
    UpdateOperation,
    Variable,
    const,
    graph,
    optional,
    optional_graph,
    strstarts,
)
from primary_sources.vocabulary import (
    ACTIVITIES,
    ENTITY,
    METADATA_GRAPH,
    NEW_STATE_SUFFIX,
    PROP,
    PROP_QUALIFIER,
    PROP_REFERENCE,
    PROP_STATEMENT,
    PROV_WAS_DERIVED_FROM,
    USER_PREFIX,
)

if TYPE_CHECKING:
    from primary_sources.store import GraphStore

logger = logging.getLogger(__name__)


def transition(source: CurationState, target: CurationState) -> CurationState:
    """Check a state change; only new -> terminal state is allowed."""
    if source is not CurationState.NEW or not target.is_terminal:
        raise InvalidTransition(source.value, target.value)
    return target


# =============================================================================
# Parameters
# =============================================================================

USER = Slot("user", SlotKind.USER)
DATASET = Slot("dataset", SlotKind.IRI)
STATE = Slot("state", SlotKind.NAME)
QID = Slot("qid", SlotKind.ITEM_ID)
MAIN_PID = Slot("main_pid", SlotKind.PROPERTY_ID)
PID = Slot("pid", SlotKind.PROPERTY_ID)
VALUE = Slot("value", SlotKind.TERM)

NEW_GRAPH = SlotIri(DATASET, f"/{NEW_STATE_SUFFIX}")
TARGET_GRAPH = SlotIri(DATASET, "/", STATE)
METADATA = const(METADATA_GRAPH)
CURATOR = SlotIri(USER_PREFIX, USER)

ITEM = SlotIri(ENTITY, QID)
CLAIM_PROPERTY = SlotIri(PROP, MAIN_PID)
MAIN_STATEMENT_PROPERTY = SlotIri(PROP_STATEMENT, MAIN_PID)
STATEMENT_PROPERTY = SlotIri(PROP_STATEMENT, PID)
QUALIFIER_PROPERTY = SlotIri(PROP_QUALIFIER, PID)
REFERENCE_PROPERTY = SlotIri(PROP_REFERENCE, PID)
DERIVED_FROM = const(PROV_WAS_DERIVED_FROM)

ST = Variable("st_node")
ST_VALUE = Variable("st_value")
QUALIFIER_P = Variable("qualif_p")
QUALIFIER_V = Variable("qualif_v")
REF = Variable("ref_node")
REF_P = Variable("ref_p")
REF_V = Variable("ref_v")
ACTIVITIES_COUNT = Variable("activities")
INCREMENTED = Variable("incremented")

_ITEM_EDGE = TriplePattern(ITEM, CLAIM_PROPERTY, ST)
_MAIN_VALUE = TriplePattern(ST, STATEMENT_PROPERTY, VALUE)
_ANY_MAIN_VALUE = TriplePattern(ST, MAIN_STATEMENT_PROPERTY, ST_VALUE)
_QUALIFIERS = TriplePattern(ST, QUALIFIER_P, QUALIFIER_V)
_PROVENANCE = TriplePattern(ST, DERIVED_FROM, REF)
_REFERENCE_VALUES = TriplePattern(REF, REF_P, REF_V)


def _with_counter(delete: list, insert: list, dataset_match: list) -> UpdateOperation:
    """Wrap the dataset move with the activity counter bump."""
    counter = TriplePattern(CURATOR, const(ACTIVITIES), ACTIVITIES_COUNT)
    return UpdateOperation(
        delete=[graph(NEW_GRAPH, *delete), graph(METADATA, counter)],
        insert=[
            graph(TARGET_GRAPH, *insert),
            graph(METADATA, TriplePattern(CURATOR, const(ACTIVITIES), INCREMENTED)),
        ],
        where=[
            optional_graph(METADATA, counter),
            Bind(f"IF(BOUND({ACTIVITIES_COUNT}), {ACTIVITIES_COUNT} + 1, 1)", INCREMENTED),
            optional_graph(NEW_GRAPH, *dataset_match),
        ],
    )


# =============================================================================
# Updates per statement part
# =============================================================================

def claim_approval_update() -> UpdateOperation:
    qualifiers = optional(_QUALIFIERS, strstarts(QUALIFIER_P, PROP_QUALIFIER))
    return _with_counter(
        delete=[_MAIN_VALUE, _QUALIFIERS],
        insert=[_ITEM_EDGE, _MAIN_VALUE, _QUALIFIERS],
        dataset_match=[_ITEM_EDGE, _MAIN_VALUE, qualifiers],
    )


def claim_rejection_update() -> UpdateOperation:
    qualifiers = optional(_QUALIFIERS, strstarts(QUALIFIER_P, PROP_QUALIFIER))
    references = optional(_PROVENANCE, optional(_REFERENCE_VALUES))
    subtree = [_ITEM_EDGE, _MAIN_VALUE, _QUALIFIERS, _PROVENANCE, _REFERENCE_VALUES]
    return _with_counter(
        delete=subtree,
        insert=subtree,
        dataset_match=[_ITEM_EDGE, _MAIN_VALUE, qualifiers, references],
    )


def qualifier_update() -> UpdateOperation:
    qualifier = TriplePattern(ST, QUALIFIER_PROPERTY, VALUE)
    return _with_counter(
        delete=[qualifier],
        insert=[_ITEM_EDGE, _ANY_MAIN_VALUE, qualifier],
        dataset_match=[_ITEM_EDGE, qualifier, optional(_ANY_MAIN_VALUE)],
    )


def reference_update() -> UpdateOperation:
    reference_value = TriplePattern(REF, REFERENCE_PROPERTY, VALUE)
    return _with_counter(
        delete=[reference_value],
        insert=[_ITEM_EDGE, _ANY_MAIN_VALUE, _PROVENANCE, reference_value],
        dataset_match=[_ITEM_EDGE, _PROVENANCE, reference_value, optional(_ANY_MAIN_VALUE)],
    )


# =============================================================================
# Building and running decisions
# =============================================================================

@dataclass
class CurationUpdate:
    """An update operation together with the values for its slots."""
    decision: CurationDecision
    operation: UpdateOperation
    bindings: dict[Slot, Any] = field(default_factory=dict)

    @property
    def sparql(self) -> str:
        return self.operation.render(self.bindings)


def select_update(kind: StatementKind, state: CurationState) -> UpdateOperation:
    if kind is StatementKind.CLAIM:
        if state is CurationState.APPROVED:
            return claim_approval_update()
        return claim_rejection_update()
    if kind is StatementKind.QUALIFIER:
        return qualifier_update()
    return reference_update()


def build_curation_update(decision: CurationDecision) -> CurationUpdate:
    """Build the update applying ``decision`` to its dataset."""
    target = transition(CurationState.NEW, decision.state)
    locator = decision.locator
    operation = select_update(locator.kind, target)
    bindings = {
        USER: decision.user,
        DATASET: decision.dataset,
        STATE: target.value,
        QID: locator.subject_id,
        MAIN_PID: locator.main_property_id,
        PID: locator.property_id,
        VALUE: locator.value,
    }
    # Not every update uses every slot
    used = operation.slots()
    bindings = {slot: value for slot, value in bindings.items() if any(slot is u for u in used)}
    return CurationUpdate(decision, operation, bindings)


class CurationService:
    """Applies curation decisions to a graph store."""

    def __init__(self, store: GraphStore):
        self.store = store

    def curate(self, decision: CurationDecision | CurationRequest) -> CurationUpdate:
        """
        Apply one decision as a single atomic update.

        Raises:
            StoreError: if the store rejects the update; no retry is made.
        """
        if isinstance(decision, CurationRequest):
            decision = decision.to_decision()
        update = build_curation_update(decision)
        sparql = update.sparql
        logger.debug(f"Curation update: {sparql}")
        self.store.update(sparql)
        locator = decision.locator
        logger.info(
            f"{decision.user} moved {locator.kind.value} "
            f"({locator.subject_id}, {locator.property_id}, {locator.value}) "
            f"of {decision.dataset} to {decision.state.value}"
        )
        return update
