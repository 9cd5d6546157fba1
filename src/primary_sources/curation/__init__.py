"""Curation workflow: decisions and the updates that apply them."""

from primary_sources.curation.models import (
    CurationDecision,
    CurationRequest,
    CurationState,
    StatementKind,
    StatementLocator,
)
from primary_sources.curation.state_machine import (
    CurationService,
    CurationUpdate,
    build_curation_update,
    transition,
)

__all__ = [
    "CurationDecision",
    "CurationRequest",
    "CurationState",
    "StatementKind",
    "StatementLocator",
    "CurationService",
    "CurationUpdate",
    "build_curation_update",
    "transition",
]
