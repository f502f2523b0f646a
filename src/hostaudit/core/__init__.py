"""Core catalog, scan and scoring logic."""

from hostaudit.core.catalog import build_phase_list, load_catalog
from hostaudit.core.errors import (
    CatalogError,
    CheckProcessError,
    ConfigError,
    HostAuditError,
    SinkClosedError,
)
from hostaudit.core.models import (
    CheckDefinition,
    CheckOutcome,
    CheckStatus,
    PhaseInfo,
    ScanTally,
    ScoreResult,
)
from hostaudit.core.scoring import compute_grade, compute_score
from hostaudit.core.sink import CallbackEventSink, CollectingEventSink, EventSink, QueueEventSink

__all__ = [
    "CallbackEventSink",
    "CatalogError",
    "CheckDefinition",
    "CheckOutcome",
    "CheckProcessError",
    "CheckStatus",
    "CollectingEventSink",
    "ConfigError",
    "EventSink",
    "HostAuditError",
    "PhaseInfo",
    "QueueEventSink",
    "ScanTally",
    "ScoreResult",
    "SinkClosedError",
    "build_phase_list",
    "compute_grade",
    "compute_score",
    "load_catalog",
]
