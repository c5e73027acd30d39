"""
Domain Models - Type-safe data structures for the metrics engine

This package contains dataclasses representing business domain concepts:
    - ticket: RawRecord, Ticket, NormalizedType
    - roster: RoleCapacityEntry, SprintCalendarEntry, CapacityMetric
    - metrics: ContributorMetrics, FunctionMetrics, FeatureContribution, ContributorFlag
    - alerts: Alert, AlertKind, AlertCategory
    - thresholds: Thresholds

Usage:
    from teamlight.domain import Ticket, Thresholds

    thresholds = Thresholds.from_mapping({"topPerformerZ": 1.2})
"""

from .alerts import SEVERITY_ORDER, Alert, AlertCategory, AlertKind
from .metrics import ContributorFlag, ContributorMetrics, FeatureContribution, FunctionMetrics
from .roster import (
    ROLE_ALIASES,
    CapacityMetric,
    RoleCapacityEntry,
    SprintCalendarEntry,
    format_sprint_label,
    normalize_role,
)
from .thresholds import Thresholds, load_thresholds
from .ticket import NormalizedType, RawRecord, Ticket

__all__ = [
    # Tickets
    "RawRecord",
    "Ticket",
    "NormalizedType",
    # Roster
    "RoleCapacityEntry",
    "SprintCalendarEntry",
    "CapacityMetric",
    "format_sprint_label",
    "normalize_role",
    "ROLE_ALIASES",
    # Metrics
    "ContributorMetrics",
    "FunctionMetrics",
    "FeatureContribution",
    "ContributorFlag",
    # Alerts
    "Alert",
    "AlertKind",
    "AlertCategory",
    "SEVERITY_ORDER",
    # Configuration
    "Thresholds",
    "load_thresholds",
]
