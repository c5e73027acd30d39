"""
Engine - Normalization, aggregation, scoring and alerting

This package turns raw exported records into team metrics:
    - sprint_resolver / role_resolver / normalizer: RawRecord -> Ticket
    - contributor_metrics / scoring: per-contributor figures and scores
    - function_metrics / alert_engine: per-role rollups and alerts
    - insights / filters: supplementary analyses and scope selection
    - pipeline: the whole flow in one call

Usage:
    from teamlight.engine import TeamMetricsEngine

    result = TeamMetricsEngine(role_table, calendar).run(records)
"""

from .filters import TicketFilter, TimePeriod, apply_filters, with_parent_features
from .pipeline import EngineResult, TeamMetricsEngine, serialize_result

__all__ = [
    "EngineResult",
    "TeamMetricsEngine",
    "TicketFilter",
    "TimePeriod",
    "apply_filters",
    "serialize_result",
    "with_parent_features",
]
