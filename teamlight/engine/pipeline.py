"""
Team Metrics Engine

Runs the full metrics pipeline over one batch of raw records:
    - Normalize records into tickets (sprint, role, cycle time, identity)
    - Narrow the ticket scope with an optional filter
    - Aggregate and score contributors
    - Roll contributors up into functions
    - Generate alerts and supplementary insights

Every call rebuilds everything from its inputs; identical inputs give
identical results.

Usage:
    from teamlight.engine.pipeline import TeamMetricsEngine, serialize_result

    engine = TeamMetricsEngine(role_table, sprint_calendar, thresholds, settings)
    result = engine.run(records)
    payload = serialize_result(result)
"""

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from teamlight.config import EngineSettings
from teamlight.core import get_logger, log_with_context
from teamlight.domain.alerts import Alert
from teamlight.domain.metrics import ContributorMetrics, FunctionMetrics
from teamlight.domain.roster import RoleCapacityEntry, SprintCalendarEntry
from teamlight.domain.thresholds import Thresholds
from teamlight.domain.ticket import RawRecord, Ticket
from teamlight.engine.alert_engine import AlertEngine
from teamlight.engine.contributor_metrics import aggregate_contributors, feature_titles, group_by
from teamlight.engine.filters import TicketFilter, apply_filters, with_parent_features
from teamlight.engine.function_metrics import aggregate_functions
from teamlight.engine.insights import (
    CarryOverReport,
    DeliverySpeed,
    FeatureTimelineEntry,
    KpiSummary,
    TeamEfficiency,
    UtilizationPoint,
    calculate_carry_over,
    calculate_delivery_speed,
    calculate_feature_timeline,
    calculate_kpis,
    calculate_team_efficiency,
    calculate_utilization_trend,
)
from teamlight.engine.normalizer import normalize_records
from teamlight.engine.role_resolver import RoleResolver
from teamlight.engine.scoring import score_contributors
from teamlight.engine.sprint_resolver import SprintResolver
from teamlight.utils.statistics import finite_or_zero

logger = get_logger(__name__)

FLOAT_PRECISION = 4


@dataclass(frozen=True)
class EngineResult:
    """
    Output of one engine run.

    Attributes:
        tickets: Normalized tickets in scope, plus the Features their parent ids name
        contributors: Scored contributor metrics, sorted by assignee
        functions: Per-role metrics, sorted by role
        alerts: Alerts ordered by severity
        kpis: Headline figures for the scope
        carry_over: Carry-over analysis
        delivery_speed: Per-contributor delivery speed
        utilization_trend: Quarterly role utilization
        team_efficiency: Story points against team size per sprint
        quarterly_efficiency: Story points against team size per quarter
        feature_timeline: Delivery span of each Feature with closed child work
        skipped_records: Records that could not be normalized
        dropped_records: Records dropped by strict role matching
        role_warnings: Contributors that fell back to the default role
    """

    tickets: tuple[Ticket, ...]
    contributors: tuple[ContributorMetrics, ...]
    functions: tuple[FunctionMetrics, ...]
    alerts: tuple[Alert, ...]
    kpis: KpiSummary
    carry_over: CarryOverReport
    delivery_speed: tuple[DeliverySpeed, ...]
    utilization_trend: tuple[UtilizationPoint, ...]
    team_efficiency: TeamEfficiency
    quarterly_efficiency: TeamEfficiency
    feature_timeline: tuple[FeatureTimelineEntry, ...]
    skipped_records: int = 0
    dropped_records: int = 0
    role_warnings: tuple[str, ...] = ()


class TeamMetricsEngine:
    """
    Configured metrics pipeline.

    The role table, calendar, thresholds and settings are fixed per engine;
    resolver state (such as default-role warnings) is rebuilt on every run.
    """

    def __init__(
        self,
        role_table: Sequence[RoleCapacityEntry] = (),
        sprint_calendar: Sequence[SprintCalendarEntry] = (),
        thresholds: Thresholds | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.role_table = tuple(role_table)
        self.sprint_calendar = tuple(sprint_calendar)
        self.thresholds = thresholds or Thresholds()
        self.settings = settings or EngineSettings()

    def run(self, records: Iterable[RawRecord], ticket_filter: TicketFilter | None = None) -> EngineResult:
        """
        Compute every metric for one batch of records.

        Args:
            records: Raw exported rows
            ticket_filter: Optional scope; None keeps every normalized ticket

        Returns:
            EngineResult
        """
        records = list(records)
        sprint_resolver = SprintResolver(self.sprint_calendar, self.settings.date_driven_projects)
        role_resolver = RoleResolver(self.role_table, strict=self.settings.strict_roles)

        # Step 1: Normalize
        normalized = normalize_records(records, sprint_resolver, role_resolver)
        tickets = list(normalized.tickets)
        titles = feature_titles(tickets)

        # Step 2: Scope (Features are looked up in the unscoped set)
        scoped = tickets
        if ticket_filter is not None:
            scoped = apply_filters(tickets, ticket_filter)

        # Step 3: Contributors
        tickets_by_assignee = group_by(scoped, lambda t: t.assignee)
        contributors = score_contributors(
            aggregate_contributors(scoped, self.thresholds, titles),
            tickets_by_assignee,
            role_resolver.directory,
            self.thresholds,
        )

        # Step 4: Functions and alerts
        functions = aggregate_functions(contributors)
        alerts = AlertEngine(self.thresholds).generate(functions, scoped)

        result = EngineResult(
            tickets=tuple(with_parent_features(scoped, tickets)),
            contributors=tuple(contributors),
            functions=tuple(functions),
            alerts=tuple(alerts),
            kpis=calculate_kpis(scoped, contributors),
            carry_over=calculate_carry_over(scoped, directory=role_resolver.directory),
            delivery_speed=tuple(calculate_delivery_speed(scoped)),
            utilization_trend=tuple(calculate_utilization_trend(scoped)),
            team_efficiency=calculate_team_efficiency(scoped),
            quarterly_efficiency=calculate_team_efficiency(scoped, granularity="quarter"),
            feature_timeline=tuple(calculate_feature_timeline(scoped, features=tickets)),
            skipped_records=normalized.skipped_records,
            dropped_records=normalized.dropped_records,
            role_warnings=tuple(role_resolver.warned),
        )

        log_with_context(
            logger,
            "info",
            "Metrics run complete",
            records_in=len(records),
            tickets_out=len(result.tickets),
            skipped=result.skipped_records,
            dropped=result.dropped_records,
            contributors=len(result.contributors),
            roles=len(result.functions),
            alerts=len(result.alerts),
        )
        return result


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return round(finite_or_zero(value), FLOAT_PRECISION)
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def serialize_result(result: EngineResult) -> dict[str, Any]:
    """
    Convert an EngineResult into JSON-ready dicts.

    Dates become ISO strings, enums their values, floats are rounded to
    four decimal places and non-finite floats become 0.
    """
    return _to_jsonable(result)
