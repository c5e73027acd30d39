"""
Alert engine for team metrics.

Evaluates declarative threshold rules against project statistics and
function metrics, plus a cross-function workload balance check, and returns
alerts ordered by severity (risks before achievements).

Usage::

    from teamlight.engine.alert_engine import AlertEngine

    engine = AlertEngine(thresholds)
    alerts = engine.generate(function_metrics, tickets)
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from teamlight.core import get_logger
from teamlight.domain.alerts import Alert, AlertCategory, AlertKind
from teamlight.domain.metrics import FunctionMetrics
from teamlight.domain.thresholds import Thresholds
from teamlight.domain.ticket import Ticket
from teamlight.engine.contributor_metrics import group_by
from teamlight.utils.statistics import safe_divide

logger = get_logger(__name__)


@dataclass(frozen=True)
class Condition:
    """
    One comparison of a subject attribute against a threshold.

    Attributes:
        metric: Attribute name on the subject (FunctionMetrics or ProjectStats)
        operator: "above" | "below" | "at_least" | "within"
        threshold: Thresholds attribute holding the cutoff (lower bound for "within")
        upper: Thresholds attribute holding the upper bound for "within"
    """

    metric: str
    operator: str
    threshold: str
    upper: str | None = None

    def holds(self, subject: Any, thresholds: Thresholds) -> bool:
        value = getattr(subject, self.metric)
        limit = getattr(thresholds, self.threshold)
        if self.operator == "above":
            return value > limit
        if self.operator == "below":
            return value < limit
        if self.operator == "at_least":
            return value >= limit
        if self.operator == "within":
            return limit <= value <= getattr(thresholds, self.upper)
        raise ValueError(f"Unknown operator: {self.operator}")


@dataclass(frozen=True)
class AlertRule:
    """A rule that fires when all of its conditions hold."""

    kind: AlertKind
    category: AlertCategory
    conditions: tuple[Condition, ...]
    value_metric: str
    message_template: str
    recommendation_template: str

    def applies(self, subject: Any, thresholds: Thresholds) -> bool:
        return all(condition.holds(subject, thresholds) for condition in self.conditions)


@dataclass(frozen=True)
class ProjectStats:
    """Closed-ticket delivery figures of one project."""

    project: str
    story_points: int
    share: float
    closed_tickets: int
    rework_rate: float


# ---------------------------------------------------------------------------
# Built-in rules
# ---------------------------------------------------------------------------

_ENOUGH_MEMBERS = Condition("member_count", "at_least", "min_function_members")
_ENOUGH_TICKETS = Condition("closed_tickets", "at_least", "min_quality_tickets")

PROJECT_RULES: list[AlertRule] = [
    AlertRule(
        kind=AlertKind.ACHIEVEMENT,
        category=AlertCategory.PROJECT,
        conditions=(
            Condition("share", "above", "project_share_achievement"),
            Condition("story_points", "above", "project_sp_achievement"),
        ),
        value_metric="story_points",
        message_template="{project} delivered {story_points} SP ({share:.0%} of total)",
        recommendation_template="Recognize the team's success and document what worked.",
    ),
    AlertRule(
        kind=AlertKind.QUALITY_CONCERN,
        category=AlertCategory.PROJECT,
        conditions=(Condition("rework_rate", "above", "project_rework_concern"), _ENOUGH_TICKETS),
        value_metric="rework_rate",
        message_template="{project} has a {rework_rate:.0%} rework rate",
        recommendation_template="Increase review rigor, add tests, or hold a retrospective.",
    ),
]

FUNCTION_RULES: list[AlertRule] = [
    AlertRule(
        kind=AlertKind.OVERUTILIZED,
        category=AlertCategory.FUNCTION,
        conditions=(Condition("avg_utilization", "above", "function_overutilized_above"), _ENOUGH_MEMBERS),
        value_metric="avg_utilization",
        message_template="{role} team is over-utilized at {avg_utilization:.0%} capacity",
        recommendation_template="Consider hiring {hires} additional {role} member(s) or redistributing work.",
    ),
    AlertRule(
        kind=AlertKind.UNDERUTILIZED,
        category=AlertCategory.FUNCTION,
        conditions=(Condition("avg_utilization", "below", "function_underutilized_below"), _ENOUGH_MEMBERS),
        value_metric="avg_utilization",
        message_template="{role} team is at {avg_utilization:.0%} capacity",
        recommendation_template="Allocate more work to {role} or move work over from overloaded teams.",
    ),
    AlertRule(
        kind=AlertKind.OPTIMAL,
        category=AlertCategory.FUNCTION,
        conditions=(
            Condition("avg_utilization", "within", "function_optimal_low", "function_optimal_high"),
            _ENOUGH_MEMBERS,
        ),
        value_metric="avg_utilization",
        message_template="{role} team is optimally utilized at {avg_utilization:.0%} capacity",
        recommendation_template="Maintain the current workload balance.",
    ),
    AlertRule(
        kind=AlertKind.ACHIEVEMENT,
        category=AlertCategory.FUNCTION,
        conditions=(Condition("total_story_points", "above", "function_sp_achievement"), _ENOUGH_MEMBERS),
        value_metric="total_story_points",
        message_template="{role} delivered {total_story_points} SP ({avg_story_points:.0f} SP/person avg)",
        recommendation_template="Share the team's workflow practices with other teams.",
    ),
    AlertRule(
        kind=AlertKind.QUALITY_CONCERN,
        category=AlertCategory.FUNCTION,
        conditions=(Condition("rework_rate", "above", "function_rework_concern"), _ENOUGH_TICKETS),
        value_metric="rework_rate",
        message_template="{role} has a {rework_rate:.0%} rework rate",
        recommendation_template="Review {role} processes: pair programming, more testing or technical training.",
    ),
    AlertRule(
        kind=AlertKind.ACHIEVEMENT,
        category=AlertCategory.FUNCTION,
        conditions=(Condition("rework_rate", "below", "function_rework_excellent"), _ENOUGH_TICKETS),
        value_metric="rework_rate",
        message_template="{role} maintains excellent quality with a {rework_rate:.0%} rework rate",
        recommendation_template="Document {role} quality practices for other teams.",
    ),
]


def project_stats(tickets: Sequence[Ticket]) -> list[ProjectStats]:
    """Per-project closed-ticket figures, sorted by project name."""
    closed = [t for t in tickets if t.is_closed]
    total = sum(t.story_points for t in closed)
    stats = []
    for project, project_tickets in sorted(group_by(closed, lambda t: t.project).items()):
        points = sum(t.story_points for t in project_tickets)
        stats.append(
            ProjectStats(
                project=project,
                story_points=points,
                share=safe_divide(points, total),
                closed_tickets=len(project_tickets),
                rework_rate=safe_divide(sum(1 for t in project_tickets if t.is_rework), len(project_tickets)),
            )
        )
    return stats


class AlertEngine:
    """
    Evaluate project rules, function rules and the cross-function balance check.
    """

    def __init__(
        self,
        thresholds: Thresholds,
        project_rules: Sequence[AlertRule] = tuple(PROJECT_RULES),
        function_rules: Sequence[AlertRule] = tuple(FUNCTION_RULES),
    ) -> None:
        self.thresholds = thresholds
        self.project_rules = tuple(project_rules)
        self.function_rules = tuple(function_rules)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def generate(self, functions: Sequence[FunctionMetrics], tickets: Sequence[Ticket] = ()) -> list[Alert]:
        """
        Run every rule.

        Args:
            functions: Per-role metrics
            tickets: Normalized tickets, for project-level rules

        Returns:
            Alerts stably sorted by severity
        """
        alerts: list[Alert] = []
        alerts.extend(self._project_alerts(tickets))
        alerts.extend(self._function_alerts(functions))
        imbalance = self._imbalance_alert(functions)
        if imbalance is not None:
            alerts.append(imbalance)

        logger.info("Alert evaluation complete", extra={"total_alerts": len(alerts)})
        return sorted(alerts, key=lambda alert: alert.kind.priority)

    # ------------------------------------------------------------------
    # Rule evaluation
    # ------------------------------------------------------------------

    def _project_alerts(self, tickets: Sequence[Ticket]) -> list[Alert]:
        alerts = []
        for stats in project_stats(tickets):
            context = vars(stats)
            for rule in self.project_rules:
                if rule.applies(stats, self.thresholds):
                    alerts.append(
                        Alert(
                            kind=rule.kind,
                            category=rule.category,
                            message=rule.message_template.format(**context),
                            recommendation=rule.recommendation_template.format(**context),
                            value=float(getattr(stats, rule.value_metric)),
                            project=stats.project,
                        )
                    )
        return alerts

    def _function_alerts(self, functions: Sequence[FunctionMetrics]) -> list[Alert]:
        alerts = []
        for function in functions:
            if function.member_count == 0:
                continue
            context = dict(vars(function), hires=math.ceil(function.member_count * self.thresholds.hiring_ratio))
            for rule in self.function_rules:
                if rule.applies(function, self.thresholds):
                    alerts.append(
                        Alert(
                            kind=rule.kind,
                            category=rule.category,
                            message=rule.message_template.format(**context),
                            recommendation=rule.recommendation_template.format(**context),
                            value=float(getattr(function, rule.value_metric)),
                            roles=(function.role,),
                        )
                    )
        return alerts

    def _imbalance_alert(self, functions: Sequence[FunctionMetrics]) -> Alert | None:
        """Gap between the highest and lowest utilized roles that have enough members."""
        eligible = [f for f in functions if f.member_count >= self.thresholds.min_function_members]
        if len(eligible) < 2:
            return None

        ranked = sorted(eligible, key=lambda f: (-f.avg_utilization, f.role))
        highest, lowest = ranked[0], ranked[-1]
        gap = highest.avg_utilization - lowest.avg_utilization
        if gap <= self.thresholds.imbalance_gap:
            return None

        return Alert(
            kind=AlertKind.WORKLOAD_IMBALANCE,
            category=AlertCategory.CROSS_FUNCTION,
            message=(
                f"Workload imbalance: {highest.role} ({highest.avg_utilization:.0%}) "
                f"vs {lowest.role} ({lowest.avg_utilization:.0%})"
            ),
            recommendation=f"Move work from {highest.role} to {lowest.role}, or hire for {highest.role}.",
            value=gap,
            roles=(highest.role, lowest.role),
        )
