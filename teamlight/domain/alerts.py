"""
Alert domain models

Alerts are human-readable findings derived from function and project
metrics. Presentation order is fixed by ``AlertKind.priority``: risks first,
achievements last.
"""

from dataclasses import dataclass
from enum import Enum


class AlertKind(Enum):
    """Finding kind, declared in presentation priority order."""

    OVERUTILIZED = "overutilized"
    QUALITY_CONCERN = "quality-concern"
    WORKLOAD_IMBALANCE = "workload-imbalance"
    UNDERUTILIZED = "underutilized"
    OPTIMAL = "optimal"
    ACHIEVEMENT = "achievement"

    @property
    def priority(self) -> int:
        """1 for the most urgent kind."""
        return SEVERITY_ORDER.index(self) + 1


SEVERITY_ORDER: tuple[AlertKind, ...] = tuple(AlertKind)


class AlertCategory(Enum):
    PROJECT = "project"
    FUNCTION = "function"
    CROSS_FUNCTION = "cross-function"


@dataclass(frozen=True)
class Alert:
    """
    A single finding.

    Attributes:
        kind: Finding kind
        category: Scope the finding applies to
        message: Human-readable summary
        recommendation: Suggested action, if any
        value: The metric value that triggered the finding
        project: Project the finding refers to
        roles: Role(s) the finding refers to
    """

    kind: AlertKind
    category: AlertCategory
    message: str
    recommendation: str | None = None
    value: float | None = None
    project: str | None = None
    roles: tuple[str, ...] = ()
