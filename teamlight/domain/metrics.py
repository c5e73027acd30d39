"""
Aggregate metric models

    - ContributorMetrics: per-assignee rollup, aggregation fields plus scoring fields
    - FeatureContribution: story points one contributor delivered under one Feature
    - FunctionMetrics: per-role rollup
    - ContributorFlag: categorical flags assigned by the scorer

All models are frozen. The aggregator builds ContributorMetrics with scoring
fields at their zero values; the scorer returns new instances via
``dataclasses.replace``.
"""

from dataclasses import dataclass
from enum import Enum

from .roster import CapacityMetric


class ContributorFlag(Enum):
    """Independent, non-exclusive contributor flags (declaration order is output order)."""

    TOP_PERFORMER = "top_performer"
    LOW_PERFORMER = "low_performer"
    HIGH_DEFECT_RATE = "high_defect_rate"
    HIGH_REWORK_RATE = "high_rework_rate"
    OVERLOADED = "overloaded"
    UNDERUTILIZED = "underutilized"


@dataclass(frozen=True)
class FeatureContribution:
    """
    Story points a contributor delivered on children of one Feature.

    Features sharing a title are merged, so ``feature_ids`` may hold several ids.
    """

    feature_title: str
    story_points: int
    ticket_count: int
    feature_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContributorMetrics:
    """
    Per-contributor rollup.

    Attributes:
        assignee: Contributor name
        role: Dominant role among the contributor's tickets
        multiplier: Seniority multiplier of that role assignment
        total_tickets: All tickets assigned, open or closed
        total_closed_tickets: Closed tickets
        total_closed_story_points: Story points on closed tickets
        defect_count / rework_count: Closed defect / rework tickets
        defect_rate / rework_rate: Counts over closed tickets (0 with no closed tickets)
        avg_cycle_time_days: Mean cycle time of closed tickets that have one
        sprints_participated: Distinct sprint labels among closed tickets
        velocity_per_sprint: Closed story points per participated sprint
        project_variety: Distinct projects among closed tickets
        effective_story_points: Rework-discounted, multiplier-adjusted story points
        active_weeks: Distinct ISO weeks of closed-ticket creation dates
        feature_contributions: Per-Feature story point breakdown

    Scoring attributes (filled by the scorer):
        z_effective_story_points / z_ticket_count / z_project_variety: Population z-scores
        performance_score: Weighted, penalty-adjusted score
        performance_z: Performance score z-score within the role
        avg_workload: Mean positive per-sprint workload
        capacity: Configured or estimated per-sprint capacity
        capacity_metric: Workload basis
        utilization_index: avg_workload / capacity in [0, 2]
        flags: Assigned flags in ContributorFlag order
    """

    assignee: str
    role: str
    multiplier: float
    total_tickets: int
    total_closed_tickets: int
    total_closed_story_points: int
    defect_count: int
    rework_count: int
    defect_rate: float
    rework_rate: float
    avg_cycle_time_days: float
    sprints_participated: int
    velocity_per_sprint: float
    project_variety: int
    effective_story_points: float
    active_weeks: int
    feature_contributions: tuple[FeatureContribution, ...] = ()

    z_effective_story_points: float = 0.0
    z_ticket_count: float = 0.0
    z_project_variety: float = 0.0
    performance_score: float = 0.0
    performance_z: float = 0.0
    avg_workload: float = 0.0
    capacity: float = 0.0
    capacity_metric: CapacityMetric = CapacityMetric.STORY_POINTS
    utilization_index: float = 0.0
    flags: tuple[ContributorFlag, ...] = ()

    def has_flag(self, flag: ContributorFlag) -> bool:
        return flag in self.flags


@dataclass(frozen=True)
class FunctionMetrics:
    """
    Per-role rollup.

    Attributes:
        role: Functional role
        member_count: Contributors in the role
        total_story_points: Sum of members' closed story points
        avg_story_points: Mean of members' closed story points
        stdev_story_points: Population standard deviation of members' closed story points
        closed_tickets: Closed tickets across members
        defect_count / rework_count: Closed defect / rework tickets across members
        defect_rate / rework_rate: Counts over closed_tickets
        avg_utilization: Mean member utilization index
    """

    role: str
    member_count: int
    total_story_points: int
    avg_story_points: float
    stdev_story_points: float
    closed_tickets: int
    defect_count: int
    rework_count: int
    defect_rate: float
    rework_rate: float
    avg_utilization: float
