"""
Statistical scoring of contributors.

Scoring needs the whole contributor population (means, standard deviations
and role-relative z-scores), so it runs only after every contributor has
been aggregated:

    1. Population z-scores of effective story points, closed tickets and project variety
    2. Weighted performance score with rework and defect penalties
    3. Performance z-score within each role
    4. Utilization index from configured or historical capacity
    5. Flags
"""

from collections.abc import Mapping, Sequence
from dataclasses import replace

from teamlight.domain.constants import capacity_config
from teamlight.domain.metrics import ContributorFlag, ContributorMetrics
from teamlight.domain.roster import CapacityMetric
from teamlight.domain.thresholds import Thresholds
from teamlight.domain.ticket import Ticket
from teamlight.engine.contributor_metrics import group_by
from teamlight.engine.role_resolver import RoleDirectory
from teamlight.engine.sprint_resolver import is_assigned_label
from teamlight.utils.statistics import calculate_percentile, finite_or_zero, mean, safe_divide, z_scores

# Absorbs float noise when a z-score lands exactly on a cutoff
Z_TOLERANCE = 1e-9


def workload_for(tickets: Sequence[Ticket], metric: CapacityMetric) -> float:
    """Workload of a set of tickets under a capacity basis."""
    match metric:
        case CapacityMetric.TICKET_COUNT:
            return float(len(tickets))
        case CapacityMetric.STORY_POINTS:
            return float(sum(t.story_points for t in tickets))
    raise ValueError(f"Unknown capacity metric: {metric}")


def sprint_workloads(tickets: Sequence[Ticket], metric: CapacityMetric) -> list[float]:
    """Per-sprint workload of closed tickets, in sprint label order; unassigned work is ignored."""
    closed = [t for t in tickets if t.is_closed and is_assigned_label(t.sprint_label)]
    by_sprint = group_by(closed, lambda t: t.sprint_label)
    return [workload_for(by_sprint[label], metric) for label in sorted(by_sprint)]


def estimate_capacity(workloads: Sequence[float], avg_workload: float) -> float:
    """
    Robust historical capacity from positive per-sprint workloads.

    95th percentile with five or more sprints, the maximum with three or
    four, ``avg * 1.3`` with one or two; never below the average.
    """
    count = len(workloads)
    if count == 0:
        return 0.0
    if count >= capacity_config.PERCENTILE_MIN_SPRINTS:
        estimate = calculate_percentile(workloads, capacity_config.PERCENTILE)
    elif count >= capacity_config.PEAK_MIN_SPRINTS:
        estimate = max(workloads)
    else:
        estimate = avg_workload * capacity_config.SHORT_HISTORY_FACTOR
    return max(estimate, avg_workload)


def utilization(
    tickets: Sequence[Ticket], metric: CapacityMetric, configured_capacity: float | None
) -> tuple[float, float, float]:
    """
    Capacity-based utilization.

    Args:
        tickets: One contributor's tickets
        metric: Workload basis
        configured_capacity: Capacity from the role table, if any

    Returns:
        (avg_workload, capacity, utilization_index) with the index in [0, MAX_UTILIZATION]
    """
    positive = [w for w in sprint_workloads(tickets, metric) if w > 0]
    avg_workload = mean(positive)

    if configured_capacity is not None and configured_capacity > 0:
        capacity = float(configured_capacity)
    else:
        capacity = estimate_capacity(positive, avg_workload)

    index = min(safe_divide(avg_workload, capacity), capacity_config.MAX_UTILIZATION)
    return avg_workload, capacity, max(index, 0.0)


def performance_score(
    z_effective: float,
    z_tickets: float,
    z_variety: float,
    rework_rate: float,
    defect_rate: float,
    thresholds: Thresholds,
) -> float:
    """Weighted z-score sum scaled by rework and defect penalty factors (each floored)."""
    base = (
        thresholds.story_points_weight * z_effective
        + thresholds.ticket_count_weight * z_tickets
        + thresholds.project_variety_weight * z_variety
    )
    rework_factor = max(thresholds.penalty_floor, 1 - rework_rate * thresholds.rework_penalty_weight)
    defect_factor = max(thresholds.penalty_floor, 1 - defect_rate * thresholds.defect_penalty_weight)
    return finite_or_zero(base * rework_factor * defect_factor)


def assign_flags(metrics: ContributorMetrics, thresholds: Thresholds) -> tuple[ContributorFlag, ...]:
    """Independent flag rules; result follows ContributorFlag declaration order."""
    util = metrics.utilization_index
    raised = {
        ContributorFlag.TOP_PERFORMER: metrics.performance_z >= thresholds.top_performer_z - Z_TOLERANCE,
        ContributorFlag.LOW_PERFORMER: metrics.performance_z <= thresholds.low_performer_z + Z_TOLERANCE,
        ContributorFlag.HIGH_DEFECT_RATE: metrics.defect_rate > thresholds.high_defect_rate,
        ContributorFlag.HIGH_REWORK_RATE: metrics.rework_rate > thresholds.high_rework_rate,
        ContributorFlag.OVERLOADED: util > thresholds.overloaded_above
        or (
            util > thresholds.strained_above
            and (
                metrics.defect_rate > thresholds.strained_defect_rate
                or metrics.rework_rate > thresholds.strained_rework_rate
            )
        ),
        ContributorFlag.UNDERUTILIZED: 0 < util < thresholds.underutilized_below,
    }
    return tuple(flag for flag in ContributorFlag if raised[flag])


def score_contributors(
    contributors: Sequence[ContributorMetrics],
    tickets_by_assignee: Mapping[str, Sequence[Ticket]],
    directory: RoleDirectory,
    thresholds: Thresholds,
) -> list[ContributorMetrics]:
    """
    Score a complete contributor population.

    Args:
        contributors: Aggregated metrics for every contributor
        tickets_by_assignee: Each contributor's tickets
        directory: Role/capacity table, for configured capacities and metrics
        thresholds: Weights, penalties and flag cutoffs

    Returns:
        New ContributorMetrics in the same order with scoring fields filled
    """
    if not contributors:
        return []

    z_effective = z_scores([c.effective_story_points for c in contributors])
    z_tickets = z_scores([float(c.total_closed_tickets) for c in contributors])
    z_variety = z_scores([float(c.project_variety) for c in contributors])

    scored = []
    for i, contributor in enumerate(contributors):
        entry = directory.lookup(contributor.assignee)
        metric = (entry.capacity_metric if entry else None) or CapacityMetric.STORY_POINTS
        avg_workload, capacity, index = utilization(
            tickets_by_assignee.get(contributor.assignee, ()), metric, entry.capacity if entry else None
        )
        scored.append(
            replace(
                contributor,
                z_effective_story_points=z_effective[i],
                z_ticket_count=z_tickets[i],
                z_project_variety=z_variety[i],
                performance_score=performance_score(
                    z_effective[i],
                    z_tickets[i],
                    z_variety[i],
                    contributor.rework_rate,
                    contributor.defect_rate,
                    thresholds,
                ),
                avg_workload=avg_workload,
                capacity=capacity,
                capacity_metric=metric,
                utilization_index=index,
            )
        )

    role_z: dict[int, float] = {}
    for members in group_by(range(len(scored)), lambda i: scored[i].role).values():
        for position, z in zip(members, z_scores([scored[i].performance_score for i in members])):
            role_z[position] = z

    results = []
    for i, contributor in enumerate(scored):
        with_z = replace(contributor, performance_z=role_z[i])
        results.append(replace(with_z, flags=assign_flags(with_z, thresholds)))
    return results
