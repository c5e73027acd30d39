"""
Function (role) level rollup of scored contributor metrics.
"""

from collections.abc import Sequence

from teamlight.domain.metrics import ContributorMetrics, FunctionMetrics
from teamlight.engine.contributor_metrics import group_by
from teamlight.utils.statistics import mean, population_stdev, safe_divide


def aggregate_function(role: str, members: Sequence[ContributorMetrics]) -> FunctionMetrics:
    """
    Roll one role's members up.

    Defect and rework rates are computed over all of the role's closed
    tickets, not averaged per member.
    """
    totals = [float(m.total_closed_story_points) for m in members]
    closed = sum(m.total_closed_tickets for m in members)
    defects = sum(m.defect_count for m in members)
    rework = sum(m.rework_count for m in members)

    return FunctionMetrics(
        role=role,
        member_count=len(members),
        total_story_points=sum(m.total_closed_story_points for m in members),
        avg_story_points=mean(totals),
        stdev_story_points=population_stdev(totals),
        closed_tickets=closed,
        defect_count=defects,
        rework_count=rework,
        defect_rate=safe_divide(defects, closed),
        rework_rate=safe_divide(rework, closed),
        avg_utilization=mean([m.utilization_index for m in members]),
    )


def aggregate_functions(contributors: Sequence[ContributorMetrics]) -> list[FunctionMetrics]:
    """
    Per-role metrics for every role that has members.

    Returns:
        FunctionMetrics sorted by role name
    """
    groups = group_by(contributors, lambda m: m.role)
    return [aggregate_function(role, groups[role]) for role in sorted(groups)]
