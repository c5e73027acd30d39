"""
Per-contributor aggregation.

Groups normalized tickets by assignee and computes delivery, quality and
participation figures. Scoring fields are left at zero for the scorer.
"""

from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import TypeVar

from teamlight.domain.metrics import ContributorMetrics, FeatureContribution
from teamlight.domain.thresholds import Thresholds
from teamlight.domain.ticket import Ticket
from teamlight.engine.sprint_resolver import is_assigned_label
from teamlight.utils.datetime_utils import iso_week_key
from teamlight.utils.statistics import finite_or_zero, mean, safe_divide

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def group_by(items: Iterable[T], key: Callable[[T], K]) -> Mapping[K, tuple[T, ...]]:
    """
    Group items by key into a read-only mapping of tuples.

    Keys keep first-seen order and items keep input order.

    Example:
        >>> dict(group_by([1, 2, 3, 4], lambda n: n % 2))
        {1: (1, 3), 0: (2, 4)}
    """
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return MappingProxyType({k: tuple(v) for k, v in groups.items()})


def dominant_role(tickets: Sequence[Ticket]) -> tuple[str, float]:
    """
    Most frequent role among non-Feature tickets and its multiplier.

    Ties go to the role seen first. Contributors with only Feature tickets
    take the role of their first ticket.
    """
    delivery = [t for t in tickets if not t.is_feature] or list(tickets)
    counts = Counter(t.role for t in delivery)
    top = max(counts.values())
    for ticket in delivery:
        if counts[ticket.role] == top:
            return ticket.role, ticket.multiplier
    raise ValueError("dominant_role requires at least one ticket")


def feature_titles(tickets: Iterable[Ticket]) -> dict[str, str]:
    """Feature id -> title (the id itself for untitled Features); the first Feature wins for repeated ids."""
    titles: dict[str, str] = {}
    for ticket in tickets:
        if ticket.is_feature:
            titles.setdefault(ticket.id, ticket.title.strip() or ticket.id)
    return titles


def feature_contributions(tickets: Sequence[Ticket], titles: Mapping[str, str]) -> tuple[FeatureContribution, ...]:
    """
    Story points a contributor delivered per Feature title.

    A Feature counts when the contributor owns it or closed one of its
    children; only closed children add story points.

    Returns:
        Contributions sorted by story points (descending), then title
    """
    touched: list[str] = []
    for ticket in tickets:
        feature_id = ticket.id if ticket.is_feature else ticket.parent_id
        if feature_id is not None and feature_id in titles and feature_id not in touched:
            touched.append(feature_id)

    by_title: dict[str, dict] = {}
    for feature_id in touched:
        children = [t for t in tickets if t.parent_id == feature_id and t.is_closed]
        bucket = by_title.setdefault(titles[feature_id], {"story_points": 0, "ticket_count": 0, "ids": []})
        bucket["story_points"] += sum(t.story_points for t in children)
        bucket["ticket_count"] += len(children)
        bucket["ids"].append(feature_id)

    contributions = [
        FeatureContribution(
            feature_title=title,
            story_points=bucket["story_points"],
            ticket_count=bucket["ticket_count"],
            feature_ids=tuple(bucket["ids"]),
        )
        for title, bucket in by_title.items()
    ]
    return tuple(sorted(contributions, key=lambda c: (-c.story_points, c.feature_title)))


def aggregate_contributor(
    assignee: str,
    tickets: Sequence[Ticket],
    thresholds: Thresholds,
    titles: Mapping[str, str] | None = None,
) -> ContributorMetrics:
    """
    Roll one contributor's tickets up into ContributorMetrics.

    Args:
        assignee: Contributor name
        tickets: All of the contributor's tickets (already filtered upstream)
        thresholds: Supplies the rework story point discount
        titles: Feature id -> title over the whole ticket set

    Returns:
        ContributorMetrics with scoring fields at zero
    """
    role, multiplier = dominant_role(tickets)
    closed = [t for t in tickets if t.is_closed]
    closed_count = len(closed)

    story_points = sum(t.story_points for t in closed)
    defect_count = sum(1 for t in closed if t.is_defect)
    rework_count = sum(1 for t in closed if t.is_rework)
    defect_rate = safe_divide(defect_count, closed_count)
    rework_rate = safe_divide(rework_count, closed_count)

    cycle_times = [t.cycle_days for t in closed if t.cycle_days is not None]
    sprints = {t.sprint_label for t in closed if is_assigned_label(t.sprint_label)}
    projects = {t.project for t in closed}
    weeks = {iso_week_key(t.created_at) for t in closed}

    effective = finite_or_zero(story_points * (1 - rework_rate * thresholds.rework_sp_discount) * multiplier)

    return ContributorMetrics(
        assignee=assignee,
        role=role,
        multiplier=multiplier,
        total_tickets=len(tickets),
        total_closed_tickets=closed_count,
        total_closed_story_points=story_points,
        defect_count=defect_count,
        rework_count=rework_count,
        defect_rate=defect_rate,
        rework_rate=rework_rate,
        avg_cycle_time_days=mean(cycle_times),
        sprints_participated=len(sprints),
        velocity_per_sprint=safe_divide(story_points, len(sprints)),
        project_variety=len(projects),
        effective_story_points=effective,
        active_weeks=len(weeks),
        feature_contributions=feature_contributions(tickets, titles if titles is not None else feature_titles(tickets)),
    )


def aggregate_contributors(
    tickets: Sequence[Ticket],
    thresholds: Thresholds,
    titles: Mapping[str, str] | None = None,
) -> list[ContributorMetrics]:
    """
    Aggregate every contributor in the ticket set.

    Args:
        tickets: Tickets in scope
        thresholds: Supplies the rework story point discount
        titles: Feature id -> title; pass the unscoped set's titles when
            ``tickets`` is filtered, so children of out-of-scope Features still count

    Returns:
        ContributorMetrics sorted by assignee name
    """
    if titles is None:
        titles = feature_titles(tickets)
    groups = group_by(tickets, lambda t: t.assignee)
    return [
        aggregate_contributor(assignee, groups[assignee], thresholds, titles)
        for assignee in sorted(groups)
    ]
