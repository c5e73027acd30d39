"""
Supplementary team insights computed from normalized tickets.

    - calculate_kpis: headline figures for a ticket scope
    - calculate_carry_over: share of work that spilled past one sprint, with trend
    - calculate_delivery_speed: outlier-robust sprint velocity per contributor
    - calculate_utilization_trend: quarterly role utilization against role baselines
    - calculate_team_efficiency: story points against team size per sprint or quarter
    - calculate_feature_timeline: delivery span and contributors of each Feature

Usage:
    from teamlight.engine.insights import calculate_carry_over

    report = calculate_carry_over(tickets)
    print(f"{report.rate:.0%} carried over, trend {report.trend}")
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from teamlight.domain.constants import insight_config
from teamlight.domain.metrics import ContributorMetrics
from teamlight.domain.ticket import NormalizedType, Ticket
from teamlight.engine.contributor_metrics import group_by
from teamlight.engine.role_resolver import RoleDirectory
from teamlight.engine.sprint_resolver import is_assigned_label, sprint_number
from teamlight.utils.datetime_utils import days_between
from teamlight.utils.statistics import floor_index_percentile, mean, median, remove_outliers_iqr, safe_divide

# Team names, placeholders and deleted accounts that are not people
INVALID_ASSIGNEE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^unassigned$", re.IGNORECASE),
    re.compile(r"^deleted\s*user$", re.IGNORECASE),
    re.compile(r"team$", re.IGNORECASE),
    re.compile(r"^#N/A$", re.IGNORECASE),
    re.compile(r"^\s*$"),
    re.compile(r"^n/a$", re.IGNORECASE),
    re.compile(r"^-$"),
    re.compile(r"^none$", re.IGNORECASE),
)


def is_valid_assignee(assignee: str | None, directory: RoleDirectory | None = None) -> bool:
    """
    True if the assignee looks like a person.

    Names present in the role table are always valid.
    """
    if not assignee or not assignee.strip():
        return False
    if directory is not None and assignee in directory:
        return True
    return not any(pattern.search(assignee.strip()) for pattern in INVALID_ASSIGNEE_PATTERNS)


# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KpiSummary:
    closed_tickets: int
    total_story_points: int
    avg_cycle_time_days: float
    defect_rate: float
    rework_rate: float
    active_contributors: int
    avg_utilization: float


def calculate_kpis(tickets: Sequence[Ticket], contributors: Sequence[ContributorMetrics]) -> KpiSummary:
    """Headline figures over closed tickets; utilization averaged over contributors with closed work."""
    closed = [t for t in tickets if t.is_closed]
    active = [c for c in contributors if c.total_closed_tickets > 0]
    return KpiSummary(
        closed_tickets=len(closed),
        total_story_points=sum(t.story_points for t in closed),
        avg_cycle_time_days=mean([t.cycle_days for t in closed if t.cycle_days is not None]),
        defect_rate=safe_divide(sum(1 for t in closed if t.is_defect), len(closed)),
        rework_rate=safe_divide(sum(1 for t in closed if t.is_rework), len(closed)),
        active_contributors=len(active),
        avg_utilization=mean([c.utilization_index for c in active]),
    )


# ---------------------------------------------------------------------------
# Carry-over
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CarryOverBucket:
    """Carry-over figures for one sprint, role or contributor."""

    label: str
    total: int
    carried_over: int
    rate: float
    avg_cycle_days: float


@dataclass(frozen=True)
class CarryOverReport:
    """
    Attributes:
        threshold_days: Cycle time above which a ticket counts as carried over
        total: Closed tickets analysed
        carried_over: Tickets above the threshold
        rate: carried_over / total
        by_sprint: Most recent numbered sprints, oldest first
        by_role: Roles, highest rate first
        top_contributors: Contributors with the highest rates
        trend: "improving", "worsening" or "stable"
    """

    threshold_days: int
    total: int
    carried_over: int
    rate: float
    by_sprint: tuple[CarryOverBucket, ...]
    by_role: tuple[CarryOverBucket, ...]
    top_contributors: tuple[CarryOverBucket, ...]
    trend: str


def _bucket(label: str, tickets: Sequence[Ticket], threshold_days: int) -> CarryOverBucket:
    carried = sum(1 for t in tickets if t.cycle_days > threshold_days)
    return CarryOverBucket(
        label=label,
        total=len(tickets),
        carried_over=carried,
        rate=safe_divide(carried, len(tickets)),
        avg_cycle_days=mean([t.cycle_days for t in tickets]),
    )


def carry_over_trend(by_sprint: Sequence[CarryOverBucket], window: int) -> str:
    """Compare the mean rate of the last ``window`` sprints with the ``window`` before them."""
    recent = [b.rate for b in by_sprint[-window:]]
    older = [b.rate for b in by_sprint[-2 * window : -window]]
    recent_rate, older_rate = mean(recent), mean(older)
    if recent_rate < older_rate:
        return "improving"
    if recent_rate > older_rate:
        return "worsening"
    return "stable"


def calculate_carry_over(
    tickets: Sequence[Ticket],
    threshold_days: int = insight_config.CARRY_OVER_DAYS,
    directory: RoleDirectory | None = None,
) -> CarryOverReport:
    """
    Share of closed work whose cycle time exceeded one sprint's worth of days.

    Only closed tickets of real people with a positive cycle time count.

    Args:
        tickets: Normalized tickets
        threshold_days: Carry-over cutoff in days
        directory: Role table, used to accept configured names as people

    Returns:
        CarryOverReport
    """
    relevant = [
        t
        for t in tickets
        if t.is_closed and t.cycle_days is not None and t.cycle_days > 0 and is_valid_assignee(t.assignee, directory)
    ]
    overall = _bucket("all", relevant, threshold_days)

    numbered = [t for t in relevant if is_assigned_label(t.sprint_label) and sprint_number(t.sprint_label)]
    by_sprint_groups = group_by(numbered, lambda t: t.sprint_label)
    ordered_sprints = sorted(by_sprint_groups, key=lambda label: (sprint_number(label), label))
    by_sprint = [_bucket(label, by_sprint_groups[label], threshold_days) for label in ordered_sprints]
    by_sprint = by_sprint[-insight_config.CARRY_OVER_RECENT_SPRINTS :]

    by_role = sorted(
        (_bucket(role, group, threshold_days) for role, group in group_by(relevant, lambda t: t.role).items()),
        key=lambda b: (-b.rate, b.label),
    )

    ranked = sorted(
        (
            _bucket(assignee, group, threshold_days)
            for assignee, group in group_by(relevant, lambda t: t.assignee).items()
            if len(group) >= insight_config.TOP_CONTRIBUTOR_MIN_TICKETS
        ),
        key=lambda b: (-b.rate, b.label),
    )

    return CarryOverReport(
        threshold_days=threshold_days,
        total=overall.total,
        carried_over=overall.carried_over,
        rate=overall.rate,
        by_sprint=tuple(by_sprint),
        by_role=tuple(by_role),
        top_contributors=tuple(ranked[: insight_config.TOP_CONTRIBUTORS]),
        trend=carry_over_trend(by_sprint, insight_config.TREND_WINDOW_SPRINTS),
    )


# ---------------------------------------------------------------------------
# Delivery speed
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeliverySpeed:
    """
    Attributes:
        assignee: Contributor
        role: Role of the contributor's first counted ticket
        sprints: Sprints with counted story points
        total_story_points: All counted story points
        avg_sp_per_sprint: Mean sprint velocity after outlier removal
        sp_per_working_day: avg_sp_per_sprint over working days per sprint
        days_per_reference_sp: Working days needed for the reference story points (0 if no velocity)
    """

    assignee: str
    role: str
    sprints: int
    total_story_points: int
    avg_sp_per_sprint: float
    sp_per_working_day: float
    days_per_reference_sp: float


def counts_for_speed(ticket: Ticket) -> bool:
    """Closed, sized delivery work (Features, Bugs and stories) in a known sprint."""
    deliverable = ticket.normalized_type in (NormalizedType.FEATURE, NormalizedType.BUG) or (
        "story" in ticket.raw_type.lower()
    )
    return (
        ticket.is_closed
        and ticket.story_points > 0
        and is_assigned_label(ticket.sprint_label)
        and is_valid_assignee(ticket.assignee)
        and deliverable
    )


def calculate_delivery_speed(tickets: Sequence[Ticket]) -> list[DeliverySpeed]:
    """
    Per-contributor delivery speed from sprint velocities.

    Sprint velocities pass through IQR outlier removal before averaging.

    Returns:
        DeliverySpeed entries, fastest (fewest days per reference SP) first
    """
    counted = [t for t in tickets if counts_for_speed(t)]
    results = []
    for assignee, own in group_by(counted, lambda t: t.assignee).items():
        by_sprint = group_by(own, lambda t: t.sprint_label)
        velocities = [float(sum(t.story_points for t in by_sprint[label])) for label in sorted(by_sprint)]
        avg_sp = mean(remove_outliers_iqr(velocities))
        per_day = avg_sp / insight_config.WORKING_DAYS_PER_SPRINT
        results.append(
            DeliverySpeed(
                assignee=assignee,
                role=own[0].role,
                sprints=len(velocities),
                total_story_points=int(sum(velocities)),
                avg_sp_per_sprint=avg_sp,
                sp_per_working_day=per_day,
                days_per_reference_sp=safe_divide(insight_config.SPEED_REFERENCE_SP, per_day),
            )
        )
    return sorted(results, key=lambda s: (s.days_per_reference_sp == 0, s.days_per_reference_sp, s.assignee))


# ---------------------------------------------------------------------------
# Utilization trend
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UtilizationPoint:
    period: str
    role: str
    members: int
    avg_utilization: float


def quarter_label(value: date) -> str:
    """
    Example:
        >>> quarter_label(date(2024, 5, 2))
        'Q2 2024'
    """
    return f"Q{(value.month - 1) // 3 + 1} {value.year}"


def _sprint_totals(tickets: Sequence[Ticket]) -> list[float]:
    by_sprint = group_by(tickets, lambda t: t.sprint_label)
    return [float(sum(t.story_points for t in group)) for group in by_sprint.values()]


def role_baselines(tickets: Sequence[Ticket]) -> dict[str, float]:
    """
    Role baseline: median over members of each member's 90th-percentile sprint story points.

    Roles whose baseline would be zero get 1.0.
    """
    baselines: dict[str, float] = {}
    for role, role_tickets in group_by(tickets, lambda t: t.role).items():
        peaks = [
            floor_index_percentile(_sprint_totals(member_tickets), insight_config.BASELINE_FRACTION)
            for member_tickets in group_by(role_tickets, lambda t: t.assignee).values()
        ]
        baselines[role] = median(peaks) or 1.0
    return baselines


def calculate_utilization_trend(tickets: Sequence[Ticket]) -> list[UtilizationPoint]:
    """
    Quarterly average utilization per role.

    A member's utilization in a quarter is their average sprint story points
    in that quarter, times their multiplier, over the role baseline.

    Returns:
        Points ordered by quarter, then role
    """
    closed = [
        t
        for t in tickets
        if t.is_closed
        and t.closed_at is not None
        and is_assigned_label(t.sprint_label)
        and is_valid_assignee(t.assignee)
    ]
    baselines = role_baselines(closed)

    by_quarter = group_by(closed, lambda t: (t.closed_at.year, (t.closed_at.month - 1) // 3 + 1))
    points = []
    for key in sorted(by_quarter):
        quarter_tickets = by_quarter[key]
        period = quarter_label(quarter_tickets[0].closed_at)
        for role, role_tickets in sorted(group_by(quarter_tickets, lambda t: t.role).items()):
            members = group_by(role_tickets, lambda t: t.assignee)
            utilizations = [
                safe_divide(
                    safe_divide(sum(t.story_points for t in own), len({t.sprint_label for t in own}))
                    * own[0].multiplier,
                    baselines[role],
                )
                for own in members.values()
            ]
            points.append(
                UtilizationPoint(period=period, role=role, members=len(members), avg_utilization=mean(utilizations))
            )
    return points


# ---------------------------------------------------------------------------
# Team efficiency
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EfficiencyPoint:
    period: str
    story_points: int
    team_size: int
    sp_per_person: float


@dataclass(frozen=True)
class TeamEfficiency:
    """
    Story points against team size over time.

    Attributes:
        granularity: "sprint" or "quarter"
        points: One entry per period, oldest first
        story_point_growth: Story points of the last period minus the first
        story_point_growth_rate: story_point_growth over the first period's story points
        team_growth: Team size of the last period minus the first
        team_growth_rate: team_growth over the first period's team size
        avg_sp_per_person: Mean SP per person across periods
        trend: "improving" or "declining"; empty with fewer than two periods
        trend_change: Relative change in SP per person from the earlier half of the periods to the later half
    """

    granularity: str
    points: tuple[EfficiencyPoint, ...]
    story_point_growth: int
    story_point_growth_rate: float
    team_growth: int
    team_growth_rate: float
    avg_sp_per_person: float
    trend: str
    trend_change: float


def _efficiency_point(period: str, tickets: Sequence[Ticket]) -> EfficiencyPoint:
    story_points = sum(t.story_points for t in tickets)
    team_size = len({t.assignee for t in tickets})
    return EfficiencyPoint(
        period=period,
        story_points=story_points,
        team_size=team_size,
        sp_per_person=safe_divide(story_points, team_size),
    )


def efficiency_trend(points: Sequence[EfficiencyPoint]) -> tuple[str, float]:
    """
    Compare mean SP per person of the later half of the periods with the earlier half.

    With an odd number of periods the middle one belongs to the later half.

    Returns:
        (trend, relative change); ("", 0.0) with fewer than two periods
    """
    if len(points) < 2:
        return "", 0.0
    half = len(points) // 2
    earlier = mean([p.sp_per_person for p in points[:half]])
    later = mean([p.sp_per_person for p in points[half:]])
    trend = "improving" if later > earlier else "declining"
    return trend, safe_divide(later - earlier, earlier)


def calculate_team_efficiency(tickets: Sequence[Ticket], granularity: str = "sprint") -> TeamEfficiency:
    """
    Story points, team size and SP per person for each sprint or quarter.

    Args:
        tickets: Normalized tickets
        granularity: "sprint" groups by closing sprint, "quarter" by close date

    Returns:
        TeamEfficiency

    Raises:
        ValueError: If granularity is not "sprint" or "quarter"
    """
    closed = [
        t
        for t in tickets
        if t.is_closed
        and t.closed_at is not None
        and is_assigned_label(t.sprint_label)
        and is_valid_assignee(t.assignee)
    ]

    if granularity == "sprint":
        by_sprint = group_by(closed, lambda t: t.sprint_label)
        ordered = sorted(by_sprint, key=lambda label: (sprint_number(label) or 0, label))
        points = [_efficiency_point(label, by_sprint[label]) for label in ordered]
    elif granularity == "quarter":
        by_quarter = group_by(closed, lambda t: (t.closed_at.year, (t.closed_at.month - 1) // 3 + 1))
        points = [
            _efficiency_point(quarter_label(by_quarter[key][0].closed_at), by_quarter[key])
            for key in sorted(by_quarter)
        ]
    else:
        raise ValueError(f"Unknown efficiency granularity: {granularity!r}")

    trend, trend_change = efficiency_trend(points)
    first, last = (points[0], points[-1]) if len(points) >= 2 else (None, None)
    story_point_growth = last.story_points - first.story_points if first else 0
    team_growth = last.team_size - first.team_size if first else 0

    return TeamEfficiency(
        granularity=granularity,
        points=tuple(points),
        story_point_growth=story_point_growth,
        story_point_growth_rate=safe_divide(story_point_growth, first.story_points) if first else 0.0,
        team_growth=team_growth,
        team_growth_rate=safe_divide(team_growth, first.team_size) if first else 0.0,
        avg_sp_per_person=mean([p.sp_per_person for p in points]),
        trend=trend,
        trend_change=trend_change,
    )


# ---------------------------------------------------------------------------
# Feature timeline
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeatureTimelineEntry:
    """
    Delivery span of one Feature, or of several Features sharing a title.

    Attributes:
        title: Feature title (the id for untitled Features)
        feature_ids: Merged Feature ids, first-seen order
        project: Project of the first Feature
        start_date: Earliest creation date of the Features and their counted children
        end_date: Latest close date of the counted children and closed Features
        duration_days: Days from start_date to end_date
        story_points: Story points of the counted children
        ticket_count: Counted children
        contributors: Assignees of the counted children, first-seen order
        contributors_by_role: Role -> assignees of that role
    """

    title: str
    feature_ids: tuple[str, ...]
    project: str
    start_date: date
    end_date: date
    duration_days: int
    story_points: int
    ticket_count: int
    contributors: tuple[str, ...]
    contributors_by_role: dict[str, tuple[str, ...]]


def calculate_feature_timeline(
    tickets: Sequence[Ticket], features: Sequence[Ticket] | None = None
) -> list[FeatureTimelineEntry]:
    """
    One timeline entry per Feature title with closed child work.

    Children come from ``tickets``; their Features are looked up in
    ``features``, so a scoped ticket set can still be placed under Features
    that fell outside the scope.

    Args:
        tickets: Tickets whose closed children are counted
        features: Tickets to find Features in; defaults to ``tickets``

    Returns:
        Entries ordered by start date, then title
    """
    by_id: dict[str, Ticket] = {}
    for ticket in tickets if features is None else features:
        if ticket.is_feature:
            by_id.setdefault(ticket.id, ticket)

    grouped: dict[str, tuple[list[Ticket], list[Ticket]]] = {}
    for child in tickets:
        if child.is_feature or not child.is_closed or child.closed_at is None or child.parent_id not in by_id:
            continue
        feature = by_id[child.parent_id]
        owners, work = grouped.setdefault(feature.title.strip() or feature.id, ([], []))
        if feature not in owners:
            owners.append(feature)
        work.append(child)

    entries = []
    for title, (owners, work) in grouped.items():
        start = min([f.created_at for f in owners] + [t.created_at for t in work])
        end = max([t.closed_at for t in work] + [f.closed_at for f in owners if f.is_closed and f.closed_at])
        entries.append(
            FeatureTimelineEntry(
                title=title,
                feature_ids=tuple(f.id for f in owners),
                project=owners[0].project,
                start_date=start,
                end_date=end,
                duration_days=days_between(start, end),
                story_points=sum(t.story_points for t in work),
                ticket_count=len(work),
                contributors=tuple(dict.fromkeys(t.assignee for t in work)),
                contributors_by_role={
                    role: tuple(dict.fromkeys(t.assignee for t in group))
                    for role, group in sorted(group_by(work, lambda t: t.role).items())
                },
            )
        )
    return sorted(entries, key=lambda e: (e.start_date, e.title))
