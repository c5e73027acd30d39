"""
Ticket scope filters applied before aggregation.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum

from teamlight.domain.constants import insight_config
from teamlight.domain.ticket import Ticket
from teamlight.utils.datetime_utils import add_months


class TimePeriod(Enum):
    """Look-back window by effective close date, in quarters."""

    ALL = "all"
    ONE_QUARTER = "1q"
    TWO_QUARTERS = "2q"
    THREE_QUARTERS = "3q"

    @property
    def months(self) -> int | None:
        quarters = {"1q": 1, "2q": 2, "3q": 3}.get(self.value)
        return None if quarters is None else quarters * insight_config.MONTHS_PER_QUARTER


@dataclass(frozen=True)
class TicketFilter:
    """
    Scope selection.

    Attributes:
        include_all_statuses: Keep open tickets too (closed only by default)
        assignee_query: Case-insensitive substring of the assignee name
        projects: Keep only these projects (empty keeps all)
        roles: Keep only these roles (empty keeps all)
        sprints: Keep only these closing sprint labels (empty keeps all)
        time_period: Look-back window on the effective close date
        as_of: End of the look-back window; defaults to the latest close date in the set

    Example:
        TicketFilter(projects=("Orion",), time_period=TimePeriod.TWO_QUARTERS, as_of=date(2024, 6, 30))
    """

    include_all_statuses: bool = False
    assignee_query: str | None = None
    projects: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    sprints: tuple[str, ...] = ()
    time_period: TimePeriod = TimePeriod.ALL
    as_of: date | None = None


def period_cutoff(period: TimePeriod, as_of: date) -> date | None:
    """First close date inside the window, None for ALL."""
    months = period.months
    if months is None:
        return None
    return add_months(as_of, -months)


def apply_filters(tickets: Sequence[Ticket], ticket_filter: TicketFilter) -> list[Ticket]:
    """
    Narrow a ticket set to a scope.

    The time period keeps only tickets whose effective close date falls on
    or after the cutoff; tickets without a close date are excluded.
    """
    filtered = list(tickets)

    if not ticket_filter.include_all_statuses:
        filtered = [t for t in filtered if t.is_closed]

    if ticket_filter.assignee_query:
        query = ticket_filter.assignee_query.strip().lower()
        filtered = [t for t in filtered if query in t.assignee.lower()]

    if ticket_filter.projects:
        filtered = [t for t in filtered if t.project in ticket_filter.projects]

    if ticket_filter.roles:
        filtered = [t for t in filtered if t.role in ticket_filter.roles]

    if ticket_filter.sprints:
        filtered = [t for t in filtered if t.sprint_label in ticket_filter.sprints]

    if ticket_filter.time_period is not TimePeriod.ALL:
        as_of = ticket_filter.as_of or max((t.closed_at for t in tickets if t.closed_at), default=None)
        if as_of is None:
            return []
        cutoff = period_cutoff(ticket_filter.time_period, as_of)
        filtered = [t for t in filtered if t.closed_at is not None and cutoff <= t.closed_at]

    return filtered


def with_parent_features(scoped: Sequence[Ticket], tickets: Sequence[Ticket]) -> list[Ticket]:
    """
    Scoped tickets plus the Features their parent ids name.

    Every parent id in the result then resolves to a Feature in the result,
    even when the Feature itself was filtered out (typically still open).

    Args:
        scoped: Output of apply_filters over ``tickets``
        tickets: The unfiltered ticket set

    Returns:
        Tickets in ``tickets`` order
    """
    kept = {id(t) for t in scoped}
    parents = {t.parent_id for t in scoped if t.parent_id is not None}
    return [t for t in tickets if id(t) in kept or (t.is_feature and t.id in parents)]
