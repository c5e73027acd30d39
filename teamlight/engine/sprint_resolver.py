"""
Sprint assignment and effective date resolution.

Projects listed as date-driven get their sprint from dates: first from the
configured sprint calendar (with a one-day grace period after each sprint
ends), otherwise from fixed fourteen-day windows counted from January 1st.
All other projects keep the sprint label exported with the record.

Usage:
    resolver = SprintResolver(calendar_entries, date_driven_projects=("Orion",))
    label = resolver.resolve_closed("Orion", "Sprint 04", start, due, closed)
"""

import re
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from teamlight.domain.constants import sprint_config, ticket_defaults
from teamlight.domain.roster import SprintCalendarEntry, format_sprint_label
from teamlight.utils.datetime_utils import earlier, is_missing, later

_TRAILING_NUMBER = re.compile(r"(\d+)\s*$")


def is_closed_status(status: str | None) -> bool:
    return bool(status) and status.strip().lower() == ticket_defaults.CLOSED_STATUS


def effective_start(created: date | None, start: date | None) -> date | None:
    """Later of the creation date and the explicit start date."""
    return later(created, start)


def effective_close(status: str | None, due: date | None, updated: date | None) -> date | None:
    """
    Effective completion date.

    Closed records complete at the earlier of due date and last update. For
    open records only the due date counts; an update on an open ticket says
    nothing about completion.
    """
    if is_closed_status(status):
        return earlier(due, updated)
    return due


def sprint_number(label: str | None) -> int | None:
    """
    Trailing sprint number of a label.

    Example:
        >>> sprint_number("Sprint 07")
        7
        >>> sprint_number("Unassigned") is None
        True
    """
    if not label:
        return None
    match = _TRAILING_NUMBER.search(label)
    return int(match.group(1)) if match else None


def is_assigned_label(label: str | None) -> bool:
    """True for a real sprint label (not blank, "#N/A" or the unassigned label)."""
    if is_missing(label):
        return False
    return label.strip().lower() != sprint_config.UNASSIGNED_LABEL.lower()


def fallback_sprint_label(reference: date) -> str:
    """
    Sprint label from fixed fourteen-day windows starting on January 1st.

    The window index is capped at the per-year maximum so late December
    days stay in the last sprint of the year.
    """
    days_since_year_start = (reference - date(reference.year, 1, 1)).days
    number = min(days_since_year_start // sprint_config.LENGTH_DAYS + 1, sprint_config.MAX_PER_YEAR)
    return format_sprint_label(number)


def assign_from_calendar(reference: date, entries: Sequence[SprintCalendarEntry], tolerance_days: int) -> str:
    """
    Place a date in a project's sprint calendar.

    Args:
        reference: Date to place
        entries: One project's calendar, any order (must not be empty)
        tolerance_days: Days after an entry's end still counted in that entry

    Returns:
        The containing sprint's label; the fourteen-day fallback label for a
        date in a gap between sprints; the last sprint's label for dates after
        the calendar; the unassigned label for dates before it
    """
    ordered = sorted(entries, key=lambda entry: entry.sprint_number)
    if reference < ordered[0].start_date:
        return sprint_config.UNASSIGNED_LABEL

    grace = timedelta(days=tolerance_days)
    for entry in ordered:
        if entry.start_date <= reference <= entry.end_date + grace:
            return entry.label
        if reference < entry.start_date:
            return fallback_sprint_label(reference)

    return ordered[-1].label


class SprintResolver:
    """
    Resolves sprint labels for records.

    Holds the calendar and the date-driven project list; every method is a
    pure function of its arguments and that configuration.
    """

    def __init__(
        self,
        calendar: Iterable[SprintCalendarEntry] = (),
        date_driven_projects: Iterable[str] = (),
    ) -> None:
        self.calendar = tuple(calendar)
        self.date_driven_projects = tuple(p.strip().lower() for p in date_driven_projects if p.strip())

    def is_date_driven(self, project: str) -> bool:
        """Case-insensitive: a configured name contained in the project name."""
        name = project.strip().lower()
        return any(configured in name for configured in self.date_driven_projects)

    def calendar_for(self, project: str) -> list[SprintCalendarEntry]:
        return [entry for entry in self.calendar if entry.matches_project(project)]

    def _resolve(self, project: str, exported_label: str | None, reference: date | None, tolerance_days: int) -> str:
        if not self.is_date_driven(project):
            if is_assigned_label(exported_label):
                return exported_label.strip()
            return sprint_config.UNASSIGNED_LABEL

        if reference is None:
            return sprint_config.UNASSIGNED_LABEL

        entries = self.calendar_for(project)
        if entries:
            return assign_from_calendar(reference, entries, tolerance_days)
        return fallback_sprint_label(reference)

    def resolve_closed(
        self,
        project: str,
        exported_label: str | None,
        start: date | None,
        due: date | None,
        closed: date | None,
    ) -> str:
        """
        Sprint in which a record closed.

        The reference date is the close date, else the due date, else the
        start date.
        """
        reference = closed or due or start
        return self._resolve(project, exported_label, reference, sprint_config.END_TOLERANCE_DAYS)

    def resolve_created(self, project: str, exported_label: str | None, start: date | None) -> str:
        """Sprint in which a record started; uses the start date only, without grace period."""
        return self._resolve(project, exported_label, start, 0)
