"""
Roster domain models - role/capacity table and sprint calendar

    - CapacityMetric: basis of a contributor's workload (story points or ticket count)
    - RoleCapacityEntry: one contributor's role, multiplier and optional capacity
    - SprintCalendarEntry: one configured sprint window for a project
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .constants import sprint_config


class CapacityMetric(Enum):
    """Workload basis for capacity and utilization."""

    STORY_POINTS = "sp"
    TICKET_COUNT = "ticket"

    @classmethod
    def parse(cls, value: str | None) -> "CapacityMetric | None":
        """
        Interpret a metric cell from a role table.

        Accepts "sp", "story point(s)", "ticket(s)" in any case.

        Returns:
            CapacityMetric, or None for blank/unrecognised text
        """
        if not value:
            return None
        text = value.strip().lower()
        if text in {"sp", "story point", "story points", "storypoints"}:
            return cls.STORY_POINTS
        if text in {"ticket", "tickets", "ticket count", "ticketcount"}:
            return cls.TICKET_COUNT
        return None


@dataclass(frozen=True)
class RoleCapacityEntry:
    """
    One row of the role/capacity table.

    Attributes:
        name: Contributor name (matched case-insensitively)
        role: Canonical functional role
        multiplier: Seniority multiplier
        capacity: Configured per-sprint capacity, None when not set
        capacity_metric: Basis the capacity is expressed in, None for the default (story points)
    """

    name: str
    role: str
    multiplier: float = 1.0
    capacity: float | None = None
    capacity_metric: CapacityMetric | None = None

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.strip().lower()


@dataclass(frozen=True)
class SprintCalendarEntry:
    """
    One configured sprint window.

    Example:
        entry = SprintCalendarEntry(
            sprint_number=3,
            project="Orion",
            start_date=date(2024, 1, 29),
            end_date=date(2024, 2, 9),
        )
        entry.label  # "Sprint 03"
    """

    sprint_number: int
    project: str
    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.sprint_number <= 0:
            raise ValueError(f"sprint_number must be positive, got {self.sprint_number}")
        if self.end_date < self.start_date:
            raise ValueError(f"Sprint {self.sprint_number} of {self.project} ends before it starts")

    @property
    def label(self) -> str:
        return format_sprint_label(self.sprint_number)

    def matches_project(self, project: str) -> bool:
        """Equal names, or the calendar project name contained in the ticket's project (case-insensitive)."""
        own = self.project.strip().lower()
        other = project.strip().lower()
        return bool(own) and (own == other or own in other)


def format_sprint_label(sprint_number: int) -> str:
    """
    Canonical sprint label.

    Example:
        >>> format_sprint_label(7)
        'Sprint 07'
    """
    return f"{sprint_config.LABEL_PREFIX} {sprint_number:02d}"


# Position text (upper-cased) -> canonical role
ROLE_ALIASES: dict[str, str] = {
    "BE": "BE",
    "BACKEND": "BE",
    "BACK END": "BE",
    "FE": "FE",
    "FRONTEND": "FE",
    "FRONT END": "FE",
    "QA": "QA",
    "TESTER": "QA",
    "TEST": "QA",
    "DESIGNER": "DESIGNER",
    "DESIGN": "DESIGNER",
    "UX DESIGN": "DESIGNER",
    "UX DESIGNER": "DESIGNER",
    "PRODUCT": "PRODUCT",
    "PM": "PRODUCT",
    "PRODUCT MANAGER": "PRODUCT",
    "INFRA": "INFRA",
    "INFRASTRUCTURE": "INFRA",
    "DEVOPS": "INFRA",
    "OPERATION": "OPERATION",
    "OPS": "OPERATION",
    "BUSINESS SUPPORT": "BUSINESS SUPPORT",
    "RESEARCHER": "RESEARCHER",
    "RESEARCH": "RESEARCHER",
    "FOUNDRY": "FOUNDRY",
    "UX WRITER": "UX WRITER",
    "WRITER": "UX WRITER",
    "APPS": "APPS",
    "ENGINEERING MANAGER": "ENGINEERING MANAGER",
    "ENG MANAGER": "ENGINEERING MANAGER",
    "ENGINEERING MGR": "ENGINEERING MANAGER",
    "TECH LEAD": "ENGINEERING MANAGER",
    "TECH LEADER": "ENGINEERING MANAGER",
}


def normalize_role(position: str | None) -> str | None:
    """
    Map free-form position text to a canonical role.

    Known aliases collapse to their canonical role; any other non-blank text
    is kept upper-cased with inner whitespace collapsed.

    Examples:
        >>> normalize_role("Backend")
        'BE'
        >>> normalize_role("  tech lead ")
        'ENGINEERING MANAGER'
        >>> normalize_role("") is None
        True
    """
    if position is None:
        return None
    text = " ".join(position.upper().split())
    if not text:
        return None
    return ROLE_ALIASES.get(text, text)
