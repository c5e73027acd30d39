"""
Ticket domain models - raw export rows and normalized tickets

    - RawRecord: one as-exported row, every field still text
    - Ticket: the canonical, validated work item the engine aggregates
    - NormalizedType: closed taxonomy of work item types
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .constants import cycle_time_config, ticket_defaults


class NormalizedType(Enum):
    """Closed work item taxonomy."""

    FEATURE = "Feature"
    BUG = "Bug"
    REGRESSION = "Regression"
    IMPROVEMENT = "Improvement"
    RELEASE = "Release"
    TASK = "Task"
    OTHER = "Other"


@dataclass(frozen=True)
class RawRecord:
    """
    One exported ticket row, exactly as read.

    All fields are optional text; nothing is parsed or validated here. The
    ``row`` attribute is the 1-based position in the source table and is
    used for deterministic id synthesis and for log context.

    Example:
        record = RawRecord(
            row=1,
            assignee="Dewi Lestari",
            status="Closed",
            story_points="5",
            type="User story",
            project="Orion",
            created_at="2024-03-01",
            updated_at="2024-03-12",
            subject="[Orion] BE - Payment webhook",
        )
    """

    row: int
    assignee: str | None = None
    status: str | None = None
    story_points: str | None = None
    type: str | None = None
    project: str | None = None
    sprint_closed: str | None = None
    sprint_created: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    start_date: str | None = None
    due_date: str | None = None
    subject: str | None = None
    parent: str | None = None
    role_hint: str | None = None
    multiplier_hint: str | None = None
    record_id: str | None = None


@dataclass(frozen=True)
class Ticket:
    """
    A normalized work item.

    ``closed_at`` is the effective close date: for closed tickets the earlier
    of due date and update date, for open tickets the due date only.

    Invariants (checked on construction):
        - story_points >= 0 and multiplier > 0
        - cycle_days is None or within the configured cycle bounds
        - a Feature never has a parent_id

    Attributes:
        id: Authoritative id for Features, synthesized id otherwise
        title: Subject text
        assignee: Contributor name
        role: Resolved functional role
        status: Status text as exported
        story_points: Parsed story points
        raw_type: Type text as exported
        normalized_type: Type in the closed taxonomy
        project: Project name
        sprint_label: Resolved sprint in which the ticket closed
        sprint_created: Resolved sprint in which the ticket started
        created_at: Creation date
        start_at: Effective start (later of created and explicit start)
        closed_at: Effective close date or None
        is_defect: Bug type or "bug" in the raw type
        is_rework: "revise" in the subject
        cycle_days: Shortest valid cycle estimate, None without a close date
        parent_id: Id of the parent Feature
        multiplier: Seniority multiplier
    """

    id: str
    title: str
    assignee: str
    role: str
    status: str
    story_points: int
    raw_type: str
    normalized_type: NormalizedType
    project: str
    sprint_label: str
    sprint_created: str
    created_at: date
    start_at: date
    closed_at: date | None
    is_defect: bool
    is_rework: bool
    cycle_days: int | None
    parent_id: str | None
    multiplier: float

    def __post_init__(self) -> None:
        """
        Raises:
            ValueError: If an invariant does not hold
        """
        if self.story_points < 0:
            raise ValueError(f"story_points must be >= 0, got {self.story_points}")
        if self.multiplier <= 0:
            raise ValueError(f"multiplier must be > 0, got {self.multiplier}")
        if self.cycle_days is not None and not (
            cycle_time_config.MIN_DAYS <= self.cycle_days <= cycle_time_config.MAX_DAYS
        ):
            raise ValueError(f"cycle_days out of range: {self.cycle_days}")
        if self.normalized_type is NormalizedType.FEATURE and self.parent_id is not None:
            raise ValueError(f"Feature {self.id} cannot have a parent")

    @property
    def is_closed(self) -> bool:
        """True when the exported status is Closed (case-insensitive)."""
        return self.status.strip().lower() == ticket_defaults.CLOSED_STATUS

    @property
    def is_feature(self) -> bool:
        return self.normalized_type is NormalizedType.FEATURE
