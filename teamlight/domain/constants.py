"""
Engine Constants

Fixed, non-tunable values used across the engine: sprint geometry, cycle
time bounds, the historical capacity model, role defaults and insight windows.
Tunable cutoffs and weights live in ``Thresholds`` instead.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SprintConfig:
    """
    Sprint geometry.

    Attributes:
        LENGTH_DAYS: Length of one sprint when no calendar overrides it
        MAX_PER_YEAR: Highest fallback sprint index within one calendar year
        END_TOLERANCE_DAYS: Days after a calendar sprint's end still counted in that sprint
        LABEL_PREFIX: Prefix of canonical sprint labels ("Sprint 07")
        UNASSIGNED_LABEL: Label for work that cannot be placed in a sprint

    Example:
        >>> sprint_config.LENGTH_DAYS
        14
    """

    LENGTH_DAYS: int = 14
    MAX_PER_YEAR: int = 26
    END_TOLERANCE_DAYS: int = 1
    LABEL_PREFIX: str = "Sprint"
    UNASSIGNED_LABEL: str = "Unassigned"


@dataclass(frozen=True)
class CycleTimeConfig:
    """
    Cycle time bounds.

    Candidate estimates outside ``[MIN_DAYS, MAX_DAYS]`` are discarded;
    a closed ticket with no surviving candidate gets ``DEFAULT_CLOSED_DAYS``.
    """

    MIN_DAYS: int = 1
    MAX_DAYS: int = 180
    DEFAULT_CLOSED_DAYS: int = 1


@dataclass(frozen=True)
class CapacityConfig:
    """
    Historical capacity model used when no capacity is configured.

    Attributes:
        PERCENTILE: Percentile of per-sprint workload used with a long history
        PERCENTILE_MIN_SPRINTS: Sprints of history needed for the percentile estimate
        PEAK_MIN_SPRINTS: Sprints of history needed for the maximum estimate
        SHORT_HISTORY_FACTOR: Headroom applied to the average with 1-2 sprints
        MAX_UTILIZATION: Upper clamp of the utilization index
    """

    PERCENTILE: int = 95
    PERCENTILE_MIN_SPRINTS: int = 5
    PEAK_MIN_SPRINTS: int = 3
    SHORT_HISTORY_FACTOR: float = 1.3
    MAX_UTILIZATION: float = 2.0


@dataclass(frozen=True)
class RoleDefaults:
    """
    Role resolution defaults.

    Attributes:
        DEFAULT_ROLE: Role given to contributors nothing else resolves
        FEATURE_ROLE: Fixed role of Feature tickets
        DEFAULT_MULTIPLIER: Seniority multiplier when none is known
        MAX_MULTIPLIER: Largest multiplier accepted by table validation
    """

    DEFAULT_ROLE: str = "BE"
    FEATURE_ROLE: str = "BE"
    DEFAULT_MULTIPLIER: float = 1.0
    MAX_MULTIPLIER: float = 5.0


@dataclass(frozen=True)
class TicketDefaults:
    """
    Placeholder values for blank record fields.
    """

    UNASSIGNED_ASSIGNEE: str = "Unassigned"
    UNKNOWN_PROJECT: str = "Unknown"
    DEFAULT_TYPE: str = "Task"
    CLOSED_STATUS: str = "closed"
    ID_PREFIX: str = "TICKET"


@dataclass(frozen=True)
class InsightConfig:
    """
    Supplementary analysis constants.

    Attributes:
        CARRY_OVER_DAYS: Cycle time above which a ticket counts as carried over
        CARRY_OVER_RECENT_SPRINTS: Sprints shown in the per-sprint carry-over view
        TREND_WINDOW_SPRINTS: Sprints compared on each side of the carry-over trend
        TOP_CONTRIBUTORS: Contributors listed in carry-over rankings
        TOP_CONTRIBUTOR_MIN_TICKETS: Closed tickets needed to be ranked
        WORKING_DAYS_PER_SPRINT: Working days assumed in one sprint
        SPEED_REFERENCE_SP: Story points used for the "days per N SP" figure
        BASELINE_FRACTION: Per-member percentile used for the function baseline
        MONTHS_PER_QUARTER: Months in one time-period step
    """

    CARRY_OVER_DAYS: int = 15
    CARRY_OVER_RECENT_SPRINTS: int = 8
    TREND_WINDOW_SPRINTS: int = 4
    TOP_CONTRIBUTORS: int = 5
    TOP_CONTRIBUTOR_MIN_TICKETS: int = 3
    WORKING_DAYS_PER_SPRINT: int = 10
    SPEED_REFERENCE_SP: int = 5
    BASELINE_FRACTION: float = 0.9
    MONTHS_PER_QUARTER: int = 3


# Singleton instances for convenient access
sprint_config = SprintConfig()
cycle_time_config = CycleTimeConfig()
capacity_config = CapacityConfig()
role_defaults = RoleDefaults()
ticket_defaults = TicketDefaults()
insight_config = InsightConfig()
