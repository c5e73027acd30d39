"""
Pytest configuration and shared fixtures

Provides factories for raw records, normalized tickets and role tables, plus
a small realistic export used by the pipeline tests.
"""

from dataclasses import replace
from datetime import date

import pytest

from teamlight.domain.metrics import ContributorMetrics
from teamlight.domain.roster import CapacityMetric, RoleCapacityEntry, SprintCalendarEntry
from teamlight.domain.thresholds import Thresholds
from teamlight.domain.ticket import NormalizedType, RawRecord, Ticket

# ===== Ticket Fixtures =====


@pytest.fixture
def make_ticket():
    """Factory for closed 3 SP BE tickets; override any field by keyword."""

    def _make(**overrides):
        defaults = {
            "id": "TICKET-00001",
            "title": "Implement endpoint",
            "assignee": "Alice",
            "role": "BE",
            "status": "Closed",
            "story_points": 3,
            "raw_type": "Task",
            "normalized_type": NormalizedType.TASK,
            "project": "Orion",
            "sprint_label": "Sprint 01",
            "sprint_created": "Sprint 01",
            "created_at": date(2024, 1, 2),
            "start_at": date(2024, 1, 2),
            "closed_at": date(2024, 1, 10),
            "is_defect": False,
            "is_rework": False,
            "cycle_days": 8,
            "parent_id": None,
            "multiplier": 1.0,
        }
        defaults.update(overrides)
        return Ticket(**defaults)

    return _make


@pytest.fixture
def make_record():
    """Factory for a closed raw record in project Orion; override any field by keyword."""

    def _make(row=1, **overrides):
        base = RawRecord(
            row=row,
            assignee="Alice",
            status="Closed",
            story_points="3",
            type="Task",
            project="Orion",
            sprint_closed="Sprint 02",
            sprint_created="Sprint 01",
            created_at="2024-01-02",
            updated_at="2024-01-12",
            start_date="2024-01-03",
            due_date="2024-01-15",
            subject="Implement endpoint",
        )
        return replace(base, **overrides)

    return _make


@pytest.fixture
def make_metrics():
    """Factory for ContributorMetrics with neutral aggregation values; override any field by keyword."""

    def _make(**overrides):
        defaults = {
            "assignee": "Alice",
            "role": "BE",
            "multiplier": 1.0,
            "total_tickets": 4,
            "total_closed_tickets": 4,
            "total_closed_story_points": 12,
            "defect_count": 0,
            "rework_count": 0,
            "defect_rate": 0.0,
            "rework_rate": 0.0,
            "avg_cycle_time_days": 5.0,
            "sprints_participated": 2,
            "velocity_per_sprint": 6.0,
            "project_variety": 1,
            "effective_story_points": 12.0,
            "active_weeks": 2,
        }
        defaults.update(overrides)
        return ContributorMetrics(**defaults)

    return _make


# ===== Configuration Fixtures =====


@pytest.fixture
def thresholds():
    """Default thresholds"""
    return Thresholds()


@pytest.fixture
def role_table():
    """Role table for the sample team"""
    return [
        RoleCapacityEntry(name="Alice", role="BE", multiplier=1.2),
        RoleCapacityEntry(name="Bob", role="BE", multiplier=1.0),
        RoleCapacityEntry(
            name="Citra", role="FE", multiplier=1.0, capacity=10, capacity_metric=CapacityMetric.STORY_POINTS
        ),
        RoleCapacityEntry(
            name="Dimas", role="QA", multiplier=0.8, capacity=4, capacity_metric=CapacityMetric.TICKET_COUNT
        ),
    ]


@pytest.fixture
def orion_calendar():
    """Two-week sprints for project Orion in early 2024"""
    return [
        SprintCalendarEntry(1, "Orion", date(2024, 1, 1), date(2024, 1, 12)),
        SprintCalendarEntry(2, "Orion", date(2024, 1, 15), date(2024, 1, 26)),
        SprintCalendarEntry(3, "Orion", date(2024, 1, 29), date(2024, 2, 9)),
    ]


# ===== Export Fixtures =====


@pytest.fixture
def sample_records():
    """A small mixed export: features, children, bugs, rework, open work and one malformed row"""
    # assignee | status | sp | type | project | sprint | created | updated | due | subject | parent
    rows = [
        "Alice|Closed|5|Feature|Orion|Sprint 01|2024-01-02|2024-01-20|2024-01-25|Checkout|FEAT-1",
        "Alice|Closed|5|Task|Orion|Sprint 01|2024-01-02|2024-01-10|2024-01-12|[Orion] BE - Payment API|FEAT-1",
        "Alice|Closed|8|Task|Orion|Sprint 02|2024-01-15|2024-01-24|2024-01-26|Order history|",
        "Alice|Closed|3|Bug|Vega|Sprint 02|2024-01-16|2024-01-18||Fix totals|",
        "Bob|Closed|3|Task|Orion|Sprint 01|2024-01-03|2024-01-09|2024-01-11|Revise payment API|FEAT-1",
        "Bob|Closed|2|Task|Orion|Sprint 02|2024-01-15|2024-01-19||Cache warmup|",
        "Bob|In Progress|5|Task|Orion||2024-01-20|2024-01-22||Refunds|",
        "Citra|Closed|5|Task|Orion|Sprint 01|2024-01-04|2024-01-11||Checkout page|FEAT-1",
        "Citra|Closed|8|Task|Orion|Sprint 02|2024-01-15|2024-01-25||History page|",
        "Dimas|Closed|1|Task|Orion|Sprint 01|2024-01-05|2024-01-11||Test checkout|FEAT-1",
        "Dimas|Closed|1|Bug|Orion|Sprint 02|2024-01-16|2024-01-22||Regression in cart|",
        "Eko|Closed|2|Task|Orion|Sprint 02|not a date|2024-01-22||Broken row|",
    ]
    records = []
    for i, row in enumerate(rows, start=1):
        assignee, status, sp, type_, project, sprint, created, updated, due, subject, parent = row.split("|")
        records.append(
            RawRecord(
                row=i,
                assignee=assignee,
                status=status,
                story_points=sp,
                type=type_,
                project=project,
                sprint_closed=sprint or None,
                sprint_created=sprint or None,
                created_at=created,
                updated_at=updated,
                start_date=None,
                due_date=due or None,
                subject=subject,
                parent=parent or None,
            )
        )
    return records
