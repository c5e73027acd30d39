"""
Tests for ticket scope filters
"""

from datetime import date

import pytest

from teamlight.domain.ticket import NormalizedType
from teamlight.engine.filters import TicketFilter, TimePeriod, apply_filters, period_cutoff, with_parent_features


@pytest.fixture
def tickets(make_ticket):
    return [
        make_ticket(id="T-1", assignee="Alice", closed_at=date(2024, 6, 20), sprint_label="Sprint 13"),
        make_ticket(id="T-2", assignee="Bob", role="FE", project="Vega", closed_at=date(2024, 3, 30)),
        make_ticket(id="T-3", assignee="Citra", role="FE", closed_at=date(2024, 3, 29)),
        make_ticket(id="T-4", assignee="Alicia", status="In Progress", closed_at=None, cycle_days=None),
    ]


def _ids(tickets):
    return [t.id for t in tickets]


class TestTimePeriod:
    """Tests for TimePeriod and period_cutoff"""

    @pytest.mark.parametrize(
        "period,months",
        [
            (TimePeriod.ALL, None),
            (TimePeriod.ONE_QUARTER, 3),
            (TimePeriod.TWO_QUARTERS, 6),
            (TimePeriod.THREE_QUARTERS, 9),
        ],
    )
    def test_months(self, period, months):
        assert period.months == months

    def test_cutoff(self):
        assert period_cutoff(TimePeriod.TWO_QUARTERS, date(2024, 6, 30)) == date(2023, 12, 30)
        assert period_cutoff(TimePeriod.ONE_QUARTER, date(2024, 5, 31)) == date(2024, 2, 29)

    def test_all_has_no_cutoff(self):
        assert period_cutoff(TimePeriod.ALL, date(2024, 6, 30)) is None


class TestApplyFilters:
    """Tests for apply_filters"""

    def test_closed_only_by_default(self, tickets):
        assert _ids(apply_filters(tickets, TicketFilter())) == ["T-1", "T-2", "T-3"]

    def test_include_all_statuses(self, tickets):
        assert len(apply_filters(tickets, TicketFilter(include_all_statuses=True))) == 4

    def test_assignee_substring(self, tickets):
        ticket_filter = TicketFilter(include_all_statuses=True, assignee_query=" ALI ")
        assert _ids(apply_filters(tickets, ticket_filter)) == ["T-1", "T-4"]

    def test_project_role_and_sprint(self, tickets):
        assert _ids(apply_filters(tickets, TicketFilter(projects=("Vega",)))) == ["T-2"]
        assert _ids(apply_filters(tickets, TicketFilter(roles=("FE",)))) == ["T-2", "T-3"]
        assert _ids(apply_filters(tickets, TicketFilter(sprints=("Sprint 13",)))) == ["T-1"]

    def test_time_period_cutoff_inclusive(self, tickets):
        ticket_filter = TicketFilter(time_period=TimePeriod.ONE_QUARTER, as_of=date(2024, 6, 30))
        assert _ids(apply_filters(tickets, ticket_filter)) == ["T-1", "T-2"]

    def test_as_of_defaults_to_latest_close(self, tickets):
        """Latest close is 2024-06-20, so one quarter starts on 2024-03-20."""
        ticket_filter = TicketFilter(time_period=TimePeriod.ONE_QUARTER)
        assert _ids(apply_filters(tickets, ticket_filter)) == ["T-1", "T-2", "T-3"]

    def test_time_period_excludes_open_work(self, tickets):
        ticket_filter = TicketFilter(include_all_statuses=True, time_period=TimePeriod.THREE_QUARTERS)
        assert "T-4" not in _ids(apply_filters(tickets, ticket_filter))

    def test_time_period_without_close_dates(self, make_ticket):
        open_ticket = make_ticket(status="Open", closed_at=None, cycle_days=None)
        ticket_filter = TicketFilter(include_all_statuses=True, time_period=TimePeriod.ONE_QUARTER)
        assert apply_filters([open_ticket], ticket_filter) == []

    def test_does_not_mutate_input(self, tickets):
        before = list(tickets)
        apply_filters(tickets, TicketFilter(projects=("Vega",)))
        assert tickets == before


class TestWithParentFeatures:
    """Tests for with_parent_features"""

    @pytest.fixture
    def family(self, make_ticket):
        feature = dict(normalized_type=NormalizedType.FEATURE, raw_type="Feature", closed_at=None, cycle_days=None)
        return [
            make_ticket(id="FEAT-1", title="Checkout", status="In Progress", **feature),
            make_ticket(id="FEAT-1-TASK-00002", parent_id="FEAT-1", assignee="Alice"),
            make_ticket(id="FEAT-2", title="Search", status="In Progress", **feature),
            make_ticket(id="TASK-00004", assignee="Bob"),
        ]

    def test_restores_referenced_features(self, family):
        scoped = apply_filters(family, TicketFilter())

        assert _ids(scoped) == ["FEAT-1-TASK-00002", "TASK-00004"]
        assert _ids(with_parent_features(scoped, family)) == ["FEAT-1", "FEAT-1-TASK-00002", "TASK-00004"]

    def test_every_parent_resolves(self, family):
        result = with_parent_features(apply_filters(family, TicketFilter(assignee_query="alice")), family)
        feature_ids = {t.id for t in result if t.is_feature}

        assert all(t.parent_id in feature_ids for t in result if t.parent_id is not None)

    def test_unscoped_set_unchanged(self, family):
        assert with_parent_features(family, family) == family
