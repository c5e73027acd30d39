"""
Tests for roster domain models

Tests role normalization, capacity metric parsing and sprint calendar entries.
"""

from datetime import date

import pytest

from teamlight.domain.roster import (
    CapacityMetric,
    RoleCapacityEntry,
    SprintCalendarEntry,
    format_sprint_label,
    normalize_role,
)


class TestNormalizeRole:
    """Tests for normalize_role"""

    @pytest.mark.parametrize(
        "position,expected",
        [
            ("Backend", "BE"),
            ("back end", "BE"),
            ("Frontend", "FE"),
            ("Tester", "QA"),
            ("UX Designer", "DESIGNER"),
            ("PM", "PRODUCT"),
            ("DevOps", "INFRA"),
            ("  tech   lead ", "ENGINEERING MANAGER"),
        ],
    )
    def test_aliases(self, position, expected):
        assert normalize_role(position) == expected

    def test_unknown_position_kept_uppercased(self):
        assert normalize_role("data  scientist") == "DATA SCIENTIST"

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank(self, blank):
        assert normalize_role(blank) is None


class TestCapacityMetric:
    """Tests for CapacityMetric.parse"""

    @pytest.mark.parametrize("text", ["sp", "SP", "Story Points", "story point"])
    def test_story_points(self, text):
        assert CapacityMetric.parse(text) is CapacityMetric.STORY_POINTS

    @pytest.mark.parametrize("text", ["ticket", "Tickets", "ticket count"])
    def test_ticket_count(self, text):
        assert CapacityMetric.parse(text) is CapacityMetric.TICKET_COUNT

    @pytest.mark.parametrize("text", [None, "", "hours"])
    def test_unrecognised(self, text):
        assert CapacityMetric.parse(text) is None


class TestRoleCapacityEntry:
    """Tests for RoleCapacityEntry"""

    def test_key_is_case_insensitive(self):
        assert RoleCapacityEntry(name="  Dewi Lestari ", role="BE").key == "dewi lestari"

    def test_defaults(self):
        entry = RoleCapacityEntry(name="Dewi", role="FE")
        assert entry.multiplier == 1.0
        assert entry.capacity is None
        assert entry.capacity_metric is None


class TestSprintCalendarEntry:
    """Tests for SprintCalendarEntry"""

    def test_label(self):
        entry = SprintCalendarEntry(3, "Orion", date(2024, 1, 29), date(2024, 2, 9))
        assert entry.label == "Sprint 03"

    def test_two_digit_label(self):
        assert format_sprint_label(12) == "Sprint 12"

    def test_non_positive_sprint_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            SprintCalendarEntry(0, "Orion", date(2024, 1, 1), date(2024, 1, 12))

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="ends before"):
            SprintCalendarEntry(1, "Orion", date(2024, 1, 12), date(2024, 1, 1))

    def test_matches_project(self):
        entry = SprintCalendarEntry(1, "Orion", date(2024, 1, 1), date(2024, 1, 12))
        assert entry.matches_project("orion")
        assert entry.matches_project("Orion Mobile")
        assert not entry.matches_project("Vega")
