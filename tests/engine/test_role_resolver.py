"""
Tests for role and multiplier resolution

Each resolver in the chain is tested on its own, then the chain order and
the per-run RoleResolver behaviour (feature role, strict mode, warnings).
"""

import logging

import pytest

from teamlight.domain.roster import CapacityMetric, RoleCapacityEntry
from teamlight.engine.role_resolver import (
    RESOLVER_CHAIN,
    RoleDirectory,
    RoleResolver,
    from_default,
    from_record_hint,
    from_role_table,
    from_subject_marker,
    parse_multiplier_hint,
    resolve_role,
)


@pytest.fixture
def directory(role_table):
    return RoleDirectory(role_table)


class TestRoleDirectory:
    """Tests for RoleDirectory"""

    def test_case_insensitive_lookup(self, directory):
        assert directory.lookup("  alice ").role == "BE"
        assert "CITRA" in directory

    def test_first_entry_wins(self):
        directory = RoleDirectory([RoleCapacityEntry("Alice", "BE"), RoleCapacityEntry("alice", "FE")])
        assert directory.lookup("Alice").role == "BE"
        assert len(directory) == 1

    def test_missing(self, directory):
        assert directory.lookup("Zed") is None
        assert directory.lookup(None) is None
        assert 42 not in directory


class TestIndividualResolvers:
    """Tests for each resolver in the chain"""

    def test_role_table(self, make_record, directory):
        assignment = from_role_table(make_record(assignee="citra"), directory)

        assert assignment.role == "FE"
        assert assignment.source == "table"
        assert assignment.capacity == 10
        assert assignment.capacity_metric is CapacityMetric.STORY_POINTS

    def test_role_table_miss(self, make_record, directory):
        assert from_role_table(make_record(assignee="Zed"), directory) is None

    def test_role_table_non_positive_multiplier(self, make_record):
        directory = RoleDirectory([RoleCapacityEntry("Zed", "QA", multiplier=0)])
        assert from_role_table(make_record(assignee="Zed"), directory).multiplier == 1.0

    def test_record_hint(self, make_record, directory):
        assignment = from_record_hint(make_record(role_hint="Frontend", multiplier_hint="1.5"), directory)

        assert assignment.role == "FE"
        assert assignment.multiplier == 1.5
        assert assignment.source == "hint"

    def test_record_hint_missing(self, make_record, directory):
        assert from_record_hint(make_record(role_hint=None), directory) is None

    @pytest.mark.parametrize(
        "subject,expected",
        [
            ("[Orion] BE - Payment webhook", "BE"),
            ("[Orion] Frontend - Cart page", "FE"),
            ("  [Q3 Launch]  QA - Regression pass", "QA"),
            ("[Orion] Ux Designer - Onboarding flow", "DESIGNER"),
        ],
    )
    def test_subject_marker(self, make_record, directory, subject, expected):
        assignment = from_subject_marker(make_record(subject=subject), directory)
        assert assignment.role == expected
        assert assignment.multiplier == 1.0

    @pytest.mark.parametrize(
        "subject",
        [None, "BE - no brackets", "[Orion] Payment webhook", "[Orion] Hotfix - urgent", "[Orion] BE-tight"],
    )
    def test_subject_without_known_marker(self, make_record, directory, subject):
        assert from_subject_marker(make_record(subject=subject), directory) is None

    def test_default(self, make_record, directory):
        assignment = from_default(make_record(), directory)
        assert (assignment.role, assignment.multiplier, assignment.source) == ("BE", 1.0, "default")


class TestParseMultiplierHint:
    """Tests for parse_multiplier_hint"""

    @pytest.mark.parametrize("text,expected", [("1.5", 1.5), ("0,8", 0.8), (None, 1.0), ("", 1.0), ("x", 1.0)])
    def test_values(self, text, expected):
        assert parse_multiplier_hint(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["0", "-1", "inf", "nan"])
    def test_non_positive_or_non_finite(self, text):
        assert parse_multiplier_hint(text) == 1.0


class TestResolveRole:
    """Tests for resolve_role chain order"""

    def test_table_beats_hint_and_subject(self, make_record, directory):
        record = make_record(assignee="Citra", role_hint="QA", subject="[Orion] BE - Payment")
        assert resolve_role(record, directory).source == "table"

    def test_hint_beats_subject(self, make_record, directory):
        record = make_record(assignee="Zed", role_hint="QA", subject="[Orion] BE - Payment")
        assert resolve_role(record, directory).role == "QA"

    def test_subject_beats_default(self, make_record, directory):
        record = make_record(assignee="Zed", subject="[Orion] FE - Cart")
        assert resolve_role(record, directory).source == "subject"

    def test_chain_without_catch_all(self, make_record, directory):
        assert resolve_role(make_record(assignee="Zed"), directory, RESOLVER_CHAIN[:-1]) is None


class TestRoleResolver:
    """Tests for RoleResolver"""

    def test_feature_always_fixed_role(self, make_record, role_table):
        resolver = RoleResolver(role_table)
        assignment = resolver.resolve(make_record(assignee="Citra"), is_feature=True)

        assert assignment.role == "BE"
        assert assignment.source == "feature"

    def test_strict_mode_only_table(self, make_record, role_table):
        resolver = RoleResolver(role_table, strict=True)

        assert resolver.resolve(make_record(assignee="Citra"), is_feature=False).role == "FE"
        assert resolver.resolve(make_record(assignee="Zed", role_hint="QA"), is_feature=False) is None

    def test_strict_mode_keeps_features(self, make_record, role_table):
        resolver = RoleResolver(role_table, strict=True)
        assert resolver.resolve(make_record(assignee="Zed"), is_feature=True).source == "feature"

    def test_default_warns_once_per_contributor(self, make_record, role_table, caplog):
        resolver = RoleResolver(role_table)

        with caplog.at_level(logging.WARNING):
            for row in range(1, 4):
                resolver.resolve(make_record(row=row, assignee="Zed"), is_feature=False)
            resolver.resolve(make_record(row=4, assignee="Yuni"), is_feature=False)

        assert resolver.warned == ["Zed", "Yuni"]
        warnings = [r for r in caplog.records if "No role configured" in r.getMessage()]
        assert len(warnings) == 2

    def test_no_warning_for_hint(self, make_record, role_table):
        resolver = RoleResolver(role_table)
        resolver.resolve(make_record(assignee="Zed", role_hint="QA"), is_feature=False)
        assert resolver.warned == []
