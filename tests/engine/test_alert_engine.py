"""
Tests for the alert engine

Tests rule conditions, each built-in function and project rule, the
cross-function imbalance check and severity ordering.
"""

from dataclasses import replace

import pytest

from teamlight.domain.alerts import AlertCategory, AlertKind
from teamlight.domain.metrics import FunctionMetrics
from teamlight.engine.alert_engine import (
    FUNCTION_RULES,
    AlertEngine,
    Condition,
    project_stats,
)


@pytest.fixture
def make_function():
    """Factory for FunctionMetrics that trigger no rule by default"""

    def _make(**overrides):
        defaults = {
            "role": "BE",
            "member_count": 3,
            "total_story_points": 60,
            "avg_story_points": 20.0,
            "stdev_story_points": 4.0,
            "closed_tickets": 5,
            "defect_count": 0,
            "rework_count": 1,
            "defect_rate": 0.0,
            "rework_rate": 0.2,
            "avg_utilization": 0.7,
        }
        defaults.update(overrides)
        return FunctionMetrics(**defaults)

    return _make


@pytest.fixture
def engine(thresholds):
    return AlertEngine(thresholds)


def _kinds(alerts):
    return [alert.kind for alert in alerts]


class TestCondition:
    """Tests for Condition.holds"""

    def test_operators(self, make_function, thresholds):
        function = make_function(avg_utilization=1.0, member_count=2)

        assert Condition("avg_utilization", "above", "function_optimal_low").holds(function, thresholds)
        assert not Condition("avg_utilization", "below", "function_optimal_low").holds(function, thresholds)
        assert Condition("member_count", "at_least", "min_function_members").holds(function, thresholds)
        within = Condition("avg_utilization", "within", "function_optimal_low", "function_optimal_high")
        assert within.holds(function, thresholds)

    def test_unknown_operator(self, make_function, thresholds):
        with pytest.raises(ValueError, match="Unknown operator"):
            Condition("avg_utilization", "between", "function_optimal_low").holds(make_function(), thresholds)


class TestFunctionRules:
    """Tests for the built-in function rules"""

    def test_quiet_function(self, engine, make_function):
        assert engine.generate([make_function()]) == []

    def test_overutilized(self, engine, make_function):
        alerts = engine.generate([make_function(avg_utilization=1.2)])

        assert _kinds(alerts) == [AlertKind.OVERUTILIZED]
        alert = alerts[0]
        assert alert.category is AlertCategory.FUNCTION
        assert alert.message == "BE team is over-utilized at 120% capacity"
        assert alert.recommendation.startswith("Consider hiring 1 additional BE member(s)")
        assert alert.value == pytest.approx(1.2)
        assert alert.roles == ("BE",)

    def test_hiring_suggestion_scales_with_headcount(self, engine, make_function):
        alert = engine.generate([make_function(member_count=7, avg_utilization=1.3)])[0]
        assert "hiring 3 additional" in alert.recommendation

    def test_underutilized(self, engine, make_function):
        assert _kinds(engine.generate([make_function(avg_utilization=0.5)])) == [AlertKind.UNDERUTILIZED]

    @pytest.mark.parametrize("utilization", [0.8, 0.9, 1.0])
    def test_optimal_band_inclusive(self, engine, make_function, utilization):
        assert _kinds(engine.generate([make_function(avg_utilization=utilization)])) == [AlertKind.OPTIMAL]

    def test_utilization_rules_need_members(self, engine, make_function):
        assert engine.generate([make_function(member_count=1, avg_utilization=1.5)]) == []

    def test_story_point_achievement(self, engine, make_function):
        alerts = engine.generate([make_function(total_story_points=120, avg_story_points=40.0)])

        assert _kinds(alerts) == [AlertKind.ACHIEVEMENT]
        assert alerts[0].message == "BE delivered 120 SP (40 SP/person avg)"

    def test_rework_concern(self, engine, make_function):
        alerts = engine.generate([make_function(closed_tickets=10, rework_rate=0.3)])

        assert _kinds(alerts) == [AlertKind.QUALITY_CONCERN]
        assert alerts[0].message == "BE has a 30% rework rate"

    def test_excellent_quality(self, engine, make_function):
        alerts = engine.generate([make_function(closed_tickets=12, rework_rate=0.1)])
        assert _kinds(alerts) == [AlertKind.ACHIEVEMENT]

    def test_quality_rules_need_tickets(self, engine, make_function):
        assert engine.generate([make_function(closed_tickets=9, rework_rate=0.5)]) == []

    def test_empty_role_skipped(self, engine, make_function):
        assert engine.generate([make_function(member_count=0, closed_tickets=20, rework_rate=0.5)]) == []

    def test_custom_rule_set(self, thresholds, make_function):
        engine = AlertEngine(thresholds, function_rules=FUNCTION_RULES[:1])
        assert engine.generate([make_function(avg_utilization=0.5)]) == []


class TestImbalance:
    """Tests for the cross-function balance check"""

    def test_imbalance(self, engine, make_function):
        functions = [
            make_function(role="BE", avg_utilization=0.85),
            make_function(role="FE", avg_utilization=0.4, member_count=2),
            make_function(role="QA", avg_utilization=0.95, member_count=1),
        ]
        imbalance = [a for a in engine.generate(functions) if a.kind is AlertKind.WORKLOAD_IMBALANCE]

        assert len(imbalance) == 1
        assert imbalance[0].category is AlertCategory.CROSS_FUNCTION
        assert imbalance[0].roles == ("BE", "FE")
        assert imbalance[0].value == pytest.approx(0.45)
        assert imbalance[0].message == "Workload imbalance: BE (85%) vs FE (40%)"

    def test_small_gap(self, engine, make_function):
        functions = [make_function(role="BE", avg_utilization=0.9), make_function(role="FE", avg_utilization=0.6)]
        assert AlertKind.WORKLOAD_IMBALANCE not in _kinds(engine.generate(functions))

    def test_needs_two_eligible_roles(self, engine, make_function):
        functions = [make_function(role="BE", avg_utilization=1.5), make_function(role="FE", member_count=1)]
        assert AlertKind.WORKLOAD_IMBALANCE not in _kinds(engine.generate(functions))


class TestProjectRules:
    """Tests for project_stats and the project rules"""

    @pytest.fixture
    def tickets(self, make_ticket):
        orion = [make_ticket(project="Orion", story_points=20) for _ in range(3)]
        vega = [make_ticket(project="Vega", story_points=1, is_rework=i < 4) for i in range(10)]
        still_open = make_ticket(project="Atlas", status="Open", story_points=40, closed_at=None, cycle_days=None)
        return orion + vega + [still_open]

    def test_project_stats(self, tickets):
        orion, vega = project_stats(tickets)

        assert orion.project == "Orion"
        assert orion.story_points == 60
        assert orion.share == pytest.approx(60 / 70)
        assert vega.closed_tickets == 10
        assert vega.rework_rate == pytest.approx(0.4)

    def test_project_alerts(self, engine, tickets):
        alerts = engine.generate([], tickets)

        assert _kinds(alerts) == [AlertKind.QUALITY_CONCERN, AlertKind.ACHIEVEMENT]
        concern, achievement = alerts
        assert concern.project == "Vega"
        assert concern.category is AlertCategory.PROJECT
        assert achievement.message == "Orion delivered 60 SP (86% of total)"

    def test_no_closed_work(self, engine, make_ticket):
        assert engine.generate([], [make_ticket(status="Open", closed_at=None, cycle_days=None)]) == []


class TestSeverityOrder:
    """Tests for alert ordering"""

    def test_risks_before_achievements(self, engine, make_function):
        functions = [
            make_function(role="BE", total_story_points=150, avg_utilization=0.9),
            make_function(role="FE", avg_utilization=0.3, closed_tickets=10, rework_rate=0.4),
            make_function(role="QA", avg_utilization=1.4),
        ]
        priorities = [alert.kind.priority for alert in engine.generate(functions)]

        assert priorities == sorted(priorities)
        assert engine.generate(functions)[0].kind is AlertKind.OVERUTILIZED

    def test_stable_within_kind(self, engine, make_function):
        functions = [
            make_function(role="BE", avg_utilization=0.9),
            make_function(role="FE", avg_utilization=0.85),
        ]
        assert [a.roles for a in engine.generate(functions)] == [("BE",), ("FE",)]

    def test_deterministic(self, engine, make_function):
        functions = [make_function(role="BE", avg_utilization=1.3), replace(make_function(), role="QA")]
        assert engine.generate(functions) == engine.generate(functions)
