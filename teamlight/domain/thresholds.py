"""
Scoring and alerting thresholds.

Every tunable number the engine uses lives on ``Thresholds`` with a
documented default, so formulas never fall back to inline literals. Callers
supply a partial mapping and get a fully-populated, immutable object back.

Usage:
    from teamlight.domain.thresholds import Thresholds, load_thresholds

    thresholds = Thresholds.from_mapping({"topPerformerZ": 1.5})
    thresholds = load_thresholds(Path("thresholds.json"))
"""

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from teamlight.core import get_logger
from teamlight.errors import ConfigurationError

logger = get_logger(__name__)

# Keys accepted from exported dashboard settings
CAMEL_CASE_ALIASES: dict[str, str] = {
    "topPerformerZ": "top_performer_z",
    "lowPerformerZ": "low_performer_z",
    "highBugRate": "high_defect_rate",
    "highReviseRate": "high_rework_rate",
    "storyPointsWeight": "story_points_weight",
    "ticketCountWeight": "ticket_count_weight",
    "projectVarietyWeight": "project_variety_weight",
    "reviseRatePenalty": "rework_penalty_weight",
    "bugRatePenalty": "defect_penalty_weight",
}


@dataclass(frozen=True)
class Thresholds:
    """
    Named configuration scalars for scoring, flagging and alerting.

    Scoring:
        story_points_weight: Weight of the effective story point z-score
        ticket_count_weight: Weight of the closed ticket count z-score
        project_variety_weight: Weight of the project variety z-score
        rework_penalty_weight: Score penalty per unit of rework rate
        defect_penalty_weight: Score penalty per unit of defect rate
        penalty_floor: Smallest value a penalty factor can take
        rework_sp_discount: Share of story points forfeited per unit of rework rate

    Contributor flags:
        top_performer_z / low_performer_z: Role-relative performance z cutoffs
        high_defect_rate / high_rework_rate: Quality flag cutoffs
        underutilized_below: Utilization under which a contributor is underutilized
        overloaded_above: Utilization over which a contributor is overloaded
        strained_above: Utilization over which elevated quality rates also mean overloaded
        strained_defect_rate / strained_rework_rate: Elevated quality rates for the strained rule

    Alerts:
        function_overutilized_above / function_underutilized_below: Average utilization bands
        function_optimal_low / function_optimal_high: Optimal utilization band (inclusive)
        function_sp_achievement: Total story points worth celebrating
        function_rework_concern / function_rework_excellent: Rework rate bands
        imbalance_gap: Utilization gap between roles that signals imbalance
        project_share_achievement / project_sp_achievement: Project delivery highlight
        project_rework_concern: Project rework rate that signals a quality problem
        hiring_ratio: Share of a function's headcount suggested as new hires
        min_function_members: Members a role needs for utilization alerts
        min_quality_tickets: Closed tickets needed for rework alerts
    """

    top_performer_z: float = 1.0
    low_performer_z: float = -1.0
    high_defect_rate: float = 0.25
    high_rework_rate: float = 0.20

    story_points_weight: float = 0.5
    ticket_count_weight: float = 0.25
    project_variety_weight: float = 0.25
    rework_penalty_weight: float = 0.8
    defect_penalty_weight: float = 0.5
    penalty_floor: float = 0.1
    rework_sp_discount: float = 0.5

    underutilized_below: float = 0.7
    overloaded_above: float = 1.0
    strained_above: float = 0.9
    strained_defect_rate: float = 0.2
    strained_rework_rate: float = 0.3

    function_overutilized_above: float = 1.1
    function_underutilized_below: float = 0.6
    function_optimal_low: float = 0.8
    function_optimal_high: float = 1.0
    function_sp_achievement: float = 100.0
    function_rework_concern: float = 0.25
    function_rework_excellent: float = 0.15
    imbalance_gap: float = 0.4
    project_share_achievement: float = 0.40
    project_sp_achievement: float = 50.0
    project_rework_concern: float = 0.30
    hiring_ratio: float = 0.3
    min_function_members: int = 2
    min_quality_tickets: int = 10

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "Thresholds":
        """
        Build Thresholds from a partial mapping.

        Keys may be snake_case field names or the camelCase names used by
        exported dashboard settings. Unknown keys are ignored. Values that
        are not finite numbers keep their default and log a warning.

        Args:
            mapping: Partial overrides, or None for all defaults

        Returns:
            Fully-populated Thresholds
        """
        if not mapping:
            return cls()

        field_types = {f.name: f.type for f in fields(cls)}
        overrides: dict[str, Any] = {}

        for key, raw in mapping.items():
            name = CAMEL_CASE_ALIASES.get(key, key)
            if name not in field_types:
                logger.debug("Ignoring unknown threshold", extra={"threshold": key})
                continue

            value = _coerce_number(raw)
            if value is None:
                logger.warning(
                    f"Threshold {key} is not a finite number, using default",
                    extra={"threshold": key, "value": str(raw)},
                )
                continue

            overrides[name] = int(value) if field_types[name] in (int, "int") else value

        return replace(cls(), **overrides)

    def to_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce_number(raw: Any) -> float | None:
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def load_thresholds(path: Path | None) -> Thresholds:
    """
    Load threshold overrides from a JSON object file.

    Args:
        path: JSON file path, or None for defaults

    Returns:
        Thresholds with file values applied over defaults

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON object
    """
    if path is None:
        return Thresholds()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read thresholds file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Thresholds file {path} must contain a JSON object")

    return Thresholds.from_mapping(data)
