# SPDX-License-Identifier: Apache-2.0

"""
Criteria domain logic for multiplication readiness.

This module holds the rule table that ties every criteria type to the cell
metric it reads and the way that metric is normalised, plus pure helpers for
the advisory weight budget.
"""

from typing import List, Dict, Optional, Callable
from dataclasses import dataclass

from models.entities import Criterion, CellMetrics
from models.enums import CriteriaType


WEIGHT_BUDGET = 1.0


@dataclass
class ValidationResult:
    """Result of criteria validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []


def normalize_higher_is_better(raw_value: float, threshold_value: float) -> float:
    """
    Normalize a metric where reaching the threshold means fully satisfied.

    Args:
        raw_value: Measured value
        threshold_value: Target value

    Returns:
        Score in [0, 100]
    """
    if threshold_value == 0:
        return 100.0

    ratio = min(raw_value / threshold_value, 1.0)
    return max(0.0, min(ratio * 100.0, 100.0))


def met_higher_is_better(raw_value: float, threshold_value: float) -> bool:
    """A zero threshold is trivially met."""
    return threshold_value == 0 or raw_value >= threshold_value


@dataclass(frozen=True)
class CriterionRule:
    """How one criteria type is measured and scored."""
    criteria_type: CriteriaType
    metric_field: str
    category: str
    label: str
    normalize: Callable[[float, float], float] = normalize_higher_is_better
    is_met: Callable[[float, float], bool] = met_higher_is_better

    def read_metric(self, metrics: CellMetrics) -> Optional[float]:
        """Return the raw metric value or None when the collector had no data."""
        return getattr(metrics, self.metric_field)


CRITERION_RULES: Dict[CriteriaType, CriterionRule] = {
    CriteriaType.MEMBER_COUNT: CriterionRule(
        CriteriaType.MEMBER_COUNT, "member_count", "growth", "Member count"
    ),
    CriteriaType.MEETING_FREQUENCY: CriterionRule(
        CriteriaType.MEETING_FREQUENCY, "meeting_frequency_pct", "consistency", "Meeting frequency (%)"
    ),
    CriteriaType.AVERAGE_ATTENDANCE: CriterionRule(
        CriteriaType.AVERAGE_ATTENDANCE, "average_attendance_pct", "attendance", "Average attendance (%)"
    ),
    CriteriaType.POTENTIAL_LEADERS: CriterionRule(
        CriteriaType.POTENTIAL_LEADERS, "potential_leader_count", "leadership", "Potential leaders"
    ),
    CriteriaType.CELL_AGE_MONTHS: CriterionRule(
        CriteriaType.CELL_AGE_MONTHS, "age_in_months", "maturity", "Cell age (months)"
    ),
    CriteriaType.LEADER_MATURITY: CriterionRule(
        CriteriaType.LEADER_MATURITY, "leader_maturity_score", "leadership", "Leader maturity (points)"
    ),
    CriteriaType.GROWTH_RATE: CriterionRule(
        CriteriaType.GROWTH_RATE, "growth_rate_pct", "growth", "Growth rate (%)"
    ),
    CriteriaType.STABILITY_SCORE: CriterionRule(
        CriteriaType.STABILITY_SCORE, "stability_score", "stability", "Stability score"
    ),
}

_missing_rules = set(CriteriaType) - set(CRITERION_RULES)
if _missing_rules:
    raise RuntimeError(
        f"No scoring rule for criteria types: {sorted(t.value for t in _missing_rules)}"
    )

_unknown_fields = [
    rule.metric_field for rule in CRITERION_RULES.values()
    if rule.metric_field not in CellMetrics.model_fields
]
if _unknown_fields:
    raise RuntimeError(f"Scoring rules reference unknown metric fields: {_unknown_fields}")


def get_rule(criteria_type: str) -> Optional[CriterionRule]:
    """
    Look up the scoring rule for a stored criteria type.

    Args:
        criteria_type: Criteria type string as stored

    Returns:
        The rule, or None when the type is not recognised
    """
    try:
        return CRITERION_RULES[CriteriaType(criteria_type)]
    except ValueError:
        return None


def calculate_active_weight_sum(criteria: List[Criterion]) -> float:
    """Sum the weights of active criteria."""
    return round(sum(c.weight for c in criteria if c.is_active), 4)


def check_weight_budget(criteria: List[Criterion]) -> ValidationResult:
    """
    Check the advisory weight budget for a tenant's criteria.

    Exceeding the budget is never an error; it is reported as a warning so
    administrators can rebalance weights.

    Args:
        criteria: All criteria of one organization

    Returns:
        ValidationResult, always valid, with a warning when over budget
    """
    total = calculate_active_weight_sum(criteria)
    warnings = []

    if total > WEIGHT_BUDGET:
        warnings.append(
            f"Active criteria weights sum to {total:.2f}, which exceeds {WEIGHT_BUDGET:.2f}"
        )

    return ValidationResult(is_valid=True, errors=[], warnings=warnings)


def sort_criteria(criteria: List[Criterion]) -> List[Criterion]:
    """Order criteria by type then name, matching the listing order."""
    return sorted(criteria, key=lambda c: (c.criteria_type, c.name))

