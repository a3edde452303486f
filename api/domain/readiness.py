# SPDX-License-Identifier: Apache-2.0

"""
Multiplication readiness evaluation.

This module contains the pure scoring algorithm: per-criterion normalisation,
the weighted readiness score, status derivation, confidence, recommendations
and the projected readiness date. Nothing here performs I/O; callers supply
the criteria, the cell metrics and the previous record.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from models.entities import Criterion, CellMetrics, CriterionResult, ReadinessRecord
from models.enums import CriteriaType, ReadinessStatus
from domain.criteria import get_rule
from domain.recommendations import (
    CATEGORY_RECOMMENDATIONS,
    BLOCKING_RECOMMENDATION,
    READY_RECOMMENDATIONS,
    WEAK_SCORE_THRESHOLD
)

logger = logging.getLogger(__name__)

NO_CRITERIA_CONFIGURED = "no_criteria_configured"

PREPARING_MIN_SCORE = 50.0
READY_MIN_SCORE = 75.0
OPTIMAL_MIN_SCORE = 90.0

STATUS_TIERS = {
    ReadinessStatus.NOT_READY.value: 0,
    ReadinessStatus.PREPARING.value: 1,
    ReadinessStatus.READY.value: 2,
    ReadinessStatus.OPTIMAL.value: 3,
}

READY_STATUSES = (ReadinessStatus.READY.value, ReadinessStatus.OPTIMAL.value)


@dataclass
class ReadinessConfig:
    """Tunable thresholds for evaluation and alerting."""
    overdue_after_days: int = 60
    stagnant_after_days: int = 30
    newly_ready_window_days: int = 7
    regression_tolerance: float = 5.0
    projection_horizon_months: int = 24
    history_enabled: bool = True


@dataclass
class EvaluationResult:
    """Result of a readiness evaluation."""
    success: bool
    record: Optional[ReadinessRecord] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None


def score_criteria(
    criteria: List[Criterion],
    metrics: CellMetrics
) -> Tuple[List[CriterionResult], List[str]]:
    """
    Score every criterion against the cell metrics.

    Args:
        criteria: Active criteria for the cell's organization
        metrics: Raw cell metrics

    Returns:
        Tuple of (criterion results, names of skipped criteria)
    """
    results = []
    skipped = []

    for criterion in criteria:
        rule = get_rule(criterion.criteria_type)
        if rule is None:
            logger.warning(
                "Skipping criterion with unknown type",
                extra={
                    "criterion_id": criterion.id,
                    "criteria_type": criterion.criteria_type,
                    "organization_id": criterion.organization_id
                }
            )
            skipped.append(criterion.name)
            continue

        measured = rule.read_metric(metrics)
        raw_value = float(measured) if measured is not None else 0.0
        normalized = round(rule.normalize(raw_value, criterion.threshold_value), 2)

        results.append(CriterionResult(
            criterion_id=criterion.id,
            name=criterion.name,
            criteria_type=criterion.criteria_type,
            raw_value=measured,
            threshold_value=criterion.threshold_value,
            weight=criterion.weight,
            normalized_score=normalized,
            contribution=round(normalized * criterion.weight, 4),
            met=rule.is_met(raw_value, criterion.threshold_value),
            is_required=criterion.is_required,
            data_available=measured is not None
        ))

    return results, skipped


def calculate_readiness_score(results: List[CriterionResult]) -> Optional[float]:
    """
    Combine weighted contributions into the overall readiness score.

    Returns:
        Score clamped to [0, 100], or None when the weights sum to zero
    """
    total_weight = sum(r.weight for r in results)
    if total_weight <= 0:
        return None

    score = sum(r.contribution for r in results) / total_weight
    return round(max(0.0, min(score, 100.0)), 2)


def find_blocking_factors(results: List[CriterionResult]) -> List[str]:
    """Names of required criteria that are not met."""
    return [r.name for r in results if r.is_required and not r.met]


def calculate_confidence(results: List[CriterionResult], skipped_count: int = 0) -> float:
    """
    Share of configured criteria for which metric data was available.

    Skipped criteria count as criteria without data.
    """
    total = len(results) + skipped_count
    if total == 0:
        return 0.0
    available = sum(1 for r in results if r.data_available)
    return round(available / total, 2)


def growth_rate_value(results: List[CriterionResult]) -> Optional[float]:
    """Measured growth rate, when a growth_rate criterion was evaluated."""
    for result in results:
        if result.criteria_type == CriteriaType.GROWTH_RATE.value:
            return result.raw_value
    return None


def derive_base_status(readiness_score: float, blocking_factors: List[str]) -> ReadinessStatus:
    """
    Derive the status tier from the score and blocking factors.

    Args:
        readiness_score: Overall score in [0, 100]
        blocking_factors: Unmet required criteria

    Returns:
        One of not_ready, preparing, ready, optimal
    """
    if blocking_factors or readiness_score < PREPARING_MIN_SCORE:
        return ReadinessStatus.NOT_READY
    if readiness_score < READY_MIN_SCORE:
        return ReadinessStatus.PREPARING
    if readiness_score < OPTIMAL_MIN_SCORE:
        return ReadinessStatus.READY
    return ReadinessStatus.OPTIMAL


def resolve_ready_since(
    base_status: ReadinessStatus,
    previous: Optional[ReadinessRecord],
    now: datetime
) -> Optional[datetime]:
    """
    Carry forward the moment the cell first became ready.

    The timestamp survives re-evaluations while the cell stays ready, optimal
    or overdue, and resets once it drops below ready.
    """
    if base_status.value not in READY_STATUSES:
        return None

    if (previous is not None and previous.ready_since is not None
            and previous.status in READY_STATUSES + (ReadinessStatus.OVERDUE.value,)):
        return previous.ready_since

    return now


def derive_status(
    base_status: ReadinessStatus,
    ready_since: Optional[datetime],
    previous: Optional[ReadinessRecord],
    multiplication_started: bool,
    now: datetime,
    config: ReadinessConfig
) -> ReadinessStatus:
    """
    Apply the overdue rule on top of the base status.

    A cell that has stayed ready past the configured period without a
    multiplication being started is overdue. A first evaluation is never
    overdue.
    """
    if base_status.value not in READY_STATUSES:
        return base_status

    if previous is None or ready_since is None or multiplication_started:
        return base_status

    if now - ready_since > timedelta(days=config.overdue_after_days):
        return ReadinessStatus.OVERDUE

    return base_status


def build_recommendations(
    results: List[CriterionResult],
    blocking_factors: List[str],
    status: ReadinessStatus
) -> List[str]:
    """
    Build deterministic recommendations from weak criteria.

    Args:
        results: Criterion results in evaluation order
        blocking_factors: Unmet required criteria
        status: Derived status

    Returns:
        Ordered, de-duplicated recommendation texts
    """
    recommendations = []

    if blocking_factors:
        recommendations.append(BLOCKING_RECOMMENDATION.format(factors=", ".join(blocking_factors)))

    for result in results:
        if result.normalized_score >= WEAK_SCORE_THRESHOLD:
            continue
        rule = get_rule(result.criteria_type)
        for text in CATEGORY_RECOMMENDATIONS.get(rule.category, []):
            if text not in recommendations:
                recommendations.append(text)

    if not recommendations and status.value in READY_STATUSES + (ReadinessStatus.OVERDUE.value,):
        recommendations.extend(READY_RECOMMENDATIONS)

    return recommendations


def project_ready_date(
    readiness_score: float,
    status: ReadinessStatus,
    growth_rate_pct: Optional[float],
    now: datetime,
    config: ReadinessConfig
) -> Optional[datetime]:
    """
    Linearly project when the cell will reach the ready threshold.

    The score gap to ready is divided by the monthly growth rate. No projection
    is made for cells already ready, without positive growth, or when the
    estimate falls beyond the projection horizon.
    """
    if status not in (ReadinessStatus.NOT_READY, ReadinessStatus.PREPARING):
        return None

    if growth_rate_pct is None or growth_rate_pct <= 0:
        return None

    gap = READY_MIN_SCORE - readiness_score
    if gap <= 0:
        return None

    months = math.ceil(gap / growth_rate_pct)
    if months > config.projection_horizon_months:
        return None

    return now + timedelta(days=30 * months)


def evaluate_readiness(
    cell_id: str,
    organization_id: str,
    criteria: List[Criterion],
    metrics: CellMetrics,
    previous: Optional[ReadinessRecord],
    now: datetime,
    config: Optional[ReadinessConfig] = None
) -> EvaluationResult:
    """
    Evaluate a cell's multiplication readiness.

    Args:
        cell_id: Cell being evaluated
        organization_id: Cell's organization
        criteria: Active criteria of the organization
        metrics: Raw cell metrics
        previous: Last stored record, if any
        now: Evaluation timestamp
        config: Thresholds (defaults when omitted)

    Returns:
        EvaluationResult with the new record, or a no_criteria_configured failure
    """
    config = config or ReadinessConfig()

    if not criteria:
        return EvaluationResult(
            success=False,
            error_type=NO_CRITERIA_CONFIGURED,
            error_message="No active multiplication criteria configured"
        )

    results, skipped = score_criteria(criteria, metrics)
    readiness_score = calculate_readiness_score(results)

    if readiness_score is None:
        return EvaluationResult(
            success=False,
            error_type=NO_CRITERIA_CONFIGURED,
            error_message="No scorable multiplication criteria configured"
        )

    blocking_factors = find_blocking_factors(results)
    base_status = derive_base_status(readiness_score, blocking_factors)
    ready_since = resolve_ready_since(base_status, previous, now)
    status = derive_status(
        base_status, ready_since, previous, metrics.multiplication_started, now, config
    )

    record = ReadinessRecord(
        cell_id=cell_id,
        organization_id=organization_id,
        readiness_score=readiness_score,
        status=status,
        criteria_results=results,
        projected_date=project_ready_date(
            readiness_score, status, growth_rate_value(results), now, config
        ),
        confidence_level=calculate_confidence(results, len(skipped)),
        recommendations=build_recommendations(results, blocking_factors, status),
        blocking_factors=blocking_factors,
        skipped_criteria=skipped,
        ready_since=ready_since,
        multiplication_started=metrics.multiplication_started,
        last_evaluated_at=now
    )

    return EvaluationResult(success=True, record=record)


def status_tier(status: str) -> int:
    """Ordering of the score-driven statuses; overdue ranks with ready."""
    if status == ReadinessStatus.OVERDUE.value:
        return STATUS_TIERS[ReadinessStatus.READY.value]
    return STATUS_TIERS[status]
