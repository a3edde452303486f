# SPDX-License-Identifier: Apache-2.0

"""
Multiplication alert generation.

Alerts are derived on demand from readiness records; they are never stored.
"""

from datetime import datetime, timedelta
from typing import Any, List, Dict, Optional

from models.entities import Alert, Cell, ReadinessRecord
from models.enums import AlertType, CriteriaType, ReadinessStatus
from domain.readiness import ReadinessConfig, READY_STATUSES

ALERT_PRIORITIES: Dict[AlertType, int] = {
    AlertType.OVERDUE_EVALUATION: 5,
    AlertType.STAGNANT_READY: 4,
    AlertType.REGRESSING: 3,
    AlertType.NEWLY_READY: 2,
    AlertType.LOW_ATTENDANCE: 1,
    AlertType.MISSING_LEADER: 1,
    AlertType.SLOW_GROWTH: 1,
}

HIGH_PRIORITY_MIN = 4
MEDIUM_PRIORITY_MIN = 2

# Unmet criteria that raise an informational alert of their own
CRITERIA_ALERTS: Dict[CriteriaType, AlertType] = {
    CriteriaType.AVERAGE_ATTENDANCE: AlertType.LOW_ATTENDANCE,
    CriteriaType.POTENTIAL_LEADERS: AlertType.MISSING_LEADER,
    CriteriaType.GROWTH_RATE: AlertType.SLOW_GROWTH,
}


def _make_alert(
    record: ReadinessRecord,
    cell_name: str,
    alert_type: AlertType,
    message: str
) -> Alert:
    return Alert(
        cell_id=record.cell_id,
        cell_name=cell_name,
        alert_type=alert_type,
        message=message,
        priority=ALERT_PRIORITIES[alert_type],
        readiness_score=record.readiness_score,
        status=record.status,
        created_at=record.last_evaluated_at
    )


def alerts_for_record(
    record: ReadinessRecord,
    cell_name: str,
    now: datetime,
    config: ReadinessConfig,
    previous_score: Optional[float] = None
) -> List[Alert]:
    """
    Derive every alert that applies to one readiness record.

    Args:
        record: Latest readiness record
        cell_name: Display name of the cell
        now: Reference time
        config: Alert windows
        previous_score: Score of the prior snapshot, when history is kept

    Returns:
        Alerts for the cell, unsorted
    """
    alerts = []

    if record.status == ReadinessStatus.OVERDUE.value:
        alerts.append(_make_alert(
            record, cell_name, AlertType.OVERDUE_EVALUATION,
            f"{cell_name} has been ready for more than {config.overdue_after_days} days "
            f"without starting a multiplication"
        ))

    if record.status in READY_STATUSES and record.ready_since is not None:
        ready_for = now - record.ready_since
        if ready_for > timedelta(days=config.stagnant_after_days):
            if not record.multiplication_started:
                alerts.append(_make_alert(
                    record, cell_name, AlertType.STAGNANT_READY,
                    f"{cell_name} has been ready for {ready_for.days} days"
                ))
        elif ready_for <= timedelta(days=config.newly_ready_window_days):
            alerts.append(_make_alert(
                record, cell_name, AlertType.NEWLY_READY,
                f"{cell_name} is ready for multiplication "
                f"(score {record.readiness_score:.1f})"
            ))

    if (previous_score is not None
            and previous_score - record.readiness_score >= config.regression_tolerance):
        alerts.append(_make_alert(
            record, cell_name, AlertType.REGRESSING,
            f"{cell_name} readiness dropped from {previous_score:.1f} "
            f"to {record.readiness_score:.1f}"
        ))

    for criteria_type, alert_type in CRITERIA_ALERTS.items():
        result = record.result_for(criteria_type)
        if result is not None and not result.met:
            alerts.append(_make_alert(
                record, cell_name, alert_type,
                f"{cell_name}: {result.name} below target "
                f"({result.raw_value if result.raw_value is not None else 'no data'} "
                f"of {result.threshold_value:g})"
            ))

    return alerts


def sort_alerts(alerts: List[Alert]) -> List[Alert]:
    """Order by priority, then readiness score, both descending."""
    return sorted(alerts, key=lambda a: (-a.priority, -a.readiness_score, a.cell_name, a.alert_type))


def priority_band(priority: int) -> str:
    """Map a numeric priority to high, medium or low."""
    if priority >= HIGH_PRIORITY_MIN:
        return "high"
    if priority >= MEDIUM_PRIORITY_MIN:
        return "medium"
    return "low"


def summarize_alerts(alerts: List[Alert]) -> Dict[str, Any]:
    """
    Count alerts by priority band and by type.

    Every band and every alert type is present, with zero when absent.
    """
    by_priority = {band: 0 for band in ("high", "medium", "low")}
    by_type = {alert_type.value: 0 for alert_type in AlertType}

    for alert in alerts:
        by_priority[priority_band(alert.priority)] += 1
        by_type[alert.alert_type] += 1

    return {
        "total_alerts": len(alerts),
        "by_priority": by_priority,
        "by_type": by_type
    }


def generate_alerts(
    records: List[ReadinessRecord],
    cells: List[Cell],
    now: datetime,
    config: Optional[ReadinessConfig] = None,
    previous_scores: Optional[Dict[str, float]] = None,
    alert_type: Optional[str] = None,
    min_priority: Optional[int] = None,
    limit: Optional[int] = None
) -> List[Alert]:
    """
    Produce the prioritised alert list for an organization.

    Args:
        records: Readiness records in scope
        cells: Cells of the organization, used for names
        now: Reference time
        config: Alert windows
        previous_scores: Prior snapshot score per cell id
        alert_type: Only alerts of this type
        min_priority: Only alerts at or above this priority
        limit: Maximum number of alerts

    Returns:
        Sorted alerts
    """
    config = config or ReadinessConfig()
    previous_scores = previous_scores or {}
    names = {cell.id: cell.name for cell in cells}

    alerts = []
    for record in records:
        alerts.extend(alerts_for_record(
            record,
            names.get(record.cell_id, record.cell_id),
            now,
            config,
            previous_scores.get(record.cell_id)
        ))

    if alert_type:
        alerts = [a for a in alerts if a.alert_type == alert_type]

    if min_priority is not None:
        alerts = [a for a in alerts if a.priority >= min_priority]

    alerts = sort_alerts(alerts)

    if limit is not None:
        alerts = alerts[:limit]

    return alerts
