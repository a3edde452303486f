# SPDX-License-Identifier: Apache-2.0

"""
Multiplication dashboard aggregation.

Pure roll-up of whatever readiness records are stored; nothing is evaluated here.
"""

from datetime import datetime
from typing import List, Optional, Iterable

from models.entities import Alert, Cell, ReadinessRecord
from models.enums import ReadinessStatus
from models.responses import CellReadinessDetail, DashboardSummary

DASHBOARD_ALERT_LIMIT = 10


def scope_to_cells(
    records: List[ReadinessRecord],
    cells: List[Cell],
    cell_ids: Optional[Iterable[str]]
):
    """
    Narrow records and cells to a supervisor's subset.

    Args:
        records: Organization readiness records
        cells: Organization cells
        cell_ids: Allowed cell IDs, or None for the whole organization

    Returns:
        Tuple of (records, cells) in scope
    """
    if cell_ids is None:
        return records, cells

    allowed = set(cell_ids)
    return (
        [r for r in records if r.cell_id in allowed],
        [c for c in cells if c.id in allowed]
    )


def count_statuses(records: List[ReadinessRecord]) -> dict:
    """Count records per status, including statuses with no records."""
    counts = {status.value: 0 for status in ReadinessStatus}
    for record in records:
        counts[record.status] += 1
    return counts


def calculate_distribution(counts: dict, total: int) -> dict:
    """Percentage of records per status."""
    if total == 0:
        return {status: 0.0 for status in counts}
    return {status: round(count * 100.0 / total, 2) for status, count in counts.items()}


def build_dashboard(
    organization_id: str,
    records: List[ReadinessRecord],
    cells: List[Cell],
    now: datetime,
    alerts: Optional[List[Alert]] = None
) -> DashboardSummary:
    """
    Summarize readiness records for an organization.

    Args:
        organization_id: Organization being summarized
        records: Stored readiness records in scope
        cells: Cells in scope (may include never evaluated cells)
        now: Timestamp for ``last_updated``
        alerts: Already generated alerts to attach

    Returns:
        DashboardSummary
    """
    names = {cell.id: cell.name for cell in cells}
    counts = count_statuses(records)
    evaluated = len(records)

    average = 0.0
    if evaluated:
        average = round(sum(r.readiness_score for r in records) / evaluated, 2)

    details = [
        CellReadinessDetail(
            cell_id=r.cell_id,
            cell_name=names.get(r.cell_id, r.cell_id),
            readiness_score=r.readiness_score,
            status=r.status,
            confidence_level=r.confidence_level,
            blocking_factors=r.blocking_factors,
            projected_date=r.projected_date,
            last_evaluated_at=r.last_evaluated_at
        )
        for r in sorted(records, key=lambda r: (-r.readiness_score, r.cell_id))
    ]

    known_cells = set(names) | {r.cell_id for r in records}

    return DashboardSummary(
        organization_id=organization_id,
        total_cells=len(known_cells),
        evaluated_cells=evaluated,
        ready_cells=counts[ReadinessStatus.READY.value] + counts[ReadinessStatus.OPTIMAL.value],
        preparing_cells=counts[ReadinessStatus.PREPARING.value],
        not_ready_cells=counts[ReadinessStatus.NOT_READY.value],
        overdue_cells=counts[ReadinessStatus.OVERDUE.value],
        average_readiness_score=average,
        status_counts=counts,
        status_distribution=calculate_distribution(counts, evaluated),
        cells_details=details,
        alerts=(alerts or [])[:DASHBOARD_ALERT_LIMIT],
        last_updated=now
    )
