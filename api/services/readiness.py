# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Readiness service.

Orchestrates the pure evaluation, dashboard and alert logic over the criteria
registry, the metrics collector, the cell directory and the readiness store.
"""

import os
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Callable

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from models.entities import Alert, Cell, Criterion, ReadinessRecord
from models.requests import ReadinessFilters
from models.responses import CellReadinessHistory, DashboardSummary
from domain.readiness import ReadinessConfig, NO_CRITERIA_CONFIGURED, evaluate_readiness
from domain.alerts import generate_alerts
from domain.dashboard import build_dashboard, scope_to_cells
from services.cells import CellDirectory
from services.criteria_registry import CriteriaRegistry
from services.metrics import MetricsCollector
from services.mongodb import PaginationResult
from services.readiness_store import ReadinessStore
from middleware.error_handler import CustomException, NoCriteriaConfiguredException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_ALERT_LIMIT = 50


def create_readiness_config() -> ReadinessConfig:
    """Create readiness configuration from environment variables."""
    return ReadinessConfig(
        overdue_after_days=int(os.getenv('READINESS_OVERDUE_AFTER_DAYS', '60')),
        stagnant_after_days=int(os.getenv('READINESS_STAGNANT_AFTER_DAYS', '30')),
        newly_ready_window_days=int(os.getenv('READINESS_NEWLY_READY_WINDOW_DAYS', '7')),
        regression_tolerance=float(os.getenv('READINESS_REGRESSION_TOLERANCE', '5')),
        projection_horizon_months=int(os.getenv('READINESS_PROJECTION_HORIZON_MONTHS', '24')),
        history_enabled=os.getenv('READINESS_HISTORY_ENABLED', 'true').lower() == 'true'
    )


@dataclass
class BatchItemResult:
    """Outcome of one cell in a batch evaluation."""
    cell_id: str
    success: bool
    record: Optional[ReadinessRecord] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class ReadinessService:
    """Entry point for every readiness operation."""

    def __init__(
        self,
        criteria_registry: CriteriaRegistry,
        metrics_collector: MetricsCollector,
        cell_directory: CellDirectory,
        readiness_store: ReadinessStore,
        config: Optional[ReadinessConfig] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.criteria_registry = criteria_registry
        self.metrics_collector = metrics_collector
        self.cell_directory = cell_directory
        self.readiness_store = readiness_store
        self.config = config or ReadinessConfig()
        self.clock = clock

    def evaluate_cell(self, org_id: str, cell_id: str) -> ReadinessRecord:
        """
        Evaluate and persist the readiness of one cell.

        Raises:
            NotFoundException: If the cell is not part of the organization
            NoCriteriaConfiguredException: If no active criteria exist
            MetricsUnavailableException: If metrics cannot be retrieved; the
                previous record is kept
        """
        with tracer.start_as_current_span("readiness.evaluate_cell") as span:
            span.set_attributes({"organization.id": org_id, "cell.id": cell_id})

            self.cell_directory.get_cell(org_id, cell_id)
            criteria = self.criteria_registry.list_active_criteria(org_id)

            try:
                record = self._evaluate(org_id, cell_id, criteria)
            except CustomException as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                raise

            span.set_attributes({
                "readiness.score": record.readiness_score,
                "readiness.status": record.status
            })
            span.set_status(Status(StatusCode.OK))
            return record

    def evaluate_all_cells(self, org_id: str,
                           cell_ids: Optional[List[str]] = None) -> List[BatchItemResult]:
        """
        Evaluate every cell of the organization independently.

        A failing cell is reported in the result list and never stops the
        batch; cells evaluated successfully are persisted as they complete.

        Args:
            org_id: Organization ID
            cell_ids: Limit the batch to these cells
        """
        with tracer.start_as_current_span("readiness.evaluate_all_cells") as span:
            span.set_attribute("organization.id", org_id)

            cells = self.cell_directory.list_cells(org_id, cell_ids=cell_ids)
            criteria = self.criteria_registry.list_active_criteria(org_id)
            results = []

            for cell in cells:
                try:
                    record = self._evaluate(org_id, cell.id, criteria)
                except CustomException as e:
                    results.append(self._batch_failure(org_id, cell.id, e.error_type, e.message))
                    continue
                except (PyMongoError, ValidationError) as e:
                    results.append(self._batch_failure(org_id, cell.id, "evaluation-failed", str(e)))
                    continue

                results.append(BatchItemResult(cell_id=cell.id, success=True, record=record))

            succeeded = sum(1 for r in results if r.success)
            span.set_attributes({
                "batch.cells": len(cells),
                "batch.succeeded": succeeded,
                "batch.failed": len(results) - succeeded
            })

            logger.info(
                "Batch readiness evaluation completed",
                extra={
                    "organization_id": org_id,
                    "cells": len(cells),
                    "succeeded": succeeded,
                    "failed": len(results) - succeeded
                }
            )
            return results

    def get_readiness(self, org_id: str, cell_id: str) -> ReadinessRecord:
        """Latest stored record of a cell."""
        return self.readiness_store.get(org_id, cell_id)

    def list_readiness(self, org_id: str, filters: ReadinessFilters) -> PaginationResult:
        """Page of stored records, best score first."""
        return self.readiness_store.list_by_tenant(org_id, filters)

    def get_dashboard(self, org_id: str, supervisor_id: Optional[str] = None,
                      cell_ids: Optional[List[str]] = None) -> DashboardSummary:
        """
        Summarize the stored records of the organization.

        Args:
            org_id: Organization ID
            supervisor_id: Limit to the cells this supervisor oversees
            cell_ids: Limit to these cells
        """
        with tracer.start_as_current_span("readiness.get_dashboard") as span:
            span.set_attribute("organization.id", org_id)

            cells = self.cell_directory.list_cells(org_id, supervisor_id=supervisor_id)
            records = self.readiness_store.list_all(org_id)

            if supervisor_id or cell_ids is not None:
                scope = {cell.id for cell in cells}
                if cell_ids is not None:
                    scope &= set(cell_ids)
                records, cells = scope_to_cells(records, cells, scope)

            now = self.clock()
            alerts = self._alerts(org_id, records, cells, now)
            summary = build_dashboard(org_id, records, cells, now, alerts)

            span.set_attributes({
                "dashboard.total_cells": summary.total_cells,
                "dashboard.ready_cells": summary.ready_cells
            })
            return summary

    def get_alerts(self, org_id: str, limit: int = DEFAULT_ALERT_LIMIT,
                   alert_type: Optional[str] = None, min_priority: Optional[int] = None,
                   cell_ids: Optional[List[str]] = None) -> List[Alert]:
        """Prioritised alerts derived from the stored records."""
        with tracer.start_as_current_span("readiness.get_alerts") as span:
            span.set_attributes({"organization.id": org_id, "alerts.limit": limit})

            records = self.readiness_store.list_all(org_id, cell_ids=cell_ids)
            cells = self.cell_directory.list_cells(org_id, cell_ids=cell_ids)
            alerts = self._alerts(
                org_id, records, cells, self.clock(),
                alert_type=alert_type, min_priority=min_priority, limit=limit
            )

            span.set_attribute("alerts.count", len(alerts))
            return alerts

    def get_cell_details(self, org_id: str, cell_id: str) -> CellReadinessHistory:
        """
        A cell with its active criteria, latest record and recent evaluations.

        Raises:
            NotFoundException: If the cell is not part of the organization
        """
        with tracer.start_as_current_span("readiness.get_cell_details") as span:
            span.set_attributes({"organization.id": org_id, "cell.id": cell_id})

            cell = self.cell_directory.get_cell(org_id, cell_id)
            details = CellReadinessHistory(
                cell=cell,
                criteria=self.criteria_registry.list_active_criteria(org_id),
                readiness=self.readiness_store.find(org_id, cell_id),
                history=self.readiness_store.history(org_id, cell_id)
            )

            span.set_attribute("readiness.history_count", len(details.history))
            return details

    def _batch_failure(self, org_id: str, cell_id: str, error_type: str,
                       error_message: str) -> BatchItemResult:
        logger.error(
            "Cell evaluation failed in batch",
            extra={
                "organization_id": org_id,
                "cell_id": cell_id,
                "error_type": error_type,
                "error": error_message
            }
        )
        return BatchItemResult(
            cell_id=cell_id,
            success=False,
            error_type=error_type,
            error_message=error_message
        )

    def _alerts(self, org_id: str, records: List[ReadinessRecord], cells: List[Cell],
                now: datetime, **filters) -> List[Alert]:
        previous_scores = {}
        if self.config.history_enabled:
            previous_scores = self.readiness_store.previous_scores(
                org_id, [r.cell_id for r in records]
            )
        return generate_alerts(records, cells, now, self.config, previous_scores, **filters)

    def _evaluate(self, org_id: str, cell_id: str, criteria: List[Criterion]) -> ReadinessRecord:
        if not criteria:
            raise NoCriteriaConfiguredException()

        metrics = self.metrics_collector.collect(org_id, cell_id)
        previous = self.readiness_store.find(org_id, cell_id)

        with tracer.start_as_current_span("domain.readiness.evaluate") as span:
            result = evaluate_readiness(
                cell_id, org_id, criteria, metrics, previous, self.clock(), self.config
            )
            span.set_attribute("domain.result", "success" if result.success else result.error_type)

        if not result.success:
            if result.error_type == NO_CRITERIA_CONFIGURED:
                raise NoCriteriaConfiguredException(result.error_message)
            raise CustomException(result.error_message)

        self.readiness_store.upsert(org_id, result.record)

        logger.info(
            "Cell readiness evaluated",
            extra={
                "organization_id": org_id,
                "cell_id": cell_id,
                "readiness_score": result.record.readiness_score,
                "status": result.record.status,
                "skipped_criteria": result.record.skipped_criteria
            }
        )
        return result.record
