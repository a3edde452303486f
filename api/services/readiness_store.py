# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Readiness store service.

Keeps the latest readiness record per (organization, cell) and, when history
is enabled, an append-only trail of score snapshots.
"""

import logging
from typing import List, Dict, Optional

from opentelemetry import trace

from models.entities import ReadinessRecord, ReadinessSnapshot
from models.requests import ReadinessFilters
from services.mongodb import (
    MongoDBService,
    PaginationResult,
    READINESS_COLLECTION,
    HISTORY_COLLECTION
)
from middleware.error_handler import NotFoundException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_HISTORY_LIMIT = 5


class ReadinessStore:
    """Latest-only readiness records with optional history."""

    def __init__(self, mongodb_service: MongoDBService, history_enabled: bool = True):
        self.mongodb_service = mongodb_service
        self.history_enabled = history_enabled

    def upsert(self, org_id: str, record: ReadinessRecord) -> None:
        """Store a record, replacing any previous record of the cell."""
        with tracer.start_as_current_span("readiness_store.upsert") as span:
            span.set_attributes({
                "organization.id": org_id,
                "cell.id": record.cell_id,
                "readiness.score": record.readiness_score,
                "readiness.status": record.status
            })

            self.mongodb_service.upsert_by_org(
                READINESS_COLLECTION,
                org_id,
                {"cellId": record.cell_id},
                record.to_document()
            )

            if self.history_enabled:
                snapshot = ReadinessSnapshot(
                    cell_id=record.cell_id,
                    organization_id=org_id,
                    readiness_score=record.readiness_score,
                    status=record.status,
                    evaluated_at=record.last_evaluated_at
                )
                self.mongodb_service.insert(HISTORY_COLLECTION, snapshot.model_dump(by_alias=True))

    def find(self, org_id: str, cell_id: str) -> Optional[ReadinessRecord]:
        """Latest record of a cell, or None if never evaluated."""
        document = self.mongodb_service.find_one_by_org_filter(
            READINESS_COLLECTION, org_id, {"cellId": cell_id}
        )
        if document is None:
            return None
        return ReadinessRecord.model_validate(document)

    def get(self, org_id: str, cell_id: str) -> ReadinessRecord:
        """
        Latest record of a cell.

        Raises:
            NotFoundException: If the cell was never evaluated
        """
        record = self.find(org_id, cell_id)
        if record is None:
            raise NotFoundException(f"No readiness record for cell {cell_id}")
        return record

    def list_all(self, org_id: str, cell_ids: Optional[List[str]] = None) -> List[ReadinessRecord]:
        """All records of the organization, best score first."""
        filters = {}
        if cell_ids is not None:
            filters["cellId"] = {"$in": list(cell_ids)}

        documents = self.mongodb_service.find_by_org(
            READINESS_COLLECTION, org_id, filters,
            sort=[("readinessScore", -1), ("cellId", 1)]
        )
        return [ReadinessRecord.model_validate(doc) for doc in documents]

    def list_by_tenant(self, org_id: str, filters: ReadinessFilters) -> PaginationResult:
        """
        Page through records of an organization sorted by score descending.

        Returns:
            PaginationResult whose items are ReadinessRecord instances
        """
        with tracer.start_as_current_span("readiness_store.list") as span:
            span.set_attributes({
                "organization.id": org_id,
                "pagination.page": filters.page,
                "pagination.page_size": filters.page_size
            })

            query: Dict = {}
            if filters.status:
                query["status"] = filters.status
            if filters.min_score is not None:
                query["readinessScore"] = {"$gte": filters.min_score}
            if filters.cell_ids is not None:
                query["cellId"] = {"$in": list(filters.cell_ids)}

            result = self.mongodb_service.paginate_by_org(
                READINESS_COLLECTION,
                org_id,
                page=filters.page,
                page_size=filters.page_size,
                filters=query,
                sort_by="readinessScore",
                sort_order=-1
            )
            result.items = [ReadinessRecord.model_validate(doc) for doc in result.items]

            span.set_attribute("readiness.total", result.total)
            return result

    def history(self, org_id: str, cell_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[ReadinessSnapshot]:
        """Most recent snapshots of a cell, newest first."""
        if not self.history_enabled:
            return []

        documents = self.mongodb_service.find_by_org(
            HISTORY_COLLECTION, org_id, {"cellId": cell_id},
            sort=[("evaluatedAt", -1)], limit=limit
        )
        return [ReadinessSnapshot.model_validate(doc) for doc in documents]

    def previous_scores(self, org_id: str, cell_ids: List[str]) -> Dict[str, float]:
        """
        Score of the snapshot preceding the latest one, per cell.

        Cells with fewer than two snapshots are omitted. All cells are read
        with a single query.
        """
        if not self.history_enabled or not cell_ids:
            return {}

        documents = self.mongodb_service.find_by_org(
            HISTORY_COLLECTION, org_id, {"cellId": {"$in": list(cell_ids)}},
            sort=[("cellId", 1), ("evaluatedAt", -1)]
        )

        seen: Dict[str, int] = {}
        scores = {}
        for document in documents:
            cell_id = document["cellId"]
            seen[cell_id] = seen.get(cell_id, 0) + 1
            if seen[cell_id] == 2:
                scores[cell_id] = document["readinessScore"]

        return scores
