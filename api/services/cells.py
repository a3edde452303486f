# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Read-only access to the cells owned by the cell-management application.
"""

import logging
from typing import List, Optional

from opentelemetry import trace

from models.entities import Cell
from services.mongodb import MongoDBService, CELLS_COLLECTION
from middleware.error_handler import NotFoundException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CellDirectory:
    """Looks up cells within an organization."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    def get_cell(self, org_id: str, cell_id: str) -> Cell:
        """
        Get one cell of the organization.

        Raises:
            NotFoundException: If the cell does not exist in the organization
        """
        with tracer.start_as_current_span("cells.get") as span:
            span.set_attributes({"organization.id": org_id, "cell.id": cell_id})

            document = self.mongodb_service.find_one_by_org(CELLS_COLLECTION, org_id, cell_id)
            if document is None:
                raise NotFoundException(f"Cell {cell_id} not found")

            return Cell.model_validate(document)

    def list_cells(self, org_id: str, supervisor_id: Optional[str] = None,
                   cell_ids: Optional[List[str]] = None) -> List[Cell]:
        """
        List the organization's cells ordered by name.

        Args:
            org_id: Organization ID
            supervisor_id: Only cells supervised by this user
            cell_ids: Only these cells
        """
        with tracer.start_as_current_span("cells.list") as span:
            span.set_attribute("organization.id", org_id)

            filters = {}
            if supervisor_id:
                filters["supervisorId"] = supervisor_id

            documents = self.mongodb_service.find_by_org(
                CELLS_COLLECTION, org_id, filters, sort=[("name", 1)]
            )
            cells = [Cell.model_validate(doc) for doc in documents]

            if cell_ids is not None:
                allowed = set(cell_ids)
                cells = [cell for cell in cells if cell.id in allowed]

            span.set_attribute("cells.count", len(cells))
            logger.debug(f"Listed {len(cells)} cells for org {org_id}")
            return cells
