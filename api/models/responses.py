# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from .entities import Alert, Cell, Criterion, ReadinessRecord, ReadinessSnapshot


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class ErrorResponse(BaseModel):
    """Error response model following RFC 7807."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Error title")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Error detail")
    instance: str = Field(..., description="Request instance")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation errors")


class CellReadinessDetail(BaseModel):
    """Per-cell line of the multiplication dashboard."""

    model_config = ConfigDict(use_enum_values=True)

    cell_id: str
    cell_name: str
    readiness_score: float
    status: str
    confidence_level: float
    blocking_factors: List[str] = Field(default_factory=list)
    projected_date: Optional[datetime] = None
    last_evaluated_at: datetime


class DashboardSummary(BaseModel):
    """Tenant-wide multiplication readiness roll-up."""

    organization_id: str
    total_cells: int = Field(..., description="Cells in scope, evaluated or not")
    evaluated_cells: int = Field(..., description="Cells with a readiness record")
    ready_cells: int = Field(..., description="Ready plus optimal")
    preparing_cells: int
    not_ready_cells: int
    overdue_cells: int
    average_readiness_score: float
    status_counts: Dict[str, int]
    status_distribution: Dict[str, float] = Field(..., description="Percentage per status")
    cells_details: List[CellReadinessDetail] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    last_updated: datetime


class BatchItemResponse(BaseModel):
    """Outcome of one cell inside a batch evaluation."""

    cell_id: str
    success: bool
    readiness_score: Optional[float] = None
    status: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class CellReadinessHistory(BaseModel):
    """A cell with its active criteria, latest record and recent evaluations."""

    cell: Cell
    criteria: List[Criterion] = Field(default_factory=list, description="Active criteria of the organization")
    readiness: Optional[ReadinessRecord] = Field(None, description="Latest record, if ever evaluated")
    history: List[ReadinessSnapshot] = Field(default_factory=list, description="Recent evaluations, newest first")
