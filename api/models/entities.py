# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the cell multiplication readiness engine.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict
from .base import BaseEntity, DocumentModel
from .enums import CriteriaType, ReadinessStatus, AlertType


class Criterion(BaseEntity):
    """
    Weighted rule used to score a cell's multiplication readiness.

    ``criteria_type`` is kept as a plain string on the stored entity so that
    documents written with a type the engine no longer knows still load; the
    evaluator skips and reports them instead of failing the whole evaluation.
    """

    name: str = Field(..., min_length=1, max_length=200, description="Display label")
    description: Optional[str] = Field(None, max_length=1000, description="Criterion description")
    criteria_type: str = Field(..., description="Measured aspect of the cell")
    threshold_value: float = Field(..., description="Target value the cell must reach")
    weight: float = Field(..., description="Relative weight in the readiness score")
    is_required: bool = Field(default=True, description="Unmet required criteria block readiness")
    is_active: bool = Field(default=True, description="Inactive criteria are ignored")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate criterion name."""
        if not v.strip():
            raise ValueError('Criterion name cannot be empty')
        return v.strip()

    def has_known_type(self) -> bool:
        """Check whether the criteria type is one the engine can score."""
        return self.criteria_type in {t.value for t in CriteriaType}


class Cell(DocumentModel):
    """Cell reference (owned by the surrounding application)."""

    id: str = Field(..., description="Cell identifier")
    organization_id: str = Field(..., description="Owning organization")
    name: str = Field(..., description="Cell display name")
    leader_id: Optional[str] = Field(None, description="Cell leader user ID")
    supervisor_id: Optional[str] = Field(None, description="Supervisor user ID")


class CellMetrics(DocumentModel):
    """Raw measurements for one cell as supplied by the metrics collector."""

    cell_id: str = Field(..., description="Cell identifier")
    member_count: Optional[float] = Field(None, description="Active members")
    meeting_frequency_pct: Optional[float] = Field(None, description="Meetings held vs planned (%)")
    average_attendance_pct: Optional[float] = Field(None, description="Average attendance (%)")
    potential_leader_count: Optional[float] = Field(None, description="Members in leadership pipeline")
    age_in_months: Optional[float] = Field(None, description="Cell age in months")
    leader_maturity_score: Optional[float] = Field(None, description="Leader maturity points")
    growth_rate_pct: Optional[float] = Field(None, description="Monthly member growth (%)")
    stability_score: Optional[float] = Field(None, description="Stability score")
    multiplication_started: bool = Field(default=False, description="A multiplication process is under way")
    collected_at: Optional[datetime] = Field(None, description="When the metrics were computed")


class CriterionResult(DocumentModel):
    """Snapshot of how one criterion scored during an evaluation."""

    criterion_id: str
    name: str
    criteria_type: str
    raw_value: Optional[float] = None
    threshold_value: float
    weight: float
    normalized_score: float = Field(..., ge=0, le=100)
    contribution: float
    met: bool
    is_required: bool
    data_available: bool


class ReadinessRecord(DocumentModel):
    """Latest multiplication readiness evaluation for a cell."""

    cell_id: str = Field(..., description="Evaluated cell")
    organization_id: str = Field(..., description="Owning organization")
    readiness_score: float = Field(..., ge=0, le=100, description="Weighted readiness score")
    status: ReadinessStatus = Field(..., description="Derived readiness status")
    criteria_results: List[CriterionResult] = Field(default_factory=list)
    projected_date: Optional[datetime] = Field(None, description="Estimated date to reach ready")
    confidence_level: float = Field(..., ge=0, le=1, description="Share of criteria with data")
    recommendations: List[str] = Field(default_factory=list)
    blocking_factors: List[str] = Field(default_factory=list)
    skipped_criteria: List[str] = Field(default_factory=list, description="Criteria with unknown type")
    ready_since: Optional[datetime] = Field(None, description="When the cell first reached ready")
    multiplication_started: bool = Field(default=False, description="A multiplication was under way at evaluation time")
    last_evaluated_at: datetime = Field(..., description="Evaluation timestamp")

    def is_ready(self) -> bool:
        """Check if the cell is ready or optimal."""
        return self.status in (ReadinessStatus.READY.value, ReadinessStatus.OPTIMAL.value)

    def result_for(self, criteria_type: CriteriaType) -> Optional[CriterionResult]:
        """Return the first result for a criteria type, if evaluated."""
        for result in self.criteria_results:
            if result.criteria_type == criteria_type.value:
                return result
        return None


class ReadinessSnapshot(DocumentModel):
    """Historical score point written alongside each upsert."""

    cell_id: str
    organization_id: str
    readiness_score: float
    status: ReadinessStatus
    evaluated_at: datetime


class Alert(BaseModel):
    """Alert derived from readiness records at aggregation time."""

    model_config = ConfigDict(use_enum_values=True)

    cell_id: str
    cell_name: str
    alert_type: AlertType
    message: str
    priority: int = Field(..., ge=1, description="Higher is more urgent")
    readiness_score: float
    status: ReadinessStatus
    created_at: datetime


class UserContext(BaseModel):
    """User context for request processing with authentication and authorization data."""

    user_id: str = Field(..., description="Authenticated user ID")
    org_id: str = Field(..., description="User's organization (church) ID")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    permissions: List[str] = Field(default_factory=list, description="User's effective permissions")
    supervised_cell_ids: Optional[List[str]] = Field(
        None, description="Cells a supervisor is limited to; None means the whole organization"
    )
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )

    def has_permission(self, permission: str) -> bool:
        """Check if user has a specific permission."""
        return permission in self.permissions

    def has_any_permission(self, permissions: List[str]) -> bool:
        """Check if user has any of the specified permissions."""
        return any(perm in self.permissions for perm in permissions)
