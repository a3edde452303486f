# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict
from .base import BaseEntityUpdate
from .enums import CriteriaType, ReadinessStatus, AlertType


class CreateCriterionRequest(BaseModel):
    """Request model for creating a multiplication criterion."""

    name: str = Field(..., min_length=1, max_length=200, description="Criterion name")
    description: Optional[str] = Field(None, max_length=1000, description="Criterion description")
    criteria_type: CriteriaType = Field(..., description="Measured aspect of the cell")
    threshold_value: float = Field(..., ge=0, description="Target value, must be non-negative")
    weight: float = Field(..., gt=0, le=1, description="Weight in (0, 1]")
    is_required: bool = Field(default=True, description="Whether the criterion blocks readiness")
    is_active: bool = Field(default=True, description="Whether the criterion is scored")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate criterion name."""
        if not v.strip():
            raise ValueError('Criterion name cannot be empty')
        return v.strip()


class UpdateCriterionRequest(BaseEntityUpdate):
    """Request model for partially updating a multiplication criterion."""

    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Criterion name")
    description: Optional[str] = Field(None, max_length=1000, description="Criterion description")
    criteria_type: Optional[CriteriaType] = Field(None, description="Measured aspect of the cell")
    threshold_value: Optional[float] = Field(None, ge=0, description="Target value")
    weight: Optional[float] = Field(None, gt=0, le=1, description="Weight in (0, 1]")
    is_required: Optional[bool] = Field(None, description="Whether the criterion blocks readiness")
    is_active: Optional[bool] = Field(None, description="Whether the criterion is scored")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate criterion name."""
        if v is not None and not v.strip():
            raise ValueError('Criterion name cannot be empty')
        return v.strip() if v else v


class CriteriaFilters(BaseModel):
    """Criteria listing filters."""

    model_config = ConfigDict(use_enum_values=True)

    active_only: bool = Field(default=False, description="Only active criteria")
    criteria_type: Optional[CriteriaType] = Field(None, description="Filter by type")


class ReadinessFilters(BaseModel):
    """Readiness record listing filters."""

    model_config = ConfigDict(use_enum_values=True)

    status: Optional[ReadinessStatus] = Field(None, description="Filter by status")
    min_score: Optional[float] = Field(None, ge=0, le=100, description="Minimum readiness score")
    cell_ids: Optional[List[str]] = Field(None, description="Restrict to these cells")
    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")


class AlertFilters(BaseModel):
    """Alert listing filters."""

    model_config = ConfigDict(use_enum_values=True)

    alert_type: Optional[AlertType] = Field(None, description="Filter by alert type")
    min_priority: Optional[int] = Field(None, ge=1, description="Minimum priority")
    limit: int = Field(default=50, ge=1, le=200, description="Maximum number of alerts")


class DashboardFilters(BaseModel):
    """Dashboard scoping filters."""

    supervisor_id: Optional[str] = Field(None, description="Only cells overseen by this supervisor")
    cell_ids: Optional[List[str]] = Field(None, description="Restrict to these cells")


class CriterionPath(BaseModel):
    """Path parameters addressing a criterion."""

    criterion_id: str = Field(..., description="Criterion ID")


class CellPath(BaseModel):
    """Path parameters addressing a cell."""

    cell_id: str = Field(..., description="Cell ID")
