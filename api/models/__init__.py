# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the readiness engine.
"""

# Base models
from .base import DocumentModel, BaseEntity, BaseEntityUpdate

# Enumerations
from .enums import (
    CriteriaType,
    ReadinessStatus,
    AlertType,
    PermissionAction,
    PermissionResource
)

# Core entities
from .entities import (
    Criterion,
    Cell,
    CellMetrics,
    CriterionResult,
    ReadinessRecord,
    ReadinessSnapshot,
    Alert,
    UserContext
)

# Request models
from .requests import (
    CreateCriterionRequest,
    UpdateCriterionRequest,
    CriteriaFilters,
    ReadinessFilters,
    AlertFilters,
    DashboardFilters,
    CriterionPath,
    CellPath
)

# Response models
from .responses import (
    HalLink,
    ErrorResponse,
    CellReadinessDetail,
    DashboardSummary,
    BatchItemResponse,
    CellReadinessHistory
)

__all__ = [
    # Base models
    "DocumentModel",
    "BaseEntity",
    "BaseEntityUpdate",

    # Enumerations
    "CriteriaType",
    "ReadinessStatus",
    "AlertType",
    "PermissionAction",
    "PermissionResource",

    # Core entities
    "Criterion",
    "Cell",
    "CellMetrics",
    "CriterionResult",
    "ReadinessRecord",
    "ReadinessSnapshot",
    "Alert",
    "UserContext",

    # Request models
    "CreateCriterionRequest",
    "UpdateCriterionRequest",
    "CriteriaFilters",
    "ReadinessFilters",
    "AlertFilters",
    "DashboardFilters",
    "CriterionPath",
    "CellPath",

    # Response models
    "HalLink",
    "ErrorResponse",
    "CellReadinessDetail",
    "DashboardSummary",
    "BatchItemResponse",
    "CellReadinessHistory"
]
