# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Criteria registry service.

Organization-scoped CRUD over multiplication criteria. Writes report the
advisory weight budget as warnings and never trigger re-evaluation.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from models.entities import Criterion
from models.requests import CreateCriterionRequest, UpdateCriterionRequest
from domain.criteria import check_weight_budget, sort_criteria
from services.mongodb import MongoDBService, CRITERIA_COLLECTION
from middleware.error_handler import NotFoundException, ConflictException, ValidationException
from middleware.validation import validate_model

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class CriterionWriteResult:
    """Outcome of a criterion create or update."""
    criterion: Criterion
    warnings: List[str] = field(default_factory=list)


class CriteriaRegistry:
    """Tenant-scoped criteria repository."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    def list_criteria(self, org_id: str, active_only: bool = False,
                      criteria_type: Optional[str] = None) -> List[Criterion]:
        """
        List criteria of an organization ordered by type then name.

        Args:
            org_id: Organization ID
            active_only: Only active criteria
            criteria_type: Only criteria of this type
        """
        with tracer.start_as_current_span("criteria.list") as span:
            span.set_attributes({
                "organization.id": org_id,
                "criteria.active_only": active_only
            })

            filters: Dict[str, Any] = {}
            if active_only:
                filters["isActive"] = True
            if criteria_type:
                filters["criteriaType"] = criteria_type

            documents = self.mongodb_service.find_by_org(
                CRITERIA_COLLECTION, org_id, filters,
                sort=[("criteriaType", 1), ("name", 1)]
            )
            criteria = sort_criteria([Criterion.model_validate(doc) for doc in documents])

            span.set_attribute("criteria.count", len(criteria))
            return criteria

    def list_active_criteria(self, org_id: str) -> List[Criterion]:
        """Active criteria used by the evaluator."""
        return self.list_criteria(org_id, active_only=True)

    def get_criterion(self, org_id: str, criterion_id: str) -> Criterion:
        """
        Get one criterion.

        Raises:
            NotFoundException: If missing or owned by another organization
        """
        document = self.mongodb_service.find_one_by_org(CRITERIA_COLLECTION, org_id, criterion_id)
        if document is None:
            raise NotFoundException(f"Criterion {criterion_id} not found")
        return Criterion.model_validate(document)

    def create_criterion(self, org_id: str, fields: Dict[str, Any], user_id: str) -> CriterionWriteResult:
        """
        Create a criterion.

        Raises:
            ValidationException: If the fields are invalid
            ConflictException: If the name is already used for this type
        """
        with tracer.start_as_current_span("criteria.create") as span:
            span.set_attributes({"organization.id": org_id, "user.id": user_id})

            request = validate_model(CreateCriterionRequest, fields, "Criterion")
            criterion = Criterion(
                organization_id=org_id,
                created_by=user_id,
                updated_by=user_id,
                **request.model_dump(mode="json")
            )

            try:
                self.mongodb_service.create(CRITERIA_COLLECTION, criterion.to_document(), user_id)
            except ValueError:
                span.set_status(Status(StatusCode.ERROR, "duplicate criterion"))
                raise ConflictException(
                    f"A {criterion.criteria_type} criterion named '{criterion.name}' already exists"
                )

            span.set_attribute("criterion.id", criterion.id)
            logger.info(
                "Criterion created",
                extra={
                    "organization_id": org_id,
                    "criterion_id": criterion.id,
                    "criteria_type": criterion.criteria_type,
                    "user_id": user_id
                }
            )

            return CriterionWriteResult(criterion, self._weight_warnings(org_id))

    def update_criterion(self, org_id: str, criterion_id: str, fields: Dict[str, Any],
                         user_id: str) -> CriterionWriteResult:
        """
        Partially update a criterion.

        Raises:
            NotFoundException: If the criterion does not belong to the organization
            ValidationException: If the fields are invalid
            ConflictException: If the new name is already used for the type
        """
        with tracer.start_as_current_span("criteria.update") as span:
            span.set_attributes({
                "organization.id": org_id,
                "criterion.id": criterion_id,
                "user.id": user_id
            })

            existing = self.get_criterion(org_id, criterion_id)
            request = validate_model(UpdateCriterionRequest, fields, "Criterion update")
            updates = request.changes()

            if not updates:
                raise ValidationException(
                    "No updatable fields provided",
                    [{"field": "body", "message": "At least one field is required", "type": "missing"}]
                )

            try:
                updated = self.mongodb_service.update_by_org(
                    CRITERIA_COLLECTION, org_id, criterion_id, updates, user_id
                )
            except ValueError:
                span.set_status(Status(StatusCode.ERROR, "duplicate criterion"))
                raise ConflictException(
                    f"A {updates.get('criteriaType', existing.criteria_type)} criterion named "
                    f"'{updates.get('name', existing.name)}' already exists"
                )

            if not updated:
                raise NotFoundException(f"Criterion {criterion_id} not found")

            criterion = self.get_criterion(org_id, criterion_id)

            logger.info(
                "Criterion updated",
                extra={
                    "organization_id": org_id,
                    "criterion_id": criterion_id,
                    "fields": sorted(updates),
                    "user_id": user_id
                }
            )

            return CriterionWriteResult(criterion, self._weight_warnings(org_id))

    def delete_criterion(self, org_id: str, criterion_id: str) -> None:
        """
        Hard delete a criterion. Stored readiness records are left untouched.

        Raises:
            NotFoundException: If the criterion does not exist
        """
        with tracer.start_as_current_span("criteria.delete") as span:
            span.set_attributes({"organization.id": org_id, "criterion.id": criterion_id})

            if not self.mongodb_service.hard_delete_by_org(CRITERIA_COLLECTION, org_id, criterion_id):
                raise NotFoundException(f"Criterion {criterion_id} not found")

            logger.info(
                "Criterion deleted",
                extra={"organization_id": org_id, "criterion_id": criterion_id}
            )

    def _weight_warnings(self, org_id: str) -> List[str]:
        result = check_weight_budget(self.list_criteria(org_id))
        for warning in result.warnings:
            logger.warning(warning, extra={"organization_id": org_id})
        return result.warnings
