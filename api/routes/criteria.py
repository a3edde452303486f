# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Multiplication criteria endpoints.

Criteria are organization-scoped; create and update responses carry the
advisory weight budget warnings alongside the stored criterion.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.entities import UserContext
from models.requests import CriteriaFilters, CriterionPath
from middleware.auth import require_permission
from domain.authorization import (
    READ_READINESS,
    CREATE_CRITERIA,
    UPDATE_CRITERIA,
    DELETE_CRITERIA
)

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

criteria_tag = Tag(name="Criteria", description="Multiplication criteria management")
criteria_bp = APIBlueprint(
    'criteria',
    __name__,
    url_prefix='/api/multiplication/criteria',
    abp_tags=[criteria_tag]
)


def _criterion_response(result, user_context: UserContext):
    response = current_app.hal_formatter.format_criterion(
        result.criterion.model_dump(mode="json"),
        user_context.permissions
    )
    response["warnings"] = result.warnings
    return response


@criteria_bp.get('')
@require_permission(READ_READINESS)
def list_criteria(user_context: UserContext):
    """
    List multiplication criteria.

    Supports ``active_only`` and ``criteria_type`` query filters. Results are
    ordered by type, then name.
    """
    with tracer.start_as_current_span("routes.criteria.list") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        filters = current_app.validation_middleware.parse_query_params(CriteriaFilters)
        criteria = current_app.criteria_registry.list_criteria(
            user_context.org_id,
            active_only=filters.active_only,
            criteria_type=filters.criteria_type
        )

        response = current_app.hal_formatter.format_criteria_collection(
            [criterion.model_dump(mode="json") for criterion in criteria],
            user_context.permissions,
            filters.model_dump(exclude_none=True)
        )

        span.set_attribute("criteria.count", len(criteria))
        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200


@criteria_bp.post('')
@require_permission(CREATE_CRITERIA)
def create_criterion(user_context: UserContext):
    """
    Create a multiplication criterion.

    Returns 409 when the name is already used for the same criteria type.
    Weight warnings never block the write.
    """
    with tracer.start_as_current_span("routes.criteria.create") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        data = current_app.validation_middleware.get_json_body()
        result = current_app.criteria_registry.create_criterion(
            user_context.org_id, data, user_context.user_id
        )

        span.set_attributes({
            "criterion.id": result.criterion.id,
            "criteria.warnings": len(result.warnings)
        })
        span.set_status(Status(StatusCode.OK))
        return jsonify(_criterion_response(result, user_context)), 201


@criteria_bp.get('/<criterion_id>')
@require_permission(READ_READINESS)
def get_criterion(user_context: UserContext, path: CriterionPath):
    """Get a multiplication criterion by ID."""
    with tracer.start_as_current_span("routes.criteria.get") as span:
        span.set_attributes({
            "organization.id": user_context.org_id,
            "criterion.id": path.criterion_id
        })

        criterion = current_app.criteria_registry.get_criterion(user_context.org_id, path.criterion_id)

        return jsonify(current_app.hal_formatter.format_criterion(
            criterion.model_dump(mode="json"),
            user_context.permissions
        )), 200


@criteria_bp.put('/<criterion_id>')
@require_permission(UPDATE_CRITERIA)
def update_criterion(user_context: UserContext, path: CriterionPath):
    """
    Partially update a multiplication criterion.

    Stored readiness records are not re-evaluated.
    """
    with tracer.start_as_current_span("routes.criteria.update") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id,
            "criterion.id": path.criterion_id
        })

        data = current_app.validation_middleware.get_json_body()
        result = current_app.criteria_registry.update_criterion(
            user_context.org_id, path.criterion_id, data, user_context.user_id
        )

        span.set_status(Status(StatusCode.OK))
        return jsonify(_criterion_response(result, user_context)), 200


@criteria_bp.delete('/<criterion_id>')
@require_permission(DELETE_CRITERIA)
def delete_criterion(user_context: UserContext, path: CriterionPath):
    """Delete a multiplication criterion."""
    with tracer.start_as_current_span("routes.criteria.delete") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id,
            "criterion.id": path.criterion_id
        })

        current_app.criteria_registry.delete_criterion(user_context.org_id, path.criterion_id)

        logger.info(
            "Criterion removed via API",
            extra={
                "user_id": user_context.user_id,
                "organization_id": user_context.org_id,
                "criterion_id": path.criterion_id
            }
        )

        span.set_status(Status(StatusCode.OK))
        return '', 204
