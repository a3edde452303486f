# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Multiplication readiness endpoints: evaluation, stored records and their
recent history, dashboard and alerts.

Supervisors whose token carries ``supervised_cell_ids`` only see and
evaluate those cells.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from models.entities import UserContext
from models.requests import ReadinessFilters, AlertFilters, DashboardFilters, CellPath
from models.responses import BatchItemResponse
from middleware.auth import require_permission
from middleware.error_handler import AuthorizationException
from domain.authorization import (
    READ_READINESS,
    EVALUATE_READINESS,
    check_cell_access,
    scoped_cell_ids
)
from domain.alerts import summarize_alerts
from services.hal import READINESS_PATH, EVALUATE_PATH

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DASHBOARD_PATH = "/api/multiplication/dashboard"
ALERTS_PATH = "/api/multiplication/alerts"

readiness_tag = Tag(name="Readiness", description="Cell multiplication readiness")
readiness_bp = APIBlueprint(
    'readiness',
    __name__,
    url_prefix='/api/multiplication',
    abp_tags=[readiness_tag]
)


def _require_cell_access(user_context: UserContext, cell_id: str) -> None:
    result = check_cell_access(user_context, cell_id)
    if not result.allowed:
        raise AuthorizationException(result.reason)


def _links(**paths) -> dict:
    builder = current_app.hal_formatter.builder.link_builder
    return {rel: builder.build_link(path).model_dump(exclude_none=True) for rel, path in paths.items()}


@readiness_bp.get('/readiness')
@require_permission(READ_READINESS)
def list_readiness(user_context: UserContext):
    """
    List stored readiness records, best score first.

    Supports ``status``, ``min_score``, ``cell_ids``, ``page`` and
    ``page_size`` query parameters.
    """
    with tracer.start_as_current_span("routes.readiness.list") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        filters = current_app.validation_middleware.parse_query_params(ReadinessFilters)
        filters.cell_ids = scoped_cell_ids(user_context, filters.cell_ids)

        result = current_app.readiness_service.list_readiness(user_context.org_id, filters)

        response = current_app.hal_formatter.format_readiness_collection(
            [record.model_dump(mode="json") for record in result.items],
            result.total,
            result.page,
            result.page_size,
            user_context.permissions,
            filters.model_dump(exclude_none=True, exclude={"page", "page_size"})
        )

        span.set_attribute("readiness.total", result.total)
        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200


@readiness_bp.get('/readiness/<cell_id>')
@require_permission(READ_READINESS)
def get_readiness(user_context: UserContext, path: CellPath):
    """Get the latest readiness record of a cell."""
    with tracer.start_as_current_span("routes.readiness.get") as span:
        span.set_attributes({
            "organization.id": user_context.org_id,
            "cell.id": path.cell_id
        })

        _require_cell_access(user_context, path.cell_id)
        record = current_app.readiness_service.get_readiness(user_context.org_id, path.cell_id)

        return jsonify(current_app.hal_formatter.format_readiness(
            record.model_dump(mode="json"),
            user_context.permissions
        )), 200


@readiness_bp.get('/readiness/<cell_id>/history')
@require_permission(READ_READINESS)
def get_readiness_history(user_context: UserContext, path: CellPath):
    """
    Detail view of a cell: the cell, active criteria, latest record and the
    most recent evaluations, newest first.
    """
    with tracer.start_as_current_span("routes.readiness.history") as span:
        span.set_attributes({
            "organization.id": user_context.org_id,
            "cell.id": path.cell_id
        })

        _require_cell_access(user_context, path.cell_id)
        details = current_app.readiness_service.get_cell_details(user_context.org_id, path.cell_id)

        response = details.model_dump(mode="json")
        response["_links"] = _links(
            self=f"{READINESS_PATH}/{path.cell_id}/history",
            readiness=f"{READINESS_PATH}/{path.cell_id}",
            evaluate=f"{EVALUATE_PATH}/{path.cell_id}"
        )

        span.set_attribute("readiness.history_count", len(details.history))
        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200


@readiness_bp.post('/evaluate/<cell_id>')
@require_permission(EVALUATE_READINESS)
def evaluate_cell(user_context: UserContext, path: CellPath):
    """
    Evaluate one cell now and store the result.

    Returns 422 when no active criteria exist and 503 when the cell's metrics
    cannot be retrieved; in both cases the previous record is kept.
    """
    with tracer.start_as_current_span("routes.readiness.evaluate") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id,
            "cell.id": path.cell_id
        })

        _require_cell_access(user_context, path.cell_id)
        record = current_app.readiness_service.evaluate_cell(user_context.org_id, path.cell_id)

        logger.info(
            "Cell evaluation requested",
            extra={
                "user_id": user_context.user_id,
                "organization_id": user_context.org_id,
                "cell_id": path.cell_id,
                "status": record.status
            }
        )

        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_readiness(
            record.model_dump(mode="json"),
            user_context.permissions
        )), 200


@readiness_bp.post('/evaluate')
@require_permission(EVALUATE_READINESS)
def evaluate_all_cells(user_context: UserContext):
    """
    Evaluate every cell in scope.

    One failing cell never fails the batch; each cell reports its own outcome.
    """
    with tracer.start_as_current_span("routes.readiness.evaluate_all") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        results = current_app.readiness_service.evaluate_all_cells(
            user_context.org_id,
            cell_ids=scoped_cell_ids(user_context)
        )

        items = [
            BatchItemResponse(
                cell_id=item.cell_id,
                success=item.success,
                readiness_score=item.record.readiness_score if item.record else None,
                status=item.record.status if item.record else None,
                error_type=item.error_type,
                error_message=item.error_message
            ).model_dump(mode="json")
            for item in results
        ]
        succeeded = sum(1 for item in results if item.success)

        response = {
            "organization_id": user_context.org_id,
            "total": len(items),
            "succeeded": succeeded,
            "failed": len(items) - succeeded,
            "_embedded": {"results": items},
            "_links": _links(self=EVALUATE_PATH, readiness=READINESS_PATH, dashboard=DASHBOARD_PATH)
        }

        span.set_attributes({"batch.total": len(items), "batch.succeeded": succeeded})
        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200


@readiness_bp.get('/dashboard')
@require_permission(READ_READINESS)
def get_dashboard(user_context: UserContext):
    """
    Organization readiness dashboard.

    Accepts ``supervisor_id`` and ``cell_ids`` to narrow the scope.
    """
    with tracer.start_as_current_span("routes.readiness.dashboard") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        filters = current_app.validation_middleware.parse_query_params(DashboardFilters)
        summary = current_app.readiness_service.get_dashboard(
            user_context.org_id,
            supervisor_id=filters.supervisor_id,
            cell_ids=scoped_cell_ids(user_context, filters.cell_ids)
        )

        response = summary.model_dump(mode="json")
        response["_links"] = _links(self=DASHBOARD_PATH, readiness=READINESS_PATH, alerts=ALERTS_PATH)

        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200


@readiness_bp.get('/alerts')
@require_permission(READ_READINESS)
def list_alerts(user_context: UserContext):
    """
    Prioritised readiness alerts.

    Supports ``alert_type``, ``min_priority`` and ``limit`` query parameters.
    """
    with tracer.start_as_current_span("routes.readiness.alerts") as span:
        span.set_attributes({
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        filters = current_app.validation_middleware.parse_query_params(AlertFilters)
        alerts = current_app.readiness_service.get_alerts(
            user_context.org_id,
            limit=filters.limit,
            alert_type=filters.alert_type,
            min_priority=filters.min_priority,
            cell_ids=scoped_cell_ids(user_context)
        )

        response = {
            "total": len(alerts),
            "summary": summarize_alerts(alerts),
            "_embedded": {"alerts": [alert.model_dump(mode="json") for alert in alerts]},
            "_links": _links(self=ALERTS_PATH, dashboard=DASHBOARD_PATH)
        }

        span.set_attribute("alerts.count", len(alerts))
        span.set_status(Status(StatusCode.OK))
        return jsonify(response), 200
