# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Cell metrics collectors.

Metrics are owned by the surrounding cell-management application. Two
read-only adapters are provided: one reading the shared ``cell_metrics``
collection and one calling the application's HTTP API. Both bound the call
by a timeout and turn every failure into ``MetricsUnavailableException``.
"""

import os
import logging
from typing import Optional

import requests
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from models.entities import CellMetrics
from services.mongodb import MongoDBService, CELL_METRICS_COLLECTION
from middleware.error_handler import MetricsUnavailableException

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class MetricsCollector:
    """Source of raw per-cell metrics."""

    source = "abstract"

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    def collect(self, org_id: str, cell_id: str) -> CellMetrics:
        """
        Return the metrics of one cell.

        Raises:
            MetricsUnavailableException: When the metrics cannot be retrieved in time
        """
        with tracer.start_as_current_span("metrics.collect") as span:
            span.set_attributes({
                "metrics.source": self.source,
                "organization.id": org_id,
                "cell.id": cell_id
            })
            try:
                metrics = self._fetch(org_id, cell_id)
            except MetricsUnavailableException as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                logger.warning(
                    "Cell metrics unavailable",
                    extra={
                        "organization_id": org_id,
                        "cell_id": cell_id,
                        "source": self.source,
                        "error": e.message
                    }
                )
                raise

            span.set_status(Status(StatusCode.OK))
            return metrics

    def _fetch(self, org_id: str, cell_id: str) -> CellMetrics:
        raise NotImplementedError


class MongoMetricsCollector(MetricsCollector):
    """Reads metrics maintained in the ``cell_metrics`` collection."""

    source = "mongodb"

    def __init__(self, mongodb_service: MongoDBService, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(timeout_seconds)
        self.mongodb_service = mongodb_service

    def _fetch(self, org_id: str, cell_id: str) -> CellMetrics:
        try:
            collection = self.mongodb_service.get_collection(CELL_METRICS_COLLECTION)
            document = collection.find_one(
                {"organizationId": org_id, "cellId": cell_id},
                max_time_ms=int(self.timeout_seconds * 1000)
            )
        except PyMongoError as e:
            raise MetricsUnavailableException(f"Failed to read metrics for cell {cell_id}: {e}", cell_id)

        if document is None:
            raise MetricsUnavailableException(f"No metrics recorded for cell {cell_id}", cell_id)

        document.pop("_id", None)
        try:
            return CellMetrics.model_validate(document)
        except ValidationError as e:
            raise MetricsUnavailableException(f"Malformed metrics for cell {cell_id}: {e}", cell_id)


class HttpMetricsCollector(MetricsCollector):
    """Fetches metrics from ``GET {base_url}/cells/{cell_id}/metrics``."""

    source = "http"

    def __init__(self, base_url: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
                 api_token: Optional[str] = None, session: Optional[requests.Session] = None):
        super().__init__(timeout_seconds)
        self.base_url = base_url.rstrip('/')
        self.api_token = api_token
        self.session = session or requests.Session()

    def _fetch(self, org_id: str, cell_id: str) -> CellMetrics:
        headers = {"Accept": "application/json", "X-Organization-Id": org_id}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        try:
            response = self.session.get(
                f"{self.base_url}/cells/{cell_id}/metrics",
                headers=headers,
                timeout=self.timeout_seconds
            )
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout:
            raise MetricsUnavailableException(
                f"Metrics request for cell {cell_id} timed out after {self.timeout_seconds}s", cell_id
            )
        except requests.RequestException as e:
            raise MetricsUnavailableException(f"Metrics request for cell {cell_id} failed: {e}", cell_id)
        except ValueError as e:
            raise MetricsUnavailableException(f"Metrics response for cell {cell_id} is not JSON: {e}", cell_id)

        if not isinstance(payload, dict):
            raise MetricsUnavailableException(f"Unexpected metrics payload for cell {cell_id}", cell_id)

        payload.setdefault("cellId", cell_id)
        try:
            return CellMetrics.model_validate(payload)
        except ValidationError as e:
            raise MetricsUnavailableException(f"Malformed metrics for cell {cell_id}: {e}", cell_id)


def create_metrics_collector(mongodb_service: MongoDBService) -> MetricsCollector:
    """Create the metrics collector selected by ``METRICS_SOURCE``."""
    source = os.getenv("METRICS_SOURCE", "mongodb").lower()
    timeout_seconds = float(os.getenv("METRICS_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))

    if source == "http":
        base_url = os.getenv("METRICS_API_URL")
        if not base_url:
            raise ValueError("METRICS_API_URL is required when METRICS_SOURCE=http")
        return HttpMetricsCollector(
            base_url,
            timeout_seconds=timeout_seconds,
            api_token=os.getenv("METRICS_API_TOKEN")
        )

    if source != "mongodb":
        raise ValueError(f"Unknown METRICS_SOURCE: {source}")

    return MongoMetricsCollector(mongodb_service, timeout_seconds=timeout_seconds)
