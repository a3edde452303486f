# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the cell metrics collectors.
"""

import pytest
import requests
from unittest.mock import Mock
from pymongo.errors import ExecutionTimeout

from services.metrics import (
    MongoMetricsCollector,
    HttpMetricsCollector,
    create_metrics_collector
)
from services.mongodb import CELL_METRICS_COLLECTION
from middleware.error_handler import MetricsUnavailableException

ORG_ID = "64b7f0c2a1b2c3d4e5f60718"
CELL_ID = "64b7f0c2a1b2c3d4e5f60719"


class TestMongoMetricsCollector:
    """Reads from the shared cell_metrics collection."""

    def setup_method(self):
        self.collection = Mock()
        self.mongodb_service = Mock()
        self.mongodb_service.get_collection.return_value = self.collection
        self.collector = MongoMetricsCollector(self.mongodb_service, timeout_seconds=2)

    def test_reads_camel_case_document(self):
        self.collection.find_one.return_value = {
            "_id": "x",
            "organizationId": ORG_ID,
            "cellId": CELL_ID,
            "memberCount": 14,
            "averageAttendancePct": 81.5,
            "multiplicationStarted": True
        }

        metrics = self.collector.collect(ORG_ID, CELL_ID)

        assert metrics.member_count == 14
        assert metrics.average_attendance_pct == 81.5
        assert metrics.multiplication_started is True
        assert metrics.growth_rate_pct is None
        self.mongodb_service.get_collection.assert_called_once_with(CELL_METRICS_COLLECTION)
        self.collection.find_one.assert_called_once_with(
            {"organizationId": ORG_ID, "cellId": CELL_ID}, max_time_ms=2000
        )

    def test_missing_document(self):
        self.collection.find_one.return_value = None

        with pytest.raises(MetricsUnavailableException) as exc_info:
            self.collector.collect(ORG_ID, CELL_ID)

        assert exc_info.value.cell_id == CELL_ID
        assert exc_info.value.status_code == 503

    def test_query_timeout(self):
        self.collection.find_one.side_effect = ExecutionTimeout("operation exceeded time limit")

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)

    def test_malformed_document(self):
        self.collection.find_one.return_value = {"cellId": CELL_ID, "memberCount": "many"}

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)


class TestHttpMetricsCollector:
    """Calls the cell-management API."""

    def setup_method(self):
        self.session = Mock(spec=requests.Session)
        self.collector = HttpMetricsCollector(
            "https://cells.example.org/api/",
            timeout_seconds=3,
            api_token="secret",
            session=self.session
        )

    def _response(self, payload=None, status_code=200):
        response = Mock()
        response.status_code = status_code
        response.json.return_value = payload
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
        return response

    def test_fetches_metrics(self):
        self.session.get.return_value = self._response({"memberCount": 9, "growthRatePct": 4})

        metrics = self.collector.collect(ORG_ID, CELL_ID)

        assert metrics.cell_id == CELL_ID
        assert metrics.member_count == 9
        assert metrics.growth_rate_pct == 4
        self.session.get.assert_called_once_with(
            f"https://cells.example.org/api/cells/{CELL_ID}/metrics",
            headers={
                "Accept": "application/json",
                "X-Organization-Id": ORG_ID,
                "Authorization": "Bearer secret"
            },
            timeout=3
        )

    def test_timeout(self):
        self.session.get.side_effect = requests.Timeout()

        with pytest.raises(MetricsUnavailableException) as exc_info:
            self.collector.collect(ORG_ID, CELL_ID)

        assert "timed out" in exc_info.value.message

    def test_connection_error(self):
        self.session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)

    def test_server_error(self):
        self.session.get.return_value = self._response(status_code=502)

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)

    def test_invalid_json(self):
        response = self._response()
        response.json.side_effect = ValueError("Expecting value")
        self.session.get.return_value = response

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)

    def test_unexpected_payload(self):
        self.session.get.return_value = self._response(["not", "an", "object"])

        with pytest.raises(MetricsUnavailableException):
            self.collector.collect(ORG_ID, CELL_ID)


class TestCreateMetricsCollector:
    """Collector selection from the environment."""

    def test_mongodb_is_default(self, monkeypatch):
        monkeypatch.delenv("METRICS_SOURCE", raising=False)
        monkeypatch.setenv("METRICS_TIMEOUT_SECONDS", "1.5")

        collector = create_metrics_collector(Mock())

        assert isinstance(collector, MongoMetricsCollector)
        assert collector.timeout_seconds == 1.5

    def test_http_requires_url(self, monkeypatch):
        monkeypatch.setenv("METRICS_SOURCE", "http")
        monkeypatch.delenv("METRICS_API_URL", raising=False)

        with pytest.raises(ValueError):
            create_metrics_collector(Mock())

    def test_http(self, monkeypatch):
        monkeypatch.setenv("METRICS_SOURCE", "http")
        monkeypatch.setenv("METRICS_API_URL", "https://cells.example.org/api")

        collector = create_metrics_collector(Mock())

        assert isinstance(collector, HttpMetricsCollector)
        assert collector.base_url == "https://cells.example.org/api"

    def test_unknown_source(self, monkeypatch):
        monkeypatch.setenv("METRICS_SOURCE", "spreadsheet")

        with pytest.raises(ValueError):
            create_metrics_collector(Mock())
