# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware functionality.
"""

import pytest
from unittest.mock import Mock
from flask import Flask, jsonify, g
from werkzeug.exceptions import NotFound

from middleware.validation import ValidationMiddleware, validate_model
from middleware.error_handler import (
    ErrorHandlerMiddleware, register_custom_error_handlers, CustomException,
    ValidationException, AuthenticationException, AuthorizationException,
    NotFoundException, ConflictException, NoCriteriaConfiguredException,
    MetricsUnavailableException
)
from middleware.auth import AuthMiddleware, require_auth, require_permission
from models.requests import ReadinessFilters, DashboardFilters, CreateCriterionRequest
from services.auth import TokenValidationError
from services.hal import HalFormatter
from domain.authorization import READ_READINESS, EVALUATE_READINESS

BASE_URL = "https://api.example.com"
PROBLEMS = "https://api.celulas.app/problems"


class TestValidationMiddleware:
    """Test validation middleware functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.app = Flask(__name__)
        self.validation_middleware = ValidationMiddleware()

    def test_parse_query_params(self):
        with self.app.test_request_context('/?status=ready&min_score=50&page=2'):
            filters = self.validation_middleware.parse_query_params(ReadinessFilters)

        assert filters.status == "ready"
        assert filters.min_score == 50
        assert filters.page == 2
        assert filters.cell_ids is None

    def test_cell_ids_accept_commas_and_repeats(self):
        with self.app.test_request_context('/?cell_ids=a,b&cell_ids=c&cell_ids=,'):
            filters = self.validation_middleware.parse_query_params(DashboardFilters)

        assert filters.cell_ids == ["a", "b", "c"]

    def test_invalid_query_params(self):
        with self.app.test_request_context('/?page_size=500'):
            with pytest.raises(ValidationException) as exc_info:
                self.validation_middleware.parse_query_params(ReadinessFilters)

        assert exc_info.value.validation_errors[0]["field"] == "page_size"

    def test_get_json_body(self):
        with self.app.test_request_context('/', method='POST', json={"weight": 0.5}):
            assert self.validation_middleware.get_json_body() == {"weight": 0.5}

    @pytest.mark.parametrize("kwargs", [
        {"data": "weight=0.5"},
        {"json": ["not", "an", "object"]},
    ])
    def test_get_json_body_rejects_non_objects(self, kwargs):
        with self.app.test_request_context('/', method='POST', **kwargs):
            with pytest.raises(ValidationException) as exc_info:
                self.validation_middleware.get_json_body()

        assert exc_info.value.validation_errors[0]["field"] == "body"

    def test_validate_model_formats_errors(self):
        with pytest.raises(ValidationException) as exc_info:
            validate_model(CreateCriterionRequest, {"name": "x", "criteria_type": "member_count"}, "Criterion")

        fields = {error["field"] for error in exc_info.value.validation_errors}
        assert fields == {"threshold_value", "weight"}


class TestAuthMiddleware:
    """Test token extraction and the auth decorators."""

    def setup_method(self):
        self.auth_service = Mock()
        self.app = Flask(__name__)
        self.app.auth_middleware = AuthMiddleware(self.auth_service)
        register_custom_error_handlers(self.app, HalFormatter(BASE_URL))

        @self.app.route('/protected')
        @require_auth
        def protected(user_context):
            return jsonify({"user": user_context.user_id, "org": g.user_context.org_id})

        @self.app.route('/evaluate')
        @require_permission(EVALUATE_READINESS)
        def evaluate(user_context):
            return jsonify({"ok": True})

        self.client = self.app.test_client()

    def _payload(self, permissions):
        return {
            "sub": "user-1",
            "org_id": "org-1",
            "permissions": permissions,
            "supervised_cell_ids": ["cell-1"]
        }

    def test_extract_token(self):
        middleware = AuthMiddleware(self.auth_service)

        with self.app.test_request_context('/', headers={"Authorization": "Bearer abc"}):
            assert middleware.extract_token_from_request() == "abc"
        with self.app.test_request_context('/'):
            assert middleware.extract_token_from_request() is None

    def test_build_user_context(self):
        middleware = AuthMiddleware(self.auth_service)

        context = middleware.build_user_context(self._payload([READ_READINESS]), {"ip_address": "10.0.0.1"})

        assert context.user_id == "user-1"
        assert context.org_id == "org-1"
        assert context.supervised_cell_ids == ["cell-1"]
        assert context.ip_address == "10.0.0.1"

    def test_missing_token(self):
        response = self.client.get('/protected')

        assert response.status_code == 401
        assert response.get_json()["type"] == f"{PROBLEMS}/authentication-required"

    def test_invalid_token(self):
        self.auth_service.validate_token.side_effect = TokenValidationError("Token has expired")

        response = self.client.get('/protected', headers={"Authorization": "Bearer old"})

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Token has expired"

    def test_valid_token(self):
        self.auth_service.validate_token.return_value = self._payload([READ_READINESS])

        response = self.client.get('/protected', headers={"Authorization": "Bearer good"})

        assert response.status_code == 200
        assert response.get_json() == {"user": "user-1", "org": "org-1"}
        self.auth_service.validate_token.assert_called_once_with("good", "access")

    def test_permission_denied(self):
        self.auth_service.validate_token.return_value = self._payload([READ_READINESS])

        response = self.client.get('/evaluate', headers={"Authorization": "Bearer good"})

        assert response.status_code == 403
        assert EVALUATE_READINESS in response.get_json()["detail"]

    def test_permission_granted(self):
        self.auth_service.validate_token.return_value = self._payload([EVALUATE_READINESS])

        response = self.client.get('/evaluate', headers={"Authorization": "Bearer good"})

        assert response.status_code == 200


class TestErrorHandlerMiddleware:
    """Test error handler middleware functionality."""

    def setup_method(self):
        self.app = Flask(__name__)
        ErrorHandlerMiddleware(self.app, BASE_URL)
        register_custom_error_handlers(self.app, HalFormatter(BASE_URL))

        errors = {
            "validation": ValidationException("Bad input", [{"field": "weight", "message": "x", "type": "y"}]),
            "authentication": AuthenticationException("No token"),
            "authorization": AuthorizationException("No permission"),
            "not-found": NotFoundException("Criterion missing"),
            "conflict": ConflictException("Duplicate"),
            "no-criteria": NoCriteriaConfiguredException(),
            "metrics": MetricsUnavailableException("Metrics timed out", "cell-1"),
            "custom": CustomException("Teapot", 500),
        }

        @self.app.route('/raise/<name>')
        def raise_error(name):
            raise errors[name]

        @self.app.route('/missing')
        def missing():
            raise NotFound("Nothing here")

        @self.app.route('/boom')
        def boom():
            raise RuntimeError("kaboom")

        self.client = self.app.test_client()

    @pytest.mark.parametrize("name,status,error_type", [
        ("validation", 400, "validation-error"),
        ("authentication", 401, "authentication-required"),
        ("authorization", 403, "insufficient-permissions"),
        ("not-found", 404, "resource-not-found"),
        ("conflict", 409, "resource-conflict"),
        ("no-criteria", 422, "no-criteria-configured"),
        ("metrics", 503, "metrics-unavailable"),
        ("custom", 500, "internal-server-error"),
    ])
    def test_custom_exceptions(self, name, status, error_type):
        response = self.client.get(f'/raise/{name}')

        assert response.status_code == status
        data = response.get_json()
        assert data["type"] == f"{PROBLEMS}/{error_type}"
        assert data["status"] == status
        assert data["instance"] == f"/raise/{name}"

    def test_http_exception(self):
        response = self.client.get('/missing')

        assert response.status_code == 404
        assert response.get_json()["detail"] == "Nothing here"

    def test_unexpected_error_detail_outside_production(self):
        response = self.client.get('/boom')

        assert response.status_code == 500
        assert response.get_json()["detail"] == "RuntimeError: kaboom"

    def test_unexpected_error_hidden_in_production(self):
        self.app.config['ENVIRONMENT'] = 'production'

        response = self.client.get('/boom')

        assert response.status_code == 500
        assert response.get_json()["detail"] == "An unexpected error occurred"
