# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

CLIENT_ERRORS = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
    422: ("validation-error", "Validation Error"),
}


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, base_url: str):
        self.app = app
        self.hal_formatter = HalFormatter(base_url)
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            if error.code in CLIENT_ERRORS:
                error_type, title = CLIENT_ERRORS[error.code]
                body, status = self.handle_client_error(error, error_type, title)
            elif error.code is not None and error.code < 500:
                body, status = self.handle_client_error(error, "client-error", error.name)
            else:
                body, status = self.handle_server_error(error, "server-error", error.name)
            return jsonify(body), status

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            body, status = self.handle_unexpected_error(error)
            return jsonify(body), status

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle client errors (4xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.client_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.warning(
                f"Client error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method,
                    "user_agent": request.headers.get('User-Agent'),
                    "ip_address": request.remote_addr
                }
            )

            if error_type == "authentication-required":
                error_response = self.hal_formatter.format_authentication_error(detail, request.path)
            elif error_type == "insufficient-permissions":
                error_response = self.hal_formatter.format_authorization_error(detail, request.path)
            elif error_type == "resource-not-found":
                error_response = self.hal_formatter.format_not_found_error(detail, request.path)
            elif error_type == "resource-conflict":
                error_response = self.hal_formatter.format_conflict_error(detail, request.path)
            else:
                error_response = self.hal_formatter.builder.build_error_response(
                    error_type,
                    title,
                    error.code,
                    detail,
                    request.path
                )

            return error_response, error.code

    def handle_server_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle server errors (5xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.server_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.error(
                f"Server error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details in production
            if self.app.config.get('ENVIRONMENT') == 'production':
                detail = "An internal server error occurred"

            error_response = self.hal_formatter.builder.build_error_response(
                error_type,
                title,
                error.code,
                detail,
                request.path
            )

            return error_response, error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            # Don't expose internal error details
            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            error_response = self.hal_formatter.format_server_error(detail, request.path)

            return error_response, 500


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for resource conflict errors."""

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class NoCriteriaConfiguredException(CustomException):
    """The organization has no active criteria to evaluate against."""

    def __init__(self, message: str = "No active multiplication criteria configured"):
        super().__init__(message, 422, "no-criteria-configured")


class ServiceUnavailableException(CustomException):
    """Exception for service unavailable errors."""

    def __init__(self, message: str, error_type: str = "service-unavailable"):
        super().__init__(message, 503, error_type)


class MetricsUnavailableException(ServiceUnavailableException):
    """Cell metrics could not be retrieved in time."""

    def __init__(self, message: str, cell_id: str = None):
        super().__init__(message, "metrics-unavailable")
        self.cell_id = cell_id


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, ValidationException):
                error_response = hal_formatter.format_validation_error(
                    error.message,
                    request.path,
                    error.validation_errors
                )
            elif isinstance(error, AuthenticationException):
                error_response = hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                error_response = hal_formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                error_response = hal_formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, ConflictException):
                error_response = hal_formatter.format_conflict_error(error.message, request.path)
            elif isinstance(error, NoCriteriaConfiguredException):
                error_response = hal_formatter.format_no_criteria_error(error.message, request.path)
            elif isinstance(error, ServiceUnavailableException):
                error_response = hal_formatter.format_service_unavailable_error(
                    error.message, request.path, error.error_type
                )
            else:
                error_response = hal_formatter.format_server_error(error.message, request.path)

            return jsonify(error_response), error.status_code
