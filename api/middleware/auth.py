# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask decorators that validate bearer tokens, build the
user context for request processing and enforce route permissions.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from models.entities import UserContext
from services.auth import AuthService, TokenValidationError
from middleware.error_handler import AuthenticationException, AuthorizationException
from domain.authorization import check_permission

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, auth_service: AuthService):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
        """
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext object for request processing
        """
        return UserContext(
            user_id=token_payload["sub"],
            org_id=token_payload["org_id"],
            email=token_payload.get("email"),
            name=token_payload.get("name"),
            permissions=token_payload.get("permissions", []),
            supervised_cell_ids=token_payload.get("supervised_cell_ids"),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for user context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "request_id": request.headers.get('X-Request-ID')
        }

    def authenticate(self) -> UserContext:
        """
        Authenticate the current request.

        Raises:
            AuthenticationException: If the token is missing or invalid
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            try:
                token_payload = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e))

            user_context = self.build_user_context(token_payload, self.get_request_info())

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "organization.id": user_context.org_id
            })

            logger.debug(
                "Authentication successful",
                extra={
                    "user_id": user_context.user_id,
                    "organization_id": user_context.org_id,
                    "ip_address": user_context.ip_address
                }
            )

            return user_context


def require_auth(f: Callable) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    The wrapped view receives the ``UserContext`` as first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware: AuthMiddleware = current_app.auth_middleware
        user_context = auth_middleware.authenticate()
        g.user_context = user_context
        return f(user_context, *args, **kwargs)

    return decorated_function


def require_permission(permission: str) -> Callable:
    """
    Decorator to require a specific permission for Flask routes.

    Args:
        permission: Required permission string

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(user_context: UserContext, *args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.check_permission") as span:
                span.set_attributes({
                    "auth.operation": "check_permission",
                    "auth.required_permission": permission,
                    "user.id": user_context.user_id,
                    "organization.id": user_context.org_id
                })

                result = check_permission(user_context, permission)
                if not result.allowed:
                    span.set_attribute("auth.permission_result", "denied")
                    logger.warning(
                        f"Authorization failed: missing permission '{permission}'",
                        extra={
                            "user_id": user_context.user_id,
                            "organization_id": user_context.org_id,
                            "required_permission": permission
                        }
                    )
                    raise AuthorizationException(result.reason)

                span.set_attribute("auth.permission_result", "granted")

            return f(user_context, *args, **kwargs)

        return decorated_function
    return decorator
