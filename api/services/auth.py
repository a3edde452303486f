# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token validation.

Tokens are issued by the surrounding cell-management application; this
service verifies their RS256 signature and can mint access tokens for local
development and tests.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when a token cannot be issued."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_dev_key_pair() -> Tuple[str, str]:
    """Generate an RSA key pair (private PEM, public PEM) for development use."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


class AuthService:
    """
    JWT authentication service with RS256 signing.

    Access tokens carry ``sub``, ``org_id``, ``permissions`` and, for
    supervisors, ``supervised_cell_ids``.
    """

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")

        if not public_key:
            # Both halves must come from the same pair or nothing validates
            logger.warning("No JWT_PUBLIC_KEY found, generating development key pair")
            private_key, public_key = generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.access_token_expire_minutes = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "15"))

    def generate_access_token(
        self,
        user_id: str,
        org_id: str,
        permissions: List[str],
        email: Optional[str] = None,
        name: Optional[str] = None,
        supervised_cell_ids: Optional[List[str]] = None,
        expires_in_minutes: Optional[int] = None
    ) -> str:
        """
        Sign an access token.

        Raises:
            AuthenticationError: If no private key is configured or signing fails
        """
        with tracer.start_as_current_span("auth.generate_access_token") as span:
            span.set_attributes({
                "auth.operation": "generate_access_token",
                "user.id": user_id,
                "organization.id": org_id
            })

            if not self.private_key:
                raise AuthenticationError("No private key configured for token signing")

            now = datetime.now(timezone.utc)
            minutes = self.access_token_expire_minutes if expires_in_minutes is None else expires_in_minutes

            payload: Dict[str, Any] = {
                "sub": user_id,
                "org_id": org_id,
                "email": email,
                "name": name,
                "permissions": permissions,
                "iat": now,
                "exp": now + timedelta(minutes=minutes),
                "type": "access"
            }
            if supervised_cell_ids is not None:
                payload["supervised_cell_ids"] = supervised_cell_ids

            try:
                token = jwt.encode(payload, self.private_key, algorithm=self.algorithm)
            except (ValueError, TypeError, jwt.PyJWTError) as e:
                span.set_attribute("auth.tokens_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate token: {str(e)}")

            span.set_attribute("auth.tokens_generated", "success")
            return token

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub", "exp"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            if not payload.get("org_id"):
                span.set_attribute("auth.validation_result", "missing_org")
                raise TokenValidationError("Token has no organization scope")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub"),
                "organization.id": payload.get("org_id")
            })

            logger.debug(
                "Token validated successfully",
                extra={
                    "user_id": payload.get("sub"),
                    "organization_id": payload.get("org_id"),
                    "token_type": token_type
                }
            )

            return payload
