"""
Cognito access token validation.

Verifies client-credentials access tokens issued by the user pool hosted
domain against the pool's published JWKS.
"""

import os
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from aws_lambda_powertools import Logger

logger = Logger(child=True)

BEARER_PREFIX = "Bearer "


class TokenValidationError(Exception):
    """Raised when a token fails any verification step."""
    pass


def strip_bearer(token: Optional[str]) -> str:
    """Return the raw JWT, dropping an optional ``Bearer`` prefix."""
    if not token:
        return ""
    token = token.strip()
    if token[:len(BEARER_PREFIX)].lower() == BEARER_PREFIX.lower():
        token = token[len(BEARER_PREFIX):].strip()
    return token


class TokenValidator:
    """Validator bound to one user pool, app client and required scope."""

    def __init__(
        self,
        user_pool_id: Optional[str] = None,
        app_client_id: Optional[str] = None,
        required_scope: Optional[str] = None,
        region: Optional[str] = None,
        jwks_client: Optional[PyJWKClient] = None
    ):
        """
        Initialize the validator.

        Args:
            user_pool_id: Cognito user pool ID. Defaults to USER_POOL_ID env var.
            app_client_id: Expected client_id claim. Defaults to APP_CLIENT_ID env var.
            required_scope: Scope the token must carry. Defaults to REQUIRED_SCOPE env var.
            region: AWS region of the pool. Defaults to AWS_REGION env var.
            jwks_client: Pre-built JWKS client, mainly for tests.
        """
        self.user_pool_id = user_pool_id or os.environ.get("USER_POOL_ID", "")
        self.app_client_id = app_client_id or os.environ.get("APP_CLIENT_ID", "")
        self.required_scope = required_scope if required_scope is not None else os.environ.get("REQUIRED_SCOPE", "")
        self.region = region or os.environ.get("AWS_REGION", "us-east-1")

        self.issuer = f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"
        self.jwks_url = f"{self.issuer}/.well-known/jwks.json"
        self._jwks_client = jwks_client

    @property
    def jwks_client(self) -> PyJWKClient:
        # Created lazily so keys are fetched once per warm container
        if self._jwks_client is None:
            self._jwks_client = PyJWKClient(self.jwks_url)
        return self._jwks_client

    def validate(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Args:
            token: Encoded JWT, optionally prefixed with ``Bearer``.

        Returns:
            Decoded claims.

        Raises:
            TokenValidationError: If the token is missing, malformed, expired,
                signed by another issuer, or not granted to the expected client.
        """
        raw = strip_bearer(token)
        if not raw:
            raise TokenValidationError("Missing authorization token")

        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(raw)
            claims = jwt.decode(
                raw,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer,
                # Cognito access tokens carry client_id instead of aud
                options={"verify_aud": False, "require": ["exp", "iss", "token_use"]}
            )
        except jwt.PyJWTError as e:
            raise TokenValidationError(f"Token verification failed: {e}") from e

        if claims.get("token_use") != "access":
            raise TokenValidationError("Token is not an access token")

        if self.app_client_id and claims.get("client_id") != self.app_client_id:
            raise TokenValidationError("Token was issued to a different client")

        if self.required_scope:
            scope_claim = claims.get("scope", "")
            if not isinstance(scope_claim, str):
                raise TokenValidationError("Token scope claim is not a string")
            if self.required_scope not in scope_claim.split():
                raise TokenValidationError(f"Token lacks required scope {self.required_scope}")

        logger.debug("Token validated", extra={"client_id": claims.get("client_id")})
        return claims
