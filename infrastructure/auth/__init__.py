"""
Infrastructure constructs for OAuth client-credentials authentication.

This module provides the Cognito user pool, hosted domain and machine client
used by EventBridge to obtain access tokens for the GraphQL API.
"""

from infrastructure.auth.constructs import AuthConstruct

__all__ = [
    "AuthConstruct",
]
