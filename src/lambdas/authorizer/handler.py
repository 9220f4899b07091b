"""
AppSync Lambda Authorizer.

Authorizes GraphQL requests carrying a Cognito client-credentials access token,
which is how the EventBridge API destination calls the API. Every request ends
in an allow or deny decision; the handler itself never raises.
"""

import os
from typing import Any, Dict
from aws_lambda_powertools import Logger, Tracer, Metrics
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from token_validator import TokenValidator, TokenValidationError

# Initialize AWS Lambda Powertools
logger = Logger()
tracer = Tracer()
metrics = Metrics()

ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")
RESULT_TTL_SECONDS = int(os.environ.get("AUTHORIZER_RESULT_TTL_SECONDS", "0"))

_validator = None


def get_validator() -> TokenValidator:
    """Get or create the module-level validator."""
    global _validator
    if _validator is None:
        _validator = TokenValidator()
    return _validator


def deny_response() -> Dict[str, Any]:
    """Build a deny decision that AppSync must not cache."""
    return {
        "isAuthorized": False,
        "resolverContext": {},
        "deniedFields": [],
        "ttlOverride": 0
    }


def allow_response(claims: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build an allow decision.

    Args:
        claims: Verified token claims

    Returns:
        Authorizer response; resolverContext is visible to resolvers as
        ``$ctx.identity.resolverContext``.
    """
    return {
        "isAuthorized": True,
        "resolverContext": {
            "clientId": str(claims.get("client_id", "")),
            "scope": str(claims.get("scope", "")),
            "sub": str(claims.get("sub", ""))
        },
        "deniedFields": [],
        "ttlOverride": RESULT_TTL_SECONDS
    }


@tracer.capture_method
def authorize(token: str, request_context: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decide whether a request may proceed.

    Args:
        token: Value of the Authorization header
        request_context: AppSync request context (apiId, operationName, ...)

    Returns:
        AppSync Lambda authorizer response
    """
    log_context = {
        "api_id": request_context.get("apiId"),
        "operation_name": request_context.get("operationName"),
        "request_id": request_context.get("requestId")
    }

    try:
        claims = get_validator().validate(token)
    except TokenValidationError as e:
        logger.warning("Request denied", extra={**log_context, "reason": str(e)})
        metrics.add_metric(name="DeniedRequests", unit=MetricUnit.Count, value=1)
        return deny_response()

    logger.info(
        "Request authorized",
        extra={**log_context, "client_id": claims.get("client_id")}
    )
    metrics.add_metric(name="AuthorizedRequests", unit=MetricUnit.Count, value=1)
    return allow_response(claims)


@logger.inject_lambda_context
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Main Lambda handler for AppSync authorization requests.

    Args:
        event: AppSync authorizer event
        context: Lambda context

    Returns:
        Authorization decision
    """
    metrics.add_dimension(name="Environment", value=ENVIRONMENT)

    try:
        return authorize(
            event.get("authorizationToken", ""),
            event.get("requestContext") or {}
        )
    except Exception as e:
        logger.exception("Unexpected authorizer failure", extra={"error": str(e)})
        metrics.add_metric(name="DeniedRequests", unit=MetricUnit.Count, value=1)
        return deny_response()
