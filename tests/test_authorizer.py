"""
Unit tests for the AppSync Lambda authorizer.

Tests token verification against the user pool keys, claim checks, and the
allow/deny responses returned to AppSync.
"""

import time
import jwt
import pytest
from unittest.mock import MagicMock

# Import the handler module
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src', 'lambdas', 'authorizer'))

import handler
from handler import lambda_handler, authorize, allow_response, deny_response
from token_validator import TokenValidator, TokenValidationError, strip_bearer

from conftest import TEST_CLIENT_ID, TEST_ISSUER, TEST_REGION, TEST_SCOPE, TEST_USER_POOL_ID


@pytest.fixture
def jwks_client(rsa_private_key):
    """JWKS client returning the test public key."""
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = MagicMock(key=rsa_private_key.public_key())
    return client


@pytest.fixture
def validator(jwks_client):
    return TokenValidator(
        user_pool_id=TEST_USER_POOL_ID,
        app_client_id=TEST_CLIENT_ID,
        required_scope=TEST_SCOPE,
        region=TEST_REGION,
        jwks_client=jwks_client
    )


@pytest.fixture
def patched_validator(monkeypatch, validator):
    monkeypatch.setattr(handler, "_validator", validator)
    return validator


def authorizer_event(token):
    return {
        "authorizationToken": token,
        "requestContext": {
            "apiId": "abcdefghijklmnopqrstuvwxyz",
            "accountId": "123456789012",
            "requestId": "b3a1d7e4-0000-4000-8000-000000000000",
            "queryString": "mutation UpdateTodo($id:ID!) { updateTodo(id:$id) { id } }",
            "operationName": "UpdateTodo",
            "variables": {"id": "42"}
        }
    }


class TestStripBearer:
    """Test Authorization header normalization."""

    def test_strips_prefix(self):
        assert strip_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_prefix_is_case_insensitive(self):
        assert strip_bearer("bearer abc.def.ghi") == "abc.def.ghi"

    def test_raw_token_unchanged(self):
        assert strip_bearer("abc.def.ghi") == "abc.def.ghi"

    def test_empty_values(self):
        assert strip_bearer(None) == ""
        assert strip_bearer("   ") == ""


class TestTokenValidator:
    """Test access token verification."""

    def test_issuer_and_jwks_url(self, validator):
        assert validator.issuer == TEST_ISSUER
        assert validator.jwks_url == f"{TEST_ISSUER}/.well-known/jwks.json"

    def test_reads_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("USER_POOL_ID", "eu-west-1_Pool")
        monkeypatch.setenv("APP_CLIENT_ID", "env-client")
        monkeypatch.setenv("REQUIRED_SCOPE", "todos/update")
        monkeypatch.setenv("AWS_REGION", "eu-west-1")

        validator = TokenValidator()

        assert validator.app_client_id == "env-client"
        assert validator.required_scope == "todos/update"
        assert validator.issuer == "https://cognito-idp.eu-west-1.amazonaws.com/eu-west-1_Pool"

    def test_valid_access_token(self, validator, make_token, access_token_claims):
        claims = validator.validate(make_token(access_token_claims))

        assert claims["client_id"] == TEST_CLIENT_ID
        assert claims["scope"] == TEST_SCOPE

    def test_valid_token_with_bearer_prefix(self, validator, make_token, access_token_claims):
        claims = validator.validate(f"Bearer {make_token(access_token_claims)}")
        assert claims["token_use"] == "access"

    def test_scope_among_several(self, validator, make_token, access_token_claims):
        access_token_claims["scope"] = "todos/read todos/update"
        assert validator.validate(make_token(access_token_claims))

    def test_missing_token(self, validator):
        with pytest.raises(TokenValidationError, match="Missing"):
            validator.validate("")

    def test_malformed_token(self, validator, jwks_client):
        jwks_client.get_signing_key_from_jwt.side_effect = jwt.DecodeError("bad token")
        with pytest.raises(TokenValidationError):
            validator.validate("not-a-jwt")

    def test_expired_token(self, validator, make_token, access_token_claims):
        access_token_claims["exp"] = int(time.time()) - 60
        with pytest.raises(TokenValidationError, match="verification failed"):
            validator.validate(make_token(access_token_claims))

    def test_wrong_signing_key(self, validator, make_token, access_token_claims, other_private_key):
        token = make_token(access_token_claims, key=other_private_key)
        with pytest.raises(TokenValidationError, match="verification failed"):
            validator.validate(token)

    def test_wrong_issuer(self, validator, make_token, access_token_claims):
        access_token_claims["iss"] = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_Other"
        with pytest.raises(TokenValidationError):
            validator.validate(make_token(access_token_claims))

    def test_id_token_rejected(self, validator, make_token, access_token_claims):
        access_token_claims["token_use"] = "id"
        with pytest.raises(TokenValidationError, match="not an access token"):
            validator.validate(make_token(access_token_claims))

    def test_other_client_rejected(self, validator, make_token, access_token_claims):
        access_token_claims["client_id"] = "someone-else"
        with pytest.raises(TokenValidationError, match="different client"):
            validator.validate(make_token(access_token_claims))

    def test_missing_scope_rejected(self, validator, make_token, access_token_claims):
        access_token_claims["scope"] = "todos/read"
        with pytest.raises(TokenValidationError, match="required scope"):
            validator.validate(make_token(access_token_claims))

    def test_scope_prefix_is_not_enough(self, validator, make_token, access_token_claims):
        access_token_claims["scope"] = "todos/update-all"
        with pytest.raises(TokenValidationError):
            validator.validate(make_token(access_token_claims))

    @pytest.mark.parametrize("scope", [None, ["todos/update"], 42])
    def test_non_string_scope_rejected(self, validator, make_token, access_token_claims, scope):
        access_token_claims["scope"] = scope
        with pytest.raises(TokenValidationError, match="not a string"):
            validator.validate(make_token(access_token_claims))


class TestAuthorizerResponses:
    """Test response shapes returned to AppSync."""

    def test_deny_response(self):
        response = deny_response()
        assert response["isAuthorized"] is False
        assert response["ttlOverride"] == 0
        assert response["deniedFields"] == []

    def test_allow_response_carries_identity(self, access_token_claims):
        response = allow_response(access_token_claims)

        assert response["isAuthorized"] is True
        assert response["resolverContext"] == {
            "clientId": TEST_CLIENT_ID,
            "scope": TEST_SCOPE,
            "sub": TEST_CLIENT_ID
        }
        # resolverContext values must be strings
        assert all(isinstance(v, str) for v in response["resolverContext"].values())


class TestLambdaHandler:
    """Test the handler end to end with a stubbed key set."""

    def test_authorizes_valid_token(self, patched_validator, make_token, access_token_claims, lambda_context):
        event = authorizer_event(make_token(access_token_claims))

        response = lambda_handler(event, lambda_context)

        assert response["isAuthorized"] is True
        assert response["resolverContext"]["clientId"] == TEST_CLIENT_ID

    def test_denies_invalid_token(self, patched_validator, make_token, access_token_claims, lambda_context):
        access_token_claims["client_id"] = "intruder"
        event = authorizer_event(make_token(access_token_claims))

        response = lambda_handler(event, lambda_context)

        assert response == deny_response()

    def test_denies_missing_token(self, patched_validator, lambda_context):
        response = lambda_handler({"requestContext": {}}, lambda_context)
        assert response["isAuthorized"] is False

    def test_unexpected_error_denies(self, monkeypatch, lambda_context):
        broken = MagicMock()
        broken.validate.side_effect = RuntimeError("JWKS endpoint unreachable")
        monkeypatch.setattr(handler, "_validator", broken)

        response = lambda_handler(authorizer_event("Bearer token"), lambda_context)

        assert response["isAuthorized"] is False

    def test_authorize_without_request_context(self, patched_validator, make_token, access_token_claims):
        response = authorize(make_token(access_token_claims), {})
        assert response["isAuthorized"] is True
