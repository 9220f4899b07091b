"""
Pytest configuration and fixtures for Todos EventBridge tests.
"""

import pytest
import os
import time
from dataclasses import dataclass

import boto3
import jwt
from moto import mock_aws
from cryptography.hazmat.primitives.asymmetric import rsa

# Powertools settings must exist before handler modules are imported
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "todos-authorizer")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "TodosEventBridge/test")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

TEST_REGION = "us-east-1"
TEST_USER_POOL_ID = "us-east-1_TestPool"
TEST_CLIENT_ID = "destination-client-id"
TEST_SCOPE = "todos/update"
TEST_ISSUER = f"https://cognito-idp.{TEST_REGION}.amazonaws.com/{TEST_USER_POOL_ID}"


@pytest.fixture(scope="session")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = TEST_REGION


@pytest.fixture
def mock_aws_services(aws_credentials):
    """Mock AWS services for testing."""
    with mock_aws():
        yield


@pytest.fixture
def events_client(mock_aws_services):
    """EventBridge client for testing."""
    return boto3.client("events", region_name=TEST_REGION)


@pytest.fixture
def todos_bus(events_client):
    """Create the todos event bus."""
    events_client.create_event_bus(Name="todos")
    return "todos"


@dataclass
class FakeLambdaContext:
    function_name: str = "todos-authorizer-test"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:todos-authorizer-test"
    aws_request_id: str = "c6af9ac6-7b61-11e6-9a41-93e812345678"


@pytest.fixture
def lambda_context():
    """Minimal Lambda context accepted by Powertools decorators."""
    return FakeLambdaContext()


@pytest.fixture(scope="session")
def rsa_private_key():
    """RSA key standing in for the user pool signing key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    """A key the user pool never published."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def access_token_claims():
    """Claims of a client-credentials access token from Cognito."""
    now = int(time.time())
    return {
        "sub": TEST_CLIENT_ID,
        "token_use": "access",
        "scope": TEST_SCOPE,
        "auth_time": now,
        "iss": TEST_ISSUER,
        "exp": now + 3600,
        "iat": now,
        "version": 2,
        "jti": "6a1ef2a5-5f0e-4ab5-9f3e-2f3c7b1d9e10",
        "client_id": TEST_CLIENT_ID,
    }


@pytest.fixture
def make_token(rsa_private_key):
    """Factory signing claims with the test key."""
    def _make(claims, key=None):
        return jwt.encode(
            claims,
            key or rsa_private_key,
            algorithm="RS256",
            headers={"kid": "test-key"}
        )
    return _make
