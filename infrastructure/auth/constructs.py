"""
CDK Constructs for Cognito OAuth authentication.

The user pool here has no human users. It exists to issue client-credentials
access tokens to the EventBridge connection, which presents them to AppSync
where the Lambda authorizer verifies them.
"""

from aws_cdk import (
    RemovalPolicy,
    SecretValue,
    aws_cognito as cognito,
)
from constructs import Construct


class AuthConstruct(Construct):
    """
    CDK Construct for the token issuer.

    Provides:
    - Cognito User Pool with a hosted domain
    - Resource server declaring the API scope
    - App client restricted to the client credentials grant
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        auth_domain_prefix: str,
        env_name: str,
        resource_server_identifier: str = "todos",
        scope_name: str = "update",
        **kwargs
    ) -> None:
        """
        Initialize the auth construct.

        Args:
            scope: CDK scope.
            construct_id: Construct ID.
            auth_domain_prefix: Globally unique Cognito domain prefix.
            env_name: Environment name (dev, staging, production).
            resource_server_identifier: Identifier of the OAuth resource server.
            scope_name: Scope granted to the destination client.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.resource_server_identifier = resource_server_identifier

        self.user_pool = self._create_user_pool()
        self.domain = self._create_domain(auth_domain_prefix)

        self.api_scope = cognito.ResourceServerScope(
            scope_name=scope_name,
            scope_description="Update todos through the GraphQL API"
        )
        self.resource_server = self.user_pool.add_resource_server(
            "ResourceServer",
            identifier=resource_server_identifier,
            scopes=[self.api_scope]
        )

        self.destination_client = self._create_destination_client()

    def _create_user_pool(self) -> cognito.UserPool:
        """Create User Pool used only as a token issuer."""
        return cognito.UserPool(
            self,
            "UserPool",
            user_pool_name=f"todos-auth-{self.env_name}",
            self_sign_up_enabled=False,
            account_recovery=cognito.AccountRecovery.NONE,
            removal_policy=RemovalPolicy.DESTROY if self.env_name == "dev" else RemovalPolicy.RETAIN
        )

    def _create_domain(self, domain_prefix: str) -> cognito.UserPoolDomain:
        """Create hosted domain serving the OAuth token endpoint."""
        return self.user_pool.add_domain(
            "Domain",
            cognito_domain=cognito.CognitoDomainOptions(
                domain_prefix=domain_prefix
            )
        )

    def _create_destination_client(self) -> cognito.UserPoolClient:
        """Create the confidential client EventBridge authenticates as."""
        return self.user_pool.add_client(
            "DestinationClient",
            user_pool_client_name=f"todos-destination-{self.env_name}",
            generate_secret=True,
            o_auth=cognito.OAuthSettings(
                flows=cognito.OAuthFlows(
                    client_credentials=True
                ),
                scopes=[
                    cognito.OAuthScope.resource_server(self.resource_server, self.api_scope)
                ]
            ),
            prevent_user_existence_errors=True
        )

    @property
    def user_pool_id(self) -> str:
        return self.user_pool.user_pool_id

    @property
    def destination_client_id(self) -> str:
        return self.destination_client.user_pool_client_id

    @property
    def destination_client_secret(self) -> SecretValue:
        return self.destination_client.user_pool_client_secret

    @property
    def auth_endpoint(self) -> str:
        """Base URL of the hosted domain."""
        return self.domain.base_url()

    @property
    def token_endpoint(self) -> str:
        return f"{self.auth_endpoint}/oauth2/token"

    @property
    def required_scope(self) -> str:
        return f"{self.resource_server_identifier}/{self.api_scope.scope_name}"
