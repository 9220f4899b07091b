"""
Main CDK stack for the Todos EventBridge integration.

This stack routes ``todos update`` events from a custom EventBridge bus to an
AppSync GraphQL API through an OAuth-secured API destination. EventBridge
obtains client-credentials tokens from a Cognito hosted domain; AppSync hands
them to a Lambda authorizer for verification.
"""

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    CfnOutput,
    CfnParameter,
    BundlingOptions,
    aws_lambda as lambda_,
    aws_appsync as appsync,
    aws_iam as iam,
    aws_logs as logs,
    aws_ssm as ssm,
    aws_sqs as sqs,
    aws_events as events,
)
from constructs import Construct
import os

from infrastructure.config.environment_config import EnvironmentConfig
from infrastructure.auth import AuthConstruct
from infrastructure.events.input_template import INPUT_PATHS_MAP, build_input_template
from infrastructure.monitoring.monitoring_construct import MonitoringConstruct

INFRASTRUCTURE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PROJECT_ROOT = os.path.dirname(INFRASTRUCTURE_DIR)
AUTHORIZER_CODE_DIR = os.path.join(PROJECT_ROOT, "src", "lambdas", "authorizer")


class TodosEventBridgeStack(Stack):
    """Main CDK stack for the EventBridge to AppSync integration."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: EnvironmentConfig,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config
        self.env_name = config.environment_name

        # Deploy-time parameter: Cognito domain prefixes are globally unique
        self.auth_domain_parameter = self._create_auth_domain_parameter()

        # Create OAuth token issuer
        self.auth = AuthConstruct(
            self,
            "Auth",
            auth_domain_prefix=self.auth_domain_parameter.value_as_string,
            env_name=self.env_name,
            resource_server_identifier=config.resource_server_identifier,
            scope_name=config.resource_server_scope
        )

        # Create Parameter Store parameters
        self._create_parameter_store_config()

        # Create Lambda authorizer
        self.authorizer_function = self._create_authorizer_function()

        # Create AppSync GraphQL API
        self._create_appsync_api()

        # Set up EventBridge routing to the API
        self._create_eventbridge_infrastructure()

        # Create monitoring and observability infrastructure
        self._create_monitoring_infrastructure()

        # Create stack outputs
        self._create_outputs()

    def _create_auth_domain_parameter(self) -> CfnParameter:
        """Create the parameter carrying the Cognito domain prefix."""
        parameter_kwargs = {}
        if self.config.auth_domain_prefix:
            parameter_kwargs["default"] = self.config.auth_domain_prefix

        return CfnParameter(
            self,
            "authDomainName",
            type="String",
            description="Unique domain name for auth",
            **parameter_kwargs
        )

    def _create_parameter_store_config(self) -> None:
        """Create Parameter Store parameters for configuration."""
        for key, value in self.config.to_dict().items():
            ssm.StringParameter(
                self,
                f"Config{key.replace('_', '').title()}",
                parameter_name=f"/todos-eventbridge/{self.env_name}/{key}",
                string_value=str(value),
                description=f"Todos EventBridge {key} configuration for {self.env_name}"
            )

    def _create_authorizer_function(self) -> lambda_.Function:
        """Create the AppSync Lambda authorizer with its log group."""
        function_name = f"todos-authorizer-{self.env_name}"

        log_group = logs.LogGroup(
            self,
            "AuthorizerLogGroup",
            log_group_name=f"/aws/lambda/{function_name}",
            retention=self._get_log_retention(self.config.log_retention_days),
            removal_policy=RemovalPolicy.DESTROY
        )

        runtime = lambda_.Runtime.PYTHON_3_12

        return lambda_.Function(
            self,
            "AuthorizerFunction",
            function_name=function_name,
            runtime=runtime,
            handler="handler.lambda_handler",
            code=lambda_.Code.from_asset(
                AUTHORIZER_CODE_DIR,
                bundling=BundlingOptions(
                    image=runtime.bundling_image,
                    command=[
                        "bash", "-c",
                        "pip install -r requirements.txt -t /asset-output && cp -au . /asset-output"
                    ]
                )
            ),
            timeout=Duration.seconds(self.config.lambda_timeout_seconds),
            memory_size=self.config.lambda_memory_mb,
            log_group=log_group,
            environment={
                "ENVIRONMENT": self.env_name,
                "USER_POOL_ID": self.auth.user_pool_id,
                "APP_CLIENT_ID": self.auth.destination_client_id,
                "REQUIRED_SCOPE": self.auth.required_scope,
                "AUTHORIZER_RESULT_TTL_SECONDS": str(self.config.authorizer_result_ttl_seconds),
                "LOG_LEVEL": "DEBUG" if self.env_name == "dev" else "INFO",
                "POWERTOOLS_SERVICE_NAME": "todos-authorizer",
                "POWERTOOLS_METRICS_NAMESPACE": self.metrics_namespace,
            },
            tracing=lambda_.Tracing.ACTIVE if self.config.enable_xray_tracing else lambda_.Tracing.DISABLED,
        )

    @property
    def metrics_namespace(self) -> str:
        return f"TodosEventBridge/{self.env_name}"

    def _get_field_log_level(self) -> appsync.FieldLogLevel:
        levels = {
            "ALL": appsync.FieldLogLevel.ALL,
            "ERROR": appsync.FieldLogLevel.ERROR,
            "NONE": appsync.FieldLogLevel.NONE,
        }
        level = self.config.appsync_field_log_level.upper()
        if level not in levels:
            raise ValueError(f"Unsupported AppSync field log level: {self.config.appsync_field_log_level}")
        return levels[level]

    def _create_appsync_api(self) -> None:
        """Create AppSync GraphQL API with API key and Lambda authorization."""

        schema_path = os.path.join(INFRASTRUCTURE_DIR, "appsync", "schema", "schema.graphql")

        # API key stays the default mode for operators; the Lambda mode is
        # what the EventBridge API destination authenticates with
        self.graphql_api = appsync.GraphqlApi(
            self,
            "Api",
            name=self.config.api_name,
            definition=appsync.Definition.from_file(schema_path),
            authorization_config=appsync.AuthorizationConfig(
                default_authorization=appsync.AuthorizationMode(
                    authorization_type=appsync.AuthorizationType.API_KEY
                ),
                additional_authorization_modes=[
                    appsync.AuthorizationMode(
                        authorization_type=appsync.AuthorizationType.LAMBDA,
                        lambda_authorizer_config=appsync.LambdaAuthorizerConfig(
                            handler=self.authorizer_function,
                            results_cache_ttl=Duration.seconds(self.config.authorizer_result_ttl_seconds)
                        )
                    )
                ]
            ),
            log_config=appsync.LogConfig(
                field_log_level=self._get_field_log_level(),
                exclude_verbose_content=self.env_name != "dev"
            ),
            xray_enabled=self.config.enable_xray_tracing
        )

        self.authorizer_function.add_permission(
            "AppSyncInvokeLambdaPermission",
            principal=iam.ServicePrincipal("appsync.amazonaws.com"),
            source_arn=self.graphql_api.arn,
            source_account=self.account
        )

        resolvers_path = os.path.join(INFRASTRUCTURE_DIR, "appsync", "resolvers")

        # Helper function to read VTL templates
        def read_template(filename: str) -> str:
            with open(os.path.join(resolvers_path, filename), "r") as f:
                return f.read()

        # updateTodo has no backing store: the NONE data source echoes the
        # payload, which is enough to fan the change out to subscribers
        none_data_source = self.graphql_api.add_none_data_source(
            "NONE",
            description="Local resolver data source for updateTodo"
        )

        none_data_source.create_resolver(
            "UpdateTodoResolver",
            type_name="Mutation",
            field_name="updateTodo",
            request_mapping_template=appsync.MappingTemplate.from_string(
                read_template("Mutation.updateTodo.request.vtl")
            ),
            response_mapping_template=appsync.MappingTemplate.from_string(
                read_template("Mutation.updateTodo.response.vtl")
            )
        )

    def _create_eventbridge_infrastructure(self) -> None:
        """Create event bus, OAuth connection, API destination and routing rule."""

        self.event_bus = events.EventBus(
            self,
            "Bus",
            event_bus_name=self.config.event_bus_name
        )

        # EventBridge fetches and refreshes the token itself
        self.connection = events.Connection(
            self,
            "Connection",
            description=f"OAuth client credentials connection for {self.env_name}",
            authorization=events.Authorization.oauth(
                authorization_endpoint=self.auth.token_endpoint,
                client_id=self.auth.destination_client_id,
                client_secret=self.auth.destination_client_secret,
                http_method=events.HttpMethod.POST,
                body_parameters={
                    "grant_type": events.HttpParameter.from_string("client_credentials")
                }
            )
        )

        self.api_destination = events.ApiDestination(
            self,
            "Destination",
            connection=self.connection,
            endpoint=self.graphql_api.graphql_url,
            http_method=events.HttpMethod.POST,
            rate_limit_per_second=self.config.api_destination_rate_limit_per_second,
            description="AppSync GraphQL endpoint"
        )

        self.rule_target_role = iam.Role(
            self,
            "RuleTargetRole",
            assumed_by=iam.ServicePrincipal("events.amazonaws.com"),
            inline_policies={
                "invokeAPI": iam.PolicyDocument(
                    statements=[
                        iam.PolicyStatement(
                            effect=iam.Effect.ALLOW,
                            actions=["events:InvokeApiDestination"],
                            resources=[
                                f"arn:aws:events:{self.region}:{self.account}:api-destination/"
                                f"{self.api_destination.api_destination_name}/*"
                            ]
                        )
                    ]
                )
            }
        )

        # Events that exhaust their retries land here
        self.rule_dlq = sqs.Queue(
            self,
            "RuleTargetDLQ",
            queue_name=f"todos-rule-dlq-{self.env_name}",
            retention_period=Duration.days(14),
            encryption=sqs.QueueEncryption.SQS_MANAGED
        )

        self.todo_rule = events.CfnRule(
            self,
            "Rule",
            name=self.config.rule_name,
            description="Route todo updates to the GraphQL API",
            event_bus_name=self.event_bus.event_bus_name,
            event_pattern={
                "source": [self.config.event_source],
                "detail-type": [self.config.event_detail_type],
            },
            targets=[
                events.CfnRule.TargetProperty(
                    id="default-target-appsync",
                    arn=self.api_destination.api_destination_arn,
                    role_arn=self.rule_target_role.role_arn,
                    input_transformer=events.CfnRule.InputTransformerProperty(
                        input_paths_map=INPUT_PATHS_MAP,
                        input_template=build_input_template()
                    ),
                    retry_policy=events.CfnRule.RetryPolicyProperty(
                        maximum_retry_attempts=self.config.rule_target_retry_attempts,
                        maximum_event_age_in_seconds=self.config.rule_target_max_event_age_seconds
                    ),
                    dead_letter_config=events.CfnRule.DeadLetterConfigProperty(
                        arn=self.rule_dlq.queue_arn
                    )
                )
            ]
        )
        self.todo_rule.node.add_dependency(self.event_bus)

        self.rule_dlq.add_to_resource_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                principals=[iam.ServicePrincipal("events.amazonaws.com")],
                actions=["sqs:SendMessage"],
                resources=[self.rule_dlq.queue_arn],
                conditions={
                    "ArnEquals": {"aws:SourceArn": self.todo_rule.attr_arn}
                }
            )
        )

    def _create_monitoring_infrastructure(self) -> None:
        """Create CloudWatch alarms and dashboard."""
        self.monitoring = MonitoringConstruct(
            self,
            "Monitoring",
            env_name=self.env_name,
            lambda_functions={"authorizer": self.authorizer_function},
            dead_letter_queues={"rule-target": self.rule_dlq},
            rules={"todo-rule": self.config.rule_name},
            event_bus_name=self.config.event_bus_name,
            graphql_api=self.graphql_api,
            alarm_email=self.config.alarm_email,
            metrics_namespace=self.metrics_namespace
        )

    def _create_outputs(self) -> None:
        """Create CloudFormation outputs for key resources."""

        CfnOutput(self, "apiId", value=self.graphql_api.api_id)
        CfnOutput(self, "apiName", value=self.graphql_api.name)
        CfnOutput(self, "graphqlUrl", value=self.graphql_api.graphql_url)
        CfnOutput(self, "apiKey", value=self.graphql_api.api_key)

        CfnOutput(
            self,
            "eventBusName",
            value=self.event_bus.event_bus_name,
            description="Name of the todos event bus",
            export_name=f"todos-eventbridge-{self.env_name}-event-bus-name"
        )

        CfnOutput(
            self,
            "userPoolId",
            value=self.auth.user_pool_id,
            description="ID of the Cognito User Pool issuing destination tokens",
            export_name=f"todos-eventbridge-{self.env_name}-user-pool-id"
        )

        CfnOutput(
            self,
            "tokenEndpoint",
            value=self.auth.token_endpoint,
            description="OAuth token endpoint used by the EventBridge connection"
        )

    def _get_log_retention(self, days: int) -> logs.RetentionDays:
        """Map days to RetentionDays enum."""
        retention_map = {
            1: logs.RetentionDays.ONE_DAY,
            3: logs.RetentionDays.THREE_DAYS,
            5: logs.RetentionDays.FIVE_DAYS,
            7: logs.RetentionDays.ONE_WEEK,
            14: logs.RetentionDays.TWO_WEEKS,
            30: logs.RetentionDays.ONE_MONTH,
            60: logs.RetentionDays.TWO_MONTHS,
            90: logs.RetentionDays.THREE_MONTHS,
            180: logs.RetentionDays.SIX_MONTHS,
            365: logs.RetentionDays.ONE_YEAR,
            731: logs.RetentionDays.TWO_YEARS,
            1827: logs.RetentionDays.FIVE_YEARS,
            3653: logs.RetentionDays.TEN_YEARS,
        }

        if days in retention_map:
            return retention_map[days]

        # Find closest matching retention period (round up)
        for key in sorted(retention_map.keys()):
            if days <= key:
                return retention_map[key]

        raise ValueError(
            f"Unsupported log retention period: {days} days. "
            f"Supported values: {sorted(retention_map.keys())}"
        )
