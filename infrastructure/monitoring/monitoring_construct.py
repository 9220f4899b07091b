"""
Monitoring and Observability Construct for the Todos EventBridge stack.

This module provides CloudWatch alarms and a dashboard covering the path an
event takes: routing rule, API destination delivery, Lambda authorizer and
the GraphQL API.
"""

from aws_cdk import (
    Duration,
    aws_cloudwatch as cloudwatch,
    aws_cloudwatch_actions as cloudwatch_actions,
    aws_sns as sns,
    aws_sns_subscriptions as sns_subscriptions,
    aws_lambda as lambda_,
    aws_sqs as sqs,
    aws_appsync as appsync,
)
from constructs import Construct
from typing import List, Optional, Dict


class MonitoringConstruct(Construct):
    """
    CDK Construct for monitoring and observability infrastructure.

    Implements:
    - CloudWatch alarms for Lambda errors and throttles
    - Alarms for failed rule invocations and dead-lettered events
    - AppSync server error alarm
    - CloudWatch dashboard for system health
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        env_name: str,
        lambda_functions: Dict[str, lambda_.IFunction],
        dead_letter_queues: Dict[str, sqs.IQueue],
        rules: Dict[str, str],
        event_bus_name: str,
        graphql_api: Optional[appsync.IGraphqlApi] = None,
        alarm_email: Optional[str] = None,
        metrics_namespace: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Initialize the monitoring construct.

        Args:
            scope: CDK scope.
            construct_id: Construct ID.
            env_name: Environment name (dev, staging, production).
            lambda_functions: Functions to alarm on, keyed by short name.
            dead_letter_queues: Queues that should stay empty, keyed by short name.
            rules: EventBridge rule names keyed by short name.
            event_bus_name: Bus the rules are attached to.
            graphql_api: AppSync API to alarm on.
            alarm_email: Optional e-mail subscribed to the alarm topic.
            metrics_namespace: Namespace of the authorizer's custom metrics.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name
        self.lambda_functions = lambda_functions
        self.dead_letter_queues = dead_letter_queues
        self.rules = rules
        self.event_bus_name = event_bus_name
        self.graphql_api = graphql_api
        self.metrics_namespace = metrics_namespace or f"TodosEventBridge/{env_name}"

        # Create SNS topic for alarms
        self.alarm_topic = self._create_alarm_topic(alarm_email)
        self.alarm_action = cloudwatch_actions.SnsAction(self.alarm_topic)

        # Create CloudWatch alarms
        self._create_lambda_alarms()
        self._create_rule_alarms()
        self._create_dlq_alarms()
        if graphql_api is not None:
            self._create_appsync_alarms()

        # Create CloudWatch dashboard
        self.dashboard = self._create_dashboard()

    def _create_alarm_topic(self, alarm_email: Optional[str]) -> sns.Topic:
        """Create SNS topic for alarm notifications."""
        topic = sns.Topic(
            self,
            "AlarmTopic",
            topic_name=f"todos-eventbridge-alarms-{self.env_name}",
            display_name=f"Todos EventBridge Alarms ({self.env_name})"
        )

        if alarm_email:
            topic.add_subscription(
                sns_subscriptions.EmailSubscription(alarm_email)
            )

        return topic

    def _rule_metric(self, rule_name: str, metric_name: str) -> cloudwatch.Metric:
        return cloudwatch.Metric(
            namespace="AWS/Events",
            metric_name=metric_name,
            dimensions_map={
                "EventBusName": self.event_bus_name,
                "RuleName": rule_name
            },
            period=Duration.minutes(5),
            statistic="Sum",
            label=rule_name
        )

    def _create_lambda_alarms(self) -> None:
        """Create CloudWatch alarms for Lambda functions."""
        for func_name, func in self.lambda_functions.items():
            cloudwatch.Alarm(
                self,
                f"{func_name}ErrorAlarm",
                alarm_name=f"todos-{self.env_name}-{func_name}-errors",
                metric=func.metric_errors(
                    period=Duration.minutes(5),
                    statistic="Sum"
                ),
                threshold=5,
                evaluation_periods=2,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
                alarm_description=f"Lambda function {func_name} has more than 5 errors in 10 minutes",
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
            ).add_alarm_action(self.alarm_action)

            # Throttled authorizers surface as unauthorized requests
            cloudwatch.Alarm(
                self,
                f"{func_name}ThrottleAlarm",
                alarm_name=f"todos-{self.env_name}-{func_name}-throttles",
                metric=func.metric_throttles(
                    period=Duration.minutes(5),
                    statistic="Sum"
                ),
                threshold=1,
                evaluation_periods=1,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
                alarm_description=f"Lambda function {func_name} is being throttled",
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
            ).add_alarm_action(self.alarm_action)

    def _create_rule_alarms(self) -> None:
        """Create alarms for rule targets that could not be invoked."""
        for short_name, rule_name in self.rules.items():
            cloudwatch.Alarm(
                self,
                f"{short_name}FailedInvocationsAlarm",
                alarm_name=f"todos-{self.env_name}-{short_name}-failed-invocations",
                metric=self._rule_metric(rule_name, "FailedInvocations"),
                threshold=1,
                evaluation_periods=1,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
                alarm_description=f"Rule {short_name} failed to deliver events to its target",
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
            ).add_alarm_action(self.alarm_action)

    def _create_dlq_alarms(self) -> None:
        """Create CloudWatch alarms for dead letter queues."""
        for queue_name, queue in self.dead_letter_queues.items():
            cloudwatch.Alarm(
                self,
                f"{queue_name}MessagesAlarm",
                alarm_name=f"todos-{self.env_name}-{queue_name}-dlq-messages",
                metric=queue.metric_approximate_number_of_messages_visible(
                    period=Duration.minutes(5),
                    statistic="Average"
                ),
                threshold=1,
                evaluation_periods=1,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
                alarm_description=f"DLQ {queue_name} has messages - events were not delivered",
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
            ).add_alarm_action(self.alarm_action)

    def _create_appsync_alarms(self) -> None:
        """Create alarm on AppSync server errors."""
        server_error_metric = cloudwatch.Metric(
            namespace="AWS/AppSync",
            metric_name="5XXError",
            dimensions_map={"GraphQLAPIId": self.graphql_api.api_id},
            period=Duration.minutes(5),
            statistic="Sum"
        )

        cloudwatch.Alarm(
            self,
            "AppSyncServerErrorAlarm",
            alarm_name=f"todos-{self.env_name}-appsync-5xx",
            metric=server_error_metric,
            threshold=1,
            evaluation_periods=2,
            comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD,
            alarm_description="AppSync API is returning server errors",
            treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING
        ).add_alarm_action(self.alarm_action)

    def _create_dashboard(self) -> cloudwatch.Dashboard:
        """Create CloudWatch dashboard for system health monitoring."""
        dashboard = cloudwatch.Dashboard(
            self,
            "MonitoringDashboard",
            dashboard_name=f"todos-eventbridge-{self.env_name}-dashboard"
        )

        # Routing section
        routing_widgets: List[cloudwatch.IWidget] = [
            cloudwatch.GraphWidget(
                title="Rule Invocations",
                left=[
                    self._rule_metric(rule_name, "Invocations")
                    for rule_name in self.rules.values()
                ],
                right=[
                    self._rule_metric(rule_name, "FailedInvocations")
                    for rule_name in self.rules.values()
                ],
                width=12,
                height=6
            ),
            cloudwatch.GraphWidget(
                title="Dead Letter Queue Depth",
                left=[
                    queue.metric_approximate_number_of_messages_visible(
                        period=Duration.minutes(5),
                        label=queue_name
                    )
                    for queue_name, queue in self.dead_letter_queues.items()
                ],
                width=12,
                height=6
            )
        ]
        dashboard.add_widgets(cloudwatch.Row(*routing_widgets))

        # Authorizer section
        authorizer_widgets: List[cloudwatch.IWidget] = [
            cloudwatch.GraphWidget(
                title="Lambda Invocations / Errors",
                left=[
                    func.metric_invocations(period=Duration.minutes(5))
                    for func in self.lambda_functions.values()
                ],
                right=[
                    func.metric_errors(period=Duration.minutes(5))
                    for func in self.lambda_functions.values()
                ],
                width=12,
                height=6
            ),
            cloudwatch.GraphWidget(
                title="Authorization Decisions",
                left=[
                    cloudwatch.Metric(
                        namespace=self.metrics_namespace,
                        metric_name="AuthorizedRequests",
                        period=Duration.minutes(5),
                        statistic="Sum",
                        label="Authorized"
                    ),
                    cloudwatch.Metric(
                        namespace=self.metrics_namespace,
                        metric_name="DeniedRequests",
                        period=Duration.minutes(5),
                        statistic="Sum",
                        label="Denied"
                    )
                ],
                width=12,
                height=6
            )
        ]
        dashboard.add_widgets(cloudwatch.Row(*authorizer_widgets))

        return dashboard
