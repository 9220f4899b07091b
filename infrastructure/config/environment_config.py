"""
Environment-specific configuration management for the Todos EventBridge stack.

This module provides configuration classes for different deployment environments
(dev, staging, production). Values that are not secret are also published to
Parameter Store by the stack so that operators can inspect what was deployed.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass
class EnvironmentConfig:
    """Environment-specific configuration settings."""

    environment_name: str
    aws_region: str

    # Cognito settings
    auth_domain_prefix: Optional[str]
    resource_server_identifier: str
    resource_server_scope: str

    # EventBridge settings
    event_bus_name: str
    event_source: str
    event_detail_type: str
    rule_name: str
    api_destination_rate_limit_per_second: int
    rule_target_retry_attempts: int
    rule_target_max_event_age_seconds: int

    # AppSync settings
    api_name: str
    appsync_field_log_level: str
    authorizer_result_ttl_seconds: int

    # Lambda settings
    lambda_timeout_seconds: int
    lambda_memory_mb: int

    # Monitoring settings
    enable_xray_tracing: bool
    log_retention_days: int
    alarm_email: Optional[str] = None

    @classmethod
    def get_config(cls, environment: str) -> "EnvironmentConfig":
        """Get configuration for the specified environment."""
        configs = {
            "dev": cls._dev_config(),
            "staging": cls._staging_config(),
            "production": cls._production_config()
        }

        if environment not in configs:
            raise ValueError(f"Unknown environment: {environment}")

        return configs[environment]

    @classmethod
    def _dev_config(cls) -> "EnvironmentConfig":
        """Development environment configuration."""
        return cls(
            environment_name="dev",
            aws_region="us-east-1",

            # Cognito - prefix supplied at deploy time
            auth_domain_prefix=None,
            resource_server_identifier="todos",
            resource_server_scope="update",

            # EventBridge
            event_bus_name="todos",
            event_source="todos.system",
            event_detail_type="todos update",
            rule_name="default-todo-rule",
            api_destination_rate_limit_per_second=10,
            rule_target_retry_attempts=3,
            rule_target_max_event_age_seconds=3600,

            # AppSync - Debug logging enabled
            api_name="TriggeredByEventBridge",
            appsync_field_log_level="ALL",
            authorizer_result_ttl_seconds=0,

            # Lambda
            lambda_timeout_seconds=10,
            lambda_memory_mb=256,

            # Monitoring - Detailed for debugging
            enable_xray_tracing=True,
            log_retention_days=7,
            alarm_email=None
        )

    @classmethod
    def _staging_config(cls) -> "EnvironmentConfig":
        """Staging environment configuration."""
        return cls(
            environment_name="staging",
            aws_region="us-east-1",

            auth_domain_prefix=None,
            resource_server_identifier="todos",
            resource_server_scope="update",

            event_bus_name="todos-staging",
            event_source="todos.system",
            event_detail_type="todos update",
            rule_name="default-todo-rule-staging",
            api_destination_rate_limit_per_second=50,
            rule_target_retry_attempts=5,
            rule_target_max_event_age_seconds=7200,

            # AppSync - Error logging only
            api_name="TriggeredByEventBridge-staging",
            appsync_field_log_level="ERROR",
            authorizer_result_ttl_seconds=300,

            lambda_timeout_seconds=10,
            lambda_memory_mb=256,

            enable_xray_tracing=True,
            log_retention_days=30,
            alarm_email=None
        )

    @classmethod
    def _production_config(cls) -> "EnvironmentConfig":
        """Production environment configuration."""
        return cls(
            environment_name="production",
            aws_region="us-east-1",

            auth_domain_prefix=None,
            resource_server_identifier="todos",
            resource_server_scope="update",

            event_bus_name="todos-production",
            event_source="todos.system",
            event_detail_type="todos update",
            rule_name="default-todo-rule-production",
            api_destination_rate_limit_per_second=300,
            rule_target_retry_attempts=10,
            rule_target_max_event_age_seconds=86400,

            # AppSync - Error logging only
            api_name="TriggeredByEventBridge-production",
            appsync_field_log_level="NONE",
            authorizer_result_ttl_seconds=3600,

            lambda_timeout_seconds=10,
            lambda_memory_mb=512,

            # Monitoring - Essential only
            enable_xray_tracing=True,
            log_retention_days=90,
            alarm_email=None
        )

    @property
    def required_scope(self) -> str:
        """Fully qualified OAuth scope the authorizer demands."""
        return f"{self.resource_server_identifier}/{self.resource_server_scope}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for parameter store."""
        return {
            "environment_name": self.environment_name,
            "aws_region": self.aws_region,
            "event_bus_name": self.event_bus_name,
            "event_source": self.event_source,
            "event_detail_type": self.event_detail_type,
            "rule_name": self.rule_name,
            "api_name": self.api_name,
            "required_scope": self.required_scope,
            "rule_target_retry_attempts": str(self.rule_target_retry_attempts),
            "authorizer_result_ttl_seconds": str(self.authorizer_result_ttl_seconds),
            "log_retention_days": str(self.log_retention_days)
        }
