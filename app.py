#!/usr/bin/env python3
"""
Todos EventBridge CDK Application Entry Point

This is the main entry point for the AWS CDK application that deploys the
EventBridge to AppSync integration across multiple environments.
"""

import os
import aws_cdk as cdk
from aws_cdk import Environment

from infrastructure.stacks.todos_stack import TodosEventBridgeStack
from infrastructure.config.environment_config import EnvironmentConfig


def main():
    """Main application entry point."""
    app = cdk.App()

    # Get environment from context or default to 'dev'
    env_name = app.node.try_get_context("environment") or "dev"

    # Load environment-specific configuration
    config = EnvironmentConfig.get_config(env_name)

    # Define AWS environment
    aws_env = Environment(
        account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
        region=os.environ.get("CDK_DEFAULT_REGION", config.aws_region)
    )

    TodosEventBridgeStack(
        app,
        f"TodosEventBridgeStack-{env_name}",
        config=config,
        env=aws_env,
        description=f"EventBridge to AppSync via OAuth API destination ({env_name})"
    )

    app.synth()


if __name__ == "__main__":
    main()
