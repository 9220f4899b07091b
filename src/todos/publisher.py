"""
EventBridge publisher for todo update events.

Events put on the bus with the configured source and detail-type are matched
by the routing rule and delivered to the GraphQL API as ``updateTodo``
mutations.
"""

import json
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from aws_lambda_powertools import Logger

from src.todos.models import TodoUpdate


logger = Logger(child=True)

DEFAULT_EVENT_BUS_NAME = "todos"
DEFAULT_SOURCE = "todos.system"
DEFAULT_DETAIL_TYPE = "todos update"


class PublishError(Exception):
    """Raised when EventBridge does not accept an event."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class TodoEventPublisher:
    """
    Client for putting todo update events on the bus.

    Example:
        publisher = TodoEventPublisher(event_bus_name="todos")
        event_id = publisher.publish(TodoUpdate(todo_id="42", name="Buy milk"))
    """

    def __init__(
        self,
        event_bus_name: str = DEFAULT_EVENT_BUS_NAME,
        source: str = DEFAULT_SOURCE,
        detail_type: str = DEFAULT_DETAIL_TYPE,
        client: Optional[Any] = None,
        region: Optional[str] = None
    ):
        """
        Initialize the publisher.

        Args:
            event_bus_name: Name or ARN of the target event bus
            source: Event source the rule matches on
            detail_type: Event detail-type the rule matches on
            client: Pre-built boto3 EventBridge client
            region: AWS region used when creating a client

        Raises:
            ValueError: If the event bus name is empty
            PublishError: If no EventBridge client can be created
        """
        if not event_bus_name:
            raise ValueError("Event bus name must not be empty")

        self.event_bus_name = event_bus_name
        self.source = source
        self.detail_type = detail_type

        if client is None:
            try:
                client = boto3.client("events", region_name=region)
            except BotoCoreError as e:
                raise PublishError(f"Failed to create EventBridge client: {e}") from e
        self.client = client

    def build_entry(self, update: TodoUpdate) -> Dict[str, Any]:
        """Build a PutEvents entry for one update."""
        return {
            "EventBusName": self.event_bus_name,
            "Source": self.source,
            "DetailType": self.detail_type,
            "Detail": json.dumps(update.to_detail())
        }

    def publish(self, update: TodoUpdate) -> str:
        """
        Put one todo update on the bus.

        Args:
            update: The todo update to send

        Returns:
            The EventBridge event ID

        Raises:
            PublishError: If the call fails or the entry is rejected
        """
        entry = self.build_entry(update)

        try:
            response = self.client.put_events(Entries=[entry])
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            logger.error(
                "PutEvents call failed",
                extra={"todo_id": update.todo_id, "error_code": error_code}
            )
            raise PublishError(f"Failed to publish todo update: {e}", error_code) from e
        except BotoCoreError as e:
            # Transport and credential failures carry no error code
            logger.error(
                "PutEvents call failed",
                extra={"todo_id": update.todo_id, "error": str(e)}
            )
            raise PublishError(f"Failed to publish todo update: {e}") from e

        result = response["Entries"][0]
        if response.get("FailedEntryCount", 0) > 0 or "ErrorCode" in result:
            logger.error(
                "Event rejected by EventBridge",
                extra={"todo_id": update.todo_id, "error_code": result.get("ErrorCode")}
            )
            raise PublishError(
                result.get("ErrorMessage", "Event rejected by EventBridge"),
                result.get("ErrorCode")
            )

        logger.info(
            "Published todo update",
            extra={"todo_id": update.todo_id, "event_id": result["EventId"], "event_bus": self.event_bus_name}
        )
        return result["EventId"]
