#!/usr/bin/env python3
"""
Publish a todo update event to the todos event bus.

The routing rule forwards the event to the GraphQL API, so this is the quickest
way to exercise the deployed stack end to end:

    python scripts/put_todo_event.py --id 42 --name "Buy milk" --description "2 litres"
"""

import argparse
import os
import sys

# Add repository root to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from pydantic import ValidationError

from src.todos import TodoUpdate, TodoEventPublisher, PublishError
from src.todos.publisher import DEFAULT_EVENT_BUS_NAME, DEFAULT_SOURCE, DEFAULT_DETAIL_TYPE


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Put a 'todos update' event on the event bus")
    parser.add_argument("--id", required=True, dest="todo_id", help="Todo identifier")
    parser.add_argument("--name", help="New todo name")
    parser.add_argument("--description", help="New todo description")
    parser.add_argument("--bus", default=DEFAULT_EVENT_BUS_NAME, help="Event bus name or ARN")
    parser.add_argument("--source", default=DEFAULT_SOURCE, help="Event source")
    parser.add_argument("--detail-type", default=DEFAULT_DETAIL_TYPE, help="Event detail-type")
    parser.add_argument("--region", default=os.environ.get("AWS_REGION"), help="AWS region")
    return parser.parse_args(argv)


def main(argv=None):
    """Script entry point. Returns a process exit code."""
    args = parse_args(argv)

    try:
        update = TodoUpdate(todo_id=args.todo_id, name=args.name, description=args.description)
    except ValidationError as e:
        print(f"Invalid todo update: {e}", file=sys.stderr)
        return 2

    try:
        publisher = TodoEventPublisher(
            event_bus_name=args.bus,
            source=args.source,
            detail_type=args.detail_type,
            region=args.region
        )
        event_id = publisher.publish(update)
    except PublishError as e:
        print(f"Error publishing event: {e}", file=sys.stderr)
        return 1

    print(f"Published event {event_id} to {args.bus}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
