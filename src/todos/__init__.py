"""Todo update event publishing module."""

from src.todos.models import TodoUpdate
from src.todos.publisher import TodoEventPublisher, PublishError

__all__ = [
    "TodoUpdate",
    "TodoEventPublisher",
    "PublishError",
]
