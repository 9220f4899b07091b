"""
Todo event data models.

The detail shape here is what the routing rule's input transformer reads:
``$.detail.todo-id``, ``$.detail.name`` and ``$.detail.description``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ConfigDict


class TodoUpdate(BaseModel):
    """Detail of a ``todos update`` event."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True
    )

    todo_id: str = Field(..., alias="todo-id", min_length=1, max_length=256, description="Todo identifier")
    name: Optional[str] = Field(default=None, max_length=1024, description="New todo name")
    description: Optional[str] = Field(default=None, max_length=8192, description="New todo description")

    def to_detail(self) -> Dict[str, Any]:
        """Serialize to the event detail, omitting fields that were not set."""
        return self.model_dump(by_alias=True, exclude_none=True)
