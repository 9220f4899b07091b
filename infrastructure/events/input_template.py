"""
Input transformer for the todo routing rule.

EventBridge rewrites each matched event into a GraphQL request body before
handing it to the API destination. The placeholders (``<id>``, ``<name>``,
``<description>``) are filled by EventBridge from ``INPUT_PATHS_MAP``.
"""

import re
from typing import Dict

UPDATE_TODO_SELECTION = "id name description createdAt updatedAt"

UPDATE_TODO_MUTATION = f"""mutation UpdateTodo($id:ID!, $name:String, $description:String) {{
  updateTodo(id:$id, name:$name, description:$description) {{ {UPDATE_TODO_SELECTION} }}
}}"""

INPUT_PATHS_MAP: Dict[str, str] = {
    "id": "$.detail.todo-id",
    "name": "$.detail.name",
    "description": "$.detail.description",
}

_INPUT_TEMPLATE = f"""{{
  "query": "{UPDATE_TODO_MUTATION}",
  "variables": {{
    "id": "<id>",
    "name": "<name>",
    "description": "<description>"
  }}
}}"""

_LINE_BREAK = re.compile(r"\n\s*")


def collapse_whitespace(template: str) -> str:
    """Fold every newline and the indentation after it into one space."""
    return _LINE_BREAK.sub(" ", template)


def build_input_template() -> str:
    """Return the single-line request body EventBridge sends to AppSync."""
    return collapse_whitespace(_INPUT_TEMPLATE)
