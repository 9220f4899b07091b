"""
Tests for the routing rule input transformer.
"""

from infrastructure.events.input_template import (
    INPUT_PATHS_MAP,
    UPDATE_TODO_SELECTION,
    build_input_template,
    collapse_whitespace,
)


class TestCollapseWhitespace:

    def test_newline_and_indent_become_one_space(self):
        assert collapse_whitespace("a\n    b\n\tc") == "a b c"

    def test_single_line_unchanged(self):
        assert collapse_whitespace("{ \"a\": 1 }") == "{ \"a\": 1 }"


class TestInputTemplate:

    def test_is_single_line(self):
        assert "\n" not in build_input_template()

    def test_contains_mutation(self):
        template = build_input_template()

        assert "mutation UpdateTodo($id:ID!, $name:String, $description:String)" in template
        assert "updateTodo(id:$id, name:$name, description:$description)" in template
        assert f"{{ {UPDATE_TODO_SELECTION} }}" in template

    def test_placeholders_match_paths(self):
        template = build_input_template()

        for name in INPUT_PATHS_MAP:
            assert f'"{name}": "<{name}>"' in template

    def test_paths_read_event_detail(self):
        assert INPUT_PATHS_MAP == {
            "id": "$.detail.todo-id",
            "name": "$.detail.name",
            "description": "$.detail.description",
        }

    def test_body_shape(self):
        template = build_input_template()

        assert template.startswith('{ "query": "mutation UpdateTodo')
        assert '"variables": { "id": "<id>", "name": "<name>", "description": "<description>" } }' in template
