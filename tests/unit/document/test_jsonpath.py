from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from aip_reviewer.document import jsonpath
from aip_reviewer.errors import JsonPathError

pytestmark = pytest.mark.unit


def test_parse_dotted_and_bracketed_members() -> None:
    assert jsonpath.parse_json_path("$.paths['/users/{id}'].get.parameters[0].name") == (
        "paths",
        "/users/{id}",
        "get",
        "parameters",
        0,
        "name",
    )


def test_parse_root_is_empty() -> None:
    assert jsonpath.parse_json_path("$") == ()


def test_parse_double_quoted_and_escaped_keys() -> None:
    assert jsonpath.parse_json_path('$["a.b"]') == ("a.b",)
    assert jsonpath.parse_json_path("$['it\\'s']") == ("it's",)


@pytest.mark.parametrize(
    "expression",
    ["paths.get", "$.", "$[", "$['open", "$[abc]", "$[0", "$ paths"],
)
def test_parse_rejects_malformed_expressions(expression: str) -> None:
    with pytest.raises(JsonPathError):
        jsonpath.parse_json_path(expression)


def test_builders_quote_path_templates() -> None:
    assert jsonpath.path_item_json_path("/users/{id}") == "$.paths['/users/{id}']"
    assert jsonpath.parameters_json_path("/books", "GET") == "$.paths['/books'].get.parameters"
    assert (
        jsonpath.response_json_path("/books", "post", "202")
        == "$.paths['/books'].post.responses['202']"
    )
    assert jsonpath.schema_property_json_path("Book", "displayTitle") == (
        "$.components.schemas.Book.properties.displayTitle"
    )


def test_extend_json_path_appends_tokens() -> None:
    base = jsonpath.responses_json_path("/books", "get")
    assert jsonpath.extend_json_path(base, "default") == "$.paths['/books'].get.responses.default"
    assert jsonpath.extend_json_path(jsonpath.parameters_json_path("/b", "get"), 2).endswith("parameters[2]")


def test_pointer_conversion_unescapes_tokens() -> None:
    assert jsonpath.pointer_tokens("#/paths/~1users~1{id}/get") == ["paths", "/users/{id}", "get"]
    assert jsonpath.pointer_tokens("#") == []
    assert jsonpath.pointer_to_json_path("#/components/schemas/Book") == "$.components.schemas.Book"


def test_format_rejects_boolean_tokens() -> None:
    with pytest.raises(JsonPathError):
        jsonpath.format_json_path(["paths", True])


_TOKENS = st.lists(
    st.one_of(st.text(min_size=1, max_size=12), st.integers(min_value=0, max_value=50)),
    max_size=6,
)


@given(tokens=_TOKENS)
def test_formatted_paths_parse_back_to_the_same_tokens(tokens: list[str | int]) -> None:
    assert jsonpath.parse_json_path(jsonpath.format_json_path(tokens)) == tuple(tokens)
