"""JSONPath-like addresses into an OpenAPI document.

Only the subset the fixer needs is supported: ``$`` root, ``.name`` member
access, ``['quoted key']`` member access and ``[index]`` sequence access.
Builders always quote keys that are not plain identifiers, so every path
produced by a rule parses back into the exact key sequence.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Final

from aip_reviewer.errors import JsonPathError

PathToken = str | int

_IDENTIFIER_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$-]*$")
_DOT_MEMBER_RE: Final[re.Pattern[str]] = re.compile(r"[^.\[\]'\"\s]+")
_INDEX_RE: Final[re.Pattern[str]] = re.compile(r"-?\d+")


def quote_key(key: str) -> str:
    if _IDENTIFIER_RE.fullmatch(key):
        return f".{key}"
    escaped = key.replace("\\", "\\\\").replace("'", "\\'")
    return f"['{escaped}']"


def format_json_path(tokens: Iterable[PathToken]) -> str:
    parts = ["$"]
    for token in tokens:
        if isinstance(token, bool):
            raise JsonPathError(f"invalid path token {token!r}")
        if isinstance(token, int):
            parts.append(f"[{token}]")
        else:
            parts.append(quote_key(str(token)))
    return "".join(parts)


def join_json_path(*tokens: PathToken) -> str:
    return format_json_path(tokens)


def parse_json_path(expression: str) -> tuple[PathToken, ...]:
    """Parse ``expression`` into a tuple of mapping keys and sequence indexes."""

    if not isinstance(expression, str) or not expression.startswith("$"):
        raise JsonPathError(f"JSONPath must start with '$': {expression!r}")

    tokens: list[PathToken] = []
    position = 1
    length = len(expression)
    while position < length:
        char = expression[position]
        if char == ".":
            match = _DOT_MEMBER_RE.match(expression, position + 1)
            if match is None:
                raise JsonPathError(f"expected member name at offset {position + 1} in {expression!r}")
            tokens.append(match.group(0))
            position = match.end()
        elif char == "[":
            token, position = _parse_bracket(expression, position + 1)
            tokens.append(token)
        else:
            raise JsonPathError(f"unexpected {char!r} at offset {position} in {expression!r}")
    return tuple(tokens)


def _parse_bracket(expression: str, position: int) -> tuple[PathToken, int]:
    if position >= len(expression):
        raise JsonPathError(f"unterminated '[' in {expression!r}")

    quote = expression[position]
    if quote in {"'", '"'}:
        chars: list[str] = []
        position += 1
        while position < len(expression):
            char = expression[position]
            if char == "\\" and position + 1 < len(expression):
                chars.append(expression[position + 1])
                position += 2
                continue
            if char == quote:
                break
            chars.append(char)
            position += 1
        else:
            raise JsonPathError(f"unterminated quoted key in {expression!r}")
        position += 1
        if position >= len(expression) or expression[position] != "]":
            raise JsonPathError(f"expected ']' after quoted key in {expression!r}")
        return "".join(chars), position + 1

    match = _INDEX_RE.match(expression, position)
    if match is None:
        raise JsonPathError(f"expected index or quoted key at offset {position} in {expression!r}")
    end = match.end()
    if end >= len(expression) or expression[end] != "]":
        raise JsonPathError(f"expected ']' after index in {expression!r}")
    return int(match.group(0)), end + 1


def extend_json_path(base: str, *tokens: PathToken) -> str:
    return format_json_path((*parse_json_path(base), *tokens))


def pointer_tokens(ref: str) -> list[str]:
    """Split a local JSON Pointer reference (``#/a/b~1c``) into unescaped keys."""

    pointer = ref[1:] if ref.startswith("#") else ref
    if not pointer:
        return []
    return [part.replace("~1", "/").replace("~0", "~") for part in pointer.lstrip("/").split("/")]


def pointer_to_json_path(ref: str) -> str:
    return format_json_path(pointer_tokens(ref))


def paths_json_path() -> str:
    return join_json_path("paths")


def path_item_json_path(path: str) -> str:
    return join_json_path("paths", path)


def operation_json_path(path: str, method: str) -> str:
    return join_json_path("paths", path, method.lower())


def parameters_json_path(path: str, method: str) -> str:
    return join_json_path("paths", path, method.lower(), "parameters")


def parameter_json_path(path: str, method: str, index: int) -> str:
    return join_json_path("paths", path, method.lower(), "parameters", index)


def request_body_json_path(path: str, method: str) -> str:
    return join_json_path("paths", path, method.lower(), "requestBody")


def responses_json_path(path: str, method: str) -> str:
    return join_json_path("paths", path, method.lower(), "responses")


def response_json_path(path: str, method: str, status: str) -> str:
    return join_json_path("paths", path, method.lower(), "responses", str(status))


def schemas_container_json_path() -> str:
    return join_json_path("components", "schemas")


def schema_json_path(name: str) -> str:
    return join_json_path("components", "schemas", name)


def schema_property_json_path(name: str, prop: str) -> str:
    return join_json_path("components", "schemas", name, "properties", prop)


__all__ = [
    "PathToken",
    "extend_json_path",
    "format_json_path",
    "join_json_path",
    "operation_json_path",
    "parameter_json_path",
    "parameters_json_path",
    "parse_json_path",
    "path_item_json_path",
    "pointer_to_json_path",
    "pointer_tokens",
    "paths_json_path",
    "quote_key",
    "request_body_json_path",
    "response_json_path",
    "responses_json_path",
    "schema_json_path",
    "schema_property_json_path",
    "schemas_container_json_path",
]
