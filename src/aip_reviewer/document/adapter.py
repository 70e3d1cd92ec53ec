"""Traversal surface over a parsed OpenAPI document.

JSON and YAML sources are normalized to the same in-memory shape (mapping
keys are always strings), so rules and the fixer never branch on the source
format. The adapter never mutates the mapping it wraps.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

import yaml

from aip_reviewer.document import jsonpath
from aip_reviewer.errors import DocumentParseError

HTTP_METHODS: Final[tuple[str, ...]] = (
    "get",
    "put",
    "post",
    "delete",
    "options",
    "head",
    "patch",
    "trace",
)

_MAX_REF_DEPTH: Final[int] = 32
_JSON_MEDIA_TYPES: Final[tuple[str, ...]] = ("application/json", "application/problem+json")
_BOM: Final[str] = "\ufeff"


class ContentType(StrEnum):
    JSON = "json"
    YAML = "yaml"


def content_type_for_location(location: str) -> ContentType:
    lowered = location.lower().split("?", 1)[0]
    if lowered.endswith((".yaml", ".yml")):
        return ContentType.YAML
    return ContentType.JSON


def decode_document(data: bytes | bytearray | memoryview, content_type: ContentType | str) -> dict[str, Any]:
    """Decode UTF-8 bytes (a BOM is tolerated) and parse them as a document."""

    try:
        text = str(data, "utf-8")
    except UnicodeDecodeError as exc:
        raise DocumentParseError(f"document is not valid UTF-8: {exc}") from exc
    if text.startswith(_BOM):
        text = text[1:]
    return parse_document(text, content_type)


def parse_document(text: str, content_type: ContentType | str) -> dict[str, Any]:
    kind = ContentType(content_type)
    try:
        if kind is ContentType.YAML:
            loaded = yaml.safe_load(text)
        else:
            loaded = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DocumentParseError(f"failed to parse {kind.value} document: {exc}") from exc

    if not isinstance(loaded, Mapping):
        raise DocumentParseError(
            f"document root must be a mapping, got {type(loaded).__name__}"
        )
    return _normalize_keys(loaded)


def _normalize_keys(value: Any) -> Any:
    # YAML turns unquoted status codes (200:) into ints; JSON never does.
    if isinstance(value, Mapping):
        return {str(key): _normalize_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value


@dataclass(frozen=True, slots=True)
class OperationView:
    """One HTTP operation located by its path template and method."""

    path: str
    method: str
    operation: Mapping[str, Any]
    path_item: Mapping[str, Any]

    @property
    def label(self) -> str:
        return f"{self.method.upper()} {self.path}"

    @property
    def json_path(self) -> str:
        return jsonpath.operation_json_path(self.path, self.method)

    @property
    def operation_id(self) -> str | None:
        value = self.operation.get("operationId")
        return value if isinstance(value, str) else None

    @property
    def responses(self) -> Mapping[str, Any]:
        value = self.operation.get("responses")
        return value if isinstance(value, Mapping) else {}

    @property
    def has_request_body(self) -> bool:
        return "requestBody" in self.operation


@dataclass(frozen=True, slots=True)
class ParameterView:
    """A resolved parameter and where it is declared."""

    name: str
    location: str
    definition: Mapping[str, Any]
    level: str
    index: int
    json_path: str

    def matches(self, names: tuple[str, ...], location: str | None = None) -> bool:
        if location is not None and self.location != location:
            return False
        return self.name in names


@dataclass(frozen=True, slots=True)
class SchemaSite:
    """A resolved schema together with the JSONPath of its definition."""

    schema: Mapping[str, Any]
    json_path: str
    component: str | None = None

    @property
    def properties(self) -> Mapping[str, Any]:
        value = self.schema.get("properties")
        return value if isinstance(value, Mapping) else {}

    @property
    def is_object(self) -> bool:
        return self.schema.get("type") == "object" or "properties" in self.schema


class OpenAPIDocument:
    """Read-only view over a parsed OpenAPI mapping."""

    def __init__(self, raw: Mapping[str, Any]) -> None:
        if not isinstance(raw, Mapping):
            raise DocumentParseError("document root must be a mapping")
        self._raw = raw

    @classmethod
    def from_bytes(cls, data: bytes | memoryview, content_type: ContentType | str) -> OpenAPIDocument:
        return cls(decode_document(data, content_type))

    @property
    def raw(self) -> Mapping[str, Any]:
        return self._raw

    @property
    def info(self) -> Mapping[str, Any]:
        value = self._raw.get("info")
        return value if isinstance(value, Mapping) else {}

    @property
    def title(self) -> str | None:
        value = self.info.get("title")
        return value if isinstance(value, str) else None

    @property
    def version(self) -> str | None:
        value = self.info.get("version")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value if isinstance(value, str) else None

    @property
    def paths(self) -> Mapping[str, Mapping[str, Any]]:
        value = self._raw.get("paths")
        if not isinstance(value, Mapping):
            return {}
        return {key: item for key, item in value.items() if isinstance(item, Mapping)}

    @property
    def servers(self) -> list[Mapping[str, Any]]:
        value = self._raw.get("servers")
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, Mapping)]

    @property
    def global_security(self) -> list[Any] | None:
        value = self._raw.get("security")
        return value if isinstance(value, list) else None

    def operations(self) -> Iterator[OperationView]:
        """Yield operations in path order, then fixed HTTP method order."""

        for path, item in self.paths.items():
            yield from self.operations_for(path, item)

    def operations_for(self, path: str, item: Mapping[str, Any] | None = None) -> Iterator[OperationView]:
        path_item = item if item is not None else self.paths.get(path, {})
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, Mapping):
                yield OperationView(path=path, method=method, operation=operation, path_item=path_item)

    def parameters(self, operation: OperationView) -> list[ParameterView]:
        """Merge path-level and operation-level parameters; the operation wins."""

        merged: dict[tuple[str, str], ParameterView] = {}
        levels = (
            ("path", operation.path_item, ("paths", operation.path)),
            ("operation", operation.operation, ("paths", operation.path, operation.method)),
        )
        for level, source, prefix in levels:
            raw_parameters = source.get("parameters")
            if not isinstance(raw_parameters, list):
                continue
            for index, raw in enumerate(raw_parameters):
                definition, ref = self.resolve_located(raw)
                if not isinstance(definition, Mapping):
                    continue
                name = definition.get("name")
                location = definition.get("in")
                if not isinstance(name, str) or not isinstance(location, str):
                    continue
                merged[(name, location)] = ParameterView(
                    name=name,
                    location=location,
                    definition=definition,
                    level=level,
                    index=index,
                    json_path=(
                        jsonpath.pointer_to_json_path(ref)
                        if ref is not None
                        else jsonpath.join_json_path(*prefix, "parameters", index)
                    ),
                )
        return list(merged.values())

    def has_parameter(
        self,
        operation: OperationView,
        names: tuple[str, ...],
        location: str | None = None,
    ) -> bool:
        return any(item.matches(names, location) for item in self.parameters(operation))

    def resolve_ref(self, ref: str) -> Any | None:
        """Resolve a local ``#/...`` reference; external refs resolve to ``None``."""

        if not isinstance(ref, str) or not ref.startswith("#"):
            return None
        node: Any = self._raw
        for key in jsonpath.pointer_tokens(ref):
            if isinstance(node, Mapping) and key in node:
                node = node[key]
            elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
                node = node[int(key)]
            else:
                return None
        return node

    def resolve(self, node: Any) -> Any:
        """Follow ``$ref`` chains; cycles and dangling refs resolve to ``None``."""

        return self.resolve_located(node)[0]

    def resolve_located(self, node: Any) -> tuple[Any, str | None]:
        """Like ``resolve`` but also return the last ``$ref`` that was followed."""

        seen: set[str] = set()
        current = node
        last_ref: str | None = None
        for _ in range(_MAX_REF_DEPTH):
            if not isinstance(current, Mapping) or "$ref" not in current:
                return current, last_ref
            ref = current["$ref"]
            if not isinstance(ref, str) or ref in seen:
                return None, None
            seen.add(ref)
            last_ref = ref
            current = self.resolve_ref(ref)
        return None, None

    def response(self, operation: OperationView, status: str) -> Mapping[str, Any] | None:
        resolved = self.resolve(operation.responses.get(str(status)))
        return resolved if isinstance(resolved, Mapping) else None

    def response_schema(self, operation: OperationView, status: str) -> SchemaSite | None:
        """Locate the JSON schema of one response, following refs to its definition."""

        raw_response = operation.responses.get(str(status))
        response, response_ref = self.resolve_located(raw_response)
        if not isinstance(response, Mapping):
            return None
        if response_ref is not None:
            response_path = jsonpath.pointer_to_json_path(response_ref)
        else:
            response_path = jsonpath.response_json_path(operation.path, operation.method, status)

        content = response.get("content")
        if not isinstance(content, Mapping) or not content:
            return None
        media_type = next((key for key in _JSON_MEDIA_TYPES if key in content), None)
        if media_type is None:
            media_type = next(iter(content))
        media = content[media_type]
        if not isinstance(media, Mapping) or "schema" not in media:
            return None

        schema, schema_ref = self.resolve_located(media["schema"])
        if not isinstance(schema, Mapping):
            return None
        if schema_ref is not None:
            schema_path = jsonpath.pointer_to_json_path(schema_ref)
        else:
            schema_path = jsonpath.extend_json_path(response_path, "content", media_type, "schema")
        return SchemaSite(
            schema=schema,
            json_path=schema_path,
            component=schema_component_name({"$ref": schema_ref}) if schema_ref else None,
        )

    def schemas(self) -> Mapping[str, Mapping[str, Any]]:
        components = self._raw.get("components")
        if not isinstance(components, Mapping):
            return {}
        schemas = components.get("schemas")
        if not isinstance(schemas, Mapping):
            return {}
        return {name: schema for name, schema in schemas.items() if isinstance(schema, Mapping)}

    def security_schemes(self) -> Mapping[str, Any]:
        components = self._raw.get("components")
        if not isinstance(components, Mapping):
            return {}
        schemes = components.get("securitySchemes")
        return schemes if isinstance(schemes, Mapping) else {}

    def singleton_paths(self) -> set[str]:
        """Paths that have no ``{id}`` child, i.e. resources addressed without an id."""

        keys = list(self.paths)
        singletons: set[str] = set()
        for path in keys:
            if path.endswith("}"):
                continue
            prefix = path.rstrip("/") + "/{"
            if not any(other.startswith(prefix) for other in keys):
                singletons.add(path)
        return singletons


def schema_component_name(schema: Any) -> str | None:
    if isinstance(schema, Mapping):
        ref = schema.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/components/schemas/"):
            return ref.rsplit("/", 1)[-1].replace("~1", "/").replace("~0", "~")
    return None


__all__ = [
    "HTTP_METHODS",
    "ContentType",
    "OpenAPIDocument",
    "OperationView",
    "ParameterView",
    "SchemaSite",
    "content_type_for_location",
    "decode_document",
    "parse_document",
    "schema_component_name",
]
