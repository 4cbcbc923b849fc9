"""Tool registry.

Single source of truth for the closed set of tool names, their descriptions
and their parameter schemas. Result shapes are documented per tool in
``TOOL_METADATA[name]["result"]``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .errors import validation_error

_OWNER = {"type": "string", "minLength": 1}
_REPO = {"type": "string", "minLength": 1}


class ToolName(str, Enum):
    LIST_REPOSITORIES = "list_repositories"
    GET_REPOSITORY = "get_repository"
    DELETE_REPOSITORY = "delete_repository"
    VALIDATE_REPOSITORY_PERMISSIONS = "validate_repository_permissions"
    GET_REPOSITORY_DETAILS = "get_repository_details"
    GET_GITHUB_USER = "get_github_user"
    CHECK_GITHUB_OWNER_TYPE = "check_github_owner_type"
    CREATE_GITHUB_REPOSITORY = "create_github_repository"


TOOL_METADATA: dict[str, dict[str, Any]] = {
    ToolName.LIST_REPOSITORIES.value: {
        "description": "List repositories for an owner and flag the ones that look scaffolded.",
        "inputSchema": {
            "type": "object",
            "required": [],
            "properties": {
                "owner": {"type": "string"},
                "nameFilter": {"type": "string"},
                "type": {"type": "string", "enum": ["all", "public", "private"]},
                "sort": {"type": "string", "enum": ["created", "updated", "pushed", "full_name"]},
                "direction": {"type": "string", "enum": ["asc", "desc"]},
            },
            "additionalProperties": False,
        },
        "result": "{success, message, repositories?, owner?, total?}",
    },
    ToolName.GET_REPOSITORY.value: {
        "description": "Read a single repository.",
        "inputSchema": {
            "type": "object",
            "required": ["owner", "repo"],
            "properties": {"owner": _OWNER, "repo": _REPO},
            "additionalProperties": False,
        },
        "result": "{success, message, repository?}",
    },
    ToolName.DELETE_REPOSITORY.value: {
        "description": "Delete a repository under the configured managed owner (GITHUB_OWNER).",
        "inputSchema": {
            "type": "object",
            "required": ["owner", "repo"],
            "properties": {"owner": _OWNER, "repo": _REPO},
            "additionalProperties": False,
        },
        "result": "{success, message}",
    },
    ToolName.VALIDATE_REPOSITORY_PERMISSIONS.value: {
        "description": "Report whether repositories under an owner could be deleted, without deleting anything.",
        "inputSchema": {
            "type": "object",
            "required": ["owner"],
            "properties": {"owner": _OWNER},
            "additionalProperties": False,
        },
        "result": "{success, message, canDelete, githubOwner?, authenticatedUser?}",
    },
    ToolName.GET_REPOSITORY_DETAILS.value: {
        "description": "Aggregate repository metadata, languages, topics and README; partial data on partial failure.",
        "inputSchema": {
            "type": "object",
            "required": ["owner", "repo"],
            "properties": {"owner": _OWNER, "repo": _REPO},
            "additionalProperties": False,
        },
        "result": "{success, message, data?}",
    },
    ToolName.GET_GITHUB_USER.value: {
        "description": "Return the account the configured GitHub token authenticates as.",
        "inputSchema": {
            "type": "object",
            "required": [],
            "properties": {},
            "additionalProperties": False,
        },
        "result": "{success, message, user?}",
    },
    ToolName.CHECK_GITHUB_OWNER_TYPE.value: {
        "description": "Tell whether a GitHub owner is a user or an organization.",
        "inputSchema": {
            "type": "object",
            "required": ["owner"],
            "properties": {"owner": _OWNER},
            "additionalProperties": False,
        },
        "result": "{success, message, owner, type?}",
    },
    ToolName.CREATE_GITHUB_REPOSITORY.value: {
        "description": "Create a repository for the authenticated user and commit the given project files to it.",
        "inputSchema": {
            "type": "object",
            "required": ["name", "files"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "private": {"type": "boolean"},
                "commitMessage": {"type": "string", "minLength": 1},
                "files": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "object",
                        "required": ["path", "content"],
                        "properties": {
                            "path": {"type": "string", "minLength": 1},
                            "content": {"type": "string"},
                        },
                        "additionalProperties": False,
                    },
                },
            },
            "additionalProperties": False,
        },
        "result": "{success, message, repositoryName?, repositoryUrl?, fileCount?, owner?}",
    },
}

_VALID_NAMES: frozenset[str] = frozenset(t.value for t in ToolName)


def is_valid_tool(name: object) -> bool:
    """Return True only for an exact, registered tool name."""
    return isinstance(name, str) and name in _VALID_NAMES


def tool_descriptions() -> list[dict[str, str]]:
    """Discovery listing: name and description of every tool, in registry order."""
    return [{"name": t.value, "description": TOOL_METADATA[t.value]["description"]} for t in ToolName]


def _check_type(path: str, expected: str, v: Any) -> None:
    # bool is an int subclass; keep integers strict.
    if expected == "string" and not isinstance(v, str):
        raise validation_error(f"Field '{path}' must be a string", field=path)
    if expected == "integer" and (not isinstance(v, int) or isinstance(v, bool)):
        raise validation_error(f"Field '{path}' must be an integer", field=path)
    if expected == "boolean" and not isinstance(v, bool):
        raise validation_error(f"Field '{path}' must be a boolean", field=path)
    if expected == "array" and not isinstance(v, list):
        raise validation_error(f"Field '{path}' must be an array", field=path)
    if expected == "object" and not isinstance(v, dict):
        raise validation_error(f"Field '{path}' must be an object", field=path)


def _validate_object(schema: dict[str, Any], value: dict[str, Any], prefix: str = "") -> None:
    props: dict[str, Any] = schema.get("properties", {})
    required: list[str] = schema.get("required", [])

    for k in required:
        if k not in value:
            raise validation_error(f"Missing required field: {prefix}{k}", field=f"{prefix}{k}")

    if schema.get("additionalProperties", True) is False:
        extras = sorted(k for k in value if k not in props)
        if extras:
            raise validation_error(f"Unexpected fields: {', '.join(prefix + k for k in extras)}", field=prefix + extras[0])

    for k, spec in props.items():
        if k not in value:
            continue
        _validate_value(f"{prefix}{k}", spec, value[k])


def _validate_value(path: str, spec: dict[str, Any], v: Any) -> None:
    expected = spec.get("type")
    if expected is None:
        return
    _check_type(path, expected, v)

    if expected == "string":
        min_len = spec.get("minLength")
        if isinstance(min_len, int) and len(v) < min_len:
            raise validation_error(f"Field '{path}' must be at least {min_len} characters", field=path)
        allowed = spec.get("enum")
        if allowed is not None and v not in allowed:
            raise validation_error(f"Field '{path}' must be one of: {', '.join(allowed)}", field=path)

    if expected == "array":
        min_items = spec.get("minItems")
        if isinstance(min_items, int) and len(v) < min_items:
            raise validation_error(f"Field '{path}' must contain at least {min_items} item(s)", field=path)
        item_spec = spec.get("items")
        if item_spec:
            for i, item in enumerate(v):
                _validate_value(f"{path}[{i}]", item_spec, item)

    if expected == "object":
        _validate_object(spec, v, prefix=f"{path}.")


def validate_tool_arguments(tool_name: str, arguments: dict[str, Any]) -> None:
    """Validate arguments against the tool's declared input schema.

    Supports the subset of JSON Schema the registry uses: required fields,
    additionalProperties=false, basic types, minLength, enum, minItems and
    array items.

    Raises:
        AppError: with category ``UserInput`` on the first violation.
    """
    if not is_valid_tool(tool_name):
        raise validation_error(f"Unknown tool: {tool_name}", field="method")
    if not isinstance(arguments, dict):
        raise validation_error("Parameters must be an object", field="params")
    _validate_object(TOOL_METADATA[tool_name]["inputSchema"], arguments)
