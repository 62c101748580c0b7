import os
import re
from typing import Dict, Mapping

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def resolve_env_placeholders(value: str) -> str:
    """Replace `${NAME}` with the value of env var NAME (empty string if unset)."""
    return _PLACEHOLDER.sub(lambda match: os.environ.get(match.group(1), ""), value)


def resolve_mapping(values: Mapping[str, str]) -> Dict[str, str]:
    return {key: resolve_env_placeholders(value) for key, value in values.items()}


def _sanitize(value: str) -> str:
    value = _INVALID_CHARS.sub("_", value)
    value = _UNDERSCORE_RUNS.sub("_", value)
    if value.startswith("_"):
        value = value[1:]
    if value.endswith("_"):
        value = value[:-1]
    return value.lower()


def sanitize_tool_name(server_name: str, tool_name: str, prefix: bool = True) -> str:
    """
    Build the local tool name for a remote MCP tool.

    "Linear API" + "list-issues" -> "linear_api_list_issues" (or "list_issues"
    without the server prefix).
    """
    if prefix:
        return f"{_sanitize(server_name)}_{_sanitize(tool_name)}"
    return _sanitize(tool_name)


__all__ = [
    "resolve_env_placeholders",
    "resolve_mapping",
    "sanitize_tool_name",
]
