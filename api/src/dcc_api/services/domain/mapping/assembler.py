#!/usr/bin/env python3
"""Write extracted values into the nested DCC-JSON object."""

from typing import Any

from ....models.models import ARRAY_MARKER


def strip_array_marker(target: str) -> str:
    """'measurementResults[]' -> 'measurementResults'."""
    if target.endswith(ARRAY_MARKER):
        return target[: -len(ARRAY_MARKER)]
    return target


def set_nested(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set value at a dotted path, creating intermediate objects as needed.

    An intermediate key holding a non-object value is replaced by an object.
    """
    keys = path.split(".")
    current = obj
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def get_nested(obj: dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a value at a dotted path, or default when any step is missing."""
    current: Any = obj
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
