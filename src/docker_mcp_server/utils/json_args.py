"""
Helpers for tool arguments that clients may send as JSON-encoded strings
"""

import json
from typing import Any


def parse_json_list(value: Any, name: str = "value") -> list[Any]:
    """
    Accept a list, a JSON array string, a single plain string or None.

    Raises:
        ValueError: If the value is a malformed JSON array or an unsupported type.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if not text.startswith("["):
            return [value]
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"'{name}' is not a valid JSON array: {e}") from e
        if not isinstance(parsed, list):
            raise ValueError(f"'{name}' must be a JSON array")
        return parsed
    raise ValueError(f"'{name}' must be an array, got {type(value).__name__}")


def parse_json_object(value: Any, name: str = "value") -> dict[str, Any]:
    """Accept a dict, a JSON object string or None"""
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        if not value.strip():
            return {}
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"'{name}' is not a valid JSON object: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError(f"'{name}' must be a JSON object")
        return parsed
    raise ValueError(f"'{name}' must be an object, got {type(value).__name__}")


def string_map(value: Any, name: str = "value") -> dict[str, str]:
    return {str(k): str(v) for k, v in parse_json_object(value, name).items()}
