"""
Tool registration decorator.

`@tool` records the MCP name, description and JSON input schema on the
function; the ToolRegistry picks them up during discovery. Parameter
descriptions come from `Annotated[type, "description"]` hints.
"""

import inspect
import logging
import types
from collections.abc import Callable
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

logger = logging.getLogger(__name__)

TOOL_METADATA_ATTR = "_mcp_tool_metadata"


def tool(name: str | None = None, description: str | None = None) -> Callable[[Callable], Callable]:
    """
    Mark a function as an MCP tool.

    Example:
        @tool(description="Start a stopped container")
        async def start_container(container_id: Annotated[str, "Container ID or name"]) -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        tool_name = name or func.__name__
        tool_description = description or inspect.getdoc(func) or ""

        type_hints = get_type_hints(func, include_extras=True)
        signature = inspect.signature(func)

        setattr(
            func,
            TOOL_METADATA_ATTR,
            {
                "name": tool_name,
                "description": tool_description,
                "inputSchema": _generate_input_schema(signature, type_hints),
                "function": func,
                "async": inspect.iscoroutinefunction(func),
            },
        )
        logger.debug(f"Tool decorated: {tool_name} ({'async' if inspect.iscoroutinefunction(func) else 'sync'})")
        return func

    return decorator


def _generate_input_schema(signature: inspect.Signature, type_hints: dict[str, Any]) -> dict[str, Any]:
    properties = {}
    required = []

    for param_name, param in signature.parameters.items():
        if param_name == "self":
            continue

        param_info = type_to_json_schema(type_hints.get(param_name, str))
        if param.default is inspect.Parameter.empty:
            required.append(param_name)
        elif param.default is not None:
            param_info["default"] = param.default
        properties[param_name] = param_info

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def unwrap_optional(python_type: Any) -> Any:
    """`X | None` -> X; anything else is returned unchanged"""
    if get_origin(python_type) in (Union, types.UnionType):
        args = [a for a in get_args(python_type) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return python_type


def type_to_json_schema(python_type: Any) -> dict[str, Any]:
    """Convert a parameter annotation to a JSON schema fragment"""
    description = None
    if get_origin(python_type) is Annotated:
        python_type, *extras = get_args(python_type)
        description = next((e for e in extras if isinstance(e, str)), None)

    python_type = unwrap_optional(python_type)
    origin = get_origin(python_type)

    if python_type is bool:
        schema: dict[str, Any] = {"type": "boolean"}
    elif python_type is int:
        schema = {"type": "integer"}
    elif python_type is float:
        schema = {"type": "number"}
    elif python_type is list or origin is list:
        schema = {"type": "array"}
        item_args = get_args(python_type)
        if item_args:
            schema["items"] = type_to_json_schema(item_args[0])
    elif python_type is dict or origin is dict:
        schema = {"type": "object"}
    else:
        schema = {"type": "string"}

    if description:
        schema["description"] = description
    return schema
