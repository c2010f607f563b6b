"""
Tool registry: discovery, schema listing and argument binding for MCP tools
"""

import asyncio
import importlib
import inspect
import logging
import pkgutil
from collections.abc import Callable
from types import ModuleType
from typing import Any, get_origin, get_type_hints

from ..tools.decorators import TOOL_METADATA_ATTR, unwrap_optional
from ..utils.json_args import parse_json_list, parse_json_object

logger = logging.getLogger(__name__)


class ToolArgumentError(ValueError):
    """Tool arguments that cannot be bound to the tool's signature"""


class ToolRegistry:
    """Holds @tool-decorated functions keyed by tool name"""

    def __init__(self):
        self._tools: dict[str, Callable] = {}
        self._schemas: dict[str, dict[str, Any]] = {}

    def register(self, func: Callable) -> Callable:
        """Register a function carrying @tool metadata; usable as a decorator"""
        metadata = getattr(func, TOOL_METADATA_ATTR, None)
        if metadata is None:
            logger.warning(f"Function {func.__name__} does not have MCP tool metadata. Use @tool decorator first.")
            return func

        tool_name = metadata["name"]
        if tool_name in self._tools and self._tools[tool_name] is not func:
            logger.warning(f"Tool '{tool_name}' registered twice; keeping the latest definition")
        self._tools[tool_name] = func
        self._schemas[tool_name] = {
            "name": tool_name,
            "description": metadata["description"],
            "inputSchema": metadata["inputSchema"],
        }
        logger.debug(f"Registered tool: {tool_name}")
        return func

    def get_tool(self, name: str) -> Callable | None:
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        return list(self._tools)

    @property
    def tools(self) -> list[dict[str, Any]]:
        """MCP tool descriptors in registration order"""
        return list(self._schemas.values())

    def auto_discover_tools(self, module_or_package: ModuleType | str):
        """
        Register every @tool function found in a module, or in each module
        of a package.
        """
        if isinstance(module_or_package, str):
            module_or_package = importlib.import_module(module_or_package)

        if hasattr(module_or_package, "__path__"):
            for _, modname, _ in pkgutil.iter_modules(module_or_package.__path__, module_or_package.__name__ + "."):
                try:
                    self._scan_module_for_tools(importlib.import_module(modname))
                except ImportError as e:
                    logger.warning(f"Could not import {modname}: {e}")
        else:
            self._scan_module_for_tools(module_or_package)

    def _scan_module_for_tools(self, module: ModuleType):
        for name in dir(module):
            obj = getattr(module, name)
            # skip re-exports so a tool is owned by the module defining it
            if callable(obj) and hasattr(obj, TOOL_METADATA_ATTR) and getattr(obj, "__module__", None) == module.__name__:
                self.register(obj)

    def bind_arguments(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Check arguments against the tool signature.

        Unknown arguments are dropped with a warning. JSON-encoded strings are
        decoded for list and dict parameters.

        Raises:
            ToolArgumentError: For missing required arguments or undecodable values.
        """
        func = self._tools[name]
        signature = inspect.signature(func)
        hints = get_type_hints(func)

        bound: dict[str, Any] = {}
        for key, value in arguments.items():
            if key not in signature.parameters:
                logger.warning(f"Ignoring unknown argument '{key}' for tool '{name}'")
                continue
            expected = unwrap_optional(hints.get(key, Any))
            try:
                if value is not None and (expected is list or get_origin(expected) is list):
                    value = parse_json_list(value, key)
                elif value is not None and (expected is dict or get_origin(expected) is dict):
                    value = parse_json_object(value, key)
            except ValueError as e:
                raise ToolArgumentError(str(e)) from e
            bound[key] = value

        missing = [
            p.name
            for p in signature.parameters.values()
            if p.default is inspect.Parameter.empty and p.name not in bound
        ]
        if missing:
            raise ToolArgumentError(f"Missing required argument(s): {', '.join(missing)}")
        return bound

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a tool with bound arguments; sync tools run in a worker thread"""
        func = self._tools.get(name)
        if func is None:
            raise KeyError(name)
        kwargs = self.bind_arguments(name, arguments)
        if inspect.iscoroutinefunction(func):
            return await func(**kwargs)
        return await asyncio.to_thread(func, **kwargs)
