"""
Built-in Docker tools. Each submodule is scanned for @tool functions by
ToolRegistry.auto_discover_tools.
"""

from .decorators import tool

__all__ = ["tool"]
