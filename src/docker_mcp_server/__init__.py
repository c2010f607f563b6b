"""
Docker MCP Server - manage containers, images, volumes, networks and Compose
stacks over the Model Context Protocol, with every container request
validated against a security policy before it reaches the daemon
"""

__version__ = "0.1.0"

from .containerspec import DEFAULT_POLICY, SecurityPolicy, compile_container_arguments, compile_container_request
from .core.protocol import MCPProtocol
from .core.registry import ToolRegistry
from .core.server import MCPServer
from .core.transport import StdioTransport, Transport
from .tools.decorators import tool

__all__ = [
    "MCPServer",
    "ToolRegistry",
    "Transport",
    "StdioTransport",
    "MCPProtocol",
    "SecurityPolicy",
    "DEFAULT_POLICY",
    "compile_container_request",
    "compile_container_arguments",
    "tool",
]
