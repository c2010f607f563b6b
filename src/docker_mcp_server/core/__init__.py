"""MCP protocol core: JSON-RPC routing, tool registry, server and stdio transport"""

from .protocol import InvalidParamsError, MCPProtocol, RequestContext
from .registry import ToolArgumentError, ToolRegistry
from .server import MCPServer
from .transport import StdioTransport, Transport

__all__ = [
    "MCPServer",
    "ToolRegistry",
    "ToolArgumentError",
    "MCPProtocol",
    "RequestContext",
    "InvalidParamsError",
    "Transport",
    "StdioTransport",
]
