"""
MCP server: wires the protocol router, the tool registry and a transport
"""

import json
import logging
from typing import Any

from .protocol import InvalidParamsError, MCPProtocol, RequestContext
from .registry import ToolArgumentError, ToolRegistry
from .transport import StdioTransport, Transport

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


class MCPServer:
    """
    Core MCP server that manages protocol handling, tool registry,
    and connection to a transport layer.
    """

    def __init__(self, name: str = "docker-mcp-server", version: str | None = None):
        if version is None:
            from .. import __version__ as version
        self.name = name
        self.version = version
        self.protocol = MCPProtocol()
        self.tool_registry = ToolRegistry()
        self.transport: Transport | None = None
        self.initialized = False

        handlers = {
            "initialize": self._handle_initialize,
            "notifications/initialized": self._handle_initialized,
            "ping": self._handle_ping,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
        }
        for method, handler in handlers.items():
            self.protocol.set_request_handler(method, handler)
        logger.debug(f"MCPServer '{name}' v{self.version} created with {len(handlers)} handlers")

    def load_default_tools(self):
        from .. import tools

        self.tool_registry.auto_discover_tools(tools)
        logger.info(f"Discovered {len(self.tool_registry.list_tools())} tools")

    async def connect(self, transport: Transport):
        if transport is None:
            raise ValueError("Cannot connect to null transport")
        if self.transport:
            logger.warning("MCPServer already connected, overwriting")
        self.transport = transport
        self.protocol.set_send_implementation(transport.send)
        await transport.connect()
        logger.info(f"MCPServer connected to transport: {type(transport).__name__}")

    async def run(self, transport: Transport | None = None):
        """Serve requests until the transport reports end of input"""
        if not self.tool_registry.list_tools():
            self.load_default_tools()

        await self.connect(transport or StdioTransport())
        try:
            while True:
                try:
                    message = await self.transport.receive()
                except Exception as e:
                    logger.error(f"Error receiving message: {e}", exc_info=True)
                    continue
                if message is None:
                    logger.info("Transport closed, shutting down")
                    break
                try:
                    response = await self.protocol.handle_message(message)
                    if response:
                        await self.transport.send(response)
                except Exception as e:
                    logger.error(f"Error in message processing loop: {e}", exc_info=True)
        finally:
            await self.transport.close()

    async def _handle_initialize(self, params: dict[str, Any], ctx: RequestContext) -> dict[str, Any]:
        client_info = params.get("clientInfo") or {}
        logger.info(
            f"Initialize request from {client_info.get('name', 'Unknown Client')} "
            f"v{client_info.get('version', 'N/A')} (ID: {ctx.id})"
        )
        self.initialized = True
        return {
            "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
            "serverInfo": {"name": self.name, "version": self.version},
            "capabilities": {"tools": {"listChanged": False}},
        }

    async def _handle_initialized(self, params: dict[str, Any], ctx: RequestContext) -> None:
        logger.debug("Client reported initialization complete")

    async def _handle_ping(self, params: dict[str, Any], ctx: RequestContext) -> dict[str, Any]:
        return {}

    async def _handle_list_tools(self, params: dict[str, Any], ctx: RequestContext) -> dict[str, Any]:
        tools = self.tool_registry.tools
        logger.debug(f"Returning {len(tools)} tools (ID: {ctx.id})")
        return {"tools": tools}

    async def _handle_call_tool(self, params: dict[str, Any], ctx: RequestContext) -> dict[str, Any]:
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}
        if not tool_name or not isinstance(tool_name, str):
            raise InvalidParamsError("Missing required parameter: 'name'")
        if not isinstance(arguments, dict):
            raise InvalidParamsError("'arguments' must be an object")

        if self.tool_registry.get_tool(tool_name) is None:
            return _text_content(f"Tool not found: {tool_name}", is_error=True)

        logger.info(f"Tool call: {tool_name} (ID: {ctx.id})")
        try:
            result = await self.tool_registry.call_tool(tool_name, arguments)
        except ToolArgumentError as e:
            logger.warning(f"Invalid arguments for tool '{tool_name}': {e}")
            return _text_content(f"Invalid arguments for {tool_name}: {e}", is_error=True)
        except Exception as e:
            logger.error(f"Tool '{tool_name}' execution failed: {e}", exc_info=True)
            return _text_content(f"Tool execution error: {e}", is_error=True)

        if isinstance(result, dict):
            is_error = result.get("success") is False or "error" in result
            return _text_content(json.dumps(result, indent=2, default=str), is_error=is_error)
        return _text_content(result if isinstance(result, str) else str(result), is_error=False)


def _text_content(text: str, is_error: bool) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}
