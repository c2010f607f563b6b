"""
JSON-RPC 2.0 framing and method routing for the MCP server
"""

import json
import logging
import traceback
from collections.abc import Callable, Coroutine
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000

RequestId = str | int | None


class RequestContext(NamedTuple):
    """Per-request data handed to method handlers"""

    id: RequestId
    method: str


class InvalidParamsError(Exception):
    """Raised by a handler when the request params are unusable"""


Handler = Callable[[dict[str, Any], RequestContext], Coroutine[Any, Any, Any]]


class MCPProtocol:
    """Parses JSON-RPC messages, dispatches them to handlers and formats replies"""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}
        self._sender: Callable[[dict[str, Any]], Coroutine[Any, Any, None]] | None = None

    def set_request_handler(self, method: str, handler: Handler):
        self._handlers[method] = handler
        logger.debug(f"Registered request handler for method: {method}")

    @property
    def methods(self) -> list[str]:
        return sorted(self._handlers)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """
        Route one decoded message to its handler.

        Returns:
            The JSON-RPC response, or None for notifications (no "id").
        """
        request_id = message.get("id")
        method = message.get("method")
        params = message.get("params") or {}

        if message.get("jsonrpc") != "2.0":
            logger.warning(f"Invalid JSON-RPC version in message: {str(message)[:150]}")
            return self.format_error(None, INVALID_REQUEST, "Invalid Request", "Invalid JSON-RPC version")

        if not method or not isinstance(method, str):
            logger.warning(f"Missing method in message: {str(message)[:150]}")
            return self.format_error(request_id, INVALID_REQUEST, "Invalid Request", "'method' parameter is missing")

        is_notification = "id" not in message

        handler = self._handlers.get(method)
        if handler is None:
            if is_notification:
                logger.debug(f"Ignoring unhandled notification '{method}'")
                return None
            logger.warning(f"No handler found for method '{method}' (ID: {request_id})")
            return self.format_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        if not isinstance(params, dict):
            return self.format_error(request_id, INVALID_PARAMS, "Invalid params", "'params' must be an object")

        try:
            logger.debug(f"Calling handler for method '{method}' (ID: {request_id})")
            result = await handler(params, RequestContext(id=request_id, method=method))
        except InvalidParamsError as e:
            logger.warning(f"Invalid params for '{method}' (ID: {request_id}): {e}")
            return None if is_notification else self.format_error(request_id, INVALID_PARAMS, str(e))
        except Exception as e:
            detail = f"Server error executing method '{method}': {type(e).__name__}: {e}"
            logger.error(f"{detail} (ID: {request_id})", exc_info=True)
            if is_notification:
                return None
            data = traceback.format_exc() if logger.isEnabledFor(logging.DEBUG) else None
            return self.format_error(request_id, SERVER_ERROR, detail, data)

        if is_notification:
            logger.debug(f"Notification for method '{method}' processed")
            return None
        return self.format_result(request_id, result)

    def format_result(self, req_id: RequestId, result: Any) -> dict[str, Any]:
        try:
            json.dumps(result)
        except (TypeError, ValueError) as e:
            logger.error(f"Result for request ID {req_id} is not JSON serializable: {e}")
            result = f"[Non-Serializable Result: {type(result).__name__}] {str(result)[:500]}"
        return {"jsonrpc": "2.0", "id": req_id, "result": result}

    def format_error(self, req_id: RequestId, code: int, message: str, data: Any | None = None) -> dict[str, Any]:
        error: dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            if isinstance(data, (str, int, float, bool, list, dict)):
                error["data"] = data
            else:
                error["data"] = f"Non-serializable data of type {type(data).__name__}: {str(data)[:100]}"
        return {"jsonrpc": "2.0", "id": req_id, "error": error}

    def set_send_implementation(self, sender: Callable[[dict[str, Any]], Coroutine[Any, Any, None]]):
        self._sender = sender

    async def send_notification(self, method: str, params: dict[str, Any] | None = None):
        """Send a server-initiated notification through the transport"""
        if self._sender is None:
            logger.error("Cannot send notification: No send implementation configured")
            return
        try:
            await self._sender({"jsonrpc": "2.0", "method": method, "params": params or {}})
        except Exception as e:
            logger.error(f"Failed to send notification '{method}': {e}", exc_info=True)
